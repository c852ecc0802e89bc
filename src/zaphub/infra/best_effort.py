"""Best-effort sub-operations.

Profile lookups, QR refreshes and reply suggestions may fail without failing
the request that triggered them. Wrapping them here keeps that policy visible
at the call site:

    profile = best_effort(lambda: client.fetch_profile(name), what="fetch profile")
"""

from typing import Callable, TypeVar

from zaphub.observability.logging import get_logger
from zaphub.observability.redaction import safe_log_context

logger = get_logger(__name__)

T = TypeVar("T")


def best_effort(
    fn: Callable[[], T],
    *,
    what: str,
    default: T | None = None,
    **log_context: object,
) -> T | None:
    """Run fn; on any exception log a warning and return default.

    Args:
        fn: Zero-argument callable performing the sub-operation.
        what: Short description used in the log line.
        default: Value returned when fn raises.
        **log_context: Extra fields for the log line (redacted).
    """
    try:
        return fn()
    except Exception as e:
        logger.warning(
            f"best-effort step failed: {what}",
            extra={
                "extra_fields": safe_log_context(
                    error_type=type(e).__name__,
                    **log_context,
                )
            },
        )
        return default
