"""Correlation ID propagation across a request and its gateway calls."""

import uuid
from contextvars import ContextVar, Token

# Readable from any coroutine or thread spawned inside the request context
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return uuid.uuid4().hex


def get_correlation_id() -> str:
    """Current correlation ID, empty string outside a request."""
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    correlation_id_var.reset(token)


def outbound_headers() -> dict[str, str]:
    """Headers that carry the correlation ID to the gateway."""
    cid = get_correlation_id()
    return {CORRELATION_ID_HEADER: cid} if cid else {}
