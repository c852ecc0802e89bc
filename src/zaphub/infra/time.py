"""Time utilities for consistent timestamp handling."""

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def epoch_ms() -> int:
    """Milliseconds since the epoch, the unit embedded in generated ids."""
    return int(time.time() * 1000)


def parse_timestamp(value: object) -> datetime | None:
    """ISO-8601 string or epoch number (seconds, or milliseconds when huge).

    Naive values are taken as UTC. Returns None when unparseable.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e12 else value
        return from_epoch_seconds(seconds)
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return parse_timestamp(int(text))
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def from_epoch_seconds(value: int | float | str | None) -> datetime | None:
    """Gateway timestamps are epoch seconds, sometimes sent as strings."""
    if value is None or value == "":
        return None
    try:
        return datetime.fromtimestamp(float(value), timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None
