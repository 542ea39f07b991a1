from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands timezone-aware columns back as naive values
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def format_timestamp(value: datetime | None) -> str | None:
    """Format a timestamp as ISO-8601 with seconds precision, using ``Z`` for UTC."""
    if value is None:
        return None
    formatted = as_utc(value).isoformat(timespec="seconds")
    if formatted.endswith("+00:00"):
        return formatted[: -len("+00:00")] + "Z"
    return formatted
