"""Time utilities."""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


def isoformat_or_none(value: datetime | None) -> str | None:
    """Format datetime as ISO string, assuming UTC for naive values."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
