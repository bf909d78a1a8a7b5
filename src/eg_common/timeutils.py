"""UTC datetime helpers."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def seconds_since(start: datetime | None, now: datetime | None = None) -> float:
    """Elapsed wall-clock seconds since `start` (0.0 if the start is unknown)."""
    if start is None:
        return 0.0
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    return max(0.0, ((now or utc_now()) - start).total_seconds())
