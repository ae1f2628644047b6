from __future__ import annotations

from datetime import datetime, timezone

UTC = timezone.utc


def utc_now() -> datetime:
    """Return a tz-aware UTC timestamp."""
    return datetime.now(UTC)


def isoformat_z(value: datetime) -> str:
    """RFC3339-ish UTC string with a `Z` suffix."""
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def epoch_seconds_to_ms(value: float | int | None) -> int | None:
    """Gateway timestamps are epoch seconds; graph nodes carry milliseconds."""
    if value is None:
        return None
    try:
        return int(float(value) * 1000)
    except (OverflowError, ValueError):
        return None


def epoch_seconds_to_iso(value: float | int | None) -> str | None:
    if value is None:
        return None
    try:
        return isoformat_z(datetime.fromtimestamp(float(value), tz=UTC))
    except (OverflowError, ValueError, OSError):
        return None
