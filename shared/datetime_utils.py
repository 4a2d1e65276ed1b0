"""
Date/time helpers: every timestamp in the service is timezone-aware UTC.

MongoDB returns naive datetimes unless the client is created with
``tz_aware=True``; ``ensure_utc`` normalises both shapes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as aware UTC; naive datetimes are assumed to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_epoch_seconds(value: datetime) -> int:
    """Whole seconds since the Unix epoch (token expiry granularity)."""
    return int(ensure_utc(value).timestamp())
