"""Local calendar-day identity for an instant."""

import math
from datetime import datetime, time, timezone, tzinfo

from studylane.domain.constants import SECONDS_PER_DAY


def ensure_aware(instant: datetime) -> datetime:
    """Read a naive instant as UTC; aware instants pass through."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


def _to_local(instant: datetime, tz: tzinfo | None) -> datetime:
    return ensure_aware(instant).astimezone(tz)


def start_of_local_day(instant: datetime, tz: tzinfo | None = None) -> datetime:
    """Midnight of the instant's calendar day in ``tz`` (process-local when None)."""
    local = _to_local(instant, tz)
    midnight = datetime.combine(local.date(), time.min)
    if tz is not None:
        return midnight.replace(tzinfo=tz)
    # Resolve the local offset at midnight itself, which differs across DST changes.
    return midnight.astimezone()


def to_local_day_stamp(instant: datetime, tz: tzinfo | None = None) -> str:
    """``YYYY-MM-DD`` of the instant's local calendar day."""
    return _to_local(instant, tz).date().isoformat()


def to_local_day_number(instant: datetime, tz: tzinfo | None = None) -> int:
    """Monotonic day ordinal used for bury-until comparisons."""
    return math.floor(start_of_local_day(instant, tz).timestamp() / SECONDS_PER_DAY)
