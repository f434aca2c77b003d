"""
Coerce-with-fallback helpers for untrusted configuration.

Every helper is total: a value that is absent, of the wrong type, or out of
range yields the fallback instead of raising. Booleans are never accepted
as numbers.
"""

import math
from collections.abc import Sequence
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar
from urllib.parse import unquote

E = TypeVar("E", bound=Enum)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_optional_trimmed_string(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def to_int(value: Any, fallback: int) -> int:
    """Floor a finite number to int."""
    if not _is_number(value) or not math.isfinite(value):
        return fallback
    return math.floor(value)


def to_non_negative_int(value: Any, fallback: int) -> int:
    parsed = to_int(value, fallback)
    return fallback if parsed < 0 else parsed


def to_finite_float(value: Any, fallback: float) -> float:
    if not _is_number(value) or not math.isfinite(value):
        return fallback
    return float(value)


def to_bounded_float(value: Any, fallback: float, low: float, high: float) -> float:
    """Accept a float strictly inside (low, high)."""
    parsed = to_finite_float(value, fallback)
    return parsed if low < parsed < high else fallback


def to_bool(value: Any, fallback: bool) -> bool:
    return value if isinstance(value, bool) else fallback


def to_choice(value: Any, enum_cls: type[E], fallback: E) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return fallback


def to_minute_steps(value: Any, fallback: tuple[int, ...]) -> tuple[int, ...]:
    """Parse a list of step lengths in minutes, keeping positive entries only."""
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        return fallback
    steps = tuple(
        math.floor(item) for item in value if _is_number(item) and math.isfinite(item)
    )
    steps = tuple(step for step in steps if step > 0)
    return steps or fallback


def to_instant(value: Any, fallback: datetime | None = None) -> datetime | None:
    """
    Parse an instant.

    Accepts datetimes (naive ones are read as UTC), ISO-8601 strings and
    epoch milliseconds.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return fallback
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    if _is_number(value) and math.isfinite(value):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return fallback
    return fallback


def parse_positive_int(value: Any) -> int:
    """Parse a query-style parameter as a positive int, else 0."""
    if isinstance(value, list):
        value = value[0] if value else None
    if _is_number(value):
        parsed = to_int(value, 0)
    elif isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return 0
    else:
        return 0
    return parsed if parsed > 0 else 0


def parse_flag(value: Any) -> bool:
    """Query-style boolean: only "1" and "true" switch a flag on."""
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return False
    return value.strip().lower() in ("1", "true")


def parse_deck_param(value: Any) -> str | None:
    """Percent-decode and trim a deck name parameter."""
    if isinstance(value, list):
        value = value[0] if value else None
    if not isinstance(value, str):
        return None
    return to_optional_trimmed_string(unquote(value))
