"""
Daily deck state: today's consumption counters for a deck scope.

A record is either FRESH (stamped with today's day) or STALE. Stale records
are replaced by a zeroed record on read; there is no scheduled reset.
"""

from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any

from studylane.domain.constants import GLOBAL_DECK_SCOPE
from studylane.domain.models import CustomStudyOptions, DailyDeckState, DayValidity

from .coerce import to_instant, to_int, to_non_negative_int, to_optional_trimmed_string
from .day import to_local_day_stamp
from .deck_options import normalize_deck_name, to_deck_scope


def create_empty_daily_deck_state(
    deck_name: str | None,
    now: datetime,
    day_stamp: str | None = None,
) -> DailyDeckState:
    return DailyDeckState(
        deck_name=normalize_deck_name(deck_name),
        day_stamp=day_stamp or to_local_day_stamp(now),
        last_reset_at=now,
    )


def _record_day_stamp(record: Mapping[str, Any] | DailyDeckState) -> str | None:
    if isinstance(record, DailyDeckState):
        return record.day_stamp
    return to_optional_trimmed_string(record.get("day_stamp"))


def classify_daily_state(
    record: Mapping[str, Any] | DailyDeckState | None,
    expected_day_stamp: str,
) -> DayValidity:
    """
    Decide whether a stored record still counts for the expected day.

    A record that carries no usable day stamp is taken to belong to the
    expected day; only a different stamp makes it stale.
    """
    if record is None:
        return DayValidity.STALE
    stamp = _record_day_stamp(record)
    if stamp is not None and stamp != expected_day_stamp:
        return DayValidity.STALE
    return DayValidity.FRESH


def _to_key_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(item) for item in value if isinstance(item, str) and item)


def parse_daily_deck_state(
    record: Mapping[str, Any] | None,
    deck_name: str | None,
    now: datetime,
    expected_day_stamp: str | None = None,
) -> DailyDeckState:
    """Parse a stored record, resetting it when it belongs to another day."""
    expected = expected_day_stamp or to_local_day_stamp(now)
    if classify_daily_state(record, expected) is DayValidity.STALE:
        return create_empty_daily_deck_state(deck_name, now, expected)

    return DailyDeckState(
        deck_name=normalize_deck_name(deck_name),
        day_stamp=expected,
        new_shown=to_non_negative_int(record.get("new_shown"), 0),
        review_shown=to_non_negative_int(record.get("review_shown"), 0),
        custom_new_delta=to_int(record.get("custom_new_delta"), 0),
        custom_review_delta=to_int(record.get("custom_review_delta"), 0),
        applied_custom_study=_to_key_tuple(record.get("applied_custom_study")),
        last_reset_at=to_instant(record.get("last_reset_at"), now),
    )


def ensure_daily_state_for_now(
    state: DailyDeckState, deck_name: str | None, now: datetime
) -> DailyDeckState:
    """Keep ``state`` if it is FRESH for ``now``'s day, else start a new day."""
    day_stamp = to_local_day_stamp(now)
    if classify_daily_state(state, day_stamp) is DayValidity.FRESH:
        return state
    return create_empty_daily_deck_state(deck_name, now, day_stamp)


def custom_study_key(custom_study: CustomStudyOptions) -> str:
    """Identity of a custom study's limit deltas, recorded once applied."""
    return f"new={custom_study.add_new_cards}&review={custom_study.add_review_cards}"


def has_applied_custom_study(
    state: DailyDeckState, custom_study: CustomStudyOptions | None
) -> bool:
    """
    True when the deltas of ``custom_study`` are already in today's limits.

    A custom study without limit deltas has nothing to add and counts as applied.
    """
    if custom_study is None or not custom_study.has_limit_deltas:
        return True
    return custom_study_key(custom_study) in state.applied_custom_study


def apply_custom_study_overrides(
    state: DailyDeckState, custom_study: CustomStudyOptions | None
) -> DailyDeckState:
    """
    Add custom-study deltas onto today's limits and record their key.

    Not idempotent: applying twice adds twice. Callers check
    ``has_applied_custom_study`` first when the state was loaded from storage.
    """
    if custom_study is None or not custom_study.has_limit_deltas:
        return state
    key = custom_study_key(custom_study)
    applied = state.applied_custom_study
    if key not in applied:
        applied = (*applied, key)
    return replace(
        state,
        custom_new_delta=state.custom_new_delta + custom_study.add_new_cards,
        custom_review_delta=state.custom_review_delta + custom_study.add_review_cards,
        applied_custom_study=applied,
    )


def with_lane_progress(state: DailyDeckState, *, new: int = 0, review: int = 0) -> DailyDeckState:
    return replace(
        state,
        new_shown=state.new_shown + new,
        review_shown=state.review_shown + review,
    )


def is_daily_state_record_for_deck(record: Mapping[str, Any], deck_name: str | None) -> bool:
    record_deck = to_optional_trimmed_string(record.get("deck_name"))
    target = normalize_deck_name(deck_name)
    if target is None:
        return record_deck is None or record_deck == GLOBAL_DECK_SCOPE
    return record_deck == target


def find_daily_state_record(
    records: list[Mapping[str, Any]], deck_name: str | None, day_stamp: str
) -> Mapping[str, Any] | None:
    """Pick today's record for a deck scope, else any record for that scope."""
    matching = [record for record in records if is_daily_state_record_for_deck(record, deck_name)]
    for record in matching:
        if _record_day_stamp(record) == day_stamp:
            return record
    return matching[0] if matching else None


def build_daily_state_record(
    record_id: str, owner_id: str, state: DailyDeckState, now: datetime
) -> dict[str, Any]:
    """Serialize a daily state for storage."""
    return {
        "id": record_id,
        "owner_id": owner_id,
        "deck_name": to_deck_scope(state.deck_name),
        "day_stamp": state.day_stamp,
        "new_shown": state.new_shown,
        "review_shown": state.review_shown,
        "custom_new_delta": state.custom_new_delta,
        "custom_review_delta": state.custom_review_delta,
        "applied_custom_study": list(state.applied_custom_study),
        "last_reset_at": state.last_reset_at.isoformat(),
        "updated_at": now.isoformat(),
    }
