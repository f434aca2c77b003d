"""
Resolution of effective per-deck study options.

Precedence: deck-specific record > global ("__all__") record > defaults.
Every field is parsed independently; a bad field falls back to its default.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from studylane.domain.constants import GLOBAL_DECK_SCOPE
from studylane.domain.models import (
    DEFAULT_DECK_STUDY_OPTIONS,
    DeckStudyOptions,
    NewCardOrder,
    ReviewCardOrder,
)

from .coerce import (
    to_bool,
    to_bounded_float,
    to_choice,
    to_finite_float,
    to_minute_steps,
    to_non_negative_int,
    to_optional_trimmed_string,
)


def normalize_deck_name(deck_name: Any) -> str | None:
    """Trim a deck name; blank or non-string means no deck."""
    return to_optional_trimmed_string(deck_name)


def to_deck_scope(deck_name: str | None) -> str:
    return normalize_deck_name(deck_name) or GLOBAL_DECK_SCOPE


def parse_deck_study_options(record: Mapping[str, Any] | None) -> DeckStudyOptions:
    defaults = DEFAULT_DECK_STUDY_OPTIONS
    if not record:
        return defaults

    return DeckStudyOptions(
        new_per_day=to_non_negative_int(record.get("new_per_day"), defaults.new_per_day),
        review_per_day=to_non_negative_int(record.get("review_per_day"), defaults.review_per_day),
        new_order=to_choice(record.get("new_order"), NewCardOrder, defaults.new_order),
        review_order=to_choice(record.get("review_order"), ReviewCardOrder, defaults.review_order),
        bury_siblings=to_bool(record.get("bury_siblings"), defaults.bury_siblings),
        learning_steps=to_minute_steps(record.get("learning_steps"), defaults.learning_steps),
        relearning_steps=to_minute_steps(
            record.get("relearning_steps"), defaults.relearning_steps
        ),
        max_interval=to_non_negative_int(record.get("max_interval"), defaults.max_interval),
        desired_retention=to_bounded_float(
            record.get("desired_retention"), defaults.desired_retention, 0.0, 1.0
        ),
        easy_bonus=to_finite_float(record.get("easy_bonus"), defaults.easy_bonus),
        interval_modifier=to_finite_float(
            record.get("interval_modifier"), defaults.interval_modifier
        ),
    )


def _record_scope(record: Mapping[str, Any]) -> str | None:
    return to_optional_trimmed_string(record.get("deck_name"))


def _find_record(
    records: Iterable[Mapping[str, Any]], scope: str | None
) -> Mapping[str, Any] | None:
    return next((record for record in records if _record_scope(record) == scope), None)


def resolve_deck_study_options(
    records: Iterable[Mapping[str, Any]], deck_name: str | None
) -> DeckStudyOptions:
    """
    Resolve the options in effect for a deck.

    Args:
        records: Raw option records, possibly including the global one.
        deck_name: Target deck; None resolves the all-decks scope.
    """
    records = list(records)
    deck_record = _find_record(records, normalize_deck_name(deck_name))
    if deck_record is not None:
        return parse_deck_study_options(deck_record)

    return parse_deck_study_options(_find_record(records, GLOBAL_DECK_SCOPE))


def has_deck_study_options(records: Iterable[Mapping[str, Any]], deck_name: str | None) -> bool:
    """True if a deck-specific or global record exists."""
    target = normalize_deck_name(deck_name)
    return any(_record_scope(record) in (target, GLOBAL_DECK_SCOPE) for record in records)
