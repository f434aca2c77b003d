"""Legacy global review settings and their blend into deck options."""

from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Any

from studylane.domain.models import DEFAULT_DECK_STUDY_OPTIONS, DeckStudyOptions, ReviewSettings

from .coerce import to_int
from .deck_options import has_deck_study_options, resolve_deck_study_options

DEFAULT_REVIEW_SETTINGS = ReviewSettings()


def _to_sanitized_limit(value: Any, fallback: int) -> int:
    # Unlike deck options, a negative legacy limit clamps to 0 instead of defaulting.
    parsed = to_int(value, fallback)
    return max(parsed, 0)


def parse_review_settings(record: Mapping[str, Any] | None) -> ReviewSettings:
    record = record or {}
    defaults = DEFAULT_REVIEW_SETTINGS
    return ReviewSettings(
        daily_review_goal=_to_sanitized_limit(
            record.get("daily_review_goal"), defaults.daily_review_goal
        ),
        review_session_limit=_to_sanitized_limit(
            record.get("review_session_limit"), defaults.review_session_limit
        ),
        learn_session_limit=_to_sanitized_limit(
            record.get("learn_session_limit"), defaults.learn_session_limit
        ),
        learn_new_cards_per_session=_to_sanitized_limit(
            record.get("learn_new_cards_per_session"), defaults.learn_new_cards_per_session
        ),
    )


def parse_limit_input(value: str, fallback: int) -> int:
    """Parse a user-typed limit; blank, non-numeric or negative input keeps ``fallback``."""
    trimmed = value.strip()
    if not trimmed:
        return fallback
    try:
        parsed = int(trimmed)
    except ValueError:
        return fallback
    return fallback if parsed < 0 else parsed


def resolve_effective_study_options(
    option_records: Iterable[Mapping[str, Any]],
    settings_record: Mapping[str, Any] | None,
    deck_name: str | None,
) -> DeckStudyOptions:
    """
    Deck options in effect, falling back to legacy settings.

    When neither a deck nor a global options record exists, the daily limits
    come from the legacy review settings instead of hard defaults. A legacy
    limit of 0 (negative values are clamped to 0 on parse) means "not set"
    and keeps the deck default, since a deck limit of 0 reads as unlimited.
    """
    option_records = list(option_records)
    if has_deck_study_options(option_records, deck_name):
        return resolve_deck_study_options(option_records, deck_name)

    settings = parse_review_settings(settings_record)
    return replace(
        DEFAULT_DECK_STUDY_OPTIONS,
        new_per_day=settings.learn_new_cards_per_session
        or DEFAULT_DECK_STUDY_OPTIONS.new_per_day,
        review_per_day=settings.daily_review_goal or DEFAULT_DECK_STUDY_OPTIONS.review_per_day,
    )
