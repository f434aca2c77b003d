"""
Study overview counts for deck lists.

This is a pure computation module with no I/O.
"""

from collections.abc import Iterable
from datetime import datetime

from studylane.application.deck_options import normalize_deck_name
from studylane.application.queue_engine import filter_eligible_cards
from studylane.domain.models import Card, ReviewState, StudyOverviewCounts


def get_study_overview_counts(
    cards: Iterable[Card], now: datetime, deck_name: str | None = None
) -> StudyOverviewCounts:
    """
    Count new cards, learning cards due now and review cards due now.

    Daily limits are not applied; these are raw availability figures.
    """
    counts = StudyOverviewCounts()

    for card in filter_eligible_cards(cards, normalize_deck_name(deck_name), now):
        if card.review_state == ReviewState.NEW:
            counts.new_count += 1
        elif card.is_learning:
            if card.due_at <= now:
                counts.learning_count += 1
        elif card.due_at <= now:
            counts.review_due_count += 1

    return counts
