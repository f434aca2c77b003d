"""
Queue composition for daily study sessions.

Builds ordered study queues by:
1. Filtering cards to the deck scope, dropping suspended and buried cards
2. Partitioning the rest into lanes, each sorted independently
3. Admitting lane candidates in priority order under the daily budgets,
   burying siblings of admitted non-learning cards
"""

import math
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime

from studylane.domain.constants import UNLIMITED_REMAINING
from studylane.domain.models import (
    LANE_PRIORITY,
    NEW_BUDGET_LANES,
    REVIEW_BUDGET_LANES,
    Card,
    CustomStudyOptions,
    DailyDeckState,
    DeckStudyOptions,
    NewCardOrder,
    QueueBuildResult,
    QueueEntry,
    ReviewCardOrder,
    ReviewState,
    StudyLane,
)

from .day import ensure_aware, start_of_local_day, to_local_day_number, to_local_day_stamp
from .deck_options import normalize_deck_name

NO_LIMIT = math.inf


def hash_string(value: str) -> int:
    """32-bit signed rolling hash (h * 31 + c), used for day-stable shuffles."""
    h = 0
    for char in value:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def _due_key(card: Card) -> tuple:
    return (card.due_at, card.updated_at, card.created_at)


def _created_key(card: Card) -> tuple:
    return (card.created_at, card.updated_at)


def _random_key(salt: str) -> Callable[[Card], tuple]:
    def key(card: Card) -> tuple:
        return (hash_string(f"{salt}:{card.id}"), *_created_key(card))

    return key


def _forgotten_key(card: Card) -> tuple:
    # Most lapses first, then due order.
    return (-card.lapses, *_due_key(card))


def with_aware_instants(card: Card) -> Card:
    """Card with naive due/created/updated instants read as UTC."""
    if all(
        instant.tzinfo is not None
        for instant in (card.due_at, card.created_at, card.updated_at)
    ):
        return card
    return replace(
        card,
        due_at=ensure_aware(card.due_at),
        created_at=ensure_aware(card.created_at),
        updated_at=ensure_aware(card.updated_at),
    )


def is_in_deck(card: Card, deck_name: str | None) -> bool:
    if deck_name is None:
        return True
    return (card.deck_name or "").strip() == deck_name


def is_buried_today(card: Card, local_day_number: int) -> bool:
    return card.buried_until_day is not None and card.buried_until_day >= local_day_number


def filter_eligible_cards(
    cards: Iterable[Card], deck_name: str | None, now: datetime
) -> list[Card]:
    """Cards in scope that are neither suspended nor buried today."""
    day_number = to_local_day_number(now)
    return [
        with_aware_instants(card)
        for card in cards
        if is_in_deck(card, deck_name)
        and not card.is_suspended
        and not is_buried_today(card, day_number)
    ]


def _sort_review(cards: list[Card], options: DeckStudyOptions, salt: str) -> list[Card]:
    if options.review_order == ReviewCardOrder.RANDOM:
        return sorted(cards, key=_random_key(salt))
    return sorted(cards, key=_due_key)


def _sort_new(cards: list[Card], options: DeckStudyOptions, salt: str) -> list[Card]:
    if options.new_order == NewCardOrder.RANDOM:
        return sorted(cards, key=_random_key(salt))
    return sorted(cards, key=_created_key)


def _initial_budget(per_day: int, delta: int, shown: int) -> float:
    if per_day <= 0:
        return NO_LIMIT
    return max(per_day + delta - shown, 0)


def _report_budget(remaining: float) -> int:
    return UNLIMITED_REMAINING if math.isinf(remaining) else int(remaining)


def build_lane_candidates(
    eligible: list[Card],
    now: datetime,
    options: DeckStudyOptions,
    custom_study: CustomStudyOptions,
) -> dict[StudyLane, list[Card]]:
    """Partition eligible cards into sorted candidate lists per lane."""
    now = ensure_aware(now)
    day_start = start_of_local_day(now)
    day_stamp = to_local_day_stamp(now)

    due_learning = [card for card in eligible if card.is_learning and card.due_at <= now]

    lanes: dict[StudyLane, list[Card]] = {
        StudyLane.LEARNING_INTRADAY: sorted(
            (card for card in due_learning if card.due_at >= day_start), key=_due_key
        ),
        StudyLane.LEARNING_INTERDAY: sorted(
            (card for card in due_learning if card.due_at < day_start), key=_due_key
        ),
        StudyLane.REVIEW: _sort_review(
            [c for c in eligible if c.review_state == ReviewState.REVIEW and c.due_at <= now],
            options,
            f"{day_stamp}:review",
        ),
        StudyLane.NEW: _sort_new(
            [c for c in eligible if c.review_state == ReviewState.NEW],
            options,
            f"{day_stamp}:new",
        ),
        StudyLane.FORGOTTEN: [],
        StudyLane.AHEAD: [],
    }

    if custom_study.include_forgotten:
        lanes[StudyLane.FORGOTTEN] = sorted(
            (
                card
                for card in eligible
                if card.review_state != ReviewState.NEW
                and card.lapses > 0
                and not card.is_learning
            ),
            key=_forgotten_key,
        )

    if custom_study.include_review_ahead:
        lanes[StudyLane.AHEAD] = _sort_review(
            [c for c in eligible if c.review_state == ReviewState.REVIEW and c.due_at > now],
            options,
            f"{day_stamp}:ahead",
        )

    return lanes


def compose_study_queue(
    cards: Iterable[Card],
    now: datetime,
    options: DeckStudyOptions,
    daily_state: DailyDeckState,
    deck_name: str | None = None,
    custom_study: CustomStudyOptions | None = None,
) -> QueueBuildResult:
    """
    Compose the ordered, lane-tagged queue of cards to study right now.

    Args:
        cards: Every card the user owns; scope filtering happens here.
        now: Current instant; also fixes the local day for budgets and shuffles.
        options: Resolved deck options (limits <= 0 are unlimited).
        daily_state: Counters already consumed today plus custom deltas.
        deck_name: Deck scope, or None for all decks.
        custom_study: Enables the forgotten and ahead lanes.

    Returns:
        QueueBuildResult with admitted entries and per-lane diagnostics.
    """
    now = ensure_aware(now)
    custom_study = custom_study or CustomStudyOptions()
    eligible = filter_eligible_cards(cards, normalize_deck_name(deck_name), now)
    lanes = build_lane_candidates(eligible, now, options, custom_study)

    remaining_new = _initial_budget(
        options.new_per_day, daily_state.custom_new_delta, daily_state.new_shown
    )
    remaining_review = _initial_budget(
        options.review_per_day, daily_state.custom_review_delta, daily_state.review_shown
    )

    result = QueueBuildResult()
    admitted_ids: set[str] = set()
    buried_note_ids: set[str] = set()

    for lane in LANE_PRIORITY:
        candidates = lanes[lane]
        result.available_by_lane[lane] = len(candidates)

        for card in candidates:
            if card.id in admitted_ids:
                continue

            # Sibling burying never applies to learning cards.
            bury = options.bury_siblings and not card.is_learning
            if bury and card.note_id in buried_note_ids:
                continue

            if lane in NEW_BUDGET_LANES:
                if remaining_new <= 0:
                    result.new_limit_exhausted = True
                    continue
                remaining_new -= 1
            elif lane in REVIEW_BUDGET_LANES:
                if remaining_review <= 0:
                    result.review_limit_exhausted = True
                    continue
                remaining_review -= 1

            admitted_ids.add(card.id)
            result.selected_by_lane[lane] += 1
            result.entries.append(QueueEntry(card_id=card.id, lane=lane))
            if bury:
                buried_note_ids.add(card.note_id)

    result.remaining_new = _report_budget(remaining_new)
    result.remaining_review = _report_budget(remaining_review)
    return result


def get_next_pending_learning_due_at(
    cards: Iterable[Card], now: datetime, deck_name: str | None = None
) -> datetime | None:
    """Earliest due instant among eligible learning cards not yet due."""
    now = ensure_aware(now)
    pending = [
        card.due_at
        for card in filter_eligible_cards(cards, normalize_deck_name(deck_name), now)
        if card.is_learning and card.due_at > now
    ]
    return min(pending, default=None)
