"""
Study session state machine.

A session is ACTIVE while its queue has cards, WAITING while only a future
learning step remains, and COMPLETE otherwise. Every transition rebuilds
the queue from scratch and returns a new StudySessionState.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from studylane.domain.models import (
    NEW_BUDGET_LANES,
    REVIEW_BUDGET_LANES,
    Card,
    CustomStudyOptions,
    DailyDeckState,
    DeckStudyOptions,
    QueueEntry,
    SessionPhase,
    StudySessionState,
)

from .daily_state import (
    apply_custom_study_overrides,
    ensure_daily_state_for_now,
    with_lane_progress,
)
from .day import ensure_aware
from .deck_options import normalize_deck_name
from .queue_engine import compose_study_queue, get_next_pending_learning_due_at

logger = logging.getLogger(__name__)


def create_study_session_state(
    cards: Iterable[Card],
    now: datetime,
    options: DeckStudyOptions,
    daily_state: DailyDeckState,
    deck_name: str | None = None,
    custom_study: CustomStudyOptions | None = None,
    reviewed_count: int = 0,
    custom_study_applied: bool = False,
) -> StudySessionState:
    """
    Build a session for ``now``.

    The daily state is reset first if it belongs to another day. Custom
    study deltas are then added once, unless ``custom_study_applied`` says
    this session already did so.
    """
    cards = list(cards)
    deck_name = normalize_deck_name(deck_name)
    custom_study = custom_study or CustomStudyOptions()

    daily_state = ensure_daily_state_for_now(daily_state, deck_name, now)
    if not custom_study_applied:
        daily_state = apply_custom_study_overrides(daily_state, custom_study)

    queue_build = compose_study_queue(
        cards,
        now,
        options,
        daily_state,
        deck_name=deck_name,
        custom_study=custom_study,
    )

    return StudySessionState(
        deck_name=deck_name,
        options=options,
        custom_study=custom_study,
        daily_state=daily_state,
        queue=tuple(queue_build.entries),
        queue_build=queue_build,
        reviewed_count=reviewed_count,
        custom_study_applied=True,
        next_pending_learning_due_at=get_next_pending_learning_due_at(cards, now, deck_name),
    )


def _rebuild(
    state: StudySessionState,
    cards: Iterable[Card],
    now: datetime,
    daily_state: DailyDeckState,
    reviewed_count: int,
) -> StudySessionState:
    return create_study_session_state(
        cards,
        now,
        state.options,
        daily_state,
        deck_name=state.deck_name,
        custom_study=state.custom_study,
        reviewed_count=reviewed_count,
        custom_study_applied=state.custom_study_applied,
    )


def _find_entry(state: StudySessionState, card_id: str) -> QueueEntry | None:
    if state.queue and state.queue[0].card_id == card_id:
        return state.queue[0]
    return next((entry for entry in state.queue if entry.card_id == card_id), None)


def advance_study_session_state(
    state: StudySessionState,
    cards: Iterable[Card],
    current_card_id: str,
    now: datetime,
) -> StudySessionState:
    """
    Credit the graded card's lane against today's counters and rebuild.

    ``cards`` must already reflect the graded card's new scheduling state.
    A card id that is not queued credits no lane but still counts as reviewed.
    """
    entry = _find_entry(state, current_card_id)
    daily_state = state.daily_state

    if entry is None:
        logger.warning(f"Card {current_card_id} is not in the session queue; no lane credited")
    elif entry.lane in NEW_BUDGET_LANES:
        daily_state = with_lane_progress(daily_state, new=1)
    elif entry.lane in REVIEW_BUDGET_LANES:
        daily_state = with_lane_progress(daily_state, review=1)

    return _rebuild(state, cards, now, daily_state, state.reviewed_count + 1)


def refresh_study_session_state(
    state: StudySessionState, cards: Iterable[Card], now: datetime
) -> StudySessionState:
    """Rebuild with fresh cards and time, e.g. when a learning step comes due."""
    return _rebuild(state, cards, now, state.daily_state, state.reviewed_count)


def restart_study_session_state(
    state: StudySessionState, cards: Iterable[Card], now: datetime
) -> StudySessionState:
    """Start a new session on the same deck and options."""
    return _rebuild(state, cards, now, state.daily_state, 0)


def has_study_session_work(state: StudySessionState) -> bool:
    return bool(state.queue) or state.next_pending_learning_due_at is not None


def get_current_queue_entry(state: StudySessionState) -> QueueEntry | None:
    return state.queue[0] if state.queue else None


def get_study_session_phase(state: StudySessionState) -> SessionPhase:
    if state.queue:
        return SessionPhase.ACTIVE
    if state.next_pending_learning_due_at is not None:
        return SessionPhase.WAITING
    return SessionPhase.COMPLETE


def get_refresh_delay(state: StudySessionState, now: datetime) -> timedelta | None:
    """How long a caller should wait before refreshing, or None if no timer is needed."""
    if state.next_pending_learning_due_at is None:
        return None
    return max(state.next_pending_learning_due_at - ensure_aware(now), timedelta(0))
