"""
Study Service: application layer orchestrator.

Coordinates loading records from the repository, running the session
machine, scheduling graded cards and persisting the results.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from studylane.domain.exceptions import StudyLaneError
from studylane.domain.models import (
    Card,
    CustomStudyOptions,
    DailyDeckState,
    DeckStudyOptions,
    ReviewRating,
    StudyOverviewCounts,
    StudySessionState,
)
from studylane.domain.ports import StudyRepository

from .daily_state import (
    build_daily_state_record,
    find_daily_state_record,
    has_applied_custom_study,
    parse_daily_deck_state,
)
from .day import to_local_day_stamp
from .deck_options import normalize_deck_name
from .id_service import generate_record_id
from .scheduler import apply_review_update, schedule_review
from .session import (
    advance_study_session_state,
    create_study_session_state,
    get_current_queue_entry,
    refresh_study_session_state,
)
from .settings import resolve_effective_study_options
from .stats import get_study_overview_counts

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StudyService:
    """
    Application service for running study sessions against a store.

    Depends on the StudyRepository abstraction. Session states are returned
    to the caller, which must serialize calls for the same session.
    """

    def __init__(
        self,
        repo: StudyRepository,
        owner_id: str = "local",
        enable_fuzzing: bool = True,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Args:
            repo: The repository (port) for study records.
            owner_id: Owner written onto new daily state records.
            enable_fuzzing: Passed to the card scheduler.
            clock: Source of the current time; UTC wall clock by default.
        """
        self._repo = repo
        self._owner_id = owner_id
        self._enable_fuzzing = enable_fuzzing
        self._clock = clock or _utc_now

    async def resolve_options(self, deck_name: str | None) -> DeckStudyOptions:
        records = await self._repo.list_deck_option_records()
        settings = await self._repo.get_review_settings_record()
        return resolve_effective_study_options(records, settings, deck_name)

    async def load_daily_state(self, deck_name: str | None, now: datetime) -> DailyDeckState:
        day_stamp = to_local_day_stamp(now)
        records = await self._repo.list_daily_state_records()
        record = find_daily_state_record(records, deck_name, day_stamp)
        return parse_daily_deck_state(record, deck_name, now, day_stamp)

    async def save_daily_state(self, state: DailyDeckState, now: datetime) -> None:
        records = await self._repo.list_daily_state_records()
        existing = find_daily_state_record(records, state.deck_name, state.day_stamp)

        if existing and existing.get("day_stamp") == state.day_stamp and existing.get("id"):
            record_id = str(existing["id"])
        else:
            record_id = generate_record_id()
            logger.info(f"Starting daily record {record_id} for {state.day_stamp}")

        await self._repo.save_daily_state_record(
            build_daily_state_record(record_id, self._owner_id, state, now)
        )

    async def start_session(
        self,
        deck_name: str | None = None,
        custom_study: CustomStudyOptions | None = None,
        now: datetime | None = None,
    ) -> StudySessionState:
        """
        Load everything for a deck and build the first session state.

        Custom study deltas are added to today's record once; starting again
        with the same custom study the same day reuses the stored deltas.
        """
        now = now or self._clock()
        deck_name = normalize_deck_name(deck_name)

        cards = await self._repo.list_cards()
        options = await self.resolve_options(deck_name)
        daily_state = await self.load_daily_state(deck_name, now)

        state = create_study_session_state(
            cards,
            now,
            options,
            daily_state,
            deck_name=deck_name,
            custom_study=custom_study,
            custom_study_applied=has_applied_custom_study(daily_state, custom_study),
        )
        await self.save_daily_state(state.daily_state, now)

        logger.debug(
            f"Session for {deck_name or 'all decks'}: {len(state.queue)} queued, "
            f"remaining new={state.queue_build.remaining_new} "
            f"review={state.queue_build.remaining_review}"
        )
        return state

    async def grade_card(
        self,
        state: StudySessionState,
        card_id: str,
        rating: ReviewRating,
        now: datetime | None = None,
    ) -> tuple[StudySessionState, Card]:
        """
        Schedule a graded card, persist it, and advance the session.

        If saving the card fails the error propagates and ``state`` remains
        the valid current session.

        Returns:
            The advanced session state and the updated card.
        """
        now = now or self._clock()
        cards = await self._repo.list_cards()
        card = next((c for c in cards if c.id == card_id), None)
        if card is None:
            raise StudyLaneError(f"Card {card_id} does not exist")

        update = schedule_review(
            card, rating, now, state.options, enable_fuzzing=self._enable_fuzzing
        )
        updated = apply_review_update(card, update, now)
        await self._repo.save_card(updated)
        logger.info(
            f"Graded {card_id} {ReviewRating(rating).value}: "
            f"{card.review_state.value} -> {updated.review_state.value}, due {updated.due_at}"
        )

        cards = [updated if c.id == card_id else c for c in cards]
        next_state = advance_study_session_state(state, cards, card_id, now)
        await self.save_daily_state(next_state.daily_state, now)
        return next_state, updated

    async def grade_current(
        self,
        state: StudySessionState,
        rating: ReviewRating,
        now: datetime | None = None,
    ) -> tuple[StudySessionState, Card]:
        """Grade the card at the head of the queue."""
        entry = get_current_queue_entry(state)
        if entry is None:
            raise StudyLaneError("The study queue is empty")
        return await self.grade_card(state, entry.card_id, rating, now)

    async def refresh(
        self, state: StudySessionState, now: datetime | None = None
    ) -> StudySessionState:
        """Reload cards and rebuild, e.g. when a pending learning card is due."""
        now = now or self._clock()
        cards = await self._repo.list_cards()
        next_state = refresh_study_session_state(state, cards, now)
        if next_state.daily_state.day_stamp != state.daily_state.day_stamp:
            await self.save_daily_state(next_state.daily_state, now)
        return next_state

    async def overview(
        self, deck_name: str | None = None, now: datetime | None = None
    ) -> StudyOverviewCounts:
        now = now or self._clock()
        cards = await self._repo.list_cards()
        return get_study_overview_counts(cards, now, deck_name)
