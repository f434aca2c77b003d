"""
Card scheduler: adapts the FSRS memory model to studylane cards.

The memory model itself is py-fsrs. This module only maps review states and
ratings onto it, builds step durations from minute counts, and caches
configured scheduler instances.
"""

import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from fsrs import Card as FsrsCard
from fsrs import Rating, Scheduler, State

from studylane.domain.constants import (
    DEFAULT_LEARNING_STEPS,
    DEFAULT_MAX_INTERVAL,
    DEFAULT_RELEARNING_STEPS,
    SECONDS_PER_DAY,
)
from studylane.domain.exceptions import SchedulerConfigError
from studylane.domain.models import (
    DEFAULT_DECK_STUDY_OPTIONS,
    Card,
    DeckStudyOptions,
    ReviewRating,
    ReviewState,
    ReviewUpdate,
)

logger = logging.getLogger(__name__)

_RATING_TO_FSRS = {
    ReviewRating.AGAIN: Rating.Again,
    ReviewRating.HARD: Rating.Hard,
    ReviewRating.GOOD: Rating.Good,
    ReviewRating.EASY: Rating.Easy,
}

_STATE_FROM_FSRS = {
    State.Learning: ReviewState.LEARNING,
    State.Review: ReviewState.REVIEW,
    State.Relearning: ReviewState.RELEARNING,
}


def _to_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def _to_step_durations(steps: tuple[int, ...]) -> tuple[timedelta, ...]:
    return tuple(
        timedelta(minutes=math.floor(step))
        for step in steps
        if isinstance(step, (int, float)) and math.isfinite(step) and step > 0
    )


@lru_cache(maxsize=32)
def _get_scheduler(
    learning_steps: tuple[int, ...],
    relearning_steps: tuple[int, ...],
    desired_retention: float,
    max_interval: int,
    enable_fuzzing: bool,
) -> Scheduler:
    try:
        learning = _to_step_durations(learning_steps) or _to_step_durations(
            DEFAULT_LEARNING_STEPS
        )
        relearning = _to_step_durations(relearning_steps) or _to_step_durations(
            DEFAULT_RELEARNING_STEPS
        )
        scheduler = Scheduler(
            desired_retention=desired_retention,
            learning_steps=learning,
            relearning_steps=relearning,
            maximum_interval=max_interval if max_interval > 0 else DEFAULT_MAX_INTERVAL,
            enable_fuzzing=enable_fuzzing,
        )
    except (ValueError, TypeError, OverflowError) as e:
        raise SchedulerConfigError(f"Invalid scheduler configuration: {e}") from e

    logger.debug(
        f"Built FSRS scheduler (learning={learning_steps}, "
        f"relearning={relearning_steps}, retention={desired_retention})"
    )
    return scheduler


def get_scheduler(options: DeckStudyOptions, enable_fuzzing: bool = True) -> Scheduler:
    """Return the cached scheduler for this configuration."""
    return _get_scheduler(
        tuple(options.learning_steps),
        tuple(options.relearning_steps),
        options.desired_retention,
        options.max_interval,
        enable_fuzzing,
    )


def _build_fsrs_card(card: Card) -> FsrsCard:
    has_memory = card.stability is not None and card.difficulty is not None
    last_review = _to_utc(card.last_review_at) if card.last_review_at else None

    if card.review_state == ReviewState.NEW or not has_memory:
        return FsrsCard(card_id=0, state=State.Learning, step=0, due=_to_utc(card.due_at))

    if card.review_state == ReviewState.REVIEW:
        state, step = State.Review, None
    elif card.review_state == ReviewState.RELEARNING:
        state, step = State.Relearning, max(card.learning_steps, 0)
    else:
        state, step = State.Learning, max(card.learning_steps, 0)

    return FsrsCard(
        card_id=0,
        state=state,
        step=step,
        stability=card.stability,
        difficulty=card.difficulty,
        due=_to_utc(card.due_at),
        last_review=last_review,
    )


def create_initial_review_meta(now: datetime) -> ReviewUpdate:
    """Zero scheduling state for a newly created card."""
    return ReviewUpdate(
        review_state=ReviewState.NEW,
        due_at=now,
        stability=None,
        difficulty=None,
        elapsed_days=0,
        scheduled_days=0,
        learning_steps=0,
        reps=0,
        lapses=0,
        last_review_at=None,
    )


def schedule_review(
    card: Card,
    rating: ReviewRating,
    now: datetime,
    options: DeckStudyOptions = DEFAULT_DECK_STUDY_OPTIONS,
    enable_fuzzing: bool = True,
) -> ReviewUpdate:
    """
    Compute a card's next memory state after a grade.

    Args:
        card: The card as currently persisted.
        rating: The learner's grade.
        now: Review instant.
        options: Supplies (re)learning steps, desired retention and max interval.
        enable_fuzzing: Randomize review intervals slightly (py-fsrs fuzz).

    Returns:
        ReviewUpdate with the fields to write back onto the card.

    Raises:
        SchedulerConfigError: If the memory model rejects the configuration.
    """
    review_time = _to_utc(now)
    scheduler = get_scheduler(options, enable_fuzzing=enable_fuzzing)
    fsrs_card = _build_fsrs_card(card)
    lapsed = fsrs_card.state == State.Review and rating == ReviewRating.AGAIN
    next_card, _ = scheduler.review_card(
        fsrs_card, _RATING_TO_FSRS[ReviewRating(rating)], review_time
    )

    elapsed_days = 0.0
    if card.last_review_at is not None:
        elapsed = review_time - _to_utc(card.last_review_at)
        elapsed_days = max(elapsed.total_seconds() / SECONDS_PER_DAY, 0.0)

    return ReviewUpdate(
        review_state=_STATE_FROM_FSRS[next_card.state],
        due_at=next_card.due,
        stability=next_card.stability,
        difficulty=next_card.difficulty,
        elapsed_days=elapsed_days,
        scheduled_days=(next_card.due - review_time).total_seconds() / SECONDS_PER_DAY,
        learning_steps=next_card.step or 0,
        reps=card.reps + 1,
        lapses=card.lapses + (1 if lapsed else 0),
        last_review_at=next_card.last_review or review_time,
    )


def apply_review_update(card: Card, update: ReviewUpdate, now: datetime) -> Card:
    """Return the card with a scheduling update written onto it."""
    return replace(
        card,
        review_state=update.review_state,
        due_at=update.due_at,
        stability=update.stability,
        difficulty=update.difficulty,
        elapsed_days=update.elapsed_days,
        scheduled_days=update.scheduled_days,
        learning_steps=update.learning_steps,
        reps=update.reps,
        lapses=update.lapses,
        last_review_at=update.last_review_at,
        updated_at=now,
    )
