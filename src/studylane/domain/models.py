"""
Domain models for study scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .constants import (
    DEFAULT_DAILY_REVIEW_GOAL,
    DEFAULT_DESIRED_RETENTION,
    DEFAULT_EASY_BONUS,
    DEFAULT_INTERVAL_MODIFIER,
    DEFAULT_LEARN_NEW_CARDS_PER_SESSION,
    DEFAULT_LEARN_SESSION_LIMIT,
    DEFAULT_LEARNING_STEPS,
    DEFAULT_MAX_INTERVAL,
    DEFAULT_NEW_PER_DAY,
    DEFAULT_RELEARNING_STEPS,
    DEFAULT_REVIEW_PER_DAY,
    DEFAULT_REVIEW_SESSION_LIMIT,
)


class ReviewState(str, Enum):
    """Memory-model lifecycle stage of a card."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"

    @property
    def is_learning(self) -> bool:
        return self in (ReviewState.LEARNING, ReviewState.RELEARNING)


class ReviewRating(str, Enum):
    """Grade given by the learner (1=Again ... 4=Easy)."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


class StudyLane(str, Enum):
    LEARNING_INTRADAY = "learning_intraday"
    LEARNING_INTERDAY = "learning_interday"
    REVIEW = "review"
    NEW = "new"
    FORGOTTEN = "forgotten"
    AHEAD = "ahead"


# Admission order used when composing a queue.
LANE_PRIORITY: tuple[StudyLane, ...] = (
    StudyLane.LEARNING_INTRADAY,
    StudyLane.LEARNING_INTERDAY,
    StudyLane.FORGOTTEN,
    StudyLane.REVIEW,
    StudyLane.AHEAD,
    StudyLane.NEW,
)

REVIEW_BUDGET_LANES = frozenset({StudyLane.REVIEW, StudyLane.FORGOTTEN, StudyLane.AHEAD})
NEW_BUDGET_LANES = frozenset({StudyLane.NEW})


class NewCardOrder(str, Enum):
    INSERTION = "insertion"
    RANDOM = "random"


class ReviewCardOrder(str, Enum):
    DUE = "due"
    RANDOM = "random"


class DayValidity(str, Enum):
    """Whether a daily counter record belongs to the current calendar day."""

    FRESH = "fresh"
    STALE = "stale"


class SessionPhase(str, Enum):
    ACTIVE = "active"  # queue has a card to present
    WAITING = "waiting"  # queue empty, a learning card becomes due later
    COMPLETE = "complete"


@dataclass(frozen=True)
class Card:
    """
    A single flashcard and its scheduling state.

    Attributes:
        id: Opaque unique identifier.
        note_id: Groups sibling cards for burying.
        deck_name: Owning deck; None means unassigned.
        buried_until_day: Local day number; hidden while today <= this value.
        due_at: Next instant the card may be shown.
        learning_steps: Index of the current (re)learning step.
    """

    id: str
    note_id: str
    created_at: datetime
    updated_at: datetime
    due_at: datetime
    review_state: ReviewState = ReviewState.NEW
    deck_name: str | None = None
    is_suspended: bool = False
    buried_until_day: int | None = None
    stability: float | None = None
    difficulty: float | None = None
    elapsed_days: float | None = None
    scheduled_days: float | None = None
    learning_steps: int = 0
    reps: int = 0
    lapses: int = 0
    last_review_at: datetime | None = None

    # Content (for display purposes)
    front: str | None = None
    back: str | None = None

    @property
    def is_learning(self) -> bool:
        return self.review_state.is_learning


@dataclass(frozen=True)
class ReviewUpdate:
    """The subset of card fields written back after a grade."""

    review_state: ReviewState
    due_at: datetime
    stability: float | None
    difficulty: float | None
    elapsed_days: float | None
    scheduled_days: float | None
    learning_steps: int
    reps: int
    lapses: int
    last_review_at: datetime | None


@dataclass(frozen=True)
class DeckStudyOptions:
    """Effective per-deck limits and ordering policy. Limits <= 0 mean unlimited."""

    new_per_day: int = DEFAULT_NEW_PER_DAY
    review_per_day: int = DEFAULT_REVIEW_PER_DAY
    new_order: NewCardOrder = NewCardOrder.INSERTION
    review_order: ReviewCardOrder = ReviewCardOrder.DUE
    bury_siblings: bool = True
    learning_steps: tuple[int, ...] = DEFAULT_LEARNING_STEPS  # minutes
    relearning_steps: tuple[int, ...] = DEFAULT_RELEARNING_STEPS  # minutes
    max_interval: int = DEFAULT_MAX_INTERVAL  # days
    desired_retention: float = DEFAULT_DESIRED_RETENTION
    easy_bonus: float = DEFAULT_EASY_BONUS
    interval_modifier: float = DEFAULT_INTERVAL_MODIFIER


DEFAULT_DECK_STUDY_OPTIONS = DeckStudyOptions()


@dataclass(frozen=True)
class DailyDeckState:
    """Per-(owner, deck scope, day) consumption counters."""

    day_stamp: str
    last_reset_at: datetime
    deck_name: str | None = None
    new_shown: int = 0
    review_shown: int = 0
    custom_new_delta: int = 0
    custom_review_delta: int = 0
    # Custom study delta keys already added today, see custom_study_key.
    applied_custom_study: tuple[str, ...] = ()


@dataclass(frozen=True)
class CustomStudyOptions:
    """Session-local relaxation of today's limits and extra lanes."""

    add_new_cards: int = 0
    add_review_cards: int = 0
    include_forgotten: bool = False
    include_review_ahead: bool = False

    @property
    def has_limit_deltas(self) -> bool:
        return self.add_new_cards != 0 or self.add_review_cards != 0


@dataclass(frozen=True)
class QueueEntry:
    card_id: str
    lane: StudyLane


def _lane_counts() -> dict[StudyLane, int]:
    return {lane: 0 for lane in StudyLane}


@dataclass
class QueueBuildResult:
    """Result of a queue composition pass."""

    entries: list[QueueEntry] = field(default_factory=list)
    available_by_lane: dict[StudyLane, int] = field(default_factory=_lane_counts)
    selected_by_lane: dict[StudyLane, int] = field(default_factory=_lane_counts)
    new_limit_exhausted: bool = False
    review_limit_exhausted: bool = False
    remaining_new: int = 0  # -1 when unlimited
    remaining_review: int = 0  # -1 when unlimited


@dataclass(frozen=True)
class StudySessionState:
    """
    Live study session. Every transition returns a new instance.

    Attributes:
        queue: Ordered entries still to present; the head is the current card.
        queue_build: Diagnostics from the most recent composition.
        custom_study_applied: True once custom deltas were added to daily_state.
        next_pending_learning_due_at: Earliest future learning due instant.
    """

    options: DeckStudyOptions
    custom_study: CustomStudyOptions
    daily_state: DailyDeckState
    queue: tuple[QueueEntry, ...]
    queue_build: QueueBuildResult
    deck_name: str | None = None
    reviewed_count: int = 0
    custom_study_applied: bool = False
    next_pending_learning_due_at: datetime | None = None


@dataclass(frozen=True)
class ReviewSettings:
    """Legacy global session-limit settings."""

    daily_review_goal: int = DEFAULT_DAILY_REVIEW_GOAL
    review_session_limit: int = DEFAULT_REVIEW_SESSION_LIMIT
    learn_session_limit: int = DEFAULT_LEARN_SESSION_LIMIT
    learn_new_cards_per_session: int = DEFAULT_LEARN_NEW_CARDS_PER_SESSION


@dataclass
class StudyOverviewCounts:
    new_count: int = 0
    learning_count: int = 0
    review_due_count: int = 0


@dataclass(frozen=True)
class EasyStreakState:
    current: int = 0
    best: int = 0
    total_easy: int = 0
