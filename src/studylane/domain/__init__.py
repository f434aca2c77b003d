# Domain Package
from .exceptions import SchedulerConfigError, StoreError, StudyLaneError
from .models import (
    DEFAULT_DECK_STUDY_OPTIONS,
    LANE_PRIORITY,
    Card,
    CustomStudyOptions,
    DailyDeckState,
    DayValidity,
    DeckStudyOptions,
    EasyStreakState,
    NewCardOrder,
    QueueBuildResult,
    QueueEntry,
    ReviewCardOrder,
    ReviewRating,
    ReviewSettings,
    ReviewState,
    ReviewUpdate,
    SessionPhase,
    StudyLane,
    StudyOverviewCounts,
    StudySessionState,
)
from .ports import StudyRepository

__all__ = [
    "DEFAULT_DECK_STUDY_OPTIONS",
    "LANE_PRIORITY",
    "Card",
    "CustomStudyOptions",
    "DailyDeckState",
    "DayValidity",
    "DeckStudyOptions",
    "EasyStreakState",
    "NewCardOrder",
    "QueueBuildResult",
    "QueueEntry",
    "ReviewCardOrder",
    "ReviewRating",
    "ReviewSettings",
    "ReviewState",
    "ReviewUpdate",
    "SessionPhase",
    "StudyLane",
    "StudyOverviewCounts",
    "StudySessionState",
    "StudyRepository",
    "StudyLaneError",
    "SchedulerConfigError",
    "StoreError",
]
