# Application Stats Package
from .easy_streak import advance_easy_streak, create_initial_easy_streak_state
from .overview import get_study_overview_counts

__all__ = ["get_study_overview_counts", "create_initial_easy_streak_state", "advance_easy_streak"]
