"""Consecutive "easy" grades within a session."""

from studylane.domain.models import EasyStreakState, ReviewRating


def create_initial_easy_streak_state() -> EasyStreakState:
    return EasyStreakState()


def advance_easy_streak(state: EasyStreakState, rating: ReviewRating) -> EasyStreakState:
    if rating != ReviewRating.EASY:
        return EasyStreakState(current=0, best=state.best, total_easy=state.total_easy)

    current = state.current + 1
    return EasyStreakState(
        current=current,
        best=max(state.best, current),
        total_easy=state.total_easy + 1,
    )
