"""Centralized constants for the studylane engine.

All defaults and reserved tokens live here so every layer
imports from a single source of truth.
"""

# ---------- Deck scope ----------
GLOBAL_DECK_SCOPE = "__all__"

# ---------- Day boundary ----------
SECONDS_PER_DAY = 86_400
DAY_MS = SECONDS_PER_DAY * 1000

# ---------- Deck study options ----------
DEFAULT_NEW_PER_DAY = 20
DEFAULT_REVIEW_PER_DAY = 200
DEFAULT_LEARNING_STEPS = (1, 10)  # minutes
DEFAULT_RELEARNING_STEPS = (10,)  # minutes
DEFAULT_MAX_INTERVAL = 36500  # days
DEFAULT_DESIRED_RETENTION = 0.9
DEFAULT_EASY_BONUS = 1.3
DEFAULT_INTERVAL_MODIFIER = 1.0

# ---------- Legacy review settings ----------
DEFAULT_DAILY_REVIEW_GOAL = 200
DEFAULT_REVIEW_SESSION_LIMIT = 100
DEFAULT_LEARN_SESSION_LIMIT = 40
DEFAULT_LEARN_NEW_CARDS_PER_SESSION = 20

# ---------- Queue ----------
UNLIMITED_REMAINING = -1  # sentinel reported for an unconstrained budget
