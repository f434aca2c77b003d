import time
from datetime import datetime, timedelta, timezone

import pytest

from studylane.domain.models import Card, DailyDeckState, ReviewState

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def utc_local_time(monkeypatch):
    """Pin the process-local timezone so day boundaries are deterministic."""
    monkeypatch.setenv("TZ", "UTC")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_card():
    """Factory for cards; unspecified fields get sensible defaults around NOW."""

    def _make(card_id: str, **kwargs) -> Card:
        created_at = kwargs.pop("created_at", NOW - timedelta(days=10))
        kwargs.setdefault("note_id", f"note-{card_id}")
        kwargs.setdefault("updated_at", created_at)
        kwargs.setdefault("due_at", created_at)
        kwargs.setdefault("review_state", ReviewState.NEW)
        return Card(id=card_id, created_at=created_at, **kwargs)

    return _make


@pytest.fixture
def daily_state():
    return DailyDeckState(day_stamp="2024-03-15", last_reset_at=NOW)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    return home
