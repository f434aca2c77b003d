from dataclasses import replace
from datetime import timedelta

import pytest

from studylane.application.session import (
    advance_study_session_state,
    create_study_session_state,
    get_current_queue_entry,
    get_refresh_delay,
    get_study_session_phase,
    has_study_session_work,
    refresh_study_session_state,
    restart_study_session_state,
)
from studylane.domain.models import (
    CustomStudyOptions,
    DeckStudyOptions,
    QueueEntry,
    ReviewState,
    SessionPhase,
    StudyLane,
)

OPTIONS = DeckStudyOptions(new_per_day=20, review_per_day=20)


@pytest.fixture
def review_and_new(make_card, now):
    return [
        make_card("rev", review_state=ReviewState.REVIEW, due_at=now, stability=5.0),
        make_card("new"),
    ]


def _replace_card(cards, card_id, **changes):
    return [replace(card, **changes) if card.id == card_id else card for card in cards]


def _graduate(cards, card_id, now):
    return _replace_card(
        cards, card_id, review_state=ReviewState.REVIEW, due_at=now + timedelta(days=1)
    )


class TestLaneCredit:
    def test_grading_credits_each_lane_once(self, review_and_new, now, daily_state):
        state = create_study_session_state(review_and_new, now, OPTIONS, daily_state)
        assert get_current_queue_entry(state) == QueueEntry("rev", StudyLane.REVIEW)

        cards = _replace_card(review_and_new, "rev", due_at=now + timedelta(days=4))
        state = advance_study_session_state(state, cards, "rev", now)

        assert state.daily_state.review_shown == 1
        assert state.daily_state.new_shown == 0
        assert [entry.card_id for entry in state.queue] == ["new"]
        assert state.reviewed_count == 1

        learning_due = now + timedelta(minutes=10)
        cards = _replace_card(
            cards, "new", review_state=ReviewState.LEARNING, due_at=learning_due
        )
        state = advance_study_session_state(state, cards, "new", now)

        assert state.daily_state.new_shown == 1
        assert state.daily_state.review_shown == 1
        assert state.queue == ()
        assert state.next_pending_learning_due_at == learning_due
        assert has_study_session_work(state)
        assert get_study_session_phase(state) is SessionPhase.WAITING
        assert state.reviewed_count == 2

    def test_learning_lane_credits_nothing(self, make_card, now, daily_state):
        cards = [make_card("l1", review_state=ReviewState.LEARNING, due_at=now)]
        state = create_study_session_state(cards, now, OPTIONS, daily_state)

        graded = _graduate(cards, "l1", now)
        state = advance_study_session_state(state, graded, "l1", now)

        assert (state.daily_state.new_shown, state.daily_state.review_shown) == (0, 0)
        assert state.reviewed_count == 1
        assert get_study_session_phase(state) is SessionPhase.COMPLETE

    def test_non_head_card_is_found_by_id(self, review_and_new, now, daily_state):
        state = create_study_session_state(review_and_new, now, OPTIONS, daily_state)

        cards = _graduate(review_and_new, "new", now)
        state = advance_study_session_state(state, cards, "new", now)

        assert state.daily_state.new_shown == 1
        assert state.daily_state.review_shown == 0

    def test_unknown_card_still_progresses(self, review_and_new, now, daily_state):
        state = create_study_session_state(review_and_new, now, OPTIONS, daily_state)
        state = advance_study_session_state(state, review_and_new, "missing", now)

        assert (state.daily_state.new_shown, state.daily_state.review_shown) == (0, 0)
        assert state.reviewed_count == 1
        assert len(state.queue) == 2

    def test_limit_reached_mid_session(self, make_card, now, daily_state):
        cards = [make_card("n1"), make_card("n2")]
        state = create_study_session_state(cards, now, DeckStudyOptions(new_per_day=1), daily_state)
        assert [entry.card_id for entry in state.queue] == ["n1"]

        graded = _graduate(cards, "n1", now)
        state = advance_study_session_state(state, graded, "n1", now)

        assert state.queue == ()
        assert state.queue_build.new_limit_exhausted
        assert get_study_session_phase(state) is SessionPhase.COMPLETE
        assert not has_study_session_work(state)


class TestPendingLearning:
    def test_refresh_promotes_due_learning_card(self, make_card, now, daily_state):
        due = now + timedelta(seconds=10)
        cards = [make_card("l1", review_state=ReviewState.LEARNING, due_at=due)]

        state = create_study_session_state(cards, now, OPTIONS, daily_state)
        assert state.queue == ()
        assert state.next_pending_learning_due_at == due
        assert get_refresh_delay(state, now) == timedelta(seconds=10)

        state = refresh_study_session_state(state, cards, due + timedelta(seconds=1))

        assert state.queue == (QueueEntry("l1", StudyLane.LEARNING_INTRADAY),)
        assert state.next_pending_learning_due_at is None
        assert state.reviewed_count == 0
        assert (state.daily_state.new_shown, state.daily_state.review_shown) == (0, 0)

    def test_refresh_delay(self, review_and_new, now, daily_state):
        state = create_study_session_state(review_and_new, now, OPTIONS, daily_state)
        assert get_refresh_delay(state, now) is None

        overdue = replace(state, next_pending_learning_due_at=now - timedelta(seconds=5))
        assert get_refresh_delay(overdue, now) == timedelta(0)

    def test_naive_now_is_utc(self, make_card, now, daily_state):
        cards = [
            make_card("l1", review_state=ReviewState.LEARNING, due_at=now + timedelta(seconds=30))
        ]
        naive_now = now.replace(tzinfo=None)

        state = create_study_session_state(cards, naive_now, OPTIONS, daily_state)

        assert state.daily_state.day_stamp == "2024-03-15"
        assert get_refresh_delay(state, naive_now) == timedelta(seconds=30)


class TestCustomStudyGuard:
    def test_deltas_are_applied_once_per_session(self, make_card, now, daily_state):
        cards = [make_card(f"n{i}") for i in range(10)]
        custom = CustomStudyOptions(add_new_cards=5)
        options = DeckStudyOptions(new_per_day=2)

        state = create_study_session_state(cards, now, options, daily_state, custom_study=custom)
        assert state.daily_state.custom_new_delta == 5
        assert state.custom_study_applied
        assert len(state.queue) == 7

        graded = _graduate(cards, "n0", now)
        state = advance_study_session_state(state, graded, "n0", now)
        assert state.daily_state.custom_new_delta == 5
        assert len(state.queue) == 6

        state = refresh_study_session_state(state, graded, now)
        assert state.daily_state.custom_new_delta == 5

        state = restart_study_session_state(state, graded, now)
        assert state.daily_state.custom_new_delta == 5
        assert state.reviewed_count == 0

    def test_caller_can_mark_deltas_already_applied(self, make_card, now, daily_state):
        persisted = replace(daily_state, custom_new_delta=5)
        state = create_study_session_state(
            [make_card("n1")],
            now,
            OPTIONS,
            persisted,
            custom_study=CustomStudyOptions(add_new_cards=5),
            custom_study_applied=True,
        )
        assert state.daily_state.custom_new_delta == 5


class TestRollover:
    def test_rebuild_after_midnight_resets_counters(self, make_card, now, daily_state):
        cards = [make_card(f"n{i}") for i in range(5)]
        spent = replace(daily_state, new_shown=2)
        state = create_study_session_state(cards, now, DeckStudyOptions(new_per_day=2), spent)
        assert state.queue == ()

        tomorrow = now + timedelta(days=1)
        state = refresh_study_session_state(state, cards, tomorrow)

        assert state.daily_state.day_stamp == "2024-03-16"
        assert state.daily_state.new_shown == 0
        assert len(state.queue) == 2

    def test_stale_daily_state_is_reset_on_create(self, make_card, now, daily_state):
        stale = replace(daily_state, day_stamp="2024-03-10", new_shown=99, review_shown=99)
        state = create_study_session_state([make_card("n1")], now, OPTIONS, stale)

        assert state.daily_state.day_stamp == "2024-03-15"
        assert (state.daily_state.new_shown, state.daily_state.review_shown) == (0, 0)


def test_restart_keeps_deck_and_options(make_card, now, daily_state):
    cards = [make_card("a", deck_name="Spanish"), make_card("b", deck_name="French")]
    state = create_study_session_state(
        cards, now, OPTIONS, daily_state, deck_name=" Spanish ", reviewed_count=4
    )
    assert state.deck_name == "Spanish"
    assert state.reviewed_count == 4

    restarted = restart_study_session_state(state, cards, now)
    assert restarted.deck_name == "Spanish"
    assert restarted.options == OPTIONS
    assert restarted.reviewed_count == 0
    assert [entry.card_id for entry in restarted.queue] == ["a"]
