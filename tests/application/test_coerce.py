import math
from datetime import datetime, timedelta, timezone

from studylane.application.coerce import (
    parse_deck_param,
    parse_flag,
    parse_positive_int,
    to_bool,
    to_bounded_float,
    to_choice,
    to_finite_float,
    to_instant,
    to_int,
    to_minute_steps,
    to_non_negative_int,
    to_optional_trimmed_string,
)
from studylane.domain.models import NewCardOrder


class TestScalars:
    def test_trimmed_string(self):
        assert to_optional_trimmed_string("  Spanish ") == "Spanish"
        assert to_optional_trimmed_string("   ") is None
        assert to_optional_trimmed_string(12) is None

    def test_int_floors_finite_numbers(self):
        assert to_int(3.9, 0) == 3
        assert to_int(-1.5, 0) == -2
        assert to_int(math.inf, 7) == 7
        assert to_int(math.nan, 7) == 7
        assert to_int("5", 7) == 7

    def test_booleans_are_not_numbers(self):
        assert to_int(True, 9) == 9
        assert to_finite_float(False, 0.5) == 0.5

    def test_non_negative_int(self):
        assert to_non_negative_int(0, 20) == 0
        assert to_non_negative_int(-3, 20) == 20

    def test_bounded_float_is_exclusive(self):
        assert to_bounded_float(0.85, 0.9, 0.0, 1.0) == 0.85
        assert to_bounded_float(1.0, 0.9, 0.0, 1.0) == 0.9
        assert to_bounded_float(0, 0.9, 0.0, 1.0) == 0.9

    def test_bool(self):
        assert to_bool(False, True) is False
        assert to_bool("false", True) is True

    def test_choice(self):
        assert to_choice("random", NewCardOrder, NewCardOrder.INSERTION) is NewCardOrder.RANDOM
        assert to_choice("shuffle", NewCardOrder, NewCardOrder.INSERTION) is NewCardOrder.INSERTION
        assert to_choice(None, NewCardOrder, NewCardOrder.INSERTION) is NewCardOrder.INSERTION
        assert to_choice(["random"], NewCardOrder, NewCardOrder.INSERTION) is NewCardOrder.INSERTION


class TestMinuteSteps:
    def test_keeps_positive_floored_entries(self):
        assert to_minute_steps([1, 10.7, -5, 0, "3"], (1, 10)) == (1, 10)

    def test_empty_or_invalid_falls_back(self):
        assert to_minute_steps([], (1, 10)) == (1, 10)
        assert to_minute_steps([0, -1], (10,)) == (10,)
        assert to_minute_steps("1,10", (1, 10)) == (1, 10)
        assert to_minute_steps(None, (1, 10)) == (1, 10)


class TestInstant:
    def test_iso_string(self):
        assert to_instant("2024-03-15T12:00:00+00:00") == datetime(
            2024, 3, 15, 12, tzinfo=timezone.utc
        )

    def test_naive_is_utc(self):
        parsed = to_instant(datetime(2024, 3, 15, 12))
        assert parsed.tzinfo is timezone.utc

    def test_offset_is_preserved(self):
        parsed = to_instant("2024-03-15T12:00:00+02:00")
        assert parsed.utcoffset() == timedelta(hours=2)

    def test_epoch_milliseconds(self):
        assert to_instant(86_400_000) == datetime(1970, 1, 2, tzinfo=timezone.utc)

    def test_garbage_uses_fallback(self):
        fallback = datetime(2000, 1, 1, tzinfo=timezone.utc)
        assert to_instant("yesterday", fallback) == fallback
        assert to_instant(None) is None
        assert to_instant(True, fallback) == fallback


class TestQueryParams:
    def test_positive_int(self):
        assert parse_positive_int("10") == 10
        assert parse_positive_int(["4", "8"]) == 4
        assert parse_positive_int("-3") == 0
        assert parse_positive_int("abc") == 0
        assert parse_positive_int(None) == 0

    def test_flag(self):
        assert parse_flag("1")
        assert parse_flag(["true"])
        assert not parse_flag("yes")
        assert not parse_flag(None)

    def test_deck_param_is_decoded(self):
        assert parse_deck_param("Spanish%20Verbs ") == "Spanish Verbs"
        assert parse_deck_param([]) is None
        assert parse_deck_param("  ") is None
