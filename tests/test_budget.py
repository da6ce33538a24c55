"""Tests for budgets and the forgiving input parsers."""

import pytest

from timesync.budget import adjust_limit, progress, set_limit
from timesync.parsing import parse_minutes_to_seconds, parse_non_negative_int, parse_number


# ---- Parsing ----

class TestParsing:
    @pytest.mark.parametrize("value, expected", [
        (3, 3), ("7", 7), (" 12 ", 12), (2.9, 2), ("1.5", 1),
        (None, 0), ("", 0), ("abc", 0), (-4, 0), (float("nan"), 0), (True, 0),
    ])
    def test_parse_non_negative_int(self, value, expected):
        assert parse_non_negative_int(value) == expected

    @pytest.mark.parametrize("value, expected", [
        (90, 5400), ("30", 1800), (0.5, 60), ("2.7", 120),
        (-10, 60), ("-0.5", 60),
        (0, None), ("0", None), ("", None), (None, None), ("soon", None),
    ])
    def test_parse_minutes_to_seconds(self, value, expected):
        assert parse_minutes_to_seconds(value) == expected

    def test_parse_number_default(self):
        assert parse_number("x", default=-1.0) == -1.0
        assert parse_number("-2.5") == -2.5


# ---- set_limit ----

class TestSetLimit:
    def test_stores_seconds(self):
        limits = {}
        assert set_limit(limits, 1, "120") == 7200
        assert limits == {1: 7200}

    def test_minimum_one_minute(self):
        limits = {}
        set_limit(limits, 1, 0.2)
        assert limits[1] == 60

    def test_negative_sets_minimum(self):
        limits = {1: 7200}
        assert set_limit(limits, 1, "-5") == 60
        assert limits == {1: 60}

    def test_empty_clears(self):
        limits = {1: 7200, 2: 60}
        assert set_limit(limits, 1, "") is None
        assert limits == {2: 60}

    def test_clearing_missing_is_harmless(self):
        limits = {}
        set_limit(limits, 5, None)
        assert limits == {}


# ---- adjust_limit ----

class TestAdjustLimit:
    def test_adds_hours(self):
        limits = {1: 1800}
        assert adjust_limit(limits, 1, 1) == 5400

    def test_from_no_limit(self):
        limits = {}
        assert adjust_limit(limits, 1, 2) == 7200

    def test_never_below_one_minute(self):
        limits = {1: 7200}
        for _ in range(5):
            adjust_limit(limits, 1, -1)
        assert limits[1] == 60

    def test_negative_from_nothing_still_sets_limit(self):
        limits = {}
        assert adjust_limit(limits, 1, -1) == 60
        assert 1 in limits

    def test_from_minimum_goes_up_from_one_minute(self):
        limits = {1: 60}
        assert adjust_limit(limits, 1, 1) == 61 * 60

    def test_non_numeric_delta(self):
        limits = {1: 600}
        assert adjust_limit(limits, 1, "lots") == 600

    def test_fractional_hours(self):
        limits = {1: 3600}
        assert adjust_limit(limits, 1, 0.5) == 5400


# ---- progress ----

class TestProgress:
    def test_example_quarter(self):
        status = progress(1800, 7200)
        assert status.percent == 25.0
        assert status.ratio == 25.0
        assert status.remaining_hours == 1.5

    def test_over_budget_clamps_percent(self):
        status = progress(9000, 7200)
        assert status.percent == 100.0
        assert status.ratio == 125.0
        assert status.remaining_hours == 0.0

    def test_no_limit_is_disabled(self):
        assert progress(1800, None) is None
        assert progress(1800, 0) is None
