"""Tests for the bill occurrence generator"""
from datetime import date, timedelta

import pytest

from paybudget.domain.recurrence import (
    occurrences_in_window, due_date_in_month, first_occurrence_or_fallback,
    add_months, shift_month, validate_due_day,
    OVERFLOW_CLAMP, OVERFLOW_ROLLOVER, OVERFLOW_SKIP,
)


class TestOccurrencesInWindow:
    def test_cross_month_early_due_day(self):
        assert occurrences_in_window(5, date(2024, 1, 25), date(2024, 2, 10)) == [date(2024, 2, 5)]

    def test_cross_month_late_due_day(self):
        assert occurrences_in_window(28, date(2024, 1, 25), date(2024, 2, 10)) == [date(2024, 1, 28)]

    def test_one_month_window(self):
        assert occurrences_in_window(15, date(2024, 1, 1), date(2024, 2, 1)) == [date(2024, 1, 15)]

    def test_two_month_window(self):
        assert occurrences_in_window(15, date(2024, 1, 1), date(2024, 3, 1)) == [
            date(2024, 1, 15), date(2024, 2, 15),
        ]

    def test_long_window_beyond_search_radius(self):
        dates = occurrences_in_window(10, date(2024, 1, 1), date(2025, 1, 1))
        assert len(dates) == 12
        assert dates[0] == date(2024, 1, 10)
        assert dates[-1] == date(2024, 12, 10)

    def test_end_is_exclusive(self):
        assert occurrences_in_window(1, date(2024, 3, 1), date(2024, 4, 1)) == [date(2024, 3, 1)]

    def test_start_is_inclusive(self):
        assert occurrences_in_window(10, date(2024, 3, 10), date(2024, 3, 20)) == [date(2024, 3, 10)]

    def test_empty_window(self):
        assert occurrences_in_window(10, date(2024, 3, 10), date(2024, 3, 10)) == []

    def test_no_occurrence_in_short_window(self):
        assert occurrences_in_window(20, date(2024, 3, 1), date(2024, 3, 15)) == []

    def test_inverted_window_rejected(self):
        with pytest.raises(ValueError):
            occurrences_in_window(10, date(2024, 3, 20), date(2024, 3, 1))

    @pytest.mark.parametrize("due_day", [0, 32, -1, "5", 5.0, True])
    def test_invalid_due_day_rejected(self, due_day):
        with pytest.raises(ValueError):
            occurrences_in_window(due_day, date(2024, 3, 1), date(2024, 4, 1))

    def test_unknown_overflow_policy_rejected(self):
        with pytest.raises(ValueError):
            occurrences_in_window(10, date(2024, 3, 1), date(2024, 4, 1), "wrap")

    def test_deterministic_and_sorted(self):
        first = occurrences_in_window(31, date(2023, 11, 15), date(2024, 4, 2))
        second = occurrences_in_window(31, date(2023, 11, 15), date(2024, 4, 2))
        assert first == second
        assert first == sorted(first)
        assert len(set(first)) == len(first)

    def test_all_results_inside_window(self):
        starts = [date(2023, 12, 20) + timedelta(days=n * 11) for n in range(12)]
        lengths = [0, 1, 7, 14, 15, 28, 31, 45, 90]
        for start in starts:
            for length in lengths:
                end = start + timedelta(days=length)
                for due_day in (1, 15, 28, 29, 30, 31):
                    for policy in (OVERFLOW_CLAMP, OVERFLOW_ROLLOVER, OVERFLOW_SKIP):
                        for d in occurrences_in_window(due_day, start, end, policy):
                            assert start <= d < end


class TestDueDayOverflow:
    def test_clamp_leap_february(self):
        assert occurrences_in_window(31, date(2024, 2, 1), date(2024, 3, 1)) == [date(2024, 2, 29)]

    def test_clamp_thirty_day_month(self):
        assert occurrences_in_window(31, date(2024, 4, 1), date(2024, 5, 1)) == [date(2024, 4, 30)]

    def test_rollover_spills_into_next_month(self):
        assert due_date_in_month(2023, 2, 31, OVERFLOW_ROLLOVER) == date(2023, 3, 3)

    def test_rollover_window(self):
        dates = occurrences_in_window(31, date(2023, 3, 1), date(2023, 4, 1), OVERFLOW_ROLLOVER)
        # Feb 31 rolls to Mar 3, plus Mar 31 itself
        assert dates == [date(2023, 3, 3), date(2023, 3, 31)]

    def test_skip_drops_the_month(self):
        assert due_date_in_month(2024, 4, 31, OVERFLOW_SKIP) is None
        assert occurrences_in_window(31, date(2024, 4, 1), date(2024, 5, 1), OVERFLOW_SKIP) == []

    def test_no_overflow_for_regular_days(self):
        for policy in (OVERFLOW_CLAMP, OVERFLOW_ROLLOVER, OVERFLOW_SKIP):
            assert due_date_in_month(2024, 2, 14, policy) == date(2024, 2, 14)


class TestFirstOccurrenceOrFallback:
    def test_first_occurrence(self):
        assert first_occurrence_or_fallback(15, date(2024, 1, 1), date(2024, 3, 1)) == date(2024, 1, 15)

    def test_fallback_to_start_month(self):
        assert first_occurrence_or_fallback(20, date(2024, 3, 1), date(2024, 3, 15)) == date(2024, 3, 20)

    def test_fallback_clamps_under_skip(self):
        got = first_occurrence_or_fallback(31, date(2024, 4, 1), date(2024, 4, 10), OVERFLOW_SKIP)
        assert got == date(2024, 4, 30)


class TestMonthHelpers:
    def test_shift_month_across_years(self):
        assert shift_month(2024, 1, -1) == (2023, 12)
        assert shift_month(2024, 11, 3) == (2025, 2)

    def test_add_months_clamps_day(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)

    def test_validate_due_day_bounds(self):
        validate_due_day(1)
        validate_due_day(31)
        with pytest.raises(ValueError):
            validate_due_day(32)
