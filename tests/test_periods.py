from datetime import date

import pytest

from periods import (
    InvalidPeriod, all_time, is_closed_month, month_period, parse_year_month,
    previous_month, previous_month_key, resolve_period, year_period
)


class TestMonthPeriod:
    def test_bounds_and_label(self):
        period = month_period(2026, 3)
        assert (period.start, period.end) == (date(2026, 3, 1), date(2026, 3, 31))
        assert period.label == 'March/2026'

    def test_leap_february(self):
        assert month_period(2028, 2).end == date(2028, 2, 29)
        assert month_period(2026, 2).end == date(2026, 2, 28)

    def test_accepts_url_strings(self):
        assert month_period('2026', '04').start == date(2026, 4, 1)

    @pytest.mark.parametrize('year, month', [
        (2026, 0), (2026, 13), ('2026', 'abc'), ('x', 1), (True, 1), (0, 5),
    ])
    def test_rejects_invalid(self, year, month):
        with pytest.raises(InvalidPeriod):
            month_period(year, month)

    def test_inclusive_contains(self):
        period = month_period(2026, 3)
        assert period.contains(date(2026, 3, 1))
        assert period.contains(date(2026, 3, 31))
        assert not period.contains(date(2026, 4, 1))


class TestRelativePeriods:
    def test_previous_month_rolls_back_over_january(self):
        assert previous_month_key(date(2027, 1, 1)) == (2026, 12)
        assert previous_month(date(2026, 7, 31)).label == 'June/2026'

    def test_named_periods(self):
        today = date(2026, 10, 17)
        assert resolve_period('this-month', today) == month_period(2026, 10)
        assert resolve_period('this-year', today) == year_period(2026)
        assert resolve_period('previous-month', today) == month_period(2026, 9)
        assert resolve_period(None, today) == all_time()
        assert resolve_period('', today) == all_time()
        assert resolve_period('all-time', today).contains(date(1999, 1, 1))

    def test_unknown_name(self):
        with pytest.raises(InvalidPeriod):
            resolve_period('last-decade')

    def test_closed_month(self):
        today = date(2026, 10, 17)
        assert is_closed_month(2026, 9, today)
        assert not is_closed_month(2026, 10, today)
        assert not is_closed_month(2026, 11, today)

    def test_parse_year_month(self):
        assert parse_year_month(' 2026 ', '7') == (2026, 7)
