"""Calendar windows used to scope ranking computations."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date

MONTH_NAMES = (
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
)

PERIOD_NAMES = ('this-month', 'this-year', 'previous-month', 'all-time')


class InvalidPeriod(ValueError):
    """A period request with a malformed year, month or name."""


@dataclass(frozen=True)
class Period:
    """Inclusive date window; ``None`` bounds mean unbounded."""

    start: date | None
    end: date | None
    label: str

    def contains(self, day: date) -> bool:
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


def _coerce_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise InvalidPeriod(f'Invalid {field}: {value!r}')
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidPeriod(f'Invalid {field}: {value!r}') from None


def parse_year_month(year, month) -> tuple[int, int]:
    """Validate a year/month pair coming from a URL or a caller."""
    year = parse_year(year)
    month = _coerce_int(month, 'month')
    if not 1 <= month <= 12:
        raise InvalidPeriod(f'Month must be between 1 and 12, got {month}')
    return year, month


def parse_year(year) -> int:
    year = _coerce_int(year, 'year')
    if not MINYEAR <= year <= MAXYEAR:
        raise InvalidPeriod(f'Year out of range: {year}')
    return year


def month_period(year, month) -> Period:
    year, month = parse_year_month(year, month)
    last_day = calendar.monthrange(year, month)[1]
    return Period(
        start=date(year, month, 1),
        end=date(year, month, last_day),
        label=f'{MONTH_NAMES[month - 1]}/{year}',
    )


def year_period(year) -> Period:
    year = parse_year(year)
    return Period(start=date(year, 1, 1), end=date(year, 12, 31), label=str(year))


def all_time() -> Period:
    return Period(start=None, end=None, label='all-time')


def current_month(today: date | None = None) -> Period:
    today = today or date.today()
    return month_period(today.year, today.month)


def current_year(today: date | None = None) -> Period:
    today = today or date.today()
    return year_period(today.year)


def previous_month_key(today: date | None = None) -> tuple[int, int]:
    """(year, month) of the month before ``today``; January rolls back to December."""
    today = today or date.today()
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1


def previous_month(today: date | None = None) -> Period:
    return month_period(*previous_month_key(today))


def is_closed_month(year: int, month: int, today: date | None = None) -> bool:
    """True when the whole month lies strictly before the current one."""
    today = today or date.today()
    return (year, month) < (today.year, today.month)


def resolve_period(name: str | None, today: date | None = None) -> Period:
    """Resolve a named relative period against wall-clock ``today``."""
    if not name or name == 'all-time':
        return all_time()
    if name == 'this-month':
        return current_month(today)
    if name == 'this-year':
        return current_year(today)
    if name == 'previous-month':
        return previous_month(today)
    raise InvalidPeriod(f'Unknown period {name!r}; expected one of {", ".join(PERIOD_NAMES)}')
