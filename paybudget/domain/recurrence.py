"""
Deterministic bill occurrence generator.

Uses date only (no timezone): period boundaries and due dates are plain
calendar dates, never instants.

A bill recurs on a day of month (1..31). For a pay period [start, end) we
take that day in every calendar month from SEARCH_RADIUS_MONTHS before the
start month up to SEARCH_RADIUS_MONTHS after it (or up to the end month for
long periods) and keep the candidates inside the window.

Day-of-month overflow (31 in a 30-day month, 30 in February):
- clamp: last day of that month
- rollover: the excess spills into the next month (Feb 31 2023 -> Mar 3 2023)
- skip: the month has no occurrence
"""
import calendar
from datetime import date, timedelta


OVERFLOW_CLAMP = "clamp"
OVERFLOW_ROLLOVER = "rollover"
OVERFLOW_SKIP = "skip"
VALID_OVERFLOW = frozenset({OVERFLOW_CLAMP, OVERFLOW_ROLLOVER, OVERFLOW_SKIP})

SEARCH_RADIUS_MONTHS = 3


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def shift_month(year: int, month: int, n: int) -> tuple[int, int]:
    """(year, month) moved by n calendar months."""
    m = month - 1 + n
    return year + m // 12, m % 12 + 1


def add_months(d: date, n: int) -> date:
    year, month = shift_month(d.year, d.month, n)
    day = min(d.day, last_day_of_month(year, month))
    return date(year, month, day)


def months_between(start: date, end: date) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def validate_due_day(due_day: int) -> None:
    if isinstance(due_day, bool) or not isinstance(due_day, int):
        raise ValueError("due_day must be an integer")
    if not 1 <= due_day <= 31:
        raise ValueError("due_day must be between 1 and 31")


def _validate(due_day: int, period_start: date, period_end: date, overflow: str) -> None:
    validate_due_day(due_day)
    if period_start > period_end:
        raise ValueError("period_start must be <= period_end")
    if overflow not in VALID_OVERFLOW:
        raise ValueError(f"invalid overflow policy: {overflow}")


def due_date_in_month(
    year: int,
    month: int,
    due_day: int,
    overflow: str = OVERFLOW_CLAMP,
) -> date | None:
    """Concrete due date for due_day in the given month (None when skipped)."""
    last = last_day_of_month(year, month)
    if due_day <= last:
        return date(year, month, due_day)
    if overflow == OVERFLOW_CLAMP:
        return date(year, month, last)
    if overflow == OVERFLOW_ROLLOVER:
        return date(year, month, last) + timedelta(days=due_day - last)
    return None


def occurrences_in_window(
    due_day: int,
    period_start: date,
    period_end: date,
    overflow: str = OVERFLOW_CLAMP,
) -> list[date]:
    """Every date in [period_start, period_end) on which due_day falls.
    Deterministic, sorted ascending, may be empty."""
    _validate(due_day, period_start, period_end, overflow)

    if period_start == period_end:
        return []

    upper = max(SEARCH_RADIUS_MONTHS, months_between(period_start, period_end))
    out: set[date] = set()
    for offset in range(-SEARCH_RADIUS_MONTHS, upper + 1):
        year, month = shift_month(period_start.year, period_start.month, offset)
        d = due_date_in_month(year, month, due_day, overflow)
        if d is None:
            continue
        if period_start <= d < period_end:
            out.add(d)
    return sorted(out)


def first_occurrence_or_fallback(
    due_day: int,
    period_start: date,
    period_end: date,
    overflow: str = OVERFLOW_CLAMP,
) -> date:
    """First occurrence in the window; otherwise due_day in the start month.

    The fallback always clamps, so a date is returned under every policy.
    """
    dates = occurrences_in_window(due_day, period_start, period_end, overflow)
    if dates:
        return dates[0]
    return due_date_in_month(period_start.year, period_start.month, due_day, OVERFLOW_CLAMP)
