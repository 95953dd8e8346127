"""
Pay schedule arithmetic.

A pay period is the half-open window [period_start, period_end): the next
payday itself starts a new period.
"""
from dataclasses import dataclass
from datetime import date, timedelta

from paybudget.domain.recurrence import add_months


PAY_FREQUENCY_WEEKLY = "weekly"
PAY_FREQUENCY_BIWEEKLY = "biweekly"
PAY_FREQUENCY_SEMIMONTHLY = "semimonthly"
PAY_FREQUENCY_MONTHLY = "monthly"

PAY_FREQUENCIES = (
    PAY_FREQUENCY_WEEKLY,
    PAY_FREQUENCY_BIWEEKLY,
    PAY_FREQUENCY_SEMIMONTHLY,
    PAY_FREQUENCY_MONTHLY,
)

# Semimonthly is approximated as a fixed 15-day cycle
_SEMIMONTHLY_DAYS = 15


@dataclass(frozen=True)
class PayWindow:
    period_start: date
    period_end: date  # exclusive

    @property
    def days(self) -> int:
        return (self.period_end - self.period_start).days

    def contains(self, d: date) -> bool:
        return self.period_start <= d < self.period_end


def validate_pay_frequency(frequency: str) -> None:
    if frequency not in PAY_FREQUENCIES:
        raise ValueError(
            f"invalid pay frequency: {frequency}. Use one of {', '.join(PAY_FREQUENCIES)}"
        )


def validate_window(period_start: date, period_end: date) -> None:
    if period_start > period_end:
        raise ValueError("period_start must be on or before period_end")


def _shift(d: date, frequency: str, direction: int) -> date:
    if frequency == PAY_FREQUENCY_WEEKLY:
        return d + timedelta(weeks=direction)
    if frequency == PAY_FREQUENCY_BIWEEKLY:
        return d + timedelta(weeks=2 * direction)
    if frequency == PAY_FREQUENCY_SEMIMONTHLY:
        return d + timedelta(days=_SEMIMONTHLY_DAYS * direction)
    if frequency == PAY_FREQUENCY_MONTHLY:
        return add_months(d, direction)
    raise ValueError(f"invalid pay frequency: {frequency}")


def calculate_next_payday(current: date, frequency: str) -> date:
    """Payday one cycle after `current`."""
    return _shift(current, frequency, 1)


def calculate_pay_period(next_payday: date, frequency: str) -> PayWindow:
    """
    Current period for a schedule whose upcoming payday is `next_payday`.

    period_end = next_payday (exclusive), period_start = one cycle earlier.

    Example: biweekly, next payday 2026-02-19 -> [2026-02-05, 2026-02-19)
    """
    return PayWindow(
        period_start=_shift(next_payday, frequency, -1),
        period_end=next_payday,
    )


def suggest_next_window(period_start: date, period_end: date) -> tuple[date, PayWindow]:
    """
    Defaults for the period following [period_start, period_end).

    The next window starts where the current one ends and repeats its length
    (at least a week); its pay date is the new end.
    """
    length = max((period_end - period_start).days, 7)
    window = PayWindow(period_start=period_end, period_end=period_end + timedelta(days=length))
    return window.period_end, window


def days_until(target: date, today: date | None = None) -> int:
    today = today or date.today()
    return (target - today).days
