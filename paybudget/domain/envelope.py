"""
Envelope health rules
"""
from decimal import Decimal


STATE_HEALTHY = "healthy"
STATE_NEAR_LIMIT = "near-limit"
STATE_OVER_BUDGET = "over-budget"

NEAR_LIMIT_RATIO = Decimal("0.8")


def compute_state(spent: Decimal, planned: Decimal) -> str:
    """
    Classify an envelope by spent/planned:
    below 0.8 healthy, 0.8..1.0 (inclusive) near-limit, above 1.0 over-budget.
    An envelope with nothing planned is always healthy.
    """
    if not planned:
        return STATE_HEALTHY
    ratio = Decimal(spent) / Decimal(planned)
    if ratio > 1:
        return STATE_OVER_BUDGET
    if ratio >= NEAR_LIMIT_RATIO:
        return STATE_NEAR_LIMIT
    return STATE_HEALTHY


def progress_percentage(spent: Decimal, planned: Decimal) -> Decimal:
    """Share of the plan used, capped at 100."""
    if not planned:
        return Decimal("0")
    return min(Decimal(spent) / Decimal(planned) * 100, Decimal("100"))
