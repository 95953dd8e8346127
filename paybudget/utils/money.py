"""
Money helpers: every currency value in the project is a Decimal in cents.

Usage:
    from paybudget.utils.money import to_money, format_money

    to_money("12.345")          -> Decimal("12.35")
    format_money(1200.5)        -> "$1,200.50"
    format_money(-45, "EUR")    -> "-45.00 EUR"
"""
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

_CURRENCY_PREFIX = {
    "USD": "$",
}


def to_money(amount) -> Decimal:
    """Coerce int / str / float / Decimal / None to a Decimal quantized to cents."""
    if amount is None:
        return ZERO
    if not isinstance(amount, Decimal):
        # str() first so floats keep their printed value, not their binary one
        amount = Decimal(str(amount))
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def money_sum(amounts) -> Decimal:
    return to_money(sum((to_money(a) for a in amounts), ZERO))


def format_money(amount, currency: str = "USD") -> str:
    """
    Format with thousands separators and two decimals.

    Args:
        amount: int / float / Decimal / str
        currency: ISO code; USD gets a "$" prefix, others an ISO suffix

    Returns:
        "$1,200.50" / "-$45.00" / "1,200.50 EUR"
    """
    value = to_money(amount)
    sign = "-" if value < 0 else ""
    body = f"{abs(value):,.2f}"
    prefix = _CURRENCY_PREFIX.get(currency)
    if prefix:
        return f"{sign}{prefix}{body}"
    return f"{sign}{body} {currency}"
