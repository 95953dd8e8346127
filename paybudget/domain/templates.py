"""
Bill and category templates: allowed values.

Templates persist across pay periods; each period copies what it needs
(envelope plans, bill occurrences) at initialization time.
"""

CATEGORY_TYPE_FIXED = "fixed"
CATEGORY_TYPE_FLEXIBLE = "flexible"
CATEGORY_TYPE_SAVINGS = "savings"

CATEGORY_TYPES = (CATEGORY_TYPE_FIXED, CATEGORY_TYPE_FLEXIBLE, CATEGORY_TYPE_SAVINGS)

BILL_FREQUENCY_WEEKLY = "weekly"
BILL_FREQUENCY_BIWEEKLY = "biweekly"
BILL_FREQUENCY_MONTHLY = "monthly"
BILL_FREQUENCY_QUARTERLY = "quarterly"
BILL_FREQUENCY_ANNUAL = "annual"

# Stored for display only; occurrences are generated from due_day
BILL_FREQUENCIES = (
    BILL_FREQUENCY_WEEKLY,
    BILL_FREQUENCY_BIWEEKLY,
    BILL_FREQUENCY_MONTHLY,
    BILL_FREQUENCY_QUARTERLY,
    BILL_FREQUENCY_ANNUAL,
)


def validate_category_type(category_type: str) -> None:
    if category_type not in CATEGORY_TYPES:
        raise ValueError(
            f"invalid category type: {category_type}. Use one of {', '.join(CATEGORY_TYPES)}"
        )


def validate_bill_frequency(frequency: str) -> None:
    if frequency not in BILL_FREQUENCIES:
        raise ValueError(
            f"invalid bill frequency: {frequency}. Use one of {', '.join(BILL_FREQUENCIES)}"
        )
