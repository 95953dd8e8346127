"""
Error kinds raised by budget use cases.

The API layer maps them onto HTTP statuses (see api.deps.to_http_exception).
"""


class BudgetError(Exception):
    """Base class for every use-case failure with a human-readable message"""
    pass


class NotFoundError(BudgetError, LookupError):
    """Referenced paycheck / bill / category / envelope does not exist for this user"""
    pass


class BudgetValidationError(BudgetError, ValueError):
    """Bad input: non-positive amount, due_day outside 1..31, inverted window, etc."""
    pass


class AlreadyInitializedError(BudgetError):
    """Envelopes or bill payments were already generated for this paycheck"""
    pass


class StorageFailure(BudgetError):
    """The database call failed; the unit of work was rolled back"""
    pass
