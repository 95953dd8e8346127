"""
Shared lookups, input checks and the unit-of-work wrapper for use cases.
"""
import logging
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from paybudget.application.errors import BudgetValidationError, NotFoundError, StorageFailure
from paybudget.infrastructure.db.models import PaycheckModel, BillModel, CategoryModel
from paybudget.utils.money import to_money

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session, action: str):
    """
    Run a use case body as one database transaction.

    Commits on success. Any failure rolls back everything flushed so far;
    SQLAlchemy errors are re-raised as StorageFailure.
    """
    try:
        yield
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Storage failure during %s", action)
        raise StorageFailure(f"Could not {action}: storage error, nothing was saved") from e
    except Exception:
        db.rollback()
        raise


def get_paycheck(db: Session, account_id: int, paycheck_id: int) -> PaycheckModel:
    paycheck = db.query(PaycheckModel).filter(
        PaycheckModel.id == paycheck_id,
        PaycheckModel.user_id == account_id,
    ).first()
    if not paycheck:
        raise NotFoundError(f"Paycheck #{paycheck_id} not found")
    return paycheck


def get_current_paycheck(db: Session, account_id: int) -> PaycheckModel | None:
    return db.query(PaycheckModel).filter(
        PaycheckModel.user_id == account_id,
        PaycheckModel.is_current == True,
    ).order_by(PaycheckModel.pay_date.desc(), PaycheckModel.id.desc()).first()


def require_current_paycheck(db: Session, account_id: int) -> PaycheckModel:
    paycheck = get_current_paycheck(db, account_id)
    if not paycheck:
        raise NotFoundError("No current paycheck: create a pay period first")
    return paycheck


def ensure_current(paycheck: PaycheckModel) -> None:
    """Superseded paychecks are read-only history."""
    if not paycheck.is_current:
        raise BudgetValidationError(
            f"Paycheck #{paycheck.id} is closed history and cannot be changed"
        )


def get_bill(db: Session, account_id: int, bill_id: int) -> BillModel:
    bill = db.query(BillModel).filter(
        BillModel.id == bill_id,
        BillModel.user_id == account_id,
    ).first()
    if not bill:
        raise NotFoundError(f"Bill #{bill_id} not found")
    return bill


def get_category(db: Session, account_id: int, category_id: int) -> CategoryModel:
    category = db.query(CategoryModel).filter(
        CategoryModel.id == category_id,
        CategoryModel.user_id == account_id,
        CategoryModel.is_active == True,
    ).first()
    if not category:
        raise NotFoundError(f"Category #{category_id} not found")
    return category


def parse_amount(value, field: str) -> Decimal:
    if value is None or value == "":
        raise BudgetValidationError(f"{field} is required")
    try:
        return to_money(value)
    except (InvalidOperation, ValueError) as e:
        raise BudgetValidationError(f"{field} is not a valid amount") from e


def require_positive(value, field: str) -> Decimal:
    amount = parse_amount(value, field)
    if amount <= 0:
        raise BudgetValidationError(f"{field} must be greater than zero")
    return amount


def require_non_negative(value, field: str) -> Decimal:
    amount = parse_amount(value, field)
    if amount < 0:
        raise BudgetValidationError(f"{field} cannot be negative")
    return amount


def require_name(value: str | None, field: str = "name") -> str:
    name = (value or "").strip()
    if not name:
        raise BudgetValidationError(f"{field} cannot be empty")
    return name
