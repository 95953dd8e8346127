"""
Category use cases - envelope templates and their allocation in the current paycheck
"""
import logging

from sqlalchemy.orm import Session

from paybudget.application.common import (
    unit_of_work, get_current_paycheck, get_category, require_non_negative, require_name,
)
from paybudget.application.errors import BudgetValidationError
from paybudget.application.reconciler import recompute_aggregates
from paybudget.domain.templates import CATEGORY_TYPE_FLEXIBLE, validate_category_type
from paybudget.infrastructure.db.models import CategoryModel, CategorySpending, SpendingTransaction
from paybudget.infrastructure.eventlog.repository import EventLogRepository
from paybudget.utils.money import ZERO

logger = logging.getLogger(__name__)


def _check_type(category_type: str) -> str:
    try:
        validate_category_type(category_type)
    except ValueError as e:
        raise BudgetValidationError(str(e)) from e
    return category_type


def _next_priority(db: Session, account_id: int) -> int:
    return db.query(CategoryModel).filter(
        CategoryModel.user_id == account_id,
        CategoryModel.is_active == True,
    ).count() + 1


class CreateCategoryUseCase:
    """
    Use case: add a category

    The template is stored and, if a pay period is running, its envelope is
    opened in the current paycheck with the full allocation.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        account_id: int,
        name: str,
        category_type: str = CATEGORY_TYPE_FLEXIBLE,
        amount_per_paycheck="0",
        priority: int | None = None,
        actor_user_id: int | None = None,
    ) -> CategoryModel:
        name = require_name(name)
        category_type = _check_type(category_type)
        amount = require_non_negative(amount_per_paycheck, "amount_per_paycheck")

        with unit_of_work(self.db, "create category"):
            category = CategoryModel(
                user_id=account_id,
                name=name,
                type=category_type,
                amount_per_paycheck=amount,
                priority=priority if priority is not None else _next_priority(self.db, account_id),
            )
            self.db.add(category)
            self.db.flush()

            paycheck = get_current_paycheck(self.db, account_id)
            if paycheck:
                self.db.add(CategorySpending(
                    paycheck_id=paycheck.id,
                    category_id=category.id,
                    planned=amount,
                    spent=ZERO,
                ))
                recompute_aggregates(self.db, paycheck)

            self.event_repo.append_event(
                account_id=account_id,
                event_type="category_created",
                payload={
                    "category_id": category.id,
                    "name": name,
                    "type": category_type,
                    "amount_per_paycheck": amount,
                    "paycheck_id": paycheck.id if paycheck else None,
                },
                actor_user_id=actor_user_id,
            )

        return category


class UpdateCategoryUseCase:
    """
    Use case: edit a category

    A new allocation becomes the current envelope's plan as well (the
    envelope is opened if the category had none in this period).
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        account_id: int,
        category_id: int,
        name: str | None = None,
        category_type: str | None = None,
        amount_per_paycheck=None,
        priority: int | None = None,
        actor_user_id: int | None = None,
    ) -> CategoryModel:
        category = get_category(self.db, account_id, category_id)

        changes = {}
        if name is not None:
            changes["name"] = require_name(name)
        if category_type is not None:
            changes["type"] = _check_type(category_type)
        if amount_per_paycheck is not None:
            changes["amount_per_paycheck"] = require_non_negative(amount_per_paycheck, "amount_per_paycheck")
        if priority is not None:
            changes["priority"] = priority

        if not changes:
            return category

        with unit_of_work(self.db, "update category"):
            for key, value in changes.items():
                setattr(category, key, value)

            paycheck = get_current_paycheck(self.db, account_id)
            if paycheck and "amount_per_paycheck" in changes:
                envelope = self.db.query(CategorySpending).filter(
                    CategorySpending.paycheck_id == paycheck.id,
                    CategorySpending.category_id == category.id,
                ).first()
                if envelope:
                    envelope.planned = changes["amount_per_paycheck"]
                else:
                    self.db.add(CategorySpending(
                        paycheck_id=paycheck.id,
                        category_id=category.id,
                        planned=changes["amount_per_paycheck"],
                        spent=ZERO,
                    ))
            if paycheck:
                recompute_aggregates(self.db, paycheck)

            self.event_repo.append_event(
                account_id=account_id,
                event_type="category_updated",
                payload={"category_id": category.id, **changes},
                actor_user_id=actor_user_id,
            )

        return category


class DeleteCategoryUseCase:
    """
    Use case: remove a category from the current paycheck

    Deletes its transactions and envelope in the current paycheck. The
    template itself goes away only when no other paycheck still has an
    envelope for it; otherwise it is retired (is_active=False) so later
    periods no longer open an envelope for it.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(self, account_id: int, category_id: int, actor_user_id: int | None = None) -> bool:
        """Returns True if the template was deleted too."""
        category = get_category(self.db, account_id, category_id)

        with unit_of_work(self.db, "delete category"):
            paycheck = get_current_paycheck(self.db, account_id)
            removed_transactions = 0
            if paycheck:
                removed_transactions = (
                    self.db.query(SpendingTransaction)
                    .filter(
                        SpendingTransaction.paycheck_id == paycheck.id,
                        SpendingTransaction.category_id == category.id,
                    )
                    .delete(synchronize_session="fetch")
                )
                self.db.query(CategorySpending).filter(
                    CategorySpending.paycheck_id == paycheck.id,
                    CategorySpending.category_id == category.id,
                ).delete(synchronize_session="fetch")

            still_referenced = self.db.query(CategorySpending.id).filter(
                CategorySpending.category_id == category.id,
            ).first() is not None

            if still_referenced:
                category.is_active = False
            else:
                self.db.delete(category)

            if paycheck:
                recompute_aggregates(self.db, paycheck)

            self.event_repo.append_event(
                account_id=account_id,
                event_type="category_deleted",
                payload={
                    "category_id": category_id,
                    "paycheck_id": paycheck.id if paycheck else None,
                    "transactions_removed": removed_transactions,
                    "template_deleted": not still_referenced,
                },
                actor_user_id=actor_user_id,
            )

        logger.info(
            "Category %d removed from current paycheck (template deleted: %s)",
            category_id, not still_referenced,
        )
        return not still_referenced
