"""
Spending use case - ad-hoc spending logged against an envelope.

The Transaction row and the envelope's `spent` increment are one logical
operation: both are written in the same database transaction.
"""
import logging
from datetime import date

from sqlalchemy.orm import Session

from paybudget.application.common import (
    unit_of_work, get_paycheck, require_current_paycheck, ensure_current, require_positive,
)
from paybudget.application.errors import NotFoundError
from paybudget.application.reconciler import recompute_aggregates
from paybudget.infrastructure.db.models import CategorySpending, SpendingTransaction
from paybudget.infrastructure.eventlog.repository import EventLogRepository

logger = logging.getLogger(__name__)


class LogSpendingUseCase:
    """Use case: record spending in a category of the current paycheck"""

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        account_id: int,
        category_id: int,
        amount,
        description: str | None = None,
        transaction_date: date | None = None,
        paycheck_id: int | None = None,
        actor_user_id: int | None = None,
    ) -> SpendingTransaction:
        amount = require_positive(amount, "amount")

        if paycheck_id is not None:
            paycheck = get_paycheck(self.db, account_id, paycheck_id)
        else:
            paycheck = require_current_paycheck(self.db, account_id)
        ensure_current(paycheck)

        envelope = self.db.query(CategorySpending).filter(
            CategorySpending.paycheck_id == paycheck.id,
            CategorySpending.category_id == category_id,
        ).first()
        if not envelope:
            raise NotFoundError(
                f"Category #{category_id} has no envelope in paycheck #{paycheck.id}"
            )

        description = (description or "").strip() or None

        with unit_of_work(self.db, "log spending"):
            tx = SpendingTransaction(
                user_id=account_id,
                paycheck_id=paycheck.id,
                category_id=category_id,
                amount=amount,
                description=description,
                transaction_date=transaction_date or date.today(),
            )
            self.db.add(tx)
            envelope.spent = envelope.spent + amount

            # spending moves envelopes, not reservations; the fold re-asserts the invariant
            recompute_aggregates(self.db, paycheck)

            self.event_repo.append_event(
                account_id=account_id,
                event_type="spending_logged",
                payload={
                    "transaction_id": tx.id,
                    "paycheck_id": paycheck.id,
                    "category_id": category_id,
                    "amount": amount,
                    "spent": envelope.spent,
                },
                actor_user_id=actor_user_id,
            )

        logger.info("Spending %s logged in category %d (paycheck %d)", amount, category_id, paycheck.id)
        return tx
