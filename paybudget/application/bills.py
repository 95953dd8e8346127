"""
Bill use cases - template edits and payment status within the current paycheck

Every mutation ends with a re-fold of the paycheck totals (reconciler) and a
single commit.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from paybudget.application.common import (
    unit_of_work, get_paycheck, get_current_paycheck, require_current_paycheck,
    ensure_current, get_bill, require_positive, require_name,
)
from paybudget.application.errors import BudgetValidationError, NotFoundError
from paybudget.application.reconciler import recompute_aggregates
from paybudget.config import get_settings
from paybudget.domain.recurrence import (
    validate_due_day, occurrences_in_window, first_occurrence_or_fallback,
)
from paybudget.domain.templates import BILL_FREQUENCY_MONTHLY, validate_bill_frequency
from paybudget.infrastructure.db.models import BillModel, BillPayment, PaycheckModel
from paybudget.infrastructure.eventlog.repository import EventLogRepository

logger = logging.getLogger(__name__)


def _check_due_day(due_day) -> int:
    try:
        validate_due_day(due_day)
    except ValueError as e:
        raise BudgetValidationError(str(e)) from e
    return due_day


def _check_frequency(frequency: str) -> str:
    try:
        validate_bill_frequency(frequency)
    except ValueError as e:
        raise BudgetValidationError(str(e)) from e
    return frequency


def _get_payment(db: Session, account_id: int, bill_payment_id: int) -> tuple[BillPayment, PaycheckModel]:
    payment = db.query(BillPayment).filter(BillPayment.id == bill_payment_id).first()
    if not payment:
        raise NotFoundError(f"Bill payment #{bill_payment_id} not found")
    # ownership is checked through the paycheck
    try:
        paycheck = get_paycheck(db, account_id, payment.paycheck_id)
    except NotFoundError:
        raise NotFoundError(f"Bill payment #{bill_payment_id} not found") from None
    return payment, paycheck


class CreateBillUseCase:
    """
    Use case: add a recurring bill

    If a current paycheck exists, every occurrence of the bill inside its
    window becomes an unpaid payment right away.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        account_id: int,
        name: str,
        amount,
        due_day: int,
        frequency: str = BILL_FREQUENCY_MONTHLY,
        category_id: int | None = None,
        actor_user_id: int | None = None,
    ) -> BillModel:
        name = require_name(name)
        amount = require_positive(amount, "amount")
        due_day = _check_due_day(due_day)
        frequency = _check_frequency(frequency)

        with unit_of_work(self.db, "create bill"):
            bill = BillModel(
                user_id=account_id,
                name=name,
                amount=amount,
                due_day=due_day,
                frequency=frequency,
                category_id=category_id,
                is_active=True,
            )
            self.db.add(bill)
            self.db.flush()

            paycheck = get_current_paycheck(self.db, account_id)
            due_dates = []
            if paycheck:
                due_dates = occurrences_in_window(
                    due_day,
                    paycheck.period_start_date,
                    paycheck.period_end_date,
                    get_settings().DUE_DAY_OVERFLOW,
                )
                for due in due_dates:
                    self.db.add(BillPayment(
                        paycheck_id=paycheck.id,
                        bill_id=bill.id,
                        planned_amount=amount,
                        due_date=due,
                        is_paid=False,
                    ))
                recompute_aggregates(self.db, paycheck)

            self.event_repo.append_event(
                account_id=account_id,
                event_type="bill_created",
                payload={
                    "bill_id": bill.id,
                    "name": name,
                    "amount": amount,
                    "due_day": due_day,
                    "paycheck_id": paycheck.id if paycheck else None,
                    "due_dates": due_dates,
                },
                actor_user_id=actor_user_id,
            )

        logger.info("Bill %d created with %d occurrence(s) in the current period", bill.id, len(due_dates))
        return bill


class UpdateBillUseCase:
    """
    Use case: edit a bill template

    A new amount flows only into the current paycheck's unpaid payments;
    paid payments and past paychecks keep what they had.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        account_id: int,
        bill_id: int,
        name: str | None = None,
        amount=None,
        due_day: int | None = None,
        frequency: str | None = None,
        actor_user_id: int | None = None,
    ) -> BillModel:
        bill = get_bill(self.db, account_id, bill_id)

        changes = {}
        if name is not None:
            changes["name"] = require_name(name)
        if amount is not None:
            changes["amount"] = require_positive(amount, "amount")
        if due_day is not None:
            changes["due_day"] = _check_due_day(due_day)
        if frequency is not None:
            changes["frequency"] = _check_frequency(frequency)

        if not changes:
            return bill

        with unit_of_work(self.db, "update bill"):
            for key, value in changes.items():
                setattr(bill, key, value)

            updated_payments = 0
            paycheck = get_current_paycheck(self.db, account_id)
            if paycheck:
                if "amount" in changes:
                    updated_payments = (
                        self.db.query(BillPayment)
                        .filter(
                            BillPayment.paycheck_id == paycheck.id,
                            BillPayment.bill_id == bill.id,
                            BillPayment.is_paid == False,
                        )
                        .update({BillPayment.planned_amount: changes["amount"]}, synchronize_session="fetch")
                    )
                recompute_aggregates(self.db, paycheck)

            self.event_repo.append_event(
                account_id=account_id,
                event_type="bill_updated",
                payload={"bill_id": bill.id, "unpaid_payments_updated": updated_payments, **changes},
                actor_user_id=actor_user_id,
            )

        return bill


class DeleteBillUseCase:
    """
    Use case: remove a bill

    The template is deactivated (past paychecks still reference it) and only
    the current paycheck's payments for it are deleted.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(self, account_id: int, bill_id: int, actor_user_id: int | None = None) -> int:
        """Returns number of payments removed from the current paycheck."""
        bill = get_bill(self.db, account_id, bill_id)

        with unit_of_work(self.db, "delete bill"):
            bill.is_active = False

            removed = 0
            paycheck = get_current_paycheck(self.db, account_id)
            if paycheck:
                removed = (
                    self.db.query(BillPayment)
                    .filter(
                        BillPayment.paycheck_id == paycheck.id,
                        BillPayment.bill_id == bill.id,
                    )
                    .delete(synchronize_session="fetch")
                )
                recompute_aggregates(self.db, paycheck)

            self.event_repo.append_event(
                account_id=account_id,
                event_type="bill_deleted",
                payload={"bill_id": bill.id, "payments_removed": removed},
                actor_user_id=actor_user_id,
            )

        logger.info("Bill %d deactivated, %d current payment(s) removed", bill_id, removed)
        return removed


class MarkBillPaidUseCase:
    """
    Use case: confirm a bill payment

    With bill_payment_id: mark that row paid with the confirmed amount.
    Without it (bill added after the period was initialized, or its only
    occurrence fell outside the window): create the payment on the fly,
    already paid, dated at the bill's first occurrence in the window or its
    due day in the period's start month.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        account_id: int,
        actual_amount,
        bill_payment_id: int | None = None,
        bill_id: int | None = None,
        planned_amount=None,
        paycheck_id: int | None = None,
        actor_user_id: int | None = None,
    ) -> BillPayment:
        actual_amount = require_positive(actual_amount, "actual_amount")

        if bill_payment_id is not None:
            payment, paycheck = _get_payment(self.db, account_id, bill_payment_id)
        elif bill_id is not None:
            payment = None
            if paycheck_id is not None:
                paycheck = get_paycheck(self.db, account_id, paycheck_id)
            else:
                paycheck = require_current_paycheck(self.db, account_id)
        else:
            raise BudgetValidationError("bill_payment_id or bill_id is required")

        ensure_current(paycheck)

        with unit_of_work(self.db, "mark bill paid"):
            if payment is None:
                bill = get_bill(self.db, account_id, bill_id)
                planned = (
                    require_positive(planned_amount, "planned_amount")
                    if planned_amount is not None else bill.amount
                )
                payment = BillPayment(
                    paycheck_id=paycheck.id,
                    bill_id=bill.id,
                    planned_amount=planned,
                    due_date=first_occurrence_or_fallback(
                        bill.due_day,
                        paycheck.period_start_date,
                        paycheck.period_end_date,
                        get_settings().DUE_DAY_OVERFLOW,
                    ),
                )
                self.db.add(payment)

            payment.is_paid = True
            payment.actual_amount = actual_amount
            payment.paid_at = datetime.now(timezone.utc)

            totals = recompute_aggregates(self.db, paycheck)

            self.event_repo.append_event(
                account_id=account_id,
                event_type="bill_paid",
                payload={
                    "bill_payment_id": payment.id,
                    "bill_id": payment.bill_id,
                    "paycheck_id": paycheck.id,
                    "planned_amount": payment.planned_amount,
                    "actual_amount": actual_amount,
                    "reserved_bills": totals.reserved_bills,
                },
                actor_user_id=actor_user_id,
            )

        return payment


class UndoBillPaidUseCase:
    """Use case: revert a payment to unpaid (the plan counts again)"""

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(self, account_id: int, bill_payment_id: int, actor_user_id: int | None = None) -> BillPayment:
        payment, paycheck = _get_payment(self.db, account_id, bill_payment_id)
        ensure_current(paycheck)

        with unit_of_work(self.db, "undo bill payment"):
            payment.is_paid = False
            payment.actual_amount = None
            payment.paid_at = None
            recompute_aggregates(self.db, paycheck)

            self.event_repo.append_event(
                account_id=account_id,
                event_type="bill_payment_undone",
                payload={"bill_payment_id": payment.id, "paycheck_id": paycheck.id},
                actor_user_id=actor_user_id,
            )

        return payment


class DeleteBillPaymentUseCase:
    """Use case: drop one occurrence from the current paycheck"""

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(self, account_id: int, bill_payment_id: int, actor_user_id: int | None = None) -> None:
        payment, paycheck = _get_payment(self.db, account_id, bill_payment_id)
        ensure_current(paycheck)

        with unit_of_work(self.db, "delete bill payment"):
            payload = {
                "bill_payment_id": payment.id,
                "bill_id": payment.bill_id,
                "paycheck_id": paycheck.id,
                "due_date": payment.due_date,
            }
            self.db.delete(payment)
            recompute_aggregates(self.db, paycheck)

            self.event_repo.append_event(
                account_id=account_id,
                event_type="bill_payment_deleted",
                payload=payload,
                actor_user_id=actor_user_id,
            )
