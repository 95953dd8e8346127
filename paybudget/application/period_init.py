"""
Period Initializer - seeds a paycheck with envelopes and bill occurrences.

plan_period() is pure: it builds unsaved rows and the aggregate totals.
initialize_paycheck() persists a plan inside the caller's unit of work;
InitializePaycheckUseCase is the standalone (maintenance) entry point.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.orm import Session

from paybudget.application.common import get_paycheck, unit_of_work
from paybudget.application.errors import AlreadyInitializedError
from paybudget.application.reconciler import PaycheckTotals, apply_totals
from paybudget.config import get_settings
from paybudget.domain.recurrence import occurrences_in_window
from paybudget.infrastructure.db.models import (
    PaycheckModel, CategoryModel, BillModel, CategorySpending, BillPayment,
)
from paybudget.infrastructure.eventlog.repository import EventLogRepository
from paybudget.utils.money import ZERO, to_money, money_sum

logger = logging.getLogger(__name__)


@dataclass
class PeriodPlan:
    category_spending: list[CategorySpending] = field(default_factory=list)
    bill_payments: list[BillPayment] = field(default_factory=list)
    reserved_bills: Decimal = ZERO
    reserved_savings: Decimal = ZERO
    spendable: Decimal = ZERO

    @property
    def totals(self) -> PaycheckTotals:
        return PaycheckTotals(self.reserved_bills, self.reserved_savings, self.spendable)


def plan_period(paycheck, categories, bills, overflow: str = "clamp") -> PeriodPlan:
    """
    Build the initial envelopes and bill payments for a paycheck.

    - one envelope per category, planned = amount_per_paycheck, spent = 0
    - one unpaid payment per occurrence of every active bill in the window;
      a bill due twice in the window is reserved twice
    - reserved_savings covers the plans of all categories, not only the
      savings-typed ones, so spendable reflects every commitment

    Inputs are any objects with the row attributes; nothing touches the DB.
    """
    envelopes = [
        CategorySpending(
            paycheck_id=paycheck.id,
            category_id=cat.id,
            planned=to_money(cat.amount_per_paycheck),
            spent=ZERO,
        )
        for cat in categories
    ]

    payments: list[BillPayment] = []
    for bill in bills:
        if not bill.is_active:
            continue
        for due in occurrences_in_window(
            bill.due_day, paycheck.period_start_date, paycheck.period_end_date, overflow
        ):
            payments.append(BillPayment(
                paycheck_id=paycheck.id,
                bill_id=bill.id,
                planned_amount=to_money(bill.amount),
                due_date=due,
                is_paid=False,
            ))

    reserved_bills = money_sum(p.planned_amount for p in payments)
    reserved_savings = money_sum(e.planned for e in envelopes)

    return PeriodPlan(
        category_spending=envelopes,
        bill_payments=payments,
        reserved_bills=reserved_bills,
        reserved_savings=reserved_savings,
        spendable=to_money(paycheck.net_amount) - reserved_bills - reserved_savings,
    )


def _init_key(paycheck_id: int) -> str:
    return f"paycheck-init-{paycheck_id}"


def is_initialized(db: Session, paycheck_id: int) -> bool:
    if EventLogRepository(db).has_idempotency_key(_init_key(paycheck_id)):
        return True
    if db.query(CategorySpending.id).filter(CategorySpending.paycheck_id == paycheck_id).first():
        return True
    return db.query(BillPayment.id).filter(BillPayment.paycheck_id == paycheck_id).first() is not None


def initialize_paycheck(
    db: Session,
    paycheck: PaycheckModel,
    overflow: str | None = None,
    actor_user_id: int | None = None,
) -> PeriodPlan:
    """Persist the plan for `paycheck` (flush only; the caller commits)."""
    db.flush()
    if is_initialized(db, paycheck.id):
        raise AlreadyInitializedError(f"Paycheck #{paycheck.id} is already initialized")

    if overflow is None:
        overflow = get_settings().DUE_DAY_OVERFLOW

    categories = db.query(CategoryModel).filter(
        CategoryModel.user_id == paycheck.user_id,
        CategoryModel.is_active == True,
    ).order_by(CategoryModel.priority.asc(), CategoryModel.id.asc()).all()

    bills = db.query(BillModel).filter(
        BillModel.user_id == paycheck.user_id,
        BillModel.is_active == True,
    ).order_by(BillModel.due_day.asc(), BillModel.id.asc()).all()

    plan = plan_period(paycheck, categories, bills, overflow)

    db.add_all(plan.category_spending)
    db.add_all(plan.bill_payments)
    apply_totals(paycheck, plan.totals)

    EventLogRepository(db).append_event(
        account_id=paycheck.user_id,
        event_type="paycheck_initialized",
        payload={
            "paycheck_id": paycheck.id,
            "envelopes": len(plan.category_spending),
            "bill_payments": len(plan.bill_payments),
            **plan.totals.as_dict(),
        },
        actor_user_id=actor_user_id,
        idempotency_key=_init_key(paycheck.id),
    )

    logger.info(
        "Paycheck %d initialized: %d envelope(s), %d bill payment(s), spendable %s",
        paycheck.id, len(plan.category_spending), len(plan.bill_payments), plan.spendable,
    )
    return plan


class InitializePaycheckUseCase:
    """
    Use case: seed an existing paycheck with envelopes and bill payments

    Runs at most once per paycheck (AlreadyInitializedError otherwise).
    All rows and the aggregate update are committed together.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        account_id: int,
        paycheck_id: int,
        actor_user_id: int | None = None,
    ) -> PeriodPlan:
        paycheck = get_paycheck(self.db, account_id, paycheck_id)

        with unit_of_work(self.db, "initialize paycheck"):
            plan = initialize_paycheck(self.db, paycheck, actor_user_id=actor_user_id)

        return plan
