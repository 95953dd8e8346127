"""
Mutation Reconciler - keeps a paycheck's aggregate fields consistent.

reserved_bills, reserved_savings and spendable are always re-folded from the
paycheck's current BillPayment / CategorySpending rows, never patched
with a delta.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from paybudget.application.common import get_paycheck, unit_of_work
from paybudget.infrastructure.db.models import PaycheckModel, BillPayment, CategorySpending
from paybudget.infrastructure.eventlog.repository import EventLogRepository
from paybudget.utils.money import to_money, money_sum

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaycheckTotals:
    reserved_bills: Decimal
    reserved_savings: Decimal
    spendable: Decimal

    def as_dict(self) -> dict[str, Decimal]:
        return {
            "reserved_bills": self.reserved_bills,
            "reserved_savings": self.reserved_savings,
            "spendable": self.spendable,
        }


def payment_contribution(payment) -> Decimal:
    """A paid bill counts its confirmed amount; an unpaid one its plan."""
    if payment.is_paid and payment.actual_amount is not None:
        return to_money(payment.actual_amount)
    return to_money(payment.planned_amount)


def fold_totals(net_amount, payments: Iterable, envelopes: Iterable) -> PaycheckTotals:
    """Storage-free fold: payments and envelopes are any objects with the row attributes."""
    reserved_bills = money_sum(payment_contribution(p) for p in payments)
    reserved_savings = money_sum(e.planned for e in envelopes)
    return PaycheckTotals(
        reserved_bills=reserved_bills,
        reserved_savings=reserved_savings,
        spendable=to_money(net_amount) - reserved_bills - reserved_savings,
    )


def apply_totals(paycheck: PaycheckModel, totals: PaycheckTotals) -> None:
    paycheck.reserved_bills = totals.reserved_bills
    paycheck.reserved_savings = totals.reserved_savings
    paycheck.spendable = totals.spendable


def recompute_aggregates(db: Session, paycheck: PaycheckModel) -> PaycheckTotals:
    """
    Re-read the paycheck's child rows, fold them and write the three fields.

    Flushes pending changes first so the fold sees them; does not commit.
    """
    db.flush()

    payments = db.query(BillPayment).filter(BillPayment.paycheck_id == paycheck.id).all()
    envelopes = db.query(CategorySpending).filter(CategorySpending.paycheck_id == paycheck.id).all()

    totals = fold_totals(paycheck.net_amount, payments, envelopes)
    apply_totals(paycheck, totals)
    db.flush()
    return totals


class RecomputeAggregatesUseCase:
    """
    Use case: explicit reconciliation of one paycheck

    Maintenance entry point; allowed on history too since it only repairs
    derived fields. Idempotent.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        account_id: int,
        paycheck_id: int,
        actor_user_id: int | None = None,
    ) -> PaycheckTotals:
        paycheck = get_paycheck(self.db, account_id, paycheck_id)

        with unit_of_work(self.db, "recompute paycheck totals"):
            before = (
                to_money(paycheck.reserved_bills),
                to_money(paycheck.reserved_savings),
                to_money(paycheck.spendable),
            )
            totals = recompute_aggregates(self.db, paycheck)
            after = (totals.reserved_bills, totals.reserved_savings, totals.spendable)

            if before != after:
                logger.info(
                    "Paycheck %d totals repaired: %s -> %s", paycheck.id, before, after
                )
                self.event_repo.append_event(
                    account_id=account_id,
                    event_type="paycheck_recomputed",
                    payload={"paycheck_id": paycheck.id, **totals.as_dict()},
                    actor_user_id=actor_user_id,
                )

        return totals
