"""
Envelope View Builder - read-only, display-ready state of a paycheck.

Joined rows are explicit composed types built after two typed fetches
(join_category_spending, join_bill_payments); builders are pure functions.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from paybudget.application.common import get_paycheck, get_current_paycheck
from paybudget.config import get_settings
from paybudget.domain.envelope import compute_state, progress_percentage
from paybudget.domain.pay_period import days_until
from paybudget.domain.templates import CATEGORY_TYPE_FLEXIBLE
from paybudget.infrastructure.db.models import (
    PaycheckModel, CategoryModel, CategorySpending, BillModel, BillPayment, SpendingTransaction,
)
from paybudget.utils.money import to_money, format_money

DEFAULT_TRANSACTIONS_LIMIT = 8


# ============================================================================
# Composed types
# ============================================================================


@dataclass(frozen=True)
class CategorySpendingWithCategory:
    spending: CategorySpending
    category: CategoryModel | None


@dataclass(frozen=True)
class BillPaymentWithBill:
    payment: BillPayment
    bill: BillModel | None


@dataclass(frozen=True)
class EnvelopeTransaction:
    id: int | None
    label: str
    amount: Decimal
    transaction_date: date


@dataclass(frozen=True)
class EnvelopeView:
    category_id: int
    category_spending_id: int | None
    name: str
    type: str
    allocated: Decimal
    spent: Decimal
    remaining: Decimal
    state: str
    progress: Decimal
    transactions: tuple[EnvelopeTransaction, ...] = ()


@dataclass(frozen=True)
class BillGridItem:
    bill: BillModel
    payment: BillPayment | None
    is_in_current_period: bool


@dataclass
class DashboardView:
    paycheck: PaycheckModel
    bill_payments: list[BillPaymentWithBill] = field(default_factory=list)
    envelopes: list[EnvelopeView] = field(default_factory=list)
    bill_grid: dict[int, list[BillGridItem]] = field(default_factory=dict)
    days_until_next: int = 0
    currency: str = "USD"

    @property
    def is_history(self) -> bool:
        return not self.paycheck.is_current

    def format(self, amount) -> str:
        return format_money(amount, self.currency)


# ============================================================================
# Joins
# ============================================================================


def join_category_spending(envelopes: Iterable, categories: Iterable) -> list[CategorySpendingWithCategory]:
    by_id = {c.id: c for c in categories}
    return [CategorySpendingWithCategory(e, by_id.get(e.category_id)) for e in envelopes]


def join_bill_payments(payments: Iterable, bills: Iterable) -> list[BillPaymentWithBill]:
    by_id = {b.id: b for b in bills}
    return [BillPaymentWithBill(p, by_id.get(p.bill_id)) for p in payments]


# ============================================================================
# Builders
# ============================================================================


def _newest_first(tx) -> tuple:
    return (tx.transaction_date, tx.id or 0)


def build_envelopes(
    items: Iterable[CategorySpendingWithCategory],
    transactions: Iterable,
    limit: int = DEFAULT_TRANSACTIONS_LIMIT,
) -> list[EnvelopeView]:
    """One envelope per CategorySpending, with its newest `limit` transactions."""
    transactions = list(transactions)
    out: list[EnvelopeView] = []
    for item in items:
        cs, cat = item.spending, item.category
        recent = sorted(
            (t for t in transactions if t.category_id == cs.category_id),
            key=_newest_first,
            reverse=True,
        )[:limit]

        spent = to_money(cs.spent)
        allocated = to_money(cs.planned)

        out.append(EnvelopeView(
            category_id=cs.category_id,
            category_spending_id=cs.id,
            name=cat.name if cat else "Unknown",
            type=cat.type if cat else CATEGORY_TYPE_FLEXIBLE,
            allocated=allocated,
            spent=spent,
            remaining=allocated - spent,
            state=compute_state(spent, allocated),
            progress=progress_percentage(spent, allocated),
            transactions=tuple(
                EnvelopeTransaction(
                    id=t.id,
                    label=t.description or "Spending",
                    amount=to_money(t.amount),
                    transaction_date=t.transaction_date,
                )
                for t in recent
            ),
        ))
    return out


def _pick_payment(payments: list) -> object | None:
    """The grid shows one status per bill: its earliest unpaid occurrence, else the latest paid one."""
    if not payments:
        return None
    ordered = sorted(payments, key=lambda p: p.due_date)
    for p in ordered:
        if not p.is_paid:
            return p
    return ordered[-1]


def is_day_in_period(day: int, start_day: int | None, end_day: int | None) -> bool:
    """Day-of-month membership; a period crossing a month boundary wraps."""
    if start_day is None or end_day is None:
        return True
    if start_day > end_day:
        return day >= start_day or day <= end_day
    return start_day <= day <= end_day


def build_bill_grid(
    all_bills: Iterable,
    bill_payments: Iterable,
    period_start: date | None = None,
    period_end: date | None = None,
) -> dict[int, list[BillGridItem]]:
    """
    Every active bill grouped by due day (ascending), merged with its payment
    in the displayed paycheck. Bills without a payment row are still listed.
    """
    payments_by_bill: dict[int, list] = {}
    for p in bill_payments:
        payments_by_bill.setdefault(p.bill_id, []).append(p)

    start_day = period_start.day if period_start else None
    end_day = period_end.day if period_end else None

    groups: dict[int, list[BillGridItem]] = {}
    for bill in all_bills:
        if not bill.is_active:
            continue
        groups.setdefault(bill.due_day, []).append(BillGridItem(
            bill=bill,
            payment=_pick_payment(payments_by_bill.get(bill.id, [])),
            is_in_current_period=is_day_in_period(bill.due_day, start_day, end_day),
        ))

    return dict(sorted(groups.items()))


# ============================================================================
# Dashboard (read model)
# ============================================================================


def build_dashboard(
    db: Session,
    account_id: int,
    paycheck_id: int | None = None,
    today: date | None = None,
) -> DashboardView | None:
    """Assemble the dashboard for a paycheck (current by default). None if there is none."""
    if paycheck_id is not None:
        paycheck = get_paycheck(db, account_id, paycheck_id)
    else:
        paycheck = get_current_paycheck(db, account_id)
    if not paycheck:
        return None

    payments = db.query(BillPayment).filter(
        BillPayment.paycheck_id == paycheck.id,
    ).order_by(BillPayment.due_date.asc(), BillPayment.id.asc()).all()

    bills = db.query(BillModel).filter(
        BillModel.user_id == account_id,
    ).order_by(BillModel.due_day.asc(), BillModel.id.asc()).all()

    envelopes = db.query(CategorySpending).filter(
        CategorySpending.paycheck_id == paycheck.id,
    ).all()

    # retired categories still name their envelopes in past paychecks
    categories = db.query(CategoryModel).filter(
        CategoryModel.user_id == account_id,
    ).all()
    priority = {c.id: (c.priority, c.id) for c in categories}
    envelopes.sort(key=lambda e: priority.get(e.category_id, (0, e.category_id)))

    transactions = db.query(SpendingTransaction).filter(
        SpendingTransaction.paycheck_id == paycheck.id,
    ).all()

    return DashboardView(
        paycheck=paycheck,
        bill_payments=join_bill_payments(payments, bills),
        envelopes=build_envelopes(
            join_category_spending(envelopes, categories),
            transactions,
            limit=get_settings().RECENT_TRANSACTIONS_LIMIT,
        ),
        bill_grid=build_bill_grid(
            bills, payments, paycheck.period_start_date, paycheck.period_end_date,
        ),
        days_until_next=days_until(paycheck.period_end_date, today),
        currency=get_settings().CURRENCY,
    )
