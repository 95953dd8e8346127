"""
Paycheck API endpoints: current period, history, rollover, dashboard, onboarding
"""
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from paybudget.api.deps import get_db, current_user_id, get_current_user, to_http_exception
from paybudget.application.envelopes import build_dashboard
from paybudget.application.errors import BudgetError
from paybudget.application.common import get_current_paycheck
from paybudget.application.paychecks import (
    RolloverPeriodUseCase, UpdatePaycheckUseCase, OnboardUserUseCase,
    CategoryDraft, BillDraft, list_paychecks, get_pay_schedule,
)
from paybudget.application.period_init import InitializePaycheckUseCase
from paybudget.application.reconciler import RecomputeAggregatesUseCase
from paybudget.domain.pay_period import suggest_next_window, calculate_pay_period
from paybudget.domain.templates import CATEGORY_TYPE_FLEXIBLE, BILL_FREQUENCY_MONTHLY
from paybudget.infrastructure.db.models import PaycheckModel, User
from paybudget.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/paychecks", tags=["paychecks"])


# === Request/Response models ===

class RolloverRequest(BaseModel):
    pay_date: date
    period_start: date
    period_end: date
    net_amount: str  # Decimal as string

    @field_validator("net_amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v)


class UpdatePaycheckRequest(BaseModel):
    pay_date: date | None = None
    period_start: date | None = None
    period_end: date | None = None
    net_amount: str | None = None

    @field_validator("net_amount")
    @classmethod
    def validate_amount(cls, v: str | None) -> str | None:
        return validate_and_normalize_amount(v) if v is not None else None


class CategoryDraftRequest(BaseModel):
    name: str
    amount: str
    type: str = CATEGORY_TYPE_FLEXIBLE

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v)


class BillDraftRequest(BaseModel):
    name: str
    amount: str
    due_day: int
    frequency: str = BILL_FREQUENCY_MONTHLY

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v)


class OnboardingRequest(BaseModel):
    frequency: str
    next_payday: date
    net_amount: str
    categories: list[CategoryDraftRequest] = []
    bills: list[BillDraftRequest] = []

    @field_validator("net_amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v)


class PaycheckResponse(BaseModel):
    paycheck_id: int
    pay_date: date
    period_start_date: date
    period_end_date: date
    net_amount: str
    reserved_bills: str
    reserved_savings: str
    spendable: str
    is_current: bool


class TotalsResponse(BaseModel):
    paycheck_id: int
    reserved_bills: str
    reserved_savings: str
    spendable: str


class InitializeResponse(TotalsResponse):
    envelopes: int
    bill_payments: int


class NextPeriodDefaultsResponse(BaseModel):
    pay_date: date
    period_start: date
    period_end: date
    net_amount: str | None = None


class BillPaymentResponse(BaseModel):
    bill_payment_id: int
    bill_id: int
    bill_name: str
    planned_amount: str
    actual_amount: str | None
    due_date: date
    is_paid: bool


class EnvelopeTransactionResponse(BaseModel):
    transaction_id: int | None
    label: str
    amount: str
    transaction_date: date


class EnvelopeResponse(BaseModel):
    category_id: int
    category_spending_id: int | None
    name: str
    type: str
    allocated: str
    spent: str
    remaining: str
    remaining_display: str
    state: str
    progress: str
    transactions: list[EnvelopeTransactionResponse]


class BillGridEntryResponse(BaseModel):
    bill_id: int
    name: str
    amount: str
    bill_payment_id: int | None
    is_paid: bool
    is_in_current_period: bool


class BillGridDayResponse(BaseModel):
    due_day: int
    bills: list[BillGridEntryResponse]


class DashboardResponse(BaseModel):
    paycheck: PaycheckResponse
    currency: str
    spendable_display: str
    is_history: bool
    days_until_next: int
    bill_payments: list[BillPaymentResponse]
    envelopes: list[EnvelopeResponse]
    bill_grid: list[BillGridDayResponse]


class OnboardingResponse(BaseModel):
    paycheck: PaycheckResponse
    category_ids: list[int]
    bill_ids: list[int]


# === Helper functions ===

def _paycheck_response(p: PaycheckModel) -> PaycheckResponse:
    return PaycheckResponse(
        paycheck_id=p.id,
        pay_date=p.pay_date,
        period_start_date=p.period_start_date,
        period_end_date=p.period_end_date,
        net_amount=str(p.net_amount),
        reserved_bills=str(p.reserved_bills),
        reserved_savings=str(p.reserved_savings),
        spendable=str(p.spendable),
        is_current=p.is_current,
    )


# === Endpoints ===

@router.get("/current", response_model=PaycheckResponse)
def get_current(
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Current pay period"""
    paycheck = get_current_paycheck(db, user_id)
    if not paycheck:
        raise HTTPException(status_code=404, detail="No current paycheck")
    return _paycheck_response(paycheck)


@router.get("/", response_model=list[PaycheckResponse])
def list_history(
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Every pay period, newest first"""
    return [_paycheck_response(p) for p in list_paychecks(db, user_id)]


@router.get("/next-defaults", response_model=NextPeriodDefaultsResponse)
def next_period_defaults(
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Pre-filled values for the "new pay period" form"""
    paycheck = get_current_paycheck(db, user_id)
    schedule = get_pay_schedule(db, user_id)

    if paycheck:
        pay_date, window = suggest_next_window(paycheck.period_start_date, paycheck.period_end_date)
        net_amount = schedule.net_amount if schedule else paycheck.net_amount
    elif schedule:
        window = calculate_pay_period(schedule.next_payday, schedule.frequency)
        pay_date, net_amount = schedule.next_payday, schedule.net_amount
    else:
        raise HTTPException(status_code=404, detail="No pay period or pay schedule yet")

    return NextPeriodDefaultsResponse(
        pay_date=pay_date,
        period_start=window.period_start,
        period_end=window.period_end,
        net_amount=str(net_amount),
    )


@router.post("/", response_model=PaycheckResponse)
def rollover(
    req: RolloverRequest,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Start a new pay period (the current one becomes history)"""
    try:
        paycheck = RolloverPeriodUseCase(db).execute(
            account_id=user_id,
            pay_date=req.pay_date,
            period_start=req.period_start,
            period_end=req.period_end,
            net_amount=req.net_amount,
            actor_user_id=user_id,
        )
    except BudgetError as e:
        raise to_http_exception(e)

    return _paycheck_response(paycheck)


@router.patch("/current", response_model=PaycheckResponse)
def update_current(
    req: UpdatePaycheckRequest,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Edit the current pay period's dates or net amount"""
    try:
        paycheck = UpdatePaycheckUseCase(db).execute(
            account_id=user_id,
            pay_date=req.pay_date,
            period_start=req.period_start,
            period_end=req.period_end,
            net_amount=req.net_amount,
            actor_user_id=user_id,
        )
    except BudgetError as e:
        raise to_http_exception(e)

    return _paycheck_response(paycheck)


@router.post("/{paycheck_id}/initialize", response_model=InitializeResponse)
def initialize(
    paycheck_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Seed envelopes and bill payments (once per paycheck)"""
    try:
        plan = InitializePaycheckUseCase(db).execute(
            account_id=user_id,
            paycheck_id=paycheck_id,
            actor_user_id=user_id,
        )
    except BudgetError as e:
        raise to_http_exception(e)

    return InitializeResponse(
        paycheck_id=paycheck_id,
        envelopes=len(plan.category_spending),
        bill_payments=len(plan.bill_payments),
        reserved_bills=str(plan.reserved_bills),
        reserved_savings=str(plan.reserved_savings),
        spendable=str(plan.spendable),
    )


@router.post("/{paycheck_id}/recompute", response_model=TotalsResponse)
def recompute(
    paycheck_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Re-fold the paycheck's totals from its envelopes and bill payments"""
    try:
        totals = RecomputeAggregatesUseCase(db).execute(
            account_id=user_id,
            paycheck_id=paycheck_id,
            actor_user_id=user_id,
        )
    except BudgetError as e:
        raise to_http_exception(e)

    return TotalsResponse(
        paycheck_id=paycheck_id,
        reserved_bills=str(totals.reserved_bills),
        reserved_savings=str(totals.reserved_savings),
        spendable=str(totals.spendable),
    )


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    paycheck_id: int | None = None,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Envelopes, bill payments and bill grid of a paycheck (current by default)"""
    try:
        view = build_dashboard(db, user_id, paycheck_id=paycheck_id)
    except BudgetError as e:
        raise to_http_exception(e)
    if view is None:
        raise HTTPException(status_code=404, detail="No current paycheck")

    return DashboardResponse(
        paycheck=_paycheck_response(view.paycheck),
        currency=view.currency,
        spendable_display=view.format(view.paycheck.spendable),
        is_history=view.is_history,
        days_until_next=view.days_until_next,
        bill_payments=[
            BillPaymentResponse(
                bill_payment_id=item.payment.id,
                bill_id=item.payment.bill_id,
                bill_name=item.bill.name if item.bill else "Unknown",
                planned_amount=str(item.payment.planned_amount),
                actual_amount=str(item.payment.actual_amount) if item.payment.actual_amount is not None else None,
                due_date=item.payment.due_date,
                is_paid=item.payment.is_paid,
            )
            for item in view.bill_payments
        ],
        envelopes=[
            EnvelopeResponse(
                category_id=e.category_id,
                category_spending_id=e.category_spending_id,
                name=e.name,
                type=e.type,
                allocated=str(e.allocated),
                spent=str(e.spent),
                remaining=str(e.remaining),
                remaining_display=view.format(e.remaining),
                state=e.state,
                progress=str(e.progress),
                transactions=[
                    EnvelopeTransactionResponse(
                        transaction_id=t.id,
                        label=t.label,
                        amount=str(t.amount),
                        transaction_date=t.transaction_date,
                    )
                    for t in e.transactions
                ],
            )
            for e in view.envelopes
        ],
        bill_grid=[
            BillGridDayResponse(
                due_day=due_day,
                bills=[
                    BillGridEntryResponse(
                        bill_id=item.bill.id,
                        name=item.bill.name,
                        amount=str(item.bill.amount),
                        bill_payment_id=item.payment.id if item.payment else None,
                        is_paid=bool(item.payment and item.payment.is_paid),
                        is_in_current_period=item.is_in_current_period,
                    )
                    for item in items
                ],
            )
            for due_day, items in view.bill_grid.items()
        ],
    )


@router.post("/onboarding", response_model=OnboardingResponse)
def onboarding(
    req: OnboardingRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """First-run setup: pay schedule, categories, bills and the first pay period"""
    try:
        result = OnboardUserUseCase(db).execute(
            account_id=user.id,
            frequency=req.frequency,
            next_payday=req.next_payday,
            net_amount=req.net_amount,
            categories=[CategoryDraft(name=c.name, amount=c.amount, type=c.type) for c in req.categories],
            bills=[
                BillDraft(name=b.name, amount=b.amount, due_day=b.due_day, frequency=b.frequency)
                for b in req.bills
            ],
            actor_user_id=user.id,
        )
    except BudgetError as e:
        raise to_http_exception(e)

    return OnboardingResponse(
        paycheck=_paycheck_response(result.paycheck),
        category_ids=[c.id for c in result.categories],
        bill_ids=[b.id for b in result.bills],
    )
