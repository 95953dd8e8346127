"""
Bill API endpoints (templates and payment status)
"""
from datetime import date, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from paybudget.api.deps import get_db, current_user_id, to_http_exception
from paybudget.application.bills import (
    CreateBillUseCase, UpdateBillUseCase, DeleteBillUseCase,
    MarkBillPaidUseCase, UndoBillPaidUseCase, DeleteBillPaymentUseCase,
)
from paybudget.application.errors import BudgetError
from paybudget.domain.templates import BILL_FREQUENCY_MONTHLY
from paybudget.infrastructure.db.models import BillModel, BillPayment
from paybudget.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/bills", tags=["bills"])


# === Request/Response models ===

class CreateBillRequest(BaseModel):
    name: str
    amount: str  # Decimal as string
    due_day: int
    frequency: str = BILL_FREQUENCY_MONTHLY
    category_id: int | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v)


class UpdateBillRequest(BaseModel):
    name: str | None = None
    amount: str | None = None
    due_day: int | None = None
    frequency: str | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str | None) -> str | None:
        return validate_and_normalize_amount(v) if v is not None else None


class MarkPaidRequest(BaseModel):
    actual_amount: str
    bill_payment_id: int | None = None
    bill_id: int | None = None
    planned_amount: str | None = None
    paycheck_id: int | None = None

    @field_validator("actual_amount")
    @classmethod
    def validate_actual(cls, v: str) -> str:
        return validate_and_normalize_amount(v)

    @field_validator("planned_amount")
    @classmethod
    def validate_planned(cls, v: str | None) -> str | None:
        return validate_and_normalize_amount(v) if v is not None else None


class BillResponse(BaseModel):
    bill_id: int
    name: str
    amount: str
    due_day: int
    frequency: str
    category_id: int | None
    is_active: bool


class BillPaymentResponse(BaseModel):
    bill_payment_id: int
    paycheck_id: int
    bill_id: int
    planned_amount: str
    actual_amount: str | None
    due_date: date
    is_paid: bool
    paid_at: datetime | None


class DeleteBillResponse(BaseModel):
    bill_id: int
    payments_removed: int


# === Helper functions ===

def _bill_response(bill: BillModel) -> BillResponse:
    return BillResponse(
        bill_id=bill.id,
        name=bill.name,
        amount=str(bill.amount),
        due_day=bill.due_day,
        frequency=bill.frequency,
        category_id=bill.category_id,
        is_active=bill.is_active,
    )


def _payment_response(payment: BillPayment) -> BillPaymentResponse:
    return BillPaymentResponse(
        bill_payment_id=payment.id,
        paycheck_id=payment.paycheck_id,
        bill_id=payment.bill_id,
        planned_amount=str(payment.planned_amount),
        actual_amount=str(payment.actual_amount) if payment.actual_amount is not None else None,
        due_date=payment.due_date,
        is_paid=payment.is_paid,
        paid_at=payment.paid_at,
    )


# === Endpoints ===

@router.post("/", response_model=BillResponse)
def create_bill(
    req: CreateBillRequest,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Add a recurring bill (scheduled into the current period right away)"""
    try:
        bill = CreateBillUseCase(db).execute(
            account_id=user_id,
            name=req.name,
            amount=req.amount,
            due_day=req.due_day,
            frequency=req.frequency,
            category_id=req.category_id,
            actor_user_id=user_id,
        )
    except BudgetError as e:
        raise to_http_exception(e)

    return _bill_response(bill)


@router.put("/{bill_id}", response_model=BillResponse)
def update_bill(
    bill_id: int,
    req: UpdateBillRequest,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Edit a bill; a new amount applies to unpaid payments of the current period"""
    try:
        bill = UpdateBillUseCase(db).execute(
            account_id=user_id,
            bill_id=bill_id,
            name=req.name,
            amount=req.amount,
            due_day=req.due_day,
            frequency=req.frequency,
            actor_user_id=user_id,
        )
    except BudgetError as e:
        raise to_http_exception(e)

    return _bill_response(bill)


@router.delete("/{bill_id}", response_model=DeleteBillResponse)
def delete_bill(
    bill_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Deactivate a bill and drop its payments from the current period"""
    try:
        removed = DeleteBillUseCase(db).execute(
            account_id=user_id,
            bill_id=bill_id,
            actor_user_id=user_id,
        )
    except BudgetError as e:
        raise to_http_exception(e)

    return DeleteBillResponse(bill_id=bill_id, payments_removed=removed)


@router.post("/payments/pay", response_model=BillPaymentResponse)
def mark_paid(
    req: MarkPaidRequest,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Confirm a bill payment with the amount actually paid"""
    try:
        payment = MarkBillPaidUseCase(db).execute(
            account_id=user_id,
            actual_amount=req.actual_amount,
            bill_payment_id=req.bill_payment_id,
            bill_id=req.bill_id,
            planned_amount=req.planned_amount,
            paycheck_id=req.paycheck_id,
            actor_user_id=user_id,
        )
    except BudgetError as e:
        raise to_http_exception(e)

    return _payment_response(payment)


@router.post("/payments/{bill_payment_id}/undo", response_model=BillPaymentResponse)
def undo_paid(
    bill_payment_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Revert a payment to unpaid"""
    try:
        payment = UndoBillPaidUseCase(db).execute(
            account_id=user_id,
            bill_payment_id=bill_payment_id,
            actor_user_id=user_id,
        )
    except BudgetError as e:
        raise to_http_exception(e)

    return _payment_response(payment)


@router.delete("/payments/{bill_payment_id}", status_code=204)
def delete_payment(
    bill_payment_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Remove one bill occurrence from the current period"""
    try:
        DeleteBillPaymentUseCase(db).execute(
            account_id=user_id,
            bill_payment_id=bill_payment_id,
            actor_user_id=user_id,
        )
    except BudgetError as e:
        raise to_http_exception(e)
