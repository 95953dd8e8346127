"""
Category API endpoints (envelope templates and spending)
"""
from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from paybudget.api.deps import get_db, current_user_id, to_http_exception
from paybudget.application.categories import (
    CreateCategoryUseCase, UpdateCategoryUseCase, DeleteCategoryUseCase,
)
from paybudget.application.errors import BudgetError
from paybudget.application.spending import LogSpendingUseCase
from paybudget.domain.templates import CATEGORY_TYPE_FLEXIBLE, CATEGORY_TYPES
from paybudget.infrastructure.db.models import CategoryModel
from paybudget.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


# === Request/Response models ===

class CreateCategoryRequest(BaseModel):
    name: str
    type: str = CATEGORY_TYPE_FLEXIBLE
    amount_per_paycheck: str = "0"
    priority: int | None = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in CATEGORY_TYPES:
            raise ValueError(f"type must be one of {', '.join(CATEGORY_TYPES)}, got: {v}")
        return v

    @field_validator("amount_per_paycheck")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v)


class UpdateCategoryRequest(BaseModel):
    name: str | None = None
    type: str | None = None
    amount_per_paycheck: str | None = None
    priority: int | None = None

    @field_validator("amount_per_paycheck")
    @classmethod
    def validate_amount(cls, v: str | None) -> str | None:
        return validate_and_normalize_amount(v) if v is not None else None


class LogSpendingRequest(BaseModel):
    amount: str
    description: str | None = None
    transaction_date: date | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v)


class CategoryResponse(BaseModel):
    category_id: int
    name: str
    type: str
    amount_per_paycheck: str
    priority: int


class DeleteCategoryResponse(BaseModel):
    category_id: int
    template_deleted: bool


class TransactionResponse(BaseModel):
    transaction_id: int
    paycheck_id: int
    category_id: int
    amount: str
    description: str | None
    transaction_date: date


# === Helper function ===

def _category_response(category: CategoryModel) -> CategoryResponse:
    return CategoryResponse(
        category_id=category.id,
        name=category.name,
        type=category.type,
        amount_per_paycheck=str(category.amount_per_paycheck),
        priority=category.priority,
    )


# === Endpoints ===

@router.post("/", response_model=CategoryResponse)
def create_category(
    req: CreateCategoryRequest,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Add a category (its envelope opens in the current period)"""
    try:
        category = CreateCategoryUseCase(db).execute(
            account_id=user_id,
            name=req.name,
            category_type=req.type,
            amount_per_paycheck=req.amount_per_paycheck,
            priority=req.priority,
            actor_user_id=user_id,
        )
    except BudgetError as e:
        raise to_http_exception(e)

    return _category_response(category)


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    req: UpdateCategoryRequest,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Edit a category; a new allocation is applied to the current envelope"""
    try:
        category = UpdateCategoryUseCase(db).execute(
            account_id=user_id,
            category_id=category_id,
            name=req.name,
            category_type=req.type,
            amount_per_paycheck=req.amount_per_paycheck,
            priority=req.priority,
            actor_user_id=user_id,
        )
    except BudgetError as e:
        raise to_http_exception(e)

    return _category_response(category)


@router.delete("/{category_id}", response_model=DeleteCategoryResponse)
def delete_category(
    category_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Remove a category from the current period"""
    try:
        template_deleted = DeleteCategoryUseCase(db).execute(
            account_id=user_id,
            category_id=category_id,
            actor_user_id=user_id,
        )
    except BudgetError as e:
        raise to_http_exception(e)

    return DeleteCategoryResponse(category_id=category_id, template_deleted=template_deleted)


@router.post("/{category_id}/spending", response_model=TransactionResponse)
def log_spending(
    category_id: int,
    req: LogSpendingRequest,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db)
):
    """Record spending against the category's envelope"""
    try:
        tx = LogSpendingUseCase(db).execute(
            account_id=user_id,
            category_id=category_id,
            amount=req.amount,
            description=req.description,
            transaction_date=req.transaction_date,
            actor_user_id=user_id,
        )
    except BudgetError as e:
        raise to_http_exception(e)

    return TransactionResponse(
        transaction_id=tx.id,
        paycheck_id=tx.paycheck_id,
        category_id=tx.category_id,
        amount=str(tx.amount),
        description=tx.description,
        transaction_date=tx.transaction_date,
    )
