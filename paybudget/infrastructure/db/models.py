"""
SQLAlchemy ORM models (budget tables + audit log)
"""
from decimal import Decimal
from datetime import date as date_type
from sqlalchemy import String, DateTime, Integer, SmallInteger, TIMESTAMP, Date, func, Boolean, Numeric, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from paybudget.infrastructure.db.session import Base


class User(Base):
    """
    Budget owner. Credentials live with the identity provider.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class EventLog(Base):
    """
    Append-only audit trail of budget state transitions
    (initialization, rollover, bill payments, spending)
    """
    __tablename__ = "event_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    actor_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    event_type: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    payload_json: Mapped[dict] = mapped_column(JSONB, nullable=False)  # PostgreSQL JSONB

    occurred_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        index=True
    )
    idempotency_key: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True
    )
    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


# ============================================================================
# Templates (persist across pay periods)
# ============================================================================


class PaySchedule(Base):
    """One active pay schedule per user; refreshed on every rollover"""
    __tablename__ = "pay_schedules"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)  # -> users

    frequency: Mapped[str] = mapped_column(String(16), nullable=False)  # weekly/biweekly/semimonthly/monthly
    next_payday: Mapped[date_type] = mapped_column(Date, nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class CategoryModel(Base):
    """Spending category template; amount_per_paycheck seeds each period's envelope"""
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)  # -> users

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)  # fixed/flexible/savings
    amount_per_paycheck: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=2), nullable=False, server_default="0"
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    # false once deleted while past paychecks still reference it
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index('ix_categories_user_active', 'user_id', 'is_active'),
    )


class BillModel(Base):
    """Recurring bill template, due on a day of month"""
    __tablename__ = "bills"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)  # -> users

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    due_day: Mapped[int] = mapped_column(SmallInteger, nullable=False)  # 1..31
    frequency: Mapped[str] = mapped_column(String(16), nullable=False, server_default="monthly")
    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)  # -> categories
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index('ix_bills_user_active', 'user_id', 'is_active'),
    )


# ============================================================================
# Pay periods and their child records
# ============================================================================


class PaycheckModel(Base):
    """
    One pay period [period_start_date, period_end_date).

    reserved_bills / reserved_savings / spendable are derived from child rows
    and re-folded after every mutation (see application.reconciler).
    """
    __tablename__ = "paychecks"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)  # -> users

    pay_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    period_start_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    period_end_date: Mapped[date_type] = mapped_column(Date, nullable=False)  # exclusive

    net_amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    reserved_bills: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=2), nullable=False, server_default="0"
    )
    # Historical name: covers the planned allocations of all category types
    reserved_savings: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=2), nullable=False, server_default="0"
    )
    spendable: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=2), nullable=False, server_default="0"
    )
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index('ix_paychecks_user_current', 'user_id', 'is_current'),
    )


class CategorySpending(Base):
    """Envelope: one category's plan and spend within one paycheck"""
    __tablename__ = "category_spending"

    id: Mapped[int] = mapped_column(primary_key=True)
    paycheck_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)  # -> paychecks
    category_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)  # -> categories

    planned: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")
    spent: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False, server_default="0")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint('paycheck_id', 'category_id', name='uq_category_spending'),
    )

    @property
    def remaining(self) -> Decimal:
        return (self.planned or Decimal("0")) - (self.spent or Decimal("0"))


class BillPayment(Base):
    """A single bill occurrence inside a paycheck window"""
    __tablename__ = "bill_payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    paycheck_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)  # -> paychecks
    bill_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)  # -> bills

    planned_amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    actual_amount: Mapped[Decimal | None] = mapped_column(Numeric(precision=20, scale=2), nullable=True)
    due_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    paid_at: Mapped[DateTime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index('ix_bill_payments_paycheck_due', 'paycheck_id', 'due_date'),
    )


class SpendingTransaction(Base):
    """Append-only log of ad-hoc spending against an envelope"""
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)  # -> users
    paycheck_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)  # -> paychecks
    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)  # -> categories

    amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=2), nullable=False)
    description: Mapped[str | None] = mapped_column(String(512), nullable=True)
    transaction_date: Mapped[date_type] = mapped_column(Date, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index('ix_transactions_paycheck_category', 'paycheck_id', 'category_id'),
    )
