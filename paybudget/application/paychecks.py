"""
Pay period use cases: rollover, paycheck edits, onboarding, history queries.

Rollover retires the current paycheck (it becomes read-only history) and opens
the next one, seeded by the Period Initializer.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from paybudget.application.common import (
    unit_of_work, require_current_paycheck, require_positive, require_non_negative, require_name,
)
from paybudget.application.errors import BudgetValidationError
from paybudget.application.period_init import initialize_paycheck
from paybudget.application.reconciler import recompute_aggregates
from paybudget.domain.pay_period import (
    calculate_pay_period, validate_pay_frequency, validate_window,
)
from paybudget.domain.recurrence import validate_due_day
from paybudget.domain.templates import (
    BILL_FREQUENCY_MONTHLY, CATEGORY_TYPE_FLEXIBLE,
    validate_category_type, validate_bill_frequency,
)
from paybudget.infrastructure.db.models import (
    PaySchedule, PaycheckModel, CategoryModel, BillModel,
)
from paybudget.infrastructure.eventlog.repository import EventLogRepository
from paybudget.utils.money import ZERO

logger = logging.getLogger(__name__)


def _check_window(pay_date: date | None, period_start: date | None, period_end: date | None) -> None:
    if pay_date is None or period_start is None or period_end is None:
        raise BudgetValidationError("pay_date, period_start and period_end are required")
    try:
        validate_window(period_start, period_end)
    except ValueError as e:
        raise BudgetValidationError(str(e)) from e


def get_pay_schedule(db: Session, account_id: int) -> PaySchedule | None:
    return db.query(PaySchedule).filter(PaySchedule.user_id == account_id).first()


def list_paychecks(db: Session, account_id: int) -> list[PaycheckModel]:
    """Every paycheck of the user, newest pay date first (history browser)."""
    return db.query(PaycheckModel).filter(
        PaycheckModel.user_id == account_id,
    ).order_by(PaycheckModel.pay_date.desc(), PaycheckModel.id.desc()).all()


def _sync_pay_schedule(db: Session, account_id: int, pay_date: date, net_amount: Decimal) -> bool:
    schedule = get_pay_schedule(db, account_id)
    if not schedule:
        return False
    schedule.net_amount = net_amount
    schedule.next_payday = pay_date
    return True


def open_pay_period(
    db: Session,
    account_id: int,
    pay_date: date,
    period_start: date,
    period_end: date,
    net_amount: Decimal,
    actor_user_id: int | None = None,
) -> PaycheckModel:
    """Rollover steps 1-4 (flush only; the caller commits)."""
    # 1. retire every current paycheck; their child rows are left alone
    retired = [
        p.id for p in db.query(PaycheckModel).filter(
            PaycheckModel.user_id == account_id,
            PaycheckModel.is_current == True,
        ).all()
    ]
    if retired:
        db.query(PaycheckModel).filter(PaycheckModel.id.in_(retired)).update(
            {PaycheckModel.is_current: False}, synchronize_session="fetch"
        )

    # 2. the new period starts with nothing reserved
    paycheck = PaycheckModel(
        user_id=account_id,
        pay_date=pay_date,
        period_start_date=period_start,
        period_end_date=period_end,
        net_amount=net_amount,
        reserved_bills=ZERO,
        reserved_savings=ZERO,
        spendable=net_amount,
        is_current=True,
    )
    db.add(paycheck)
    db.flush()

    # 3. envelopes + bill occurrences from the live templates
    initialize_paycheck(db, paycheck, actor_user_id=actor_user_id)

    # 4. keep schedule pre-fills in step with the latest period
    _sync_pay_schedule(db, account_id, pay_date, net_amount)

    EventLogRepository(db).append_event(
        account_id=account_id,
        event_type="pay_period_opened",
        payload={
            "paycheck_id": paycheck.id,
            "retired_paycheck_ids": retired,
            "pay_date": pay_date,
            "period_start_date": period_start,
            "period_end_date": period_end,
            "net_amount": net_amount,
        },
        actor_user_id=actor_user_id,
    )
    logger.info(
        "User %d rolled over to paycheck %d [%s, %s), retired %s",
        account_id, paycheck.id, period_start, period_end, retired,
    )
    return paycheck


class RolloverPeriodUseCase:
    """
    Use case: start a new pay period

    1. mark every current paycheck of the user not current
    2. insert the new current paycheck with zeroed reserves
    3. seed its envelopes and bill payments
    4. update the pay schedule's next payday / net amount
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        account_id: int,
        pay_date: date,
        period_start: date,
        period_end: date,
        net_amount,
        actor_user_id: int | None = None,
    ) -> PaycheckModel:
        _check_window(pay_date, period_start, period_end)
        net_amount = require_positive(net_amount, "net_amount")

        with unit_of_work(self.db, "create pay period"):
            paycheck = open_pay_period(
                self.db, account_id, pay_date, period_start, period_end, net_amount,
                actor_user_id=actor_user_id,
            )

        return paycheck


class UpdatePaycheckUseCase:
    """
    Use case: edit the current paycheck's dates or net amount

    Totals are re-folded from the child rows; existing bill payments keep
    their due dates even if the window moves.
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        account_id: int,
        pay_date: date | None = None,
        period_start: date | None = None,
        period_end: date | None = None,
        net_amount=None,
        actor_user_id: int | None = None,
    ) -> PaycheckModel:
        paycheck = require_current_paycheck(self.db, account_id)

        new_pay_date = pay_date or paycheck.pay_date
        new_start = period_start or paycheck.period_start_date
        new_end = period_end or paycheck.period_end_date
        _check_window(new_pay_date, new_start, new_end)
        new_net = require_positive(net_amount, "net_amount") if net_amount is not None else paycheck.net_amount

        with unit_of_work(self.db, "update pay period"):
            paycheck.pay_date = new_pay_date
            paycheck.period_start_date = new_start
            paycheck.period_end_date = new_end
            paycheck.net_amount = new_net
            totals = recompute_aggregates(self.db, paycheck)

            _sync_pay_schedule(self.db, account_id, new_pay_date, new_net)

            self.event_repo.append_event(
                account_id=account_id,
                event_type="paycheck_updated",
                payload={
                    "paycheck_id": paycheck.id,
                    "pay_date": new_pay_date,
                    "period_start_date": new_start,
                    "period_end_date": new_end,
                    "net_amount": new_net,
                    **totals.as_dict(),
                },
                actor_user_id=actor_user_id,
            )

        return paycheck


@dataclass
class CategoryDraft:
    name: str
    amount: Decimal | str
    type: str = CATEGORY_TYPE_FLEXIBLE


@dataclass
class BillDraft:
    name: str
    amount: Decimal | str
    due_day: int
    frequency: str = BILL_FREQUENCY_MONTHLY


@dataclass
class OnboardingResult:
    schedule: PaySchedule
    paycheck: PaycheckModel
    categories: list[CategoryModel] = field(default_factory=list)
    bills: list[BillModel] = field(default_factory=list)


class OnboardUserUseCase:
    """
    Use case: first-run setup

    Stores the pay schedule, categories and bills, derives the first pay
    window from the schedule and opens it. All or nothing.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        account_id: int,
        frequency: str,
        next_payday: date,
        net_amount,
        categories: list[CategoryDraft] | None = None,
        bills: list[BillDraft] | None = None,
        actor_user_id: int | None = None,
    ) -> OnboardingResult:
        try:
            validate_pay_frequency(frequency)
        except ValueError as e:
            raise BudgetValidationError(str(e)) from e
        if next_payday is None:
            raise BudgetValidationError("next_payday is required")
        net_amount = require_positive(net_amount, "net_amount")

        category_rows = []
        for priority, draft in enumerate(categories or [], start=1):
            try:
                validate_category_type(draft.type)
            except ValueError as e:
                raise BudgetValidationError(str(e)) from e
            category_rows.append(CategoryModel(
                user_id=account_id,
                name=require_name(draft.name),
                type=draft.type,
                amount_per_paycheck=require_non_negative(draft.amount, "amount_per_paycheck"),
                priority=priority,
            ))

        bill_rows = []
        for draft in bills or []:
            try:
                validate_due_day(draft.due_day)
                validate_bill_frequency(draft.frequency)
            except ValueError as e:
                raise BudgetValidationError(str(e)) from e
            bill_rows.append(BillModel(
                user_id=account_id,
                name=require_name(draft.name),
                amount=require_positive(draft.amount, "amount"),
                due_day=draft.due_day,
                frequency=draft.frequency,
                is_active=True,
            ))

        if get_pay_schedule(self.db, account_id):
            raise BudgetValidationError("Pay schedule already exists: onboarding is complete")

        window = calculate_pay_period(next_payday, frequency)

        with unit_of_work(self.db, "complete onboarding"):
            schedule = PaySchedule(
                user_id=account_id,
                frequency=frequency,
                next_payday=next_payday,
                net_amount=net_amount,
            )
            self.db.add(schedule)
            self.db.add_all(category_rows)
            self.db.add_all(bill_rows)
            self.db.flush()

            paycheck = open_pay_period(
                self.db,
                account_id,
                pay_date=next_payday,
                period_start=window.period_start,
                period_end=window.period_end,
                net_amount=net_amount,
                actor_user_id=actor_user_id,
            )

        logger.info(
            "User %d onboarded with %d categories and %d bills",
            account_id, len(category_rows), len(bill_rows),
        )
        return OnboardingResult(
            schedule=schedule,
            paycheck=paycheck,
            categories=category_rows,
            bills=bill_rows,
        )
