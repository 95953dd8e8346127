"""
Tests for pay period rollover, paycheck edits and onboarding
"""
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from paybudget.application.bills import MarkBillPaidUseCase
from paybudget.application.errors import (
    BudgetValidationError, NotFoundError, AlreadyInitializedError, StorageFailure,
)
from paybudget.application.paychecks import (
    RolloverPeriodUseCase, UpdatePaycheckUseCase, OnboardUserUseCase,
    CategoryDraft, BillDraft, list_paychecks, get_pay_schedule,
)
from paybudget.application.common import get_current_paycheck
from paybudget.application.period_init import InitializePaycheckUseCase
from paybudget.application.spending import LogSpendingUseCase
from paybudget.infrastructure.db.models import (
    PaySchedule, PaycheckModel, CategoryModel, BillModel, CategorySpending, BillPayment, EventLog,
)


def _snapshot(db_session, paycheck_id):
    envelopes = db_session.query(CategorySpending).filter_by(paycheck_id=paycheck_id).order_by(CategorySpending.id).all()
    payments = db_session.query(BillPayment).filter_by(paycheck_id=paycheck_id).order_by(BillPayment.id).all()
    return (
        [(e.id, e.category_id, e.planned, e.spent) for e in envelopes],
        [(p.id, p.bill_id, p.planned_amount, p.actual_amount, p.due_date, p.is_paid) for p in payments],
    )


class TestRollover:
    def test_first_period(self, db_session, sample_account_id, make_category, make_bill):
        make_category("Groceries", "300")
        make_bill("Rent", "1200", 1)

        paycheck = RolloverPeriodUseCase(db_session).execute(
            account_id=sample_account_id,
            pay_date=date(2024, 3, 1),
            period_start=date(2024, 3, 1),
            period_end=date(2024, 4, 1),
            net_amount="2000",
        )

        assert paycheck.is_current is True
        assert paycheck.reserved_bills == Decimal("1200")
        assert paycheck.reserved_savings == Decimal("300")
        assert paycheck.spendable == Decimal("500")

    def test_retires_previous_and_leaves_its_rows_alone(
        self, db_session, sample_account_id, make_category, make_bill
    ):
        groceries = make_category("Groceries", "300")
        make_bill("Rent", "1200", 1)
        use_case = RolloverPeriodUseCase(db_session)

        march = use_case.execute(
            account_id=sample_account_id,
            pay_date=date(2024, 3, 1),
            period_start=date(2024, 3, 1),
            period_end=date(2024, 4, 1),
            net_amount="2000",
        )
        rent = db_session.query(BillPayment).filter_by(paycheck_id=march.id).one()
        MarkBillPaidUseCase(db_session).execute(
            account_id=sample_account_id, bill_payment_id=rent.id, actual_amount="1150",
        )
        LogSpendingUseCase(db_session).execute(
            account_id=sample_account_id, category_id=groceries.id, amount="88",
        )
        before = _snapshot(db_session, march.id)

        april = use_case.execute(
            account_id=sample_account_id,
            pay_date=date(2024, 4, 1),
            period_start=date(2024, 4, 1),
            period_end=date(2024, 5, 1),
            net_amount="2100",
        )

        db_session.refresh(march)
        assert march.is_current is False
        assert _snapshot(db_session, march.id) == before
        assert get_current_paycheck(db_session, sample_account_id).id == april.id

        # the new period starts from the templates, not from last period's state
        envelope = db_session.query(CategorySpending).filter_by(paycheck_id=april.id).one()
        assert envelope.spent == Decimal("0")
        payment = db_session.query(BillPayment).filter_by(paycheck_id=april.id).one()
        assert payment.is_paid is False
        assert payment.due_date == date(2024, 4, 1)
        assert april.spendable == Decimal("600")

        event = db_session.query(EventLog).filter(EventLog.event_type == "pay_period_opened").order_by(
            EventLog.id.desc()
        ).first()
        assert event.payload_json["retired_paycheck_ids"] == [march.id]

    def test_failed_commit_keeps_previous_period_current(
        self, db_session, sample_account_id, make_category, make_bill, monkeypatch
    ):
        make_category("Groceries", "300")
        make_bill("Rent", "1200", 1)
        use_case = RolloverPeriodUseCase(db_session)
        march = use_case.execute(
            account_id=sample_account_id,
            pay_date=date(2024, 4, 1),
            period_start=date(2024, 3, 1),
            period_end=date(2024, 4, 1),
            net_amount="2000",
        )
        before = _snapshot(db_session, march.id)
        events = db_session.query(EventLog).count()

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        with pytest.raises(StorageFailure):
            use_case.execute(
                account_id=sample_account_id,
                pay_date=date(2024, 5, 1),
                period_start=date(2024, 4, 1),
                period_end=date(2024, 5, 1),
                net_amount="2100",
            )
        monkeypatch.undo()

        assert db_session.query(PaycheckModel).count() == 1
        assert get_current_paycheck(db_session, sample_account_id).id == march.id
        assert db_session.query(CategorySpending).count() == 1
        assert db_session.query(BillPayment).count() == 1
        assert _snapshot(db_session, march.id) == before
        assert db_session.query(EventLog).count() == events

    def test_new_period_cannot_be_initialized_again(self, db_session, sample_account_id):
        paycheck = RolloverPeriodUseCase(db_session).execute(
            account_id=sample_account_id,
            pay_date=date(2024, 3, 15),
            period_start=date(2024, 3, 1),
            period_end=date(2024, 3, 15),
            net_amount="1000",
        )
        with pytest.raises(AlreadyInitializedError):
            InitializePaycheckUseCase(db_session).execute(account_id=sample_account_id, paycheck_id=paycheck.id)

    def test_syncs_pay_schedule(self, db_session, sample_account_id):
        db_session.add(PaySchedule(
            user_id=sample_account_id, frequency="biweekly",
            next_payday=date(2024, 3, 1), net_amount=Decimal("1000"),
        ))
        db_session.commit()

        RolloverPeriodUseCase(db_session).execute(
            account_id=sample_account_id,
            pay_date=date(2024, 3, 15),
            period_start=date(2024, 3, 1),
            period_end=date(2024, 3, 15),
            net_amount="1250",
        )

        schedule = get_pay_schedule(db_session, sample_account_id)
        assert schedule.next_payday == date(2024, 3, 15)
        assert schedule.net_amount == Decimal("1250")

    @pytest.mark.parametrize("kwargs", [
        {"net_amount": "0"},
        {"net_amount": "-100"},
        {"period_start": date(2024, 4, 2)},
        {"pay_date": None},
    ])
    def test_validation(self, db_session, sample_account_id, kwargs):
        args = {
            "pay_date": date(2024, 4, 1),
            "period_start": date(2024, 3, 1),
            "period_end": date(2024, 4, 1),
            "net_amount": "2000",
            **kwargs,
        }
        with pytest.raises(BudgetValidationError):
            RolloverPeriodUseCase(db_session).execute(account_id=sample_account_id, **args)
        assert db_session.query(PaycheckModel).count() == 0


def test_list_paychecks_newest_first(db_session, sample_account_id):
    use_case = RolloverPeriodUseCase(db_session)
    for start, end in [(date(2024, 1, 1), date(2024, 2, 1)), (date(2024, 2, 1), date(2024, 3, 1))]:
        use_case.execute(
            account_id=sample_account_id, pay_date=end, period_start=start, period_end=end, net_amount="1000",
        )

    history = list_paychecks(db_session, sample_account_id)
    assert [p.pay_date for p in history] == [date(2024, 3, 1), date(2024, 2, 1)]
    assert [p.is_current for p in history] == [True, False]


class TestUpdatePaycheck:
    def test_net_change_refolds_spendable(self, db_session, sample_account_id, make_category):
        make_category("Groceries", "300")
        RolloverPeriodUseCase(db_session).execute(
            account_id=sample_account_id,
            pay_date=date(2024, 4, 1),
            period_start=date(2024, 3, 1),
            period_end=date(2024, 4, 1),
            net_amount="2000",
        )

        paycheck = UpdatePaycheckUseCase(db_session).execute(account_id=sample_account_id, net_amount="2500")

        assert paycheck.net_amount == Decimal("2500")
        assert paycheck.spendable == Decimal("2200")

    def test_requires_current_paycheck(self, db_session, sample_account_id):
        with pytest.raises(NotFoundError):
            UpdatePaycheckUseCase(db_session).execute(account_id=sample_account_id, net_amount="2500")

    def test_rejects_inverted_window(self, db_session, sample_account_id):
        RolloverPeriodUseCase(db_session).execute(
            account_id=sample_account_id,
            pay_date=date(2024, 4, 1),
            period_start=date(2024, 3, 1),
            period_end=date(2024, 4, 1),
            net_amount="2000",
        )
        with pytest.raises(BudgetValidationError):
            UpdatePaycheckUseCase(db_session).execute(
                account_id=sample_account_id, period_start=date(2024, 5, 1),
            )


class TestOnboarding:
    def test_creates_everything_and_opens_first_period(self, db_session, sample_account_id):
        result = OnboardUserUseCase(db_session).execute(
            account_id=sample_account_id,
            frequency="biweekly",
            next_payday=date(2024, 3, 15),
            net_amount="1800",
            categories=[
                CategoryDraft("Groceries", "250"),
                CategoryDraft("Emergency fund", "100", "savings"),
            ],
            bills=[BillDraft("Phone", "60", 10), BillDraft("Rent", "900", 1)],
        )

        paycheck = result.paycheck
        assert (paycheck.period_start_date, paycheck.period_end_date) == (date(2024, 3, 1), date(2024, 3, 15))
        assert paycheck.pay_date == date(2024, 3, 15)
        # Rent (1st) and Phone (10th) both fall inside [Mar 1, Mar 15)
        assert paycheck.reserved_bills == Decimal("960")
        assert paycheck.reserved_savings == Decimal("350")
        assert paycheck.spendable == Decimal("490")
        assert [c.priority for c in result.categories] == [1, 2]
        assert result.schedule.frequency == "biweekly"

    def test_second_onboarding_rejected(self, db_session, sample_account_id):
        use_case = OnboardUserUseCase(db_session)
        use_case.execute(
            account_id=sample_account_id, frequency="monthly", next_payday=date(2024, 4, 1), net_amount="3000",
        )
        with pytest.raises(BudgetValidationError):
            use_case.execute(
                account_id=sample_account_id, frequency="monthly", next_payday=date(2024, 5, 1), net_amount="3000",
            )

    def test_invalid_draft_saves_nothing(self, db_session, sample_account_id):
        with pytest.raises(BudgetValidationError):
            OnboardUserUseCase(db_session).execute(
                account_id=sample_account_id,
                frequency="monthly",
                next_payday=date(2024, 4, 1),
                net_amount="3000",
                categories=[CategoryDraft("Groceries", "250")],
                bills=[BillDraft("Rent", "900", 35)],
            )

        assert db_session.query(PaySchedule).count() == 0
        assert db_session.query(CategoryModel).count() == 0
        assert db_session.query(BillModel).count() == 0
        assert db_session.query(PaycheckModel).count() == 0

    def test_unknown_frequency(self, db_session, sample_account_id):
        with pytest.raises(BudgetValidationError):
            OnboardUserUseCase(db_session).execute(
                account_id=sample_account_id, frequency="daily", next_payday=date(2024, 4, 1), net_amount="3000",
            )
