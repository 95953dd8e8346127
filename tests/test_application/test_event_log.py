"""
Tests for the audit event log - payload encoding, idempotency keys, filters
"""
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from paybudget.application.paychecks import OnboardUserUseCase, CategoryDraft, BillDraft
from paybudget.application.spending import LogSpendingUseCase
from paybudget.infrastructure.eventlog.repository import EventLogRepository


def test_payload_values_are_stringified(db_session, sample_account_id):
    repo = EventLogRepository(db_session)
    repo.append_event(
        account_id=sample_account_id,
        event_type="bill_paid",
        payload={"amount": Decimal("45.00"), "due_dates": [date(2024, 3, 1)], "nested": {"d": date(2024, 3, 2)}},
    )
    db_session.commit()

    event = repo.list_events(sample_account_id)[0]
    assert event.payload_json == {
        "amount": "45.00",
        "due_dates": ["2024-03-01"],
        "nested": {"d": "2024-03-02"},
    }
    assert event.occurred_at is not None


def test_idempotency_key_is_unique(db_session, sample_account_id):
    repo = EventLogRepository(db_session)
    repo.append_event(sample_account_id, "paycheck_initialized", {}, idempotency_key="paycheck-init-1")
    db_session.commit()
    assert repo.has_idempotency_key("paycheck-init-1")
    assert not repo.has_idempotency_key("paycheck-init-2")

    with pytest.raises(IntegrityError):
        repo.append_event(sample_account_id, "paycheck_initialized", {}, idempotency_key="paycheck-init-1")
    db_session.rollback()


def test_onboarding_flow_audit_trail(db_session, sample_account_id):
    result = OnboardUserUseCase(db_session).execute(
        account_id=sample_account_id,
        frequency="monthly",
        next_payday=date(2024, 4, 1),
        net_amount="2000",
        categories=[CategoryDraft("Groceries", "300")],
        bills=[BillDraft("Rent", "1200", 1)],
        actor_user_id=sample_account_id,
    )
    LogSpendingUseCase(db_session).execute(
        account_id=sample_account_id,
        category_id=result.categories[0].id,
        amount="12.30",
        actor_user_id=sample_account_id,
    )

    repo = EventLogRepository(db_session)
    assert [e.event_type for e in repo.list_events(sample_account_id)] == [
        "paycheck_initialized",
        "pay_period_opened",
        "spending_logged",
    ]

    spending = repo.list_events(sample_account_id, event_types=["spending_logged"])
    assert len(spending) == 1
    assert spending[0].payload_json["amount"] == "12.30"
    assert spending[0].actor_user_id == sample_account_id

    assert repo.list_events(sample_account_id, limit=1)[0].event_type == "paycheck_initialized"
    assert repo.list_events(account_id=2) == []
