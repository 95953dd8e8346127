"""
Pytest fixtures for testing
"""
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.pool import StaticPool

from paybudget.infrastructure.db.session import Base
from paybudget.infrastructure.db.models import (
    User, PaycheckModel, CategoryModel, BillModel,
)


def _remap_jsonb() -> None:
    # SQLite doesn't support JSONB: remap to JSON for tests
    for table in Base.metadata.tables.values():
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared by every connection (usable from TestClient threads)"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _remap_jsonb()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Create database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def sample_account_id(db_session):
    """Sample account (user row id=1)"""
    db_session.add(User(id=1, email="owner@example.com"))
    db_session.commit()
    return 1


@pytest.fixture
def make_category(db_session, sample_account_id):
    def _make(name="Groceries", amount="300", type="flexible", priority=1, user_id=None):
        category = CategoryModel(
            user_id=user_id or sample_account_id,
            name=name,
            type=type,
            amount_per_paycheck=Decimal(amount),
            priority=priority,
        )
        db_session.add(category)
        db_session.commit()
        return category
    return _make


@pytest.fixture
def make_bill(db_session, sample_account_id):
    def _make(name="Rent", amount="1200", due_day=1, is_active=True, user_id=None):
        bill = BillModel(
            user_id=user_id or sample_account_id,
            name=name,
            amount=Decimal(amount),
            due_day=due_day,
            frequency="monthly",
            is_active=is_active,
        )
        db_session.add(bill)
        db_session.commit()
        return bill
    return _make


@pytest.fixture
def make_paycheck(db_session, sample_account_id):
    """Bare paycheck row: nothing reserved yet, not initialized"""
    def _make(
        start=date(2024, 3, 1),
        end=date(2024, 4, 1),
        net="2000",
        is_current=True,
        user_id=None,
    ):
        paycheck = PaycheckModel(
            user_id=user_id or sample_account_id,
            pay_date=end,
            period_start_date=start,
            period_end_date=end,
            net_amount=Decimal(net),
            reserved_bills=Decimal("0"),
            reserved_savings=Decimal("0"),
            spendable=Decimal(net),
            is_current=is_current,
        )
        db_session.add(paycheck)
        db_session.commit()
        return paycheck
    return _make
