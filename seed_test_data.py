"""
Seed demo data for demo@paybudget.local.
Run:  python seed_test_data.py
"""
import sys
from datetime import date, timedelta
from decimal import Decimal

# ── bootstrap ────────────────────────────────────────────────────
from paybudget.infrastructure.db.session import get_session_factory
from paybudget.infrastructure.db.models import User, BillPayment, CategoryModel
from paybudget.application.paychecks import (
    OnboardUserUseCase, CategoryDraft, BillDraft, get_pay_schedule,
)
from paybudget.application.common import require_current_paycheck
from paybudget.application.bills import MarkBillPaidUseCase
from paybudget.application.spending import LogSpendingUseCase
from paybudget.config import get_settings
from paybudget.utils.money import format_money

DEMO_EMAIL = "demo@paybudget.local"
CURRENCY = get_settings().CURRENCY

db = get_session_factory()()

user = db.query(User).filter(User.email == DEMO_EMAIL).first()
if not user:
    user = User(email=DEMO_EMAIL)
    db.add(user)
    db.commit()
    print(f"Created user {DEMO_EMAIL} (id={user.id})")

if get_pay_schedule(db, user.id):
    print("Demo user is already onboarded, nothing to do")
    sys.exit(0)

# ═══════════════════════════════════════════════════════════════
# Phase 1: schedule, categories, bills, first pay period
# ═══════════════════════════════════════════════════════════════
result = OnboardUserUseCase(db).execute(
    account_id=user.id,
    frequency="biweekly",
    next_payday=date.today() + timedelta(days=10),
    net_amount=Decimal("2400.00"),
    categories=[
        CategoryDraft("Groceries", "350.00", "flexible"),
        CategoryDraft("Gas", "120.00", "flexible"),
        CategoryDraft("Dining out", "90.00", "flexible"),
        CategoryDraft("Gym", "45.00", "fixed"),
        CategoryDraft("Emergency fund", "200.00", "savings"),
    ],
    bills=[
        BillDraft("Rent", "1100.00", 1),
        BillDraft("Phone", "65.00", 12),
        BillDraft("Internet", "70.00", 18),
        BillDraft("Streaming", "15.99", 24),
        BillDraft("Car insurance", "140.00", 31),
    ],
    actor_user_id=user.id,
)
paycheck = result.paycheck
print(
    f"Paycheck #{paycheck.id} [{paycheck.period_start_date}, {paycheck.period_end_date}): "
    f"bills {format_money(paycheck.reserved_bills, CURRENCY)}, "
    f"allocated {format_money(paycheck.reserved_savings, CURRENCY)}, "
    f"spendable {format_money(paycheck.spendable, CURRENCY)}"
)

# ═══════════════════════════════════════════════════════════════
# Phase 2: some activity in the current period
# ═══════════════════════════════════════════════════════════════
first_payment = db.query(BillPayment).filter(
    BillPayment.paycheck_id == paycheck.id,
).order_by(BillPayment.due_date.asc()).first()
if first_payment:
    MarkBillPaidUseCase(db).execute(
        account_id=user.id,
        bill_payment_id=first_payment.id,
        actual_amount=first_payment.planned_amount,
        actor_user_id=user.id,
    )
    print(f"Paid bill payment #{first_payment.id} due {first_payment.due_date}")

categories = {c.name: c.id for c in db.query(CategoryModel).filter_by(user_id=user.id).all()}
spending = [
    ("Groceries", "82.45", "Weekly shop"),
    ("Groceries", "23.10", "Farmers market"),
    ("Gas", "48.00", None),
    ("Dining out", "36.75", "Pizza night"),
]
log_spending = LogSpendingUseCase(db)
for name, amount, description in spending:
    log_spending.execute(
        account_id=user.id,
        category_id=categories[name],
        amount=amount,
        description=description,
        transaction_date=max(paycheck.period_start_date, date.today()),
        actor_user_id=user.id,
    )
print(f"Logged {len(spending)} spending transactions")

paycheck = require_current_paycheck(db, user.id)
print(f"Done. Spendable: {format_money(paycheck.spendable, CURRENCY)}")
db.close()
