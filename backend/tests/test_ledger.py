from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from makao.models.enums import PaymentStatus
from makao.services.ledger import BalanceSummary, TenantLedgerService, compute_balance, next_due_date


@dataclass
class Terms:
    rent_amount: Decimal
    payment_day: Optional[int] = 1


@dataclass
class Paid:
    amount: Decimal
    payment_date: date
    status: PaymentStatus = PaymentStatus.VERIFIED


def test_balance_zero_after_payment_this_month():
    lease = Terms(Decimal("25000"), payment_day=5)
    summary = compute_balance(lease, [Paid(Decimal("25000"), date(2025, 3, 2))], today=date(2025, 3, 10))

    assert summary.current_balance == Decimal("0")
    assert summary.current_month_paid is True
    assert summary.total_paid == Decimal("25000")


def test_balance_equals_rent_when_unpaid():
    lease = Terms(Decimal("25000"), payment_day=5)
    summary = compute_balance(lease, [Paid(Decimal("25000"), date(2025, 2, 5))], today=date(2025, 3, 1))

    assert summary.current_balance == Decimal("25000")
    assert summary.current_month_paid is False
    assert summary.next_payment_due == date(2025, 3, 5)


def test_pending_and_rejected_payments_do_not_count():
    lease = Terms(Decimal("15000"))
    payments = [
        Paid(Decimal("15000"), date(2025, 3, 1), PaymentStatus.PENDING),
        Paid(Decimal("15000"), date(2025, 3, 2), PaymentStatus.REJECTED),
    ]
    summary = compute_balance(lease, payments, today=date(2025, 3, 3))

    assert summary.current_balance == Decimal("15000")
    assert summary.total_paid == Decimal("0")


def test_completed_payment_counts_as_paid():
    lease = Terms(Decimal("15000"))
    payments = [Paid(Decimal("15000"), date(2025, 3, 1), PaymentStatus.COMPLETED)]

    assert compute_balance(lease, payments, today=date(2025, 3, 3)).current_balance == Decimal("0")


def test_partial_payment_settles_the_month():
    lease = Terms(Decimal("20000"))
    summary = compute_balance(lease, [Paid(Decimal("5000"), date(2025, 6, 1))], today=date(2025, 6, 2))

    assert summary.current_balance == Decimal("0")


def test_same_month_previous_year_is_not_current():
    lease = Terms(Decimal("20000"))
    summary = compute_balance(lease, [Paid(Decimal("20000"), date(2024, 6, 1))], today=date(2025, 6, 2))

    assert summary.current_month_paid is False


def test_next_due_advances_one_month_once_paid():
    today = date(2025, 1, 3)
    assert next_due_date(5, today, current_month_paid=False) == date(2025, 1, 5)
    assert next_due_date(5, today, current_month_paid=True) == date(2025, 2, 5)


def test_next_due_rolls_forward_when_day_has_passed():
    assert next_due_date(5, date(2025, 1, 20), current_month_paid=False) == date(2025, 2, 5)


def test_next_due_clamps_to_short_month():
    assert next_due_date(31, date(2025, 2, 10), current_month_paid=False) == date(2025, 2, 28)
    assert next_due_date(31, date(2025, 1, 31), current_month_paid=True) == date(2025, 2, 28)


def test_next_due_defaults_to_first_of_month():
    assert next_due_date(None, date(2025, 5, 1), current_month_paid=False) == date(2025, 5, 1)
    assert next_due_date(None, date(2025, 5, 2), current_month_paid=False) == date(2025, 6, 1)


@pytest.mark.parametrize("day", range(1, 32))
def test_next_due_never_before_today(day):
    for paid in (False, True):
        for payment_day in (1, 5, 15, 28):
            today = date(2025, 1, day)
            assert next_due_date(payment_day, today, paid) >= today


def test_not_allocated_sentinel():
    summary = BalanceSummary.not_allocated()

    assert summary.has_lease is False
    assert summary.next_payment_due is None
    assert summary.current_balance == Decimal("0")


async def test_summary_for_tenant_without_lease(db, make_user):
    tenant = await make_user()
    lease, summary = await TenantLedgerService(db).summary_for_tenant(tenant.id)

    assert lease is None
    assert summary == BalanceSummary.not_allocated()
