import pytest

from hoa_ledger.core.errors import AuthorizationError, NotFoundError, ValidationError
from hoa_ledger.models.ledger import AuditAction, MonthKey, PaymentSource
from hoa_ledger.services.dues import ensure_dues_up_to_date
from hoa_ledger.services.members import delete_member
from hoa_ledger.services.payments import list_payments, pay, pay_backlog

from conftest import MONTHLY_FEE, actor_for

MARCH = MonthKey(2025, 2)


def test_full_payment_marks_entry_paid(store, admin, create_member):
    member = create_member()

    payment = pay(store, admin, member.id, MARCH, MONTHLY_FEE)

    entry = member.find_due(MARCH)
    assert entry.paid
    assert entry.paid_amount == MONTHLY_FEE
    assert payment.source == PaymentSource.DIRECT
    assert payment.recorded_by == admin.id
    assert store.payments[0] == payment
    assert store.audit_log[-1].action == AuditAction.PAYMENT_RECORDED


def test_partial_payments_accumulate(store, admin, create_member):
    member = create_member()

    pay(store, admin, member.id, MARCH, 10000)
    entry = member.find_due(MARCH)
    assert not entry.paid
    assert entry.outstanding == 20000

    second = pay(store, admin, member.id, MARCH, 20000)
    assert entry.paid
    assert store.payments[0] == second
    assert len(store.payments) == 2


def test_overpayment_is_rejected_without_side_effects(store, admin, create_member):
    member = create_member()
    pay(store, admin, member.id, MARCH, 25000)
    audit_size = len(store.audit_log)

    with pytest.raises(ValidationError):
        pay(store, admin, member.id, MARCH, 5001)

    entry = store.find_member(member.id).find_due(MARCH)
    assert entry.paid_amount == 25000
    assert entry.paid_amount <= entry.amount
    assert len(store.payments) == 1
    assert len(store.audit_log) == audit_size


@pytest.mark.parametrize("amount", [0, -100])
def test_non_positive_amount_is_rejected(store, admin, create_member, amount):
    member = create_member()
    with pytest.raises(ValidationError):
        pay(store, admin, member.id, MARCH, amount)


def test_unknown_member_or_month(store, admin, create_member):
    member = create_member()
    with pytest.raises(NotFoundError):
        pay(store, admin, "nobody", MARCH, 100)
    with pytest.raises(NotFoundError):
        pay(store, admin, member.id, MonthKey(2024, 0), 100)


def test_inactive_member_cannot_pay(store, admin, create_member):
    member = create_member()
    delete_member(store, admin, member.id)
    with pytest.raises(ValidationError):
        pay(store, admin, member.id, MARCH, 100)


def test_members_cannot_record_payments(store, create_member):
    member = create_member()
    with pytest.raises(AuthorizationError):
        pay(store, actor_for(member), member.id, MARCH, 100)


def test_backlog_payment_settles_oldest_first(store, admin, create_member):
    member = create_member(joined=(2025, 1, 10))
    ensure_dues_up_to_date(store)

    payments = pay_backlog(store, admin, member.id, 45000)

    assert [payment.key for payment in payments] == [MonthKey(2025, 0), MonthKey(2025, 1)]
    assert [payment.amount for payment in payments] == [30000, 15000]
    assert member.find_due(MonthKey(2025, 0)).paid
    assert member.find_due(MonthKey(2025, 1)).outstanding == 15000
    assert member.find_due(MARCH).paid_amount == 0


def test_backlog_payment_cannot_exceed_total_outstanding(store, admin, create_member):
    member = create_member(joined=(2025, 1, 10))
    ensure_dues_up_to_date(store)

    with pytest.raises(ValidationError):
        pay_backlog(store, admin, member.id, 3 * MONTHLY_FEE + 1)
    assert store.payments == []


def test_list_payments_filters_by_member(store, admin, create_member):
    first = create_member()
    second = create_member()
    pay(store, admin, first.id, MARCH, 100)
    pay(store, admin, second.id, MARCH, 200)

    assert [payment.amount for payment in list_payments(store)] == [200, 100]
    assert [payment.amount for payment in list_payments(store, first.id)] == [100]
