import pytest

from hoa_ledger.core.errors import AuthorizationError, ValidationError
from hoa_ledger.models.ledger import AuditAction, ChangeDirection, ChangeScope, MonthKey, PaymentSource
from hoa_ledger.services.advance_credit import add_credit, list_balances, months_covered, sweep
from hoa_ledger.services.dues import ensure_dues_up_to_date
from hoa_ledger.services.rate_changes import apply_change

from conftest import actor_for


def test_sweep_pays_oldest_entries_and_keeps_remainder(store, admin, create_member):
    member = create_member(joined=(2025, 2, 10))
    ensure_dues_up_to_date(store)
    add_credit(store, admin, member.id, 100000)

    payments = sweep(store, admin, member.id)

    assert member.advance_balance == 40000
    assert all(entry.paid for entry in member.dues_history)
    assert len(payments) == 2
    assert all(payment.source == PaymentSource.ADVANCE_CREDIT for payment in payments)
    assert [payment.key for payment in payments] == [MonthKey(2025, 1), MonthKey(2025, 2)]
    applied = [entry for entry in store.audit_log if entry.action == AuditAction.ADVANCE_APPLIED]
    assert len(applied) == 2


def test_sweep_orders_by_numeric_month(store, admin, create_member):
    member = create_member(joined=(2024, 10, 10))
    ensure_dues_up_to_date(store)
    add_credit(store, admin, member.id, 60000)

    payments = sweep(store, admin, member.id)

    assert [payment.key for payment in payments] == [MonthKey(2024, 9), MonthKey(2024, 10)]
    assert not member.find_due(MonthKey(2024, 11)).paid


def test_sweep_with_partial_balance_leaves_entry_partially_paid(store, admin, create_member):
    member = create_member()
    add_credit(store, admin, member.id, 10000)

    sweep(store, admin, member.id)

    entry = member.dues_history[0]
    assert entry.paid_amount == 10000
    assert not entry.paid
    assert member.advance_balance == 0


def test_add_credit_records_history_and_audit(store, admin, create_member):
    member = create_member()

    record = add_credit(store, admin, member.id, 50000, "Cheque 1182")

    assert member.advance_balance == 50000
    assert store.advance_payments == [record]
    assert record.source == "Cheque 1182"
    assert store.audit_log[-1].action == AuditAction.ADVANCE_CREDIT_ADDED
    assert list_balances(store) == [member]


@pytest.mark.parametrize("amount", [0, -500])
def test_add_credit_requires_positive_amount(store, admin, create_member, amount):
    member = create_member()
    with pytest.raises(ValidationError):
        add_credit(store, admin, member.id, amount)


def test_members_cannot_add_credit(store, create_member):
    member = create_member()
    with pytest.raises(AuthorizationError):
        add_credit(store, actor_for(member), member.id, 1000)


def test_months_covered_beyond_outstanding_uses_current_rate(store, admin, create_member):
    member = create_member()
    add_credit(store, admin, member.id, 100000)

    # 300 outstanding, then 700 / 300 more months
    assert months_covered(store, member.id) == 3


def test_months_covered_counts_whole_entries_when_short(store, admin, create_member):
    member = create_member(joined=(2025, 1, 10))
    ensure_dues_up_to_date(store)
    add_credit(store, admin, member.id, 65000)

    assert months_covered(store, member.id) == 2


def test_months_covered_with_zero_rate(store, admin, create_member):
    member = create_member()
    apply_change(
        store,
        admin,
        scope=ChangeScope.GLOBAL,
        direction=ChangeDirection.DECREASE,
        amount=30000,
        effective=MonthKey(2025, 2),
        reason="Waiver",
    )
    add_credit(store, admin, member.id, 5000)

    assert months_covered(store, member.id) == 0
