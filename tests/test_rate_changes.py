import pytest

from hoa_ledger.core.errors import AuthorizationError, NotFoundError, ValidationError
from hoa_ledger.models.ledger import AuditAction, ChangeDirection, ChangeScope, MonthKey, PaymentSource
from hoa_ledger.services.dues import ensure_dues_up_to_date
from hoa_ledger.services.payments import pay
from hoa_ledger.services.rate_changes import (
    RATE_DECREASE_REFUND_SOURCE,
    apply_change,
    effective_rate,
    get_active_adjustment,
    set_custom_amount,
)

from conftest import MONTHLY_FEE, actor_for


def _change(store, actor, **overrides):
    params = {
        "scope": ChangeScope.GLOBAL,
        "direction": ChangeDirection.INCREASE,
        "amount": 5000,
        "effective": MonthKey(2025, 0),
        "reason": "Lift maintenance",
    }
    params.update(overrides)
    return apply_change(store, actor, **params)


def test_global_decrease_within_base_succeeds(store, admin, create_member):
    member = create_member(joined=(2025, 1, 5))
    ensure_dues_up_to_date(store)

    change = _change(store, admin, direction=ChangeDirection.DECREASE, amount=5000)

    assert change.old_amount == MONTHLY_FEE
    assert change.new_amount == 25000
    assert [entry.amount for entry in member.dues_history] == [25000, 25000, 25000]
    assert store.audit_log[-1].action == AuditAction.DUE_DECREASE_GLOBAL


def test_global_decrease_below_zero_is_rejected(store, admin, create_member):
    member = create_member(joined=(2025, 1, 5))

    with pytest.raises(ValidationError):
        _change(store, admin, direction=ChangeDirection.DECREASE, amount=35000)

    assert store.due_changes == []
    assert store.find_member(member.id).dues_history[0].amount == MONTHLY_FEE


def test_future_increase_leaves_past_entries_alone(store, admin, create_member):
    member = create_member(joined=(2025, 1, 5))
    ensure_dues_up_to_date(store)

    _change(store, admin, effective=MonthKey(2025, 2))

    amounts = {entry.key: entry.amount for entry in member.dues_history}
    assert amounts[MonthKey(2025, 0)] == MONTHLY_FEE
    assert amounts[MonthKey(2025, 1)] == MONTHLY_FEE
    assert amounts[MonthKey(2025, 2)] == 35000


def test_custom_amount_entries_are_skipped(store, admin, create_member):
    member = create_member(joined=(2025, 1, 5))
    ensure_dues_up_to_date(store)
    set_custom_amount(store, admin, member.id, MonthKey(2025, 2), 20000)

    _change(store, admin)

    amounts = {entry.key: entry.amount for entry in member.dues_history}
    assert amounts[MonthKey(2025, 0)] == 35000
    assert amounts[MonthKey(2025, 1)] == 35000
    assert amounts[MonthKey(2025, 2)] == 20000
    assert member.find_due(MonthKey(2025, 2)).custom_amount


def test_increase_reopens_a_paid_entry(store, admin, create_member):
    member = create_member()
    pay(store, admin, member.id, MonthKey(2025, 2), MONTHLY_FEE)
    assert member.dues_history[0].paid

    _change(store, admin, effective=MonthKey(2025, 2))

    entry = member.dues_history[0]
    assert entry.amount == 35000
    assert entry.paid_amount == MONTHLY_FEE
    assert not entry.paid
    assert entry.outstanding == 5000


def test_individual_decrease_checks_each_members_current_rate(store, admin, create_member):
    raised = create_member()
    plain = create_member()
    _change(store, admin, scope=ChangeScope.INDIVIDUAL, member_ids=[raised.id], amount=10000)

    change = _change(
        store,
        admin,
        scope=ChangeScope.INDIVIDUAL,
        member_ids=[raised.id],
        direction=ChangeDirection.DECREASE,
        amount=35000,
    )
    assert change.old_amount == 40000
    assert change.new_amount == 5000

    with pytest.raises(ValidationError):
        _change(
            store,
            admin,
            scope=ChangeScope.INDIVIDUAL,
            member_ids=[plain.id],
            direction=ChangeDirection.DECREASE,
            amount=35000,
        )


def test_individual_change_only_touches_listed_members(store, admin, create_member):
    target = create_member()
    other = create_member()

    _change(store, admin, scope=ChangeScope.INDIVIDUAL, member_ids=[target.id], effective=MonthKey(2025, 2))

    assert target.dues_history[0].amount == 35000
    assert other.dues_history[0].amount == MONTHLY_FEE
    assert store.audit_log[-1].action == AuditAction.DUE_INCREASE_INDIVIDUAL
    assert store.audit_log[-1].details["memberIds"] == [target.id]


def test_active_adjustment_nets_applicable_changes(store, admin, create_member):
    member = create_member()
    _change(store, admin, amount=5000, effective=MonthKey(2025, 0))
    _change(store, admin, direction=ChangeDirection.DECREASE, amount=2000, effective=MonthKey(2025, 1))
    _change(store, admin, amount=9000, effective=MonthKey(2025, 5))

    assert get_active_adjustment(store, member.id) == 3000
    assert get_active_adjustment(store, member.id, MonthKey(2025, 5)) == 12000
    assert get_active_adjustment(store, member.id, MonthKey(2024, 11)) == 0
    assert effective_rate(store, member.id) == 33000


@pytest.mark.parametrize(
    "overrides,error",
    [
        ({"reason": "   "}, ValidationError),
        ({"amount": 0}, ValidationError),
        ({"scope": ChangeScope.INDIVIDUAL, "member_ids": []}, ValidationError),
        ({"scope": ChangeScope.INDIVIDUAL, "member_ids": ["missing"]}, NotFoundError),
    ],
)
def test_invalid_changes_are_rejected(store, admin, overrides, error):
    with pytest.raises(error):
        _change(store, admin, **overrides)
    assert store.due_changes == []


def test_members_cannot_change_rates(store, create_member):
    member = create_member()
    with pytest.raises(AuthorizationError):
        _change(store, actor_for(member))


def test_custom_amount_cannot_drop_below_paid(store, admin, create_member):
    member = create_member()
    pay(store, admin, member.id, MonthKey(2025, 2), 20000)

    with pytest.raises(ValidationError):
        set_custom_amount(store, admin, member.id, MonthKey(2025, 2), 15000)

    entry = set_custom_amount(store, admin, member.id, MonthKey(2025, 2), 20000)
    assert entry.paid
    assert store.audit_log[-1].action == AuditAction.DUE_CUSTOM_AMOUNT


def test_decrease_on_a_paid_entry_refunds_the_excess_as_credit(store, admin, create_member):
    member = create_member()
    pay(store, admin, member.id, MonthKey(2025, 2), MONTHLY_FEE)

    _change(store, admin, direction=ChangeDirection.DECREASE, amount=5000, effective=MonthKey(2025, 2))

    entry = member.find_due(MonthKey(2025, 2))
    assert entry.amount == 25000
    assert entry.paid_amount == 25000
    assert entry.paid
    assert member.advance_balance == 5000
    refund = store.advance_payments[-1]
    assert (refund.amount, refund.source) == (5000, RATE_DECREASE_REFUND_SOURCE)
    assert AuditAction.ADVANCE_CREDIT_ADDED in [item.action for item in store.audit_log]


def test_decrease_on_a_partly_paid_entry_keeps_paid_within_amount(store, admin, create_member):
    member = create_member()
    pay(store, admin, member.id, MonthKey(2025, 2), 20000)

    _change(store, admin, direction=ChangeDirection.DECREASE, amount=15000, effective=MonthKey(2025, 2))

    entry = member.find_due(MonthKey(2025, 2))
    assert (entry.amount, entry.paid_amount) == (15000, 15000)
    assert entry.paid
    assert member.advance_balance == 5000
    assert [payment.source for payment in store.payments] == [PaymentSource.DIRECT]


def test_generated_entries_match_stored_entries_after_stacked_decreases(store, admin, clock, create_member):
    member = create_member()
    march = MonthKey(2025, 2)
    _change(store, admin, direction=ChangeDirection.DECREASE, amount=20000, effective=march)
    _change(store, admin, direction=ChangeDirection.DECREASE, amount=20000, effective=march)
    _change(store, admin, amount=5000, effective=march)
    assert member.find_due(march).amount == 5000

    clock.set(2025, 4)
    ensure_dues_up_to_date(store)

    assert member.find_due(MonthKey(2025, 3)).amount == 5000
    assert effective_rate(store, member.id) == 5000


def test_multi_member_change_has_no_single_before_and_after(store, admin, create_member):
    first = create_member()
    second = create_member()

    change = _change(store, admin, scope=ChangeScope.INDIVIDUAL, member_ids=[first.id, second.id])

    assert change.old_amount is None
    assert change.new_amount is None
    single = _change(store, admin, scope=ChangeScope.INDIVIDUAL, member_ids=[first.id], amount=1000)
    assert (single.old_amount, single.new_amount) == (35000, 36000)
