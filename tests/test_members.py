import pytest

from hoa_ledger.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from hoa_ledger.models.ledger import AuditAction, MonthKey
from hoa_ledger.services.dues import ensure_dues_up_to_date
from hoa_ledger.services.members import (
    delete_member,
    list_members,
    pending_dues,
    register_member,
)
from hoa_ledger.services.payments import pay

from conftest import MONTHLY_FEE, actor_for


def test_register_creates_current_month_entry(store, admin):
    member = register_member(store, admin, name=" Asha Rao ", apartment=" A-101 ", contact="98450 00000")

    assert member.name == "Asha Rao"
    assert member.apartment == "A-101"
    assert [entry.key for entry in member.dues_history] == [MonthKey(2025, 2)]
    assert member.dues_history[0].amount == MONTHLY_FEE
    assert store.audit_log[-1].action == AuditAction.MEMBER_ADDED


def test_apartment_must_be_unique_among_active_members(store, admin):
    first = register_member(store, admin, name="Asha", apartment="A-101")

    with pytest.raises(ConflictError):
        register_member(store, admin, name="Ravi", apartment="a-101 ")

    delete_member(store, admin, first.id)
    replacement = register_member(store, admin, name="Ravi", apartment="A-101")
    assert replacement.active


@pytest.mark.parametrize("name,apartment", [("", "A-1"), ("Asha", "  ")])
def test_name_and_apartment_are_required(store, admin, name, apartment):
    with pytest.raises(ValidationError):
        register_member(store, admin, name=name, apartment=apartment)


def test_members_cannot_register_members(store, create_member):
    member = create_member()
    with pytest.raises(AuthorizationError):
        register_member(store, actor_for(member), name="Guest", apartment="Z-9")


def test_soft_delete_keeps_history_payments_and_audit(store, admin, create_member):
    member = create_member()
    pay(store, admin, member.id, MonthKey(2025, 2), 10000)

    delete_member(store, admin, member.id)

    kept = store.find_member(member.id)
    assert kept is not None
    assert not kept.active
    assert kept.deleted_at == store.now()
    assert kept.dues_history
    assert [payment.member_id for payment in store.payments] == [member.id]
    assert any(entry.details.get("memberId") == member.id for entry in store.audit_log)
    assert list_members(store) == []
    assert list_members(store, include_inactive=True) == [kept]


def test_hard_delete_drops_member_but_not_their_records(store, admin, create_member):
    member = create_member()
    pay(store, admin, member.id, MonthKey(2025, 2), 10000)

    delete_member(store, admin, member.id, hard=True)

    assert store.find_member(member.id) is None
    assert len(store.payments) == 1
    assert store.audit_log[-1].action == AuditAction.MEMBER_DELETED
    assert store.audit_log[-1].details["hard"] is True


def test_deleting_twice_is_not_found(store, admin, create_member):
    member = create_member()
    delete_member(store, admin, member.id)
    with pytest.raises(NotFoundError):
        delete_member(store, admin, member.id)


def test_pending_dues_views(store, admin, create_member):
    member = create_member(joined=(2025, 1, 5))
    ensure_dues_up_to_date(store)
    pay(store, admin, member.id, MonthKey(2025, 2), 10000)

    assert pending_dues(store, member, "current") == 20000
    assert pending_dues(store, member, "cumulative") == 80000
    assert pending_dues(store, member, "current", MonthKey(2024, 0)) == 0
    with pytest.raises(ValidationError):
        pending_dues(store, member, "yearly")
