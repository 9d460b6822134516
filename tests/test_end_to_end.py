from decimal import Decimal

import pytest

from hoa_ledger.core.errors import ValidationError
from hoa_ledger.core.money import format_minor, from_minor, to_minor
from hoa_ledger.models.ledger import ChangeDirection, ChangeScope, MonthKey, iter_months
from hoa_ledger.services.dues import ensure_dues_up_to_date
from hoa_ledger.services.members import register_member
from hoa_ledger.services.payments import pay
from hoa_ledger.services.rate_changes import apply_change
from hoa_ledger.services.reports import dashboard_summary

from conftest import MONTHLY_FEE


def test_resident_lifecycle_across_a_rate_change(store, admin, clock):
    member = register_member(store, admin, name="Asha Rao", apartment="A-101")
    assert [(entry.key, entry.amount) for entry in member.dues_history] == [(MonthKey(2025, 2), MONTHLY_FEE)]

    pay(store, admin, member.id, MonthKey(2025, 2), MONTHLY_FEE)
    assert dashboard_summary(store, admin).monthly_collected == MONTHLY_FEE

    apply_change(
        store,
        admin,
        scope=ChangeScope.GLOBAL,
        direction=ChangeDirection.INCREASE,
        amount=5000,
        effective=MonthKey(2025, 3),
        reason="Water tanker charges",
    )
    assert member.find_due(MonthKey(2025, 2)).amount == MONTHLY_FEE
    assert member.find_due(MonthKey(2025, 2)).paid

    clock.set(2025, 4)
    ensure_dues_up_to_date(store)

    april = member.find_due(MonthKey(2025, 3))
    assert april.amount == 35000
    assert not april.paid
    assert dashboard_summary(store, admin).monthly_collected == 0


def test_money_conversions():
    assert to_minor("300") == 30000
    assert to_minor(Decimal("12.345")) == 1235
    assert from_minor(1235) == Decimal("12.35")
    assert format_minor(30000) == "₹300.00"


def test_month_keys_order_numerically_and_roll_over():
    assert MonthKey.parse("2024-11").next() == MonthKey(2025, 0)
    assert MonthKey(2025, 0).previous() == MonthKey(2024, 11)
    assert MonthKey(2024, 10) < MonthKey(2024, 11) < MonthKey(2025, 0)
    assert MonthKey(2025, 2).as_marker() == "2025-2"
    assert list(iter_months(MonthKey(2024, 11), MonthKey(2025, 1))) == [
        MonthKey(2024, 11),
        MonthKey(2025, 0),
        MonthKey(2025, 1),
    ]
    with pytest.raises(ValidationError):
        MonthKey(2025, 12)
