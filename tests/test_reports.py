import csv
import io
from datetime import date

import pytest

from hoa_ledger.core.errors import AuthorizationError
from hoa_ledger.models.ledger import MonthKey
from hoa_ledger.services.dues import ensure_dues_up_to_date
from hoa_ledger.services.expenses import add_expense
from hoa_ledger.services.payments import pay
from hoa_ledger.services.rate_changes import set_custom_amount
from hoa_ledger.services.reports import (
    collection_series,
    dashboard_summary,
    expense_category_totals,
    generate_dues_ledger_report,
    member_standings,
    paid_status_counts,
)

from conftest import MONTHLY_FEE, actor_for

MARCH = MonthKey(2025, 2)


def test_dashboard_summary(store, admin, create_member):
    paid_up = create_member()
    behind = create_member(joined=(2025, 1, 10))
    ensure_dues_up_to_date(store)
    pay(store, admin, paid_up.id, MARCH, MONTHLY_FEE)
    pay(store, admin, behind.id, MonthKey(2025, 0), 10000)
    add_expense(store, admin, "Security", 25000, "Staff", spent_on=date(2025, 3, 5))
    add_expense(store, admin, "Pump", 5000, "Maintenance", spent_on=date(2025, 2, 5))

    summary = dashboard_summary(store, admin)

    assert summary.month == MARCH
    assert summary.monthly_collected == MONTHLY_FEE + 10000
    assert summary.total_collected == MONTHLY_FEE + 10000
    assert summary.monthly_expenses == 25000
    assert summary.total_expenses == 30000
    assert summary.net_balance == MONTHLY_FEE + 10000 - 25000
    assert summary.monthly_pending == MONTHLY_FEE
    assert summary.total_pending == 3 * MONTHLY_FEE - 10000


def test_member_standings_and_status(store, admin, create_member):
    paid_up = create_member()
    late = create_member()
    overdue = create_member(joined=(2025, 1, 10))
    ensure_dues_up_to_date(store)
    pay(store, admin, paid_up.id, MARCH, MONTHLY_FEE)

    standings = member_standings(store, admin, "cumulative")

    assert [standing.member.id for standing in standings] == [overdue.id, late.id, paid_up.id]
    assert [standing.status for standing in standings] == ["overdue", "unpaid", "paid"]
    assert standings[0].pending == 3 * MONTHLY_FEE


def test_collection_series_groups_by_payment_month(store, admin, clock, create_member):
    member = create_member(joined=(2025, 1, 10))
    ensure_dues_up_to_date(store)
    clock.set(2025, 2, 20)
    pay(store, admin, member.id, MonthKey(2025, 0), MONTHLY_FEE)
    clock.set(2025, 3, 15)
    pay(store, admin, member.id, MonthKey(2025, 1), MONTHLY_FEE)
    pay(store, admin, member.id, MARCH, 5000)

    series = collection_series(store, admin)

    assert len(series) == 6
    assert series[0].month == MonthKey(2024, 9)
    assert series[-1].month == MARCH
    assert series[-1].label == "Mar 2025"
    assert [point.amount for point in series[-2:]] == [MONTHLY_FEE, MONTHLY_FEE + 5000]
    assert sum(point.amount for point in series[:-2]) == 0


def test_paid_status_counts(store, admin, create_member):
    paid_up = create_member()
    create_member()
    partial = create_member()
    pay(store, admin, paid_up.id, MARCH, MONTHLY_FEE)
    pay(store, admin, partial.id, MARCH, 100)

    counts = paid_status_counts(store, admin)

    assert (counts.paid, counts.unpaid) == (1, 2)


def test_expense_category_totals(store, admin):
    add_expense(store, admin, "Guard", 30000, "Staff", spent_on=date(2025, 3, 1))
    add_expense(store, admin, "Cleaner", 10000, "Staff", spent_on=date(2025, 3, 2))
    add_expense(store, admin, "Bulbs", 10000, "Electrical", spent_on=date(2025, 3, 3))

    totals = expense_category_totals(store, admin)

    assert [(total.category, total.amount, total.count) for total in totals] == [
        ("Staff", 40000, 2),
        ("Electrical", 10000, 1),
    ]
    assert [total.share for total in totals] == [80.0, 20.0]
    assert expense_category_totals(store, admin)[0].share == 80.0


def test_dues_ledger_csv(store, admin, create_member):
    member = create_member(name="Meera")
    pay(store, admin, member.id, MARCH, 10000)
    set_custom_amount(store, admin, member.id, MARCH, 25000)

    report = generate_dues_ledger_report(store, admin)

    assert report.filename == "dues_ledger_2025-03-15.csv"
    rows = list(csv.reader(io.StringIO(report.content)))
    assert rows[0] == [
        "Member",
        "Apartment",
        "Month",
        "Amount Due",
        "Amount Paid",
        "Outstanding",
        "Status",
        "Custom Amount",
    ]
    assert rows[1] == [member.name, member.apartment, "March 2025", "250.00", "100.00", "150.00", "Partial", "Yes"]


@pytest.mark.parametrize(
    "report",
    [dashboard_summary, member_standings, collection_series, paid_status_counts, expense_category_totals],
)
def test_reports_require_admin(store, create_member, report):
    member = create_member()
    with pytest.raises(AuthorizationError):
        report(store, actor_for(member))


def test_generate_report_requires_actor(store):
    with pytest.raises(AuthorizationError):
        generate_dues_ledger_report(store, None)
