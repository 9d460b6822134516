from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..constants import COLLECTION_SERIES_MONTHS
from ..core.money import from_minor
from ..models.ledger import Actor, Member, MonthKey
from .members import pending_dues
from .policy import authorize
from .store import LedgerStore

OVERDUE_MONTHS = 2


@dataclass
class CsvReport:
    filename: str
    content: str


@dataclass
class DashboardSummary:
    month: MonthKey
    monthly_collected: int
    total_collected: int
    monthly_expenses: int
    total_expenses: int
    net_balance: int
    monthly_pending: int
    total_pending: int


@dataclass
class MemberStanding:
    member: Member
    pending: int
    unpaid_months: int

    @property
    def status(self) -> str:
        if self.pending == 0:
            return "paid"
        if self.unpaid_months >= OVERDUE_MONTHS:
            return "overdue"
        return "unpaid"


@dataclass
class CollectionPoint:
    month: MonthKey
    amount: int

    @property
    def label(self) -> str:
        return self.month.short_label


@dataclass
class PaidStatusCounts:
    month: MonthKey
    paid: int = 0
    unpaid: int = 0


@dataclass
class CategoryTotal:
    category: str
    amount: int
    count: int = 0
    share: float = field(default=0.0)


def _render_csv(headers: List[str], rows: Iterable[Iterable[str]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(row)
    return output.getvalue()


def dashboard_summary(store: LedgerStore, actor: Optional[Actor], month: Optional[MonthKey] = None) -> DashboardSummary:
    authorize(actor, "reports:read")
    month = month or store.current_month()
    members = store.active_members()

    monthly_collected = sum(payment.amount for payment in store.payments if month.contains(payment.date))
    total_collected = sum(payment.amount for payment in store.payments)
    monthly_expenses = sum(expense.amount for expense in store.expenses if month.contains(expense.spent_on))
    total_expenses = sum(expense.amount for expense in store.expenses)

    return DashboardSummary(
        month=month,
        monthly_collected=monthly_collected,
        total_collected=total_collected,
        monthly_expenses=monthly_expenses,
        total_expenses=total_expenses,
        net_balance=monthly_collected - monthly_expenses,
        monthly_pending=sum(pending_dues(store, member, "current", month) for member in members),
        total_pending=sum(pending_dues(store, member, "cumulative") for member in members),
    )


def member_standings(
    store: LedgerStore,
    actor: Optional[Actor],
    view: str = "current",
    as_of: Optional[MonthKey] = None,
) -> List[MemberStanding]:
    """Active members with their pending dues, largest balance first."""
    authorize(actor, "reports:read")
    standings = [
        MemberStanding(
            member=member,
            pending=pending_dues(store, member, view, as_of),
            unpaid_months=len(member.unpaid_dues()),
        )
        for member in store.active_members()
    ]
    return sorted(standings, key=lambda standing: standing.pending, reverse=True)


def collection_series(
    store: LedgerStore,
    actor: Optional[Actor],
    months: int = COLLECTION_SERIES_MONTHS,
    end: Optional[MonthKey] = None,
) -> List[CollectionPoint]:
    """Collections grouped by the month the payment was made, oldest first."""
    authorize(actor, "reports:read")
    key = end or store.current_month()
    keys = [key]
    for _ in range(months - 1):
        key = key.previous()
        keys.append(key)
    totals: Dict[MonthKey, int] = {key: 0 for key in reversed(keys)}
    for payment in store.payments:
        paid_in = MonthKey.from_date(payment.date)
        if paid_in in totals:
            totals[paid_in] += payment.amount
    return [CollectionPoint(month=key, amount=amount) for key, amount in totals.items()]


def paid_status_counts(store: LedgerStore, actor: Optional[Actor], month: Optional[MonthKey] = None) -> PaidStatusCounts:
    authorize(actor, "reports:read")
    counts = PaidStatusCounts(month=month or store.current_month())
    for member in store.active_members():
        entry = member.find_due(counts.month)
        if entry is None:
            continue
        if entry.paid or entry.paid_amount >= entry.amount:
            counts.paid += 1
        else:
            counts.unpaid += 1
    return counts


def expense_category_totals(store: LedgerStore, actor: Optional[Actor]) -> List[CategoryTotal]:
    authorize(actor, "reports:read")
    totals: Dict[str, CategoryTotal] = {}
    for expense in store.expenses:
        bucket = totals.setdefault(expense.category, CategoryTotal(category=expense.category, amount=0))
        bucket.amount += expense.amount
        bucket.count += 1
    grand_total = sum(bucket.amount for bucket in totals.values())
    for bucket in totals.values():
        bucket.share = round(bucket.amount * 100 / grand_total, 1) if grand_total else 0.0
    return sorted(totals.values(), key=lambda bucket: bucket.amount, reverse=True)


def generate_dues_ledger_report(store: LedgerStore, actor: Optional[Actor]) -> CsvReport:
    authorize(actor, "reports:read")
    headers = [
        "Member",
        "Apartment",
        "Month",
        "Amount Due",
        "Amount Paid",
        "Outstanding",
        "Status",
        "Custom Amount",
    ]
    rows: List[List[str]] = []
    for member in sorted(store.active_members(), key=lambda item: item.apartment):
        for entry in sorted(member.dues_history, key=lambda item: item.key):
            if entry.paid:
                status = "Paid"
            elif entry.paid_amount > 0:
                status = "Partial"
            else:
                status = "Unpaid"
            rows.append(
                [
                    member.name,
                    member.apartment,
                    entry.key.label,
                    f"{from_minor(entry.amount):.2f}",
                    f"{from_minor(entry.paid_amount):.2f}",
                    f"{from_minor(entry.outstanding):.2f}",
                    status,
                    "Yes" if entry.custom_amount else "No",
                ]
            )

    filename = f"dues_ledger_{store.today().isoformat()}.csv"
    return CsvReport(filename=filename, content=_render_csv(headers, rows))
