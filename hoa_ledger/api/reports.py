from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Response

from ..api.dependencies import get_current_actor, get_store, parse_month_key
from ..core.money import from_minor
from ..models.ledger import Actor
from ..schemas.schemas import (
    CategoryTotalRead,
    CollectionPointRead,
    DashboardRead,
    MemberStandingRead,
    PaidStatusRead,
)
from ..services import reports as report_service
from ..services.store import LedgerStore

router = APIRouter()


def _csv_response(filename: str, content: str) -> Response:
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "Cache-Control": "no-store",
    }
    return Response(content=content, media_type="text/csv", headers=headers)


@router.get("/dashboard", response_model=DashboardRead)
def get_dashboard(
    month: Optional[str] = Query(None, description="<year>-<month 0-11>"),
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> DashboardRead:
    summary = report_service.dashboard_summary(store, actor, parse_month_key(month) if month else None)
    return DashboardRead(
        year=summary.month.year,
        month=summary.month.month,
        monthly_collected=from_minor(summary.monthly_collected),
        total_collected=from_minor(summary.total_collected),
        monthly_expenses=from_minor(summary.monthly_expenses),
        total_expenses=from_minor(summary.total_expenses),
        net_balance=from_minor(summary.net_balance),
        monthly_pending=from_minor(summary.monthly_pending),
        total_pending=from_minor(summary.total_pending),
    )


@router.get("/pending", response_model=List[MemberStandingRead])
def get_member_standings(
    view: Literal["current", "cumulative"] = Query("current"),
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> List[MemberStandingRead]:
    return [
        MemberStandingRead(
            member_id=standing.member.id,
            name=standing.member.name,
            apartment=standing.member.apartment,
            pending=from_minor(standing.pending),
            unpaid_months=standing.unpaid_months,
            status=standing.status,
        )
        for standing in report_service.member_standings(store, actor, view)
    ]


@router.get("/collections", response_model=List[CollectionPointRead])
def get_collection_series(
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> List[CollectionPointRead]:
    return [
        CollectionPointRead(
            year=point.month.year,
            month=point.month.month,
            label=point.label,
            amount=from_minor(point.amount),
        )
        for point in report_service.collection_series(store, actor)
    ]


@router.get("/paid-status", response_model=PaidStatusRead)
def get_paid_status(
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> PaidStatusRead:
    counts = report_service.paid_status_counts(store, actor)
    return PaidStatusRead(year=counts.month.year, month=counts.month.month, paid=counts.paid, unpaid=counts.unpaid)


@router.get("/expense-categories", response_model=List[CategoryTotalRead])
def get_expense_categories(
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> List[CategoryTotalRead]:
    return [
        CategoryTotalRead(
            category=bucket.category,
            amount=from_minor(bucket.amount),
            count=bucket.count,
            share=bucket.share,
        )
        for bucket in report_service.expense_category_totals(store, actor)
    ]


@router.get("/dues-ledger.csv")
def export_dues_ledger(
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> Response:
    report = report_service.generate_dues_ledger_report(store, actor)
    return _csv_response(report.filename, report.content)
