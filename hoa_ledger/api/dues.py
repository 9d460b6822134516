from typing import List

from fastapi import APIRouter, Depends

from ..api.dependencies import get_current_actor, get_store
from ..auth.jwt import require_capability
from ..core.money import from_minor, to_minor
from ..models.ledger import Actor, MonthKey
from ..schemas.schemas import CustomAmountUpdate, DueChangeCreate, DueChangeRead, DueEntryRead, DuesCheckResult
from ..services import rate_changes
from ..services.dues import ensure_dues_up_to_date
from ..services.payments import get_member_or_404
from ..services.policy import ensure_self_or_admin
from ..services.store import LedgerStore

router = APIRouter()


@router.post("/check", response_model=DuesCheckResult)
def run_dues_check(
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(require_capability("dues:write")),
) -> DuesCheckResult:
    created = ensure_dues_up_to_date(store, actor=actor)
    marker = store.last_processed
    return DuesCheckResult(created=created, last_processed=marker.as_marker() if marker else None)


@router.get("/changes", response_model=List[DueChangeRead])
def list_due_changes(
    store: LedgerStore = Depends(get_store),
    _: Actor = Depends(require_capability("dues:write")),
) -> List[DueChangeRead]:
    return [DueChangeRead.from_record(change) for change in reversed(store.due_changes)]


@router.post("/changes", response_model=DueChangeRead, status_code=201)
def create_due_change(
    payload: DueChangeCreate,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> DueChangeRead:
    change = rate_changes.apply_change(
        store,
        actor,
        scope=payload.scope,
        direction=payload.direction,
        amount=to_minor(payload.amount),
        effective=MonthKey(payload.effective_year, payload.effective_month),
        reason=payload.reason,
        member_ids=payload.member_ids,
    )
    return DueChangeRead.from_record(change)


@router.put("/{member_id}/custom", response_model=DueEntryRead)
def set_custom_amount(
    member_id: str,
    payload: CustomAmountUpdate,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> DueEntryRead:
    entry = rate_changes.set_custom_amount(
        store,
        actor,
        member_id,
        MonthKey(payload.year, payload.month),
        to_minor(payload.amount),
    )
    return DueEntryRead.from_entry(entry)


@router.get("/{member_id}/rate")
def get_effective_rate(
    member_id: str,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> dict:
    ensure_self_or_admin(actor, member_id)
    member = get_member_or_404(store, member_id)
    return {
        "member_id": member.id,
        "base": from_minor(store.monthly_fee),
        "adjustment": from_minor(rate_changes.get_active_adjustment(store, member.id)),
        "rate": from_minor(rate_changes.effective_rate(store, member.id)),
    }
