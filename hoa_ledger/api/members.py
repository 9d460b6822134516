from typing import List, Literal

from fastapi import APIRouter, Depends, Query

from ..api.dependencies import get_current_actor, get_store
from ..auth.jwt import require_capability
from ..core.money import from_minor
from ..models.ledger import Actor
from ..schemas.schemas import MemberCreate, MemberRead, PendingDuesRead
from ..services import members as member_service
from ..services.payments import get_member_or_404
from ..services.policy import ensure_self_or_admin
from ..services.store import LedgerStore

router = APIRouter()


@router.get("/", response_model=List[MemberRead])
def list_members(
    include_inactive: bool = Query(False),
    store: LedgerStore = Depends(get_store),
    _: Actor = Depends(require_capability("members:write")),
) -> List[MemberRead]:
    return [MemberRead.from_member(member) for member in member_service.list_members(store, include_inactive)]


@router.post("/", response_model=MemberRead, status_code=201)
def create_member(
    payload: MemberCreate,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> MemberRead:
    member = member_service.register_member(
        store,
        actor,
        name=payload.name,
        apartment=payload.apartment,
        contact=payload.contact,
        email=payload.email,
    )
    return MemberRead.from_member(member)


@router.get("/{member_id}", response_model=MemberRead)
def get_member(
    member_id: str,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> MemberRead:
    ensure_self_or_admin(actor, member_id)
    return MemberRead.from_member(get_member_or_404(store, member_id))


@router.get("/{member_id}/pending", response_model=PendingDuesRead)
def get_pending_dues(
    member_id: str,
    view: Literal["current", "cumulative"] = Query("current"),
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> PendingDuesRead:
    ensure_self_or_admin(actor, member_id)
    member = get_member_or_404(store, member_id)
    pending = member_service.pending_dues(store, member, view)
    return PendingDuesRead(member_id=member.id, view=view, pending=from_minor(pending))


@router.delete("/{member_id}", response_model=MemberRead)
def delete_member(
    member_id: str,
    hard: bool = Query(False),
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> MemberRead:
    return MemberRead.from_member(member_service.delete_member(store, actor, member_id, hard=hard))
