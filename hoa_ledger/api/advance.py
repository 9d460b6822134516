from typing import List

from fastapi import APIRouter, Depends

from ..api.dependencies import get_current_actor, get_store
from ..auth.jwt import require_capability
from ..core.money import from_minor, to_minor
from ..models.ledger import Actor
from ..schemas.schemas import AdvanceCreditCreate, AdvanceCreditRead, AdvanceSummary, PaymentRead, SweepResult
from ..services import advance_credit
from ..services.payments import get_member_or_404
from ..services.policy import ensure_self_or_admin
from ..services.store import LedgerStore

router = APIRouter()


def _summary(store: LedgerStore, member_id: str) -> AdvanceSummary:
    member = get_member_or_404(store, member_id)
    return AdvanceSummary(
        member_id=member.id,
        member_name=member.name,
        apartment=member.apartment,
        balance=from_minor(member.advance_balance),
        months_covered=advance_credit.months_covered(store, member.id),
    )


@router.get("/", response_model=List[AdvanceSummary])
def list_advance_balances(
    store: LedgerStore = Depends(get_store),
    _: Actor = Depends(require_capability("advance:write")),
) -> List[AdvanceSummary]:
    return [_summary(store, member.id) for member in advance_credit.list_balances(store)]


@router.get("/history", response_model=List[AdvanceCreditRead])
def list_advance_history(
    store: LedgerStore = Depends(get_store),
    _: Actor = Depends(require_capability("advance:write")),
) -> List[AdvanceCreditRead]:
    return [AdvanceCreditRead.from_record(record) for record in reversed(store.advance_payments)]


@router.post("/", response_model=AdvanceCreditRead, status_code=201)
def add_advance_credit(
    payload: AdvanceCreditCreate,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> AdvanceCreditRead:
    record = advance_credit.add_credit(
        store,
        actor,
        payload.member_id,
        to_minor(payload.amount),
        payload.source or advance_credit.DIRECT_ADVANCE_SOURCE,
    )
    return AdvanceCreditRead.from_record(record)


@router.get("/{member_id}", response_model=AdvanceSummary)
def get_advance_summary(
    member_id: str,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> AdvanceSummary:
    ensure_self_or_admin(actor, member_id)
    return _summary(store, member_id)


@router.post("/{member_id}/apply", response_model=SweepResult)
def apply_advance_credit(
    member_id: str,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> SweepResult:
    payments = advance_credit.sweep(store, actor, member_id)
    member = get_member_or_404(store, member_id)
    return SweepResult(
        member_id=member.id,
        remaining_balance=from_minor(member.advance_balance),
        payments=[PaymentRead.from_record(payment) for payment in payments],
    )
