from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..api.dependencies import get_current_actor, get_store
from ..core.money import to_minor
from ..models.ledger import Actor, MonthKey
from ..schemas.schemas import BacklogPaymentCreate, PaymentCreate, PaymentRead
from ..services import payments as payment_service
from ..services.policy import ensure_self_or_admin
from ..services.store import LedgerStore

router = APIRouter()


@router.get("/", response_model=List[PaymentRead])
def list_payments(
    member_id: Optional[str] = Query(None),
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> List[PaymentRead]:
    if not actor.is_admin:
        member_id = actor.member_id
    if member_id:
        ensure_self_or_admin(actor, member_id)
    return [PaymentRead.from_record(payment) for payment in payment_service.list_payments(store, member_id)]


@router.post("/", response_model=PaymentRead, status_code=201)
def record_payment(
    payload: PaymentCreate,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> PaymentRead:
    payment = payment_service.pay(
        store,
        actor,
        payload.member_id,
        MonthKey(payload.year, payload.month),
        to_minor(payload.amount),
    )
    return PaymentRead.from_record(payment)


@router.post("/backlog", response_model=List[PaymentRead], status_code=201)
def record_backlog_payment(
    payload: BacklogPaymentCreate,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> List[PaymentRead]:
    payments = payment_service.pay_backlog(store, actor, payload.member_id, to_minor(payload.amount))
    return [PaymentRead.from_record(payment) for payment in payments]
