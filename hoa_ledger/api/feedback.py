from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from ..api.dependencies import get_current_actor, get_store
from ..models.ledger import Actor, FeedbackType
from ..schemas.schemas import FeedbackCreate, FeedbackRead
from ..services import feedback as feedback_service
from ..services.store import LedgerStore

router = APIRouter()


@router.get("/", response_model=List[FeedbackRead])
def list_feedback(
    type: Optional[FeedbackType] = Query(None),
    sort: Literal["recent", "votes"] = Query("recent"),
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> List[FeedbackRead]:
    items = feedback_service.list_feedback(store, type=type, sort=sort)
    return [FeedbackRead.from_item(item, actor.id) for item in items]


@router.post("/", response_model=FeedbackRead, status_code=201)
def submit_feedback(
    payload: FeedbackCreate,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> FeedbackRead:
    item = feedback_service.submit_feedback(store, actor, payload.type, payload.title, payload.description)
    return FeedbackRead.from_item(item, actor.id)


@router.post("/{feedback_id}/vote", response_model=FeedbackRead)
def toggle_vote(
    feedback_id: str,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> FeedbackRead:
    return FeedbackRead.from_item(feedback_service.toggle_vote(store, actor, feedback_id), actor.id)


@router.delete("/{feedback_id}", status_code=204)
def delete_feedback(
    feedback_id: str,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> None:
    feedback_service.delete_feedback(store, actor, feedback_id)
