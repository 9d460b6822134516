from __future__ import annotations

from typing import List, Optional

from ..core.errors import AuthorizationError, NotFoundError, ValidationError
from ..models.ledger import Actor, AuditAction, FeedbackItem, FeedbackType
from . import audit
from .policy import authorize, has_capability
from .store import LedgerStore


def _get_item_or_404(store: LedgerStore, feedback_id: str) -> FeedbackItem:
    item = next((entry for entry in store.feedback if entry.id == feedback_id), None)
    if not item:
        raise NotFoundError("Feedback not found", feedback_id=feedback_id)
    return item


def submit_feedback(
    store: LedgerStore,
    actor: Optional[Actor],
    type: FeedbackType,
    title: str,
    description: str,
) -> FeedbackItem:
    actor = authorize(actor, "feedback:write")
    title = (title or "").strip()
    description = (description or "").strip()
    if not title or not description:
        raise ValidationError("Feedback title and description are required.")

    with store.transaction():
        item = FeedbackItem(
            type=type,
            title=title,
            description=description,
            author=actor.display_name,
            author_id=actor.id,
            role=actor.role,
            date=store.now(),
        )
        store.feedback.append(item)
    return item


def toggle_vote(store: LedgerStore, actor: Optional[Actor], feedback_id: str) -> FeedbackItem:
    actor = authorize(actor, "feedback:vote")
    with store.transaction():
        item = _get_item_or_404(store, feedback_id)
        if actor.id in item.voted_by:
            item.voted_by.remove(actor.id)
            item.votes -= 1
        else:
            item.voted_by.append(actor.id)
            item.votes += 1
    return item


def delete_feedback(store: LedgerStore, actor: Optional[Actor], feedback_id: str) -> FeedbackItem:
    """Admins may delete any item; members only their own."""
    actor = authorize(actor, "feedback:write")
    with store.transaction():
        item = _get_item_or_404(store, feedback_id)
        if item.author_id != actor.id and not has_capability(actor, "feedback:moderate"):
            raise AuthorizationError("You can only delete your own feedback!", feedback_id=feedback_id)
        store.feedback = [entry for entry in store.feedback if entry.id != feedback_id]
        audit.record(
            store,
            actor,
            AuditAction.FEEDBACK_DELETED,
            {"feedbackId": item.id, "title": item.title, "author": item.author},
        )
    return item


def list_feedback(store: LedgerStore, type: Optional[FeedbackType] = None, sort: str = "recent") -> List[FeedbackItem]:
    items = [item for item in store.feedback if type is None or item.type == type]
    if sort == "votes":
        return sorted(items, key=lambda item: item.votes, reverse=True)
    return sorted(items, key=lambda item: item.date, reverse=True)
