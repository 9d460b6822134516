from __future__ import annotations

import logging
from typing import List, Optional

from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..models.ledger import Actor, AuditAction, Member, MonthKey
from . import audit
from .dues import add_dues_for_month
from .policy import authorize
from .store import LedgerStore

logger = logging.getLogger(__name__)

PENDING_VIEWS = ("current", "cumulative")


def _normalize_apartment(apartment: str) -> str:
    return apartment.strip().casefold()


def find_by_apartment(store: LedgerStore, apartment: str) -> Optional[Member]:
    wanted = _normalize_apartment(apartment)
    for member in store.active_members():
        if _normalize_apartment(member.apartment) == wanted:
            return member
    return None


def register_member(
    store: LedgerStore,
    actor: Optional[Actor],
    name: str,
    apartment: str,
    contact: str = "",
    email: str = "",
) -> Member:
    actor = authorize(actor, "members:write")
    name = (name or "").strip()
    apartment = (apartment or "").strip()
    if not name:
        raise ValidationError("Member name is required.")
    if not apartment:
        raise ValidationError("Apartment number is required.")

    with store.transaction():
        if find_by_apartment(store, apartment):
            raise ConflictError("A member with this apartment number already exists!", apartment=apartment)
        member = Member(
            name=name,
            apartment=apartment,
            contact=(contact or "").strip(),
            email=(email or "").strip(),
            created_at=store.now(),
        )
        add_dues_for_month(store, member, store.current_month())
        store.members.append(member)
        audit.record(
            store,
            actor,
            AuditAction.MEMBER_ADDED,
            {"memberId": member.id, "name": member.name, "apartment": member.apartment},
        )

    logger.info("Registered member %s in apartment %s", member.name, member.apartment)
    return member


def delete_member(store: LedgerStore, actor: Optional[Actor], member_id: str, hard: bool = False) -> Member:
    """Remove a member from the ledger.

    The default is a soft delete that keeps the record (and its dues history)
    but marks it inactive. ``hard=True`` drops the record entirely. Payment and
    audit rows referring to the member are never removed.
    """
    actor = authorize(actor, "members:write")
    with store.transaction():
        member = store.find_member(member_id)
        if not member or (not hard and not member.active):
            raise NotFoundError("Member not found", member_id=member_id)
        if hard:
            store.members = [existing for existing in store.members if existing.id != member_id]
        else:
            member.active = False
            member.deleted_at = store.now()
        audit.record(
            store,
            actor,
            AuditAction.MEMBER_DELETED,
            {"memberId": member.id, "name": member.name, "apartment": member.apartment, "hard": hard},
        )

    logger.info("Deleted member %s (%s, hard=%s)", member.name, member.apartment, hard)
    return member


def list_members(store: LedgerStore, include_inactive: bool = False) -> List[Member]:
    members = store.members if include_inactive else store.active_members()
    return sorted(members, key=lambda member: member.apartment)


def pending_dues(store: LedgerStore, member: Member, view: str = "current", as_of: Optional[MonthKey] = None) -> int:
    if view not in PENDING_VIEWS:
        raise ValidationError("View must be 'current' or 'cumulative'.", view=view)
    if view == "current":
        entry = member.find_due(as_of or store.current_month())
        return entry.outstanding if entry else 0
    return member.total_outstanding()
