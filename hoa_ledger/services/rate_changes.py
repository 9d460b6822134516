from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..core.errors import NotFoundError, ValidationError
from ..core.money import format_minor
from ..models.ledger import (
    Actor,
    AuditAction,
    ChangeDirection,
    ChangeScope,
    DueChangeRecord,
    DueEntry,
    Member,
    MonthKey,
)
from . import audit
from .payments import deposit_credit
from .policy import authorize
from .store import LedgerStore

logger = logging.getLogger(__name__)

RATE_DECREASE_REFUND_SOURCE = "Rate decrease refund"

_AUDIT_ACTIONS = {
    (ChangeScope.GLOBAL, ChangeDirection.INCREASE): AuditAction.DUE_INCREASE_GLOBAL,
    (ChangeScope.INDIVIDUAL, ChangeDirection.INCREASE): AuditAction.DUE_INCREASE_INDIVIDUAL,
    (ChangeScope.GLOBAL, ChangeDirection.DECREASE): AuditAction.DUE_DECREASE_GLOBAL,
    (ChangeScope.INDIVIDUAL, ChangeDirection.DECREASE): AuditAction.DUE_DECREASE_INDIVIDUAL,
}


def get_active_adjustment(store: LedgerStore, member_id: str, as_of: Optional[MonthKey] = None) -> int:
    """Net of every increase and decrease reaching ``member_id`` effective on or before ``as_of``."""
    cutoff = as_of or store.current_month()
    return sum(
        change.signed_amount
        for change in store.due_changes
        if change.applies_to(member_id) and change.effective <= cutoff
    )


def _step(rate: int, direction: ChangeDirection, amount: int) -> int:
    if direction == ChangeDirection.INCREASE:
        return rate + amount
    return max(0, rate - amount)


def effective_rate(store: LedgerStore, member_id: str, as_of: Optional[MonthKey] = None) -> int:
    """The rate a newly generated entry for ``as_of`` is charged.

    Changes are replayed in the order they were applied, clamping at zero after
    each one, exactly as they were applied to the entries that already existed.
    """
    cutoff = as_of or store.current_month()
    rate = store.monthly_fee
    for change in store.due_changes:
        if change.applies_to(member_id) and change.effective <= cutoff:
            rate = _step(rate, change.direction, change.amount)
    return rate


def _adjust_entry(entry: DueEntry, direction: ChangeDirection, amount: int) -> int:
    """Apply one change to ``entry`` and return the paid excess it leaves behind."""
    entry.amount = _step(entry.amount, direction, amount)
    excess = max(entry.paid_amount - entry.amount, 0)
    entry.paid_amount -= excess
    entry.refresh_paid()
    return excess


def _apply_to_member(
    store: LedgerStore,
    actor: Actor,
    member: Member,
    direction: ChangeDirection,
    amount: int,
    effective: MonthKey,
) -> int:
    touched = 0
    refund = 0
    for entry in member.dues_history:
        if entry.key < effective or entry.custom_amount:
            continue
        refund += _adjust_entry(entry, direction, amount)
        touched += 1
    # A decrease below what was already paid moves the difference to advance credit.
    if refund:
        deposit_credit(store, actor, member, refund, RATE_DECREASE_REFUND_SOURCE)
        logger.info("Refunded %s overpaid dues to %s as advance credit", format_minor(refund), member.apartment)
    return touched


def _resolve_targets(store: LedgerStore, scope: ChangeScope, member_ids: Sequence[str]) -> List[Member]:
    if scope == ChangeScope.GLOBAL:
        return store.active_members()
    if not member_ids:
        raise ValidationError("Select at least one member for an individual due change.")
    targets: List[Member] = []
    for member_id in dict.fromkeys(member_ids):
        member = store.find_member(member_id)
        if not member or not member.active:
            raise NotFoundError("Member not found", member_id=member_id)
        targets.append(member)
    return targets


def apply_change(
    store: LedgerStore,
    actor: Optional[Actor],
    *,
    scope: ChangeScope,
    direction: ChangeDirection,
    amount: int,
    effective: MonthKey,
    reason: str,
    member_ids: Sequence[str] = (),
) -> DueChangeRecord:
    actor = authorize(actor, "dues:write")
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError(f"Reason is mandatory for due {direction.value}.")
    if amount <= 0:
        raise ValidationError(f"{direction.value.capitalize()} amount must be greater than zero.")

    with store.transaction():
        targets = _resolve_targets(store, scope, member_ids)
        today = store.current_month()

        # One member or the base rate gives a single before/after pair; a multi-member change has none.
        old_amount: Optional[int] = None
        new_amount: Optional[int] = None
        if scope == ChangeScope.GLOBAL:
            old_amount = store.monthly_fee
        elif len(targets) == 1:
            old_amount = store.monthly_fee + get_active_adjustment(store, targets[0].id, today)
        if old_amount is not None:
            new_amount = old_amount + amount if direction == ChangeDirection.INCREASE else old_amount - amount

        if direction == ChangeDirection.DECREASE:
            if scope == ChangeScope.GLOBAL:
                if store.monthly_fee - amount < 0:
                    raise ValidationError(
                        f"Decrease amount too large! Current base due is {format_minor(store.monthly_fee)}.",
                        maximum=store.monthly_fee,
                    )
            else:
                for member in targets:
                    current = store.monthly_fee + get_active_adjustment(store, member.id, today)
                    if current - amount < 0:
                        raise ValidationError(
                            f"Decrease amount too large! Current due for {member.name} is {format_minor(current)}.",
                            member_id=member.id,
                            maximum=current,
                        )

        change = DueChangeRecord(
            scope=scope,
            member_ids=[member.id for member in targets],
            direction=direction,
            amount=amount,
            old_amount=old_amount,
            new_amount=new_amount,
            effective_month=effective.month,
            effective_year=effective.year,
            reason=reason,
            timestamp=store.now(),
            admin_id=actor.id,
            admin_name=actor.display_name,
        )
        store.due_changes.append(change)

        touched = sum(_apply_to_member(store, actor, member, direction, amount, effective) for member in targets)

        details = {
            "amount": amount,
            "effectiveMonth": effective.month,
            "effectiveYear": effective.year,
            "reason": reason,
            "entriesAdjusted": touched,
        }
        if scope == ChangeScope.INDIVIDUAL:
            details["memberIds"] = change.member_ids
        audit.record(store, actor, _AUDIT_ACTIONS[(scope, direction)], details)

    logger.info(
        "Applied %s %s of %d from %s to %d members (%d entries)",
        scope.value,
        direction.value,
        amount,
        effective.as_marker(),
        len(targets),
        touched,
    )
    return change


def set_custom_amount(
    store: LedgerStore,
    actor: Optional[Actor],
    member_id: str,
    key: MonthKey,
    amount: int,
) -> DueEntry:
    """Override one month's charge and exempt it from later bulk changes."""
    actor = authorize(actor, "dues:write")
    if amount < 0:
        raise ValidationError("Custom amount cannot be negative.")

    with store.transaction():
        member = store.find_member(member_id)
        if not member:
            raise NotFoundError("Member not found", member_id=member_id)
        entry = member.find_due(key)
        if not entry:
            raise NotFoundError("Due entry not found", member_id=member_id, **key.as_dict())
        if amount < entry.paid_amount:
            raise ValidationError(
                "Custom amount cannot be lower than the amount already paid.",
                paid_amount=entry.paid_amount,
            )
        previous = entry.amount
        entry.amount = amount
        entry.custom_amount = True
        entry.refresh_paid()
        audit.record(
            store,
            actor,
            AuditAction.DUE_CUSTOM_AMOUNT,
            {"memberId": member_id, **key.as_dict(), "previousAmount": previous, "amount": amount},
        )
    return entry
