from __future__ import annotations

import logging
from typing import List, Optional

from ..core.errors import NotFoundError, ValidationError
from ..core.money import format_minor
from ..models.ledger import (
    Actor,
    AdvanceCreditRecord,
    AuditAction,
    DueEntry,
    Member,
    MonthKey,
    PaymentRecord,
    PaymentSource,
)
from . import audit
from .policy import authorize
from .store import LedgerStore

logger = logging.getLogger(__name__)


def get_member_or_404(store: LedgerStore, member_id: str) -> Member:
    member = store.find_member(member_id)
    if not member:
        raise NotFoundError("Member not found", member_id=member_id)
    return member


def _require_active(member: Member) -> None:
    if not member.active:
        raise ValidationError("Cannot record payments for an inactive member.", member_id=member.id)


def apply_payment(
    store: LedgerStore,
    member: Member,
    entry: DueEntry,
    amount: int,
    source: PaymentSource,
    actor: Optional[Actor],
) -> PaymentRecord:
    """Settle ``amount`` against one entry and prepend the payment record.

    Callers validate first; this never lets ``paid_amount`` exceed ``amount``.
    """
    if amount <= 0 or amount > entry.outstanding:
        raise ValidationError("Payment amount cannot exceed pending amount!", outstanding=entry.outstanding)
    entry.paid_amount += amount
    entry.refresh_paid()
    payment = PaymentRecord(
        member_id=member.id,
        member_name=member.name,
        apartment=member.apartment,
        amount=amount,
        year=entry.year,
        month=entry.month,
        date=store.now(),
        source=source,
        recorded_by=actor.id if actor else None,
    )
    store.payments.insert(0, payment)
    return payment


def deposit_credit(
    store: LedgerStore,
    actor: Optional[Actor],
    member: Member,
    amount: int,
    source: str,
) -> AdvanceCreditRecord:
    """Raise the member's advance balance and log the deposit. Callers authorize and validate."""
    member.advance_balance += amount
    record = AdvanceCreditRecord(
        member_id=member.id,
        member_name=member.name,
        apartment=member.apartment,
        amount=amount,
        source=source,
        timestamp=store.now(),
    )
    store.advance_payments.append(record)
    audit.record(
        store,
        actor,
        AuditAction.ADVANCE_CREDIT_ADDED,
        {"memberId": member.id, "amount": amount, "source": source},
    )
    return record


def pay(store: LedgerStore, actor: Optional[Actor], member_id: str, key: MonthKey, amount: int) -> PaymentRecord:
    actor = authorize(actor, "payments:write")
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero.")

    with store.transaction():
        member = get_member_or_404(store, member_id)
        _require_active(member)
        entry = member.find_due(key)
        if not entry:
            raise NotFoundError("Due entry not found", member_id=member_id, **key.as_dict())
        if amount > entry.outstanding:
            logger.warning(
                "Rejected payment of %d for %s %s; only %d outstanding",
                amount,
                member.apartment,
                key.as_marker(),
                entry.outstanding,
            )
            raise ValidationError(
                "Payment amount cannot exceed pending amount!",
                outstanding=entry.outstanding,
            )
        payment = apply_payment(store, member, entry, amount, PaymentSource.DIRECT, actor)
        audit.record(
            store,
            actor,
            AuditAction.PAYMENT_RECORDED,
            {"memberId": member.id, "paymentId": payment.id, "amount": amount, **key.as_dict()},
        )

    logger.info("Recorded payment of %s for %s (%s)", format_minor(amount), member.apartment, key.label)
    return payment


def pay_backlog(store: LedgerStore, actor: Optional[Actor], member_id: str, amount: int) -> List[PaymentRecord]:
    """Spread ``amount`` over the member's unpaid entries, oldest first."""
    actor = authorize(actor, "payments:write")
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero.")

    with store.transaction():
        member = get_member_or_404(store, member_id)
        _require_active(member)
        total = member.total_outstanding()
        if amount > total:
            raise ValidationError("Payment amount cannot exceed pending amount!", outstanding=total)

        remaining = amount
        payments: List[PaymentRecord] = []
        for entry in member.unpaid_dues():
            if remaining <= 0:
                break
            portion = min(remaining, entry.outstanding)
            if portion <= 0:
                continue
            payment = apply_payment(store, member, entry, portion, PaymentSource.DIRECT, actor)
            payments.append(payment)
            remaining -= portion
            audit.record(
                store,
                actor,
                AuditAction.PAYMENT_RECORDED,
                {"memberId": member.id, "paymentId": payment.id, "amount": portion, **entry.key.as_dict()},
            )

    logger.info("Recorded backlog payment of %s for %s across %d months", format_minor(amount), member.apartment, len(payments))
    return payments


def list_payments(store: LedgerStore, member_id: Optional[str] = None) -> List[PaymentRecord]:
    """Payment history, most recent first."""
    if member_id is None:
        return list(store.payments)
    return [payment for payment in store.payments if payment.member_id == member_id]
