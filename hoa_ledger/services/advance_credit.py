from __future__ import annotations

import logging
from typing import List, Optional

from ..core.errors import ValidationError
from ..core.money import format_minor
from ..models.ledger import Actor, AdvanceCreditRecord, AuditAction, Member, PaymentRecord, PaymentSource
from . import audit
from .payments import apply_payment, deposit_credit, get_member_or_404
from .policy import authorize
from .rate_changes import effective_rate
from .store import LedgerStore

logger = logging.getLogger(__name__)

DIRECT_ADVANCE_SOURCE = "Direct advance payment"


def add_credit(
    store: LedgerStore,
    actor: Optional[Actor],
    member_id: str,
    amount: int,
    source: str = DIRECT_ADVANCE_SOURCE,
) -> AdvanceCreditRecord:
    actor = authorize(actor, "advance:write")
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero!")

    with store.transaction():
        member = get_member_or_404(store, member_id)
        if not member.active:
            raise ValidationError("Cannot add credit for an inactive member.", member_id=member_id)
        record = deposit_credit(store, actor, member, amount, source or DIRECT_ADVANCE_SOURCE)

    logger.info("Advance credit of %s added for %s", format_minor(amount), member.apartment)
    return record


def sweep(store: LedgerStore, actor: Optional[Actor], member_id: str) -> List[PaymentRecord]:
    """Apply the member's advance balance to unpaid dues, oldest month first."""
    actor = authorize(actor, "advance:write")
    payments: List[PaymentRecord] = []

    with store.transaction():
        member = get_member_or_404(store, member_id)
        balance = member.advance_balance
        for entry in member.unpaid_dues():
            if balance <= 0:
                break
            portion = min(balance, entry.outstanding)
            if portion <= 0:
                continue
            payment = apply_payment(store, member, entry, portion, PaymentSource.ADVANCE_CREDIT, actor)
            payments.append(payment)
            balance -= portion
            audit.record(
                store,
                actor,
                AuditAction.ADVANCE_APPLIED,
                {"memberId": member.id, "amount": portion, **entry.key.as_dict()},
            )
        member.advance_balance = balance

    if payments:
        logger.info(
            "Applied %s of advance credit for %s; %s remains",
            format_minor(sum(payment.amount for payment in payments)),
            member.apartment,
            format_minor(member.advance_balance),
        )
    return payments


def months_covered(store: LedgerStore, member_id: str) -> int:
    """How many months the current advance balance pays for."""
    member = get_member_or_404(store, member_id)
    balance = member.advance_balance
    if balance <= 0:
        return 0

    unpaid = member.unpaid_dues()
    outstanding = sum(entry.outstanding for entry in unpaid)
    if balance >= outstanding:
        rate = effective_rate(store, member.id)
        extra = (balance - outstanding) // rate if rate > 0 else 0
        return len(unpaid) + extra

    covered = 0
    for entry in unpaid:
        if balance < entry.outstanding:
            break
        covered += 1
        balance -= entry.outstanding
    return covered


def list_balances(store: LedgerStore) -> List[Member]:
    return [member for member in store.active_members() if member.advance_balance > 0]
