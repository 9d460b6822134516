from __future__ import annotations

import logging
from typing import List, Optional

from ..constants import RECEIPT_CONTENT_TYPES, REJECTION_REASON_OTHER, REJECTION_REASONS
from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..core.money import format_minor
from ..models.ledger import Actor, AuditAction, MonthKey, PaymentSource, Receipt, ReceiptStatus, new_id
from . import audit
from .payments import apply_payment, deposit_credit, get_member_or_404
from .policy import authorize, ensure_self_or_admin
from .storage import StorageService
from .store import LedgerStore

logger = logging.getLogger(__name__)

RECEIPT_CREDIT_SOURCE = "Receipt surplus"


def _get_receipt_or_404(store: LedgerStore, receipt_id: str) -> Receipt:
    receipt = next((item for item in store.receipts if item.id == receipt_id), None)
    if not receipt:
        raise NotFoundError("Receipt not found", receipt_id=receipt_id)
    return receipt


def _ensure_undecided(receipt: Receipt) -> None:
    if receipt.locked or receipt.status != ReceiptStatus.PENDING:
        raise ConflictError(
            "This receipt has already been processed.",
            receipt_id=receipt.id,
            status=receipt.status.value,
        )


def upload_receipt(
    store: LedgerStore,
    actor: Optional[Actor],
    storage: StorageService,
    member_id: str,
    key: MonthKey,
    amount: int,
    file_name: str,
    content: bytes,
    content_type: Optional[str],
) -> Receipt:
    actor = authorize(actor, "receipts:upload")
    ensure_self_or_admin(actor, member_id)
    if amount <= 0:
        raise ValidationError("Please enter a valid amount")
    storage.validate_image(content, content_type, RECEIPT_CONTENT_TYPES)

    with store.transaction():
        member = get_member_or_404(store, member_id)
        if not member.active:
            raise ValidationError("Cannot upload receipts for an inactive member.", member_id=member_id)
        duplicate = any(
            item.member_id == member_id and item.key == key and item.status != ReceiptStatus.REJECTED
            for item in store.receipts
        )
        if duplicate:
            raise ConflictError(
                "A receipt for this month has already been uploaded. Please wait for admin review.",
                member_id=member_id,
                **key.as_dict(),
            )

        receipt_id = new_id()
        extension = storage.extension_for(file_name, content_type)
        stored = storage.save_file(f"receipts/{member_id}/{receipt_id}{extension}", content)
        receipt = Receipt(
            id=receipt_id,
            member_id=member_id,
            month=key.month,
            year=key.year,
            amount=amount,
            image_path=stored.public_path,
            file_name=file_name,
            file_size=len(content),
            upload_timestamp=store.now(),
        )
        store.receipts.append(receipt)
        audit.record(
            store,
            actor,
            AuditAction.RECEIPT_UPLOADED,
            {"receiptId": receipt.id, "memberId": member_id, "amount": amount, **key.as_dict()},
        )

    logger.info("Receipt %s uploaded for %s (%s)", receipt.id, member.apartment, key.label)
    return receipt


def approve_receipt(store: LedgerStore, actor: Optional[Actor], receipt_id: str) -> Receipt:
    """Settle the receipt's month and deposit any surplus as advance credit.

    When the month has no due entry, or it is already paid, the whole amount
    becomes advance credit.
    """
    actor = authorize(actor, "receipts:review")
    with store.transaction():
        receipt = _get_receipt_or_404(store, receipt_id)
        _ensure_undecided(receipt)
        member = get_member_or_404(store, receipt.member_id)

        applied = 0
        entry = member.find_due(receipt.key)
        if entry and entry.outstanding > 0:
            applied = min(receipt.amount, entry.outstanding)
            apply_payment(store, member, entry, applied, PaymentSource.RECEIPT, actor)
        surplus = receipt.amount - applied
        if surplus > 0:
            deposit_credit(store, actor, member, surplus, RECEIPT_CREDIT_SOURCE)

        receipt.status = ReceiptStatus.APPROVED
        receipt.locked = True
        receipt.approved_by = actor.display_name
        receipt.approval_timestamp = store.now()
        audit.record(
            store,
            actor,
            AuditAction.RECEIPT_APPROVED,
            {
                "receiptId": receipt.id,
                "memberId": member.id,
                "amount": receipt.amount,
                "applied": applied,
                "surplus": surplus,
                **receipt.key.as_dict(),
            },
        )

    logger.info(
        "Receipt %s approved: %s applied, %s credited",
        receipt.id,
        format_minor(applied),
        format_minor(surplus),
    )
    return receipt


def reject_receipt(
    store: LedgerStore,
    actor: Optional[Actor],
    receipt_id: str,
    reason: str,
    notes: str = "",
) -> Receipt:
    actor = authorize(actor, "receipts:review")
    notes = (notes or "").strip()
    if reason not in REJECTION_REASONS:
        raise ValidationError("Please select a rejection reason", reason=reason)
    if reason == REJECTION_REASON_OTHER and not notes:
        raise ValidationError("Please provide notes when selecting 'Other' as reason")

    with store.transaction():
        receipt = _get_receipt_or_404(store, receipt_id)
        _ensure_undecided(receipt)
        receipt.status = ReceiptStatus.REJECTED
        receipt.locked = True
        receipt.approved_by = actor.display_name
        receipt.approval_timestamp = store.now()
        receipt.rejection_reason = reason
        receipt.rejection_notes = notes or None
        audit.record(
            store,
            actor,
            AuditAction.RECEIPT_REJECTED,
            {"receiptId": receipt.id, "memberId": receipt.member_id, "reason": reason, "notes": notes},
        )

    logger.info("Receipt %s rejected: %s", receipt.id, reason)
    return receipt


def list_receipts(
    store: LedgerStore,
    actor: Actor,
    member_id: Optional[str] = None,
    status: Optional[ReceiptStatus] = None,
) -> List[Receipt]:
    """Admins see every receipt; members only their own."""
    if not actor.is_admin:
        member_id = actor.member_id
    receipts = [
        item
        for item in store.receipts
        if (member_id is None or item.member_id == member_id) and (status is None or item.status == status)
    ]
    return sorted(receipts, key=lambda item: item.upload_timestamp, reverse=True)
