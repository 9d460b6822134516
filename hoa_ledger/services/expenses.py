from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from ..constants import EXPENSE_IMAGE_CONTENT_TYPES
from ..core.errors import NotFoundError, ValidationError
from ..core.money import format_minor
from ..models.ledger import Actor, AuditAction, Expense, MonthKey, new_id
from . import audit
from .policy import authorize
from .storage import StorageService
from .store import LedgerStore

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Other"


def add_expense(
    store: LedgerStore,
    actor: Optional[Actor],
    name: str,
    amount: int,
    category: str,
    spent_on: Optional[date] = None,
    notes: str = "",
    image: Optional[bytes] = None,
    image_name: str = "",
    image_content_type: Optional[str] = None,
    storage: Optional[StorageService] = None,
) -> Expense:
    actor = authorize(actor, "expenses:write")
    name = (name or "").strip()
    if not name:
        raise ValidationError("Expense name is required.")
    if amount <= 0:
        raise ValidationError("Expense amount must be greater than zero.")

    expense_id = new_id()
    image_path = None
    if image:
        if storage is None:
            raise ValidationError("Image uploads are not configured.")
        storage.validate_image(image, image_content_type, EXPENSE_IMAGE_CONTENT_TYPES)
        extension = storage.extension_for(image_name, image_content_type)
        image_path = storage.save_file(f"expenses/{expense_id}{extension}", image).public_path

    with store.transaction():
        expense = Expense(
            id=expense_id,
            name=name,
            amount=amount,
            category=(category or "").strip() or DEFAULT_CATEGORY,
            spent_on=spent_on or store.today(),
            notes=(notes or "").strip(),
            image=image_path,
            created_at=store.now(),
        )
        store.expenses.insert(0, expense)
        audit.record(
            store,
            actor,
            AuditAction.EXPENSE_ADDED,
            {"expenseId": expense.id, "name": expense.name, "amount": amount, "category": expense.category},
        )

    logger.info("Expense %s of %s recorded", expense.name, format_minor(amount))
    return expense


def delete_expense(store: LedgerStore, actor: Optional[Actor], expense_id: str) -> Expense:
    actor = authorize(actor, "expenses:write")
    with store.transaction():
        expense = next((item for item in store.expenses if item.id == expense_id), None)
        if not expense:
            raise NotFoundError("Expense not found", expense_id=expense_id)
        store.expenses = [item for item in store.expenses if item.id != expense_id]
        audit.record(
            store,
            actor,
            AuditAction.EXPENSE_DELETED,
            {"expenseId": expense.id, "name": expense.name, "amount": expense.amount},
        )
    return expense


def list_expenses(
    store: LedgerStore,
    month: Optional[MonthKey] = None,
    category: Optional[str] = None,
) -> List[Expense]:
    expenses = sorted(store.expenses, key=lambda item: (item.spent_on, item.created_at), reverse=True)
    if month is not None:
        expenses = [item for item in expenses if month.contains(item.spent_on)]
    if category:
        expenses = [item for item in expenses if item.category == category]
    return expenses
