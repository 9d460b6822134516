from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from ..api.dependencies import get_current_actor, get_storage, get_store, parse_month_key
from ..auth.jwt import require_capability
from ..core.money import to_minor
from ..models.ledger import Actor
from ..schemas.schemas import ExpenseRead
from ..services import expenses as expense_service
from ..services.storage import StorageService
from ..services.store import LedgerStore

router = APIRouter()


@router.get("/", response_model=List[ExpenseRead])
def list_expenses(
    month: Optional[str] = Query(None, description="<year>-<month 0-11>"),
    category: Optional[str] = Query(None),
    store: LedgerStore = Depends(get_store),
    _: Actor = Depends(require_capability("expenses:write")),
) -> List[ExpenseRead]:
    month_key = parse_month_key(month) if month else None
    expenses = expense_service.list_expenses(store, month=month_key, category=category)
    return [ExpenseRead.from_record(expense) for expense in expenses]


@router.post("/", response_model=ExpenseRead, status_code=201)
def create_expense(
    name: str = Form(...),
    amount: Decimal = Form(..., gt=0),
    category: str = Form(...),
    spent_on: Optional[date] = Form(None, alias="date"),
    notes: str = Form(""),
    image: Optional[UploadFile] = File(None),
    store: LedgerStore = Depends(get_store),
    storage: StorageService = Depends(get_storage),
    actor: Actor = Depends(get_current_actor),
) -> ExpenseRead:
    expense = expense_service.add_expense(
        store,
        actor,
        name=name,
        amount=to_minor(amount),
        category=category,
        spent_on=spent_on,
        notes=notes,
        image=image.file.read() if image else None,
        image_name=(image.filename or "") if image else "",
        image_content_type=image.content_type if image else None,
        storage=storage,
    )
    return ExpenseRead.from_record(expense)


@router.delete("/{expense_id}", response_model=ExpenseRead)
def delete_expense(
    expense_id: str,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> ExpenseRead:
    return ExpenseRead.from_record(expense_service.delete_expense(store, actor, expense_id))
