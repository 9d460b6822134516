from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from ..api.dependencies import get_current_actor, get_storage, get_store
from ..constants import REJECTION_REASONS
from ..core.money import to_minor
from ..models.ledger import Actor, MonthKey, ReceiptStatus
from ..schemas.schemas import ReceiptRead, ReceiptReject
from ..services import receipts as receipt_service
from ..services.storage import StorageService
from ..services.store import LedgerStore

router = APIRouter()


@router.get("/", response_model=List[ReceiptRead])
def list_receipts(
    member_id: Optional[str] = Query(None),
    status: Optional[ReceiptStatus] = Query(None),
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> List[ReceiptRead]:
    receipts = receipt_service.list_receipts(store, actor, member_id=member_id, status=status)
    return [ReceiptRead.from_record(receipt) for receipt in receipts]


@router.get("/rejection-reasons", response_model=List[str])
def list_rejection_reasons() -> List[str]:
    return list(REJECTION_REASONS)


@router.post("/", response_model=ReceiptRead, status_code=201)
def upload_receipt(
    year: int = Form(...),
    month: int = Form(..., ge=0, le=11),
    amount: Decimal = Form(..., gt=0),
    member_id: Optional[str] = Form(None),
    file: UploadFile = File(...),
    store: LedgerStore = Depends(get_store),
    storage: StorageService = Depends(get_storage),
    actor: Actor = Depends(get_current_actor),
) -> ReceiptRead:
    receipt = receipt_service.upload_receipt(
        store,
        actor,
        storage,
        member_id=member_id or actor.member_id or "",
        key=MonthKey(year, month),
        amount=to_minor(amount),
        file_name=file.filename or "receipt",
        content=file.file.read(),
        content_type=file.content_type,
    )
    return ReceiptRead.from_record(receipt)


@router.post("/{receipt_id}/approve", response_model=ReceiptRead)
def approve_receipt(
    receipt_id: str,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> ReceiptRead:
    return ReceiptRead.from_record(receipt_service.approve_receipt(store, actor, receipt_id))


@router.post("/{receipt_id}/reject", response_model=ReceiptRead)
def reject_receipt(
    receipt_id: str,
    payload: ReceiptReject,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> ReceiptRead:
    receipt = receipt_service.reject_receipt(store, actor, receipt_id, payload.reason, payload.notes)
    return ReceiptRead.from_record(receipt)
