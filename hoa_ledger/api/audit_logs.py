from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..api.dependencies import get_current_actor, get_store
from ..models.ledger import Actor, AuditAction
from ..schemas.schemas import AuditEntryRead, AuditLogPage
from ..services import audit
from ..services.store import LedgerStore

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("/", response_model=AuditLogPage)
def list_audit_logs(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    action: Optional[AuditAction] = Query(None),
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> AuditLogPage:
    entries, total = audit.list_entries(store, actor, limit=limit, offset=offset, action=action)
    return AuditLogPage(items=[AuditEntryRead.from_entry(entry) for entry in entries], total=total)
