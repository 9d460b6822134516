from typing import List

from fastapi import APIRouter, Depends

from ..api.dependencies import get_current_actor, get_store
from ..auth.jwt import require_capability
from ..config import settings
from ..models.ledger import Actor
from ..schemas.schemas import AdminCredentialsUpdate, ResetEventRead, ResetRequest
from ..services import system as system_service
from ..services.store import LedgerStore

router = APIRouter()


@router.put("/admin-credentials")
def update_admin_credentials(
    payload: AdminCredentialsUpdate,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> dict:
    credentials = system_service.update_admin_credentials(
        store,
        actor,
        current_password=payload.current_password,
        new_username=payload.new_username,
        new_password=payload.new_password,
        confirm_password=payload.confirm_password,
    )
    return {"username": credentials.username}


@router.post("/reset", response_model=ResetEventRead)
def reset_system(
    payload: ResetRequest,
    store: LedgerStore = Depends(get_store),
    actor: Actor = Depends(get_current_actor),
) -> ResetEventRead:
    event = system_service.reset_data(store, actor, payload.password, database_url=settings.database_url)
    return ResetEventRead.from_event(event)


@router.get("/reset-log", response_model=List[ResetEventRead])
def list_reset_events(
    store: LedgerStore = Depends(get_store),
    _: Actor = Depends(require_capability("system:admin")),
) -> List[ResetEventRead]:
    return [ResetEventRead.from_event(event) for event in reversed(store.reset_log)]


@router.get("/status")
def system_status(
    store: LedgerStore = Depends(get_store),
    _: Actor = Depends(require_capability("system:admin")),
) -> dict:
    marker = store.last_processed
    return {
        "members": len(store.active_members()),
        "last_processed": marker.as_marker() if marker else None,
        "using_default_admin_password": system_service.using_default_password(store),
    }
