import logging
from typing import Any, Dict, List, Optional, Tuple

from ..models.ledger import Actor, AuditAction, AuditEntry
from .policy import authorize
from .store import LedgerStore

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_ID = "system"


def record(
    store: LedgerStore,
    actor: Optional[Actor],
    action: AuditAction,
    details: Optional[Dict[str, Any]] = None,
) -> AuditEntry:
    """Append one immutable audit entry.

    Runs inside the caller's transaction so the entry is persisted together with
    the mutation it describes. There is no validation and no failure path other
    than the store itself failing to persist.
    """
    with store.transaction():
        entry = AuditEntry(
            timestamp=store.now(),
            admin_id=actor.id if actor else SYSTEM_ACTOR_ID,
            admin_name=actor.display_name if actor else SYSTEM_ACTOR_ID,
            action=action,
            details=details or {},
        )
        store.audit_log.append(entry)
    logger.debug("Audit %s by %s", action.value, entry.admin_id)
    return entry


def list_entries(
    store: LedgerStore,
    actor: Optional[Actor],
    limit: int = 50,
    offset: int = 0,
    action: Optional[AuditAction] = None,
) -> Tuple[List[AuditEntry], int]:
    authorize(actor, "audit:read")
    entries = [entry for entry in reversed(store.audit_log) if action is None or entry.action == action]
    return entries[offset : offset + limit], len(entries)
