import logging
from typing import Optional

from ..constants import ROLE_CAPABILITIES
from ..core.errors import AuthorizationError
from ..models.ledger import Actor

logger = logging.getLogger(__name__)


def has_capability(actor: Optional[Actor], capability: str) -> bool:
    if actor is None:
        return False
    return capability in ROLE_CAPABILITIES.get(actor.role.value, set())


def authorize(actor: Optional[Actor], capability: str) -> Actor:
    """Single entry-point guard for every engine operation."""
    if not has_capability(actor, capability):
        logger.warning(
            "Denied %s for %s",
            capability,
            f"{actor.role.value}:{actor.id}" if actor else "anonymous",
        )
        raise AuthorizationError("Operation not permitted for your role", capability=capability)
    return actor  # type: ignore[return-value]


def ensure_self_or_admin(actor: Actor, member_id: str) -> None:
    """Members may only act on their own ledger; admins on any."""
    if actor.is_admin:
        return
    if actor.member_id != member_id:
        raise AuthorizationError("Not authorized for this member", member_id=member_id)
