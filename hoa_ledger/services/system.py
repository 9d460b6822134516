from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..auth.jwt import get_password_hash, verify_password
from ..constants import DEFAULT_ADMIN_CREDENTIALS, MIN_ADMIN_PASSWORD_LENGTH
from ..core.errors import AuthorizationError, ValidationError
from ..models.ledger import Actor, AdminCredentials, AuditAction, ResetEvent, Role
from . import audit
from .backup import perform_sqlite_backup
from .policy import authorize
from .store import RESETTABLE_COLLECTIONS, LedgerStore

logger = logging.getLogger(__name__)


def ensure_admin_credentials(store: LedgerStore) -> AdminCredentials:
    """Store the default admin login, hashed, when none has been saved yet."""
    with store.transaction():
        if store.admin_credentials is None:
            store.admin_credentials = AdminCredentials(
                username=DEFAULT_ADMIN_CREDENTIALS["username"],
                password_hash=get_password_hash(DEFAULT_ADMIN_CREDENTIALS["password"]),
            )
            logger.info("Initialized default admin credentials")
    return store.admin_credentials


def using_default_password(store: LedgerStore) -> bool:
    credentials = store.admin_credentials
    return credentials is not None and verify_password(
        DEFAULT_ADMIN_CREDENTIALS["password"], credentials.password_hash
    )


def admin_actor(credentials: AdminCredentials) -> Actor:
    return Actor(id=credentials.username, display_name=credentials.username, role=Role.ADMIN)


def authenticate_admin(store: LedgerStore, username: str, password: str) -> Optional[Actor]:
    credentials = store.admin_credentials or ensure_admin_credentials(store)
    if username != credentials.username or not verify_password(password, credentials.password_hash):
        logger.warning("Failed admin login for %r", username)
        return None
    return admin_actor(credentials)


def authenticate_member(store: LedgerStore, name: str, apartment: str) -> Optional[Actor]:
    """Members sign in with their name and apartment, compared case-insensitively."""
    wanted_name = (name or "").strip().casefold()
    wanted_apartment = (apartment or "").strip().casefold()
    for member in store.active_members():
        if member.name.strip().casefold() == wanted_name and member.apartment.strip().casefold() == wanted_apartment:
            return Actor(id=member.id, display_name=member.name, role=Role.MEMBER, member_id=member.id)
    logger.warning("Failed member login for apartment %r", apartment)
    return None


def _check_admin_password(store: LedgerStore, password: str) -> AdminCredentials:
    credentials = store.admin_credentials or ensure_admin_credentials(store)
    if not verify_password(password or "", credentials.password_hash):
        raise AuthorizationError("Incorrect admin password.")
    return credentials


def update_admin_credentials(
    store: LedgerStore,
    actor: Optional[Actor],
    current_password: str,
    new_username: str,
    new_password: str,
    confirm_password: str,
) -> AdminCredentials:
    actor = authorize(actor, "system:admin")
    new_username = (new_username or "").strip()
    if not new_username:
        raise ValidationError("Username is required.")
    if new_password != confirm_password:
        raise ValidationError("New passwords do not match!")
    if len(new_password or "") < MIN_ADMIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_ADMIN_PASSWORD_LENGTH} characters long!")

    with store.transaction():
        previous = _check_admin_password(store, current_password)
        store.admin_credentials = AdminCredentials(
            username=new_username,
            password_hash=get_password_hash(new_password),
        )
        audit.record(
            store,
            actor,
            AuditAction.ADMIN_CREDENTIALS_UPDATED,
            {"previousUsername": previous.username, "username": new_username},
        )

    logger.info("Admin credentials updated for %s", new_username)
    return store.admin_credentials


def reset_data(
    store: LedgerStore,
    actor: Optional[Actor],
    password: str,
    *,
    backup_dir: Optional[Path] = None,
    database_url: Optional[str] = None,
) -> ResetEvent:
    """Wipe every ledger collection after re-checking the admin password.

    The reset is logged to the separate reset log before anything is cleared;
    that log and the admin credentials survive the reset.
    """
    actor = authorize(actor, "system:admin")
    _check_admin_password(store, password)

    backup_path = perform_sqlite_backup(backup_dir, database_url, label="pre-reset")
    if backup_path:
        logger.info("Pre-reset backup written to %s", backup_path)

    with store.transaction():
        event = ResetEvent(
            user=actor.display_name,
            user_id=actor.id,
            timestamp=store.now(),
            details={name: len(getattr(store, name)) for name in RESETTABLE_COLLECTIONS},
        )
        store.reset_log.append(event)
        store.clear()

    logger.warning("System reset by %s: %s", actor.display_name, event.details)
    return event
