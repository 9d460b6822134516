"""Authoritative in-memory ledger state and its key-value persistence.

The store keeps every collection as a list of records, loads them once at start
and writes back whole-collection JSON snapshots after each successful
transaction. Only collections whose encoding changed are written.
"""
from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import STORAGE_KEYS
from ..core.errors import PersistenceError, ValidationError
from ..models.ledger import (
    AdminCredentials,
    AdvanceCreditRecord,
    AuditEntry,
    DueChangeRecord,
    Expense,
    FeedbackItem,
    Member,
    MonthKey,
    PaymentRecord,
    Receipt,
    ResetEvent,
    utcnow,
)
from ..models.models import StoredCollection

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# attribute name -> (storage key, adapter for the whole collection)
COLLECTIONS: Dict[str, tuple] = {
    "members": (STORAGE_KEYS["members"], TypeAdapter(List[Member])),
    "payments": (STORAGE_KEYS["payments"], TypeAdapter(List[PaymentRecord])),
    "expenses": (STORAGE_KEYS["expenses"], TypeAdapter(List[Expense])),
    "feedback": (STORAGE_KEYS["feedback"], TypeAdapter(List[FeedbackItem])),
    "receipts": (STORAGE_KEYS["receipts"], TypeAdapter(List[Receipt])),
    "advance_payments": (STORAGE_KEYS["advance_payments"], TypeAdapter(List[AdvanceCreditRecord])),
    "due_changes": (STORAGE_KEYS["due_changes"], TypeAdapter(List[DueChangeRecord])),
    "audit_log": (STORAGE_KEYS["audit_log"], TypeAdapter(List[AuditEntry])),
    "reset_log": (STORAGE_KEYS["reset_log"], TypeAdapter(List[ResetEvent])),
}

# Cleared by a full reset; the reset log and admin credentials survive it.
RESETTABLE_COLLECTIONS = (
    "members",
    "payments",
    "expenses",
    "feedback",
    "receipts",
    "advance_payments",
    "due_changes",
    "audit_log",
)

_CREDENTIALS_ADAPTER = TypeAdapter(AdminCredentials)


def encode_collection(name: str, items: Iterable[Any]) -> str:
    _, adapter = COLLECTIONS[name]
    return adapter.dump_json(list(items), by_alias=True).decode("utf-8")


def decode_collection(name: str, raw: str) -> List[Any]:
    key, adapter = COLLECTIONS[name]
    try:
        return adapter.validate_json(raw)
    except SchemaError as exc:
        raise PersistenceError(f"Stored collection '{key}' is malformed.", key=key) from exc


class KeyValueStore:
    """Text values keyed by name, persisted in the ``kv_store`` table."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def read(self, key: str) -> Optional[str]:
        try:
            with self._session_factory() as session:
                row = session.get(StoredCollection, key)
                return row.value if row else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Unable to read '{key}' from the ledger store.", key=key) from exc

    def write(self, values: Dict[str, Optional[str]]) -> None:
        """Write all values in one database transaction; ``None`` deletes the key."""
        if not values:
            return
        try:
            with self._session_factory() as session:
                for key, value in values.items():
                    row = session.get(StoredCollection, key)
                    if value is None:
                        if row:
                            session.delete(row)
                        continue
                    if row:
                        row.value = value
                    else:
                        session.add(StoredCollection(key=key, value=value))
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(
                "Unable to write to the ledger store.", keys=sorted(values.keys())
            ) from exc


class LedgerStore:
    def __init__(
        self,
        backend: KeyValueStore,
        *,
        monthly_fee: int,
        clock: Clock = utcnow,
    ) -> None:
        self.backend = backend
        self.monthly_fee = monthly_fee
        self.clock = clock
        self._lock = threading.RLock()
        self._in_transaction = False
        self._persisted: Dict[str, Optional[str]] = {}

        self.members: List[Member] = []
        self.payments: List[PaymentRecord] = []
        self.expenses: List[Expense] = []
        self.feedback: List[FeedbackItem] = []
        self.receipts: List[Receipt] = []
        self.advance_payments: List[AdvanceCreditRecord] = []
        self.due_changes: List[DueChangeRecord] = []
        self.audit_log: List[AuditEntry] = []
        self.reset_log: List[ResetEvent] = []
        self.last_processed: Optional[MonthKey] = None
        self.admin_credentials: Optional[AdminCredentials] = None

    # --- lifecycle -------------------------------------------------------

    def load(self) -> "LedgerStore":
        with self._lock:
            for name, (key, _) in COLLECTIONS.items():
                raw = self.backend.read(key)
                setattr(self, name, decode_collection(name, raw) if raw is not None else [])
                self._persisted[key] = raw

            credentials_key = STORAGE_KEYS["admin_credentials"]
            raw_credentials = self.backend.read(credentials_key)
            self.admin_credentials = None
            if raw_credentials is not None:
                try:
                    self.admin_credentials = _CREDENTIALS_ADAPTER.validate_json(raw_credentials)
                except SchemaError as exc:
                    raise PersistenceError(
                        f"Stored collection '{credentials_key}' is malformed.", key=credentials_key
                    ) from exc
            self._persisted[credentials_key] = raw_credentials

            marker_key = STORAGE_KEYS["last_update"]
            raw_marker = self.backend.read(marker_key)
            self.last_processed = _parse_marker(raw_marker)
            self._persisted[marker_key] = raw_marker

        logger.info(
            "Ledger store loaded: %d members, %d payments, %d audit entries",
            len(self.members),
            len(self.payments),
            len(self.audit_log),
        )
        return self

    def _encoded_state(self) -> Dict[str, Optional[str]]:
        state: Dict[str, Optional[str]] = {
            key: encode_collection(name, getattr(self, name)) for name, (key, _) in COLLECTIONS.items()
        }
        state[STORAGE_KEYS["admin_credentials"]] = (
            self.admin_credentials.model_dump_json(by_alias=True) if self.admin_credentials else None
        )
        state[STORAGE_KEYS["last_update"]] = self.last_processed.as_marker() if self.last_processed else None
        return state

    def flush(self) -> List[str]:
        """Persist every collection whose snapshot changed; return the written keys."""
        with self._lock:
            state = self._encoded_state()
            changed = {key: value for key, value in state.items() if self._persisted.get(key) != value}
            self.backend.write(changed)
            self._persisted.update(changed)
            return sorted(changed)

    def _snapshot(self) -> Dict[str, Any]:
        names = list(COLLECTIONS) + ["last_processed", "admin_credentials"]
        return {name: copy.deepcopy(getattr(self, name)) for name in names}

    def _restore(self, snapshot: Dict[str, Any]) -> None:
        for name, value in snapshot.items():
            setattr(self, name, value)

    @contextmanager
    def transaction(self) -> Iterator["LedgerStore"]:
        """Serialize one logical operation and persist it as a unit.

        Any exception, including a failed write, restores the in-memory
        collections to their state on entry. Nested use joins the outer
        transaction.
        """
        with self._lock:
            if self._in_transaction:
                yield self
                return
            snapshot = self._snapshot()
            self._in_transaction = True
            try:
                yield self
                self.flush()
            except BaseException:
                self._restore(snapshot)
                raise
            finally:
                self._in_transaction = False

    # --- clock helpers ---------------------------------------------------

    def now(self) -> datetime:
        return self.clock()

    def today(self) -> date:
        return self.clock().date()

    def current_month(self) -> MonthKey:
        return MonthKey.from_date(self.today())

    # --- lookups ---------------------------------------------------------

    def find_member(self, member_id: str) -> Optional[Member]:
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    def active_members(self) -> List[Member]:
        return [member for member in self.members if member.active]

    # --- reset -----------------------------------------------------------

    def clear(self) -> None:
        for name in RESETTABLE_COLLECTIONS:
            setattr(self, name, [])
        self.last_processed = None


def _parse_marker(raw: Optional[str]) -> Optional[MonthKey]:
    if raw is None:
        return None
    try:
        return MonthKey.parse(raw)
    except (ValueError, ValidationError):
        logger.warning("Ignoring unreadable last-processed marker %r; dues will be fully backfilled.", raw)
        return None


def build_ledger_store(session_factory: Callable[[], Session], monthly_fee: int, clock: Clock = utcnow) -> LedgerStore:
    return LedgerStore(KeyValueStore(session_factory), monthly_fee=monthly_fee, clock=clock).load()
