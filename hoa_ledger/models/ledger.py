"""Ledger records as they are held in memory and persisted as JSON.

Every record uses camelCase field names on the wire so stored snapshots keep the
shape of the original browser-side collections. Amounts are integer minor units.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..constants import MONTH_NAMES
from ..core.errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class Role(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


class PaymentSource(str, Enum):
    DIRECT = "direct"
    ADVANCE_CREDIT = "advance_credit"
    RECEIPT = "receipt"


class ChangeScope(str, Enum):
    GLOBAL = "global"
    INDIVIDUAL = "individual"


class ChangeDirection(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


class ReceiptStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class FeedbackType(str, Enum):
    SUGGESTION = "suggestion"
    COMPLAINT = "complaint"
    APPRECIATION = "appreciation"
    OTHER = "other"


class AuditAction(str, Enum):
    MEMBER_ADDED = "MEMBER_ADDED"
    MEMBER_DELETED = "MEMBER_DELETED"
    PAYMENT_RECORDED = "PAYMENT_RECORDED"
    ADVANCE_CREDIT_ADDED = "ADVANCE_CREDIT_ADDED"
    ADVANCE_APPLIED = "ADVANCE_APPLIED"
    DUE_INCREASE_GLOBAL = "DUE_INCREASE_GLOBAL"
    DUE_INCREASE_INDIVIDUAL = "DUE_INCREASE_INDIVIDUAL"
    DUE_DECREASE_GLOBAL = "DUE_DECREASE_GLOBAL"
    DUE_DECREASE_INDIVIDUAL = "DUE_DECREASE_INDIVIDUAL"
    DUE_CUSTOM_AMOUNT = "DUE_CUSTOM_AMOUNT"
    DUES_GENERATED = "DUES_GENERATED"
    EXPENSE_ADDED = "EXPENSE_ADDED"
    EXPENSE_DELETED = "EXPENSE_DELETED"
    RECEIPT_UPLOADED = "RECEIPT_UPLOADED"
    RECEIPT_APPROVED = "RECEIPT_APPROVED"
    RECEIPT_REJECTED = "RECEIPT_REJECTED"
    FEEDBACK_DELETED = "FEEDBACK_DELETED"
    ADMIN_CREDENTIALS_UPDATED = "ADMIN_CREDENTIALS_UPDATED"


@dataclass(frozen=True, order=True)
class MonthKey:
    """A calendar month. ``month`` is zero-based (0 = January)."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 0 <= self.month <= 11:
            raise ValidationError("Month must be between 0 and 11.", month=self.month)

    @classmethod
    def from_date(cls, value: date) -> "MonthKey":
        return cls(value.year, value.month - 1)

    @classmethod
    def parse(cls, raw: str) -> "MonthKey":
        """Parse the ``"<year>-<month>"`` marker format."""
        year_part, month_part = raw.strip().split("-")
        return cls(int(year_part), int(month_part))

    def next(self) -> "MonthKey":
        if self.month == 11:
            return MonthKey(self.year + 1, 0)
        return MonthKey(self.year, self.month + 1)

    def previous(self) -> "MonthKey":
        if self.month == 0:
            return MonthKey(self.year - 1, 11)
        return MonthKey(self.year, self.month - 1)

    def contains(self, value: date) -> bool:
        return value.year == self.year and value.month - 1 == self.month

    @property
    def label(self) -> str:
        return f"{MONTH_NAMES[self.month]} {self.year}"

    @property
    def short_label(self) -> str:
        return f"{MONTH_NAMES[self.month][:3]} {self.year}"

    def as_marker(self) -> str:
        return f"{self.year}-{self.month}"

    def as_dict(self) -> Dict[str, int]:
        return {"year": self.year, "month": self.month}


def iter_months(start: MonthKey, end: MonthKey) -> Iterator[MonthKey]:
    """Yield every month from ``start`` through ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current = current.next()


@dataclass(frozen=True)
class Actor:
    id: str
    display_name: str
    role: Role
    member_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class LedgerRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class FrozenRecord(LedgerRecord):
    model_config = ConfigDict(frozen=True)


class DueEntry(LedgerRecord):
    year: int
    month: int = Field(ge=0, le=11)
    amount: int = Field(ge=0)
    paid_amount: int = Field(default=0, ge=0)
    paid: bool = False
    custom_amount: bool = False

    @property
    def key(self) -> MonthKey:
        return MonthKey(self.year, self.month)

    @property
    def outstanding(self) -> int:
        return max(self.amount - self.paid_amount, 0)

    def refresh_paid(self) -> None:
        self.paid = self.paid_amount >= self.amount


class Member(LedgerRecord):
    id: str = Field(default_factory=new_id)
    name: str
    apartment: str
    contact: str = ""
    email: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    dues_history: List[DueEntry] = Field(default_factory=list)
    advance_balance: int = Field(default=0, ge=0)
    active: bool = True
    deleted_at: Optional[datetime] = None

    @property
    def joined(self) -> MonthKey:
        return MonthKey.from_date(self.created_at)

    def find_due(self, key: MonthKey) -> Optional[DueEntry]:
        for entry in self.dues_history:
            if entry.year == key.year and entry.month == key.month:
                return entry
        return None

    def unpaid_dues(self) -> List[DueEntry]:
        """Unpaid entries, oldest first by numeric (year, month)."""
        return sorted((entry for entry in self.dues_history if not entry.paid), key=lambda entry: entry.key)

    def total_outstanding(self) -> int:
        return sum(entry.outstanding for entry in self.dues_history if not entry.paid)


class PaymentRecord(FrozenRecord):
    id: str = Field(default_factory=new_id)
    member_id: str
    member_name: str
    apartment: str
    amount: int = Field(gt=0)
    year: int
    month: int = Field(ge=0, le=11)
    date: datetime
    source: PaymentSource = PaymentSource.DIRECT
    recorded_by: Optional[str] = None

    @property
    def key(self) -> MonthKey:
        return MonthKey(self.year, self.month)


class AdvanceCreditRecord(FrozenRecord):
    id: str = Field(default_factory=new_id)
    member_id: str
    member_name: str
    apartment: str
    amount: int = Field(gt=0)
    source: str
    timestamp: datetime
    type: str = "credit"


class DueChangeRecord(FrozenRecord):
    id: str = Field(default_factory=new_id)
    scope: ChangeScope
    member_ids: List[str] = Field(default_factory=list)
    direction: ChangeDirection
    amount: int = Field(gt=0)
    old_amount: Optional[int] = None
    new_amount: Optional[int] = None
    effective_month: int = Field(ge=0, le=11)
    effective_year: int
    reason: str
    timestamp: datetime
    admin_id: str
    admin_name: str

    @property
    def effective(self) -> MonthKey:
        return MonthKey(self.effective_year, self.effective_month)

    def applies_to(self, member_id: str) -> bool:
        return self.scope == ChangeScope.GLOBAL or member_id in self.member_ids

    @property
    def signed_amount(self) -> int:
        return self.amount if self.direction == ChangeDirection.INCREASE else -self.amount


class AuditEntry(FrozenRecord):
    id: str = Field(default_factory=new_id)
    timestamp: datetime
    admin_id: str
    admin_name: str
    action: AuditAction
    details: Dict[str, Any] = Field(default_factory=dict)


class ResetEvent(FrozenRecord):
    id: str = Field(default_factory=new_id)
    action: str = "SYSTEM_RESET"
    user: str
    user_id: str
    timestamp: datetime
    details: Dict[str, int] = Field(default_factory=dict)


class Expense(LedgerRecord):
    id: str = Field(default_factory=new_id)
    name: str
    amount: int = Field(gt=0)
    category: str
    spent_on: date = Field(alias="date")
    notes: str = ""
    image: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class FeedbackItem(LedgerRecord):
    id: str = Field(default_factory=new_id)
    type: FeedbackType
    title: str
    description: str
    author: str
    author_id: str
    role: Role
    date: datetime
    votes: int = 0
    voted_by: List[str] = Field(default_factory=list)


class Receipt(LedgerRecord):
    id: str = Field(default_factory=new_id)
    member_id: str
    month: int = Field(ge=0, le=11)
    year: int
    amount: int = Field(gt=0)
    image_path: str
    file_name: str
    file_size: int
    upload_timestamp: datetime
    status: ReceiptStatus = ReceiptStatus.PENDING
    approval_timestamp: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    rejection_notes: Optional[str] = None
    locked: bool = False

    @property
    def key(self) -> MonthKey:
        return MonthKey(self.year, self.month)


class AdminCredentials(LedgerRecord):
    username: str
    password_hash: str
