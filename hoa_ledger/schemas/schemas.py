from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, condecimal, conint

from ..core.money import from_minor
from ..models.ledger import (
    AdvanceCreditRecord,
    AuditEntry,
    ChangeDirection,
    ChangeScope,
    DueChangeRecord,
    DueEntry,
    Expense,
    FeedbackItem,
    FeedbackType,
    Member,
    PaymentRecord,
    PaymentSource,
    Receipt,
    ReceiptStatus,
    ResetEvent,
    Role,
)

PositiveAmount = condecimal(gt=0, max_digits=12, decimal_places=2)
NonNegativeAmount = condecimal(ge=0, max_digits=12, decimal_places=2)
MonthIndex = conint(ge=0, le=11)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Role
    name: str
    member_id: Optional[str] = None


class MemberCreate(BaseModel):
    name: str = Field(min_length=1)
    apartment: str = Field(min_length=1)
    contact: str = ""
    email: str = ""


class DueEntryRead(BaseModel):
    year: int
    month: int
    label: str
    amount: Decimal
    paid_amount: Decimal
    outstanding: Decimal
    paid: bool
    custom_amount: bool

    @classmethod
    def from_entry(cls, entry: DueEntry) -> "DueEntryRead":
        return cls(
            year=entry.year,
            month=entry.month,
            label=entry.key.label,
            amount=from_minor(entry.amount),
            paid_amount=from_minor(entry.paid_amount),
            outstanding=from_minor(entry.outstanding),
            paid=entry.paid,
            custom_amount=entry.custom_amount,
        )


class MemberRead(BaseModel):
    id: str
    name: str
    apartment: str
    contact: str
    email: str
    created_at: datetime
    advance_balance: Decimal
    active: bool
    deleted_at: Optional[datetime]
    total_pending: Decimal
    dues_history: List[DueEntryRead] = []

    @classmethod
    def from_member(cls, member: Member) -> "MemberRead":
        return cls(
            id=member.id,
            name=member.name,
            apartment=member.apartment,
            contact=member.contact,
            email=member.email,
            created_at=member.created_at,
            advance_balance=from_minor(member.advance_balance),
            active=member.active,
            deleted_at=member.deleted_at,
            total_pending=from_minor(member.total_outstanding()),
            dues_history=[DueEntryRead.from_entry(entry) for entry in sorted(member.dues_history, key=lambda e: e.key)],
        )


class PendingDuesRead(BaseModel):
    member_id: str
    view: Literal["current", "cumulative"]
    pending: Decimal


class PaymentCreate(BaseModel):
    member_id: str
    year: int
    month: MonthIndex
    amount: PositiveAmount


class BacklogPaymentCreate(BaseModel):
    member_id: str
    amount: PositiveAmount


class PaymentRead(BaseModel):
    id: str
    member_id: str
    member_name: str
    apartment: str
    amount: Decimal
    year: int
    month: int
    date: datetime
    source: PaymentSource
    recorded_by: Optional[str]

    @classmethod
    def from_record(cls, record: PaymentRecord) -> "PaymentRead":
        return cls(**record.model_dump(exclude={"amount"}), amount=from_minor(record.amount))


class AdvanceCreditCreate(BaseModel):
    member_id: str
    amount: PositiveAmount
    source: Optional[str] = None


class AdvanceCreditRead(BaseModel):
    id: str
    member_id: str
    member_name: str
    apartment: str
    amount: Decimal
    source: str
    timestamp: datetime

    @classmethod
    def from_record(cls, record: AdvanceCreditRecord) -> "AdvanceCreditRead":
        return cls(**record.model_dump(exclude={"amount", "type"}), amount=from_minor(record.amount))


class AdvanceSummary(BaseModel):
    member_id: str
    member_name: str
    apartment: str
    balance: Decimal
    months_covered: int


class SweepResult(BaseModel):
    member_id: str
    remaining_balance: Decimal
    payments: List[PaymentRead]


class DueChangeCreate(BaseModel):
    scope: ChangeScope
    direction: ChangeDirection
    amount: PositiveAmount
    effective_month: MonthIndex
    effective_year: int
    reason: str
    member_ids: List[str] = []


class DueChangeRead(BaseModel):
    id: str
    scope: ChangeScope
    member_ids: List[str]
    direction: ChangeDirection
    amount: Decimal
    old_amount: Optional[Decimal] = None
    new_amount: Optional[Decimal] = None
    effective_month: int
    effective_year: int
    reason: str
    timestamp: datetime
    admin_name: str

    @classmethod
    def from_record(cls, record: DueChangeRecord) -> "DueChangeRead":
        return cls(
            **record.model_dump(exclude={"amount", "old_amount", "new_amount", "admin_id"}),
            amount=from_minor(record.amount),
            old_amount=from_minor(record.old_amount) if record.old_amount is not None else None,
            new_amount=from_minor(record.new_amount) if record.new_amount is not None else None,
        )


class CustomAmountUpdate(BaseModel):
    year: int
    month: MonthIndex
    amount: NonNegativeAmount


class DuesCheckResult(BaseModel):
    created: int
    last_processed: Optional[str]


class ExpenseRead(BaseModel):
    id: str
    name: str
    amount: Decimal
    category: str
    date: date
    notes: str
    image: Optional[str]
    created_at: datetime

    @classmethod
    def from_record(cls, expense: Expense) -> "ExpenseRead":
        return cls(
            id=expense.id,
            name=expense.name,
            amount=from_minor(expense.amount),
            category=expense.category,
            date=expense.spent_on,
            notes=expense.notes,
            image=expense.image,
            created_at=expense.created_at,
        )


class FeedbackCreate(BaseModel):
    type: FeedbackType
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)


class FeedbackRead(BaseModel):
    id: str
    type: FeedbackType
    title: str
    description: str
    author: str
    role: Role
    date: datetime
    votes: int
    voted: bool = False

    @classmethod
    def from_item(cls, item: FeedbackItem, viewer_id: Optional[str] = None) -> "FeedbackRead":
        return cls(
            **item.model_dump(exclude={"author_id", "voted_by"}),
            voted=viewer_id in item.voted_by if viewer_id else False,
        )


class ReceiptRead(BaseModel):
    id: str
    member_id: str
    month: int
    year: int
    amount: Decimal
    image_path: str
    file_name: str
    file_size: int
    upload_timestamp: datetime
    status: ReceiptStatus
    approval_timestamp: Optional[datetime]
    approved_by: Optional[str]
    rejection_reason: Optional[str]
    rejection_notes: Optional[str]
    locked: bool

    @classmethod
    def from_record(cls, receipt: Receipt) -> "ReceiptRead":
        return cls(**receipt.model_dump(exclude={"amount"}), amount=from_minor(receipt.amount))


class ReceiptReject(BaseModel):
    reason: str
    notes: str = ""


class DashboardRead(BaseModel):
    year: int
    month: int
    monthly_collected: Decimal
    total_collected: Decimal
    monthly_expenses: Decimal
    total_expenses: Decimal
    net_balance: Decimal
    monthly_pending: Decimal
    total_pending: Decimal


class MemberStandingRead(BaseModel):
    member_id: str
    name: str
    apartment: str
    pending: Decimal
    unpaid_months: int
    status: Literal["paid", "unpaid", "overdue"]


class CollectionPointRead(BaseModel):
    year: int
    month: int
    label: str
    amount: Decimal


class PaidStatusRead(BaseModel):
    year: int
    month: int
    paid: int
    unpaid: int


class CategoryTotalRead(BaseModel):
    category: str
    amount: Decimal
    count: int
    share: float


class AuditEntryRead(BaseModel):
    id: str
    timestamp: datetime
    admin_id: str
    admin_name: str
    action: str
    details: Dict[str, Any]

    @classmethod
    def from_entry(cls, entry: AuditEntry) -> "AuditEntryRead":
        return cls(**entry.model_dump(mode="json"))


class AuditLogPage(BaseModel):
    items: List[AuditEntryRead]
    total: int


class AdminCredentialsUpdate(BaseModel):
    current_password: str
    new_username: str
    new_password: str
    confirm_password: str


class ResetRequest(BaseModel):
    password: str


class ResetEventRead(BaseModel):
    id: str
    user: str
    timestamp: datetime
    details: Dict[str, int]

    @classmethod
    def from_event(cls, event: ResetEvent) -> "ResetEventRead":
        return cls(id=event.id, user=event.user, timestamp=event.timestamp, details=event.details)
