"""Domain models for subscriber billing and payment reconciliation."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class InvoiceStatus(str, Enum):
    """Invoices only move forward: PENDING/OVERDUE to PAID, or to CANCELLED."""

    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class SubscriberStatus(str, Enum):
    ACTIVE = "active"
    ISOLATED = "isolated"
    SUSPENDED = "suspended"
    EXPIRED = "expired"

    @property
    def needs_reactivation(self) -> bool:
        return self in {SubscriberStatus.ISOLATED, SubscriberStatus.SUSPENDED, SubscriberStatus.EXPIRED}


class ValidityUnit(str, Enum):
    MINUTES = "MINUTES"
    HOURS = "HOURS"
    DAYS = "DAYS"
    MONTHS = "MONTHS"


class LedgerEntryType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class SideEffectStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class Profile(BaseModel):
    """Service plan: validity period, RADIUS group and price."""

    profile_id: str
    name: str
    validity_value: int = Field(ge=1)
    validity_unit: ValidityUnit
    group_name: str
    price: int = Field(default=0, ge=0)

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Subscriber(BaseModel):
    """PPPoE subscriber; ``username`` is the key into the authorization store."""

    subscriber_id: str
    name: str = ""
    phone: Optional[str] = None
    username: str
    secret: str
    status: SubscriberStatus = SubscriberStatus.ACTIVE
    expired_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    profile_id: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Invoice(BaseModel):
    """Billing record; the customer snapshot survives deletion of the subscriber."""

    invoice_id: str
    invoice_number: str
    subscriber_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_username: Optional[str] = None
    amount: int = Field(ge=0)
    status: InvoiceStatus = InvoiceStatus.PENDING
    due_date: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    payment_token: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @model_validator(mode="after")
    def _paid_at_matches_status(self) -> "Invoice":
        if (self.status == InvoiceStatus.PAID) != (self.paid_at is not None):
            raise ValueError("paid_at must be set if and only if the invoice is PAID")
        return self

    @property
    def is_paid(self) -> bool:
        return self.status == InvoiceStatus.PAID


class InvoiceContext(BaseModel):
    """Invoice loaded together with its subscriber and the subscriber's profile."""

    invoice: Invoice
    subscriber: Optional[Subscriber] = None
    profile: Optional[Profile] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class PaymentTransition(BaseModel):
    """Result of the conditional PAID write.

    ``transitioned`` is ``True`` only for the call that moved the invoice into
    PAID; every later call sees the stored invoice with ``previous_status``
    PAID.
    """

    invoice: Invoice
    previous_status: InvoiceStatus
    transitioned: bool

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class LedgerCategory(BaseModel):
    category_id: str
    name: str
    entry_type: LedgerEntryType = LedgerEntryType.INCOME

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class LedgerEntry(BaseModel):
    """Accounting record; ``reference`` is unique and doubles as the idempotency key."""

    entry_id: Optional[str] = None
    category_id: str
    entry_type: LedgerEntryType = LedgerEntryType.INCOME
    amount: int
    description: str
    date: datetime
    reference: str
    notes: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SideEffectOutcome(BaseModel):
    name: str
    status: SideEffectStatus
    error: Optional[str] = None
    detail: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def ok(self) -> bool:
        return self.status != SideEffectStatus.FAILED


class ReconciliationReport(BaseModel):
    """Everything ``mark_invoice_paid`` did, including contained failures."""

    invoice: Invoice
    already_paid: bool = False
    reactivated: bool = False
    previous_expiry: Optional[datetime] = None
    new_expiry: Optional[datetime] = None
    outcomes: List[SideEffectOutcome] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def outcome(self, name: str) -> Optional[SideEffectOutcome]:
        return next((item for item in self.outcomes if item.name == name), None)

    @property
    def failures(self) -> List[SideEffectOutcome]:
        return [item for item in self.outcomes if item.status == SideEffectStatus.FAILED]
