"""Idempotent income entries for paid invoices."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol

from .exceptions import LedgerCategoryNotFound
from .models import Invoice, LedgerCategory, LedgerEntry, LedgerEntryType, Profile, Subscriber

logger = logging.getLogger("billing.ledger")


class LedgerRepository(Protocol):
    def find_category(self, name: str, entry_type: LedgerEntryType) -> Optional[LedgerCategory]:
        ...

    def get_entry_by_reference(self, reference: str) -> Optional[LedgerEntry]:
        ...

    def insert_entry(self, entry: LedgerEntry) -> Optional[LedgerEntry]:
        """Insert ``entry``; return ``None`` when the reference already exists."""


def invoice_reference(invoice_number: str) -> str:
    return f"INV-{invoice_number}"


@dataclass(frozen=True)
class LedgerSyncResult:
    entry: LedgerEntry
    created: bool


class LedgerSync:
    """Writes at most one INCOME entry per invoice number."""

    def __init__(self, repository: LedgerRepository, *, category_name: str) -> None:
        self._repository = repository
        self._category_name = category_name

    def record_payment_income(
        self,
        invoice: Invoice,
        profile: Optional[Profile],
        subscriber: Optional[Subscriber],
        *,
        notes: Optional[str] = None,
    ) -> LedgerSyncResult:
        reference = invoice_reference(invoice.invoice_number)
        existing = self._repository.get_entry_by_reference(reference)
        if existing is not None:
            logger.info("Ledger entry already exists", extra={"reference": reference})
            return LedgerSyncResult(entry=existing, created=False)

        category = self._repository.find_category(self._category_name, LedgerEntryType.INCOME)
        if category is None:
            raise LedgerCategoryNotFound(self._category_name)

        customer_name = (subscriber.name if subscriber else None) or invoice.customer_name or "Unknown"
        profile_name = profile.name if profile else "Unknown"
        entry = LedgerEntry(
            category_id=category.category_id,
            entry_type=LedgerEntryType.INCOME,
            amount=invoice.amount,
            description=f"Payment {profile_name} - {customer_name}",
            date=invoice.paid_at or datetime.now(timezone.utc),
            reference=reference,
            notes=notes,
        )
        stored = self._repository.insert_entry(entry)
        if stored is None:
            # Lost a race with a concurrent writer for the same reference.
            existing = self._repository.get_entry_by_reference(reference)
            return LedgerSyncResult(entry=existing or entry, created=False)

        logger.info(
            "Ledger entry recorded",
            extra={"reference": reference, "amount": invoice.amount},
        )
        return LedgerSyncResult(entry=stored, created=True)


__all__ = ["LedgerRepository", "LedgerSync", "LedgerSyncResult", "invoice_reference"]
