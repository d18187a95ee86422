from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from backend.app.billing import (
    Invoice,
    InvoiceStatus,
    LedgerCategory,
    LedgerCategoryNotFound,
    LedgerEntry,
    LedgerEntryType,
    LedgerSync,
    Profile,
    Subscriber,
    ValidityUnit,
    invoice_reference,
)

PAID_AT = datetime(2024, 3, 4, 10, 0, tzinfo=timezone.utc)


class FakeLedgerRepository:
    def __init__(self) -> None:
        self.categories: List[LedgerCategory] = [
            LedgerCategory(category_id="c-income", name="Subscription Payment"),
            LedgerCategory(category_id="c-expense", name="Subscription Payment", entry_type=LedgerEntryType.EXPENSE),
        ]
        self.entries: Dict[str, LedgerEntry] = {}
        self.concurrent_entry: Optional[LedgerEntry] = None

    def find_category(self, name: str, entry_type: LedgerEntryType) -> Optional[LedgerCategory]:
        for category in self.categories:
            if category.name == name and category.entry_type == entry_type:
                return category
        return None

    def get_entry_by_reference(self, reference: str) -> Optional[LedgerEntry]:
        return self.entries.get(reference)

    def insert_entry(self, entry: LedgerEntry) -> Optional[LedgerEntry]:
        if self.concurrent_entry is not None:
            self.entries[entry.reference] = self.concurrent_entry
            return None
        stored = entry.model_copy(update={"entry_id": "tx-1"})
        self.entries[entry.reference] = stored
        return stored


@pytest.fixture
def repository() -> FakeLedgerRepository:
    return FakeLedgerRepository()


@pytest.fixture
def invoice() -> Invoice:
    return Invoice(
        invoice_id="inv-9",
        invoice_number="2403-0009",
        customer_name="Siti",
        amount=200000,
        status=InvoiceStatus.PAID,
        paid_at=PAID_AT,
    )


@pytest.fixture
def profile() -> Profile:
    return Profile(
        profile_id="p2",
        name="Business 50M",
        validity_value=1,
        validity_unit=ValidityUnit.MONTHS,
        group_name="biz-50m",
    )


@pytest.fixture
def subscriber() -> Subscriber:
    return Subscriber(subscriber_id="s9", name="Siti Aminah", username="siti", secret="pw")


def test_invoice_reference_format():
    assert invoice_reference("2403-0009") == "INV-2403-0009"


def test_records_income_entry_once(repository, invoice, profile, subscriber):
    sync = LedgerSync(repository, category_name="Subscription Payment")

    first = sync.record_payment_income(invoice, profile, subscriber)
    second = sync.record_payment_income(invoice, profile, subscriber)

    assert first.created is True
    assert first.entry.category_id == "c-income"
    assert first.entry.entry_type == LedgerEntryType.INCOME
    assert first.entry.amount == 200000
    assert first.entry.date == PAID_AT
    assert first.entry.reference == "INV-2403-0009"
    assert first.entry.description == "Payment Business 50M - Siti Aminah"
    assert second.created is False
    assert second.entry.entry_id == "tx-1"
    assert len(repository.entries) == 1


def test_falls_back_to_invoice_snapshot_without_subscriber(repository, invoice):
    sync = LedgerSync(repository, category_name="Subscription Payment")

    result = sync.record_payment_income(invoice, None, None)

    assert result.entry.description == "Payment Unknown - Siti"


def test_missing_category_raises(repository, invoice, profile, subscriber):
    sync = LedgerSync(repository, category_name="Internet Income")

    with pytest.raises(LedgerCategoryNotFound) as excinfo:
        sync.record_payment_income(invoice, profile, subscriber)

    assert excinfo.value.name == "Internet Income"
    assert repository.entries == {}


def test_conflicting_insert_returns_existing_entry(repository, invoice, profile, subscriber):
    repository.concurrent_entry = LedgerEntry(
        entry_id="tx-other",
        category_id="c-income",
        amount=200000,
        description="Written by another worker",
        date=PAID_AT,
        reference="INV-2403-0009",
    )
    sync = LedgerSync(repository, category_name="Subscription Payment")

    result = sync.record_payment_income(invoice, profile, subscriber)

    assert result.created is False
    assert result.entry.entry_id == "tx-other"
