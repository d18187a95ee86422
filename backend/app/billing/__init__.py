"""Billing domain package: invoices, expiry arithmetic, ledger and payment reconciliation."""

from .config import BillingConfig, CoaMode, load_billing_config
from .exceptions import (
    InvoiceNotFound,
    InvoiceNotPayable,
    LedgerCategoryNotFound,
    PersistenceError,
    ReconciliationError,
)
from .expiry import next_expiry
from .ledger import LedgerRepository, LedgerSync, LedgerSyncResult, invoice_reference
from .models import (
    Invoice,
    InvoiceContext,
    InvoiceStatus,
    LedgerCategory,
    LedgerEntry,
    LedgerEntryType,
    PaymentTransition,
    Profile,
    ReconciliationReport,
    SideEffectOutcome,
    SideEffectStatus,
    Subscriber,
    SubscriberStatus,
    ValidityUnit,
)
from .service import (
    EntitlementRestorer,
    InvoiceRepository,
    LedgerRecorder,
    PaymentNotifier,
    ReconciliationService,
    SubscriberRepository,
)

__all__ = [
    "BillingConfig",
    "CoaMode",
    "EntitlementRestorer",
    "Invoice",
    "InvoiceContext",
    "InvoiceNotFound",
    "InvoiceNotPayable",
    "InvoiceRepository",
    "InvoiceStatus",
    "LedgerCategory",
    "LedgerCategoryNotFound",
    "LedgerEntry",
    "LedgerEntryType",
    "LedgerRecorder",
    "LedgerRepository",
    "LedgerSync",
    "LedgerSyncResult",
    "PaymentNotifier",
    "PaymentTransition",
    "PersistenceError",
    "Profile",
    "ReconciliationError",
    "ReconciliationReport",
    "ReconciliationService",
    "SideEffectOutcome",
    "SideEffectStatus",
    "Subscriber",
    "SubscriberRepository",
    "SubscriberStatus",
    "ValidityUnit",
    "invoice_reference",
    "load_billing_config",
    "next_expiry",
]
