"""Errors surfaced by the payment reconciliation flow."""
from __future__ import annotations


class ReconciliationError(Exception):
    """Base class for errors that abort ``mark_invoice_paid``."""


class InvoiceNotFound(ReconciliationError, LookupError):
    def __init__(self, invoice_id: str) -> None:
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found: {invoice_id}")


class InvoiceNotPayable(ReconciliationError, ValueError):
    """Cancelled invoices cannot be marked paid."""

    def __init__(self, invoice_id: str, status: str) -> None:
        self.invoice_id = invoice_id
        self.status = status
        super().__init__(f"Invoice {invoice_id} cannot be paid from status {status}")


class PersistenceError(ReconciliationError):
    """The billing store rejected the PAID write; no side effect has run."""


class LedgerCategoryNotFound(LookupError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Ledger category not found: {name}")


__all__ = [
    "InvoiceNotFound",
    "InvoiceNotPayable",
    "LedgerCategoryNotFound",
    "PersistenceError",
    "ReconciliationError",
]
