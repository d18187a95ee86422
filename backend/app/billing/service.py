"""Reconciles a confirmed payment with billing, network access, ledger and notifications."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Callable, List, Optional, Protocol

from ..entitlements.models import EntitlementSyncResult
from ..entitlements.session import SessionInvalidator
from ..notifications.models import DispatchResult
from .exceptions import InvoiceNotFound, InvoiceNotPayable, PersistenceError
from .expiry import next_expiry
from .ledger import LedgerSyncResult
from .models import (
    Invoice,
    InvoiceContext,
    InvoiceStatus,
    PaymentTransition,
    Profile,
    ReconciliationReport,
    SideEffectOutcome,
    SideEffectStatus,
    Subscriber,
    SubscriberStatus,
)

logger = logging.getLogger("billing")

SUBSCRIBER_UPDATE = "subscriber_update"
LEDGER = "ledger"
NOTIFICATION = "notification"
ENTITLEMENT = "entitlement"
SESSION = "session"
REGISTRATION = "registration"


class InvoiceRepository(Protocol):
    def load_invoice_context(self, invoice_id: str) -> Optional[InvoiceContext]:
        ...

    def mark_invoice_paid(self, invoice_id: str, paid_at: datetime) -> Optional[PaymentTransition]:
        """Conditionally set PAID; ``transitioned`` tells whether this call did it."""


class SubscriberRepository(Protocol):
    def update_subscriber_service(
        self,
        subscriber_id: str,
        *,
        expired_at: datetime,
        status: SubscriberStatus,
    ) -> Optional[Subscriber]:
        ...

    def activate_installed_registration(self, subscriber_id: str) -> bool:
        ...


class LedgerRecorder(Protocol):
    def record_payment_income(
        self,
        invoice: Invoice,
        profile: Optional[Profile],
        subscriber: Optional[Subscriber],
        *,
        notes: Optional[str] = None,
    ) -> LedgerSyncResult:
        ...


class PaymentNotifier(Protocol):
    def notify_payment_success(self, invoice: Invoice, subscriber: Subscriber, profile: Profile) -> DispatchResult:
        ...


class EntitlementRestorer(Protocol):
    def restore_active_entitlement(self, subscriber: Subscriber, profile: Profile) -> EntitlementSyncResult:
        ...


@dataclass
class ReconciliationService:
    """Runs the ``mark_invoice_paid`` flow.

    The PAID write is the only step that can fail the call. Everything after
    it is best-effort and reported through :class:`SideEffectOutcome` entries.
    """

    invoices: InvoiceRepository
    subscribers: SubscriberRepository
    ledger: LedgerRecorder
    notifier: PaymentNotifier
    entitlements: EntitlementRestorer
    sessions: SessionInvalidator
    billing_timezone: tzinfo = timezone.utc
    clock: Optional[Callable[[], datetime]] = None

    def _now(self) -> datetime:
        if self.clock is not None:
            return self.clock()
        return datetime.now(timezone.utc)

    def mark_invoice_paid(
        self,
        invoice_id: str,
        *,
        paid_at: Optional[datetime] = None,
        payment_method: Optional[str] = None,
    ) -> ReconciliationReport:
        try:
            context = self.invoices.load_invoice_context(invoice_id)
        except Exception as exc:
            logger.exception("Failed to load invoice", extra={"invoice_id": invoice_id})
            raise PersistenceError(f"Failed to load invoice {invoice_id}: {exc}") from exc
        if context is None:
            raise InvoiceNotFound(invoice_id)

        invoice = context.invoice
        if invoice.status == InvoiceStatus.CANCELLED:
            raise InvoiceNotPayable(invoice_id, invoice.status.value)
        if invoice.is_paid:
            logger.info("Invoice already paid", extra={"invoice_id": invoice_id})
            return ReconciliationReport(invoice=invoice, already_paid=True)

        paid_at = paid_at or self._now()
        if paid_at.tzinfo is None:
            paid_at = paid_at.replace(tzinfo=timezone.utc)

        try:
            transition = self.invoices.mark_invoice_paid(invoice_id, paid_at)
        except Exception as exc:
            logger.exception("Failed to mark invoice paid", extra={"invoice_id": invoice_id})
            raise PersistenceError(f"Failed to mark invoice {invoice_id} paid: {exc}") from exc
        if transition is None:
            raise InvoiceNotFound(invoice_id)

        if not transition.transitioned:
            if transition.invoice.status == InvoiceStatus.CANCELLED:
                raise InvoiceNotPayable(invoice_id, transition.invoice.status.value)
            logger.info("Invoice paid by a concurrent confirmation", extra={"invoice_id": invoice_id})
            return ReconciliationReport(invoice=transition.invoice, already_paid=True)

        paid_invoice = transition.invoice
        logger.info(
            "Invoice marked paid",
            extra={
                "invoice_id": invoice_id,
                "invoice_number": paid_invoice.invoice_number,
                "previous_status": transition.previous_status.value,
            },
        )

        subscriber = context.subscriber
        profile = context.profile
        if subscriber is None or profile is None:
            logger.warning("Paid invoice has no subscriber or profile", extra={"invoice_id": invoice_id})
            return ReconciliationReport(
                invoice=paid_invoice,
                outcomes=[
                    SideEffectOutcome(
                        name=SUBSCRIBER_UPDATE,
                        status=SideEffectStatus.SKIPPED,
                        detail="Invoice has no linked subscriber or profile",
                    )
                ],
            )

        return self._apply_side_effects(paid_invoice, subscriber, profile, payment_method)

    def _apply_side_effects(
        self,
        invoice: Invoice,
        subscriber: Subscriber,
        profile: Profile,
        payment_method: Optional[str],
    ) -> ReconciliationReport:
        reactivate = subscriber.status.needs_reactivation
        new_expiry = next_expiry(
            subscriber.expired_at,
            profile.validity_value,
            profile.validity_unit,
            now=self._now(),
            tz=self.billing_timezone,
        )
        new_status = SubscriberStatus.ACTIVE if reactivate else subscriber.status

        outcomes: List[SideEffectOutcome] = [
            self._run(SUBSCRIBER_UPDATE, invoice, lambda: self._update_subscriber(subscriber, new_expiry, new_status)),
            self._run(LEDGER, invoice, lambda: self._record_ledger(invoice, subscriber, profile, payment_method)),
            self._run(NOTIFICATION, invoice, lambda: self._notify(invoice, subscriber, profile)),
        ]
        if reactivate:
            outcomes.append(self._run(ENTITLEMENT, invoice, lambda: self._restore_entitlement(subscriber, profile)))
            outcomes.append(self._run(SESSION, invoice, lambda: self._invalidate_session(subscriber)))
            outcomes.append(self._run(REGISTRATION, invoice, lambda: self._activate_registration(subscriber)))

        report = ReconciliationReport(
            invoice=invoice,
            reactivated=reactivate,
            previous_expiry=subscriber.expired_at,
            new_expiry=new_expiry,
            outcomes=outcomes,
        )
        logger.info(
            "Payment reconciled",
            extra={
                "invoice_id": invoice.invoice_id,
                "username": subscriber.username,
                "reactivated": reactivate,
                "new_expiry": new_expiry.isoformat(),
                "failed_side_effects": [item.name for item in report.failures],
            },
        )
        return report

    def _run(
        self,
        name: str,
        invoice: Invoice,
        action: Callable[[], SideEffectOutcome],
    ) -> SideEffectOutcome:
        try:
            return action()
        except Exception as exc:
            logger.exception(
                "Payment side effect failed",
                extra={"invoice_id": invoice.invoice_id, "side_effect": name},
            )
            return SideEffectOutcome(
                name=name,
                status=SideEffectStatus.FAILED,
                error=str(exc) or type(exc).__name__,
            )

    def _update_subscriber(
        self,
        subscriber: Subscriber,
        expired_at: datetime,
        status: SubscriberStatus,
    ) -> SideEffectOutcome:
        updated = self.subscribers.update_subscriber_service(
            subscriber.subscriber_id,
            expired_at=expired_at,
            status=status,
        )
        if updated is None:
            return SideEffectOutcome(
                name=SUBSCRIBER_UPDATE,
                status=SideEffectStatus.FAILED,
                error=f"Subscriber {subscriber.subscriber_id} not found",
            )
        return SideEffectOutcome(
            name=SUBSCRIBER_UPDATE,
            status=SideEffectStatus.SUCCEEDED,
            detail=f"expired_at={expired_at.isoformat()} status={status.value}",
        )

    def _record_ledger(
        self,
        invoice: Invoice,
        subscriber: Subscriber,
        profile: Profile,
        payment_method: Optional[str],
    ) -> SideEffectOutcome:
        notes = f"Payment method: {payment_method}" if payment_method else None
        result = self.ledger.record_payment_income(invoice, profile, subscriber, notes=notes)
        if not result.created:
            return SideEffectOutcome(
                name=LEDGER,
                status=SideEffectStatus.SKIPPED,
                detail=f"Entry {result.entry.reference} already recorded",
            )
        return SideEffectOutcome(name=LEDGER, status=SideEffectStatus.SUCCEEDED, detail=result.entry.reference)

    def _notify(self, invoice: Invoice, subscriber: Subscriber, profile: Profile) -> SideEffectOutcome:
        if not (subscriber.phone or invoice.customer_phone):
            return SideEffectOutcome(
                name=NOTIFICATION,
                status=SideEffectStatus.SKIPPED,
                detail="Subscriber has no phone number",
            )
        result = self.notifier.notify_payment_success(invoice, subscriber, profile)
        return SideEffectOutcome(
            name=NOTIFICATION,
            status=SideEffectStatus.SUCCEEDED,
            detail=f"Sent via {result.provider_name}",
        )

    def _restore_entitlement(self, subscriber: Subscriber, profile: Profile) -> SideEffectOutcome:
        result = self.entitlements.restore_active_entitlement(subscriber, profile)
        if not result.ok:
            return SideEffectOutcome(
                name=ENTITLEMENT,
                status=SideEffectStatus.FAILED,
                error="; ".join(result.errors),
            )
        return SideEffectOutcome(name=ENTITLEMENT, status=SideEffectStatus.SUCCEEDED, detail=profile.group_name)

    def _invalidate_session(self, subscriber: Subscriber) -> SideEffectOutcome:
        result = self.sessions.force_reauthentication(subscriber.username)
        if not result.success:
            return SideEffectOutcome(
                name=SESSION,
                status=SideEffectStatus.FAILED,
                error=result.error or "Session invalidation failed",
            )
        return SideEffectOutcome(name=SESSION, status=SideEffectStatus.SUCCEEDED, detail=result.message)

    def _activate_registration(self, subscriber: Subscriber) -> SideEffectOutcome:
        if self.subscribers.activate_installed_registration(subscriber.subscriber_id):
            return SideEffectOutcome(name=REGISTRATION, status=SideEffectStatus.SUCCEEDED)
        return SideEffectOutcome(
            name=REGISTRATION,
            status=SideEffectStatus.SKIPPED,
            detail="No installed registration",
        )


__all__ = [
    "ENTITLEMENT",
    "EntitlementRestorer",
    "InvoiceRepository",
    "LEDGER",
    "LedgerRecorder",
    "NOTIFICATION",
    "PaymentNotifier",
    "REGISTRATION",
    "ReconciliationService",
    "SESSION",
    "SUBSCRIBER_UPDATE",
    "SubscriberRepository",
]
