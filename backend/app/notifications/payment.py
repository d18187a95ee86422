"""Customer-facing payment notifications rendered from stored templates."""
from __future__ import annotations

import logging
from typing import Optional, Protocol

from ...messaging.config import MessagingConfig
from ...messaging.renderer import PAYMENT_SUCCESS, default_template, format_amount, render_template
from ..billing.models import Invoice, Profile, Subscriber
from .dispatcher import NotificationDispatcher
from .models import DispatchResult, MessageTemplate

logger = logging.getLogger(__name__)


class TemplateRepository(Protocol):
    def get_active_template(self, template_type: str) -> Optional[MessageTemplate]:
        ...


class WhatsAppPaymentNotifier:
    """Renders the ``payment-success`` template and hands it to the dispatcher."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        templates: TemplateRepository,
        config: MessagingConfig,
    ) -> None:
        self._dispatcher = dispatcher
        self._templates = templates
        self._config = config

    def notify_payment_success(
        self,
        invoice: Invoice,
        subscriber: Subscriber,
        profile: Profile,
    ) -> DispatchResult:
        phone = subscriber.phone or invoice.customer_phone
        if not phone:
            raise ValueError(f"No phone number for subscriber {subscriber.username}")

        message = render_template(self._template(PAYMENT_SUCCESS), {
            "customerName": subscriber.name or invoice.customer_name,
            "username": subscriber.username,
            "password": subscriber.secret,
            "profileName": profile.name,
            "invoiceNumber": invoice.invoice_number,
            "amount": format_amount(invoice.amount, self._config.currency_prefix),
            "dueDate": invoice.due_date.strftime("%d %B %Y") if invoice.due_date else "",
            "companyName": self._config.company_name,
            "companyPhone": self._config.company_phone,
        })
        return self._dispatcher.send(phone, message)

    def _template(self, template_type: str) -> str:
        stored = self._templates.get_active_template(template_type)
        if stored is not None:
            return stored.message
        logger.warning("No stored template, using built-in default", extra={"template_type": template_type})
        return default_template(template_type)


__all__ = ["TemplateRepository", "WhatsAppPaymentNotifier"]
