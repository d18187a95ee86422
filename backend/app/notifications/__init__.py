"""Customer notifications delivered through prioritized WhatsApp gateways."""

from .models import (
    AttemptStatus,
    DispatchResult,
    MessageTemplate,
    NotificationAttempt,
    NotificationProvider,
    ProviderTestResult,
)
from .exceptions import AllProvidersFailedError, NoActiveProvidersError, NotificationDeliveryError
from .dispatcher import AttemptLog, ChannelFactory, NotificationDispatcher, ProviderRepository, normalize_phone
from .repository import PostgresNotificationRepository
from .payment import TemplateRepository, WhatsAppPaymentNotifier

__all__ = [
    "AllProvidersFailedError",
    "AttemptLog",
    "AttemptStatus",
    "ChannelFactory",
    "DispatchResult",
    "MessageTemplate",
    "NoActiveProvidersError",
    "NotificationAttempt",
    "NotificationDeliveryError",
    "NotificationDispatcher",
    "NotificationProvider",
    "PostgresNotificationRepository",
    "ProviderRepository",
    "ProviderTestResult",
    "TemplateRepository",
    "WhatsAppPaymentNotifier",
    "normalize_phone",
]
