"""Application wiring for WhatsApp notification delivery."""
from __future__ import annotations

import logging
from functools import lru_cache

import httpx

from ...messaging import MessagingConfig, NotificationChannel, create_channel, load_messaging_config
from ..notifications import (
    NotificationDispatcher,
    NotificationProvider,
    PostgresNotificationRepository,
    WhatsAppPaymentNotifier,
)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_messaging_config() -> MessagingConfig:
    return load_messaging_config()


@lru_cache(maxsize=1)
def get_http_client() -> httpx.Client:
    config = get_messaging_config()
    return httpx.Client(timeout=config.provider_timeout_seconds)


def build_channel(provider: NotificationProvider) -> NotificationChannel:
    """Channel factory handed to the dispatcher; one channel per provider row."""

    config = get_messaging_config()
    return create_channel(
        provider.provider_type,
        name=provider.name,
        api_url=provider.api_url,
        api_key=provider.api_key,
        client=get_http_client(),
        sender_number=provider.sender_number,
        country_code=config.default_country_code,
    )


@lru_cache(maxsize=1)
def get_notification_repository() -> PostgresNotificationRepository:
    return PostgresNotificationRepository()


@lru_cache(maxsize=1)
def get_notification_dispatcher() -> NotificationDispatcher:
    repository = get_notification_repository()
    config = get_messaging_config()
    logger.debug("Notification dispatcher configured", extra={"country_code": config.default_country_code})
    return NotificationDispatcher(
        repository,
        repository,
        build_channel,
        country_code=config.default_country_code,
    )


@lru_cache(maxsize=1)
def get_payment_notifier() -> WhatsAppPaymentNotifier:
    return WhatsAppPaymentNotifier(
        get_notification_dispatcher(),
        get_notification_repository(),
        get_messaging_config(),
    )


__all__ = [
    "build_channel",
    "get_http_client",
    "get_messaging_config",
    "get_notification_dispatcher",
    "get_notification_repository",
    "get_payment_notifier",
]
