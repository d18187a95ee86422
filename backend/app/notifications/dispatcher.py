"""Priority-ordered failover dispatch across notification gateways."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, List, Optional, Protocol, Sequence

from ...messaging.providers import NotificationChannel
from .exceptions import AllProvidersFailedError, NoActiveProvidersError
from .models import (
    AttemptStatus,
    DispatchResult,
    NotificationAttempt,
    NotificationProvider,
    ProviderTestResult,
)

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"[^0-9]")


class ProviderRepository(Protocol):
    """Read access to configured gateways."""

    def list_active_providers(self) -> Sequence[NotificationProvider]:
        ...

    def get_provider(self, provider_id: str) -> Optional[NotificationProvider]:
        ...


class AttemptLog(Protocol):
    """Append-only store for delivery attempts."""

    def record_attempt(self, attempt: NotificationAttempt) -> None:
        ...


ChannelFactory = Callable[[NotificationProvider], NotificationChannel]


def normalize_phone(phone: str, country_code: str = "62") -> str:
    """Return ``phone`` as digits with a leading country code.

    ``0812…`` becomes ``62812…``; numbers without the country code get it
    prefixed.
    """

    digits = _NON_DIGITS.sub("", phone or "")
    if not digits:
        raise ValueError("phone number has no digits")
    if digits.startswith("0"):
        digits = country_code + digits[1:]
    if not digits.startswith(country_code):
        digits = country_code + digits
    return digits


class NotificationDispatcher:
    """Send through active providers in priority order until one succeeds."""

    def __init__(
        self,
        provider_repository: ProviderRepository,
        attempt_log: AttemptLog,
        channel_factory: ChannelFactory,
        *,
        country_code: str = "62",
    ) -> None:
        self._providers = provider_repository
        self._attempt_log = attempt_log
        self._channel_factory = channel_factory
        self._country_code = country_code

    def send(self, phone: str, message: str) -> DispatchResult:
        providers = sorted(self._providers.list_active_providers(), key=lambda p: p.priority)
        providers = [provider for provider in providers if provider.is_active]
        if not providers:
            raise NoActiveProvidersError()

        target = normalize_phone(phone, self._country_code)
        attempts: List[NotificationAttempt] = []

        for provider in providers:
            logger.info(
                "Trying notification provider",
                extra={"provider_name": provider.name, "provider_type": provider.provider_type.value},
            )
            try:
                response = self._channel_factory(provider).send(target, message)
            except Exception as exc:
                attempt = self._attempt(provider, target, message, AttemptStatus.FAILED, str(exc) or type(exc).__name__)
                attempts.append(attempt)
                logger.warning(
                    "Notification provider failed",
                    extra={"provider_name": provider.name, "error": attempt.response},
                )
                continue

            attempt = self._attempt(provider, target, message, AttemptStatus.SENT, _dump(response))
            attempts.append(attempt)
            logger.info("Notification sent", extra={"provider_name": provider.name, "phone": target})
            return DispatchResult(
                provider_name=provider.name,
                provider_type=provider.provider_type,
                phone=target,
                response=response,
                attempts=attempts,
            )

        raise AllProvidersFailedError(attempts)

    def send_test_message(self, provider_id: str, phone: str, message: str) -> ProviderTestResult:
        """Send through one provider without failover.

        Gateway errors are returned in the result. An unknown provider raises
        ``LookupError`` and an unusable phone number raises ``ValueError``.
        """

        provider = self._providers.get_provider(provider_id)
        if provider is None:
            raise LookupError("Provider not found")
        target = normalize_phone(phone, self._country_code)

        try:
            response = self._channel_factory(provider).send(target, message)
        except Exception as exc:
            return ProviderTestResult(success=False, provider_name=provider.name, error=str(exc))
        return ProviderTestResult(success=True, provider_name=provider.name, response=response)

    def _attempt(
        self,
        provider: NotificationProvider,
        phone: str,
        message: str,
        status: AttemptStatus,
        response: str,
    ) -> NotificationAttempt:
        attempt = NotificationAttempt(
            phone=phone,
            message=message,
            status=status,
            provider_id=provider.provider_id,
            provider_name=provider.name,
            provider_type=provider.provider_type,
            response=response,
        )
        try:
            self._attempt_log.record_attempt(attempt)
        except Exception:
            logger.exception(
                "Failed to record notification attempt",
                extra={"provider_name": provider.name, "attempt_status": status.value},
            )
        return attempt


def _dump(payload: Any) -> str:
    try:
        return json.dumps(payload, default=str)
    except (TypeError, ValueError):
        return str(payload)


__all__ = [
    "AttemptLog",
    "ChannelFactory",
    "NotificationDispatcher",
    "ProviderRepository",
    "normalize_phone",
]
