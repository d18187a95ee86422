"""Errors raised by the notification dispatcher."""
from __future__ import annotations

from typing import Sequence

from .models import NotificationAttempt


class NotificationDeliveryError(RuntimeError):
    """Base class for dispatch failures."""


class NoActiveProvidersError(NotificationDeliveryError):
    def __init__(self) -> None:
        super().__init__("No active notification providers configured")


class AllProvidersFailedError(NotificationDeliveryError):
    """Every active provider failed; ``attempts`` holds one entry per provider."""

    def __init__(self, attempts: Sequence[NotificationAttempt]) -> None:
        self.attempts = list(attempts)
        reasons = "; ".join(
            f"{attempt.provider_name} ({attempt.provider_type.value}): {attempt.response}"
            for attempt in self.attempts
        )
        super().__init__(f"All notification providers failed: {reasons}")

    @property
    def reasons(self) -> dict[str, str]:
        """Failure reason per provider id."""
        return {attempt.provider_id: attempt.response for attempt in self.attempts}


__all__ = ["AllProvidersFailedError", "NoActiveProvidersError", "NotificationDeliveryError"]
