"""Domain models for notification providers and delivery audit records."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...messaging.providers import ProviderType


class AttemptStatus(str, Enum):
    """Outcome of a single provider attempt."""

    SENT = "sent"
    FAILED = "failed"


class NotificationProvider(BaseModel):
    """Configured gateway, tried in ascending ``priority`` order."""

    provider_id: str
    name: str
    provider_type: ProviderType = Field(alias="type")
    api_url: str
    api_key: str = ""
    sender_number: Optional[str] = None
    priority: int = 0
    is_active: bool = True

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class NotificationAttempt(BaseModel):
    """Append-only audit entry written for every provider attempt."""

    phone: str
    message: str
    status: AttemptStatus
    provider_id: Optional[str] = None
    provider_name: str
    provider_type: ProviderType
    response: str = ""
    sent_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def succeeded(self) -> bool:
        return self.status == AttemptStatus.SENT


class MessageTemplate(BaseModel):
    template_type: str
    message: str
    is_active: bool = True

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class DispatchResult(BaseModel):
    """Successful failover dispatch, attributed to the provider that delivered."""

    success: bool = True
    provider_name: str
    provider_type: ProviderType
    phone: str
    response: Dict[str, Any] = Field(default_factory=dict)
    attempts: List[NotificationAttempt] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ProviderTestResult(BaseModel):
    success: bool
    provider_name: str
    response: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


__all__ = [
    "AttemptStatus",
    "DispatchResult",
    "MessageTemplate",
    "NotificationAttempt",
    "NotificationProvider",
    "ProviderTestResult",
]
