"""Authorization-store record shapes and synchronizer results."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict

PASSWORD_ATTRIBUTE = "Cleartext-Password"
REPLY_MESSAGE_ATTRIBUTE = "Reply-Message"
FRAMED_IP_ATTRIBUTE = "Framed-IP-Address"
ACTIVE_GROUP_PRIORITY = 1


class SecretRecord(BaseModel):
    username: str
    value: str
    attribute: str = PASSWORD_ATTRIBUTE
    op: str = ":="

    model_config = ConfigDict(frozen=True)


class GroupMembership(BaseModel):
    username: str
    group_name: str
    priority: int = ACTIVE_GROUP_PRIORITY

    model_config = ConfigDict(frozen=True)


class ReplyAttribute(BaseModel):
    username: str
    attribute: str
    value: str
    op: str = ":="

    model_config = ConfigDict(frozen=True)


class ActiveSession(BaseModel):
    """Open accounting session (``radacct`` row without a stop time)."""

    username: str
    nas_ip_address: str
    session_id: Optional[str] = None
    framed_ip_address: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class SyncStep(BaseModel):
    name: str
    ok: bool
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class EntitlementSyncResult(BaseModel):
    username: str
    steps: List[SyncStep]

    model_config = ConfigDict(frozen=True)

    @property
    def ok(self) -> bool:
        return all(step.ok for step in self.steps)

    @property
    def errors(self) -> List[str]:
        return [f"{step.name}: {step.error}" for step in self.steps if not step.ok]


class SessionInvalidationResult(BaseModel):
    success: bool
    error: Optional[str] = None
    message: Optional[str] = None

    model_config = ConfigDict(frozen=True)


__all__ = [
    "ACTIVE_GROUP_PRIORITY",
    "ActiveSession",
    "EntitlementSyncResult",
    "FRAMED_IP_ATTRIBUTE",
    "GroupMembership",
    "PASSWORD_ATTRIBUTE",
    "REPLY_MESSAGE_ATTRIBUTE",
    "ReplyAttribute",
    "SecretRecord",
    "SessionInvalidationResult",
    "SyncStep",
]
