"""RADIUS entitlement synchronization and session invalidation."""

from .models import (
    ActiveSession,
    EntitlementSyncResult,
    GroupMembership,
    ReplyAttribute,
    SecretRecord,
    SessionInvalidationResult,
    SyncStep,
)
from .service import EntitlementSynchronizer
from .session import (
    HttpSessionInvalidator,
    NoopSessionInvalidator,
    RadClientSessionInvalidator,
    SessionInvalidator,
)
from .store import AuthorizationStore, PostgresRadiusStore, SessionLookup

__all__ = [
    "ActiveSession",
    "AuthorizationStore",
    "EntitlementSyncResult",
    "EntitlementSynchronizer",
    "GroupMembership",
    "HttpSessionInvalidator",
    "NoopSessionInvalidator",
    "PostgresRadiusStore",
    "RadClientSessionInvalidator",
    "ReplyAttribute",
    "SecretRecord",
    "SessionInvalidationResult",
    "SessionInvalidator",
    "SessionLookup",
    "SyncStep",
]
