"""Restores a subscriber's RADIUS entitlement after payment."""
from __future__ import annotations

import logging
from typing import Callable, List

from ..billing.models import Profile, Subscriber
from .models import (
    ACTIVE_GROUP_PRIORITY,
    FRAMED_IP_ATTRIBUTE,
    REPLY_MESSAGE_ATTRIBUTE,
    EntitlementSyncResult,
    GroupMembership,
    ReplyAttribute,
    SecretRecord,
    SyncStep,
)
from .store import AuthorizationStore

logger = logging.getLogger(__name__)


class EntitlementSynchronizer:
    """Brings ``radcheck``/``radusergroup``/``radreply`` back to the active profile.

    Each step runs even when an earlier one failed; failures are logged and
    reported in the returned :class:`EntitlementSyncResult`.
    """

    def __init__(self, store: AuthorizationStore) -> None:
        self._store = store

    def restore_active_entitlement(self, subscriber: Subscriber, profile: Profile) -> EntitlementSyncResult:
        username = subscriber.username
        steps: List[SyncStep] = [
            self._step("secret", username, lambda: self._store.upsert_secret(
                SecretRecord(username=username, value=subscriber.secret)
            )),
            self._step("group", username, lambda: self._store.replace_group_membership(
                GroupMembership(username=username, group_name=profile.group_name, priority=ACTIVE_GROUP_PRIORITY)
            )),
            self._step("reply_message", username, lambda: self._store.delete_reply_attribute(
                username, REPLY_MESSAGE_ATTRIBUTE
            )),
            self._step("static_ip", username, lambda: self._sync_static_ip(subscriber)),
        ]

        result = EntitlementSyncResult(username=username, steps=steps)
        if result.ok:
            logger.info(
                "RADIUS entitlement restored",
                extra={"username": username, "group_name": profile.group_name},
            )
        return result

    def _sync_static_ip(self, subscriber: Subscriber) -> None:
        if subscriber.ip_address:
            self._store.upsert_reply_attribute(
                ReplyAttribute(
                    username=subscriber.username,
                    attribute=FRAMED_IP_ATTRIBUTE,
                    value=subscriber.ip_address,
                )
            )
        else:
            self._store.delete_reply_attribute(subscriber.username, FRAMED_IP_ATTRIBUTE)

    def _step(self, name: str, username: str, action: Callable[[], object]) -> SyncStep:
        try:
            action()
        except Exception as exc:
            logger.exception(
                "RADIUS sync step failed",
                extra={"username": username, "sync_step": name},
            )
            return SyncStep(name=name, ok=False, error=str(exc) or type(exc).__name__)
        return SyncStep(name=name, ok=True)


__all__ = ["EntitlementSynchronizer"]
