"""Tests for restoring RADIUS entitlements after payment."""
from __future__ import annotations

from typing import Dict, List, Set, Tuple

import pytest

from backend.app.billing import Profile, Subscriber, SubscriberStatus, ValidityUnit
from backend.app.entitlements import (
    EntitlementSynchronizer,
    GroupMembership,
    ReplyAttribute,
    SecretRecord,
)


class InMemoryRadiusStore:
    def __init__(self) -> None:
        self.radcheck: Dict[Tuple[str, str], SecretRecord] = {}
        self.radusergroup: List[GroupMembership] = []
        self.radreply: Dict[Tuple[str, str], ReplyAttribute] = {}
        self.broken: Set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.broken:
            raise RuntimeError(f"{operation} unavailable")

    def upsert_secret(self, record: SecretRecord) -> None:
        self._check("upsert_secret")
        self.radcheck[(record.username, record.attribute)] = record

    def replace_group_membership(self, membership: GroupMembership) -> None:
        self._check("replace_group_membership")
        self.radusergroup = [m for m in self.radusergroup if m.username != membership.username]
        self.radusergroup.append(membership)

    def delete_reply_attribute(self, username: str, attribute: str) -> int:
        self._check("delete_reply_attribute")
        removed = self.radreply.pop((username, attribute), None)
        return 1 if removed else 0

    def upsert_reply_attribute(self, record: ReplyAttribute) -> None:
        self._check("upsert_reply_attribute")
        self.radreply[(record.username, record.attribute)] = record


@pytest.fixture
def store() -> InMemoryRadiusStore:
    store = InMemoryRadiusStore()
    store.radusergroup = [
        GroupMembership(username="budi", group_name="isolir", priority=0),
        GroupMembership(username="budi", group_name="old-plan", priority=1),
        GroupMembership(username="other", group_name="home-10m", priority=1),
    ]
    store.radreply[("budi", "Reply-Message")] = ReplyAttribute(
        username="budi", attribute="Reply-Message", value="Please pay your invoice"
    )
    return store


@pytest.fixture
def profile() -> Profile:
    return Profile(
        profile_id="p1",
        name="Home 20M",
        validity_value=1,
        validity_unit=ValidityUnit.MONTHS,
        group_name="home-20m",
    )


def _subscriber(**overrides) -> Subscriber:
    values = dict(
        subscriber_id="s1",
        name="Budi",
        username="budi",
        secret="s3cret",
        status=SubscriberStatus.ISOLATED,
    )
    values.update(overrides)
    return Subscriber(**values)


def test_restore_writes_secret_single_group_and_clears_message(store, profile):
    result = EntitlementSynchronizer(store).restore_active_entitlement(_subscriber(), profile)

    assert result.ok
    assert [step.name for step in result.steps] == ["secret", "group", "reply_message", "static_ip"]
    secret = store.radcheck[("budi", "Cleartext-Password")]
    assert secret.value == "s3cret"
    assert secret.op == ":="
    budi_groups = [m for m in store.radusergroup if m.username == "budi"]
    assert budi_groups == [GroupMembership(username="budi", group_name="home-20m", priority=1)]
    assert any(m.username == "other" for m in store.radusergroup)
    assert ("budi", "Reply-Message") not in store.radreply


def test_static_ip_is_written(store, profile):
    EntitlementSynchronizer(store).restore_active_entitlement(_subscriber(ip_address="10.10.0.5"), profile)

    record = store.radreply[("budi", "Framed-IP-Address")]
    assert record.value == "10.10.0.5"
    assert record.op == ":="


def test_static_ip_is_removed_when_unset(store, profile):
    store.radreply[("budi", "Framed-IP-Address")] = ReplyAttribute(
        username="budi", attribute="Framed-IP-Address", value="10.10.0.5"
    )

    EntitlementSynchronizer(store).restore_active_entitlement(_subscriber(ip_address=None), profile)

    assert ("budi", "Framed-IP-Address") not in store.radreply


def test_failed_step_does_not_stop_later_steps(store, profile):
    store.broken.add("replace_group_membership")

    result = EntitlementSynchronizer(store).restore_active_entitlement(
        _subscriber(ip_address="10.10.0.9"), profile
    )

    assert not result.ok
    assert result.errors == ["group: replace_group_membership unavailable"]
    assert ("budi", "Cleartext-Password") in store.radcheck
    assert ("budi", "Reply-Message") not in store.radreply
    assert store.radreply[("budi", "Framed-IP-Address")].value == "10.10.0.9"


def test_restore_is_repeatable(store, profile):
    synchronizer = EntitlementSynchronizer(store)
    synchronizer.restore_active_entitlement(_subscriber(), profile)
    synchronizer.restore_active_entitlement(_subscriber(), profile)

    assert len([m for m in store.radusergroup if m.username == "budi"]) == 1
    assert len(store.radcheck) == 1
