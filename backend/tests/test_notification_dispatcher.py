"""Tests for prioritized failover dispatch."""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import pytest

from backend.app.notifications import (
    AllProvidersFailedError,
    AttemptStatus,
    NoActiveProvidersError,
    NotificationAttempt,
    NotificationDispatcher,
    NotificationProvider,
    normalize_phone,
)
from backend.messaging import ProviderError, ProviderType


class FakeProviderRepository:
    def __init__(self, providers: Sequence[NotificationProvider]) -> None:
        self.providers = list(providers)

    def list_active_providers(self) -> Sequence[NotificationProvider]:
        return [provider for provider in self.providers if provider.is_active]

    def get_provider(self, provider_id: str) -> Optional[NotificationProvider]:
        return next((p for p in self.providers if p.provider_id == provider_id), None)


class InMemoryAttemptLog:
    def __init__(self, fail: bool = False) -> None:
        self.attempts: List[NotificationAttempt] = []
        self.fail = fail

    def record_attempt(self, attempt: NotificationAttempt) -> None:
        if self.fail:
            raise RuntimeError("history table missing")
        self.attempts.append(attempt)


class ScriptedChannel:
    def __init__(self, provider: NotificationProvider, outcome, calls: List[str]) -> None:
        self.provider = provider
        self.outcome = outcome
        self.calls = calls

    def send(self, phone: str, message: str) -> Dict[str, object]:
        self.calls.append(f"{self.provider.name}:{phone}")
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _provider(provider_id: str, name: str, priority: int, **overrides) -> NotificationProvider:
    values = dict(
        provider_id=provider_id,
        name=name,
        provider_type=ProviderType.FONNTE,
        api_url="https://gateway.example",
        api_key="token",
        priority=priority,
    )
    values.update(overrides)
    return NotificationProvider(**values)


def _dispatcher(providers, outcomes, calls, attempt_log=None):
    log = attempt_log or InMemoryAttemptLog()

    def factory(provider: NotificationProvider) -> ScriptedChannel:
        return ScriptedChannel(provider, outcomes[provider.name], calls)

    return NotificationDispatcher(FakeProviderRepository(providers), log, factory, country_code="62"), log


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("081234567890", "6281234567890"),
        ("+62 812-3456-7890", "6281234567890"),
        ("6281234567890", "6281234567890"),
        ("81234567890", "6281234567890"),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw, "62") == expected


def test_normalize_phone_rejects_empty_number():
    with pytest.raises(ValueError):
        normalize_phone("n/a")


def test_fails_over_in_priority_order():
    calls: List[str] = []
    providers = [_provider("b", "Backup", 1), _provider("a", "Primary", 0)]
    dispatcher, log = _dispatcher(
        providers,
        {"Primary": ProviderError("FONNTE API error: 500 - down"), "Backup": {"status": True}},
        calls,
    )

    result = dispatcher.send("0812-3456-7890", "Paid, thanks")

    assert calls == ["Primary:6281234567890", "Backup:6281234567890"]
    assert result.success is True
    assert result.provider_name == "Backup"
    assert result.response == {"status": True}
    assert [attempt.status for attempt in log.attempts] == [AttemptStatus.FAILED, AttemptStatus.SENT]
    assert log.attempts[0].response == "FONNTE API error: 500 - down"
    assert log.attempts[1].response == '{"status": true}'
    assert [attempt.provider_name for attempt in result.attempts] == ["Primary", "Backup"]


def test_stops_at_first_success():
    calls: List[str] = []
    providers = [_provider("a", "Primary", 0), _provider("b", "Backup", 1)]
    dispatcher, log = _dispatcher(providers, {"Primary": {"ok": 1}, "Backup": {"ok": 2}}, calls)

    result = dispatcher.send("081234567890", "hello")

    assert result.provider_name == "Primary"
    assert calls == ["Primary:6281234567890"]
    assert len(log.attempts) == 1


def test_exhaustion_reports_every_reason():
    calls: List[str] = []
    providers = [
        _provider("a", "Primary", 0),
        _provider("b", "Backup", 1, provider_type=ProviderType.WAHA),
    ]
    dispatcher, log = _dispatcher(
        providers,
        {"Primary": ProviderError("timeout"), "Backup": ProviderError("WAHA session not ready. Status: STOPPED")},
        calls,
    )

    with pytest.raises(AllProvidersFailedError) as excinfo:
        dispatcher.send("081234567890", "hello")

    error = excinfo.value
    assert len(error.attempts) == 2
    assert error.reasons == {
        "a": "timeout",
        "b": "WAHA session not ready. Status: STOPPED",
    }
    assert "Primary (fonnte): timeout" in str(error)
    assert "Backup (waha)" in str(error)
    assert len(log.attempts) == 2



def test_failure_reasons_keep_providers_with_the_same_name():
    calls: List[str] = []
    providers = [_provider("a", "Gateway", 0), _provider("b", "Gateway", 1)]
    outcomes = {"a": ProviderError("FONNTE API error: 401"), "b": ProviderError("timeout")}

    def factory(provider: NotificationProvider) -> ScriptedChannel:
        return ScriptedChannel(provider, outcomes[provider.provider_id], calls)

    dispatcher = NotificationDispatcher(
        FakeProviderRepository(providers), InMemoryAttemptLog(), factory, country_code="62"
    )

    with pytest.raises(AllProvidersFailedError) as excinfo:
        dispatcher.send("081234567890", "hello")

    assert excinfo.value.reasons == {"a": "FONNTE API error: 401", "b": "timeout"}

def test_inactive_providers_are_skipped():
    calls: List[str] = []
    providers = [_provider("a", "Disabled", 0, is_active=False), _provider("b", "Live", 5)]
    dispatcher, _ = _dispatcher(providers, {"Disabled": {"ok": 0}, "Live": {"ok": 1}}, calls)

    result = dispatcher.send("081234567890", "hello")

    assert result.provider_name == "Live"
    assert calls == ["Live:6281234567890"]


def test_no_active_providers():
    dispatcher, _ = _dispatcher([_provider("a", "Off", 0, is_active=False)], {"Off": {}}, [])

    with pytest.raises(NoActiveProvidersError):
        dispatcher.send("081234567890", "hello")


def test_audit_log_failure_does_not_interrupt_dispatch():
    calls: List[str] = []
    dispatcher, _ = _dispatcher(
        [_provider("a", "Primary", 0)],
        {"Primary": {"sent": True}},
        calls,
        attempt_log=InMemoryAttemptLog(fail=True),
    )

    result = dispatcher.send("081234567890", "hello")

    assert result.provider_name == "Primary"
    assert len(result.attempts) == 1


def test_send_test_message_returns_error_without_raising():
    calls: List[str] = []
    dispatcher, log = _dispatcher(
        [_provider("a", "Primary", 0)],
        {"Primary": ProviderError("GOWA error: DEVICE_NOT_FOUND")},
        calls,
    )

    result = dispatcher.send_test_message("a", "081234567890", "test")

    assert result.success is False
    assert result.provider_name == "Primary"
    assert result.error == "GOWA error: DEVICE_NOT_FOUND"
    assert log.attempts == []


def test_send_test_message_unknown_provider():
    dispatcher, _ = _dispatcher([], {}, [])

    with pytest.raises(LookupError):
        dispatcher.send_test_message("missing", "081234567890", "test")


def test_send_test_message_rejects_phone_without_digits():
    calls: List[str] = []
    dispatcher, _ = _dispatcher([_provider("a", "Primary", 0)], {"Primary": {"ok": 1}}, calls)

    with pytest.raises(ValueError):
        dispatcher.send_test_message("a", "+-", "test")

    assert calls == []
