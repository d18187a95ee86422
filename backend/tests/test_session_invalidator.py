"""Tests for CoA session invalidation."""
from __future__ import annotations

import json
import subprocess
from typing import Dict, List, Optional

import httpx
import pytest

from backend.app.entitlements import (
    ActiveSession,
    HttpSessionInvalidator,
    NoopSessionInvalidator,
    RadClientSessionInvalidator,
)
from backend.app.entitlements import session as session_module


class FakeSessionLookup:
    def __init__(self, session: Optional[ActiveSession] = None, secrets: Optional[Dict[str, str]] = None) -> None:
        self.session = session
        self.secrets = secrets or {}

    def find_active_session(self, username: str) -> Optional[ActiveSession]:
        if self.session is not None and self.session.username == username:
            return self.session
        return None

    def get_nas_secret(self, nas_ip_address: str) -> Optional[str]:
        return self.secrets.get(nas_ip_address)


@pytest.fixture
def active_session() -> ActiveSession:
    return ActiveSession(
        username="budi",
        nas_ip_address="10.0.0.1",
        session_id="8100001a",
        framed_ip_address="10.10.0.5",
    )


def test_radclient_disconnect_command(monkeypatch, active_session):
    calls: List[dict] = []

    def fake_run(command, **kwargs):
        calls.append({"command": command, **kwargs})
        return subprocess.CompletedProcess(command, 0, stdout="Received Disconnect-ACK\n", stderr="")

    monkeypatch.setattr(session_module.subprocess, "run", fake_run)
    invalidator = RadClientSessionInvalidator(
        FakeSessionLookup(active_session, {"10.0.0.1": "nas-secret"}),
        radclient_path="/usr/bin/radclient",
        timeout_seconds=5,
    )

    result = invalidator.force_reauthentication("budi")

    assert result.success is True
    assert result.message == "Received Disconnect-ACK"
    call = calls[0]
    assert call["command"] == ["/usr/bin/radclient", "-x", "10.0.0.1:3799", "disconnect", "nas-secret"]
    assert call["timeout"] == 5
    assert call["input"].splitlines() == [
        'User-Name = "budi"',
        "Framed-IP-Address = 10.10.0.5",
        'Acct-Session-Id = "8100001a"',
    ]


def test_no_active_session_is_success(monkeypatch):
    def fail_run(*args, **kwargs):
        raise AssertionError("radclient must not run without a session")

    monkeypatch.setattr(session_module.subprocess, "run", fail_run)

    result = RadClientSessionInvalidator(FakeSessionLookup()).force_reauthentication("budi")

    assert result.success is True
    assert result.message == "No active session"


def test_unknown_nas_fails(active_session):
    result = RadClientSessionInvalidator(FakeSessionLookup(active_session)).force_reauthentication("budi")

    assert result.success is False
    assert result.error == "NAS not configured"


def test_radclient_rejection_is_reported(monkeypatch, active_session):
    def fake_run(command, **kwargs):
        raise subprocess.CalledProcessError(1, command, output="", stderr="No reply from server\n")

    monkeypatch.setattr(session_module.subprocess, "run", fake_run)

    result = RadClientSessionInvalidator(
        FakeSessionLookup(active_session, {"10.0.0.1": "nas-secret"})
    ).force_reauthentication("budi")

    assert result.success is False
    assert result.error == "No reply from server"


def test_radclient_timeout_is_reported(monkeypatch, active_session):
    def fake_run(command, **kwargs):
        raise subprocess.TimeoutExpired(command, kwargs["timeout"])

    monkeypatch.setattr(session_module.subprocess, "run", fake_run)

    result = RadClientSessionInvalidator(
        FakeSessionLookup(active_session, {"10.0.0.1": "nas-secret"})
    ).force_reauthentication("budi")

    assert result.success is False
    assert "timed out" in result.error


def test_missing_radclient_binary_is_reported(monkeypatch, active_session):
    def fake_run(command, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", command[0])

    monkeypatch.setattr(session_module.subprocess, "run", fake_run)

    result = RadClientSessionInvalidator(
        FakeSessionLookup(active_session, {"10.0.0.1": "nas-secret"})
    ).force_reauthentication("budi")

    assert result.success is False
    assert "No such file" in result.error


def test_http_invalidator_posts_username():
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="disconnected")

    client = httpx.Client(transport=httpx.MockTransport(handler))
    result = HttpSessionInvalidator("http://coa.local/disconnect", client=client).force_reauthentication("budi")

    assert result.success is True
    assert result.message == "disconnected"
    assert json.loads(seen[0].content) == {"username": "budi"}


def test_http_invalidator_applies_coa_timeout_to_shared_client():
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    shared = httpx.Client(transport=httpx.MockTransport(handler), timeout=30.0)
    invalidator = HttpSessionInvalidator("http://coa.local/disconnect", client=shared, timeout_seconds=3.0)

    assert invalidator.force_reauthentication("budi").success is True
    assert seen[0].extensions["timeout"]["read"] == 3.0


def test_http_invalidator_reports_error_status():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(502)))

    result = HttpSessionInvalidator("http://coa.local/disconnect", client=client).force_reauthentication("budi")

    assert result.success is False
    assert result.error == "CoA endpoint returned 502"


def test_noop_invalidator_succeeds():
    assert NoopSessionInvalidator().force_reauthentication("budi").success is True
