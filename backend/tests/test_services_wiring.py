from __future__ import annotations

import httpx
import pytest

from backend.app.billing import load_billing_config
from backend.app.entitlements import HttpSessionInvalidator, NoopSessionInvalidator, RadClientSessionInvalidator
from backend.app.notifications import NotificationProvider
from backend.app.services import billing as billing_services
from backend.app.services import notifications as notification_services
from backend.messaging import FonnteChannel, GowaChannel, ProviderType, load_messaging_config


@pytest.mark.parametrize(
    "env, expected",
    [
        ({}, RadClientSessionInvalidator),
        ({"COA_MODE": "http", "COA_ENDPOINT": "http://coa.local/disconnect"}, HttpSessionInvalidator),
        ({"COA_MODE": "disabled"}, NoopSessionInvalidator),
    ],
)
def test_session_invalidator_follows_coa_mode(env, expected):
    invalidator = billing_services.build_session_invalidator(load_billing_config(env=env))
    assert isinstance(invalidator, expected)


def test_build_channel_uses_provider_row(monkeypatch):
    monkeypatch.setattr(
        notification_services,
        "get_messaging_config",
        lambda: load_messaging_config(env={"DEFAULT_COUNTRY_CODE": "60"}),
    )
    fonnte = NotificationProvider(
        provider_id="1",
        name="Fonnte",
        type=ProviderType.FONNTE,
        api_url="https://api.fonnte.com/send",
        api_key="tok",
    )
    gowa = NotificationProvider(
        provider_id="2",
        name="GOWA",
        type="gowa",
        api_url="http://gowa.local/",
        api_key="user:pass",
    )

    fonnte_channel = notification_services.build_channel(fonnte)
    gowa_channel = notification_services.build_channel(gowa)

    assert isinstance(fonnte_channel, FonnteChannel)
    assert fonnte_channel.country_code == "60"
    assert isinstance(gowa_channel, GowaChannel)
    assert gowa_channel.api_url == "http://gowa.local"


def test_http_session_invalidator_reuses_shared_client(monkeypatch):
    shared = httpx.Client()
    monkeypatch.setattr(billing_services, "get_http_client", lambda: shared)
    config = load_billing_config(env={"COA_MODE": "http", "COA_ENDPOINT": "http://coa.local/disconnect"})

    invalidator = billing_services.build_session_invalidator(config)

    assert invalidator._client is shared
