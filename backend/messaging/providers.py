"""WhatsApp gateway adapters used for customer notifications."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class ProviderType(str, Enum):
    """Supported gateway kinds."""

    FONNTE = "fonnte"
    WAHA = "waha"
    MPWA = "mpwa"
    WABLAS = "wablas"
    GOWA = "gowa"


class ProviderError(RuntimeError):
    """Raised when a gateway rejects or fails to deliver a message."""


class NotificationChannel:
    """Base adapter turning ``(phone, message)`` into a gateway request."""

    provider_type: ProviderType

    def __init__(
        self,
        *,
        name: str,
        api_url: str,
        api_key: str,
        client: httpx.Client,
        sender_number: Optional[str] = None,
    ) -> None:
        self.name = name
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.sender_number = sender_number
        self.client = client

    def send(self, phone: str, message: str) -> Dict[str, Any]:
        logger.debug("Sending message via %s provider %s", self.provider_type.value, self.name)
        try:
            return self._send(phone, message)
        except httpx.HTTPError as exc:
            raise ProviderError(f"{self.label} request failed: {exc}") from exc

    def _send(self, phone: str, message: str) -> Dict[str, Any]:
        raise NotImplementedError

    @property
    def label(self) -> str:
        return self.provider_type.value.upper()

    def describe(self) -> Dict[str, str]:
        return {"provider_name": self.name, "provider_type": self.provider_type.value}

    def _json(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {"raw": response.text}
        return payload if isinstance(payload, dict) else {"data": payload}

    def _ensure_ok(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        detail = response.text.strip()
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = str(body.get("message") or body.get("error") or detail)
        suffix = f" - {detail}" if detail else ""
        raise ProviderError(f"{self.label} API error: {response.status_code}{suffix}")


class FonnteChannel(NotificationChannel):
    provider_type = ProviderType.FONNTE

    def __init__(self, *, country_code: str = "62", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.country_code = country_code

    def _send(self, phone: str, message: str) -> Dict[str, Any]:
        response = self.client.post(
            self.api_url,
            headers={"Authorization": self.api_key},
            json={"target": phone, "message": message, "countryCode": self.country_code},
        )
        self._ensure_ok(response)
        return self._json(response)


class WahaChannel(NotificationChannel):
    """WAHA requires the ``default`` session to be running before sending."""

    provider_type = ProviderType.WAHA
    session_name = "default"

    def _send(self, phone: str, message: str) -> Dict[str, Any]:
        headers = {"X-Api-Key": self.api_key}
        status_response = self.client.get(f"{self.api_url}/api/sessions", headers=headers)
        if status_response.is_success:
            try:
                sessions = status_response.json()
            except ValueError:
                sessions = []
            if not isinstance(sessions, list):
                sessions = []
            session = next(
                (s for s in sessions if isinstance(s, dict) and s.get("name") == self.session_name),
                None,
            )
            session_status = session.get("status") if session else None
            if session_status != "WORKING":
                raise ProviderError(
                    f"WAHA session not ready. Status: {session_status or 'NOT_FOUND'}"
                )

        response = self.client.post(
            f"{self.api_url}/api/sendText",
            headers=headers,
            json={"session": self.session_name, "chatId": f"{phone}@c.us", "text": message},
        )
        self._ensure_ok(response)
        return self._json(response)


class MpwaChannel(NotificationChannel):
    provider_type = ProviderType.MPWA

    def _send(self, phone: str, message: str) -> Dict[str, Any]:
        response = self.client.get(
            f"{self.api_url}/send-message",
            params={
                "api_key": self.api_key,
                "sender": self.sender_number or "",
                "number": phone,
                "message": message,
            },
        )
        self._ensure_ok(response)
        return self._json(response)


class WablasChannel(NotificationChannel):
    provider_type = ProviderType.WABLAS

    def _send(self, phone: str, message: str) -> Dict[str, Any]:
        response = self.client.post(
            f"{self.api_url}/api/send-message",
            headers={"Authorization": self.api_key},
            json={"phone": phone, "message": message},
        )
        self._ensure_ok(response)
        return self._json(response)


class GowaChannel(NotificationChannel):
    """GOWA reports delivery in the body, so HTTP 200 alone is not success."""

    provider_type = ProviderType.GOWA

    def _send(self, phone: str, message: str) -> Dict[str, Any]:
        digits = "".join(ch for ch in phone.replace("@s.whatsapp.net", "") if ch.isdigit())
        auth = None
        if self.api_key and ":" in self.api_key:
            username, password = self.api_key.split(":", 1)
            auth = httpx.BasicAuth(username, password)

        response = self.client.post(
            f"{self.api_url}/send/message",
            json={"phone": digits, "message": message},
            auth=auth,
        )
        self._ensure_ok(response)
        result = self._json(response)
        if result.get("code") != "SUCCESS":
            raise ProviderError(f"GOWA error: {result.get('message') or 'Failed to send message'}")
        return result


_CHANNELS = {
    ProviderType.FONNTE: FonnteChannel,
    ProviderType.WAHA: WahaChannel,
    ProviderType.MPWA: MpwaChannel,
    ProviderType.WABLAS: WablasChannel,
    ProviderType.GOWA: GowaChannel,
}


def create_channel(
    provider_type: ProviderType | str,
    *,
    name: str,
    api_url: str,
    api_key: str,
    client: httpx.Client,
    sender_number: Optional[str] = None,
    country_code: str = "62",
) -> NotificationChannel:
    try:
        channel_cls = _CHANNELS[ProviderType(provider_type)]
    except ValueError as exc:
        raise ProviderError(f"Unsupported provider type: {provider_type}") from exc

    kwargs: Dict[str, Any] = {
        "name": name,
        "api_url": api_url,
        "api_key": api_key,
        "client": client,
        "sender_number": sender_number,
    }
    if channel_cls is FonnteChannel:
        kwargs["country_code"] = country_code
    return channel_cls(**kwargs)


__all__ = [
    "FonnteChannel",
    "GowaChannel",
    "MpwaChannel",
    "NotificationChannel",
    "ProviderError",
    "ProviderType",
    "WablasChannel",
    "WahaChannel",
    "create_channel",
]
