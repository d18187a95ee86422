"""Change-of-Authorization disconnects that force subscribers to re-authenticate."""
from __future__ import annotations

import logging
import subprocess
from typing import List, Protocol

import httpx

from .models import ActiveSession, SessionInvalidationResult
from .store import SessionLookup

logger = logging.getLogger(__name__)


class SessionInvalidator(Protocol):
    def force_reauthentication(self, username: str) -> SessionInvalidationResult:
        """Drop the live session; "no active session" counts as success."""


class RadClientSessionInvalidator:
    """Sends a Disconnect-Request to the NAS with ``radclient``."""

    def __init__(
        self,
        sessions: SessionLookup,
        *,
        radclient_path: str = "radclient",
        coa_port: int = 3799,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._sessions = sessions
        self._radclient_path = radclient_path
        self._coa_port = coa_port
        self._timeout_seconds = timeout_seconds

    def force_reauthentication(self, username: str) -> SessionInvalidationResult:
        try:
            session = self._sessions.find_active_session(username)
        except Exception as exc:
            logger.exception("Active session lookup failed", extra={"username": username})
            return SessionInvalidationResult(success=False, error=str(exc))

        if session is None:
            logger.info("No active session to disconnect", extra={"username": username})
            return SessionInvalidationResult(success=True, message="No active session")

        secret = self._sessions.get_nas_secret(session.nas_ip_address)
        if not secret:
            logger.warning("NAS not configured", extra={"nas_ip_address": session.nas_ip_address})
            return SessionInvalidationResult(success=False, error="NAS not configured")

        return self._disconnect(session, secret)

    def _disconnect(self, session: ActiveSession, secret: str) -> SessionInvalidationResult:
        attributes: List[str] = [f'User-Name = "{session.username}"']
        if session.framed_ip_address:
            attributes.append(f"Framed-IP-Address = {session.framed_ip_address}")
        if session.session_id:
            attributes.append(f'Acct-Session-Id = "{session.session_id}"')

        command = [
            self._radclient_path,
            "-x",
            f"{session.nas_ip_address}:{self._coa_port}",
            "disconnect",
            secret,
        ]
        try:
            completed = subprocess.run(
                command,
                input="\n".join(attributes) + "\n",
                capture_output=True,
                text=True,
                timeout=self._timeout_seconds,
                check=True,
            )
        except subprocess.CalledProcessError as exc:
            error = (exc.stderr or exc.stdout or str(exc)).strip()
            logger.warning("CoA disconnect rejected", extra={"username": session.username, "error": error})
            return SessionInvalidationResult(success=False, error=error)
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.warning("CoA disconnect failed", extra={"username": session.username, "error": str(exc)})
            return SessionInvalidationResult(success=False, error=str(exc))

        logger.info(
            "CoA disconnect sent",
            extra={"username": session.username, "nas_ip_address": session.nas_ip_address},
        )
        return SessionInvalidationResult(success=True, message=completed.stdout.strip() or None)


class HttpSessionInvalidator:
    """Delegates the disconnect to an HTTP CoA endpoint."""

    def __init__(self, endpoint: str, *, client: httpx.Client, timeout_seconds: float = 10.0) -> None:
        self._endpoint = endpoint
        self._client = client
        self._timeout_seconds = timeout_seconds

    def force_reauthentication(self, username: str) -> SessionInvalidationResult:
        try:
            response = self._client.post(
                self._endpoint,
                json={"username": username},
                timeout=self._timeout_seconds,
            )
        except httpx.HTTPError as exc:
            logger.warning("CoA endpoint unreachable", extra={"username": username, "error": str(exc)})
            return SessionInvalidationResult(success=False, error=str(exc))

        if not response.is_success:
            return SessionInvalidationResult(
                success=False,
                error=f"CoA endpoint returned {response.status_code}",
            )
        return SessionInvalidationResult(success=True, message=response.text.strip() or None)


class NoopSessionInvalidator:
    def force_reauthentication(self, username: str) -> SessionInvalidationResult:
        logger.debug("Session invalidation disabled", extra={"username": username})
        return SessionInvalidationResult(success=True, message="Session invalidation disabled")


__all__ = [
    "HttpSessionInvalidator",
    "NoopSessionInvalidator",
    "RadClientSessionInvalidator",
    "SessionInvalidator",
]
