"""Persistence for notification providers, templates and the delivery history."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterable, Optional

import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from ..billing.repository import managed_connection
from .models import MessageTemplate, NotificationAttempt, NotificationProvider
from ...messaging.providers import ProviderType


def _row_to_provider(row: dict) -> NotificationProvider:
    return NotificationProvider(
        provider_id=str(row["id"]),
        name=row["name"],
        provider_type=ProviderType(row["type"]),
        api_url=row["api_url"],
        api_key=row.get("api_key") or "",
        sender_number=row.get("sender_number"),
        priority=int(row.get("priority") or 0),
        is_active=bool(row.get("is_active")),
    )


class PostgresNotificationRepository:
    """Stores gateways, message templates and every delivery attempt."""

    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    @contextmanager
    def _cursor(self) -> Iterable[PgCursor]:
        with managed_connection(self._conn) as (connection, _managed):
            cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
            finally:
                cursor.close()

    def list_active_providers(self) -> list[NotificationProvider]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM notification_providers
                WHERE is_active = TRUE
                ORDER BY priority ASC, created_at ASC
                """
            )
            rows = cursor.fetchall() or []
            return [_row_to_provider(row) for row in rows]

    def get_provider(self, provider_id: str) -> Optional[NotificationProvider]:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT * FROM notification_providers WHERE id = %s LIMIT 1",
                (provider_id,),
            )
            row = cursor.fetchone()
            return _row_to_provider(row) if row else None

    def record_attempt(self, attempt: NotificationAttempt) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO notification_history (
                    phone,
                    message,
                    status,
                    provider_id,
                    provider_name,
                    provider_type,
                    response,
                    sent_at
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    attempt.phone,
                    attempt.message,
                    attempt.status.value,
                    attempt.provider_id,
                    attempt.provider_name,
                    attempt.provider_type.value,
                    attempt.response,
                    attempt.sent_at,
                ),
            )

    def get_active_template(self, template_type: str) -> Optional[MessageTemplate]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT type, message, is_active
                FROM message_templates
                WHERE type = %s AND is_active = TRUE
                LIMIT 1
                """,
                (template_type,),
            )
            row = cursor.fetchone()
            if not row:
                return None
            return MessageTemplate(
                template_type=row["type"],
                message=row["message"],
                is_active=bool(row["is_active"]),
            )


__all__ = ["PostgresNotificationRepository"]
