"""FreeRADIUS SQL tables used as the external authorization store."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterable, Optional, Protocol

import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from ..billing.repository import managed_connection
from .models import ActiveSession, GroupMembership, ReplyAttribute, SecretRecord


class AuthorizationStore(Protocol):
    """Per-username writes against ``radcheck``/``radusergroup``/``radreply``."""

    def upsert_secret(self, record: SecretRecord) -> None:
        ...

    def replace_group_membership(self, membership: GroupMembership) -> None:
        """Delete every membership of the username, then insert ``membership``."""

    def delete_reply_attribute(self, username: str, attribute: str) -> int:
        ...

    def upsert_reply_attribute(self, record: ReplyAttribute) -> None:
        ...


class SessionLookup(Protocol):
    def find_active_session(self, username: str) -> Optional[ActiveSession]:
        ...

    def get_nas_secret(self, nas_ip_address: str) -> Optional[str]:
        ...


class PostgresRadiusStore:
    """Authorization store and session lookup over the FreeRADIUS schema."""

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

    def upsert_secret(self, record: SecretRecord) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE radcheck
                SET value = %s, op = %s
                WHERE username = %s AND attribute = %s
                """,
                (record.value, record.op, record.username, record.attribute),
            )
            if cursor.rowcount == 0:
                cursor.execute(
                    """
                    INSERT INTO radcheck (username, attribute, op, value)
                    VALUES (%s, %s, %s, %s)
                    """,
                    (record.username, record.attribute, record.op, record.value),
                )

    def replace_group_membership(self, membership: GroupMembership) -> None:
        with self._cursor() as cursor:
            cursor.execute("DELETE FROM radusergroup WHERE username = %s", (membership.username,))
            cursor.execute(
                """
                INSERT INTO radusergroup (username, groupname, priority)
                VALUES (%s, %s, %s)
                """,
                (membership.username, membership.group_name, membership.priority),
            )

    def delete_reply_attribute(self, username: str, attribute: str) -> int:
        with self._cursor() as cursor:
            cursor.execute(
                "DELETE FROM radreply WHERE username = %s AND attribute = %s",
                (username, attribute),
            )
            return cursor.rowcount

    def upsert_reply_attribute(self, record: ReplyAttribute) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE radreply
                SET value = %s, op = %s
                WHERE username = %s AND attribute = %s
                """,
                (record.value, record.op, record.username, record.attribute),
            )
            if cursor.rowcount == 0:
                cursor.execute(
                    """
                    INSERT INTO radreply (username, attribute, op, value)
                    VALUES (%s, %s, %s, %s)
                    """,
                    (record.username, record.attribute, record.op, record.value),
                )

    def find_active_session(self, username: str) -> Optional[ActiveSession]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT username, nasipaddress, acctsessionid, framedipaddress
                FROM radacct
                WHERE username = %s AND acctstoptime IS NULL
                ORDER BY acctstarttime DESC
                LIMIT 1
                """,
                (username,),
            )
            row = cursor.fetchone()
            if not row:
                return None
            return ActiveSession(
                username=row["username"],
                nas_ip_address=str(row["nasipaddress"]),
                session_id=row.get("acctsessionid"),
                framed_ip_address=str(row["framedipaddress"]) if row.get("framedipaddress") else None,
            )

    def get_nas_secret(self, nas_ip_address: str) -> Optional[str]:
        with self._cursor() as cursor:
            cursor.execute("SELECT secret FROM nas WHERE nasname = %s LIMIT 1", (nas_ip_address,))
            row = cursor.fetchone()
            return row["secret"] if row else None


__all__ = ["AuthorizationStore", "PostgresRadiusStore", "SessionLookup"]
