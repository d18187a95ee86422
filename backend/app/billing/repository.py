"""Persistence layer for invoices, subscribers and ledger entries."""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Optional

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from ...app_context import get_conn
from .models import (
    Invoice,
    InvoiceContext,
    InvoiceStatus,
    LedgerCategory,
    LedgerEntry,
    LedgerEntryType,
    PaymentTransition,
    Profile,
    Subscriber,
    SubscriberStatus,
    ValidityUnit,
)


@contextmanager
def managed_connection(conn: Optional[PgConnection] = None):
    """Context manager that manages transaction boundaries for optional connections."""

    if conn is not None:
        yield conn, False
        return

    connection = get_conn()
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


def _row_to_invoice(row: dict) -> Invoice:
    return Invoice(
        invoice_id=str(row["id"]),
        invoice_number=row["invoice_number"],
        subscriber_id=str(row["subscriber_id"]) if row.get("subscriber_id") else None,
        customer_name=row.get("customer_name"),
        customer_phone=row.get("customer_phone"),
        customer_username=row.get("customer_username"),
        amount=int(row["amount"]),
        status=InvoiceStatus(row["status"]),
        due_date=row.get("due_date"),
        paid_at=row.get("paid_at"),
        payment_token=row.get("payment_token"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_subscriber(row: dict) -> Subscriber:
    return Subscriber(
        subscriber_id=str(row["id"]),
        name=row.get("name") or "",
        phone=row.get("phone"),
        username=row["username"],
        secret=row["password"],
        status=SubscriberStatus(row["status"]),
        expired_at=row.get("expired_at"),
        ip_address=row.get("ip_address") or None,
        profile_id=str(row["profile_id"]) if row.get("profile_id") else None,
    )


def _row_to_profile(row: dict) -> Profile:
    return Profile(
        profile_id=str(row["id"]),
        name=row["name"],
        validity_value=int(row["validity_value"]),
        validity_unit=ValidityUnit(row["validity_unit"]),
        group_name=row["group_name"],
        price=int(row.get("price") or 0),
    )


def _row_to_ledger_entry(row: dict) -> LedgerEntry:
    return LedgerEntry(
        entry_id=str(row["id"]),
        category_id=str(row["category_id"]),
        entry_type=LedgerEntryType(row["type"]),
        amount=int(row["amount"]),
        description=row["description"],
        date=row["date"],
        reference=row["reference"],
        notes=row.get("notes"),
    )


class PostgresBillingRepository:
    """Concrete repository persisting billing models in PostgreSQL."""

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

    def load_invoice_context(self, invoice_id: str) -> Optional[InvoiceContext]:
        with self._cursor() as cursor:
            cursor.execute("SELECT * FROM invoices WHERE id = %s LIMIT 1", (invoice_id,))
            invoice_row = cursor.fetchone()
            if not invoice_row:
                return None
            invoice = _row_to_invoice(invoice_row)

            subscriber = None
            profile = None
            if invoice.subscriber_id:
                cursor.execute("SELECT * FROM pppoe_users WHERE id = %s LIMIT 1", (invoice.subscriber_id,))
                subscriber_row = cursor.fetchone()
                if subscriber_row:
                    subscriber = _row_to_subscriber(subscriber_row)
            if subscriber and subscriber.profile_id:
                cursor.execute("SELECT * FROM pppoe_profiles WHERE id = %s LIMIT 1", (subscriber.profile_id,))
                profile_row = cursor.fetchone()
                if profile_row:
                    profile = _row_to_profile(profile_row)

            return InvoiceContext(invoice=invoice, subscriber=subscriber, profile=profile)

    def mark_invoice_paid(self, invoice_id: str, paid_at: datetime) -> Optional[PaymentTransition]:
        """Atomically move a payable invoice to PAID.

        The conditional ``UPDATE`` makes concurrent confirmations race on the
        row lock; only one of them sees ``transitioned=True``.
        """

        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE invoices AS inv
                SET status = %s, paid_at = %s, updated_at = NOW()
                FROM (SELECT id, status FROM invoices WHERE id = %s FOR UPDATE) AS prev
                WHERE inv.id = prev.id AND inv.status NOT IN (%s, %s)
                RETURNING inv.*, prev.status AS previous_status
                """,
                (
                    InvoiceStatus.PAID.value,
                    paid_at,
                    invoice_id,
                    InvoiceStatus.PAID.value,
                    InvoiceStatus.CANCELLED.value,
                ),
            )
            row = cursor.fetchone()
            if row:
                return PaymentTransition(
                    invoice=_row_to_invoice(row),
                    previous_status=InvoiceStatus(row["previous_status"]),
                    transitioned=True,
                )

            cursor.execute("SELECT * FROM invoices WHERE id = %s LIMIT 1", (invoice_id,))
            current = cursor.fetchone()
            if not current:
                return None
            invoice = _row_to_invoice(current)
            return PaymentTransition(invoice=invoice, previous_status=invoice.status, transitioned=False)

    def update_subscriber_service(
        self,
        subscriber_id: str,
        *,
        expired_at: datetime,
        status: SubscriberStatus,
    ) -> Optional[Subscriber]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE pppoe_users
                SET expired_at = %s, status = %s, updated_at = NOW()
                WHERE id = %s
                RETURNING *
                """,
                (expired_at, status.value, subscriber_id),
            )
            row = cursor.fetchone()
            return _row_to_subscriber(row) if row else None

    def activate_installed_registration(self, subscriber_id: str) -> bool:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE registration_requests
                SET status = 'ACTIVE', updated_at = NOW()
                WHERE pppoe_user_id = %s AND status = 'INSTALLED'
                """,
                (subscriber_id,),
            )
            return cursor.rowcount > 0

    def find_category(self, name: str, entry_type: LedgerEntryType) -> Optional[LedgerCategory]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT id, name, type
                FROM transaction_categories
                WHERE name = %s AND type = %s
                LIMIT 1
                """,
                (name, entry_type.value),
            )
            row = cursor.fetchone()
            if not row:
                return None
            return LedgerCategory(
                category_id=str(row["id"]),
                name=row["name"],
                entry_type=LedgerEntryType(row["type"]),
            )

    def get_entry_by_reference(self, reference: str) -> Optional[LedgerEntry]:
        with self._cursor() as cursor:
            cursor.execute("SELECT * FROM transactions WHERE reference = %s LIMIT 1", (reference,))
            row = cursor.fetchone()
            return _row_to_ledger_entry(row) if row else None

    def insert_entry(self, entry: LedgerEntry) -> Optional[LedgerEntry]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO transactions (
                    category_id,
                    type,
                    amount,
                    description,
                    date,
                    reference,
                    notes
                )
                VALUES (%(category_id)s, %(type)s, %(amount)s, %(description)s,
                        %(date)s, %(reference)s, %(notes)s)
                ON CONFLICT (reference) DO NOTHING
                RETURNING *
                """,
                {
                    "category_id": entry.category_id,
                    "type": entry.entry_type.value,
                    "amount": entry.amount,
                    "description": entry.description,
                    "date": entry.date,
                    "reference": entry.reference,
                    "notes": entry.notes,
                },
            )
            row = cursor.fetchone()
            return _row_to_ledger_entry(row) if row else None


__all__ = ["PostgresBillingRepository", "managed_connection"]
