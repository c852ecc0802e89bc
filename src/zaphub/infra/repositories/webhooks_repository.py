"""Webhooks repository - raw SQL over the `webhooks` table (psycopg2, no ORM).

All functions take a cursor; the caller owns the transaction
(with txn() as cur:).
"""

from __future__ import annotations

from datetime import datetime

from psycopg2.extensions import cursor as PgCursor

from zaphub.infra.db import fetchall, fetchone
from zaphub.whatsapp.models import WebhookRegistration

_COLUMNS = """
    id, client_id, name, url, platform, status, user_role,
    message_count, last_received, ai_enabled, created_at, updated_at
"""


def _row_to_registration(row: tuple) -> WebhookRegistration:
    return WebhookRegistration(
        id=row[0],
        client_id=row[1],
        name=row[2],
        url=row[3],
        platform=row[4],
        status=row[5],
        user_role=row[6],
        message_count=row[7] or 0,
        last_received=row[8],
        ai_enabled=bool(row[9]),
        created_at=row[10],
        updated_at=row[11],
    )


def upsert_webhook(cur: PgCursor, reg: WebhookRegistration) -> WebhookRegistration:
    """Insert a registration, or refresh url/platform/status on id conflict.

    Counters and created_at of an existing row are kept.
    """
    row = fetchone(
        cur,
        f"""
        INSERT INTO webhooks (
            id, client_id, name, url, platform, status, user_role,
            message_count, ai_enabled, created_at
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, 0, %s, %s)
        ON CONFLICT (id) DO UPDATE SET
            url        = EXCLUDED.url,
            platform   = EXCLUDED.platform,
            status     = 'active',
            updated_at = now()
        RETURNING {_COLUMNS}
        """,
        (
            reg.id,
            reg.client_id,
            reg.name,
            reg.url,
            reg.platform,
            reg.status,
            reg.user_role,
            reg.ai_enabled,
            reg.created_at,
        ),
    )
    return _row_to_registration(row)


def get_webhook(
    cur: PgCursor,
    webhook_id: str,
    client_id: str | None = None,
) -> WebhookRegistration | None:
    if client_id is None:
        row = fetchone(cur, f"SELECT {_COLUMNS} FROM webhooks WHERE id = %s", (webhook_id,))
    else:
        row = fetchone(
            cur,
            f"SELECT {_COLUMNS} FROM webhooks WHERE id = %s AND client_id = %s",
            (webhook_id, client_id),
        )
    return _row_to_registration(row) if row else None


def list_webhooks(cur: PgCursor, client_id: str) -> list[WebhookRegistration]:
    rows = fetchall(
        cur,
        f"""
        SELECT {_COLUMNS}
        FROM webhooks
        WHERE client_id = %s
        ORDER BY created_at DESC
        """,
        (client_id,),
    )
    return [_row_to_registration(row) for row in rows]


def delete_webhook(cur: PgCursor, webhook_id: str, client_id: str) -> bool:
    row = fetchone(
        cur,
        "DELETE FROM webhooks WHERE id = %s AND client_id = %s RETURNING id",
        (webhook_id, client_id),
    )
    return row is not None


def bump_message_count(cur: PgCursor, webhook_id: str, received_at: datetime) -> None:
    """Increment the counter and refresh last_received in one statement."""
    cur.execute(
        """
        UPDATE webhooks
        SET message_count = message_count + 1,
            last_received = %s,
            updated_at    = now()
        WHERE id = %s
        """,
        (received_at, webhook_id),
    )
