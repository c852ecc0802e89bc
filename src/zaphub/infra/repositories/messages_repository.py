"""Inbound messages repository - raw SQL over `whatsapp_messages`.

Message text and sender numbers are PII: they are stored, never logged.
"""

from __future__ import annotations

from psycopg2.extensions import cursor as PgCursor

from zaphub.infra.db import fetchall, fetchone
from zaphub.whatsapp.models import InboundMessage

_COLUMNS = """
    id, client_id, from_number, message, timestamp, platform,
    sentiment, processed, webhook_id, created_at
"""


def _row_to_message(row: tuple) -> InboundMessage:
    return InboundMessage(
        id=row[0],
        client_id=row[1],
        from_number=row[2],
        message=row[3],
        timestamp=row[4],
        platform=row[5],
        sentiment=row[6],
        processed=bool(row[7]),
        webhook_id=row[8],
        created_at=row[9],
    )


def insert_message(cur: PgCursor, msg: InboundMessage) -> None:
    cur.execute(
        """
        INSERT INTO whatsapp_messages (
            id, client_id, from_number, message, timestamp,
            platform, sentiment, processed, webhook_id
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        """,
        (
            msg.id,
            msg.client_id,
            msg.from_number,
            msg.message,
            msg.timestamp,
            msg.platform,
            msg.sentiment,
            msg.processed,
            msg.webhook_id,
        ),
    )


def mark_processed(cur: PgCursor, message_id: str) -> bool:
    cur.execute(
        "UPDATE whatsapp_messages SET processed = true WHERE id = %s",
        (message_id,),
    )
    return cur.rowcount > 0


def list_messages(
    cur: PgCursor,
    client_id: str,
    *,
    limit: int,
    offset: int,
) -> list[InboundMessage]:
    rows = fetchall(
        cur,
        f"""
        SELECT {_COLUMNS}
        FROM whatsapp_messages
        WHERE client_id = %s
        ORDER BY created_at DESC
        LIMIT %s OFFSET %s
        """,
        (client_id, limit, offset),
    )
    return [_row_to_message(row) for row in rows]


def count_messages(cur: PgCursor, client_id: str) -> int:
    row = fetchone(
        cur,
        "SELECT COUNT(*) FROM whatsapp_messages WHERE client_id = %s",
        (client_id,),
    )
    return int(row[0]) if row else 0
