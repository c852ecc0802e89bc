"""Reply suggestions repository - raw SQL over `ai_suggestions`."""

from __future__ import annotations

from psycopg2.extensions import cursor as PgCursor

from zaphub.whatsapp.models import ReplySuggestion


def insert_suggestion(cur: PgCursor, suggestion: ReplySuggestion) -> None:
    cur.execute(
        """
        INSERT INTO ai_suggestions (
            id, client_id, from_number, original_message,
            sentiment, suggestion, confidence, created_at
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
        """,
        (
            suggestion.id,
            suggestion.client_id,
            suggestion.from_number,
            suggestion.original_message,
            suggestion.sentiment,
            suggestion.suggestion,
            suggestion.confidence,
            suggestion.created_at,
        ),
    )
