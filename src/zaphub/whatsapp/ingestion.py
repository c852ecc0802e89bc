"""Webhook registration and inbound message ingestion.

Per-registration flow (POST /webhooks/whatsapp/{webhook_id}):
1. Require sender and body.
2. Derive client_id from the webhook id prefix.
3. Require an active registration owned by that client.
4. Tag sentiment once, store the message and bump the registration
   counter together.
5. If the registration has AI assist on, store a suggested reply
   (best-effort: its failure is logged, never raised).

Steps 1-3 reject without side effects.
"""

from __future__ import annotations

from dataclasses import dataclass

from zaphub.domain.replies import suggest_reply
from zaphub.domain.sentiment import sentiment_tag
from zaphub.infra.best_effort import best_effort
from zaphub.infra.ids import (
    ID_DELIMITER,
    client_id_from_webhook_id,
    message_id,
    suggestion_id,
    webhook_id as new_webhook_id,
)
from zaphub.infra.store import IngestionStore
from zaphub.infra.time import parse_timestamp, utc_now
from zaphub.observability.logging import get_logger
from zaphub.observability.redaction import fingerprint, safe_log_context

from .models import InboundMessage, ReplySuggestion, WebhookRegistration

logger = get_logger(__name__)

DEFAULT_INBOUND_PLATFORM = "make"
MANUAL_PLATFORM = "manual"


class MissingFieldsError(Exception):
    """Required request fields are missing or empty."""

    def __init__(self, fields: list[str]) -> None:
        super().__init__(f"Missing required fields: {', '.join(fields)}")
        self.fields = fields


class InvalidClientIdError(Exception):
    """Client id cannot be embedded in a webhook id."""

    pass


class WebhookNotFoundError(Exception):
    """No active registration for that id and client."""

    pass


@dataclass(frozen=True)
class IngestResult:
    message: InboundMessage
    suggestion: ReplySuggestion | None


def _require(**fields: object) -> None:
    missing = [name for name, value in fields.items() if not value]
    if missing:
        raise MissingFieldsError(missing)


def register_webhook(
    store: IngestionStore,
    *,
    client_id: str,
    platform: str,
    url: str,
    user_role: str | None = None,
    now_ms: int | None = None,
) -> WebhookRegistration:
    """Register (or refresh) a client's webhook. Id is "<client_id>_<epoch ms>".

    Raises:
        MissingFieldsError: If client_id, platform or url is empty.
        InvalidClientIdError: If client_id contains the id delimiter.
    """
    _require(clientId=client_id, platform=platform, url=url)
    if ID_DELIMITER in client_id:
        raise InvalidClientIdError(
            f"clientId must not contain '{ID_DELIMITER}'"
        )

    now = utc_now()
    reg = WebhookRegistration(
        id=new_webhook_id(client_id, now_ms),
        client_id=client_id,
        name=f"{platform[:1].upper()}{platform[1:]} Webhook",
        url=url,
        platform=platform,
        status="active",
        user_role=user_role,
        message_count=0,
        last_received=None,
        ai_enabled=True,
        created_at=now,
    )
    stored = store.upsert_webhook(reg)
    logger.info(
        "webhook registered",
        extra={
            "extra_fields": safe_log_context(
                webhook_id=stored.id, platform=platform
            )
        },
    )
    return stored


def generate_suggestion(store: IngestionStore, msg: InboundMessage) -> ReplySuggestion:
    """Store a suggested reply for msg and flag msg as processed."""
    reply = suggest_reply(msg.sentiment)
    suggestion = ReplySuggestion(
        id=suggestion_id(),
        client_id=msg.client_id,
        from_number=msg.from_number,
        original_message=msg.message,
        sentiment=msg.sentiment,
        suggestion=reply.text,
        confidence=reply.confidence,
        created_at=utc_now(),
    )
    store.insert_suggestion(suggestion)
    store.mark_processed(msg.id)
    return suggestion


def ingest_message(
    store: IngestionStore,
    webhook_id: str,
    *,
    sender: str | None,
    body: str | None,
    timestamp: object = None,
    platform: str | None = None,
) -> IngestResult:
    """Accept one inbound message for a registered webhook.

    Raises:
        MissingFieldsError: If sender or body is empty.
        WebhookNotFoundError: If the registration is unknown, foreign or inactive.
    """
    _require(**{"from": sender, "message": body})

    client_id = client_id_from_webhook_id(webhook_id)
    reg = store.get_webhook(webhook_id, client_id)
    if reg is None or not reg.is_active:
        logger.warning(
            "inbound message for unknown or inactive webhook",
            extra={"extra_fields": safe_log_context(webhook_id=webhook_id)},
        )
        raise WebhookNotFoundError(webhook_id)

    received_at = utc_now()
    msg = InboundMessage(
        id=message_id(),
        client_id=client_id,
        from_number=sender,
        message=body,
        timestamp=parse_timestamp(timestamp) or received_at,
        platform=platform or DEFAULT_INBOUND_PLATFORM,
        sentiment=sentiment_tag(body),
        processed=False,
        webhook_id=webhook_id,
        created_at=received_at,
    )
    store.record_inbound(msg, received_at)

    suggestion = None
    if reg.ai_enabled:
        suggestion = best_effort(
            lambda: generate_suggestion(store, msg),
            what="generate suggested reply",
            webhook_id=webhook_id,
        )

    logger.info(
        "inbound message stored",
        extra={
            "extra_fields": safe_log_context(
                webhook_id=webhook_id,
                sender=fingerprint(sender),
                text_len=len(body),
                sentiment=msg.sentiment,
                suggested=suggestion is not None,
            )
        },
    )
    return IngestResult(message=msg, suggestion=suggestion)


def save_manual_message(
    store: IngestionStore,
    *,
    client_id: str | None,
    sender: str | None,
    body: str | None,
    platform: str | None = None,
) -> InboundMessage:
    """Store a message entered by hand (no registration, already processed).

    Raises:
        MissingFieldsError: If client_id, sender or body is empty.
    """
    _require(clientId=client_id, **{"from": sender, "message": body})
    now = utc_now()
    msg = InboundMessage(
        id=message_id(),
        client_id=client_id,
        from_number=sender,
        message=body,
        timestamp=now,
        platform=platform or MANUAL_PLATFORM,
        sentiment=sentiment_tag(body),
        processed=True,
        created_at=now,
    )
    store.insert_message(msg)
    return msg
