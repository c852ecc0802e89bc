"""Evolution API adapter - parse webhook envelopes and message records."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from zaphub.infra.time import from_epoch_seconds

from .models import ProviderMessage


class WebhookEvent(str, Enum):
    """Event tags the gateway sends. UNKNOWN covers anything else."""

    QRCODE_UPDATED = "qrcode.updated"
    CONNECTION_UPDATE = "connection.update"
    MESSAGES_UPSERT = "messages.upsert"
    MESSAGES_UPDATE = "messages.update"
    APPLICATION_STARTUP = "application.startup"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, tag: Any) -> "WebhookEvent":
        """Accepts "messages.upsert" as well as "MESSAGES_UPSERT"."""
        if not isinstance(tag, str):
            return cls.UNKNOWN
        normalized = tag.strip().lower().replace("_", ".")
        try:
            return cls(normalized)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class WebhookEnvelope:
    event: WebhookEvent
    raw_event: str | None
    instance: str | None
    data: Any


def parse_envelope(payload: Any) -> WebhookEnvelope:
    """Split a webhook body into event, instance and data.

    A body that is valid JSON but not an object becomes an UNKNOWN envelope
    with no data, so it is acknowledged like any other unrecognized event.
    """
    if not isinstance(payload, dict):
        return WebhookEnvelope(
            event=WebhookEvent.UNKNOWN, raw_event=None, instance=None, data=None
        )

    raw_event = payload.get("event")
    instance = payload.get("instance")
    return WebhookEnvelope(
        event=WebhookEvent.parse(raw_event),
        raw_event=raw_event if isinstance(raw_event, str) else None,
        instance=instance if isinstance(instance, str) else None,
        data=payload.get("data"),
    )


def extract_text(record: dict[str, Any]) -> str:
    """Plain or extended text of a message record, "" for media/other."""
    message = record.get("message") or {}
    if not isinstance(message, dict):
        return ""
    text = message.get("conversation")
    if not text:
        extended = message.get("extendedTextMessage") or {}
        text = extended.get("text") if isinstance(extended, dict) else None
    return text or ""


def normalize_message(record: dict[str, Any]) -> ProviderMessage:
    """Normalize one gateway message record (PII stays in memory)."""
    key = record.get("key") or {}
    return ProviderMessage(
        message_id=key.get("id"),
        remote_jid=key.get("remoteJid"),
        from_me=bool(key.get("fromMe", False)),
        text=extract_text(record),
        timestamp=from_epoch_seconds(record.get("messageTimestamp")),
        push_name=record.get("pushName"),
        status=record.get("status"),
        raw_type=record.get("messageType"),
    )


def upsert_records(data: Any) -> list[dict[str, Any]]:
    """Message records carried by a messages.upsert event.

    The gateway sends either {"messages": [...]} or a single record.
    """
    if isinstance(data, dict):
        messages = data.get("messages")
        if isinstance(messages, list):
            return [m for m in messages if isinstance(m, dict)]
        if "key" in data:
            return [data]
    if isinstance(data, list):
        return [m for m in data if isinstance(m, dict)]
    return []
