"""WhatsApp data models shared by ingestion, stores and routes."""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Literal

from zaphub.domain.sentiment import Sentiment

WebhookStatus = Literal["active", "inactive"]


@dataclass(frozen=True)
class WebhookRegistration:
    """A client's inbound-message endpoint (row of `webhooks`)."""

    id: str
    client_id: str
    name: str
    url: str
    platform: str
    status: WebhookStatus
    user_role: str | None
    message_count: int
    last_received: datetime | None
    ai_enabled: bool
    created_at: datetime
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "platform": self.platform,
            "status": self.status,
            "userRole": self.user_role,
            "messageCount": self.message_count or 0,
            "lastReceived": self.last_received.isoformat() if self.last_received else None,
            "aiEnabled": self.ai_enabled,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class InboundMessage:
    """Normalized provider message (row of `whatsapp_messages`).

    The sentiment is computed once at ingestion. Only `processed` may change
    afterwards.
    """

    id: str
    client_id: str
    from_number: str
    message: str
    timestamp: datetime
    platform: str
    sentiment: Sentiment
    processed: bool = False
    webhook_id: str | None = None
    created_at: datetime | None = None

    def mark_processed(self) -> "InboundMessage":
        return replace(self, processed=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "from": self.from_number,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "platform": self.platform,
            "sentiment": self.sentiment,
            "processed": self.processed,
            "webhookId": self.webhook_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class ReplySuggestion:
    """Suggested reply for an inbound message (row of `ai_suggestions`)."""

    id: str
    client_id: str
    from_number: str
    original_message: str
    sentiment: Sentiment
    suggestion: str
    confidence: float
    created_at: datetime


@dataclass(frozen=True)
class ProviderMessage:
    """One message from a gateway messages.upsert batch.

    remote_jid and text are PII: use in memory only, never log.
    """

    message_id: str | None
    remote_jid: str | None
    from_me: bool
    text: str
    timestamp: datetime | None
    push_name: str | None = None
    status: str | None = None
    raw_type: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.message_id,
            "remoteJid": self.remote_jid,
            "fromMe": self.from_me,
            "text": self.text,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "pushName": self.push_name,
            "status": self.status,
        }
