"""Dispatch of gateway webhook events.

Every WebhookEvent member has exactly one handler (checked at import).
Only messages.upsert does work: each text message is tagged and flagged
for attention. The rest are observability only. Nothing here raises for a
well-formed envelope; per-message failures are logged and counted.
"""

from dataclasses import dataclass, field
from typing import Any, Callable

from zaphub.domain.replies import suggest_reply
from zaphub.domain.sentiment import sentiment_tag
from zaphub.infra.time import from_epoch_seconds, utc_now
from zaphub.observability.logging import get_logger
from zaphub.observability.redaction import fingerprint, safe_log_context

from .evolution_adapter import (
    WebhookEnvelope,
    WebhookEvent,
    normalize_message,
    upsert_records,
)

logger = get_logger(__name__)

URGENT_KEYWORD = "urgente"


@dataclass
class DispatchResult:
    event: WebhookEvent
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    flags: list[str] = field(default_factory=list)


def _log_event(envelope: WebhookEnvelope, message: str, **fields: Any) -> None:
    logger.info(
        message,
        extra={
            "extra_fields": safe_log_context(
                event=envelope.raw_event,
                instance=envelope.instance,
                **fields,
            )
        },
    )


def _on_qrcode_updated(envelope: WebhookEnvelope, result: DispatchResult) -> None:
    _log_event(envelope, "qr code updated")


def _on_connection_update(envelope: WebhookEnvelope, result: DispatchResult) -> None:
    state = envelope.data.get("state") if isinstance(envelope.data, dict) else None
    _log_event(envelope, "connection state updated", state=state)


def _on_messages_update(envelope: WebhookEnvelope, result: DispatchResult) -> None:
    _log_event(envelope, "message status updated")


def _on_application_startup(envelope: WebhookEnvelope, result: DispatchResult) -> None:
    _log_event(envelope, "instance started")


def _on_unknown(envelope: WebhookEnvelope, result: DispatchResult) -> None:
    _log_event(envelope, "unhandled webhook event")


def process_provider_message(instance: str | None, record: dict[str, Any]) -> list[str] | None:
    """Tag one gateway message. Returns attention flags, None if skipped (no text)."""
    msg = normalize_message(record)
    if not msg.text:
        return None

    flags: list[str] = []
    if not msg.from_me:
        lowered = msg.text.casefold()
        if URGENT_KEYWORD in lowered:
            flags.append("urgent")
        if sentiment_tag(msg.text) == "negative":
            flags.append("negative")

    logger.info(
        "provider message processed",
        extra={
            "extra_fields": safe_log_context(
                instance=instance,
                message_id=msg.message_id,
                sender=fingerprint(msg.remote_jid or ""),
                from_me=msg.from_me,
                text_len=len(msg.text),
                flags=",".join(flags) or "none",
            )
        },
    )
    return flags


def _on_messages_upsert(envelope: WebhookEnvelope, result: DispatchResult) -> None:
    for record in upsert_records(envelope.data):
        try:
            flags = process_provider_message(envelope.instance, record)
        except Exception:
            result.failed += 1
            logger.exception(
                "provider message processing failed",
                extra={"extra_fields": safe_log_context(instance=envelope.instance)},
            )
            continue
        if flags is None:
            result.skipped += 1
        else:
            result.processed += 1
            result.flags.extend(flags)


_HANDLERS: dict[WebhookEvent, Callable[[WebhookEnvelope, DispatchResult], None]] = {
    WebhookEvent.QRCODE_UPDATED: _on_qrcode_updated,
    WebhookEvent.CONNECTION_UPDATE: _on_connection_update,
    WebhookEvent.MESSAGES_UPSERT: _on_messages_upsert,
    WebhookEvent.MESSAGES_UPDATE: _on_messages_update,
    WebhookEvent.APPLICATION_STARTUP: _on_application_startup,
    WebhookEvent.UNKNOWN: _on_unknown,
}

if set(_HANDLERS) != set(WebhookEvent):
    raise RuntimeError("every webhook event needs a handler")


def dispatch(envelope: WebhookEnvelope) -> DispatchResult:
    result = DispatchResult(event=envelope.event)
    _HANDLERS[envelope.event](envelope, result)
    return result


# ── Cloud API style payloads (entry/changes/value/messages) ─────────────────


def _first(items: Any) -> Any:
    return items[0] if isinstance(items, list) and items else None


def process_cloud_payload(payload: Any) -> dict[str, Any] | None:
    """Tag the first message of a Cloud API style webhook and suggest a reply.

    Returns None when the payload carries no message (status callbacks,
    or any shape other than entry/changes/value/messages of objects).
    """
    entry = _first(payload.get("entry")) if isinstance(payload, dict) else None
    change = _first(entry.get("changes")) if isinstance(entry, dict) else None
    value = change.get("value") if isinstance(change, dict) else None
    message = _first(value.get("messages")) if isinstance(value, dict) else None
    if not isinstance(message, dict):
        return None

    text_obj = message.get("text")
    text = text_obj.get("body") if isinstance(text_obj, dict) else None
    if not isinstance(text, str):
        text = ""

    contact = _first(value.get("contacts"))
    profile = contact.get("profile") if isinstance(contact, dict) else None
    from_name = profile.get("name") if isinstance(profile, dict) else None

    sentiment = sentiment_tag(text)
    reply = suggest_reply(sentiment)
    sent_at = from_epoch_seconds(message.get("timestamp"))

    logger.info(
        "cloud webhook message processed",
        extra={
            "extra_fields": safe_log_context(
                message_id=message.get("id"),
                type=message.get("type"),
                text_len=len(text),
                sentiment=sentiment,
            )
        },
    )

    return {
        "messageId": message.get("id"),
        "from": message.get("from"),
        "fromName": from_name or "Usuário",
        "text": text,
        "type": message.get("type"),
        "timestamp": sent_at.isoformat() if sent_at else None,
        "sentiment": sentiment,
        "aiResponse": reply.text,
        "processed": True,
        "processedAt": utc_now().isoformat(),
    }
