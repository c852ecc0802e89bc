"""Per-client webhook registrations and their inbound messages.

POST   /webhooks/register                → register (upsert) a webhook
GET    /webhooks/register?clientId=      → registrations of a client
GET    /webhooks/list?clientId=          → same, with counters
DELETE /webhooks/list?webhookId=&clientId= → remove a registration
POST   /webhooks/whatsapp/{webhook_id}   → inbound message for a registration
GET    /webhooks/messages?clientId=      → stored messages, paginated
POST   /webhooks/messages                → store a message by hand
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, ConfigDict, Field

from zaphub.api.deps import get_store
from zaphub.api.errors import ClientInputError, NotFoundError
from zaphub.infra.store import IngestionStore
from zaphub.observability.logging import get_logger
from zaphub.whatsapp.ingestion import (
    InvalidClientIdError,
    MissingFieldsError,
    WebhookNotFoundError,
    ingest_message,
    register_webhook,
    save_manual_message,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


# ── Schemas ───────────────────────────────────────────────────────────────────


class RegisterWebhookRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client_id: str | None = Field(None, alias="clientId")
    platform: str | None = None
    url: str | None = None
    user_role: str | None = Field(None, alias="userRole")


class InboundMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sender: str | None = Field(None, alias="from")
    message: str | None = None
    timestamp: str | int | float | None = None
    platform: str | None = None


class ManualMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client_id: str | None = Field(None, alias="clientId")
    sender: str | None = Field(None, alias="from")
    message: str | None = None
    platform: str | None = None


def _missing(e: MissingFieldsError) -> ClientInputError:
    return ClientInputError(str(e), details=", ".join(e.fields))


# ── Registration ──────────────────────────────────────────────────────────────


@router.post("/register")
def register(
    body: RegisterWebhookRequest,
    store: IngestionStore = Depends(get_store),
) -> dict:
    try:
        reg = register_webhook(
            store,
            client_id=body.client_id,
            platform=body.platform,
            url=body.url,
            user_role=body.user_role,
        )
    except MissingFieldsError as e:
        raise _missing(e) from e
    except InvalidClientIdError as e:
        raise ClientInputError(str(e)) from e

    return {
        "success": True,
        "message": "Webhook registered successfully",
        "data": {
            "webhookId": reg.id,
            "url": reg.url,
            "platform": reg.platform,
            "status": reg.status,
        },
    }


@router.get("/register")
def list_registrations(
    client_id: str = Query(..., min_length=1, alias="clientId"),
    store: IngestionStore = Depends(get_store),
) -> dict:
    return {
        "success": True,
        "webhooks": [reg.to_dict() for reg in store.list_webhooks(client_id)],
    }


@router.get("/list")
def list_webhooks(
    client_id: str = Query(..., min_length=1, alias="clientId"),
    store: IngestionStore = Depends(get_store),
) -> dict:
    webhooks = store.list_webhooks(client_id)
    return {
        "success": True,
        "webhooks": [reg.to_dict() for reg in webhooks],
        "total": len(webhooks),
    }


@router.delete("/list")
def delete_webhook(
    webhook_id: str = Query(..., min_length=1, alias="webhookId"),
    client_id: str = Query(..., min_length=1, alias="clientId"),
    store: IngestionStore = Depends(get_store),
) -> dict:
    if not store.delete_webhook(webhook_id, client_id):
        raise NotFoundError("Webhook not found")
    logger.info("webhook deleted")
    return {"success": True, "message": "Webhook deleted successfully"}


# ── Inbound messages ──────────────────────────────────────────────────────────


@router.post("/whatsapp/{webhook_id}")
def receive_message(
    body: InboundMessageRequest,
    webhook_id: str = Path(..., min_length=1),
    store: IngestionStore = Depends(get_store),
) -> dict:
    """Accept one message for a registration.

    400 when from/message is missing, 404 when the registration is unknown,
    foreign or inactive. Neither case touches the store.
    """
    try:
        result = ingest_message(
            store,
            webhook_id,
            sender=body.sender,
            body=body.message,
            timestamp=body.timestamp,
            platform=body.platform,
        )
    except MissingFieldsError as e:
        raise _missing(e) from e
    except WebhookNotFoundError as e:
        raise NotFoundError("Webhook not found or inactive") from e

    msg = result.message
    return {
        "success": True,
        "message": "Message received successfully",
        "data": {
            "messageId": msg.id,
            "sentiment": msg.sentiment,
            "processed": True,
        },
    }


@router.get("/messages")
def list_messages(
    client_id: str = Query(..., min_length=1, alias="clientId"),
    limit: int = Query(20, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: IngestionStore = Depends(get_store),
) -> dict:
    messages = store.list_messages(client_id, limit=limit, offset=offset)
    total = store.count_messages(client_id)
    return {
        "success": True,
        "messages": [m.to_dict() for m in messages],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + limit < total,
        },
    }


@router.post("/messages")
def save_message(
    body: ManualMessageRequest,
    store: IngestionStore = Depends(get_store),
) -> dict:
    try:
        msg = save_manual_message(
            store,
            client_id=body.client_id,
            sender=body.sender,
            body=body.message,
            platform=body.platform,
        )
    except MissingFieldsError as e:
        raise _missing(e) from e
    return {
        "success": True,
        "message": "Message saved successfully",
        "data": {"messageId": msg.id, "sentiment": msg.sentiment},
    }
