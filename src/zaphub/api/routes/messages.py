"""Message and chat routes for gateway instances.

POST /messages  → send text (instance must be open)
GET  /messages  → chat history, or the last 7 days across chats
GET  /chats     → recent chats with average sentiment
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from zaphub.api.deps import get_instance_manager
from zaphub.api.errors import ClientInputError, UpstreamError
from zaphub.observability.logging import get_logger
from zaphub.observability.redaction import fingerprint, safe_log_context
from zaphub.whatsapp.evolution_client import EvolutionAPIError
from zaphub.whatsapp.instances import (
    RECENT_DAYS,
    InstanceManager,
    InstanceNotConnectedError,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])
chats_router = APIRouter(prefix="/chats", tags=["messages"])


class SendMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    instance_name: str = Field(..., min_length=1, alias="instanceName")
    remote_jid: str = Field(..., min_length=1, alias="remoteJid")
    message: str = Field(..., min_length=1)


def _not_connected(e: InstanceNotConnectedError) -> ClientInputError:
    return ClientInputError("Instance is not connected", details=f"status: {e.status}")


@router.post("")
def send_message(
    body: SendMessageRequest,
    manager: InstanceManager = Depends(get_instance_manager),
) -> dict:
    """Send a text message.

    Returns 400 without sending when the instance is not open. A send that
    fails after the check passed is reported as an upstream error.
    """
    try:
        result = manager.send_message(body.instance_name, body.remote_jid, body.message)
    except InstanceNotConnectedError as e:
        raise _not_connected(e) from e
    except EvolutionAPIError as e:
        raise UpstreamError("Failed to send message", details=str(e)) from e

    logger.info(
        "message sent",
        extra={
            "extra_fields": safe_log_context(
                instance=body.instance_name,
                recipient=fingerprint(body.remote_jid),
                text_len=len(body.message),
            )
        },
    )
    return {"success": True, "message": "Message sent successfully", "data": result}


@router.get("")
def list_messages(
    instance_name: str = Query(..., min_length=1, alias="instanceName"),
    remote_jid: str | None = Query(None, alias="remoteJid"),
    limit: int = Query(50, ge=1, le=1000),
    manager: InstanceManager = Depends(get_instance_manager),
) -> dict:
    try:
        messages = manager.list_messages(instance_name, remote_jid=remote_jid, limit=limit)
    except EvolutionAPIError as e:
        raise UpstreamError("Failed to fetch messages", details=str(e)) from e
    return {"success": True, "messages": messages, "total": len(messages)}


@chats_router.get("")
def list_chats(
    instance_name: str = Query(..., min_length=1, alias="instanceName"),
    days: int = Query(RECENT_DAYS, ge=1, le=90),
    manager: InstanceManager = Depends(get_instance_manager),
) -> dict:
    try:
        chats = manager.chat_overview(instance_name, days=days)
    except InstanceNotConnectedError as e:
        raise _not_connected(e) from e
    except EvolutionAPIError as e:
        raise UpstreamError("Failed to fetch chats", details=str(e)) from e
    return {"success": True, "chats": chats, "total": len(chats)}
