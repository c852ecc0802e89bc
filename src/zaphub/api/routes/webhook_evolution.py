"""Provider webhook routes.

POST /webhook            → Evolution gateway callback (event dispatch)
GET  /webhook            → liveness for the gateway's webhook check
GET  /webhook/whatsapp   → Cloud API verification (hub.challenge)
POST /webhook/whatsapp   → Cloud API message callback

Ack policy for POST /webhook: any body that parses as JSON gets a 200,
whatever the event and even if single messages fail (those are logged and
counted). A non-object body is handled as an unknown event. Only a body that
is not valid JSON is rejected (400), so the gateway never redelivers a batch
because of one bad message.

Logs carry no phone numbers or message text.
"""

from __future__ import annotations

import hmac
import os
from typing import Any

from fastapi import APIRouter, Header, Query, Request
from fastapi.responses import PlainTextResponse

from zaphub.api.errors import ApiError, ClientInputError, UnauthorizedError
from zaphub.infra.time import utc_now
from zaphub.observability.correlation import get_correlation_id
from zaphub.observability.logging import get_logger
from zaphub.observability.redaction import safe_log_context
from zaphub.whatsapp.evolution_adapter import parse_envelope
from zaphub.whatsapp.provider_events import dispatch, process_cloud_payload

router = APIRouter(prefix="/webhook", tags=["webhooks"])

logger = get_logger(__name__)


def _check_secret(provided: str | None) -> None:
    """Require X-Webhook-Secret when EVOLUTION_WEBHOOK_SECRET is set."""
    expected = os.environ.get("EVOLUTION_WEBHOOK_SECRET", "")
    if not expected:
        return
    if not provided or not hmac.compare_digest(provided, expected):
        logger.warning(
            "evolution webhook secret mismatch",
            extra={"extra_fields": safe_log_context(correlationId=get_correlation_id())},
        )
        raise UnauthorizedError("unauthorized")


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        logger.warning(
            "invalid json body",
            extra={"extra_fields": safe_log_context(correlationId=get_correlation_id())},
        )
        raise ClientInputError("Invalid JSON body") from None


@router.post("")
async def evolution_webhook(
    request: Request,
    x_webhook_secret: str | None = Header(None, alias="X-Webhook-Secret"),
) -> dict:
    """Receive an Evolution gateway event.

    Returns:
        200 with per-message counters once the body parses as JSON.
        400 if the body is not valid JSON.
        401 if a webhook secret is configured and does not match.
    """
    _check_secret(x_webhook_secret)
    payload = await _json_body(request)

    if not isinstance(payload, dict):
        logger.warning(
            "evolution webhook body is not an object",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=get_correlation_id(),
                    body_type=type(payload).__name__,
                )
            },
        )
    envelope = parse_envelope(payload)

    result = dispatch(envelope)

    logger.info(
        "evolution webhook handled",
        extra={
            "extra_fields": safe_log_context(
                correlationId=get_correlation_id(),
                event=envelope.event.value,
                instance=envelope.instance,
                processed=result.processed,
                skipped=result.skipped,
                failed=result.failed,
            )
        },
    )
    return {
        "success": True,
        "message": "Webhook processed",
        "event": envelope.event.value,
        "processed": result.processed,
        "skipped": result.skipped,
        "failed": result.failed,
        "flags": result.flags,
    }


@router.get("")
def webhook_status() -> dict:
    return {
        "success": True,
        "message": "Evolution webhook endpoint is active",
        "timestamp": utc_now().isoformat(),
    }


@router.get("/whatsapp")
def verify_cloud_webhook(
    mode: str | None = Query(None, alias="hub.mode"),
    token: str | None = Query(None, alias="hub.verify_token"),
    challenge: str | None = Query(None, alias="hub.challenge"),
) -> PlainTextResponse:
    """Answer the Cloud API subscription handshake with the challenge."""
    expected = os.environ.get("WHATSAPP_VERIFY_TOKEN", "")
    if (
        mode == "subscribe"
        and expected
        and token
        and hmac.compare_digest(token, expected)
    ):
        logger.info("cloud webhook verified")
        return PlainTextResponse(challenge or "")
    logger.warning("cloud webhook verification failed")
    raise ApiError("Forbidden", status_code=403)


@router.post("/whatsapp")
async def cloud_webhook(request: Request) -> dict:
    payload = await _json_body(request)
    processed = process_cloud_payload(payload)
    if processed is None:
        return {"success": True, "message": "No message to process"}
    return {"success": True, "message": "Webhook processed successfully", "data": processed}
