"""Companion control route.

POST /companion {"action": ...}
    activate            personality? → greeting + personality
    deactivate
    process-message     message → response (null while inactive)
    change-personality  personality
    set-delay           delay (ms)
    status
GET  /companion → status with every personality
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from zaphub.api.deps import get_companion
from zaphub.api.errors import ClientInputError
from zaphub.domain.companion import Companion, CompanionError, personality_info
from zaphub.observability.logging import get_logger
from zaphub.observability.redaction import safe_log_context

logger = get_logger(__name__)

router = APIRouter(prefix="/companion", tags=["companion"])

CompanionAction = Literal[
    "activate",
    "deactivate",
    "process-message",
    "change-personality",
    "set-delay",
    "status",
]


class CompanionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: CompanionAction
    message: str | None = None
    personality: str | None = Field(None, alias="personalityId")
    delay: Any = None


@router.post("")
async def companion_action(
    body: CompanionRequest,
    companion: Companion = Depends(get_companion),
) -> dict:
    try:
        if body.action == "activate":
            companion.activate(body.personality)
            result = {
                "message": "Companion activated",
                "greeting": companion.greeting(),
                "personality": personality_info(companion.personality),
            }
        elif body.action == "deactivate":
            companion.deactivate()
            result = {"message": "Companion deactivated"}
        elif body.action == "process-message":
            if not body.message:
                raise ClientInputError("message is required")
            result = {"response": await companion.process_message(body.message)}
        elif body.action == "change-personality":
            if not body.personality:
                raise ClientInputError("personality is required")
            companion.set_personality(body.personality)
            result = {"personality": personality_info(companion.personality)}
        elif body.action == "set-delay":
            result = {"delayMs": companion.set_delay(body.delay)}
        else:
            result = companion.status()
    except CompanionError as e:
        raise ClientInputError(str(e)) from e

    logger.info(
        "companion action",
        extra={
            "extra_fields": safe_log_context(
                action=body.action,
                active=companion.active,
                personality=companion.personality,
            )
        },
    )
    return {"success": True, **result}


@router.get("")
def companion_status(companion: Companion = Depends(get_companion)) -> dict:
    return {"success": True, **companion.status()}
