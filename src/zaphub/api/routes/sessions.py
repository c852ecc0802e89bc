"""Simulated WhatsApp session routes.

POST   /sessions                → start a session (QR awaiting scan)
GET    /sessions                → all live sessions
GET    /sessions/{name}         → poll one session (by id or name)
POST   /sessions/{name}/confirm → scan confirmed by a callback
DELETE /sessions/{name}         → remove it, cancelling its timers
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, ConfigDict, Field

from zaphub.api.deps import get_session_registry
from zaphub.api.errors import ClientInputError, NotFoundError
from zaphub.sessions.registry import (
    SessionConflictError,
    SessionNotFoundError,
    SessionRegistry,
)

router = APIRouter(prefix="/sessions", tags=["sessions"])


class CreateSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    client_id: str | None = Field(None, alias="clientId")
    user_role: str | None = Field(None, alias="userRole")


class ConfirmScanRequest(BaseModel):
    profile: dict[str, Any] | None = None


def _not_found(name: str) -> NotFoundError:
    return NotFoundError("Session not found", details=name)


@router.post("")
def create_session(
    body: CreateSessionRequest | None = None,
    registry: SessionRegistry = Depends(get_session_registry),
) -> dict:
    body = body or CreateSessionRequest()
    try:
        session = registry.create(body.client_id, name=body.name, user_role=body.user_role)
    except SessionConflictError as e:
        raise ClientInputError(
            "Client already has an active session", details=str(e)
        ) from e
    return {
        "success": True,
        "session": session.to_dict(),
        "message": "Session created. Scan the QR code to connect.",
    }


@router.get("")
def list_sessions(registry: SessionRegistry = Depends(get_session_registry)) -> dict:
    sessions = registry.list()
    return {
        "success": True,
        "sessions": [s.to_dict() for s in sessions],
        "total": len(sessions),
    }


@router.get("/{name}")
def get_session(
    name: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> dict:
    try:
        session = registry.get(name)
    except SessionNotFoundError:
        raise _not_found(name) from None
    return {"success": True, "session": session.to_dict()}


@router.post("/{name}/confirm")
def confirm_scan(
    name: str = Path(..., min_length=1),
    body: ConfirmScanRequest | None = None,
    registry: SessionRegistry = Depends(get_session_registry),
) -> dict:
    """Connect the session now instead of waiting for the simulated scan.

    A session that already left awaiting_scan is returned unchanged with
    connected=false.
    """
    body = body or ConfirmScanRequest()
    try:
        connected = registry.confirm_scan(name, body.profile)
        session = registry.get(name)
    except SessionNotFoundError:
        raise _not_found(name) from None
    return {"success": True, "connected": connected, "session": session.to_dict()}


@router.delete("/{name}")
def delete_session(
    name: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> dict:
    try:
        session = registry.delete(name)
    except SessionNotFoundError:
        raise _not_found(name) from None
    return {
        "success": True,
        "message": "Session removed",
        "session": session.to_dict(),
    }
