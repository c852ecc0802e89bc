"""Simulated WhatsApp session model.

State machine:

    awaiting_scan --scan confirmed--> connected --delete--> removed
    awaiting_scan --60s elapsed-----> expired   --delete--> removed
    awaiting_scan --delete--> removed

Nothing leaves "removed". The QR payload exists only while awaiting_scan.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

# QR validity window
QR_TIMEOUT_SECONDS = 60
# Simulated scan confirmation arrives uniformly within this window
CONNECT_DELAY_MIN_SECONDS = 10
CONNECT_DELAY_MAX_SECONDS = 30

MASTER_ROLE = "master"
MASTER_CLIENT_ID = "master_admin"


class SessionStatus(str, Enum):
    AWAITING_SCAN = "awaiting_scan"
    CONNECTED = "connected"
    EXPIRED = "expired"
    REMOVED = "removed"


_ALLOWED: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.AWAITING_SCAN: frozenset(
        {SessionStatus.CONNECTED, SessionStatus.EXPIRED, SessionStatus.REMOVED}
    ),
    SessionStatus.CONNECTED: frozenset({SessionStatus.REMOVED}),
    SessionStatus.EXPIRED: frozenset({SessionStatus.REMOVED}),
    SessionStatus.REMOVED: frozenset(),
}


class InvalidTransitionError(Exception):
    """Raised when a session is moved along an edge the state machine lacks."""

    pass


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return target in _ALLOWED[current]


@dataclass
class Session:
    """One simulated connection attempt, owned by the SessionRegistry."""

    id: str
    name: str
    client_id: str
    user_role: str
    status: SessionStatus
    created_at: datetime
    expires_at: datetime
    last_activity: datetime
    qr: str | None = None
    profile: dict[str, Any] | None = None
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def is_live(self) -> bool:
        """Blocks another session for the same client."""
        return self.status in (SessionStatus.AWAITING_SCAN, SessionStatus.CONNECTED)

    def transition(self, target: SessionStatus, now: datetime) -> None:
        """Move to target, keeping the QR invariant.

        Raises:
            InvalidTransitionError: If the edge does not exist.
        """
        if not can_transition(self.status, target):
            raise InvalidTransitionError(f"{self.status.value} -> {target.value}")
        self.status = target
        self.last_activity = now
        if target is not SessionStatus.AWAITING_SCAN:
            self.qr = None

    def snapshot(self) -> "Session":
        """Detached copy for callers outside the registry lock."""
        return replace(
            self,
            profile=dict(self.profile) if self.profile else None,
            config=dict(self.config),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "clientId": self.client_id,
            "userRole": self.user_role,
            "status": self.status.value,
            "qr": self.qr,
            "profile": self.profile,
            "createdAt": self.created_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
            "lastActivity": self.last_activity.isoformat(),
            "config": self.config,
        }


def effective_client_id(client_id: str | None, user_role: str | None) -> str | None:
    """Masters share one admin session regardless of the client id they send."""
    if user_role == MASTER_ROLE:
        return MASTER_CLIENT_ID
    return client_id


def qr_deadline(created_at: datetime) -> datetime:
    return created_at + timedelta(seconds=QR_TIMEOUT_SECONDS)
