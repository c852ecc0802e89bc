"""Session registry - keyed store of simulated WhatsApp sessions.

Each session gets two deferred actions at creation:
- auto-connect after a random 10-30s delay (placeholder for the gateway's
  "connected" callback; confirm_scan() is the callback-driven path);
- auto-expire after the 60s QR window.

Both re-check the status under the registry lock before acting, so the first
transition wins and the other becomes a no-op. Their handles are kept on the
entry and cancelled on delete, so a timer never touches a removed record.
"""

import random
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from zaphub.domain.sessions import (
    CONNECT_DELAY_MAX_SECONDS,
    CONNECT_DELAY_MIN_SECONDS,
    QR_TIMEOUT_SECONDS,
    Session,
    SessionStatus,
    effective_client_id,
    qr_deadline,
)
from zaphub.infra.ids import session_id as new_session_id
from zaphub.infra.scheduler import ScheduledCall, Scheduler, ThreadingScheduler
from zaphub.infra.time import utc_now
from zaphub.observability.logging import get_logger
from zaphub.observability.redaction import safe_log_context
from zaphub.sessions.client import SimulatedWhatsAppClient

logger = get_logger(__name__)


class SessionNotFoundError(Exception):
    """No live session with that id or name."""

    pass


class SessionConflictError(Exception):
    """The client already has a session awaiting scan or connected."""

    pass


@dataclass
class _Entry:
    session: Session
    client: SimulatedWhatsAppClient
    timers: list[ScheduledCall] = field(default_factory=list)


class SessionRegistry:
    """Process-wide map of session id -> session, safe across threads."""

    def __init__(
        self,
        scheduler: Scheduler | None = None,
        clock: Callable[[], datetime] = utc_now,
        rng: random.Random | None = None,
    ) -> None:
        self._scheduler = scheduler or ThreadingScheduler()
        self._clock = clock
        self._rng = rng or random.Random()
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.RLock()

    # ── queries ──────────────────────────────────────────────────────────────

    def _find(self, id_or_name: str) -> _Entry | None:
        entry = self._entries.get(id_or_name)
        if entry is not None:
            return entry
        for candidate in self._entries.values():
            if candidate.session.name == id_or_name:
                return candidate
        return None

    def get(self, id_or_name: str) -> Session:
        """Snapshot of the session with this id (or name).

        Raises:
            SessionNotFoundError: If no such session exists.
        """
        with self._lock:
            entry = self._find(id_or_name)
            if entry is None:
                raise SessionNotFoundError(id_or_name)
            return entry.session.snapshot()

    def list(self) -> list[Session]:
        with self._lock:
            return [e.session.snapshot() for e in self._entries.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ── lifecycle ────────────────────────────────────────────────────────────

    def create(
        self,
        client_id: str | None,
        name: str | None = None,
        user_role: str | None = None,
    ) -> Session:
        """Start a session awaiting QR scan and schedule its deferred actions.

        Raises:
            SessionConflictError: If the client already has a live session.
        """
        owner = effective_client_id(client_id, user_role) or "anonymous"
        now = self._clock()
        now_ms = int(now.timestamp() * 1000)

        with self._lock:
            for entry in self._entries.values():
                if entry.session.client_id == owner and entry.session.is_live:
                    raise SessionConflictError(owner)

            sid = new_session_id(rng=self._rng, now_ms=now_ms)
            client = SimulatedWhatsAppClient(sid, owner)
            session = Session(
                id=sid,
                name=name or sid,
                client_id=owner,
                user_role=user_role or "simple",
                status=SessionStatus.AWAITING_SCAN,
                created_at=now,
                expires_at=qr_deadline(now),
                last_activity=now,
                qr=client.qr_payload(now_ms),
                config=client.webhook_config(),
            )
            entry = _Entry(session=session, client=client)
            self._entries[sid] = entry

            connect_delay = self._rng.uniform(
                CONNECT_DELAY_MIN_SECONDS, CONNECT_DELAY_MAX_SECONDS
            )
            entry.timers.append(
                self._scheduler.call_later(connect_delay, lambda: self._auto_connect(sid))
            )
            entry.timers.append(
                self._scheduler.call_later(QR_TIMEOUT_SECONDS, lambda: self._auto_expire(sid))
            )

            logger.info(
                "session created",
                extra={
                    "extra_fields": safe_log_context(
                        session_id=sid,
                        connect_delay_s=round(connect_delay, 1),
                    )
                },
            )
            return session.snapshot()

    def confirm_scan(self, id_or_name: str, profile: dict | None = None) -> bool:
        """Mark the QR as scanned. Returns False if no longer awaiting scan.

        Raises:
            SessionNotFoundError: If no such session exists.
        """
        with self._lock:
            entry = self._find(id_or_name)
            if entry is None:
                raise SessionNotFoundError(id_or_name)
            return self._connect_locked(entry, profile)

    def delete(self, id_or_name: str) -> Session:
        """Cancel timers, release the client handle and drop the session.

        Raises:
            SessionNotFoundError: If no such session exists.
        """
        with self._lock:
            entry = self._find(id_or_name)
            if entry is None:
                raise SessionNotFoundError(id_or_name)

            for timer in entry.timers:
                timer.cancel()
            entry.timers.clear()
            entry.client.destroy()

            session = entry.session
            session.transition(SessionStatus.REMOVED, self._clock())
            del self._entries[session.id]

        logger.info(
            "session removed",
            extra={"extra_fields": safe_log_context(session_id=session.id)},
        )
        return session.snapshot()

    def clear(self) -> None:
        """Remove every session (shutdown/tests)."""
        with self._lock:
            ids = list(self._entries)
        for sid in ids:
            try:
                self.delete(sid)
            except SessionNotFoundError:
                continue

    def close(self) -> None:
        """Remove every session and stop the scheduler (application shutdown)."""
        self.clear()
        shutdown = getattr(self._scheduler, "shutdown", None)
        if shutdown is not None:
            shutdown()

    # ── deferred actions ─────────────────────────────────────────────────────

    def _connect_locked(self, entry: _Entry, profile: dict | None) -> bool:
        session = entry.session
        if session.status is not SessionStatus.AWAITING_SCAN:
            return False
        session.transition(SessionStatus.CONNECTED, self._clock())
        session.profile = profile or entry.client.profile()
        logger.info(
            "session connected",
            extra={"extra_fields": safe_log_context(session_id=session.id)},
        )
        return True

    def _auto_connect(self, sid: str) -> None:
        with self._lock:
            entry = self._entries.get(sid)
            if entry is None:
                return
            self._connect_locked(entry, None)

    def _auto_expire(self, sid: str) -> None:
        with self._lock:
            entry = self._entries.get(sid)
            if entry is None or entry.session.status is not SessionStatus.AWAITING_SCAN:
                return
            entry.session.transition(SessionStatus.EXPIRED, self._clock())
        logger.info(
            "session qr expired",
            extra={"extra_fields": safe_log_context(session_id=sid)},
        )
