"""In-app notification center and push subscription book.

Both are process-local. Push delivery itself is not performed: send()
reports, per subscribed user, the result a delivery backend would return.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from zaphub.infra.ids import notification_id
from zaphub.infra.time import utc_now
from zaphub.observability.logging import get_logger
from zaphub.observability.redaction import safe_log_context

logger = get_logger(__name__)

MAX_NOTIFICATIONS = 1000
DEFAULT_TITLE = "Nova notificação"


class NotificationNotFoundError(Exception):
    pass


@dataclass(frozen=True)
class Notification:
    id: str
    title: str
    body: str
    type: str
    priority: str
    user_id: str | None
    timestamp: datetime
    read: bool = False
    data: dict[str, Any] = field(default_factory=dict)
    actions: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "type": self.type,
            "priority": self.priority,
            "userId": self.user_id,
            "timestamp": self.timestamp.isoformat(),
            "read": self.read,
            "data": self.data,
            "actions": self.actions,
        }


@dataclass(frozen=True)
class NotificationPage:
    items: list[Notification]
    total: int
    unread: int


class NotificationCenter:
    """Newest-first list, capped at MAX_NOTIFICATIONS (oldest dropped)."""

    def __init__(self, limit: int = MAX_NOTIFICATIONS) -> None:
        self._items: list[Notification] = []
        self._limit = limit
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._items)

    def create(
        self,
        *,
        title: str | None = None,
        body: str | None = None,
        type: str | None = None,
        priority: str | None = None,
        user_id: str | None = None,
        data: dict[str, Any] | None = None,
        actions: list[Any] | None = None,
    ) -> Notification:
        notification = Notification(
            id=notification_id(),
            title=title or DEFAULT_TITLE,
            body=body or "",
            type=type or "system",
            priority=priority or "medium",
            user_id=user_id,
            timestamp=utc_now(),
            data=data or {},
            actions=actions or [],
        )
        with self._lock:
            self._items.insert(0, notification)
            del self._items[self._limit :]
        return notification

    def list(
        self, user_id: str | None = None, *, limit: int = 20, offset: int = 0
    ) -> NotificationPage:
        with self._lock:
            matching = [n for n in self._items if user_id is None or n.user_id == user_id]
        matching.sort(key=lambda n: n.timestamp, reverse=True)
        return NotificationPage(
            items=matching[offset : offset + limit],
            total=len(matching),
            unread=sum(1 for n in matching if not n.read),
        )

    def set_read(self, notification_id: str, read: bool | None = None) -> Notification:
        """Set the read flag; None leaves it as is.

        Raises:
            NotificationNotFoundError: If no notification has that id.
        """
        with self._lock:
            for i, n in enumerate(self._items):
                if n.id == notification_id:
                    if read is not None:
                        self._items[i] = replace(n, read=read)
                    return self._items[i]
        raise NotificationNotFoundError(notification_id)

    def mark_all_read(self, user_id: str | None = None) -> int:
        changed = 0
        with self._lock:
            for i, n in enumerate(self._items):
                if not n.read and (user_id is None or n.user_id == user_id):
                    self._items[i] = replace(n, read=True)
                    changed += 1
        return changed

    def delete(self, notification_id: str) -> None:
        with self._lock:
            for i, n in enumerate(self._items):
                if n.id == notification_id:
                    del self._items[i]
                    return
        raise NotificationNotFoundError(notification_id)

    def clear(self, user_id: str | None = None) -> int:
        with self._lock:
            before = len(self._items)
            if user_id is None:
                self._items = []
            else:
                self._items = [n for n in self._items if n.user_id != user_id]
            return before - len(self._items)


@dataclass(frozen=True)
class DeliveryResult:
    user_id: str
    success: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"userId": self.user_id, "success": self.success}
        if self.error:
            out["error"] = self.error
        return out


class PushSubscriptions:
    """Web push subscriptions keyed by user (one per user, last wins)."""

    def __init__(self) -> None:
        self._subs: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def subscribe(self, user_id: str, subscription: dict[str, Any]) -> None:
        with self._lock:
            self._subs[user_id] = subscription

    def unsubscribe(self, user_id: str) -> bool:
        with self._lock:
            return self._subs.pop(user_id, None) is not None

    def get(self, user_id: str) -> dict[str, Any] | None:
        return self._subs.get(user_id)

    def users(self) -> list[str]:
        with self._lock:
            return list(self._subs)

    def send(self, notification: dict[str, Any], user_id: str | None = None) -> list[DeliveryResult]:
        """Deliver to one user or every subscriber. Users without a subscription are skipped."""
        targets = [user_id] if user_id else self.users()
        results = []
        for target in targets:
            if self.get(target) is None:
                continue
            logger.info(
                "push notification dispatched",
                extra={
                    "extra_fields": safe_log_context(
                        user_id=target, title_len=len(str(notification.get("title") or ""))
                    )
                },
            )
            results.append(DeliveryResult(user_id=target, success=True))
        return results
