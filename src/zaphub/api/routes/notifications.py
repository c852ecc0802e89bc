"""In-app notifications and push subscriptions.

GET    /notifications?userId=&limit=&offset=  → newest first, with unread count
POST   /notifications                         → create
PATCH  /notifications {id, read} | {action: "markAllRead", userId?}
DELETE /notifications?id= | ?action=clearAll&userId=
GET    /notifications/push?userId=            → subscription lookup
POST   /notifications/push {action: subscribe|unsubscribe|send, ...}
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from zaphub.api.deps import get_notification_center, get_push_subscriptions
from zaphub.api.errors import ClientInputError, NotFoundError
from zaphub.domain.notifications import (
    NotificationCenter,
    NotificationNotFoundError,
    PushSubscriptions,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


# ── Schemas ───────────────────────────────────────────────────────────────────


class CreateNotificationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    body: str | None = None
    type: str | None = None
    priority: str | None = None
    user_id: str | None = Field(None, alias="userId")
    data: dict[str, Any] | None = None
    actions: list[Any] | None = None


class UpdateNotificationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    read: bool | None = None
    action: Literal["markAllRead"] | None = None
    user_id: str | None = Field(None, alias="userId")


class PushRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: Literal["subscribe", "unsubscribe", "send"]
    user_id: str | None = Field(None, alias="userId")
    subscription: dict[str, Any] | None = None
    notification: dict[str, Any] | None = None


# ── Notifications ─────────────────────────────────────────────────────────────


@router.get("")
def list_notifications(
    user_id: str | None = Query(None, alias="userId"),
    limit: int = Query(20, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    center: NotificationCenter = Depends(get_notification_center),
) -> dict:
    page = center.list(user_id, limit=limit, offset=offset)
    return {
        "success": True,
        "notifications": [n.to_dict() for n in page.items],
        "total": page.total,
        "unread": page.unread,
    }


@router.post("")
def create_notification(
    body: CreateNotificationRequest,
    center: NotificationCenter = Depends(get_notification_center),
) -> dict:
    notification = center.create(
        title=body.title,
        body=body.body,
        type=body.type,
        priority=body.priority,
        user_id=body.user_id,
        data=body.data,
        actions=body.actions,
    )
    return {"success": True, "notification": notification.to_dict()}


@router.patch("")
def update_notification(
    body: UpdateNotificationRequest,
    center: NotificationCenter = Depends(get_notification_center),
) -> dict:
    if body.action == "markAllRead":
        changed = center.mark_all_read(body.user_id)
        return {
            "success": True,
            "message": "All notifications marked as read",
            "updated": changed,
        }
    if not body.id:
        raise ClientInputError("Notification ID required")
    try:
        notification = center.set_read(body.id, body.read)
    except NotificationNotFoundError:
        raise NotFoundError("Notification not found") from None
    return {"success": True, "notification": notification.to_dict()}


@router.delete("")
def delete_notification(
    notification_id: str | None = Query(None, alias="id"),
    action: Literal["clearAll"] | None = Query(None),
    user_id: str | None = Query(None, alias="userId"),
    center: NotificationCenter = Depends(get_notification_center),
) -> dict:
    if action == "clearAll":
        removed = center.clear(user_id)
        return {"success": True, "message": "All notifications cleared", "removed": removed}
    if not notification_id:
        raise ClientInputError("Notification ID required")
    try:
        center.delete(notification_id)
    except NotificationNotFoundError:
        raise NotFoundError("Notification not found") from None
    return {"success": True, "message": "Notification deleted"}


# ── Push ──────────────────────────────────────────────────────────────────────


@router.get("/push")
def push_status(
    user_id: str | None = Query(None, alias="userId"),
    push: PushSubscriptions = Depends(get_push_subscriptions),
) -> dict:
    if user_id:
        subscription = push.get(user_id)
        return {
            "success": True,
            "subscribed": subscription is not None,
            "subscription": subscription,
        }
    users = push.users()
    return {"success": True, "totalSubscriptions": len(users), "users": users}


@router.post("/push")
def push_action(
    body: PushRequest,
    push: PushSubscriptions = Depends(get_push_subscriptions),
) -> dict:
    if body.action == "subscribe":
        if not body.subscription or not body.user_id:
            raise ClientInputError("Subscription and userId required")
        push.subscribe(body.user_id, body.subscription)
        return {"success": True, "message": "Push subscription registered"}

    if body.action == "unsubscribe":
        if not body.user_id:
            raise ClientInputError("userId required")
        push.unsubscribe(body.user_id)
        return {"success": True, "message": "Push subscription removed"}

    if not body.notification:
        raise ClientInputError("Notification data required")
    results = push.send(body.notification, body.user_id)
    return {
        "success": True,
        "results": [r.to_dict() for r in results],
        "sent": sum(1 for r in results if r.success),
        "failed": sum(1 for r in results if not r.success),
    }
