"""Process-wide collaborators, created once per app and injected into routes.

Routes take them through Depends(get_*) so tests can swap any of them via
app.dependency_overrides, or build the app with their own Services.
"""

from dataclasses import dataclass, field

from fastapi import Request

from zaphub.domain.companion import Companion
from zaphub.domain.notifications import NotificationCenter, PushSubscriptions
from zaphub.infra.store import IngestionStore, build_store
from zaphub.sessions.registry import SessionRegistry
from zaphub.whatsapp.instances import InstanceManager


@dataclass
class Services:
    store: IngestionStore = field(default_factory=build_store)
    sessions: SessionRegistry = field(default_factory=SessionRegistry)
    instances: InstanceManager = field(default_factory=InstanceManager)
    companion: Companion = field(default_factory=Companion)
    notifications: NotificationCenter = field(default_factory=NotificationCenter)
    push: PushSubscriptions = field(default_factory=PushSubscriptions)

    def close(self) -> None:
        self.sessions.close()


def _services(request: Request) -> Services:
    return request.app.state.services


def get_store(request: Request) -> IngestionStore:
    return _services(request).store


def get_session_registry(request: Request) -> SessionRegistry:
    return _services(request).sessions


def get_instance_manager(request: Request) -> InstanceManager:
    return _services(request).instances


def get_companion(request: Request) -> Companion:
    return _services(request).companion


def get_notification_center(request: Request) -> NotificationCenter:
    return _services(request).notifications


def get_push_subscriptions(request: Request) -> PushSubscriptions:
    return _services(request).push
