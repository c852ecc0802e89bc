"""Shared pytest fixtures for zaphub tests."""
import sys
sys.dont_write_bytecode = True

import random  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from zaphub.api.deps import Services  # noqa: E402
from zaphub.api.factory import create_app  # noqa: E402
from zaphub.domain.companion import Companion  # noqa: E402
from zaphub.domain.notifications import NotificationCenter, PushSubscriptions  # noqa: E402
from zaphub.infra.store import InMemoryStore  # noqa: E402
from zaphub.sessions.registry import SessionRegistry  # noqa: E402
from zaphub.whatsapp.instances import InstanceManager  # noqa: E402

START = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class _ManualCall:
    def __init__(self, due: float, fn) -> None:
        self.due = due
        self.fn = fn
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by advance(); also serves as the registry clock."""

    def __init__(self, start: datetime = START) -> None:
        self.start = start
        self.elapsed = 0.0
        self.calls: list[_ManualCall] = []

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    def call_later(self, delay: float, fn) -> _ManualCall:
        call = _ManualCall(self.elapsed + delay, fn)
        self.calls.append(call)
        return call

    def pending(self) -> list[_ManualCall]:
        return [c for c in self.calls if not c.cancelled and not c.fired]

    def advance(self, seconds: float) -> None:
        """Move time forward, firing due calls in due order."""
        target = self.elapsed + seconds
        while True:
            due = [c for c in self.pending() if c.due <= target]
            if not due:
                break
            call = min(due, key=lambda c: c.due)
            self.elapsed = call.due
            call.fired = True
            call.fn()
        self.elapsed = target


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def registry(scheduler) -> SessionRegistry:
    return SessionRegistry(scheduler=scheduler, clock=scheduler.now, rng=random.Random(7))


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def gateway():
    """Mock EvolutionClient shared by every instance name."""
    client = MagicMock()
    client.health_check.return_value = True
    client.config.base_url = "http://evolution.test"
    return client


@pytest.fixture
def services(store, registry, gateway) -> Services:
    return Services(
        store=store,
        sessions=registry,
        instances=InstanceManager(client_factory=lambda _name: gateway),
        companion=Companion(rng=random.Random(1)),
        notifications=NotificationCenter(),
        push=PushSubscriptions(),
    )


@pytest.fixture
def client(services):
    with TestClient(create_app(services)) as test_client:
        yield test_client
