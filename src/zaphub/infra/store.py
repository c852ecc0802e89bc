"""Ingestion store - webhook registrations, inbound messages, suggestions.

Handlers depend on the IngestionStore protocol, never on a module-level
variable. Two backends:
- InMemoryStore: lock-guarded dicts (dev/tests, single process);
- PostgresStore: repositories under zaphub.infra.repositories, one short
  transaction per operation.

STORE_BACKEND selects one ("memory" default, "postgres").
"""

import os
import threading
from dataclasses import replace
from datetime import datetime
from typing import Protocol

from zaphub.infra.db import txn
from zaphub.infra.repositories import (
    messages_repository,
    suggestions_repository,
    webhooks_repository,
)
from zaphub.infra.time import utc_now
from zaphub.whatsapp.models import InboundMessage, ReplySuggestion, WebhookRegistration


class IngestionStore(Protocol):
    def upsert_webhook(self, reg: WebhookRegistration) -> WebhookRegistration: ...

    def get_webhook(
        self, webhook_id: str, client_id: str | None = None
    ) -> WebhookRegistration | None: ...

    def list_webhooks(self, client_id: str) -> list[WebhookRegistration]: ...

    def delete_webhook(self, webhook_id: str, client_id: str) -> bool: ...

    def insert_message(self, msg: InboundMessage) -> None: ...

    def record_inbound(self, msg: InboundMessage, received_at: datetime) -> None:
        """Insert msg and bump its webhook's counter/last_received together."""
        ...

    def mark_processed(self, message_id: str) -> bool: ...

    def list_messages(
        self, client_id: str, *, limit: int, offset: int
    ) -> list[InboundMessage]: ...

    def count_messages(self, client_id: str) -> int: ...

    def insert_suggestion(self, suggestion: ReplySuggestion) -> None: ...


class InMemoryStore:
    """IngestionStore backed by dicts. Ordering mimics the SQL ORDER BY clauses."""

    def __init__(self) -> None:
        self._webhooks: dict[str, WebhookRegistration] = {}
        self._messages: dict[str, InboundMessage] = {}
        self._suggestions: list[ReplySuggestion] = []
        self._lock = threading.Lock()

    @property
    def suggestions(self) -> list[ReplySuggestion]:
        with self._lock:
            return list(self._suggestions)

    def upsert_webhook(self, reg: WebhookRegistration) -> WebhookRegistration:
        with self._lock:
            existing = self._webhooks.get(reg.id)
            if existing is None:
                stored = replace(reg, message_count=0)
            else:
                stored = replace(
                    existing,
                    url=reg.url,
                    platform=reg.platform,
                    status="active",
                    updated_at=utc_now(),
                )
            self._webhooks[reg.id] = stored
            return stored

    def get_webhook(
        self, webhook_id: str, client_id: str | None = None
    ) -> WebhookRegistration | None:
        with self._lock:
            reg = self._webhooks.get(webhook_id)
        if reg is None or (client_id is not None and reg.client_id != client_id):
            return None
        return reg

    def list_webhooks(self, client_id: str) -> list[WebhookRegistration]:
        with self._lock:
            regs = [r for r in self._webhooks.values() if r.client_id == client_id]
        return sorted(regs, key=lambda r: r.created_at, reverse=True)

    def delete_webhook(self, webhook_id: str, client_id: str) -> bool:
        with self._lock:
            reg = self._webhooks.get(webhook_id)
            if reg is None or reg.client_id != client_id:
                return False
            del self._webhooks[webhook_id]
            return True

    def set_webhook_status(self, webhook_id: str, status: str) -> None:
        with self._lock:
            reg = self._webhooks[webhook_id]
            self._webhooks[webhook_id] = replace(reg, status=status, updated_at=utc_now())

    def insert_message(self, msg: InboundMessage) -> None:
        with self._lock:
            self._messages[msg.id] = replace(msg, created_at=msg.created_at or utc_now())

    def record_inbound(self, msg: InboundMessage, received_at: datetime) -> None:
        with self._lock:
            self._messages[msg.id] = replace(msg, created_at=msg.created_at or received_at)
            if msg.webhook_id and msg.webhook_id in self._webhooks:
                reg = self._webhooks[msg.webhook_id]
                self._webhooks[msg.webhook_id] = replace(
                    reg,
                    message_count=reg.message_count + 1,
                    last_received=received_at,
                    updated_at=received_at,
                )

    def mark_processed(self, message_id: str) -> bool:
        with self._lock:
            msg = self._messages.get(message_id)
            if msg is None:
                return False
            self._messages[message_id] = msg.mark_processed()
            return True

    def get_message(self, message_id: str) -> InboundMessage | None:
        with self._lock:
            return self._messages.get(message_id)

    def list_messages(
        self, client_id: str, *, limit: int, offset: int
    ) -> list[InboundMessage]:
        with self._lock:
            msgs = [m for m in self._messages.values() if m.client_id == client_id]
        msgs.sort(key=lambda m: m.created_at, reverse=True)
        return msgs[offset : offset + limit]

    def count_messages(self, client_id: str) -> int:
        with self._lock:
            return sum(1 for m in self._messages.values() if m.client_id == client_id)

    def insert_suggestion(self, suggestion: ReplySuggestion) -> None:
        with self._lock:
            self._suggestions.append(suggestion)


class PostgresStore:
    """IngestionStore over Postgres. Each method is one transaction."""

    def upsert_webhook(self, reg: WebhookRegistration) -> WebhookRegistration:
        with txn() as cur:
            return webhooks_repository.upsert_webhook(cur, reg)

    def get_webhook(
        self, webhook_id: str, client_id: str | None = None
    ) -> WebhookRegistration | None:
        with txn() as cur:
            return webhooks_repository.get_webhook(cur, webhook_id, client_id)

    def list_webhooks(self, client_id: str) -> list[WebhookRegistration]:
        with txn() as cur:
            return webhooks_repository.list_webhooks(cur, client_id)

    def delete_webhook(self, webhook_id: str, client_id: str) -> bool:
        with txn() as cur:
            return webhooks_repository.delete_webhook(cur, webhook_id, client_id)

    def insert_message(self, msg: InboundMessage) -> None:
        with txn() as cur:
            messages_repository.insert_message(cur, msg)

    def record_inbound(self, msg: InboundMessage, received_at: datetime) -> None:
        with txn() as cur:
            messages_repository.insert_message(cur, msg)
            if msg.webhook_id:
                webhooks_repository.bump_message_count(cur, msg.webhook_id, received_at)

    def mark_processed(self, message_id: str) -> bool:
        with txn() as cur:
            return messages_repository.mark_processed(cur, message_id)

    def list_messages(
        self, client_id: str, *, limit: int, offset: int
    ) -> list[InboundMessage]:
        with txn() as cur:
            return messages_repository.list_messages(
                cur, client_id, limit=limit, offset=offset
            )

    def count_messages(self, client_id: str) -> int:
        with txn() as cur:
            return messages_repository.count_messages(cur, client_id)

    def insert_suggestion(self, suggestion: ReplySuggestion) -> None:
        with txn() as cur:
            suggestions_repository.insert_suggestion(cur, suggestion)


def build_store(backend: str | None = None) -> IngestionStore:
    """Store for the configured backend.

    Raises:
        ValueError: If STORE_BACKEND names an unknown backend.
    """
    backend = (backend or os.environ.get("STORE_BACKEND", "memory")).lower()
    if backend == "memory":
        return InMemoryStore()
    if backend == "postgres":
        return PostgresStore()
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")
