"""Instance lifecycle against the Evolution gateway.

An instance is one logged-in WhatsApp account on the gateway. The manager
keeps a per-instance client handle cache and merges gateway responses into
the descriptors the dashboard shows.
"""

from __future__ import annotations

import threading
from datetime import timedelta
from typing import Callable

from zaphub.domain.sentiment import SCORE_THRESHOLD, sentiment_score
from zaphub.infra.best_effort import best_effort
from zaphub.infra.time import utc_now
from zaphub.observability.logging import get_logger
from zaphub.observability.redaction import safe_log_context

from .evolution_adapter import normalize_message
from .evolution_client import EvolutionClient
from .qr import png_data_uri

logger = get_logger(__name__)

STATUS_OPEN = "open"
STATUS_CLOSE = "close"
STATUS_CONNECTING = "connecting"

RECENT_DAYS = 7
RECENT_LIMIT = 1000


class GatewayUnavailableError(Exception):
    """Gateway health check failed before a create."""

    pass


class InstanceNotConnectedError(Exception):
    """Instance exists but is not in the open state."""

    def __init__(self, instance_name: str, status: str | None) -> None:
        super().__init__(f"Instance {instance_name} is not connected")
        self.instance_name = instance_name
        self.status = status


def _state_of(body: dict) -> str | None:
    """connectionState answers {"instance": {"state": ...}} or {"status": ...}."""
    if not isinstance(body, dict):
        return None
    nested = body.get("instance")
    if isinstance(nested, dict):
        return nested.get("state") or nested.get("status")
    return body.get("state") or body.get("status")


class InstanceManager:
    """Create/connect/status/delete/send for named gateway instances."""

    def __init__(self, client_factory: Callable[[str], EvolutionClient] | None = None) -> None:
        self._client_factory = client_factory or (lambda _name: EvolutionClient())
        self._clients: dict[str, EvolutionClient] = {}
        self._lock = threading.Lock()

    # ── handle cache ─────────────────────────────────────────────────────────

    def client_for(self, instance_name: str) -> EvolutionClient:
        with self._lock:
            client = self._clients.get(instance_name)
            if client is None:
                client = self._client_factory(instance_name)
                self._clients[instance_name] = client
            return client

    def evict(self, instance_name: str) -> None:
        with self._lock:
            self._clients.pop(instance_name, None)

    def cached_names(self) -> list[str]:
        with self._lock:
            return list(self._clients)

    # ── lifecycle ────────────────────────────────────────────────────────────

    def list_instances(self) -> list[dict]:
        client = self._client_factory("")
        if not client.health_check():
            raise GatewayUnavailableError("Evolution API is not available")
        return client.fetch_instances()

    def create_instance(self, instance_name: str, webhook_url: str | None = None) -> dict:
        """Create and connect an instance.

        Raises:
            GatewayUnavailableError: If the gateway fails its health check.
            EvolutionAPIError: If create or connect fails.
        """
        client = self.client_for(instance_name)
        if not client.health_check():
            raise GatewayUnavailableError("Evolution API is not available")

        created = client.create_instance(instance_name, webhook_url)
        connected = client.connect_instance(instance_name)

        descriptor = created.get("instance") if isinstance(created.get("instance"), dict) else {}
        qr_source = connected.get("base64") or (created.get("qrcode") or {}).get("base64")
        status = _state_of(connected) or descriptor.get("status") or STATUS_CONNECTING

        logger.info(
            "instance created",
            extra={"extra_fields": safe_log_context(instance=instance_name, status=status)},
        )
        return {
            "instanceName": instance_name,
            "status": status,
            "qr": png_data_uri(qr_source),
            "pairingCode": connected.get("pairingCode"),
            "webhookUrl": webhook_url,
        }

    def get_status(self, instance_name: str) -> dict:
        """Connection state plus profile (when open) or QR (when not).

        Profile and QR are best-effort and degrade to None.

        Raises:
            EvolutionAPIError: If the connection-state call fails.
        """
        client = self.client_for(instance_name)
        state_body = client.connection_state(instance_name)
        status = _state_of(state_body)

        profile = None
        if status == STATUS_OPEN:
            profile = best_effort(
                lambda: client.fetch_profile(instance_name),
                what="fetch profile",
                instance=instance_name,
            )

        qr = None
        if status in (STATUS_CLOSE, STATUS_CONNECTING):
            qr_body = best_effort(
                lambda: client.fetch_qr(instance_name),
                what="fetch qr",
                instance=instance_name,
            )
            qr = png_data_uri((qr_body or {}).get("base64"))

        return {
            "instanceName": instance_name,
            "status": status,
            "qr": qr,
            "profile": profile,
            "serverUrl": client.config.base_url,
            "lastUpdate": utc_now().isoformat(),
        }

    def delete_instance(self, instance_name: str) -> None:
        """Logout then delete; evict the cached handle only if both succeed.

        Raises:
            EvolutionAPIError: If logout or delete fails (cache kept).
        """
        client = self.client_for(instance_name)
        client.logout_instance(instance_name)
        client.delete_instance(instance_name)
        self.evict(instance_name)
        logger.info(
            "instance deleted",
            extra={"extra_fields": safe_log_context(instance=instance_name)},
        )

    # ── messaging ────────────────────────────────────────────────────────────

    def _require_open(self, client: EvolutionClient, instance_name: str) -> None:
        status = _state_of(client.connection_state(instance_name))
        if status != STATUS_OPEN:
            raise InstanceNotConnectedError(instance_name, status)

    def send_message(self, instance_name: str, remote_jid: str, text: str) -> dict:
        """Send text if the instance is open.

        The status check and the send are separate calls; a disconnect in
        between surfaces as the send's own EvolutionAPIError.

        Raises:
            InstanceNotConnectedError: If status is not open (nothing sent).
            EvolutionAPIError: If the status check or the send fails.
        """
        client = self.client_for(instance_name)
        self._require_open(client, instance_name)
        return client.send_text(instance_name, remote_jid, text)

    def list_messages(
        self,
        instance_name: str,
        remote_jid: str | None = None,
        limit: int = 50,
    ) -> list[dict]:
        """Chat history for remote_jid, or the last 7 days across chats.

        Messages without text are dropped. Each message carries a scored
        sentiment.
        """
        client = self.client_for(instance_name)
        if remote_jid:
            records = client.find_messages(instance_name, remote_jid=remote_jid, limit=limit)
        else:
            since = utc_now() - timedelta(days=RECENT_DAYS)
            records = client.find_messages(
                instance_name,
                since_epoch=int(since.timestamp()),
                limit=RECENT_LIMIT,
            )

        formatted = []
        for record in records:
            msg = normalize_message(record)
            if not msg.text:
                continue
            item = msg.to_dict()
            item["sentiment"] = sentiment_score(msg.text).as_dict()
            formatted.append(item)
        return formatted

    def chat_overview(self, instance_name: str, days: int = RECENT_DAYS) -> list[dict]:
        """Recent chats with per-chat average sentiment score.

        Raises:
            InstanceNotConnectedError: If status is not open.
        """
        client = self.client_for(instance_name)
        self._require_open(client, instance_name)

        since = utc_now() - timedelta(days=days)
        records = client.find_messages(
            instance_name, since_epoch=int(since.timestamp()), limit=RECENT_LIMIT
        )

        chats: dict[str, dict] = {}
        for record in records:
            msg = normalize_message(record)
            if not msg.text or not msg.remote_jid:
                continue
            chat = chats.setdefault(
                msg.remote_jid,
                {"id": msg.remote_jid, "name": msg.push_name, "messages": [], "scores": []},
            )
            if msg.push_name and not msg.from_me:
                chat["name"] = msg.push_name
            scored = sentiment_score(msg.text)
            chat["messages"].append(msg)
            if not msg.from_me:
                chat["scores"].append(scored.score)

        overview = []
        for chat in chats.values():
            messages = sorted(
                chat["messages"],
                key=lambda m: m.timestamp.timestamp() if m.timestamp else 0,
            )
            last = messages[-1]
            scores = chat["scores"]
            avg = round(sum(scores) / len(scores), 4) if scores else 0.0
            if avg > SCORE_THRESHOLD:
                label = "positive"
            elif avg < -SCORE_THRESHOLD:
                label = "negative"
            else:
                label = "neutral"
            overview.append(
                {
                    "id": chat["id"],
                    "name": chat["name"] or chat["id"],
                    "messageCount": len(messages),
                    "lastMessage": last.to_dict(),
                    "sentiment": {
                        "sentiment": label,
                        "score": avg,
                        "confidence": round(min(0.95, 0.6 + abs(avg) * 0.4), 4),
                    },
                }
            )

        overview.sort(key=lambda c: c["lastMessage"]["timestamp"] or "", reverse=True)
        return overview
