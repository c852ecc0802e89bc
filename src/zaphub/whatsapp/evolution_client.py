"""HTTP client for the Evolution API WhatsApp gateway.

Security: NEVER log remote JIDs or message text. Only instance names,
paths, status codes and lengths.
"""

import os
from dataclasses import dataclass
from typing import Any

import requests

from zaphub.observability.correlation import outbound_headers
from zaphub.observability.logging import get_logger
from zaphub.observability.redaction import safe_log_context

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_HTTP_TIMEOUT = 10.0

# Events the gateway pushes to a webhook registered at instance creation
WEBHOOK_EVENTS = (
    "APPLICATION_STARTUP",
    "QRCODE_UPDATED",
    "CONNECTION_UPDATE",
    "MESSAGES_UPSERT",
    "MESSAGES_UPDATE",
    "SEND_MESSAGE",
)


class EvolutionAPIError(Exception):
    """Gateway call failed (transport error or non-2xx response)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class EvolutionConfig:
    base_url: str
    api_key: str
    timeout: float


def load_config() -> EvolutionConfig:
    """Read gateway config from environment.

    Env vars:
    - EVOLUTION_BASE_URL: Base URL (default http://localhost:8080)
    - EVOLUTION_API_KEY: API token sent as the apikey header
    - EVOLUTION_HTTP_TIMEOUT: Per-request timeout in seconds (default 10)
    """
    try:
        timeout = float(os.environ.get("EVOLUTION_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT))
    except ValueError:
        timeout = DEFAULT_HTTP_TIMEOUT

    return EvolutionConfig(
        base_url=os.environ.get("EVOLUTION_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        api_key=os.environ.get("EVOLUTION_API_KEY", ""),
        timeout=timeout,
    )


class EvolutionClient:
    """One method per gateway endpoint. Returns decoded JSON bodies."""

    def __init__(
        self,
        config: EvolutionConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config or load_config()
        self._http = session or requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.config.base_url}{path}"
        headers = {
            "Content-Type": "application/json",
            "apikey": self.config.api_key,
            **outbound_headers(),
        }

        try:
            response = self._http.request(
                method,
                url,
                json=payload,
                params=params,
                headers=headers,
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            logger.error(
                "evolution request failed",
                extra={
                    "extra_fields": safe_log_context(
                        method=method, path=path, error_type=type(e).__name__
                    )
                },
            )
            raise EvolutionAPIError(f"Evolution API unreachable: {type(e).__name__}") from e

        if not response.ok:
            logger.warning(
                "evolution request rejected",
                extra={
                    "extra_fields": safe_log_context(
                        method=method, path=path, status=response.status_code
                    )
                },
            )
            raise EvolutionAPIError(
                f"Evolution API Error: {response.status_code} - {response.reason}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise EvolutionAPIError("Evolution API returned a non-JSON body") from e

    # ── instances ────────────────────────────────────────────────────────────

    def health_check(self) -> bool:
        try:
            self._request("GET", "/")
            return True
        except EvolutionAPIError:
            return False

    def create_instance(self, instance_name: str, webhook_url: str | None = None) -> dict:
        payload: dict[str, Any] = {
            "instanceName": instance_name,
            "integration": "WHATSAPP-BAILEYS",
        }
        if webhook_url:
            payload["webhook"] = {"url": webhook_url, "events": list(WEBHOOK_EVENTS)}
        return self._request("POST", "/instance/create", payload)

    def connect_instance(self, instance_name: str) -> dict:
        return self._request("POST", f"/instance/connect/{instance_name}")

    def connection_state(self, instance_name: str) -> dict:
        return self._request("GET", f"/instance/connectionState/{instance_name}")

    def fetch_qr(self, instance_name: str) -> dict:
        body = self._request("GET", f"/instance/qr/{instance_name}")
        return {"qr": body.get("qr"), "base64": body.get("base64")}

    def fetch_profile(self, instance_name: str) -> dict:
        return self._request("GET", f"/chat/whatsappProfile/{instance_name}")

    def logout_instance(self, instance_name: str) -> dict:
        return self._request("DELETE", f"/instance/logout/{instance_name}")

    def delete_instance(self, instance_name: str) -> dict:
        return self._request("DELETE", f"/instance/delete/{instance_name}")

    def fetch_instances(self) -> list[dict]:
        body = self._request("GET", "/instance/fetchInstances")
        return body if isinstance(body, list) else [body]

    # ── messages ─────────────────────────────────────────────────────────────

    def find_messages(
        self,
        instance_name: str,
        *,
        remote_jid: str | None = None,
        since_epoch: int | None = None,
        limit: int = 50,
    ) -> list[dict]:
        where: dict[str, Any] = {}
        if remote_jid:
            where["key"] = {"remoteJid": remote_jid}
        if since_epoch is not None:
            where["messageTimestamp"] = {"$gte": since_epoch}
        body = self._request(
            "POST",
            f"/chat/findMessages/{instance_name}",
            {"where": where, "limit": limit},
        )
        messages = body.get("messages", []) if isinstance(body, dict) else body
        # Newer gateway versions page results under messages.records
        if isinstance(messages, dict):
            messages = messages.get("records", [])
        return messages or []

    def send_text(self, instance_name: str, remote_jid: str, text: str) -> dict:
        logger.info(
            "sending outbound message",
            extra={
                "extra_fields": safe_log_context(
                    instance=instance_name, text_len=len(text)
                )
            },
        )
        return self._request(
            "POST",
            f"/message/sendText/{instance_name}",
            {"number": remote_jid, "textMessage": {"text": text}},
        )
