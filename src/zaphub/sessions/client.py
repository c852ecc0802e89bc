"""Simulated in-browser WhatsApp client.

Stands in for a browser-automation client: it produces the QR payload a
phone would scan and, once "scanned", the profile of the linked account.
The registry holds one per session and destroys it on delete.
"""

import os

from zaphub.whatsapp.qr import qr_service_url, session_qr_blob


def _server_url() -> str:
    return os.environ.get("PUBLIC_APP_URL", "http://localhost:8000").rstrip("/")


class SimulatedWhatsAppClient:
    """Per-session handle. All methods are cheap and side-effect free except destroy()."""

    def __init__(self, session_id: str, client_id: str) -> None:
        self.session_id = session_id
        self.client_id = client_id
        self.destroyed = False

    def qr_payload(self, timestamp_ms: int) -> str:
        blob = session_qr_blob(
            session_id=self.session_id,
            client_id=self.client_id,
            timestamp_ms=timestamp_ms,
            server=_server_url(),
        )
        return qr_service_url(blob)

    def profile(self) -> dict:
        """Account metadata shown once the scan is confirmed."""
        return {
            "id": f"{self.client_id}@c.us",
            "pushName": f"Usuário {self.client_id}",
            "name": f"Usuário {self.client_id}",
            "phone": "+55 11 99999-9999",
        }

    def webhook_config(self) -> dict:
        return {
            "webhooks": [f"{_server_url()}/webhook/whatsapp"],
            "messageLimitDays": 7,
        }

    def destroy(self) -> None:
        self.destroyed = True
