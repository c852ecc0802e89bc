"""Logs written while handling webhooks must carry no phone numbers, JIDs or text."""

import logging

import pytest

from zaphub.observability.logging import JsonFormatter

PHONE = "5511987654321"
TEXT = "meu pedido chegou quebrado, péssimo"


class _Capture(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.setFormatter(JsonFormatter())
        self.lines: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.lines.append(self.format(record))


@pytest.fixture
def captured_logs():
    """Attach a capture handler to every zaphub logger (they do not propagate)."""
    handler = _Capture()
    loggers = [
        logging.getLogger(name)
        for name in list(logging.root.manager.loggerDict)
        if name.startswith("zaphub")
    ]
    for logger in loggers:
        logger.addHandler(handler)
    yield handler.lines
    for logger in loggers:
        logger.removeHandler(handler)


def _assert_clean(lines):
    assert lines, "expected at least one log line"
    joined = "\n".join(lines)
    assert PHONE not in joined
    assert "quebrado" not in joined


def test_evolution_webhook_logs(client, captured_logs):
    payload = {
        "event": "messages.upsert",
        "instance": "loja",
        "data": {
            "key": {"id": "M1", "remoteJid": f"{PHONE}@s.whatsapp.net", "fromMe": False},
            "pushName": "Ana",
            "message": {"conversation": TEXT},
            "messageTimestamp": 1700000000,
        },
    }

    assert client.post("/webhook", json=payload).status_code == 200
    _assert_clean(captured_logs)


def test_generic_ingestion_logs(client, captured_logs):
    webhook_id = client.post(
        "/webhooks/register",
        json={"clientId": "c1", "platform": "make", "url": "https://x"},
    ).json()["data"]["webhookId"]

    response = client.post(
        f"/webhooks/whatsapp/{webhook_id}", json={"from": f"+{PHONE}", "message": TEXT}
    )

    assert response.status_code == 200
    _assert_clean(captured_logs)


def test_send_message_logs(client, gateway, captured_logs):
    gateway.connection_state.return_value = {"instance": {"state": "open"}}
    gateway.send_text.return_value = {"key": {"id": "OUT"}}

    client.post(
        "/messages",
        json={"instanceName": "loja", "remoteJid": f"{PHONE}@s.whatsapp.net", "message": TEXT},
    )

    _assert_clean(captured_logs)
