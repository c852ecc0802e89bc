"""Tests for /webhooks registration, ingestion and message routes."""

import re


def _register(client, client_id="c1", platform="make", url="https://x"):
    response = client.post(
        "/webhooks/register",
        json={"clientId": client_id, "platform": platform, "url": url},
    )
    assert response.status_code == 200
    return response.json()["data"]["webhookId"]


class TestRegister:
    def test_register(self, client):
        response = client.post(
            "/webhooks/register",
            json={"clientId": "c1", "platform": "make", "url": "https://x", "userRole": "admin"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert re.fullmatch(r"c1_\d+", body["data"]["webhookId"])
        assert body["data"]["status"] == "active"

    def test_missing_fields(self, client):
        response = client.post("/webhooks/register", json={"clientId": "c1"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "platform" in body["details"]
        assert "url" in body["details"]

    def test_delimiter_rejected(self, client):
        response = client.post(
            "/webhooks/register",
            json={"clientId": "a_b", "platform": "make", "url": "https://x"},
        )
        assert response.status_code == 400

    def test_list_registrations(self, client):
        webhook_id = _register(client)
        response = client.get("/webhooks/register", params={"clientId": "c1"})
        assert [w["id"] for w in response.json()["webhooks"]] == [webhook_id]

    def test_list_requires_client(self, client):
        response = client.get("/webhooks/list")
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestDelete:
    def test_delete(self, client):
        webhook_id = _register(client)

        response = client.delete(
            "/webhooks/list", params={"webhookId": webhook_id, "clientId": "c1"}
        )

        assert response.status_code == 200
        listed = client.get("/webhooks/list", params={"clientId": "c1"}).json()
        assert listed["total"] == 0

    def test_delete_foreign_is_404(self, client):
        webhook_id = _register(client)
        response = client.delete(
            "/webhooks/list", params={"webhookId": webhook_id, "clientId": "c2"}
        )
        assert response.status_code == 404


class TestInbound:
    def test_end_to_end(self, client):
        webhook_id = _register(client, "c1", "make", "https://x")

        response = client.post(
            f"/webhooks/whatsapp/{webhook_id}",
            json={"from": "+1555", "message": "obrigado pelo excelente atendimento"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["sentiment"] == "positive"
        assert data["processed"] is True

        listed = client.get("/webhooks/list", params={"clientId": "c1"}).json()
        assert listed["webhooks"][0]["messageCount"] == 1
        assert listed["webhooks"][0]["lastReceived"] is not None

    def test_unknown_webhook_404(self, client, store):
        webhook_id = _register(client)

        response = client.post(
            "/webhooks/whatsapp/c1_1", json={"from": "+1555", "message": "oi"}
        )

        assert response.status_code == 404
        assert response.json()["success"] is False
        assert store.get_webhook(webhook_id).message_count == 0

    def test_missing_message_400(self, client, store):
        webhook_id = _register(client)

        response = client.post(f"/webhooks/whatsapp/{webhook_id}", json={"from": "+1555"})

        assert response.status_code == 400
        assert store.get_webhook(webhook_id).message_count == 0


class TestStoredMessages:
    def test_pagination(self, client):
        webhook_id = _register(client)
        for text in ("um", "dois", "três"):
            client.post(f"/webhooks/whatsapp/{webhook_id}", json={"from": "+1", "message": text})

        body = client.get(
            "/webhooks/messages", params={"clientId": "c1", "limit": 2, "offset": 0}
        ).json()

        assert len(body["messages"]) == 2
        assert body["pagination"] == {"total": 3, "limit": 2, "offset": 0, "hasMore": True}

    def test_manual_insert(self, client):
        response = client.post(
            "/webhooks/messages",
            json={"clientId": "c5", "from": "+1", "message": "ótimo trabalho"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["sentiment"] == "positive"
        listed = client.get("/webhooks/messages", params={"clientId": "c5"}).json()
        assert listed["messages"][0]["platform"] == "manual"
        assert listed["messages"][0]["processed"] is True

    def test_manual_missing_fields(self, client):
        response = client.post("/webhooks/messages", json={"from": "+1"})
        assert response.status_code == 400
