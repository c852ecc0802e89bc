"""Tests for webhook registration and inbound message ingestion (in-memory store)."""

import re
from unittest.mock import patch

import pytest

from zaphub.domain.replies import REPLIES
from zaphub.whatsapp.ingestion import (
    InvalidClientIdError,
    MissingFieldsError,
    WebhookNotFoundError,
    ingest_message,
    register_webhook,
    save_manual_message,
)


@pytest.fixture
def reg(store):
    return register_webhook(store, client_id="c1", platform="make", url="https://x")


class TestRegister:
    def test_id_and_defaults(self, store):
        reg = register_webhook(store, client_id="c1", platform="make", url="https://x")

        assert re.fullmatch(r"c1_\d+", reg.id)
        assert reg.name == "Make Webhook"
        assert reg.status == "active"
        assert reg.message_count == 0
        assert reg.ai_enabled is True

    def test_same_id_upserts(self, store):
        first = register_webhook(store, client_id="c1", platform="make", url="https://a", now_ms=1000)
        store.set_webhook_status(first.id, "inactive")

        second = register_webhook(
            store, client_id="c1", platform="zapier", url="https://b", now_ms=1000
        )

        assert second.id == first.id == "c1_1000"
        assert second.url == "https://b"
        assert second.platform == "zapier"
        assert second.status == "active"
        assert len(store.list_webhooks("c1")) == 1

    def test_missing_fields(self, store):
        with pytest.raises(MissingFieldsError) as exc:
            register_webhook(store, client_id="c1", platform="", url=None)
        assert exc.value.fields == ["platform", "url"]

    def test_delimiter_in_client_id_rejected(self, store):
        with pytest.raises(InvalidClientIdError):
            register_webhook(store, client_id="acme_br", platform="make", url="https://x")
        assert store.list_webhooks("acme_br") == []


class TestIngest:
    def test_end_to_end_positive(self, store, reg):
        result = ingest_message(
            store,
            reg.id,
            sender="+1555",
            body="obrigado pelo excelente atendimento",
        )

        assert result.message.sentiment == "positive"
        assert result.message.client_id == "c1"
        assert result.message.platform == "make"
        stored_reg = store.get_webhook(reg.id)
        assert stored_reg.message_count == 1
        assert stored_reg.last_received is not None

    def test_suggestion_stored_and_message_processed(self, store, reg):
        result = ingest_message(store, reg.id, sender="+1555", body="tive um problema")

        assert result.suggestion is not None
        assert result.suggestion.suggestion in REPLIES["negative"]
        assert result.suggestion.confidence == 0.8
        assert store.suggestions == [result.suggestion]
        assert store.get_message(result.message.id).processed is True

    def test_each_message_counts_once(self, store, reg):
        for _ in range(3):
            ingest_message(store, reg.id, sender="+1555", body="oi")
        assert store.get_webhook(reg.id).message_count == 3
        assert store.count_messages("c1") == 3

    def test_explicit_timestamp(self, store, reg):
        result = ingest_message(
            store, reg.id, sender="+1555", body="oi", timestamp="2026-01-02T03:04:05Z"
        )
        assert result.message.timestamp.isoformat() == "2026-01-02T03:04:05+00:00"

    @pytest.mark.parametrize("sender,body", [(None, "oi"), ("+1555", ""), ("", None)])
    def test_missing_fields_no_side_effects(self, store, reg, sender, body):
        with pytest.raises(MissingFieldsError):
            ingest_message(store, reg.id, sender=sender, body=body)
        assert store.get_webhook(reg.id).message_count == 0
        assert store.count_messages("c1") == 0

    def test_unknown_webhook(self, store, reg):
        with pytest.raises(WebhookNotFoundError):
            ingest_message(store, "c1_999", sender="+1555", body="oi")
        assert store.get_webhook(reg.id).message_count == 0
        assert store.count_messages("c1") == 0

    def test_inactive_webhook(self, store, reg):
        store.set_webhook_status(reg.id, "inactive")
        with pytest.raises(WebhookNotFoundError):
            ingest_message(store, reg.id, sender="+1555", body="oi")
        assert store.get_webhook(reg.id).message_count == 0

    def test_foreign_client_prefix(self, store, reg):
        # same numeric suffix, different client prefix
        foreign = "c2" + reg.id[len("c1"):]
        with pytest.raises(WebhookNotFoundError):
            ingest_message(store, foreign, sender="+1555", body="oi")

    def test_suggestion_failure_does_not_fail_ingestion(self, store, reg):
        with patch.object(store, "insert_suggestion", side_effect=RuntimeError("db down")):
            result = ingest_message(store, reg.id, sender="+1555", body="ótimo")

        assert result.suggestion is None
        assert store.get_message(result.message.id).processed is False
        assert store.get_webhook(reg.id).message_count == 1


class TestManualMessage:
    def test_saved_processed(self, store):
        msg = save_manual_message(store, client_id="c9", sender="+1", body="péssimo")
        assert msg.platform == "manual"
        assert msg.processed is True
        assert msg.sentiment == "negative"
        assert store.list_messages("c9", limit=10, offset=0)[0].id == msg.id

    def test_missing(self, store):
        with pytest.raises(MissingFieldsError) as exc:
            save_manual_message(store, client_id=None, sender="+1", body="x")
        assert exc.value.fields == ["clientId"]
