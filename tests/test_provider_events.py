"""Tests for gateway event dispatch and Cloud API payload processing."""

from unittest.mock import patch

from zaphub.domain.replies import REPLIES
from zaphub.whatsapp.evolution_adapter import WebhookEvent, parse_envelope
from zaphub.whatsapp.provider_events import (
    dispatch,
    process_cloud_payload,
    process_provider_message,
)


def _record(text, from_me=False, mid="M1"):
    return {
        "key": {"id": mid, "remoteJid": "5511999999999@s.whatsapp.net", "fromMe": from_me},
        "message": {"conversation": text} if text is not None else {"audioMessage": {}},
        "messageTimestamp": 1700000000,
    }


class TestProcessProviderMessage:
    def test_urgent_and_negative(self):
        flags = process_provider_message("loja", _record("URGENTE: problema no pedido"))
        assert flags == ["urgent", "negative"]

    def test_positive_has_no_flags(self):
        assert process_provider_message("loja", _record("obrigado!")) == []

    def test_own_messages_not_flagged(self):
        assert process_provider_message("loja", _record("urgente", from_me=True)) == []

    def test_no_text_is_skipped(self):
        assert process_provider_message("loja", _record(None)) is None


class TestDispatch:
    def test_upsert_counts(self):
        envelope = parse_envelope(
            {
                "event": "messages.upsert",
                "instance": "loja",
                "data": {
                    "messages": [
                        _record("problema sério", mid="1"),
                        _record(None, mid="2"),
                        _record("bom dia", mid="3"),
                    ]
                },
            }
        )

        result = dispatch(envelope)

        assert result.event is WebhookEvent.MESSAGES_UPSERT
        assert result.processed == 2
        assert result.skipped == 1
        assert result.failed == 0
        assert result.flags == ["negative"]

    def test_per_message_failure_is_counted_not_raised(self):
        envelope = parse_envelope(
            {"event": "messages.upsert", "data": {"messages": [_record("a"), _record("b")]}}
        )
        with patch(
            "zaphub.whatsapp.provider_events.sentiment_tag",
            side_effect=[RuntimeError("boom"), "neutral"],
        ):
            result = dispatch(envelope)

        assert result.failed == 1
        assert result.processed == 1

    def test_observability_events_do_nothing(self):
        for event in ("qrcode.updated", "connection.update", "messages.update", "application.startup"):
            result = dispatch(parse_envelope({"event": event, "data": {"state": "open"}}))
            assert (result.processed, result.skipped, result.failed) == (0, 0, 0)

    def test_unknown_event_acknowledged(self):
        result = dispatch(parse_envelope({"event": "presence.update", "data": {}}))
        assert result.event is WebhookEvent.UNKNOWN
        assert result.processed == 0


class TestCloudPayload:
    def _payload(self, text="obrigado pelo excelente atendimento"):
        return {
            "entry": [
                {
                    "changes": [
                        {
                            "value": {
                                "contacts": [{"profile": {"name": "Ana"}}],
                                "messages": [
                                    {
                                        "id": "wamid.1",
                                        "from": "5511999999999",
                                        "type": "text",
                                        "timestamp": "1700000000",
                                        "text": {"body": text},
                                    }
                                ],
                            }
                        }
                    ]
                }
            ]
        }

    def test_tags_and_suggests(self):
        result = process_cloud_payload(self._payload())

        assert result["messageId"] == "wamid.1"
        assert result["fromName"] == "Ana"
        assert result["sentiment"] == "positive"
        assert result["aiResponse"] in REPLIES["positive"]
        assert result["timestamp"].startswith("2023-11-14")
        assert result["processed"] is True

    def test_status_callback_returns_none(self):
        payload = {"entry": [{"changes": [{"value": {"statuses": [{"id": "x"}]}}]}]}
        assert process_cloud_payload(payload) is None

    def test_garbage_returns_none(self):
        assert process_cloud_payload({"object": "whatsapp_business_account"}) is None

    def test_non_dict_message_returns_none(self):
        payload = {"entry": [{"changes": [{"value": {"messages": ["oi"]}}]}]}
        assert process_cloud_payload(payload) is None

    def test_non_dict_text_reads_as_empty(self):
        payload = {"entry": [{"changes": [{"value": {"messages": [{"id": "m", "text": "oi"}]}}]}]}
        result = process_cloud_payload(payload)
        assert result["text"] == ""
        assert result["sentiment"] == "neutral"

    def test_non_object_payload_returns_none(self):
        assert process_cloud_payload(["entry"]) is None
