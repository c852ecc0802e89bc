"""Tests for instance lifecycle orchestration (gateway client mocked)."""

from unittest.mock import MagicMock

import pytest

from zaphub.whatsapp.evolution_client import EvolutionAPIError
from zaphub.whatsapp.instances import (
    GatewayUnavailableError,
    InstanceManager,
    InstanceNotConnectedError,
)


@pytest.fixture
def manager(gateway):
    return InstanceManager(client_factory=lambda _name: gateway)


def _record(mid, jid, text, ts, from_me=False, push_name="Ana"):
    return {
        "key": {"id": mid, "remoteJid": jid, "fromMe": from_me},
        "message": {"conversation": text} if text else {"imageMessage": {}},
        "messageTimestamp": ts,
        "pushName": push_name,
    }


class TestCreate:
    def test_create_and_connect(self, manager, gateway):
        gateway.create_instance.return_value = {"instance": {"instanceName": "loja"}}
        gateway.connect_instance.return_value = {"base64": "iVBOR", "pairingCode": "ABCD"}

        result = manager.create_instance("loja", "https://hooks.example")

        gateway.create_instance.assert_called_once_with("loja", "https://hooks.example")
        gateway.connect_instance.assert_called_once_with("loja")
        assert result["status"] == "connecting"
        assert result["qr"] == "data:image/png;base64,iVBOR"
        assert result["pairingCode"] == "ABCD"

    def test_status_from_descriptor(self, manager, gateway):
        gateway.create_instance.return_value = {"instance": {"status": "created"}}
        gateway.connect_instance.return_value = {}
        assert manager.create_instance("loja")["status"] == "created"

    def test_gateway_down(self, manager, gateway):
        gateway.health_check.return_value = False
        with pytest.raises(GatewayUnavailableError):
            manager.create_instance("loja")
        gateway.create_instance.assert_not_called()

    def test_connect_failure_propagates(self, manager, gateway):
        gateway.create_instance.return_value = {}
        gateway.connect_instance.side_effect = EvolutionAPIError("boom", 500)
        with pytest.raises(EvolutionAPIError):
            manager.create_instance("loja")


class TestStatus:
    def test_open_fetches_profile(self, manager, gateway):
        gateway.connection_state.return_value = {"instance": {"state": "open"}}
        gateway.fetch_profile.return_value = {"name": "Loja"}

        result = manager.get_status("loja")

        assert result["status"] == "open"
        assert result["profile"] == {"name": "Loja"}
        assert result["qr"] is None
        gateway.fetch_qr.assert_not_called()

    def test_profile_failure_degrades_to_none(self, manager, gateway):
        gateway.connection_state.return_value = {"instance": {"state": "open"}}
        gateway.fetch_profile.side_effect = EvolutionAPIError("nope", 500)

        result = manager.get_status("loja")

        assert result["status"] == "open"
        assert result["profile"] is None

    @pytest.mark.parametrize("state", ["close", "connecting"])
    def test_not_open_fetches_qr(self, manager, gateway, state):
        gateway.connection_state.return_value = {"instance": {"state": state}}
        gateway.fetch_qr.return_value = {"qr": "2@x", "base64": "iVBOR"}

        result = manager.get_status("loja")

        assert result["qr"] == "data:image/png;base64,iVBOR"
        assert result["profile"] is None
        gateway.fetch_profile.assert_not_called()

    def test_qr_failure_degrades_to_none(self, manager, gateway):
        gateway.connection_state.return_value = {"state": "close"}
        gateway.fetch_qr.side_effect = EvolutionAPIError("nope", 404)
        assert manager.get_status("loja")["qr"] is None

    def test_state_failure_propagates(self, manager, gateway):
        gateway.connection_state.side_effect = EvolutionAPIError("down", 502)
        with pytest.raises(EvolutionAPIError):
            manager.get_status("loja")


class TestDelete:
    def test_logout_then_delete_then_evict(self, manager, gateway):
        calls = MagicMock()
        gateway.logout_instance.side_effect = lambda n: calls("logout", n)
        gateway.delete_instance.side_effect = lambda n: calls("delete", n)
        manager.client_for("loja")

        manager.delete_instance("loja")

        assert [c.args for c in calls.call_args_list] == [("logout", "loja"), ("delete", "loja")]
        assert "loja" not in manager.cached_names()

    def test_logout_failure_keeps_cache(self, manager, gateway):
        gateway.logout_instance.side_effect = EvolutionAPIError("fail", 500)
        manager.client_for("loja")

        with pytest.raises(EvolutionAPIError):
            manager.delete_instance("loja")

        gateway.delete_instance.assert_not_called()
        assert "loja" in manager.cached_names()

    def test_delete_failure_keeps_cache(self, manager, gateway):
        gateway.delete_instance.side_effect = EvolutionAPIError("fail", 500)
        manager.client_for("loja")

        with pytest.raises(EvolutionAPIError):
            manager.delete_instance("loja")

        assert "loja" in manager.cached_names()


class TestSend:
    def test_sends_when_open(self, manager, gateway):
        gateway.connection_state.return_value = {"instance": {"state": "open"}}
        gateway.send_text.return_value = {"key": {"id": "OUT1"}}

        result = manager.send_message("loja", "5511@s.whatsapp.net", "oi")

        assert result == {"key": {"id": "OUT1"}}
        gateway.send_text.assert_called_once_with("loja", "5511@s.whatsapp.net", "oi")

    def test_rejects_without_sending_when_not_open(self, manager, gateway):
        gateway.connection_state.return_value = {"instance": {"state": "close"}}

        with pytest.raises(InstanceNotConnectedError) as exc:
            manager.send_message("loja", "5511@s.whatsapp.net", "oi")

        assert exc.value.status == "close"
        gateway.send_text.assert_not_called()

    def test_send_failure_after_check_is_authoritative(self, manager, gateway):
        gateway.connection_state.return_value = {"instance": {"state": "open"}}
        gateway.send_text.side_effect = EvolutionAPIError("disconnected", 400)

        with pytest.raises(EvolutionAPIError):
            manager.send_message("loja", "5511@s.whatsapp.net", "oi")


class TestMessages:
    def test_history_for_chat_drops_textless(self, manager, gateway):
        gateway.find_messages.return_value = [
            _record("1", "a@s.whatsapp.net", "obrigado!", 1700000000),
            _record("2", "a@s.whatsapp.net", None, 1700000001),
        ]

        messages = manager.list_messages("loja", remote_jid="a@s.whatsapp.net", limit=5)

        gateway.find_messages.assert_called_once_with(
            "loja", remote_jid="a@s.whatsapp.net", limit=5
        )
        assert [m["id"] for m in messages] == ["1"]
        assert messages[0]["sentiment"]["sentiment"] == "positive"
        assert messages[0]["timestamp"].startswith("2023-11-14")

    def test_recent_without_jid(self, manager, gateway):
        gateway.find_messages.return_value = []
        manager.list_messages("loja")
        kwargs = gateway.find_messages.call_args.kwargs
        assert "since_epoch" in kwargs
        assert kwargs["limit"] == 1000


class TestChatOverview:
    def test_requires_open(self, manager, gateway):
        gateway.connection_state.return_value = {"instance": {"state": "connecting"}}
        with pytest.raises(InstanceNotConnectedError):
            manager.chat_overview("loja")

    def test_groups_by_chat(self, manager, gateway):
        gateway.connection_state.return_value = {"instance": {"state": "open"}}
        gateway.find_messages.return_value = [
            _record("1", "a@s.whatsapp.net", "problema urgente", 1700000000),
            _record("2", "a@s.whatsapp.net", "vamos resolver", 1700000100, from_me=True),
            _record("3", "b@s.whatsapp.net", "ótimo, obrigado", 1700000200, push_name="Bia"),
        ]

        chats = manager.chat_overview("loja")

        assert [c["id"] for c in chats] == ["b@s.whatsapp.net", "a@s.whatsapp.net"]
        a = chats[1]
        assert a["messageCount"] == 2
        assert a["sentiment"]["sentiment"] == "negative"
        assert a["sentiment"]["score"] == pytest.approx(-0.6)
        assert a["lastMessage"]["id"] == "2"
        assert chats[0]["name"] == "Bia"
        assert chats[0]["sentiment"]["sentiment"] == "positive"
