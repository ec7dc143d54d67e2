from delivery_bot.models.whatsapp_config import WhatsAppConfig
from delivery_bot.whatsapp.cloud_provider import parse_cloud_webhook
from delivery_bot.whatsapp.mock_provider import MockWhatsAppProvider

from tests.conftest import seed_tenant
from tests.fixtures_data import CLOUD_LOCATION_PAYLOAD, CLOUD_STATUS_PAYLOAD, CLOUD_TEXT_PAYLOAD


def test_parse_cloud_webhook_text_message():
    [message] = parse_cloud_webhook(CLOUD_TEXT_PAYLOAD)

    assert message["message_id"] == "wamid.TEXT1"
    assert message["from_number"] == "5511988887777"
    assert message["text"] == "oi"
    assert message["location"] is None
    assert message["contact_name"] == "Maria Silva"
    assert message["phone_number_id"] == "PN_1"


def test_parse_cloud_webhook_location_message():
    [message] = parse_cloud_webhook(CLOUD_LOCATION_PAYLOAD)

    assert message["message_type"] == "location"
    assert message["text"] == ""
    assert message["location"] == {"latitude": -23.561414, "longitude": -46.655881}


def test_parse_cloud_webhook_ignores_status_updates():
    assert parse_cloud_webhook(CLOUD_STATUS_PAYLOAD) == []


def test_mock_provider_parses_simple_payload():
    [message] = MockWhatsAppProvider().parse_webhook(
        {"message": {"id": "m1", "from": "5511", "text": " oi ", "location": {"latitude": "1.5", "longitude": 2}}}
    )
    assert message["text"] == "oi"
    assert message["location"] == {"latitude": 1.5, "longitude": 2.0}


def test_root_and_health(client):
    assert client.get("/").json() == {"status": "ok"}
    assert client.get("/health").json()["status"] == "ok"


def test_verify_webhook_rejects_wrong_token(client):
    response = client.get(
        "/webhook",
        params={"hub.mode": "subscribe", "hub.verify_token": "errado", "hub.challenge": "123"},
    )
    assert response.status_code == 403


def test_tenant_verify_uses_tenant_token(client, session_factory):
    db = session_factory()
    db.add(WhatsAppConfig(tenant_id=1, provider="cloud", verify_token="segredo", is_enabled=True))
    db.commit()
    db.close()

    ok = client.get(
        "/api/whatsapp/1/webhook",
        params={"hub.mode": "subscribe", "hub.verify_token": "segredo", "hub.challenge": "desafio"},
    )
    denied = client.get(
        "/api/whatsapp/1/webhook",
        params={"hub.mode": "subscribe", "hub.verify_token": "outro", "hub.challenge": "desafio"},
    )

    assert ok.status_code == 200
    assert ok.text == "desafio"
    assert denied.status_code == 403


def test_cloud_webhook_runs_a_turn(client, session_factory):
    db = session_factory()
    seed_tenant(db)
    db.close()

    response = client.post("/api/whatsapp/1/webhook", json=CLOUD_TEXT_PAYLOAD)

    body = response.json()
    assert response.status_code == 200
    assert body["status"] == "ok"
    assert body["state"] == "MENU"

    redelivered = client.post("/api/whatsapp/1/webhook", json=CLOUD_TEXT_PAYLOAD)
    assert redelivered.json() == {"status": "duplicate"}


def test_webhook_without_messages_is_ignored(client):
    response = client.post("/api/whatsapp/1/webhook", json=CLOUD_STATUS_PAYLOAD)
    assert response.json() == {"status": "ignored"}


def test_simulator_walks_the_menu(client, session_factory):
    db = session_factory()
    seed_tenant(db)
    db.close()

    def _send(texto=None, **extra):
        params = {"tenant_id": 1, "telefone": "5511900001111", **extra}
        if texto is not None:
            params["texto"] = texto
        return client.post("/simulator/mensagem", params=params).json()

    assert _send("oi")["estado"] == "NAME"
    assert _send("Carlos")["estado"] == "MENU"
    cardapio = _send("1")
    assert cardapio["estado"] == "ORDERING"
    assert "X-Burguer" in cardapio["respostas"][0]
    _send("x-salada")
    assert _send("finalizar")["estado"] == "ADDRESS"

    located = _send(latitude=-23.550520, longitude=-46.633308)
    assert located["estado"] == "ADDRESS_NUMBER"
    assert "R$ 5,00" in located["respostas"][0]


def test_chats_agent_reply_pauses_bot_and_reenable(client, session_factory):
    db = session_factory()
    seed_tenant(db)
    db.close()
    client.post("/simulator/mensagem", params={"tenant_id": 1, "telefone": "5511900002222", "texto": "oi"})

    chats = client.get("/api/whatsapp/chats", params={"tenant_id": 1}).json()
    assert len(chats) == 1
    chat = chats[0]
    assert chat["state"] == "NAME"
    assert chat["bot_enabled"] is True

    sent = client.post(f"/api/whatsapp/chats/{chat['id']}/messages", json={"text": "Oi, aqui é a Ana da loja"})
    assert sent.status_code == 200
    assert sent.json()["from_me"] is True

    messages = client.get(f"/api/whatsapp/chats/{chat['id']}/messages").json()
    assert [m["body"] for m in messages] == ["oi", "Oi, aqui é a Ana da loja"]

    paused = client.get("/api/whatsapp/chats", params={"tenant_id": 1}).json()[0]
    assert paused["bot_enabled"] is False

    enabled = client.post(f"/api/whatsapp/chats/{chat['id']}/bot", json={"enabled": True})
    assert enabled.json()["bot_enabled"] is True


def test_unknown_chat_is_404(client):
    assert client.get("/api/whatsapp/chats/999/messages").status_code == 404
