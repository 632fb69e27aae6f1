"""
Integration tests for the FastAPI application.

These tests use TestClient against in-process stores, mailbox and a mocked
channel endpoint; no running services are required.
"""

from unittest.mock import Mock

from inbox_relay.protocol.codec import decode


def test_root_endpoint(client):
    response = client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["webhook"] == "/webhook"
    assert "docs" in data


def test_webhook_status(client):
    response = client.get("/webhook")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["instance"] == "alpha"


def test_webhook_invalid_json_is_200(client):
    response = client.post("/webhook", content=b"{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 200
    assert response.json()["success"] is False
    assert "Invalid JSON" in response.json()["error"]


def test_webhook_ping(client):
    response = client.post("/webhook", json={"action": "ping"})

    assert response.status_code == 200
    assert response.json()["message"] == "pong"


def test_webhook_unknown_action_is_200(client):
    response = client.post("/webhook", json={"action": "explode"})

    assert response.status_code == 200
    assert response.json()["validActions"] == ["ping", "update_labels"]


def test_full_cycle(client, services, channel):
    tick = client.post("/scheduler/tick").json()
    assert tick["posted"] == "msg-1"

    response = client.post(
        "/webhook",
        json={"action": "update_labels", "emailId": "msg-1", "labels": "Work"},
    )

    data = response.json()
    assert data["success"] is True
    assert data["applied"] == ["Work"]
    assert data["nextItem"] == "msg-2"
    assert services.mailbox.labels_for("msg-1") == ["Work"]
    assert [decode(text).message_type for text in channel.messages] == [
        "EMAIL_READY",
        "CONFIRM_COMPLETE",
        "EMAIL_READY",
    ]

    queue = client.get("/queue").json()
    assert queue["counts"] == {"Queued": 1, "Posted": 1, "Error": 0}
    assert [item["item_id"] for item in queue["items"]] == ["msg-2", "msg-3"]


def test_scheduler_apply(client, services):
    client.post("/scheduler/tick")
    services.stores.queue.set_labels("msg-2", "Receipts")
    services.stores.config.update(rate_limit_ms=0)

    data = client.post("/scheduler/apply").json()

    assert data["processed"] == 1
    assert services.mailbox.labels_for("msg-2") == ["Receipts"]


def test_command_endpoint(client):
    response = client.post("/command", json={"command": "GET_LABELS"})

    assert response.status_code == 200
    assert response.json()["labels"] == ["Work", "Personal", "Receipts"]


def test_command_unknown_is_200(client):
    response = client.post("/command", json={"command": "NOPE"})

    assert response.status_code == 200
    assert "validCommands" in response.json()


def test_register_persists_overrides(client, services, channel):
    response = client.post("/register", json={"callbackUrl": "https://new.example.com/webhook"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    config = services.stores.config.load()
    assert config.callback_url == "https://new.example.com/webhook"
    assert config.registered is True
    assert "https://new.example.com/webhook" in decode(channel.messages[-1]).body


def test_register_without_body(client):
    assert client.post("/register").json()["success"] is True


def test_channel_test(client, channel):
    response = client.post("/channel/test")

    assert response.json()["success"] is True
    assert decode(channel.messages[-1]).message_type == "TEST_CHAT_CONNECTION"


def test_audit(client):
    client.post("/scheduler/tick")

    entries = client.get("/audit", params={"limit": 5}).json()["entries"]

    assert len(entries) <= 5
    assert entries[0]["action"] == "TICK"


def test_health_with_memory_store(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["services"]["store"] == "memory"
    assert data["services"]["channel"] == "configured"


def test_request_id_header(client):
    response = client.get("/webhook", headers={"X-Request-ID": "trace-123"})

    assert response.headers["X-Request-ID"] == "trace-123"


def test_health_redis_unreachable(client, test_settings, monkeypatch):
    test_settings.STORE_BACKEND = "redis"
    monkeypatch.setattr(
        "inbox_relay.persistence.redis_client.ping",
        lambda settings: "unreachable (ConnectionError)",
    )

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"
    assert response.json()["services"]["redis"] == "unreachable (ConnectionError)"


def test_webhook_store_outage_is_200(client, services, monkeypatch):
    monkeypatch.setattr(services, "load_config", Mock(side_effect=ConnectionError("store down")))

    response = client.post("/webhook", json={"action": "ping"})

    assert response.status_code == 200
    assert response.json() == {"success": False, "error": "ConnectionError: store down"}


def test_command_store_outage_is_200(client, services, monkeypatch):
    monkeypatch.setattr(services, "load_config", Mock(side_effect=ConnectionError("store down")))

    response = client.post("/command", json={"command": "GET_LABELS"})

    assert response.status_code == 200
    assert response.json()["success"] is False


def test_webhook_status_degrades_on_store_outage(client, services, monkeypatch):
    monkeypatch.setattr(services, "load_config", Mock(side_effect=ConnectionError("store down")))

    response = client.get("/webhook")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["instance"] == "alpha"


def test_webhook_without_labels_field_keeps_item(client, services):
    client.post("/scheduler/tick")

    response = client.post("/webhook", json={"action": "update_labels", "emailId": "msg-1"})

    assert response.status_code == 200
    assert response.json()["success"] is False
    assert services.stores.queue.get("msg-1") is not None
