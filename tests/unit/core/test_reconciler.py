"""
Unit tests for inbound reconciliation.
"""

from unittest.mock import Mock

import pytest

from inbox_relay.core.reconciler import InboundReconciler
from inbox_relay.core.scheduler import Scheduler
from inbox_relay.models.enums import InboundMode, QueueStatus


@pytest.fixture
def reconciler(services):
    return InboundReconciler(services)


@pytest.fixture
def queue(services):
    return services.stores.queue


@pytest.fixture
def in_flight(services, config):
    scheduler = Scheduler(services)
    scheduler.scan_inbox(config)
    item, _ = scheduler.post_next(config)
    return item


def test_ping(reconciler, config):
    response = reconciler.receive({"action": "ping", "testId": "t-42"}, config)

    assert response["success"] is True
    assert response["message"] == "pong"
    assert response["instance"] == "alpha"
    assert response["testId"] == "t-42"
    assert "timestamp" in response


def test_update_labels_by_email_id(services, reconciler, queue, config, in_flight):
    response = reconciler.receive(
        {"action": "update_labels", "emailId": "msg-1", "labels": "Work, Bogus"},
        config,
    )

    assert response["success"] is True
    assert response["matchedBy"] == "emailId"
    assert response["applied"] == ["Work"]
    assert response["notFoundLabels"] == ["Bogus"]
    assert response["nextItem"] == "msg-2"
    assert queue.get("msg-1") is None


def test_decision_for_queued_item_is_accepted(services, reconciler, config, in_flight):
    response = reconciler.receive({"action": "update_labels", "emailId": "msg-3", "labels": "Receipts"}, config)

    assert response["success"] is True
    assert services.mailbox.labels_for("msg-3") == ["Receipts"]


def test_unknown_email_id(reconciler, config):
    response = reconciler.receive({"action": "update_labels", "emailId": "msg-404", "labels": "Work"}, config)

    assert response["success"] is False
    assert response["error"] == "Email not found in queue"


def test_legacy_payload(reconciler, config, in_flight):
    response = reconciler.receive({"emailId": "msg-1", "labels": "Personal"}, config)

    assert response["success"] is True
    assert response["legacy"] is True


def test_missing_email_id_matches_in_flight_item(services, reconciler, config, in_flight):
    response = reconciler.receive({"action": "update_labels", "labels": "Work"}, config)

    assert response["success"] is True
    assert response["matchedBy"] == "inflight"
    assert response["emailId"] == "msg-1"
    assert services.mailbox.labels_for("msg-1") == ["Work"]


def test_missing_email_id_without_in_flight_item(reconciler, config):
    response = reconciler.receive({"action": "update_labels", "labels": "Work"}, config)

    assert response["success"] is False
    assert "No in-flight email" in response["error"]


def test_unknown_action(reconciler, config):
    response = reconciler.receive({"action": "explode"}, config)

    assert response["success"] is False
    assert response["validActions"] == ["ping", "update_labels"]


def test_repeated_webhook_is_idempotent(services, reconciler, queue, config, in_flight):
    payload = {"action": "update_labels", "emailId": "msg-1", "labels": "Work"}
    reconciler.receive(payload, config)

    response = reconciler.receive(payload, config)

    assert response["success"] is False
    assert services.mailbox.labels_for("msg-1") == ["Work"]
    assert len(queue.find_by_status(QueueStatus.POSTED)) == 1


def test_listener_mode_is_not_implemented(reconciler, config):
    config.inbound_mode = InboundMode.LISTENER

    response = reconciler.receive({"action": "ping"}, config)

    assert response["success"] is False
    assert "not implemented" in response["error"]


def test_unexpected_failure_becomes_error_body(services, config, monkeypatch):
    reconciler = InboundReconciler(services)
    webhook = reconciler.sources[InboundMode.WEBHOOK]
    monkeypatch.setattr(webhook.queue, "set_labels", Mock(side_effect=ConnectionError("store down")))

    response = reconciler.receive({"action": "update_labels", "emailId": "msg-1", "labels": "Work"}, config)

    assert response["success"] is False
    assert "store down" in response["error"]


def test_update_without_labels_field_keeps_item(services, reconciler, queue, config, in_flight):
    response = reconciler.receive({"action": "update_labels", "emailId": "msg-1"}, config)

    assert response["success"] is False
    assert response["emailId"] == "msg-1"
    assert "labels" in response["error"]
    assert queue.get("msg-1").status == QueueStatus.POSTED
    assert services.mailbox.is_processed("msg-1") is False
    assert queue.find_by_status(QueueStatus.QUEUED)[0].item_id == "msg-2"


def test_explicit_none_decision_still_resolves(services, reconciler, queue, config, in_flight):
    response = reconciler.receive({"action": "update_labels", "emailId": "msg-1", "labels": "NONE"}, config)

    assert response["success"] is True
    assert queue.get("msg-1") is None
    assert services.mailbox.is_processed("msg-1") is True


def test_config_load_failure_becomes_error_body(services, monkeypatch):
    monkeypatch.setattr(services, "load_config", Mock(side_effect=ConnectionError("store down")))

    response = InboundReconciler(services).receive({"action": "ping"})

    assert response["success"] is False
    assert response["error"] == "ConnectionError: store down"


def test_loads_config_when_not_given(services):
    response = InboundReconciler(services).receive({"action": "ping"})

    assert response["success"] is True
    assert response["instance"] == "alpha"
