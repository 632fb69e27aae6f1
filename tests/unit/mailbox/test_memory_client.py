"""
Unit tests for MemoryMailboxClient.
"""

from datetime import datetime, timezone

import pytest

from inbox_relay.exceptions import ItemNotFoundError, LabelNotFoundError
from inbox_relay.mailbox.base_client import MailMessage


def test_fetch_candidates_oldest_first(mailbox):
    assert [m.message_id for m in mailbox.fetch_candidates(10)] == ["msg-1", "msg-2", "msg-3"]


def test_fetch_candidates_respects_limit(mailbox):
    assert [m.message_id for m in mailbox.fetch_candidates(2)] == ["msg-1", "msg-2"]


def test_processed_messages_are_not_candidates(mailbox):
    mailbox.mark_processed("msg-1")

    assert mailbox.is_processed("msg-1")
    assert [m.message_id for m in mailbox.fetch_candidates(10)] == ["msg-2", "msg-3"]


def test_apply_label_resolves_case_insensitively(mailbox):
    mailbox.apply_label("msg-1", "work")
    mailbox.apply_label("msg-1", "WORK")

    assert mailbox.labels_for("msg-1") == ["Work"]


def test_apply_unknown_label(mailbox):
    with pytest.raises(LabelNotFoundError):
        mailbox.apply_label("msg-1", "Bogus")


def test_apply_to_unknown_message(mailbox):
    with pytest.raises(ItemNotFoundError):
        mailbox.apply_label("msg-99", "Work")


def test_remove_label(mailbox):
    mailbox.apply_label("msg-1", "Work")
    mailbox.apply_label("msg-1", "Receipts")

    mailbox.remove_label("msg-1", "work")

    assert mailbox.labels_for("msg-1") == ["Receipts"]


def test_add_message_and_label(mailbox):
    mailbox.add_label("Travel")
    mailbox.add_message(MailMessage(message_id="msg-0", received_at=datetime(2024, 1, 1, tzinfo=timezone.utc)))

    mailbox.apply_label("msg-0", "Travel")

    assert mailbox.fetch_candidates(1)[0].message_id == "msg-0"
    assert "Travel" in mailbox.list_labels()
