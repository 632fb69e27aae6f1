"""
Unit tests for the channel codec and webhook parsing.
"""

import pytest

from inbox_relay.exceptions import ProtocolError, UnknownActionError
from inbox_relay.models.enums import WebhookAction
from inbox_relay.models.protocol_models import ChannelMessage
from inbox_relay.protocol.codec import (
    VALID_ACTIONS,
    decode,
    encode,
    parse_labels,
    parse_webhook,
)


class TestEncode:
    def test_header_with_item_id_and_status(self):
        message = ChannelMessage(
            instance_tag="alpha",
            message_type="EMAIL_READY",
            item_id="42",
            status="Posted",
            body="hello",
        )

        assert encode(message) == "alpha:[42] EMAIL_READY Posted\nhello"

    def test_header_without_item_id(self):
        message = ChannelMessage(instance_tag="alpha", message_type="REGISTER", body="hi")

        assert encode(message) == "alpha: REGISTER\nhi"

    def test_empty_body_is_header_only(self):
        message = ChannelMessage(instance_tag="alpha", message_type="TEST_CHAT_CONNECTION")

        assert encode(message) == "alpha: TEST_CHAT_CONNECTION"

    def test_rejects_colon_in_instance_tag(self):
        message = ChannelMessage(instance_tag="al:pha", message_type="REGISTER")

        with pytest.raises(ProtocolError):
            encode(message)

    def test_rejects_bracket_in_item_id(self):
        message = ChannelMessage(instance_tag="alpha", message_type="EMAIL_READY", item_id="a]b")

        with pytest.raises(ProtocolError):
            encode(message)

    def test_rejects_unknown_message_type(self):
        message = ChannelMessage(instance_tag="alpha", message_type="SHOUT")

        with pytest.raises(ProtocolError):
            encode(message)


class TestDecode:
    def test_decode_full_header(self):
        message = decode("alpha:[42] CONFIRM_COMPLETE Complete\nApplied: Work")

        assert message.instance_tag == "alpha"
        assert message.item_id == "42"
        assert message.message_type == "CONFIRM_COMPLETE"
        assert message.status == "Complete"
        assert message.body == "Applied: Work"

    def test_body_colons_and_newlines_are_preserved(self):
        body = "Subject: Re: invoice\nTime: 10:30\n\n[not a header] EMAIL_READY"

        message = decode(f"alpha:[x-1] EMAIL_READY Posted\n{body}")

        assert message.body == body
        assert message.item_id == "x-1"

    def test_instance_tag_may_contain_spaces(self):
        message = decode("My Relay: REGISTER\nbody")

        assert message.instance_tag == "My Relay"
        assert message.item_id is None

    def test_test_types_are_accepted(self):
        assert decode("alpha: TEST_SOMETHING_NEW").message_type == "TEST_SOMETHING_NEW"

    def test_unknown_type_raises(self):
        with pytest.raises(ProtocolError):
            decode("alpha: SHOUT\nbody")

    def test_malformed_header_raises(self):
        with pytest.raises(ProtocolError):
            decode("no header here at all")

    def test_decode_inverts_encode(self):
        original = ChannelMessage(
            instance_tag="alpha",
            message_type="EMAIL_READY",
            item_id="18c2f",
            status="Posted",
            body="line one\nline: two",
        )

        assert decode(encode(original)) == original


class TestParseLabels:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("A, B, NONE, , C", ["A", "B", "C"]),
            ("none", []),
            ("", []),
            (None, []),
            ("Work, work , WORK", ["Work"]),
            ("  Receipts  ", ["Receipts"]),
            ("Projects/Alpha,Nonesuch", ["Projects/Alpha", "Nonesuch"]),
        ],
    )
    def test_parse_labels(self, text, expected):
        assert parse_labels(text) == expected


class TestParseWebhook:
    def test_ping(self):
        decision = parse_webhook({"action": "ping", "testId": "t-1"})

        assert decision.action == WebhookAction.PING
        assert decision.test_id == "t-1"

    def test_update_labels(self):
        decision = parse_webhook({"action": "update_labels", "emailId": "msg-1", "labels": "Work, Personal"})

        assert decision.action == WebhookAction.UPDATE_LABELS
        assert decision.item_id == "msg-1"
        assert decision.labels == "Work, Personal"
        assert decision.legacy is False

    def test_action_is_case_insensitive(self):
        assert parse_webhook({"action": "UPDATE_LABELS", "emailId": "1", "labels": "Work"}).action == WebhookAction.UPDATE_LABELS

    def test_legacy_payload_without_action(self):
        decision = parse_webhook({"emailId": "msg-1", "labels": "Work"})

        assert decision.action == WebhookAction.UPDATE_LABELS
        assert decision.legacy is True

    def test_label_list_is_joined(self):
        decision = parse_webhook({"action": "update_labels", "emailId": "m", "labels": ["Work", "Receipts"]})

        assert parse_labels(decision.labels) == ["Work", "Receipts"]

    def test_numeric_email_id_is_coerced(self):
        decision = parse_webhook({"action": "update_labels", "emailId": 1789, "labels": "Work"})

        assert decision.item_id == "1789"

    def test_unknown_action_lists_valid_actions(self):
        with pytest.raises(UnknownActionError) as exc_info:
            parse_webhook({"action": "delete_everything"})

        assert exc_info.value.valid_actions == VALID_ACTIONS
        assert exc_info.value.action == "delete_everything"

    @pytest.mark.parametrize("payload", [{}, [], "ping", None, {"emailId": "x"}])
    def test_unrecognized_shapes_raise(self, payload):
        with pytest.raises(UnknownActionError):
            parse_webhook(payload)


class TestParseWebhookLabelsField:
    def test_update_without_labels_field_is_rejected(self):
        with pytest.raises(ProtocolError) as exc_info:
            parse_webhook({"action": "update_labels", "emailId": "msg-1"})

        assert not isinstance(exc_info.value, UnknownActionError)
        assert exc_info.value.details == {"emailId": "msg-1"}

    def test_empty_labels_string_is_an_empty_decision(self):
        decision = parse_webhook({"action": "update_labels", "emailId": "msg-1", "labels": ""})

        assert decision.labels == ""
        assert parse_labels(decision.labels) == []
