"""
Line-oriented channel codec and webhook payload parsing.

Channel message layout (one message per POST):

    instanceTag:[itemId] MESSAGE_TYPE [status]
    <body...>

Only the first line is parsed; the body is the verbatim remainder, so colons
and newlines inside it are never mis-split. Messages not tied to an item use
"instanceTag: MESSAGE_TYPE".
"""

import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from inbox_relay.exceptions import ProtocolError, UnknownActionError
from inbox_relay.models.enums import MessageType, WebhookAction
from inbox_relay.models.protocol_models import (
    ChannelMessage,
    InboundDecision,
    WebhookPayload,
)

NONE_SENTINEL = "NONE"

VALID_ACTIONS = [action.value for action in WebhookAction]

_HEADER_PATTERN = re.compile(
    r"^(?P<tag>[^:\n]*[^:\s]):\s*"
    r"(?:\[(?P<item_id>[^\]]*)\]\s*)?"
    r"(?P<type>[A-Z][A-Z0-9_]*)"
    r"(?:\s+(?P<status>\S+))?\s*$"
)


def encode(message: ChannelMessage) -> str:
    """Render a ChannelMessage as header line + body."""
    if "\n" in message.instance_tag or ":" in message.instance_tag:
        raise ProtocolError("Instance tag may not contain ':' or newlines",
                            details={"instance_tag": message.instance_tag})
    if message.item_id and ("]" in message.item_id or "\n" in message.item_id):
        raise ProtocolError("Item id may not contain ']' or newlines",
                            details={"item_id": message.item_id})
    if not MessageType.is_known(message.message_type):
        raise ProtocolError(f"Unknown message type: {message.message_type}")

    header = f"{message.instance_tag}:"
    if message.item_id:
        header += f"[{message.item_id}] "
    else:
        header += " "
    header += message.message_type
    if message.status:
        header += f" {message.status}"

    return f"{header}\n{message.body}" if message.body else header


def decode(text: str) -> ChannelMessage:
    """
    Parse a channel message.

    Raises:
        ProtocolError: Malformed header or unknown message type
    """
    header, _, body = text.partition("\n")
    match = _HEADER_PATTERN.match(header.strip())
    if match is None:
        raise ProtocolError("Malformed channel header", details={"header": header[:200]})

    message_type = match.group("type")
    if not MessageType.is_known(message_type):
        raise ProtocolError(f"Unknown message type: {message_type}")

    return ChannelMessage(
        instance_tag=match.group("tag"),
        item_id=match.group("item_id") or None,
        message_type=message_type,
        status=match.group("status"),
        body=body,
    )


def parse_labels(text: str | None) -> list[str]:
    """
    Parse a comma-separated label decision.

    Whitespace is trimmed, empty tokens and the NONE sentinel (any case) are
    dropped, and repeats are removed case-insensitively keeping first order.

    Examples:
        >>> parse_labels("A, B, NONE, , C")
        ['A', 'B', 'C']
        >>> parse_labels("none")
        []
    """
    if not text:
        return []

    labels: list[str] = []
    seen: set[str] = set()
    for token in text.split(","):
        label = token.strip()
        if not label or label.upper() == NONE_SENTINEL:
            continue
        key = label.lower()
        if key in seen:
            continue
        seen.add(key)
        labels.append(label)
    return labels


def parse_webhook(payload: Any) -> InboundDecision:
    """
    Recognize an inbound webhook payload.

    Accepted shapes:
        {"action": "ping"}
        {"action": "update_labels", "emailId": "...", "labels": "L1, L2"}
        {"emailId": "...", "labels": "L1, L2"}   (legacy, action omitted)

    Raises:
        ProtocolError: update_labels without a labels field
        UnknownActionError: Any other shape
    """
    if not isinstance(payload, dict):
        raise UnknownActionError(None, VALID_ACTIONS)

    try:
        parsed = WebhookPayload.model_validate(payload)
    except PydanticValidationError as e:
        raise UnknownActionError(payload.get("action"), VALID_ACTIONS) from e

    labels = parsed.labels
    if isinstance(labels, list):
        labels = ", ".join(str(label) for label in labels)

    action = (parsed.action or "").strip().lower()

    if action == WebhookAction.PING.value:
        return InboundDecision(action=WebhookAction.PING, test_id=parsed.testId)

    if action == WebhookAction.UPDATE_LABELS.value:
        # An empty decision is spelled "NONE" or ""; a missing field is a broken reply
        if labels is None:
            raise ProtocolError(
                "update_labels requires a labels field",
                details={"emailId": parsed.emailId},
            )
        return InboundDecision(
            action=WebhookAction.UPDATE_LABELS,
            item_id=parsed.emailId or None,
            labels=labels,
            test_id=parsed.testId,
        )

    if not action and labels is not None:
        return InboundDecision(
            action=WebhookAction.UPDATE_LABELS,
            item_id=parsed.emailId or None,
            labels=labels,
            test_id=parsed.testId,
            legacy=True,
        )

    raise UnknownActionError(parsed.action, VALID_ACTIONS)
