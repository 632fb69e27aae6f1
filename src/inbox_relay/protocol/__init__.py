"""
Channel and webhook protocol.

- codec.py: header-line channel codec, webhook payload recognition, label parsing
- message_builder.py: Jinja2 rendering of message bodies
- text_utils.py: bounded item context
"""

from inbox_relay.protocol.codec import (
    VALID_ACTIONS,
    decode,
    encode,
    parse_labels,
    parse_webhook,
)
from inbox_relay.protocol.message_builder import MessageBuilder
from inbox_relay.protocol.text_utils import TRUNCATION_MARKER, bound_context

__all__ = [
    "VALID_ACTIONS",
    "decode",
    "encode",
    "parse_labels",
    "parse_webhook",
    "MessageBuilder",
    "TRUNCATION_MARKER",
    "bound_context",
]
