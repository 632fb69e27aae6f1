"""
Message builder for channel posts.

Responsible for:
- Loading and rendering Jinja2 body templates
- Bounding item context before it is embedded
- Wrapping the rendered body in a ChannelMessage and encoding it
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import structlog
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from inbox_relay.models.enums import MessageType, WebhookAction
from inbox_relay.models.protocol_models import ChannelMessage
from inbox_relay.models.queue_models import QueueItem, RuntimeConfig
from inbox_relay.protocol import codec
from inbox_relay.protocol.text_utils import bound_context

logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"


class MessageBuilder:
    """
    Build encoded channel messages from queue items and runtime config.

    One template per message type lives in the templates directory.
    """

    TEMPLATES = {
        MessageType.REGISTER: "register.txt",
        MessageType.EMAIL_READY: "email_ready.txt",
        MessageType.CONFIRM_COMPLETE: "confirm_complete.txt",
        MessageType.LABEL_RESPONSE: "label_response.txt",
        MessageType.TEST_CHAT_CONNECTION: "test_connection.txt",
    }

    def __init__(
        self,
        templates_dir: Optional[Path] = None,
        context_char_limit: int = 10000,
    ):
        """
        Initialize message builder.

        Args:
            templates_dir: Directory containing body templates
            context_char_limit: Max characters of item context per message
        """
        self.templates_dir = Path(templates_dir or DEFAULT_TEMPLATES_DIR)
        self.context_char_limit = context_char_limit

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False,  # Plain-text chat messages
            undefined=StrictUndefined,
        )

        try:
            self.templates = {
                message_type: self.jinja_env.get_template(name)
                for message_type, name in self.TEMPLATES.items()
            }
            logger.info("Loaded message templates", templates_dir=str(self.templates_dir))
        except Exception as e:
            logger.error("Failed to load message templates", error=str(e))
            raise

    def _render(
        self,
        message_type: MessageType,
        config: RuntimeConfig,
        item_id: Optional[str] = None,
        status: Optional[str] = None,
        **context,
    ) -> str:
        body = self.templates[message_type].render(config=config, item_id=item_id, **context).strip()
        return codec.encode(
            ChannelMessage(
                instance_tag=config.instance_name,
                item_id=item_id,
                message_type=message_type.value,
                status=status,
                body=body,
            )
        )

    def email_ready(self, item: QueueItem, labels: list[str], config: RuntimeConfig) -> str:
        """EMAIL_READY: label inventory, item context and reply instructions."""
        return self._render(
            MessageType.EMAIL_READY,
            config,
            item_id=item.item_id,
            status=item.status.value,
            item=item,
            labels=labels,
            context=bound_context(item.context, self.context_char_limit),
            reply_action=WebhookAction.UPDATE_LABELS.value,
        )

    def confirm_complete(
        self,
        item_id: str,
        applied: list[str],
        not_found: list[str],
        config: RuntimeConfig,
    ) -> str:
        return self._render(
            MessageType.CONFIRM_COMPLETE,
            config,
            item_id=item_id,
            status="Complete",
            applied=applied,
            not_found=not_found,
        )

    def register(self, config: RuntimeConfig) -> str:
        return self._render(
            MessageType.REGISTER,
            config,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def label_response(self, labels: list[str], config: RuntimeConfig) -> str:
        return self._render(MessageType.LABEL_RESPONSE, config, labels=labels)

    def test_connection(self, config: RuntimeConfig) -> str:
        return self._render(
            MessageType.TEST_CHAT_CONNECTION,
            config,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
