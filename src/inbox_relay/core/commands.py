"""Command dispatch for label inventory and manual label operations."""

from typing import Any

import structlog

from inbox_relay.core.resolution import Resolver
from inbox_relay.core.services import RelayServices
from inbox_relay.exceptions import LabelNotFoundError, MailboxError, UnknownCommandError
from inbox_relay.models.enums import Command
from inbox_relay.models.queue_models import RuntimeConfig
from inbox_relay.protocol.codec import parse_labels

logger = structlog.get_logger(__name__)

VALID_COMMANDS = [command.value for command in Command]


class CommandDispatcher:
    """
    Executes control commands.

    Payload shape: {"command": "...", "emailId": "...", "labels": "..."}.
    The result is always a dict with a "success" key; nothing is raised.
    """

    def __init__(self, services: RelayServices, resolver: Resolver | None = None):
        self.services = services
        self.mailbox = services.mailbox
        self.audit = services.stores.audit
        self.resolver = resolver or Resolver(services)

    def execute(self, payload: Any, config: RuntimeConfig | None = None) -> dict:
        if not isinstance(payload, dict):
            payload = {}
        raw = payload.get("command")
        try:
            command = self._parse_command(raw)
        except UnknownCommandError as e:
            logger.warning("Unknown command", command=e.command)
            return {"success": False, "error": e.message, "validCommands": e.valid_commands}

        try:
            if config is None:
                config = self.services.load_config()
            if command == Command.GET_LABELS:
                response = {"success": True, "labels": self.mailbox.list_labels()}
            elif command == Command.SYNC_LABELS:
                response = self._sync_labels(config)
            else:
                response = self._label_operation(command, payload)
        except MailboxError as e:
            logger.error("Command failed", command=command.value, error=e.message)
            response = {"success": False, "error": e.message}
        except Exception as e:
            logger.error("Command failed", command=command.value, error=str(e), exc_info=True)
            response = {"success": False, "error": f"{type(e).__name__}: {e}"}

        response["command"] = command.value
        self.audit.record(
            "COMMAND",
            str(payload.get("emailId") or "SYSTEM"),
            details=command.value,
            result="ok" if response["success"] else "error",
            notes=response.get("error") or "",
        )
        return response

    @staticmethod
    def _parse_command(raw: Any) -> Command:
        try:
            return Command(str(raw).strip().upper())
        except ValueError:
            raise UnknownCommandError(raw, VALID_COMMANDS)

    def _sync_labels(self, config: RuntimeConfig) -> dict:
        labels = self.mailbox.list_labels()
        self.services.stores.config.save_label_inventory(labels)

        message = self.services.builder.label_response(labels, config)
        result = self.services.dispatcher.post(config.channel_url, message)
        logger.info("Label inventory synced", count=len(labels), posted=result.delivered)
        return {"success": True, "labels": labels, "posted": result.delivered}

    def _label_operation(self, command: Command, payload: dict) -> dict:
        item_id = payload.get("emailId")
        if not item_id:
            return {"success": False, "error": "emailId is required"}
        item_id = str(item_id)

        raw_labels = payload.get("labels")
        if isinstance(raw_labels, list):
            raw_labels = ",".join(str(label) for label in raw_labels)
        labels = parse_labels(raw_labels)

        if command == Command.APPLY_LABELS:
            applied, not_found = self.resolver.apply_labels(item_id, labels)
            return {"success": True, "emailId": item_id, "applied": applied, "notFoundLabels": not_found}

        removed, not_found = [], []
        for label in labels:
            try:
                self.mailbox.remove_label(item_id, label)
            except LabelNotFoundError:
                not_found.append(label)
                continue
            removed.append(label)
        return {"success": True, "emailId": item_id, "removed": removed, "notFoundLabels": not_found}
