"""
Domain exceptions for the inbox relay.

Core entry points (scheduler tick, webhook, commands) never let these escape:
they are caught at the seam and turned into structured results. The API layer
still maps anything that slips through to a JSON response.
"""


class RelayError(Exception):
    """
    Base exception for all relay errors.

    Carries an optional details dict for structured logging and responses.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(RelayError):
    """Raised when a required endpoint or credential is missing."""
    pass


class ProtocolError(RelayError):
    """Raised when a channel message or webhook payload cannot be decoded."""
    pass


class UnknownActionError(ProtocolError):
    """
    Raised for a webhook payload whose action is not recognized.

    Attributes:
        valid_actions: Actions the reconciler accepts
    """
    def __init__(self, action: str | None, valid_actions: list[str]):
        super().__init__(
            f"Unknown action: {action!r}",
            details={"action": action, "validActions": valid_actions},
        )
        self.action = action
        self.valid_actions = valid_actions


class UnknownCommandError(ProtocolError):
    """Raised for a command dispatch request naming an unknown command."""
    def __init__(self, command: str | None, valid_commands: list[str]):
        super().__init__(
            f"Unknown command: {command!r}",
            details={"command": command, "validCommands": valid_commands},
        )
        self.command = command
        self.valid_commands = valid_commands


class MailboxError(RelayError):
    """Base exception for mailbox (item source / label target) failures."""
    pass


class ItemNotFoundError(MailboxError):
    """Raised when a message id is unknown to the mailbox."""
    pass


class LabelNotFoundError(MailboxError):
    """Raised when a label is not part of the live label inventory."""
    pass
