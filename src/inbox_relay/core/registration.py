"""Registration handshake with the Hub and channel connectivity test."""

import structlog

from inbox_relay.core.services import RelayServices
from inbox_relay.models.protocol_models import DispatchResult, RegistrationResult
from inbox_relay.models.queue_models import RuntimeConfig, utcnow

logger = structlog.get_logger(__name__)


class Registrar:
    """
    Announces this instance so the Hub can route decisions back.

    Two paths, both best effort:
    - a REGISTER message on the chat channel (read by the Hub)
    - a direct JSON POST to hub_url when one is configured
    """

    def __init__(self, services: RelayServices):
        self.services = services
        self.config_store = services.stores.config
        self.audit = services.stores.audit

    def register(self, config: RuntimeConfig) -> RegistrationResult:
        """
        Register this instance. Re-registering overwrites registered_at.

        Registration counts as done when either path was delivered.
        """
        if not config.callback_url:
            logger.warning("Callback URL not configured, not registering")
            skipped = DispatchResult(delivered=False, skipped=True, error="callback URL not configured")
            self.audit.record("REGISTER", result="skipped", notes=skipped.error)
            return RegistrationResult(channel=skipped)

        message = self.services.builder.register(config)
        channel = self.services.dispatcher.post(config.channel_url, message)

        hub = None
        if config.hub_url:
            hub = self.services.dispatcher.post_json(
                config.hub_url,
                {
                    "action": "register",
                    "email": config.account_email,
                    "instanceName": config.instance_name,
                    "webhookUrl": config.callback_url,
                },
                kind="hub",
            )

        registered = channel.delivered or bool(hub and hub.delivered)
        if registered:
            self.config_store.update(registered=True, registered_at=utcnow())

        self.audit.record(
            "REGISTER",
            details=config.callback_url,
            result="registered" if registered else "failed",
            notes=channel.error or (hub.error if hub else "") or "",
        )
        logger.info(
            "Registration attempted",
            instance=config.instance_name,
            channel_delivered=channel.delivered,
            hub_delivered=hub.delivered if hub else None,
        )
        return RegistrationResult(channel=channel, hub=hub, registered=registered)

    def test_channel(self, config: RuntimeConfig) -> DispatchResult:
        """Post a TEST_CHAT_CONNECTION probe on the channel."""
        if not config.channel_url:
            return DispatchResult(delivered=False, skipped=True, error="channel URL not configured")

        result = self.services.dispatcher.post(config.channel_url, self.services.builder.test_connection(config))
        self.audit.record("TEST_CHANNEL", result="delivered" if result.delivered else "failed", notes=result.error or "")
        return result
