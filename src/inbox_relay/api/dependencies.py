"""
FastAPI dependency injection for the inbox relay.

Provides singleton instances of the settings and the service container.
Memory-backed stores only stay consistent across requests because the
container is cached here.
"""

from functools import lru_cache

from inbox_relay.config import Settings, settings
from inbox_relay.core.services import RelayServices, build_services


@lru_cache()
def get_settings() -> Settings:
    """
    Get settings singleton.

    Returns:
        Settings instance
    """
    return settings


@lru_cache()
def get_services() -> RelayServices:
    """
    Get the service container singleton.

    Builds stores, mailbox client, channel dispatcher and message builder
    once per process. Tests override this dependency.

    Returns:
        RelayServices instance
    """
    return build_services(get_settings())
