"""Outbound channel transport."""

from inbox_relay.channel.dispatcher import ChannelDispatcher

__all__ = ["ChannelDispatcher"]
