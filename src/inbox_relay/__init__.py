"""
Inbox Relay

Coordinates label decisions for a mailbox with an external oracle over a
chat channel: one email in flight at a time, decisions returned through a
webhook and applied as mailbox labels.
"""

__version__ = "0.1.0"
