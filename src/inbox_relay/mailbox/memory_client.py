"""In-process mailbox for local runs and tests."""

import threading

from inbox_relay.exceptions import ItemNotFoundError, LabelNotFoundError
from inbox_relay.mailbox.base_client import MailboxClient, MailMessage


class MemoryMailboxClient(MailboxClient):
    """
    Mailbox held in memory.

    Every stored message stays a candidate until it is marked processed,
    mirroring an UNSEEN search on a real backend.
    """

    def __init__(self, labels: list[str] | None = None, messages: list[MailMessage] | None = None):
        self._labels: list[str] = list(labels or [])
        self._messages: dict[str, MailMessage] = {}
        self._applied: dict[str, list[str]] = {}
        self._processed: set[str] = set()
        self._lock = threading.Lock()
        for message in messages or []:
            self.add_message(message)

    def add_message(self, message: MailMessage) -> None:
        with self._lock:
            self._messages[message.message_id] = message
            self._applied.setdefault(message.message_id, [])

    def add_label(self, label: str) -> None:
        with self._lock:
            if label not in self._labels:
                self._labels.append(label)

    def labels_for(self, message_id: str) -> list[str]:
        with self._lock:
            return list(self._applied.get(message_id, []))

    def is_processed(self, message_id: str) -> bool:
        with self._lock:
            return message_id in self._processed

    def fetch_candidates(self, limit: int) -> list[MailMessage]:
        with self._lock:
            pending = [
                message for message_id, message in self._messages.items()
                if message_id not in self._processed
            ]
        pending.sort(key=lambda m: m.received_at)
        return pending[:limit]

    def list_labels(self) -> list[str]:
        with self._lock:
            return list(self._labels)

    def _check_message(self, message_id: str) -> None:
        if message_id not in self._messages:
            raise ItemNotFoundError(f"Message {message_id} not found", details={"message_id": message_id})

    def _resolve(self, message_id: str, label: str) -> str:
        self._check_message(message_id)
        for known in self._labels:
            if known.casefold() == label.casefold():
                return known
        raise LabelNotFoundError(f"Label '{label}' does not exist", details={"label": label})

    def apply_label(self, message_id: str, label: str) -> None:
        with self._lock:
            name = self._resolve(message_id, label)
            applied = self._applied[message_id]
            if name not in applied:
                applied.append(name)

    def remove_label(self, message_id: str, label: str) -> None:
        with self._lock:
            name = self._resolve(message_id, label)
            applied = self._applied[message_id]
            if name in applied:
                applied.remove(name)

    def mark_processed(self, message_id: str) -> None:
        with self._lock:
            self._check_message(message_id)
            self._processed.add(message_id)
