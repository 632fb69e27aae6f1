"""
Gmail IMAP mailbox client.

Uses the Gmail IMAP extensions:
- X-GM-MSGID: stable message id, used as the queue item id
- X-GM-LABELS: label read/write via UID STORE

Each public call opens its own connection; invocations are short-lived and
IMAP sessions do not survive between them anyway.
"""

import email
import imaplib
import re
from contextlib import contextmanager
from email import policy
from email.message import EmailMessage
from email.utils import parsedate_to_datetime
from typing import Iterator, Optional

import structlog

from inbox_relay.exceptions import (
    ConfigurationError,
    ItemNotFoundError,
    LabelNotFoundError,
    MailboxError,
)
from inbox_relay.mailbox.base_client import MailboxClient, MailMessage
from inbox_relay.models.queue_models import utcnow

logger = structlog.get_logger(__name__)

_FOLDER_LINE = re.compile(r'^\((?P<flags>[^)]*)\)\s+"(?P<delim>[^"]*)"\s+(?P<name>.+)$')
_MSGID = re.compile(rb"X-GM-MSGID (\d+)")

# Gmail system folders are not user labels
_SYSTEM_PREFIX = "[Gmail]"


def parse_folder_line(line: bytes) -> Optional[tuple[str, set[str]]]:
    text = line.decode("utf-8", errors="replace")
    match = _FOLDER_LINE.match(text)
    if not match:
        return None

    flags = {token.strip() for token in match.group("flags").split() if token.strip()}
    raw_name = match.group("name").strip()
    if raw_name.startswith('"') and raw_name.endswith('"'):
        name = raw_name[1:-1].replace(r"\\", "\\").replace(r'\"', '"')
    else:
        name = raw_name
    return name, flags


def quote_label(label: str) -> str:
    escaped = label.replace("\\", "\\\\").replace('"', r'\"')
    return f'"{escaped}"'


def parse_uid_search_data(data: object) -> list[str]:
    if not isinstance(data, list) or not data or not data[0]:
        return []
    raw = data[0]
    if isinstance(raw, bytes):
        return [uid.decode("ascii", errors="ignore") for uid in raw.split()]
    return [uid for uid in str(raw).split() if uid]


def extract_text_body(message: EmailMessage) -> str:
    """Prefer text/plain; fall back to a tag-stripped text/html part."""
    part = message.get_body(preferencelist=("plain", "html"))
    if part is None:
        return ""
    try:
        content = part.get_content()
    except (LookupError, UnicodeDecodeError):
        payload = part.get_payload(decode=True) or b""
        content = payload.decode("utf-8", errors="replace")
    if part.get_content_subtype() == "html":
        content = re.sub(r"<[^>]+>", " ", content)
        content = re.sub(r"[ \t]+", " ", content)
    return content.strip()


class ImapMailboxClient(MailboxClient):
    """Mailbox client for Gmail over IMAP."""

    def __init__(
        self,
        host: str,
        username: str,
        password: Optional[str],
        port: int = 993,
        folder: str = "INBOX",
        search: str = "UNSEEN",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.folder = folder
        self.search = search

    @contextmanager
    def _session(self) -> Iterator[imaplib.IMAP4_SSL]:
        if not self.username or not self.password:
            raise ConfigurationError("IMAP credentials are not configured")

        try:
            imap = imaplib.IMAP4_SSL(self.host, self.port)
            imap.login(self.username, self.password)
            status, data = imap.select(quote_label(self.folder))
            if status != "OK":
                raise MailboxError(f"Cannot select folder {self.folder}", details={"response": str(data)})
        except (imaplib.IMAP4.error, OSError) as e:
            raise MailboxError(f"IMAP connection failed: {e}") from e

        try:
            yield imap
        finally:
            try:
                imap.logout()
            except (imaplib.IMAP4.error, OSError):
                logger.debug("IMAP logout failed", host=self.host)

    def fetch_candidates(self, limit: int) -> list[MailMessage]:
        with self._session() as imap:
            status, data = imap.uid("SEARCH", None, self.search)
            if status != "OK":
                raise MailboxError("IMAP search failed", details={"search": self.search})
            uids = parse_uid_search_data(data)[:limit]

            messages = []
            for uid in uids:
                message = self._fetch_one(imap, uid)
                if message is not None:
                    messages.append(message)

        logger.info("Fetched candidate emails", count=len(messages), folder=self.folder)
        return messages

    def _fetch_one(self, imap: imaplib.IMAP4_SSL, uid: str) -> Optional[MailMessage]:
        status, data = imap.uid("FETCH", uid, "(X-GM-MSGID BODY.PEEK[])")
        if status != "OK" or not data or not isinstance(data[0], tuple):
            logger.warning("IMAP fetch returned no message", uid=uid)
            return None

        meta, raw = data[0]
        match = _MSGID.search(meta)
        if match is None:
            logger.warning("Message has no X-GM-MSGID", uid=uid)
            return None

        parsed = email.message_from_bytes(raw, policy=policy.default)
        try:
            received_at = parsedate_to_datetime(parsed["Date"]) if parsed["Date"] else utcnow()
        except (TypeError, ValueError):
            received_at = utcnow()

        return MailMessage(
            message_id=match.group(1).decode("ascii"),
            subject=str(parsed["Subject"] or ""),
            sender=str(parsed["From"] or ""),
            received_at=received_at,
            body=extract_text_body(parsed),
        )

    def list_labels(self) -> list[str]:
        with self._session() as imap:
            status, data = imap.list()
            if status != "OK" or data is None:
                raise MailboxError("IMAP LIST failed")

        labels = []
        for line in data:
            if not line:
                continue
            parsed = parse_folder_line(line)
            if parsed is None:
                continue
            name, flags = parsed
            if name.upper() == "INBOX" or name.startswith(_SYSTEM_PREFIX):
                continue
            if "\\Noselect" in flags:
                continue
            labels.append(name)
        return sorted(labels, key=str.lower)

    def _find_uid(self, imap: imaplib.IMAP4_SSL, message_id: str) -> str:
        status, data = imap.uid("SEARCH", None, "X-GM-MSGID", message_id)
        uids = parse_uid_search_data(data) if status == "OK" else []
        if not uids:
            raise ItemNotFoundError(f"Message {message_id} not found", details={"message_id": message_id})
        return uids[0]

    def _store_label(self, message_id: str, label: str, op: str) -> None:
        inventory = {name.casefold(): name for name in self.list_labels()}
        name = inventory.get(label.casefold())
        if name is None:
            raise LabelNotFoundError(f"Label '{label}' does not exist", details={"label": label})

        with self._session() as imap:
            uid = self._find_uid(imap, message_id)
            status, data = imap.uid("STORE", uid, op, f"({quote_label(name)})")
            if status != "OK":
                raise MailboxError(
                    f"Failed to update label {name}",
                    details={"message_id": message_id, "response": str(data)},
                )
        logger.info("Label updated", message_id=message_id, label=name, op=op)

    def apply_label(self, message_id: str, label: str) -> None:
        self._store_label(message_id, label, "+X-GM-LABELS")

    def remove_label(self, message_id: str, label: str) -> None:
        self._store_label(message_id, label, "-X-GM-LABELS")

    def mark_processed(self, message_id: str) -> None:
        # The default search is UNSEEN, so \Seen takes the message out of it
        with self._session() as imap:
            uid = self._find_uid(imap, message_id)
            status, data = imap.uid("STORE", uid, "+FLAGS.SILENT", r"(\Seen)")
            if status != "OK":
                raise MailboxError(
                    "Failed to mark message processed",
                    details={"message_id": message_id, "response": str(data)},
                )
