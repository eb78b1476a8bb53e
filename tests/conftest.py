"""Shared fixtures: RFC822 builders and a scripted imaplib connection."""

from __future__ import annotations

import imaplib
from collections.abc import Callable, Iterable, Mapping
from email.message import EmailMessage
from unittest.mock import MagicMock

import pytest

from mail_exporter.transport import MailSession


def make_message(
    subject: str,
    *,
    sender: str = "Alice <alice@example.com>",
    to: str = "bob@example.com, carol@example.com",
    date: str = "Tue, 14 Oct 2025 09:30:00 +0000",
    text: str = "Hello world.",
    html: str | None = "<p>Hello <strong>world</strong></p>",
    attachments: Iterable[tuple[str, bytes]] = (),
) -> bytes:
    """Build RFC822 bytes with optional HTML alternative and attachments."""
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    message["Subject"] = subject
    message["Date"] = date
    message["Message-ID"] = "<1234@example.com>"
    message.set_content(text)
    if html is not None:
        message.add_alternative(html, subtype="html")
    for filename, payload in attachments:
        message.add_attachment(
            payload,
            maintype="application",
            subtype="octet-stream",
            filename=filename,
        )
    return message.as_bytes()


class ScriptedImap:
    """Build MagicMock connections answering SEARCH and FETCH from a mailbox."""

    def __init__(self, messages: Mapping[int, bytes]) -> None:
        self.messages = dict(messages)
        self.search_response: tuple[str, list[bytes]] | None = None
        self.failing_uids: set[int] = set()
        self.connections: list[MagicMock] = []

    def connection(self) -> MagicMock:
        connection = MagicMock()
        connection.login.return_value = ("OK", [b"Logged in"])
        connection.select.return_value = ("OK", [str(len(self.messages)).encode()])
        connection.uid.side_effect = self._uid
        self.connections.append(connection)
        return connection

    def factory(self) -> Callable[[str, int, bool, float], MagicMock]:
        return lambda host, port, use_tls, timeout: self.connection()

    def _uid(self, command: str, *args):
        if command == "SEARCH":
            if self.search_response is not None:
                return self.search_response
            ids = " ".join(str(uid) for uid in self.messages)
            return "OK", [ids.encode()]
        if command == "FETCH":
            uid = int(args[0])
            if uid in self.failing_uids:
                raise imaplib.IMAP4.error(f"FETCH {uid} failed")
            raw = self.messages.get(uid)
            if raw is None:
                return "NO", [None]
            envelope = f"{uid} (UID {uid} RFC822 {{{len(raw)}}}".encode()
            return "OK", [(envelope, raw), b")"]
        raise AssertionError(f"Unexpected IMAP command {command}")


@pytest.fixture
def mailbox() -> ScriptedImap:
    """Five messages with UIDs 101-105."""
    return ScriptedImap(
        {
            101 + offset: make_message(f"Message {offset + 1}")
            for offset in range(5)
        }
    )


@pytest.fixture
def session(mailbox: ScriptedImap) -> MailSession:
    """An authenticated session backed by the scripted mailbox."""
    mail_session = MailSession(connection_factory=mailbox.factory())
    mail_session.connect("imap.test", 993, "user@example.com", "secret", timeout=5)
    return mail_session
