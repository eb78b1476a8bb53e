"""Protocol interfaces and the exception hierarchy shared across components."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from .models import MailMessage, PredicateInstance, SearchResult

if TYPE_CHECKING:
    from .models import ExportReport


class MailExporterError(RuntimeError):
    """Base class for errors surfaced to the user."""

    title = "Error"

    def summary(self) -> tuple[str, str]:
        """Return a ``(title, message)`` pair suitable for display."""
        return self.title, str(self) or self.title


class SessionError(MailExporterError):
    """Raised when the mail session cannot complete an operation."""

    title = "Session Error"


class AuthError(SessionError):
    """The server rejected the connection or the credentials."""

    title = "Authentication Failed"


class ConnectTimeoutError(SessionError):
    """No response to the authentication handshake within the timeout."""

    title = "Authentication Timeout"


class SearchError(SessionError):
    """The server could not execute a search."""

    title = "Search Failed"


class FetchError(SessionError):
    """A single message could not be retrieved."""

    title = "Fetch Failed"


class NotConnectedError(SessionError):
    """An operation needed an authenticated session but none is open."""

    title = "Not Connected"


class ParseError(MailExporterError, ValueError):
    """A predicate argument could not be converted to its declared kind."""

    title = "Invalid Search Parameters"


class ExportError(MailExporterError):
    """Base class for export failures."""

    title = "Downloading Failed"


class WriteError(ExportError):
    """Writing a single exported message to disk failed."""


class ExportAbortedError(ExportError):
    """The export job stopped outside the per-message error region."""

    def __init__(self, message: str, report: ExportReport) -> None:
        super().__init__(message)
        self.report = report

    def summary(self) -> tuple[str, str]:
        title = f"{self.title} ({self.report.succeeded}/{self.report.total})"
        return title, str(self)


class TemplateError(MailExporterError):
    """The save template is missing, unreadable or malformed."""

    title = "Template Error"


class OperationInProgressError(MailExporterError):
    """Another long-running operation currently owns the session."""

    title = "Busy"


class MessageSource(Protocol):
    """Anything that can fetch a message by UID."""

    def fetch(self, uid: int) -> MailMessage:
        """Retrieve a single message."""
        raise NotImplementedError


class MailSessionProtocol(MessageSource, Protocol):
    """Operations offered by an authenticated mailbox session."""

    def search(self, predicate: PredicateInstance) -> SearchResult:
        """Return the UIDs matching ``predicate``."""
        raise NotImplementedError

    def disconnect(self) -> None:
        """Release network resources."""
        raise NotImplementedError


class MessageFormatter(Protocol):
    """Write one message beneath the export root."""

    def write(self, message: MailMessage, index: int, root: Path) -> Path:
        """Persist ``message`` and return the created file or folder."""
        raise NotImplementedError


__all__ = [
    "AuthError",
    "ConnectTimeoutError",
    "ExportAbortedError",
    "ExportError",
    "FetchError",
    "MailExporterError",
    "MailSessionProtocol",
    "MessageFormatter",
    "MessageSource",
    "NotConnectedError",
    "OperationInProgressError",
    "ParseError",
    "SearchError",
    "SessionError",
    "TemplateError",
    "WriteError",
]
