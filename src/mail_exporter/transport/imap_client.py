"""IMAP mail session owning the single authenticated server connection."""

from __future__ import annotations

import imaplib
import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from types import TracebackType

from ..core.interfaces import (
    AuthError,
    ConnectTimeoutError,
    FetchError,
    NotConnectedError,
    SearchError,
    SessionError,
)
from ..core.models import MailMessage, PredicateInstance, SearchResult, SessionState
from ..ingestion.parser import EmailParser

LOGGER = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 6.0

IMAPConnection = imaplib.IMAP4 | imaplib.IMAP4_SSL
ConnectionFactory = Callable[[str, int, bool, float], IMAPConnection]

# Errors after which the connection can no longer be trusted.
_FATAL_ERRORS = (imaplib.IMAP4.abort, OSError)


def open_connection(
    host: str, port: int, use_tls: bool, timeout: float
) -> IMAPConnection:
    """Open a plain or TLS IMAP connection."""
    if use_tls:
        LOGGER.debug("Connecting to IMAP host %s:%s via SSL", host, port)
        return imaplib.IMAP4_SSL(host, port, timeout=timeout)
    LOGGER.debug("Connecting to IMAP host %s:%s without SSL", host, port)
    return imaplib.IMAP4(host, port, timeout=timeout)


class MailSession:
    """Authenticated IMAP session offering search and per-message fetch."""

    def __init__(
        self,
        mailbox: str = "INBOX",
        *,
        connection_factory: ConnectionFactory = open_connection,
        parser: EmailParser | None = None,
    ) -> None:
        """Initialise a disconnected session for ``mailbox``."""
        self.mailbox = mailbox
        self._connection_factory = connection_factory
        self._parser = parser or EmailParser()
        self._connection: IMAPConnection | None = None
        self._state = SessionState.DISCONNECTED
        self.host: str | None = None
        self.username: str | None = None

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> MailSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Ensure resources are released on context exit."""
        self.disconnect()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    # Public API ---------------------------------------------------------------
    def connect(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        *,
        use_tls: bool = True,
        timeout: float = CONNECT_TIMEOUT_SECONDS,
    ) -> None:
        """Authenticate against the server, waiting at most ``timeout`` seconds.

        The handshake runs on a worker thread. When the timeout expires the
        attempt is abandoned and the session returns to ``DISCONNECTED``; a
        handshake that completes afterwards is logged out in the background.
        """
        if self._state is not SessionState.DISCONNECTED:
            raise SessionError(f"Session is {self._state.value}; disconnect first")

        self._state = SessionState.CONNECTING
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="imap-connect")
        future = executor.submit(
            self._handshake, host, port, username, password, use_tls, timeout
        )
        executor.shutdown(wait=False)
        try:
            connection = future.result(timeout=timeout)
        except TimeoutError as exc:
            future.add_done_callback(_discard_late_connection)
            self._fail(f"no response from {host}:{port} within {timeout:g}s")
            raise ConnectTimeoutError(
                f"{timeout:g} seconds passed but still no response"
            ) from exc
        except AuthError as exc:
            self._fail(str(exc))
            raise
        except Exception as exc:  # pylint: disable=broad-except
            self._fail(str(exc))
            raise AuthError(str(exc) or type(exc).__name__) from exc

        self._connection = connection
        self.host = host
        self.username = username
        self._state = SessionState.AUTHENTICATED
        LOGGER.info("Authenticated as %s on %s", username, host)

    def search(self, predicate: PredicateInstance) -> SearchResult:
        """Return the UIDs matching ``predicate`` in server order."""
        connection = self._require_connection()
        criteria = predicate.criteria()
        LOGGER.debug("Searching %s with %s", self.mailbox, " ".join(criteria))
        try:
            if all(token.isascii() for token in criteria):
                arguments: list[str | bytes | None] = [None, *criteria]
            else:
                arguments = ["CHARSET", "UTF-8"]
                arguments.extend(token.encode("utf-8") for token in criteria)
            status, data = connection.uid(
                "SEARCH", *arguments  # type: ignore[arg-type]
            )
        except _FATAL_ERRORS as exc:
            self._abandon()
            raise SearchError(f"Connection lost during search: {exc}") from exc
        except imaplib.IMAP4.error as exc:
            raise SearchError(str(exc)) from exc
        if status != "OK":
            raise SearchError(f"Server answered {status} to SEARCH")

        raw_ids = data[0].split() if data and data[0] else []
        ids = tuple(int(uid) for uid in raw_ids)
        LOGGER.info(
            "Search %s matched %s message(s)", predicate.descriptor.name, len(ids)
        )
        return SearchResult(ids=ids, predicate_name=predicate.descriptor.name)

    def fetch(self, uid: int) -> MailMessage:
        """Retrieve and parse one message by UID."""
        connection = self._require_connection()
        uid_str = str(uid)
        LOGGER.debug("Fetching RFC822 payload for UID %s", uid_str)
        try:
            status, fetch_data = connection.uid("FETCH", uid_str, "(RFC822)")
        except _FATAL_ERRORS as exc:
            self._abandon()
            raise FetchError(f"Connection lost fetching UID {uid_str}: {exc}") from exc
        except imaplib.IMAP4.error as exc:
            raise FetchError(f"Failed to fetch message UID {uid_str}: {exc}") from exc
        if status != "OK":
            raise FetchError(f"Failed to fetch message UID {uid_str}")
        payload = _extract_rfc822(fetch_data)
        if payload is None:
            raise FetchError(f"No RFC822 payload returned for UID {uid_str}")
        return self._parser.parse(uid, payload)

    def disconnect(self) -> None:
        """Terminate the IMAP session; calling it again is a no-op."""
        connection = self._connection
        self._drop()
        if connection is None:
            return
        try:
            LOGGER.debug("Closing IMAP connection")
            connection.close()
        except (imaplib.IMAP4.error, OSError):  # pragma: no cover - server state
            LOGGER.debug("IMAP close raised; continuing with logout")
        finally:
            try:
                connection.logout()
            except (imaplib.IMAP4.error, OSError):  # pragma: no cover
                LOGGER.debug("IMAP logout raised; suppressing during shutdown")

    # Internal helpers ---------------------------------------------------------
    def _handshake(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool,
        timeout: float,
    ) -> IMAPConnection:
        connection = self._connection_factory(host, port, use_tls, timeout)
        try:
            LOGGER.debug("Authenticating as %s", username)
            connection.login(username, password)
            status, _ = connection.select(self.mailbox)
            if status != "OK":
                raise AuthError(f"Unable to select mailbox '{self.mailbox}'")
        except BaseException:
            _logout_quietly(connection)
            raise
        sock = getattr(connection, "sock", None)
        if sock is not None:
            # Only the handshake is bounded; search and fetch wait indefinitely.
            sock.settimeout(None)
        return connection

    def _require_connection(self) -> IMAPConnection:
        if self._connection is None or not self.authenticated:
            raise NotConnectedError("IMAP connection has not been established")
        return self._connection

    def _fail(self, reason: str) -> None:
        self._state = SessionState.FAILED
        LOGGER.warning("IMAP authentication failed: %s", reason)
        self._state = SessionState.DISCONNECTED

    def _drop(self) -> None:
        self._connection = None
        self._state = SessionState.DISCONNECTED

    def _abandon(self) -> None:
        """Drop a connection that failed mid-command and close its socket."""
        connection = self._connection
        self._drop()
        if connection is not None:
            LOGGER.warning("IMAP connection lost; session is now disconnected")
            _shutdown_quietly(connection)


def _discard_late_connection(future: Future[IMAPConnection]) -> None:
    if future.cancelled() or future.exception() is not None:
        return
    LOGGER.debug("Discarding IMAP connection that completed after the timeout")
    _logout_quietly(future.result())


def _logout_quietly(connection: IMAPConnection) -> None:
    try:
        connection.logout()
    except (imaplib.IMAP4.error, OSError):  # pragma: no cover - network dependent
        LOGGER.debug("IMAP logout raised; suppressing during shutdown")


def _shutdown_quietly(connection: IMAPConnection) -> None:
    try:
        connection.shutdown()
    except OSError:  # pragma: no cover - network dependent
        LOGGER.debug("IMAP socket shutdown raised; connection already gone")


def _extract_rfc822(fetch_data: list[tuple[bytes, bytes] | bytes]) -> bytes | None:
    """Extract RFC822 payload from ``imaplib`` response chunks."""
    for entry in fetch_data or []:
        if isinstance(entry, tuple) and len(entry) == 2:
            return entry[1]
    return None


__all__ = [
    "CONNECT_TIMEOUT_SECONDS",
    "ConnectionFactory",
    "MailSession",
    "open_connection",
]
