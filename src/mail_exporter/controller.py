"""Top-level controller owning the mail session and running long operations."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

from .core.config import AppSettings, ExportSettings
from .core.interfaces import (
    ExportError,
    MailExporterError,
    MessageFormatter,
    NotConnectedError,
    OperationInProgressError,
    ParseError,
    SessionError,
    TemplateError,
)
from .core.models import (
    ExportProgress,
    ExportReport,
    PredicateDescriptor,
    SearchResult,
    SessionState,
)
from .export import (
    ExportPipeline,
    StructuredLayoutFormatter,
    TemplateFormatter,
    export_directory_name,
    load_template,
)
from .search import PredicateBinder, get_predicate, list_predicates
from .transport import MailSession

LOGGER = logging.getLogger(__name__)

SessionFactory = Callable[[], MailSession]
T = TypeVar("T")


def build_formatter(settings: ExportSettings) -> MessageFormatter:
    """Create the formatter for the configured export mode."""
    if settings.mode == "template":
        if settings.template_path is None:
            raise TemplateError("Template mode requires a template_path setting")
        return TemplateFormatter(load_template(settings.template_path))
    return StructuredLayoutFormatter()


class ExportController:
    """Coordinate connect, search and download against one optional session.

    Each operation runs on a worker thread while the caller awaits it. Only
    one operation may be in flight; starting another raises
    :class:`OperationInProgressError`.
    """

    def __init__(
        self,
        settings: AppSettings,
        *,
        session_factory: SessionFactory | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialise the controller; the save template is loaded here."""
        self._settings = settings
        self._session_factory = session_factory or (
            lambda: MailSession(settings.imap.mailbox)
        )
        self._clock = clock
        self._formatter = build_formatter(settings.export)
        self._session: MailSession | None = None
        self._result: SearchResult | None = None
        self._operation: str | None = None
        self._cancel = threading.Event()
        self.predicates: tuple[PredicateDescriptor, ...] = list_predicates()
        self.binder = PredicateBinder(self.predicates[0])
        self.progress: ExportProgress | None = None

    # State --------------------------------------------------------------------
    @property
    def session_state(self) -> SessionState:
        if self._session is None:
            return SessionState.DISCONNECTED
        return self._session.state

    @property
    def authenticated(self) -> bool:
        return self._session is not None and self._session.authenticated

    @property
    def result(self) -> SearchResult | None:
        return self._result

    @property
    def operation(self) -> str | None:
        return self._operation

    # Predicate selection ------------------------------------------------------
    def select_predicate(self, name: str) -> PredicateBinder:
        """Switch the active predicate, keeping editors when it is unchanged."""
        try:
            descriptor = get_predicate(name)
        except KeyError as exc:
            raise ParseError(exc.args[0]) from exc
        candidate = PredicateBinder(descriptor)
        if candidate != self.binder:
            LOGGER.debug("Selected predicate %s", name)
            self.binder = candidate
        return self.binder

    # Operations ---------------------------------------------------------------
    async def connect(
        self,
        password: str,
        *,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        use_tls: bool | None = None,
    ) -> None:
        """Authenticate a fresh session, replacing none that is live."""
        imap = self._settings.imap
        host = (host or imap.host or "").strip()
        port = port or imap.port
        username = (username or imap.username or "").strip()
        use_tls = imap.use_ssl if use_tls is None else use_tls
        if not username or not host:
            raise SessionError("A username and hostname are required to connect")

        with self._running("connect"):
            if self.authenticated:
                raise SessionError("Already connected; disconnect first")
            session = self._session_factory()
            try:
                await self._in_worker(
                    session.connect,
                    host,
                    port,
                    username,
                    password,
                    use_tls=use_tls,
                    timeout=imap.connect_timeout,
                )
            except asyncio.CancelledError:
                # The handshake may have completed after the caller gave up.
                await self._in_worker(session.disconnect)
                raise
            self._session = session
            self._result = None

    async def disconnect(self) -> None:
        """Release the session; does nothing when already disconnected."""
        with self._running("disconnect"):
            session, self._session = self._session, None
            self._result = None
            if session is not None:
                await self._in_worker(session.disconnect)

    async def search(
        self, name: str | None = None, values: Sequence[str | None] | None = None
    ) -> SearchResult:
        """Run the selected predicate; the previous result survives failures."""
        with self._running("search"):
            session = self._require_session()
            if name is not None:
                self.select_predicate(name)
            if values is not None:
                self.binder.fill(values)
            predicate = self.binder.instance()
            result = await self._in_worker(session.search, predicate)
            self._result = result
            return result

    async def download(
        self, on_progress: Callable[[ExportProgress], None] | None = None
    ) -> ExportReport:
        """Export every message of the last search result."""
        with self._running("download"):
            session = self._require_session()
            if not self._result:
                raise ExportError("Nothing to download; run a search first")
            destination = self._export_root(session)
            self._cancel.clear()
            self.progress = ExportProgress(done=0, total=len(self._result))
            loop = asyncio.get_running_loop()

            def report_progress(progress: ExportProgress) -> None:
                loop.call_soon_threadsafe(self._on_progress, progress, on_progress)

            pipeline = ExportPipeline(session, self._formatter)
            return await self._in_worker(
                pipeline.run,
                self._result.ids,
                destination,
                self._cancel,
                report_progress,
            )

    def cancel_download(self) -> bool:
        """Ask a running download to stop before its next message."""
        if self._operation != "download":
            return False
        LOGGER.info("Download cancellation requested")
        self._cancel.set()
        return True

    # Internal helpers ---------------------------------------------------------
    @contextmanager
    def _running(self, name: str) -> Iterator[None]:
        if self._operation is not None:
            raise OperationInProgressError(
                f"Cannot {name} while {self._operation} runs"
            )
        self._operation = name
        try:
            yield
        finally:
            self._operation = None

    async def _in_worker(
        self, func: Callable[..., T], /, *args: Any, **kwargs: Any
    ) -> T:
        """Run ``func`` on a worker thread and hold the busy guard until it ends.

        Cancelling the awaiting task cannot interrupt the thread, so the
        guard stays taken until the thread returns. A running download is
        asked to stop before its next message instead.
        """
        worker = asyncio.ensure_future(asyncio.to_thread(func, *args, **kwargs))
        try:
            return await asyncio.shield(worker)
        except asyncio.CancelledError:
            if self._operation == "download":
                self._cancel.set()
            LOGGER.info("Waiting for cancelled %s to finish", self._operation)
            await asyncio.wait({worker})
            if not worker.cancelled() and worker.exception() is not None:
                LOGGER.warning(
                    "Cancelled %s failed: %s", self._operation, worker.exception()
                )
            raise

    def _require_session(self) -> MailSession:
        if self._session is None or not self._session.authenticated:
            raise NotConnectedError("Connect to a mail server first")
        return self._session

    def _export_root(self, session: MailSession) -> Path:
        export = self._settings.export
        host = session.host if export.mode == "template" else None
        name = export_directory_name(session.username or "mail", host, self._clock())
        return Path(export.output_root).resolve() / name

    def _on_progress(
        self,
        progress: ExportProgress,
        callback: Callable[[ExportProgress], None] | None,
    ) -> None:
        self.progress = progress
        if callback is not None:
            callback(progress)


def describe_error(exc: BaseException) -> tuple[str, str]:
    """Return a ``(title, message)`` summary for any error."""
    if isinstance(exc, MailExporterError):
        return exc.summary()
    return "Error", str(exc) or type(exc).__name__


def describe_report(report: ExportReport, total: int) -> tuple[str, str]:
    """Return a ``(title, message)`` summary for a finished download."""
    title = f"Downloading Complete ({report.succeeded}/{total})"
    message = f"Emails saved to {report.path}\nFailed count: {report.failed}"
    return title, message


__all__ = [
    "ExportController",
    "build_formatter",
    "describe_error",
    "describe_report",
]
