"""Bulk export of search results with per-message failure tolerance."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from pathlib import Path

from ..core.interfaces import (
    ExportAbortedError,
    MailExporterError,
    MessageFormatter,
    MessageSource,
    WriteError,
)
from ..core.models import ExportProgress, ExportReport, ItemOutcome

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[ExportProgress], None]


class ExportPipeline:
    """Fetch each message in order and hand it to a formatter."""

    def __init__(self, source: MessageSource, formatter: MessageFormatter) -> None:
        """Initialise the pipeline with a message source and output policy."""
        self._source = source
        self._formatter = formatter

    def run(
        self,
        ids: Sequence[int],
        destination: Path,
        cancel: threading.Event | None = None,
        progress: ProgressCallback | None = None,
    ) -> ExportReport:
        """Export ``ids`` beneath ``destination`` and return the tally.

        Cancellation is checked before each message, so a message that has
        started is always finished. A failing message is recorded and the
        loop moves on; only errors outside a single message abort the job.
        """
        total = len(ids)
        report = ExportReport(path=destination, total=total)
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            LOGGER.error("Cannot create export directory %s: %s", destination, exc)
            raise ExportAbortedError(
                f"Cannot create export directory {destination}: {exc}", report
            ) from exc

        LOGGER.info("Exporting %s message(s) to %s", total, destination)
        try:
            for index, uid in enumerate(ids):
                if cancel is not None and cancel.is_set():
                    LOGGER.info(
                        "Export cancelled after %s of %s message(s)",
                        report.processed,
                        total,
                    )
                    break
                outcome = self._export_one(index, uid, destination)
                report.record(outcome)
                if outcome.ok and progress is not None:
                    progress(ExportProgress(done=report.succeeded, total=total))
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.error("Export aborted: %s", exc, exc_info=True)
            raise ExportAbortedError(str(exc), report) from exc

        LOGGER.info(
            "Export completed: succeeded=%s, failed=%s, path=%s",
            report.succeeded,
            report.failed,
            destination,
        )
        return report

    def _export_one(self, index: int, uid: int, destination: Path) -> ItemOutcome:
        try:
            message = self._source.fetch(uid)
            try:
                path = self._formatter.write(message, index, destination)
            except OSError as exc:
                raise WriteError(f"Cannot write UID {uid}: {exc}") from exc
        except MailExporterError as exc:
            LOGGER.warning("Skipping UID %s: %s", uid, exc, exc_info=True)
            return ItemOutcome(index=index, uid=uid, error=str(exc))
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.error(
                "Unexpected error exporting UID %s: %s", uid, exc, exc_info=True
            )
            return ItemOutcome(index=index, uid=uid, error=str(exc) or repr(exc))
        LOGGER.debug("Exported UID %s to %s", uid, path)
        return ItemOutcome(index=index, uid=uid, path=path)


__all__ = ["ExportPipeline", "ProgressCallback"]
