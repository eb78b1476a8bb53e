"""Tests for logging utilities."""

from __future__ import annotations

import logging
from pathlib import Path

from mail_exporter.core.config import LoggingSettings
from mail_exporter.core.logging import DIAGNOSTICS_LOGGER, configure_logging


def test_configure_logging_sets_root_level() -> None:
    """configure_logging should set the root logger level according to settings."""

    settings = LoggingSettings(level="DEBUG", structured=False, diagnostics_path=None)
    configure_logging(settings)
    assert logging.getLogger().level == logging.DEBUG


def test_export_failures_are_appended_to_diagnostics_file(tmp_path: Path) -> None:
    log_path = tmp_path / "output_log.txt"
    log_path.write_text("earlier run\n", encoding="utf-8")
    configure_logging(LoggingSettings(level="INFO", diagnostics_path=log_path))

    logger = logging.getLogger(f"{DIAGNOSTICS_LOGGER}.pipeline")
    logger.info("progress is not a diagnostic")
    logger.warning("Skipping UID 7: boom")
    for handler in logging.getLogger(DIAGNOSTICS_LOGGER).handlers:
        handler.flush()

    content = log_path.read_text(encoding="utf-8")
    assert content.startswith("earlier run\n")
    assert "Skipping UID 7: boom" in content
    assert "progress is not a diagnostic" not in content

    configure_logging(LoggingSettings(level="INFO", diagnostics_path=None))
