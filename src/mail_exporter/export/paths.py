"""Naming rules for export folders and files."""

from __future__ import annotations

import re
from datetime import datetime

from ..core.datetime_utils import file_timestamp

MAX_NAME_LENGTH = 30

# Union of characters rejected by Windows, macOS and Linux file systems.
_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_filename(name: str) -> str:
    """Replace characters that are invalid in a file name with ``_``."""
    return _INVALID_FILENAME_CHARS.sub("_", name)


def item_name(index: int, subject: str | None) -> str:
    """Return ``{index}_{subject}`` cut to ``MAX_NAME_LENGTH`` and sanitized."""
    raw = f"{index}_{subject or ''}"
    return sanitize_filename(raw[:MAX_NAME_LENGTH])


def export_directory_name(
    identity: str, host: str | None = None, moment: datetime | None = None
) -> str:
    """Return the folder name for one export job."""
    parts = [identity]
    if host:
        parts.append(host)
    parts.append(file_timestamp(moment))
    return sanitize_filename("_".join(parts))


__all__ = [
    "MAX_NAME_LENGTH",
    "export_directory_name",
    "item_name",
    "sanitize_filename",
]
