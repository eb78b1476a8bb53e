"""Datetime helpers shared across the application."""

from __future__ import annotations

from datetime import date, datetime

__all__ = [
    "display_datetime",
    "file_timestamp",
    "imap_date",
    "parse_date",
]

# IMAP dates always use English month names regardless of locale.
_MONTHS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


def imap_date(value: date) -> str:
    """Format ``value`` as an RFC 3501 ``date`` (``DD-Mon-YYYY``)."""
    return f"{value.day:02d}-{_MONTHS[value.month - 1]}-{value.year:04d}"


def parse_date(value: str | None) -> date | None:
    """Parse an ISO 8601 date, returning ``None`` for blank input."""
    if value is None or not value.strip():
        return None
    return date.fromisoformat(value.strip())


def display_datetime(value: datetime | None) -> str:
    """Return the representation used when rendering a message date."""
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d %H:%M:%S %z").strip()


def file_timestamp(value: datetime | None = None) -> str:
    """Return a filesystem friendly timestamp for export directory names."""
    moment = value or datetime.now()
    return moment.strftime("%Y%m%d%H%M%S")
