"""Writers turning a fetched message into files on disk."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from ..core.datetime_utils import display_datetime
from ..core.interfaces import TemplateError
from ..core.models import MailMessage, MessagePart
from .paths import item_name, sanitize_filename

LOGGER = logging.getLogger(__name__)

HEADERS_FILE = "Headers.txt"
BODY_FILE = "Body.html"
ATTACHMENTS_DIR = "Attachments"
ALTERNATIVE_VIEWS_DIR = "Alternative Views"
TEMPLATE_SLOTS = ("sender", "first recipient", "date", "subject", "body")


class StructuredLayoutFormatter:
    """One folder per message holding headers, body and decoded parts."""

    def write(self, message: MailMessage, index: int, root: Path) -> Path:
        folder = root / item_name(index, message.subject)
        folder.mkdir(parents=True, exist_ok=True)

        lines = "".join(f"{name}: {value}\n" for name, value in message.headers)
        (folder / HEADERS_FILE).write_text(lines, encoding="utf-8")
        (folder / BODY_FILE).write_text(message.body, encoding="utf-8")

        if message.attachments:
            _write_parts(
                folder / ATTACHMENTS_DIR,
                message.attachments,
                lambda part: sanitize_filename(Path(part.filename or "").suffix),
            )
        if message.alternative_views:
            _write_parts(
                folder / ALTERNATIVE_VIEWS_DIR,
                message.alternative_views,
                lambda part: f".{part.subtype}",
            )
        return folder


class TemplateFormatter:
    """One HTML file per message rendered from a positional template."""

    def __init__(self, template: str) -> None:
        self.template = template

    def render(self, message: MailMessage) -> str:
        return self.template.format(
            message.sender or "",
            message.first_recipient or "",
            display_datetime(message.date),
            message.subject,
            message.body,
        )

    def write(self, message: MailMessage, index: int, root: Path) -> Path:
        target = root / f"{item_name(index, message.subject)}.html"
        target.write_text(self.render(message), encoding="utf-8")
        return target


def _write_parts(
    folder: Path,
    parts: tuple[MessagePart, ...],
    extension_of: Callable[[MessagePart], str],
) -> None:
    folder.mkdir(exist_ok=True)
    for number, part in enumerate(parts, start=1):
        (folder / f"{number}{extension_of(part)}").write_bytes(part.payload)


def load_template(path: Path | str) -> str:
    """Read a save template and check it renders all five slots."""
    template_path = Path(path)
    try:
        template = template_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise TemplateError(f"Cannot read template {template_path}: {exc}") from exc
    try:
        template.format(*(f"<{slot}>" for slot in TEMPLATE_SLOTS))
    except (IndexError, KeyError, ValueError) as exc:
        raise TemplateError(
            f"Template {template_path} must only use positional fields "
            f"{{0}}..{{4}} ({exc})"
        ) from exc
    LOGGER.debug("Loaded save template from %s", template_path)
    return template


__all__ = [
    "ALTERNATIVE_VIEWS_DIR",
    "ATTACHMENTS_DIR",
    "BODY_FILE",
    "HEADERS_FILE",
    "StructuredLayoutFormatter",
    "TemplateFormatter",
    "load_template",
]
