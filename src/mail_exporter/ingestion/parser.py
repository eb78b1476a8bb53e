"""Utilities for parsing raw RFC822 messages into exportable models."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import getaddresses, parsedate_to_datetime

from ..core.models import MailMessage, MessagePart


class EmailParser:
    """Convert raw email payloads into :class:`MailMessage` instances."""

    def __init__(self) -> None:
        """Prepare internal parser instance."""
        self._parser = BytesParser(policy=policy.default)

    def parse(self, uid: int, payload: bytes) -> MailMessage:
        """Parse raw RFC822 bytes into a :class:`MailMessage`."""
        message = self._parser.parsebytes(payload)
        body_part = message.get_body(preferencelist=("html", "plain"))
        attachments: list[MessagePart] = []
        alternatives: list[MessagePart] = []

        for part, in_alternative in _leaf_parts(message):
            if part is body_part:
                continue
            if _is_attachment(part):
                attachments.append(_to_part(part))
            elif in_alternative:
                alternatives.append(_to_part(part))

        return MailMessage(
            uid=uid,
            headers=tuple(_headers(message)),
            subject=str(message.get("Subject") or ""),
            sender=_take_first_address(message.get("From")),
            recipients=tuple(_extract_addresses(message.get_all("To", []))),
            date=_try_parse_datetime(message.get("Date")),
            body=_text_of(body_part) if body_part is not None else "",
            attachments=tuple(attachments),
            alternative_views=tuple(alternatives),
        )


def _headers(message: EmailMessage) -> Iterator[tuple[str, str]]:
    for name, value in message.items():
        yield name, " ".join(str(value).split())


def _leaf_parts(
    message: EmailMessage, in_alternative: bool = False
) -> Iterator[tuple[EmailMessage, bool]]:
    """Yield non-multipart parts and whether they sit in multipart/alternative."""
    if message.get_content_maintype() != "multipart":
        yield message, in_alternative
        return
    alternative = message.get_content_subtype() == "alternative"
    for part in message.iter_parts():
        yield from _leaf_parts(part, alternative)


def _is_attachment(part: EmailMessage) -> bool:
    disposition = part.get_content_disposition()
    if disposition == "attachment":
        return True
    return part.get_filename() is not None


def _to_part(part: EmailMessage) -> MessagePart:
    if part.get_content_type() == "message/rfc822":
        payload = part.get_content().as_bytes()
    else:
        payload = part.get_payload(decode=True) or b""
    return MessagePart(
        filename=part.get_filename(),
        content_type=part.get_content_type(),
        payload=payload,
    )


def _text_of(part: EmailMessage) -> str:
    try:
        content = part.get_content()
    except LookupError:
        raw = part.get_payload(decode=True) or b""
        return raw.decode("utf-8", errors="replace")
    if isinstance(content, bytes):
        return content.decode("utf-8", errors="replace")
    return str(content)


def _extract_addresses(headers: Iterable[str]) -> Iterable[str]:
    for _, email_address in getaddresses([str(header) for header in headers]):
        if email_address:
            yield email_address


def _take_first_address(header_value: str | None) -> str | None:
    if header_value is None:
        return None
    addresses = list(_extract_addresses([header_value]))
    return addresses[0] if addresses else None


def _try_parse_datetime(header_value: str | None) -> datetime | None:
    if header_value is None:
        return None
    try:
        return parsedate_to_datetime(str(header_value))
    except (TypeError, ValueError):
        return None


__all__ = ["EmailParser"]
