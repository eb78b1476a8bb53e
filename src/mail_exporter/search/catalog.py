"""Static registry of IMAP search predicates and the leaf-predicate catalog."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date

from ..core.datetime_utils import imap_date
from ..core.interfaces import ParseError
from ..core.models import ParameterKind, ParameterSpec, PredicateDescriptor

LOGGER = logging.getLogger(__name__)

Criteria = tuple[str, ...]

# Parameter kinds that make a constructor a combinator of other predicates
# or of UID sets. Those need recursive input and are never listed.
COMPOSITE_KINDS = frozenset(
    {
        ParameterKind.PREDICATE,
        ParameterKind.PREDICATE_ARRAY,
        ParameterKind.UINT32_ARRAY,
    }
)

UNSET = None
"""Value a date argument carries when the user left it blank."""

# IMAP UIDs are non-zero unsigned 32-bit integers.
_UID_MAX = 2**32 - 1


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """A named constructor registered in the predicate registry."""

    name: str
    parameters: tuple[ParameterSpec, ...]
    build: Callable[..., Criteria] = field(repr=False)
    returns_predicate: bool = True
    description: str = ""

    @property
    def is_leaf(self) -> bool:
        if not self.parameters:
            return True
        return self.parameters[0].kind not in COMPOSITE_KINDS

    def describe(self) -> PredicateDescriptor:
        return PredicateDescriptor(
            name=self.name,
            parameters=self.parameters,
            build=self.build,
            description=self.description,
        )


# Rendering helpers -----------------------------------------------------------
def quote(value: str) -> str:
    """Render ``value`` as an IMAP quoted string."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _require_date(name: str, value: date | None) -> str:
    if value is UNSET:
        raise ParseError(f"A date is required for '{name}'")
    return imap_date(value)


def _require_size(name: str, value: int) -> str:
    if value < 0:
        raise ParseError(f"'{name}' needs a non-negative size, got {value}")
    return str(value)


def _flag(keyword: str) -> Callable[[], Criteria]:
    return lambda: (keyword,)


def _text(keyword: str) -> Callable[[str], Criteria]:
    return lambda value: (keyword, quote(value))


def _date(keyword: str) -> Callable[[date | None], Criteria]:
    return lambda value: (keyword, _require_date(keyword.lower(), value))


def _size(keyword: str) -> Callable[[int], Criteria]:
    return lambda value: (keyword, _require_size(keyword.lower(), value))


def _header(field_name: str, value: str) -> Criteria:
    if not field_name:
        raise ParseError("A header name is required")
    return ("HEADER", quote(field_name), quote(value))


def _uid_greater_than(uid: int) -> Criteria:
    if uid >= _UID_MAX:
        raise ParseError(f"No UID is greater than {_UID_MAX}")
    return ("UID", f"{uid + 1}:*")


def _uid_less_than(uid: int) -> Criteria:
    if uid <= 1:
        raise ParseError("No UID is smaller than 1")
    return ("UID", f"1:{uid - 1}")


def _uid_set(uids: Iterable[int]) -> Criteria:
    return ("UID", ",".join(str(uid) for uid in uids))


def _not(predicate: Criteria) -> Criteria:
    return ("NOT", _group(predicate))


def _or(left: Criteria, right: Criteria) -> Criteria:
    return ("OR", _group(left), _group(right))


def _and(predicates: Iterable[Criteria]) -> Criteria:
    return tuple(_group(predicate) for predicate in predicates)


def _group(criteria: Criteria) -> str:
    joined = " ".join(criteria)
    return joined if len(criteria) == 1 else f"({joined})"


def _entry(
    name: str,
    build: Callable[..., Criteria],
    *parameters: tuple[str, ParameterKind],
    description: str = "",
) -> CatalogEntry:
    return CatalogEntry(
        name=name,
        parameters=tuple(ParameterSpec(pname, kind) for pname, kind in parameters),
        build=build,
        description=description,
    )


_TEXT = ParameterKind.TEXT
_DATE = ParameterKind.DATE
_INT64 = ParameterKind.INTEGER64
_UINT32 = ParameterKind.UINT32

DEFAULT_REGISTRY: tuple[CatalogEntry, ...] = (
    _entry("all", _flag("ALL"), description="Every message in the mailbox"),
    _entry("and", _and, ("predicates", ParameterKind.PREDICATE_ARRAY)),
    _entry("answered", _flag("ANSWERED"), description="Messages marked answered"),
    _entry("bcc", _text("BCC"), ("text", _TEXT), description="BCC contains text"),
    _entry(
        "before", _date("BEFORE"), ("date", _DATE), description="Received before"
    ),
    _entry("body", _text("BODY"), ("text", _TEXT), description="Body contains text"),
    _entry("cc", _text("CC"), ("text", _TEXT), description="CC contains text"),
    _entry("deleted", _flag("DELETED"), description="Messages marked deleted"),
    _entry("draft", _flag("DRAFT"), description="Messages marked draft"),
    _entry("flagged", _flag("FLAGGED"), description="Messages marked flagged"),
    _entry(
        "from", _text("FROM"), ("text", _TEXT), description="Sender contains text"
    ),
    _entry(
        "header",
        _header,
        ("field", _TEXT),
        ("text", _TEXT),
        description="Named header contains text",
    ),
    _entry(
        "keyword",
        _text("KEYWORD"),
        ("keyword", _TEXT),
        description="Messages carrying a keyword flag",
    ),
    _entry(
        "larger",
        _size("LARGER"),
        ("size", _INT64),
        description="Larger than size in octets",
    ),
    _entry("new", _flag("NEW"), description="Recent and unseen messages"),
    _entry("not", _not, ("predicate", ParameterKind.PREDICATE)),
    _entry("old", _flag("OLD"), description="Messages that are not recent"),
    _entry("on", _date("ON"), ("date", _DATE), description="Received on date"),
    _entry(
        "or",
        _or,
        ("left", ParameterKind.PREDICATE),
        ("right", ParameterKind.PREDICATE),
    ),
    _entry("recent", _flag("RECENT"), description="Messages marked recent"),
    _entry("seen", _flag("SEEN"), description="Messages marked seen"),
    _entry(
        "sent_before",
        _date("SENTBEFORE"),
        ("date", _DATE),
        description="Date header before",
    ),
    _entry(
        "sent_on", _date("SENTON"), ("date", _DATE), description="Date header on"
    ),
    _entry(
        "sent_since",
        _date("SENTSINCE"),
        ("date", _DATE),
        description="Date header on or after",
    ),
    _entry(
        "since", _date("SINCE"), ("date", _DATE), description="Received on or after"
    ),
    _entry(
        "smaller",
        _size("SMALLER"),
        ("size", _INT64),
        description="Smaller than size in octets",
    ),
    _entry(
        "subject",
        _text("SUBJECT"),
        ("text", _TEXT),
        description="Subject contains text",
    ),
    _entry(
        "text",
        _text("TEXT"),
        ("text", _TEXT),
        description="Headers or body contain text",
    ),
    _entry("to", _text("TO"), ("text", _TEXT), description="Recipient contains text"),
    _entry("uid", _uid_set, ("uids", ParameterKind.UINT32_ARRAY)),
    _entry(
        "uid_greater_than",
        _uid_greater_than,
        ("uid", _UINT32),
        description="UID greater than value",
    ),
    _entry(
        "uid_less_than",
        _uid_less_than,
        ("uid", _UINT32),
        description="UID less than value",
    ),
    _entry("unanswered", _flag("UNANSWERED"), description="Not marked answered"),
    _entry("undeleted", _flag("UNDELETED"), description="Not marked deleted"),
    _entry("undraft", _flag("UNDRAFT"), description="Not marked draft"),
    _entry("unflagged", _flag("UNFLAGGED"), description="Not marked flagged"),
    _entry(
        "unkeyword",
        _text("UNKEYWORD"),
        ("keyword", _TEXT),
        description="Messages without a keyword flag",
    ),
    _entry("unseen", _flag("UNSEEN"), description="Not marked seen"),
)


def list_predicates(
    registry: Iterable[CatalogEntry] = DEFAULT_REGISTRY,
) -> tuple[PredicateDescriptor, ...]:
    """Return the leaf predicates of ``registry`` in declaration order."""
    descriptors = tuple(
        entry.describe()
        for entry in registry
        if entry.returns_predicate and entry.is_leaf
    )
    LOGGER.debug("Catalog lists %s leaf predicate(s)", len(descriptors))
    return descriptors


def get_predicate(
    name: str, registry: Iterable[CatalogEntry] = DEFAULT_REGISTRY
) -> PredicateDescriptor:
    """Return the leaf predicate called ``name``."""
    for descriptor in list_predicates(registry):
        if descriptor.name == name:
            return descriptor
    msg = f"Unknown search predicate '{name}'"
    raise KeyError(msg)


__all__ = [
    "COMPOSITE_KINDS",
    "DEFAULT_REGISTRY",
    "UNSET",
    "CatalogEntry",
    "get_predicate",
    "list_predicates",
    "quote",
]
