"""Core domain models used across the application."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


class ParameterKind(str, Enum):
    """Argument types a search predicate constructor can accept."""

    INTEGER64 = "integer64"
    UINT32 = "uint32"
    TEXT = "text"
    DATE = "date"
    # Composite kinds only appear on combinators, never on a descriptor.
    PREDICATE = "predicate"
    PREDICATE_ARRAY = "predicate[]"
    UINT32_ARRAY = "uint32[]"


@dataclass(frozen=True, slots=True)
class ParameterSpec:
    """Name and kind of one predicate argument."""

    name: str
    kind: ParameterKind


@dataclass(frozen=True, slots=True)
class PredicateDescriptor:
    """A leaf search predicate offered to the user."""

    name: str
    parameters: tuple[ParameterSpec, ...]
    build: Callable[..., tuple[str, ...]] = field(compare=False, repr=False)
    description: str = field(default="", compare=False)


@dataclass(frozen=True, slots=True)
class PredicateInstance:
    """A descriptor bound to concrete argument values."""

    descriptor: PredicateDescriptor
    arguments: tuple[object, ...]

    def __post_init__(self) -> None:
        expected = len(self.descriptor.parameters)
        if len(self.arguments) != expected:
            raise ValueError(
                f"Predicate '{self.descriptor.name}' expects {expected} "
                f"argument(s), got {len(self.arguments)}"
            )

    def criteria(self) -> tuple[str, ...]:
        """Render IMAP SEARCH tokens for this predicate."""
        return self.descriptor.build(*self.arguments)


class SessionState(str, Enum):
    """Lifecycle of a mail session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class SearchResult:
    """Message UIDs returned by one search, in server order."""

    ids: tuple[int, ...]
    predicate_name: str

    def __len__(self) -> int:
        return len(self.ids)


@dataclass(slots=True)
class MessagePart:
    """A decoded MIME part written to disk as-is."""

    filename: str | None
    content_type: str
    payload: bytes

    @property
    def subtype(self) -> str:
        return self.content_type.partition("/")[2] or "bin"


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True)
class MailMessage:
    """A fetched message split into the pieces the exporters need."""

    uid: int
    headers: tuple[tuple[str, str], ...]
    subject: str
    sender: str | None
    recipients: tuple[str, ...]
    date: datetime | None
    body: str
    attachments: tuple[MessagePart, ...] = ()
    alternative_views: tuple[MessagePart, ...] = ()

    @property
    def first_recipient(self) -> str | None:
        return self.recipients[0] if self.recipients else None


@dataclass(frozen=True, slots=True)
class ExportProgress:
    """Running counter emitted after each exported message."""

    done: int
    total: int


@dataclass(frozen=True, slots=True)
class ItemOutcome:
    """Result of exporting a single message."""

    index: int
    uid: int
    path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class ExportReport:
    """Outcome summary for one export job."""

    path: Path | None
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    outcomes: list[ItemOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed

    def record(self, outcome: ItemOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.ok:
            self.succeeded += 1
        else:
            self.failed += 1


__all__ = [
    "ExportProgress",
    "ExportReport",
    "ItemOutcome",
    "MailMessage",
    "MessagePart",
    "ParameterKind",
    "ParameterSpec",
    "PredicateDescriptor",
    "PredicateInstance",
    "SearchResult",
    "SessionState",
]
