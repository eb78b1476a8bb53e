"""Typed input slots for predicate arguments and their coercion."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date

from ..core.datetime_utils import parse_date
from ..core.interfaces import ParseError
from ..core.models import (
    ParameterKind,
    ParameterSpec,
    PredicateDescriptor,
    PredicateInstance,
)
from .catalog import UNSET

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
UINT32_MIN = 0
UINT32_MAX = 2**32 - 1


@dataclass(slots=True)
class IntegerEditor:
    """Bounded numeric input holding the raw text the user typed."""

    kind: ParameterKind
    minimum: int
    maximum: int
    text: str = "1"

    def set_value(self, value: int) -> None:
        """Store ``value`` clamped into the editor's range."""
        self.text = str(max(self.minimum, min(self.maximum, value)))

    def coerce(self) -> int:
        raw = self.text.strip()
        try:
            value = int(raw)
        except ValueError as exc:
            raise ParseError(f"'{self.text}' is not a whole number") from exc
        if not self.minimum <= value <= self.maximum:
            raise ParseError(
                f"{value} is outside the range {self.minimum}..{self.maximum}"
            )
        return value


@dataclass(slots=True)
class TextEditor:
    """Free-form string input."""

    kind: ParameterKind = ParameterKind.TEXT
    text: str = ""

    def coerce(self) -> str:
        return self.text


@dataclass(slots=True)
class DateEditor:
    """Calendar date input that may be left blank."""

    kind: ParameterKind = ParameterKind.DATE
    value: date | None = UNSET

    def coerce(self) -> date | None:
        return self.value


Editor = IntegerEditor | TextEditor | DateEditor

EDITOR_FACTORIES: dict[ParameterKind, Callable[[], Editor]] = {
    ParameterKind.INTEGER64: lambda: IntegerEditor(
        ParameterKind.INTEGER64, INT64_MIN, INT64_MAX
    ),
    ParameterKind.UINT32: lambda: IntegerEditor(
        ParameterKind.UINT32, UINT32_MIN, UINT32_MAX
    ),
    ParameterKind.TEXT: TextEditor,
    ParameterKind.DATE: DateEditor,
}


def bind(descriptor: PredicateDescriptor) -> tuple[Editor, ...]:
    """Create one editor per parameter of ``descriptor``."""
    editors = []
    for spec in descriptor.parameters:
        try:
            factory = EDITOR_FACTORIES[spec.kind]
        except KeyError as exc:
            msg = f"Parameter '{spec.name}' of kind {spec.kind.value} has no editor"
            raise TypeError(msg) from exc
        editors.append(factory())
    return tuple(editors)


def collect(
    editors: Sequence[Editor], specs: Sequence[ParameterSpec]
) -> tuple[object, ...]:
    """Read typed argument values back out of ``editors``."""
    if len(editors) != len(specs):
        raise ParseError(
            f"Expected {len(specs)} value(s) but {len(editors)} editor(s) exist"
        )
    values: list[object] = []
    for editor, spec in zip(editors, specs):
        if editor.kind is not spec.kind:
            raise ParseError(
                f"Editor for '{spec.name}' holds {editor.kind.value}, "
                f"expected {spec.kind.value}"
            )
        try:
            values.append(editor.coerce())
        except ParseError as exc:
            raise ParseError(f"{spec.name}: {exc}") from exc
    return tuple(values)


class PredicateBinder:
    """Editors for one predicate; equal when wrapping the same predicate."""

    def __init__(self, descriptor: PredicateDescriptor) -> None:
        self.descriptor = descriptor
        self.editors = bind(descriptor)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PredicateBinder):
            return NotImplemented
        return self.descriptor == other.descriptor

    def __hash__(self) -> int:
        return hash(self.descriptor)

    def __repr__(self) -> str:
        return f"PredicateBinder({self.descriptor.name!r})"

    def fill(self, raw_values: Sequence[str | None]) -> None:
        """Load textual input, as typed by a user, into the editors."""
        if len(raw_values) != len(self.editors):
            raise ParseError(
                f"Predicate '{self.descriptor.name}' takes "
                f"{len(self.editors)} value(s), got {len(raw_values)}"
            )
        for editor, raw in zip(self.editors, raw_values):
            if isinstance(editor, DateEditor):
                editor.value = _parse_date_input(raw)
            else:
                editor.text = "" if raw is None else raw

    def collect(self) -> tuple[object, ...]:
        return collect(self.editors, self.descriptor.parameters)

    def instance(self) -> PredicateInstance:
        """Collect current values and build a predicate ready to search."""
        instance = PredicateInstance(self.descriptor, self.collect())
        # Rendering validates arguments the editors cannot, such as unset dates.
        instance.criteria()
        return instance


def _parse_date_input(raw: str | None) -> date | None:
    try:
        return parse_date(raw)
    except ValueError as exc:
        raise ParseError(f"'{raw}' is not a date (expected YYYY-MM-DD)") from exc


__all__ = [
    "EDITOR_FACTORIES",
    "DateEditor",
    "Editor",
    "IntegerEditor",
    "PredicateBinder",
    "TextEditor",
    "bind",
    "collect",
]
