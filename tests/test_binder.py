"""Tests for binding typed editors to predicate parameters."""

from __future__ import annotations

from datetime import date

import pytest

from mail_exporter.core.interfaces import ParseError
from mail_exporter.core.models import ParameterKind
from mail_exporter.search import (
    UNSET,
    PredicateBinder,
    bind,
    collect,
    get_predicate,
    list_predicates,
)
from mail_exporter.search.binder import (
    UINT32_MAX,
    DateEditor,
    IntegerEditor,
    TextEditor,
)


def test_every_predicate_gets_one_matching_editor_per_parameter() -> None:
    for descriptor in list_predicates():
        editors = bind(descriptor)

        assert len(editors) == len(descriptor.parameters)
        for editor, spec in zip(editors, descriptor.parameters):
            assert editor.kind is spec.kind


def test_editor_defaults() -> None:
    (size,) = bind(get_predicate("larger"))
    (text,) = bind(get_predicate("subject"))
    (when,) = bind(get_predicate("since"))

    assert isinstance(size, IntegerEditor) and size.text == "1"
    assert isinstance(text, TextEditor) and text.text == ""
    assert isinstance(when, DateEditor) and when.value is UNSET


def test_uint32_overflow_fails_and_valid_value_parses() -> None:
    descriptor = get_predicate("uid_greater_than")
    (editor,) = bind(descriptor)

    editor.text = "99999999999"
    with pytest.raises(ParseError):
        collect((editor,), descriptor.parameters)

    editor.text = "42"
    assert collect((editor,), descriptor.parameters) == (42,)


def test_non_numeric_text_fails() -> None:
    descriptor = get_predicate("smaller")
    (editor,) = bind(descriptor)
    editor.text = "ten"

    with pytest.raises(ParseError, match="size"):
        collect((editor,), descriptor.parameters)


def test_set_value_clamps_into_range() -> None:
    (editor,) = bind(get_predicate("uid_less_than"))

    editor.set_value(2**40)
    assert editor.text == str(UINT32_MAX)
    editor.set_value(-5)
    assert editor.text == "0"


def test_text_passes_through_verbatim_and_date_may_be_unset() -> None:
    descriptor = get_predicate("header")
    editors = bind(descriptor)

    assert collect(editors, descriptor.parameters) == ("", "")

    since = get_predicate("since")
    (when,) = bind(since)
    assert collect((when,), since.parameters) == (UNSET,)
    when.value = date(2024, 1, 31)
    assert collect((when,), since.parameters) == (date(2024, 1, 31),)


def test_collect_rejects_mismatched_editor_kind() -> None:
    descriptor = get_predicate("subject")

    with pytest.raises(ParseError):
        collect((DateEditor(),), descriptor.parameters)


def test_binders_compare_by_predicate() -> None:
    first = PredicateBinder(get_predicate("subject"))
    second = PredicateBinder(get_predicate("subject"))
    first.fill(["invoice"])

    assert first == second
    assert hash(first) == hash(second)
    assert first != PredicateBinder(get_predicate("from"))


def test_binder_instance_builds_predicate() -> None:
    binder = PredicateBinder(get_predicate("sent_on"))
    binder.fill(["2024-05-06"])

    instance = binder.instance()

    assert instance.arguments == (date(2024, 5, 6),)
    assert instance.criteria() == ("SENTON", "06-May-2024")


def test_binder_instance_rejects_blank_date() -> None:
    binder = PredicateBinder(get_predicate("before"))
    binder.fill([None])

    with pytest.raises(ParseError):
        binder.instance()


def test_fill_validates_value_count_and_dates() -> None:
    binder = PredicateBinder(get_predicate("on"))

    with pytest.raises(ParseError):
        binder.fill([])
    with pytest.raises(ParseError):
        binder.fill(["yesterday"])


def test_integer_kinds_have_expected_bounds() -> None:
    (int64,) = bind(get_predicate("larger"))
    (uint32,) = bind(get_predicate("uid_greater_than"))

    assert int64.kind is ParameterKind.INTEGER64
    assert (int64.minimum, int64.maximum) == (-(2**63), 2**63 - 1)
    assert (uint32.minimum, uint32.maximum) == (0, 2**32 - 1)
