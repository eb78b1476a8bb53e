"""Tests for the predicate catalog."""

from __future__ import annotations

from datetime import date

import pytest

from mail_exporter.core.interfaces import ParseError
from mail_exporter.core.models import ParameterKind, ParameterSpec, PredicateInstance
from mail_exporter.search import (
    DEFAULT_REGISTRY,
    UNSET,
    CatalogEntry,
    get_predicate,
    list_predicates,
)
from mail_exporter.search.catalog import COMPOSITE_KINDS, quote


def test_catalog_excludes_composite_predicates() -> None:
    names = [descriptor.name for descriptor in list_predicates()]

    for composite in ("and", "or", "not", "uid"):
        assert composite not in names
    for descriptor in list_predicates():
        if descriptor.parameters:
            assert descriptor.parameters[0].kind not in COMPOSITE_KINDS


def test_catalog_keeps_declaration_order() -> None:
    expected = [
        entry.name
        for entry in DEFAULT_REGISTRY
        if entry.returns_predicate and entry.is_leaf
    ]

    assert [descriptor.name for descriptor in list_predicates()] == expected
    assert list_predicates() == list_predicates()
    assert expected[:4] == ["all", "answered", "bcc", "before"]


def test_catalog_skips_entries_not_returning_predicates() -> None:
    registry = (
        CatalogEntry("seen", (), lambda: ("SEEN",)),
        CatalogEntry(
            "describe",
            (ParameterSpec("text", ParameterKind.TEXT),),
            lambda text: (text,),
            returns_predicate=False,
        ),
        CatalogEntry(
            "not",
            (ParameterSpec("predicate", ParameterKind.PREDICATE),),
            lambda predicate: ("NOT", *predicate),
        ),
        CatalogEntry(
            "header",
            (
                ParameterSpec("field", ParameterKind.TEXT),
                ParameterSpec("inner", ParameterKind.PREDICATE),
            ),
            lambda *args: args,
        ),
    )

    assert [d.name for d in list_predicates(registry)] == ["seen", "header"]


def test_get_predicate_unknown_name_raises() -> None:
    with pytest.raises(KeyError):
        get_predicate("and")


@pytest.mark.parametrize(
    ("name", "arguments", "criteria"),
    [
        ("all", (), ("ALL",)),
        ("subject", ('say "hi" \\ bye',), ("SUBJECT", '"say \\"hi\\" \\\\ bye"')),
        (
            "header",
            ("X-Mailer", "Thunderbird"),
            ("HEADER", '"X-Mailer"', '"Thunderbird"'),
        ),
        ("before", (date(2023, 12, 1),), ("BEFORE", "01-Dec-2023")),
        ("larger", (2048,), ("LARGER", "2048")),
        ("uid_greater_than", (41,), ("UID", "42:*")),
        ("uid_less_than", (10,), ("UID", "1:9")),
    ],
)
def test_predicates_render_imap_criteria(name, arguments, criteria) -> None:
    instance = PredicateInstance(get_predicate(name), arguments)

    assert instance.criteria() == criteria


def test_unset_date_is_rejected_when_rendering() -> None:
    instance = PredicateInstance(get_predicate("since"), (UNSET,))

    with pytest.raises(ParseError):
        instance.criteria()


@pytest.mark.parametrize(
    ("name", "uid"), [("uid_greater_than", 2**32 - 1), ("uid_less_than", 1)]
)
def test_empty_uid_ranges_are_rejected(name: str, uid: int) -> None:
    instance = PredicateInstance(get_predicate(name), (uid,))

    with pytest.raises(ParseError):
        instance.criteria()

    assert PredicateInstance(get_predicate(name), (2,)).criteria()


def test_argument_count_must_match_parameters() -> None:
    with pytest.raises(ValueError):
        PredicateInstance(get_predicate("header"), ("X-Only-One",))


def test_quote_wraps_plain_text() -> None:
    assert quote("invoice") == '"invoice"'
