"""Search predicate catalog and argument binding."""

from .binder import PredicateBinder, bind, collect
from .catalog import (
    DEFAULT_REGISTRY,
    UNSET,
    CatalogEntry,
    get_predicate,
    list_predicates,
)

__all__ = [
    "CatalogEntry",
    "DEFAULT_REGISTRY",
    "PredicateBinder",
    "UNSET",
    "bind",
    "collect",
    "get_predicate",
    "list_predicates",
]
