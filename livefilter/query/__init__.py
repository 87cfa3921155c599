"""Query compilation and the collections it runs against."""

from livefilter.query.compiler import (
    AllOf,
    AnyOf,
    Collection,
    Predicate,
    QueryProgram,
    compile_filter,
    compile_group,
    compile_query,
)
from livefilter.query.memory import MemoryCollection
from livefilter.query.sql import SqlCollection

__all__ = [
    "AllOf",
    "AnyOf",
    "Collection",
    "MemoryCollection",
    "Predicate",
    "QueryProgram",
    "SqlCollection",
    "compile_filter",
    "compile_group",
    "compile_query",
]
