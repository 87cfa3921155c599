"""livefilter: typed filter trees for list views.

Filters are built from a field registry, carried in URL query strings,
updated from UI events and compiled into queries against SQLAlchemy
models or in-memory rows.
"""

from livefilter.events import EventRouter, apply_dispatch, route
from livefilter.filters import (
    SEARCH_FIELD,
    Conjunction,
    Direction,
    FieldType,
    Filter,
    FilterGroup,
    Operator,
    Pagination,
    QueryState,
    Sort,
    expand_search,
)
from livefilter.query import MemoryCollection, SqlCollection, compile_query
from livefilter.registry import FieldConfig, FieldRegistry
from livefilter.url import UrlCodec, decode, encode

__version__ = "0.1.0"

__all__ = [
    "Conjunction",
    "Direction",
    "EventRouter",
    "FieldConfig",
    "FieldRegistry",
    "FieldType",
    "Filter",
    "FilterGroup",
    "MemoryCollection",
    "Operator",
    "Pagination",
    "QueryState",
    "SEARCH_FIELD",
    "Sort",
    "SqlCollection",
    "UrlCodec",
    "__version__",
    "apply_dispatch",
    "compile_query",
    "decode",
    "encode",
    "expand_search",
    "route",
]
