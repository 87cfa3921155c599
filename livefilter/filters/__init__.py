"""Filter model: filters, groups, sorts, pagination and their helpers."""

from livefilter.filters.model import (
    Filter,
    FilterGroup,
    Pagination,
    QueryState,
    Sort,
)
from livefilter.filters.operators import (
    Conjunction,
    Direction,
    FieldType,
    Operator,
    ValueShape,
)
from livefilter.filters.search import SEARCH_FIELD, expand_search

__all__ = [
    "Conjunction",
    "Direction",
    "FieldType",
    "Filter",
    "FilterGroup",
    "Operator",
    "Pagination",
    "QueryState",
    "SEARCH_FIELD",
    "Sort",
    "ValueShape",
    "expand_search",
]
