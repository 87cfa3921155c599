"""Expansion of the ``_search`` sentinel into an OR group over text fields."""

from __future__ import annotations

import logging
from typing import Sequence

from livefilter.filters.model import Filter, FilterGroup
from livefilter.filters.operators import Conjunction, FieldType, Operator

logger = logging.getLogger(__name__)

SEARCH_FIELD = "_search"


def expand_search(
    group: FilterGroup, fields: Sequence[str], *, search_field: str = SEARCH_FIELD
) -> FilterGroup:
    """Replace a top-level search filter with ``f1 contains q OR f2 contains q ...``.

    The OR group is placed before any existing nested groups. Search filters
    inside nested groups are left alone. Without configured fields the
    search filter is dropped.
    """
    search = group.get(search_field)
    if search is None:
        return group

    remaining = group.remove_filter(search_field)
    term = search.value
    if not isinstance(term, str) or not term.strip():
        return remaining
    if not fields:
        logger.warning("Dropping %s filter: no search fields configured", search_field)
        return remaining

    search_group = FilterGroup(
        filters=tuple(
            Filter(field=name, operator=Operator.CONTAINS, value=term, type=FieldType.STRING)
            for name in fields
        ),
        conjunction=Conjunction.OR,
    )
    logger.debug("Expanded %s over %s", search_field, ", ".join(fields))
    return remaining.prepend_group(search_group)
