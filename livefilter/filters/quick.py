"""Shortcuts for building common filters and reading them back.

Builders return None when the input should not produce a filter (blank
search text, an empty selection), so a caller can build a list of candidates
and drop the Nones::

    filters = [
        search_filter(params.get("q")),
        multi_select_filter("status", params.get("status")),
        boolean_filter("is_urgent", params.get("urgent") == "true", true_only=True),
    ]
    group = FilterGroup(filters=[f for f in filters if f is not None])

Extractors look at the top level of a group only, which is where the
builders' filters end up.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Iterable, Mapping

from livefilter.filters.dates import resolve_date_range
from livefilter.filters.model import Filter, FilterGroup
from livefilter.filters.operators import FieldType, Operator, ValueShape
from livefilter.filters.search import SEARCH_FIELD

# ----------------------------------------------------------------------
# Builders
# ----------------------------------------------------------------------


def search_filter(
    query: str | None,
    *,
    field: str = SEARCH_FIELD,
    operator: Operator = Operator.CONTAINS,
    min_length: int = 0,
    trim: bool = True,
) -> Filter | None:
    """Filter for free-text search, by default on the ``_search`` sentinel."""
    if query is None:
        return None
    if trim:
        query = query.strip()
    if not query or len(query) < min_length:
        return None
    return Filter(field=field, operator=operator, value=query, type=FieldType.STRING)


def multi_select_filter(
    field: str,
    values: Any,
    *,
    operator: Operator | None = None,
    type: FieldType = FieldType.ENUM,
    reject_empty: bool = True,
) -> Filter | None:
    """``in`` filter for a list of choices, ``equals`` for a single one."""
    if values is None:
        return None
    if isinstance(values, (list, tuple)):
        if not values and reject_empty:
            return None
        return Filter(field=field, operator=operator or Operator.IN, value=values, type=type)
    return Filter(field=field, operator=operator or Operator.EQUALS, value=values, type=type)


def date_range_filter(
    field: str,
    value: str | date | tuple[date, date] | None,
    *,
    operator: Operator | None = None,
    type: FieldType = FieldType.DATE,
    today: date | None = None,
) -> Filter | None:
    """Date filter from a preset name, a single date or a ``(start, end)`` pair."""
    if value is None:
        return None
    if isinstance(value, date):
        return Filter(field=field, operator=operator or Operator.EQUALS, value=value, type=type)
    if isinstance(value, (list, tuple)) and any(bound is None for bound in value):
        return None
    bounds = resolve_date_range(value, type, today=today)
    if bounds is None:
        return None
    return Filter(field=field, operator=operator or Operator.BETWEEN, value=bounds, type=type)


def boolean_filter(
    field: str,
    value: Any,
    *,
    operator: Operator = Operator.EQUALS,
    true_only: bool = False,
) -> Filter | None:
    """Boolean ``equals`` filter; with ``true_only`` a False value gives no filter."""
    if not isinstance(value, bool):
        return None
    if true_only and value is not True:
        return None
    return Filter(field=field, operator=operator, value=value, type=FieldType.BOOLEAN)


def numeric_filter(
    field: str,
    value: Any,
    *,
    operator: Operator | None = None,
    type: FieldType | None = None,
) -> Filter | None:
    """Numeric filter; the type is inferred from the value unless given.

    A ``(low, high)`` pair defaults to ``between``.
    """
    if isinstance(value, (list, tuple)):
        if len(value) != 2 or not all(_is_number(bound) for bound in value):
            return None
        inferred = (
            FieldType.INTEGER if all(isinstance(b, int) for b in value) else FieldType.FLOAT
        )
        return Filter(
            field=field,
            operator=operator or Operator.BETWEEN,
            value=tuple(value),
            type=type or inferred,
        )
    if not _is_number(value):
        return None
    inferred = FieldType.INTEGER if isinstance(value, int) else FieldType.FLOAT
    return Filter(
        field=field, operator=operator or Operator.EQUALS, value=value, type=type or inferred
    )


def array_filter(
    field: str,
    values: Iterable[str] | None,
    *,
    operator: Operator = Operator.CONTAINS_ANY,
) -> Filter | None:
    """Tag-style filter; an empty selection gives no filter."""
    values = list(values or ())
    if not values:
        return None
    return Filter(field=field, operator=operator, value=values, type=FieldType.ARRAY)


def from_params(
    params: Mapping[str, Any],
    definitions: Iterable[tuple[str, Callable[[Any], Filter | None]]],
    *,
    prefix: str = "",
) -> list[Filter]:
    """Run a builder for each parameter present in ``params``.

    Args:
        params: Request parameters.
        definitions: ``(param_key, builder)`` pairs, applied in order.
        prefix: Prepended to every ``param_key`` before lookup.
    """
    filters: list[Filter] = []
    for key, builder in definitions:
        raw = params.get(f"{prefix}{key}")
        if raw is None:
            continue
        built = builder(raw)
        if built is not None:
            filters.append(built)
    return filters


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ----------------------------------------------------------------------
# Extractors
# ----------------------------------------------------------------------


def _find(group: FilterGroup, field: str, operator: Operator | None = None) -> Filter | None:
    for item in group.filters:
        if item.field == field and (operator is None or item.operator is operator):
            return item
    return None


def extract_search_query(
    group: FilterGroup, *, field: str = SEARCH_FIELD, operator: Operator | None = None
) -> str | None:
    item = _find(group, field, operator)
    return item.value if item is not None else None


def extract_multi_select(group: FilterGroup, field: str, *, single_value: bool = False) -> Any:
    """Selected values of a multi-select field.

    Returns a list, or with ``single_value`` a single value (None when
    nothing or several values are selected).
    """
    item = _find(group, field)
    if item is None:
        return None if single_value else []
    if item.operator is Operator.IN:
        values = list(item.members)
        if single_value:
            return values[0] if len(values) == 1 else None
        return values
    if item.operator is Operator.EQUALS:
        return item.value if single_value else [item.value]
    return None if single_value else []


def extract_boolean(group: FilterGroup, field: str, *, default: bool | None = None) -> bool | None:
    item = _find(group, field)
    if item is None:
        return default
    if item.operator is Operator.IS_TRUE:
        return True
    if item.operator is Operator.IS_FALSE:
        return False
    if item.operator is Operator.EQUALS:
        return item.value
    return default


def extract_value(group: FilterGroup, field: str, *, default: Any = None) -> Any:
    """Raw value of a field's filter: scalar, ``(start, end)`` pair or list."""
    item = _find(group, field)
    if item is None:
        return default
    if item.shape is ValueShape.LIST:
        return list(item.members)
    return item.value


def extract_optional_filters(
    group: FilterGroup, excluded_fields: Iterable[str]
) -> tuple[list[str], dict[str, Any]]:
    """Fields and values of top-level filters not in ``excluded_fields``.

    Returns:
        ``(active_fields, values_by_field)`` in filter order.
    """
    excluded = set(excluded_fields)
    active: list[str] = []
    values: dict[str, Any] = {}
    for item in group.filters:
        if item.field in excluded:
            continue
        active.append(item.field)
        values[item.field] = extract_value(group, item.field)
    return active, values


def extract_all(
    group: FilterGroup, extractors: Mapping[str, Callable[[FilterGroup], Any]]
) -> dict[str, Any]:
    """Run several extractors; keys of the result follow ``extractors``."""
    return {key: extractor(group) for key, extractor in extractors.items()}
