"""Filters, sorts and pagination to and from flat URL parameters.

Parameter layout::

    filters[<field>][operator]=...      always
    filters[<field>][type]=...          always
    filters[<field>][value]=...         scalar operators
    filters[<field>][values][<i>]=...   list operators, 0-based
    filters[<field>][start]=...         range operators
    filters[<field>][end]=...
    filters[_conjunction]=or            only when the top level is OR
    filters[_groups][<i>][...]          nested groups, same layout inside,
                                        always with their own _conjunction
    sort[field]=...&sort[direction]=... primary sort
    sort[<n>][field]=...                further sorts, n = 1, 2, ...
    page=...&per_page=...               omitted when equal to the defaults

Decoding is permissive: a malformed entry is logged at DEBUG and dropped
while the rest of the parameters are still decoded. Lists that arrive as
index-keyed maps (``{"1": "b", "0": "a"}``) are repaired.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping

from livefilter.exceptions import DecodeSkip, ShapeError
from livefilter.filters.model import (
    DEFAULT_PAGE,
    DEFAULT_PER_PAGE,
    MAX_PER_PAGE,
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
    is_supported,
    value_shape,
)
from livefilter.filters.values import coerce_value, infer_type, serialize_value
from livefilter.url.params import (
    flatten_params,
    indexed_to_list,
    parse_key,
    parse_query_string,
    to_query_string,
    unflatten_params,
)

if TYPE_CHECKING:
    from livefilter.registry import FieldRegistry

logger = logging.getLogger(__name__)

FILTERS_KEY = "filters"
SORT_KEY = "sort"
PAGE_KEY = "page"
PER_PAGE_KEY = "per_page"
CONJUNCTION_KEY = "_conjunction"
GROUPS_KEY = "_groups"

MAX_GROUP_DEPTH = 16

_MISSING = object()


def _single(raw: Any, key: str) -> Any:
    """Unwrap the one-item lists some frameworks produce for scalar keys."""
    if isinstance(raw, (list, tuple)):
        if len(raw) != 1:
            raise DecodeSkip(key, "expected a single value")
        return raw[0]
    if isinstance(raw, Mapping):
        raise DecodeSkip(key, "expected a single value")
    return raw


class UrlCodec:
    """Encode and decode query state as URL parameters.

    Args:
        registry: Supplies field types and default operators when the
            parameters omit them, and strategies for custom field types.
        default_per_page: Page size assumed when ``per_page`` is absent.
        max_per_page: Largest page size accepted when decoding, at most
            ``MAX_PER_PAGE``.
    """

    def __init__(
        self,
        registry: FieldRegistry | None = None,
        *,
        default_per_page: int = DEFAULT_PER_PAGE,
        max_per_page: int = MAX_PER_PAGE,
        max_depth: int = MAX_GROUP_DEPTH,
    ) -> None:
        if max_per_page > MAX_PER_PAGE:
            raise ValueError(f"max_per_page must not exceed {MAX_PER_PAGE}")
        if not 1 <= default_per_page <= max_per_page:
            raise ValueError("default_per_page must be between 1 and max_per_page")
        self.registry = registry
        self.default_per_page = default_per_page
        self.max_per_page = max_per_page
        self.max_depth = max_depth

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def encode(
        self,
        group: FilterGroup | None = None,
        sorts: Iterable[Sort] = (),
        pagination: Pagination | None = None,
    ) -> dict[str, str]:
        """Flatten query state into string parameters."""
        nested: dict[str, Any] = {}

        if group is not None:
            filters = self._encode_group(group, nested=False)
            if filters:
                nested[FILTERS_KEY] = filters

        sort_params = self._encode_sorts(list(sorts))
        if sort_params:
            nested[SORT_KEY] = sort_params

        if pagination is not None:
            if pagination.page != DEFAULT_PAGE:
                nested[PAGE_KEY] = str(pagination.page)
            if pagination.per_page != self.default_per_page:
                nested[PER_PAGE_KEY] = str(pagination.per_page)

        return dict(flatten_params(nested))

    def encode_query_string(
        self,
        group: FilterGroup | None = None,
        sorts: Iterable[Sort] = (),
        pagination: Pagination | None = None,
    ) -> str:
        return to_query_string(self.encode(group, sorts, pagination))

    def update_params(
        self,
        params: Mapping[str, Any],
        group: FilterGroup | None,
        sorts: Iterable[Sort] | None = None,
        pagination: Pagination | None = None,
    ) -> dict[str, Any]:
        """Merge encoded state into an existing parameter map.

        The ``filters`` keys are always replaced, or removed when the group is
        empty. ``sort`` keys are replaced only when ``sorts`` is given (an
        empty list removes them) and ``page``/``per_page`` only when
        ``pagination`` is given, in which case default values are removed.
        Both the flat (``filters[x][value]``) and the nested form of a managed
        key are dropped; every other key is kept as it is.
        """
        managed = {FILTERS_KEY}
        if sorts is not None:
            managed.add(SORT_KEY)
        if pagination is not None:
            managed.update((PAGE_KEY, PER_PAGE_KEY))

        updated = {
            key: value for key, value in params.items() if parse_key(str(key))[0] not in managed
        }
        updated.update(self.encode(group, sorts or (), pagination))
        return updated

    def _encode_group(self, group: FilterGroup, *, nested: bool) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if nested or group.conjunction is Conjunction.OR:
            params[CONJUNCTION_KEY] = group.conjunction.value
        for item in group.filters:
            params[item.field] = self._encode_filter(item)
        if group.groups:
            params[GROUPS_KEY] = [self._encode_group(sub, nested=True) for sub in group.groups]
        return params

    def _encode_filter(self, item: Filter) -> dict[str, Any]:
        entry: dict[str, Any] = {"operator": item.operator.value, "type": item.type.value}
        encode_value = self._value_encoder(item)
        shape = item.shape
        if shape is ValueShape.RANGE:
            start, end = item.bounds
            entry["start"] = encode_value(start)
            entry["end"] = encode_value(end)
        elif shape is ValueShape.LIST:
            if item.members:
                entry["values"] = [encode_value(member) for member in item.members]
        elif shape is ValueShape.SCALAR:
            entry["value"] = encode_value(item.scalar)
        return entry

    def _value_encoder(self, item: Filter) -> Callable[[Any], str]:
        if item.type is FieldType.CUSTOM and self.registry is not None:
            custom = self.registry.custom_type_for(item.field)
            if custom is not None:
                return custom.encode
        return serialize_value

    def _encode_sorts(self, sorts: list[Sort]) -> dict[str, Any]:
        if not sorts:
            return {}
        primary, *rest = sorts
        params: dict[str, Any] = {
            "field": primary.field,
            "direction": primary.direction.value,
        }
        for index, sort in enumerate(rest, start=1):
            params[str(index)] = {"field": sort.field, "direction": sort.direction.value}
        return params

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def decode(self, params: Mapping[str, Any]) -> QueryState:
        """Rebuild query state from flat or nested parameters. Never raises
        for malformed entries; they are skipped."""
        nested = unflatten_params(params)

        raw_filters = nested.get(FILTERS_KEY)
        if isinstance(raw_filters, Mapping):
            group = self.decode_group(raw_filters)
        else:
            if raw_filters is not None:
                logger.debug("Ignoring non-mapping %s parameter", FILTERS_KEY)
            group = FilterGroup()

        return QueryState(
            filters=group,
            sorts=self.decode_sorts(nested.get(SORT_KEY)),
            pagination=self.decode_pagination(nested),
        )

    def decode_query_string(self, query: str) -> QueryState:
        return self.decode(parse_query_string(query))

    def decode_group(self, raw: Mapping[str, Any], depth: int = 0) -> FilterGroup:
        conjunction = Conjunction.AND
        if CONJUNCTION_KEY in raw:
            try:
                conjunction = Conjunction(_single(raw[CONJUNCTION_KEY], CONJUNCTION_KEY))
            except (ValueError, DecodeSkip):
                logger.debug("Invalid conjunction %r, using and", raw[CONJUNCTION_KEY])

        filters: list[Filter] = []
        for key, entry in raw.items():
            if key in (CONJUNCTION_KEY, GROUPS_KEY):
                continue
            try:
                filters.append(self._decode_filter(str(key), entry))
            except DecodeSkip as exc:
                logger.debug("%s", exc)

        groups: list[FilterGroup] = []
        if GROUPS_KEY in raw:
            if depth + 1 > self.max_depth:
                logger.debug("Dropping groups nested deeper than %d", self.max_depth)
            else:
                for sub in indexed_to_list(raw[GROUPS_KEY]):
                    if isinstance(sub, Mapping):
                        groups.append(self.decode_group(sub, depth + 1))
                    else:
                        logger.debug("Skipping malformed group %r", sub)

        return FilterGroup(filters=tuple(filters), groups=tuple(groups), conjunction=conjunction)

    def _decode_filter(self, field: str, entry: Any) -> Filter:
        if isinstance(entry, (list, tuple)):
            entry = {"values": entry}
        elif not isinstance(entry, Mapping):
            entry = {"value": entry}

        key = f"{FILTERS_KEY}[{field}]"
        config = self.registry.get(field) if self.registry is not None else None

        field_type = self._decode_type(key, field, entry)
        operator = self._decode_operator(key, field, entry, field_type)

        if field_type is FieldType.CUSTOM:
            custom = config.custom if config is not None else None
            if custom is None or operator not in custom.operators:
                raise DecodeSkip(key, f"'{operator.value}' not available for custom field")
        elif not is_supported(field_type, operator):
            raise DecodeSkip(key, f"'{operator.value}' not supported for {field_type.value}")

        value = self._decode_value(key, field, entry, field_type, operator)
        try:
            return Filter(field=field, operator=operator, value=value, type=field_type)
        except ShapeError as exc:
            raise DecodeSkip(key, exc.reason) from None

    def _decode_type(self, key: str, field: str, entry: Mapping[str, Any]) -> FieldType:
        raw = entry.get("type")
        if raw is not None and raw != "":
            try:
                return FieldType(_single(raw, f"{key}[type]"))
            except ValueError:
                raise DecodeSkip(key, f"unknown type {raw!r}") from None

        if self.registry is not None and field in self.registry:
            return self.registry.type_of(field)

        if "values" in entry:
            return FieldType.ENUM
        if "start" in entry:
            try:
                return infer_type(_single(entry["start"], f"{key}[start]"))
            except DecodeSkip:
                return FieldType.STRING
        return FieldType.STRING

    def _decode_operator(
        self, key: str, field: str, entry: Mapping[str, Any], field_type: FieldType
    ) -> Operator:
        raw = entry.get("operator")
        if raw is not None and raw != "":
            try:
                return Operator(_single(raw, f"{key}[operator]"))
            except ValueError:
                raise DecodeSkip(key, f"unknown operator {raw!r}") from None

        if self.registry is not None and field in self.registry:
            default = self.registry.default_operator_for(field)
        else:
            default = None

        if "values" in entry:
            if default is not None and value_shape(default) is ValueShape.LIST:
                return default
            return Operator.CONTAINS_ANY if field_type is FieldType.ARRAY else Operator.IN
        if "start" in entry or "end" in entry:
            if default is not None and value_shape(default) is ValueShape.RANGE:
                return default
            return Operator.BETWEEN
        if default is not None and value_shape(default) is ValueShape.SCALAR:
            return default
        return Operator.EQUALS

    def _decode_value(
        self,
        key: str,
        field: str,
        entry: Mapping[str, Any],
        field_type: FieldType,
        operator: Operator,
    ) -> Any:
        shape = value_shape(operator)
        if shape is ValueShape.NONE:
            return None

        if shape is ValueShape.RANGE:
            start = entry.get("start", _MISSING)
            end = entry.get("end", _MISSING)
            if start is _MISSING or end is _MISSING:
                raise DecodeSkip(key, "range needs start and end")
            return (
                self._coerce(key, field, field_type, _single(start, f"{key}[start]")),
                self._coerce(key, field, field_type, _single(end, f"{key}[end]")),
            )

        if shape is ValueShape.LIST:
            if "values" in entry:
                raw_values = indexed_to_list(entry["values"])
            elif "value" in entry:
                raw_values = indexed_to_list(entry["value"])
            else:
                raw_values = []
            return [
                self._coerce(key, field, field_type, _single(raw, f"{key}[values]"))
                for raw in raw_values
            ]

        if "value" not in entry:
            raise DecodeSkip(key, "missing value")
        return self._coerce(key, field, field_type, _single(entry["value"], f"{key}[value]"))

    def _coerce(self, key: str, field: str, field_type: FieldType, raw: Any) -> Any:
        if field_type is FieldType.CUSTOM:
            custom = self.registry.custom_type_for(field) if self.registry is not None else None
            if custom is None:
                raise DecodeSkip(key, "no strategy for custom field")
            try:
                return custom.decode(raw)
            except ValueError as exc:
                raise DecodeSkip(key, str(exc)) from None
        try:
            return coerce_value(field_type, raw)
        except ValueError as exc:
            raise DecodeSkip(key, str(exc)) from None

    def decode_sorts(self, raw: Any) -> list[Sort]:
        """Sorts from ``sort[field]``/``sort[direction]`` plus indexed entries."""
        if raw is None:
            return []
        if isinstance(raw, str):
            entries: list[Any] = [{"field": raw}]
        elif isinstance(raw, (list, tuple)):
            entries = list(raw)
        elif isinstance(raw, Mapping):
            entries = []
            if "field" in raw:
                entries.append({"field": raw.get("field"), "direction": raw.get("direction")})
            rest = {k: v for k, v in raw.items() if k not in ("field", "direction")}
            entries.extend(entry for entry in indexed_to_list(rest) if isinstance(entry, Mapping))
        else:
            return []

        sorts: list[Sort] = []
        for entry in entries:
            try:
                sorts.append(self._decode_sort(entry))
            except DecodeSkip as exc:
                logger.debug("%s", exc)
        return sorts

    def _decode_sort(self, entry: Any) -> Sort:
        if isinstance(entry, str):
            entry = {"field": entry}
        if not isinstance(entry, Mapping):
            raise DecodeSkip(SORT_KEY, f"malformed sort {entry!r}")

        field = _single(entry.get("field"), f"{SORT_KEY}[field]")
        if not isinstance(field, str) or not field:
            raise DecodeSkip(SORT_KEY, "missing sort field")

        direction = Direction.ASC
        raw_direction = entry.get("direction")
        if raw_direction is not None:
            try:
                direction = Direction(str(_single(raw_direction, f"{SORT_KEY}[direction]")).lower())
            except (ValueError, DecodeSkip):
                logger.debug("Invalid sort direction %r for %s, using asc", raw_direction, field)

        try:
            return Sort(field=field, direction=direction)
        except ShapeError as exc:
            raise DecodeSkip(SORT_KEY, exc.reason) from None

    def decode_pagination(self, params: Mapping[str, Any]) -> Pagination:
        """Page and page size; invalid or out-of-range values fall back to defaults."""
        page = self._positive_int(params.get(PAGE_KEY), DEFAULT_PAGE, PAGE_KEY)
        per_page = self._positive_int(
            params.get(PER_PAGE_KEY), self.default_per_page, PER_PAGE_KEY
        )
        if per_page > self.max_per_page:
            logger.debug("per_page %d above maximum %d", per_page, self.max_per_page)
            per_page = self.default_per_page
        return Pagination(page=page, per_page=per_page)

    def _positive_int(self, raw: Any, default: int, key: str) -> int:
        if raw is None:
            return default
        try:
            number = coerce_value(FieldType.INTEGER, _single(raw, key))
        except (ValueError, DecodeSkip):
            logger.debug("Invalid %s %r", key, raw)
            return default
        if number < 1:
            logger.debug("Invalid %s %r", key, raw)
            return default
        return number


def encode(
    group: FilterGroup | None = None,
    sorts: Iterable[Sort] = (),
    pagination: Pagination | None = None,
    *,
    registry: FieldRegistry | None = None,
) -> dict[str, str]:
    """Encode with a default ``UrlCodec``."""
    return UrlCodec(registry).encode(group, sorts, pagination)


def decode(params: Mapping[str, Any], *, registry: FieldRegistry | None = None) -> QueryState:
    """Decode with a default ``UrlCodec``."""
    return UrlCodec(registry).decode(params)
