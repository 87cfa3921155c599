"""Immutable value objects describing a filtered, sorted, paginated request."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterator, NamedTuple, TypeVar

from livefilter.exceptions import ShapeError
from livefilter.filters.operators import (
    Conjunction,
    Direction,
    FieldType,
    Operator,
    ValueShape,
    value_shape,
)
from livefilter.filters.values import is_scalar_of

# Keys the URL codec uses for group structure; they cannot name a field.
RESERVED_FIELDS: frozenset[str] = frozenset({"_conjunction", "_groups"})

_E = TypeVar("_E", bound=Enum)


def _coerce_enum(enum_cls: type[_E], raw: Any, what: str, field_name: str | None = None) -> _E:
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(raw)
    except ValueError:
        raise ShapeError(f"unknown {what} {raw!r}", field=field_name, value=raw) from None


def _check_field_name(name: Any) -> None:
    if not isinstance(name, str) or not name:
        raise ShapeError("field name must be a non-empty string", value=name)
    if "[" in name or "]" in name:
        raise ShapeError("field name cannot contain brackets", field=name)
    if name in RESERVED_FIELDS:
        raise ShapeError("field name is reserved", field=name)


@dataclass(frozen=True)
class Filter:
    """A single condition on one field.

    The value shape follows the operator: no value for ``is_empty`` and
    friends, a ``(start, end)`` pair for ``between``, a tuple for ``in`` and
    the ``contains_*`` family, and a single scalar otherwise. Lists are
    normalized to tuples so filters compare and hash structurally.
    """

    field: str
    operator: Operator
    value: Any = None
    type: FieldType = FieldType.STRING

    def __post_init__(self) -> None:
        _check_field_name(self.field)
        operator = _coerce_enum(Operator, self.operator, "operator", self.field)
        field_type = _coerce_enum(FieldType, self.type, "field type", self.field)
        object.__setattr__(self, "operator", operator)
        object.__setattr__(self, "type", field_type)
        object.__setattr__(self, "value", self._normalize_value(self.value))

    def _normalize_value(self, value: Any) -> Any:
        shape = value_shape(self.operator)

        if shape is ValueShape.NONE:
            return None

        if shape is ValueShape.RANGE:
            if not isinstance(value, (list, tuple)) or len(value) != 2:
                raise ShapeError(
                    f"{self.operator.value} needs a (start, end) pair",
                    field=self.field,
                    value=value,
                )
            bounds = tuple(value)
            for bound in bounds:
                self._check_scalar(bound)
            return bounds

        if shape is ValueShape.LIST:
            if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple, set, frozenset)):
                raise ShapeError(
                    f"{self.operator.value} needs a list of values",
                    field=self.field,
                    value=value,
                )
            members = tuple(value)
            for member in members:
                self._check_scalar(member)
            return members

        self._check_scalar(value)
        return value

    def _check_scalar(self, value: Any) -> None:
        if value is None:
            raise ShapeError(
                f"{self.operator.value} needs a value", field=self.field, value=value
            )
        if not is_scalar_of(self.type, value):
            raise ShapeError(
                f"{value!r} is not a valid {self.type.value} value",
                field=self.field,
                value=value,
            )

    @property
    def shape(self) -> ValueShape:
        return value_shape(self.operator)

    @property
    def scalar(self) -> Any:
        """The single value of a scalar filter."""
        self._expect(ValueShape.SCALAR)
        return self.value

    @property
    def bounds(self) -> tuple[Any, Any]:
        """The ``(start, end)`` pair of a range filter."""
        self._expect(ValueShape.RANGE)
        return self.value

    @property
    def members(self) -> tuple[Any, ...]:
        """The values of a list filter."""
        self._expect(ValueShape.LIST)
        return self.value

    def _expect(self, shape: ValueShape) -> None:
        if self.shape is not shape:
            raise ShapeError(
                f"{self.operator.value} carries a {self.shape.value} value, not {shape.value}",
                field=self.field,
            )

    def with_value(self, value: Any) -> Filter:
        return replace(self, value=value)

    def with_operator(self, operator: Operator | str, value: Any = None) -> Filter:
        return replace(self, operator=operator, value=value)


@dataclass(frozen=True)
class FilterGroup:
    """Filters and nested groups combined by one conjunction.

    A group without filters (and without non-empty sub-groups) constrains
    nothing. Each field may appear at most once among the filters of one
    level; the same field may appear again inside a nested group.
    """

    filters: tuple[Filter, ...] = ()
    groups: tuple[FilterGroup, ...] = ()
    conjunction: Conjunction = Conjunction.AND

    def __post_init__(self) -> None:
        filters = tuple(self.filters)
        groups = tuple(self.groups)
        conjunction = _coerce_enum(Conjunction, self.conjunction, "conjunction")

        seen: set[str] = set()
        for item in filters:
            if not isinstance(item, Filter):
                raise ShapeError("filters must contain Filter values", value=item)
            if item.field in seen:
                raise ShapeError(
                    "field appears more than once in one group; "
                    "put the extra condition in a nested group",
                    field=item.field,
                )
            seen.add(item.field)
        for group in groups:
            if not isinstance(group, FilterGroup):
                raise ShapeError("groups must contain FilterGroup values", value=group)

        object.__setattr__(self, "filters", filters)
        object.__setattr__(self, "groups", groups)
        object.__setattr__(self, "conjunction", conjunction)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_empty(self) -> bool:
        """True when the group constrains nothing."""
        return not self.filters and all(group.is_empty() for group in self.groups)

    def has_filters(self) -> bool:
        return not self.is_empty()

    def count_filters(self) -> int:
        """Number of filters at this level and in all nested groups."""
        return len(self.filters) + sum(group.count_filters() for group in self.groups)

    def walk(self) -> Iterator[Filter]:
        """Yield every filter, depth first, this level before nested groups."""
        yield from self.filters
        for group in self.groups:
            yield from group.walk()

    def find(self, field_name: str) -> Filter | None:
        """First filter on ``field_name`` anywhere in the tree."""
        for item in self.walk():
            if item.field == field_name:
                return item
        return None

    def get(self, field_name: str) -> Filter | None:
        """The filter on ``field_name`` at this level only."""
        for item in self.filters:
            if item.field == field_name:
                return item
        return None

    # ------------------------------------------------------------------
    # Derivation (each returns a new group)
    # ------------------------------------------------------------------

    def add_filter(self, item: Filter) -> FilterGroup:
        return replace(self, filters=self.filters + (item,))

    def remove_filter(self, field_name: str) -> FilterGroup:
        """Drop the filter on ``field_name`` at this level."""
        return replace(self, filters=tuple(f for f in self.filters if f.field != field_name))

    def replace_filter(self, field_name: str, item: Filter) -> FilterGroup:
        """Swap the filter on ``field_name`` for ``item``, keeping its position.

        Returns the group unchanged when no filter on that field exists.
        """
        return replace(
            self,
            filters=tuple(item if f.field == field_name else f for f in self.filters),
        )

    def with_filter(self, item: Filter) -> FilterGroup:
        """Replace the filter on the same field, or append ``item``."""
        if self.get(item.field) is not None:
            return self.replace_filter(item.field, item)
        return self.add_filter(item)

    def without_field(self, field_name: str) -> FilterGroup:
        """Remove ``field_name`` from every level, dropping groups left empty."""
        groups = tuple(
            stripped
            for stripped in (group.without_field(field_name) for group in self.groups)
            if not stripped.is_empty()
        )
        return replace(
            self,
            filters=tuple(f for f in self.filters if f.field != field_name),
            groups=groups,
        )

    def add_group(self, group: FilterGroup) -> FilterGroup:
        return replace(self, groups=self.groups + (group,))

    def prepend_group(self, group: FilterGroup) -> FilterGroup:
        return replace(self, groups=(group,) + self.groups)


@dataclass(frozen=True)
class Sort:
    """One ordering key."""

    field: str
    direction: Direction = Direction.ASC

    def __post_init__(self) -> None:
        _check_field_name(self.field)
        object.__setattr__(
            self, "direction", _coerce_enum(Direction, self.direction, "direction", self.field)
        )

    def toggled(self) -> Sort:
        """The same key with the opposite direction."""
        flipped = Direction.DESC if self.direction is Direction.ASC else Direction.ASC
        return replace(self, direction=flipped)


DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 10
MAX_PER_PAGE = 100


@dataclass(frozen=True)
class Pagination:
    """1-based page number and page size, at most ``MAX_PER_PAGE`` rows."""

    page: int = DEFAULT_PAGE
    per_page: int = DEFAULT_PER_PAGE

    def __post_init__(self) -> None:
        for name in ("page", "per_page"):
            number = getattr(self, name)
            if not isinstance(number, int) or isinstance(number, bool) or number < 1:
                raise ShapeError(f"{name} must be a positive integer", value=number)
        if self.per_page > MAX_PER_PAGE:
            raise ShapeError(f"per_page must not exceed {MAX_PER_PAGE}", value=self.per_page)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        return self.per_page


class QueryState(NamedTuple):
    """Everything a list view needs to re-run a query."""

    filters: FilterGroup
    sorts: list[Sort]
    pagination: Pagination
