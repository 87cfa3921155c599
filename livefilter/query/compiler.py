"""Compile a filter tree and sort list into collection operations.

The compiler never touches storage. It produces a ``QueryProgram``, an
ordered list of operations that is replayed against anything implementing
the ``Collection`` protocol (see ``SqlCollection`` and ``MemoryCollection``).

Top-level AND members become individual ``add_predicate`` calls; an OR
group always stays one ``add_or_group`` call so it is never merged into the
surrounding conjunction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Protocol, Sequence, Union

from livefilter.exceptions import UnsupportedOperatorError
from livefilter.filters.model import Filter, FilterGroup, Pagination, Sort
from livefilter.filters.operators import (
    Conjunction,
    Direction,
    FieldType,
    Operator,
    is_supported,
)

if TYPE_CHECKING:
    from livefilter.registry import FieldRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Predicate:
    """One comparison against one field."""

    field: str
    operator: Operator
    value: Any = None
    type: FieldType = FieldType.STRING


@dataclass(frozen=True)
class AllOf:
    """Conjunction of clauses."""

    clauses: tuple[Clause, ...]


@dataclass(frozen=True)
class AnyOf:
    """Disjunction of clauses."""

    clauses: tuple[Clause, ...]


Clause = Union[Predicate, AllOf, AnyOf]


class Collection(Protocol):
    """What a queryable collection must offer the compiler."""

    def add_predicate(
        self, field: str, operator: Operator, value: Any, field_type: FieldType = ...
    ) -> None: ...

    def add_or_group(self, clauses: Sequence[Clause]) -> None: ...

    def add_sort(self, field: str, direction: Direction) -> None: ...

    def limit(self, count: int) -> None: ...

    def offset(self, count: int) -> None: ...


# ----------------------------------------------------------------------
# Operations
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class AddPredicate:
    predicate: Predicate

    def apply(self, collection: Collection) -> None:
        p = self.predicate
        collection.add_predicate(p.field, p.operator, p.value, p.type)


@dataclass(frozen=True)
class AddOrGroup:
    clauses: tuple[Clause, ...]

    def apply(self, collection: Collection) -> None:
        collection.add_or_group(self.clauses)


@dataclass(frozen=True)
class AddSort:
    field: str
    direction: Direction

    def apply(self, collection: Collection) -> None:
        collection.add_sort(self.field, self.direction)


@dataclass(frozen=True)
class Limit:
    count: int

    def apply(self, collection: Collection) -> None:
        collection.limit(self.count)


@dataclass(frozen=True)
class Offset:
    count: int

    def apply(self, collection: Collection) -> None:
        collection.offset(self.count)


Operation = Union[AddPredicate, AddOrGroup, AddSort, Limit, Offset]


@dataclass(frozen=True)
class QueryProgram:
    """Ordered operations produced by ``compile_query``."""

    operations: tuple[Operation, ...] = ()

    def apply(self, collection: Collection) -> Collection:
        """Replay every operation on ``collection`` and return it."""
        for operation in self.operations:
            operation.apply(collection)
        return collection

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    @property
    def is_noop(self) -> bool:
        return not self.operations


# ----------------------------------------------------------------------
# Compilation
# ----------------------------------------------------------------------


def compile_filter(item: Filter, registry: FieldRegistry | None = None) -> Clause:
    """Compile one filter, checking its operator against the type table.

    Raises:
        UnsupportedOperatorError: If the operator is not allowed for the
            filter's type, or for the field in the registry.
    """
    if item.type is FieldType.CUSTOM:
        return _compile_custom(item, registry)

    if not is_supported(item.type, item.operator):
        raise UnsupportedOperatorError(item.field, item.type.value, item.operator.value)

    config = registry.get(item.field) if registry is not None else None
    if config is not None:
        if config.type is not item.type:
            logger.debug(
                "Filter on %s has type %s, registry says %s",
                item.field,
                item.type.value,
                config.type.value,
            )
        elif config.operators and item.operator not in config.operators:
            raise UnsupportedOperatorError(item.field, item.type.value, item.operator.value)

    return Predicate(item.field, item.operator, item.value, item.type)


def _compile_custom(item: Filter, registry: FieldRegistry | None) -> Clause:
    custom = registry.custom_type_for(item.field) if registry is not None else None
    if custom is None or item.operator not in custom.operators:
        raise UnsupportedOperatorError(item.field, FieldType.CUSTOM.value, item.operator.value)
    if custom.compile is not None:
        compiled = custom.compile(item)
        if compiled is not None:
            return compiled
    return Predicate(item.field, item.operator, item.value, item.type)


def compile_group(group: FilterGroup, registry: FieldRegistry | None = None) -> Clause | None:
    """Compile a group into a clause tree.

    Returns:
        None for a group that constrains nothing, the lone clause for a
        single member, otherwise ``AllOf``/``AnyOf`` per the conjunction.
    """
    clauses: list[Clause] = [compile_filter(item, registry) for item in group.filters]
    for nested in group.groups:
        clause = compile_group(nested, registry)
        if clause is not None:
            clauses.append(clause)

    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    if group.conjunction is Conjunction.OR:
        return AnyOf(tuple(clauses))
    return AllOf(tuple(clauses))


def _top_level(clause: Clause) -> Iterable[Operation]:
    if isinstance(clause, Predicate):
        yield AddPredicate(clause)
    elif isinstance(clause, AnyOf):
        yield AddOrGroup(clause.clauses)
    else:
        for member in clause.clauses:
            yield from _top_level(member)


def compile_query(
    group: FilterGroup,
    sorts: Iterable[Sort] = (),
    *,
    registry: FieldRegistry | None = None,
    pagination: Pagination | None = None,
) -> QueryProgram:
    """Compile filters, sorts and optional pagination into a ``QueryProgram``.

    Sorts are emitted in the order given; nothing is sorted implicitly.
    An empty group adds no predicate at all.

    Raises:
        UnsupportedOperatorError: On any operator/type combination outside
            the support table.
    """
    operations: list[Operation] = []

    clause = compile_group(group, registry)
    if clause is not None:
        operations.extend(_top_level(clause))

    for sort in sorts:
        operations.append(AddSort(sort.field, sort.direction))

    if pagination is not None:
        operations.append(Limit(pagination.limit))
        operations.append(Offset(pagination.offset))

    logger.debug(
        "Compiled %d filter(s) into %d operation(s)", group.count_filters(), len(operations)
    )
    return QueryProgram(tuple(operations))
