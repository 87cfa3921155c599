"""In-memory implementation of the collection protocol.

Rows are mappings or plain objects. Missing values behave like SQL NULL:
a comparison against None is never true, so ``not_equals`` and
``not_contains`` do not match rows without a value either.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Mapping
from typing import Any, Callable, Iterable, Sequence

from livefilter.exceptions import UnsupportedOperatorError
from livefilter.filters.operators import Direction, FieldType, Operator
from livefilter.query.compiler import AllOf, AnyOf, Clause, Predicate

logger = logging.getLogger(__name__)


def read_field(row: Any, field: str) -> Any:
    """Value of ``field`` in a mapping or attribute of an object; None if absent."""
    if isinstance(row, Mapping):
        return row.get(field)
    return getattr(row, field, None)


def _safe_compare(actual: Any, expected: Any, compare: Callable[[Any, Any], bool]) -> bool:
    if actual is None or expected is None:
        return False
    try:
        return bool(compare(actual, expected))
    except TypeError:
        return False


def _text(value: Any) -> str:
    return str(value).lower()


def _members(actual: Any) -> list[Any]:
    if actual is None:
        return []
    if isinstance(actual, (list, tuple, set, frozenset)):
        return list(actual)
    return [actual]


def _is_blank(actual: Any, field_type: FieldType) -> bool:
    if actual is None:
        return True
    if field_type is FieldType.STRING:
        return actual == ""
    if field_type is FieldType.ARRAY:
        return len(_members(actual)) == 0
    return False


def evaluate(predicate: Predicate, row: Any) -> bool:
    """Check one predicate against one row."""
    actual = read_field(row, predicate.field)
    op = predicate.operator
    value = predicate.value

    if op is Operator.IS_EMPTY:
        return _is_blank(actual, predicate.type)
    if op is Operator.IS_NOT_EMPTY:
        return not _is_blank(actual, predicate.type)
    if op is Operator.IS_TRUE:
        return actual is True
    if op is Operator.IS_FALSE:
        return actual is False

    if op is Operator.CONTAINS_ANY:
        present = _members(actual)
        return any(member in present for member in value)
    if op is Operator.CONTAINS_ALL:
        present = _members(actual)
        return all(member in present for member in value)
    if op is Operator.CONTAINS_NONE:
        present = _members(actual)
        return not any(member in present for member in value)

    if actual is None:
        return False

    if op is Operator.EQUALS:
        return actual == value
    if op is Operator.NOT_EQUALS:
        return actual != value
    if op is Operator.CONTAINS:
        return _text(value) in _text(actual)
    if op is Operator.NOT_CONTAINS:
        return _text(value) not in _text(actual)
    if op is Operator.STARTS_WITH:
        return _text(actual).startswith(_text(value))
    if op is Operator.ENDS_WITH:
        return _text(actual).endswith(_text(value))
    if op in (Operator.GREATER_THAN, Operator.AFTER):
        return _safe_compare(actual, value, lambda a, b: a > b)
    if op is Operator.GREATER_THAN_OR_EQUAL:
        return _safe_compare(actual, value, lambda a, b: a >= b)
    if op in (Operator.LESS_THAN, Operator.BEFORE):
        return _safe_compare(actual, value, lambda a, b: a < b)
    if op is Operator.LESS_THAN_OR_EQUAL:
        return _safe_compare(actual, value, lambda a, b: a <= b)
    if op is Operator.BETWEEN:
        start, end = value
        return _safe_compare(actual, start, lambda a, b: a >= b) and _safe_compare(
            actual, end, lambda a, b: a <= b
        )
    if op is Operator.NOT_BETWEEN:
        start, end = value
        return _safe_compare(actual, start, lambda a, b: a < b) or _safe_compare(
            actual, end, lambda a, b: a > b
        )
    if op is Operator.IN:
        return actual in value

    raise UnsupportedOperatorError(predicate.field, predicate.type.value, op.value)


def matches(clause: Clause, row: Any) -> bool:
    """Check a clause tree against one row."""
    if isinstance(clause, Predicate):
        return evaluate(clause, row)
    if isinstance(clause, AnyOf):
        return any(matches(member, row) for member in clause.clauses)
    if isinstance(clause, AllOf):
        return all(matches(member, row) for member in clause.clauses)
    raise TypeError(f"not a clause: {clause!r}")


class MemoryCollection:
    """Filter, sort and page a list of rows held in memory.

    Sorting is stable; rows without a value sort last in either direction.
    """

    def __init__(self, rows: Iterable[Any]) -> None:
        self._rows = list(rows)
        self._clauses: list[Clause] = []
        self._sorts: list[tuple[str, Direction]] = []
        self._limit: int | None = None
        self._offset = 0

    def add_predicate(
        self,
        field: str,
        operator: Operator,
        value: Any,
        field_type: FieldType = FieldType.STRING,
    ) -> None:
        self._clauses.append(Predicate(field, operator, value, field_type))

    def add_or_group(self, clauses: Sequence[Clause]) -> None:
        self._clauses.append(AnyOf(tuple(clauses)))

    def add_sort(self, field: str, direction: Direction) -> None:
        self._sorts.append((field, direction))

    def limit(self, count: int) -> None:
        self._limit = count

    def offset(self, count: int) -> None:
        self._offset = count

    def _matching(self) -> list[Any]:
        return [row for row in self._rows if all(matches(c, row) for c in self._clauses)]

    def _sorted(self, rows: list[Any]) -> list[Any]:
        # Apply keys from last to first; each sort is stable.
        for field, direction in reversed(self._sorts):
            if direction is Direction.DESC:
                rows.sort(
                    key=lambda row: _sort_key(read_field(row, field), nulls_high=False),
                    reverse=True,
                )
            else:
                rows.sort(key=lambda row: _sort_key(read_field(row, field), nulls_high=True))
        return rows

    def all(self) -> list[Any]:
        rows = self._sorted(self._matching())
        end = None if self._limit is None else self._offset + self._limit
        return rows[self._offset:end]

    def count(self) -> int:
        """Number of matching rows, ignoring limit and offset."""
        return len(self._matching())

    def count_by(self, field: str) -> dict[Any, int]:
        counts = Counter(read_field(row, field) for row in self._matching())
        logger.debug("Counted %d distinct %s value(s)", len(counts), field)
        return dict(counts)


def _sort_key(value: Any, *, nulls_high: bool) -> tuple[bool, Any]:
    if value is None:
        return (nulls_high, 0)
    return (not nulls_high, value)
