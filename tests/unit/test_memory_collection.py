"""Unit tests for the in-memory collection."""

from __future__ import annotations

from datetime import date
from types import SimpleNamespace
from typing import Any

from livefilter.filters.model import Filter, FilterGroup, Pagination, Sort
from livefilter.filters.operators import Conjunction, Direction, FieldType, Operator
from livefilter.query.compiler import compile_query
from livefilter.query.memory import MemoryCollection, read_field


def _run(rows: list[dict[str, Any]], group: FilterGroup, sorts=(), pagination=None) -> list[int]:
    collection = compile_query(group, sorts, pagination=pagination).apply(MemoryCollection(rows))
    return [row["id"] for row in collection.all()]


def _only(*filters: Filter) -> FilterGroup:
    return FilterGroup(filters=filters)


def test_read_field_mapping_and_object() -> None:
    assert read_field({"a": 1}, "a") == 1
    assert read_field({"a": 1}, "b") is None
    assert read_field(SimpleNamespace(a=2), "a") == 2
    assert read_field(SimpleNamespace(a=2), "b") is None


# --- Predicates ---


class TestEvaluate:
    def test_string_contains_is_case_insensitive(self, todo_rows) -> None:
        group = _only(Filter("title", Operator.CONTAINS, "BUG"))
        assert _run(todo_rows, group) == [1]

    def test_equals_is_case_sensitive(self, todo_rows) -> None:
        assert _run(todo_rows, _only(Filter("assigned_to", Operator.EQUALS, "Alice"))) == []
        assert _run(todo_rows, _only(Filter("assigned_to", Operator.EQUALS, "alice"))) == [1, 4]

    def test_not_equals_skips_missing(self, todo_rows) -> None:
        group = _only(Filter("assigned_to", Operator.NOT_EQUALS, "alice"))
        assert _run(todo_rows, group) == [2, 5]

    def test_string_is_empty(self, todo_rows) -> None:
        group = _only(Filter("description", Operator.IS_EMPTY))
        assert _run(todo_rows, group) == [4, 5]
        group = _only(Filter("description", Operator.IS_NOT_EMPTY))
        assert _run(todo_rows, group) == [1, 2, 3]

    def test_starts_and_ends_with(self, todo_rows) -> None:
        assert _run(todo_rows, _only(Filter("title", Operator.STARTS_WITH, "re"))) == [3, 4]
        assert _run(todo_rows, _only(Filter("title", Operator.ENDS_WITH, "DOCS"))) == [2]

    def test_numeric_comparisons(self, todo_rows) -> None:
        group = _only(Filter("complexity", Operator.GREATER_THAN, 7, FieldType.INTEGER))
        assert _run(todo_rows, group) == [3, 4]
        group = _only(Filter("estimated_hours", Operator.LESS_THAN_OR_EQUAL, 2.5, FieldType.FLOAT))
        assert _run(todo_rows, group) == [1, 5]

    def test_between_and_not_between(self, todo_rows) -> None:
        group = _only(Filter("complexity", Operator.BETWEEN, (2, 3), FieldType.INTEGER))
        assert _run(todo_rows, group) == [1, 2]
        group = _only(Filter("complexity", Operator.NOT_BETWEEN, (2, 8), FieldType.INTEGER))
        assert _run(todo_rows, group) == [4, 5]

    def test_dates(self, todo_rows) -> None:
        group = _only(Filter("due_date", Operator.BEFORE, date(2024, 3, 1), FieldType.DATE))
        assert _run(todo_rows, group) == [4, 5]
        group = _only(Filter("due_date", Operator.IS_EMPTY, type=FieldType.DATE))
        assert _run(todo_rows, group) == [3]

    def test_booleans(self, todo_rows) -> None:
        assert _run(todo_rows, _only(Filter("is_urgent", Operator.IS_TRUE, type="boolean"))) == [1, 4]
        group = _only(Filter("is_urgent", Operator.EQUALS, False, FieldType.BOOLEAN))
        assert _run(todo_rows, group) == [2, 3, 5]

    def test_enum_in(self, todo_rows) -> None:
        group = _only(Filter("status", Operator.IN, ["pending", "archived"], FieldType.ENUM))
        assert _run(todo_rows, group) == [1, 3, 5]

    def test_array_operators(self, todo_rows) -> None:
        any_of = _only(Filter("tags", Operator.CONTAINS_ANY, ["bug", "docs"], FieldType.ARRAY))
        assert _run(todo_rows, any_of) == [1, 2]
        all_of = _only(Filter("tags", Operator.CONTAINS_ALL, ["bug", "urgent"], FieldType.ARRAY))
        assert _run(todo_rows, all_of) == [1]
        none_of = _only(Filter("tags", Operator.CONTAINS_NONE, ["bug"], FieldType.ARRAY))
        assert _run(todo_rows, none_of) == [2, 3, 4, 5]
        empty = _only(Filter("tags", Operator.IS_EMPTY, type=FieldType.ARRAY))
        assert _run(todo_rows, empty) == [4, 5]


# --- Groups ---


class TestGroups:
    def test_nested_conjunctions(self, todo_rows) -> None:
        inner = FilterGroup(
            filters=(
                Filter("is_urgent", Operator.EQUALS, True, FieldType.BOOLEAN),
                Filter("complexity", Operator.GREATER_THAN, 7, FieldType.INTEGER),
            ),
            conjunction=Conjunction.OR,
        )
        group = FilterGroup(
            filters=(Filter("status", Operator.EQUALS, "pending", FieldType.ENUM),),
            groups=(inner,),
        )
        assert _run(todo_rows, group) == [1, 3]

    def test_empty_group_returns_everything(self, todo_rows) -> None:
        assert _run(todo_rows, FilterGroup()) == [1, 2, 3, 4, 5]


# --- Sorting, paging and counting ---


class TestCollection:
    def test_sort_with_missing_values_last(self, todo_rows) -> None:
        asc = _run(todo_rows, FilterGroup(), [Sort("due_date")])
        assert asc == [5, 4, 1, 2, 3]
        desc = _run(todo_rows, FilterGroup(), [Sort("due_date", Direction.DESC)])
        assert desc == [2, 1, 4, 5, 3]

    def test_multi_key_sort(self, todo_rows) -> None:
        order = _run(
            todo_rows,
            FilterGroup(),
            [Sort("is_urgent", Direction.DESC), Sort("complexity", Direction.ASC)],
        )
        assert order == [1, 4, 5, 2, 3]

    def test_pagination(self, todo_rows) -> None:
        sorts = [Sort("id")]
        assert _run(todo_rows, FilterGroup(), sorts, Pagination(1, 2)) == [1, 2]
        assert _run(todo_rows, FilterGroup(), sorts, Pagination(3, 2)) == [5]

    def test_count_ignores_paging(self, todo_rows) -> None:
        collection = MemoryCollection(todo_rows)
        collection.add_predicate("status", Operator.EQUALS, "pending", FieldType.ENUM)
        collection.limit(1)
        assert collection.count() == 2
        assert len(collection.all()) == 1

    def test_count_by(self, todo_rows) -> None:
        collection = MemoryCollection(todo_rows)
        collection.add_predicate("is_urgent", Operator.EQUALS, False, FieldType.BOOLEAN)
        assert collection.count_by("status") == {"in_progress": 1, "pending": 1, "archived": 1}
