"""Unit tests for the URL codec."""

from __future__ import annotations

import logging
from datetime import date, datetime

import pytest

from livefilter.filters.model import MAX_PER_PAGE, Filter, FilterGroup, Pagination, Sort
from livefilter.filters.operators import (
    TYPE_OPERATORS,
    Conjunction,
    Direction,
    FieldType,
    Operator,
    ValueShape,
    value_shape,
)
from livefilter.registry import CustomFieldType, FieldRegistry, custom_field
from livefilter.url.codec import UrlCodec, decode, encode


def _round_trip(group: FilterGroup, sorts=(), pagination=None, registry=None):
    params = encode(group, sorts, pagination, registry=registry)
    return decode(params, registry=registry)


# --- Encoding ---


class TestEncode:
    def test_scalar_filter(self) -> None:
        group = FilterGroup(filters=(Filter("status", Operator.EQUALS, "pending", FieldType.ENUM),))
        assert encode(group) == {
            "filters[status][operator]": "equals",
            "filters[status][type]": "enum",
            "filters[status][value]": "pending",
        }

    def test_list_filter(self) -> None:
        group = FilterGroup(filters=(Filter("tags", Operator.CONTAINS_ANY, ["bug", "docs"], "array"),))
        params = encode(group)
        assert params["filters[tags][values][0]"] == "bug"
        assert params["filters[tags][values][1]"] == "docs"

    def test_range_filter(self) -> None:
        group = FilterGroup(
            filters=(
                Filter(
                    "due_date", Operator.BETWEEN, (date(2024, 1, 1), date(2024, 1, 31)), "date"
                ),
            )
        )
        params = encode(group)
        assert params["filters[due_date][start]"] == "2024-01-01"
        assert params["filters[due_date][end]"] == "2024-01-31"

    def test_valueless_filter(self) -> None:
        group = FilterGroup(filters=(Filter("is_urgent", Operator.IS_TRUE, type="boolean"),))
        assert encode(group) == {
            "filters[is_urgent][operator]": "is_true",
            "filters[is_urgent][type]": "boolean",
        }

    def test_top_level_and_is_implicit(self) -> None:
        group = FilterGroup(filters=(Filter("title", Operator.CONTAINS, "x"),))
        assert "filters[_conjunction]" not in encode(group)
        or_group = FilterGroup(filters=group.filters, conjunction=Conjunction.OR)
        assert encode(or_group)["filters[_conjunction]"] == "or"

    def test_nested_groups_carry_conjunction(self) -> None:
        inner = FilterGroup(filters=(Filter("title", Operator.CONTAINS, "x"),))
        params = encode(FilterGroup(groups=(inner,)))
        assert params["filters[_groups][0][_conjunction]"] == "and"
        assert params["filters[_groups][0][title][value]"] == "x"

    def test_sorts(self) -> None:
        params = encode(None, [Sort("due_date", Direction.DESC), Sort("title")])
        assert params == {
            "sort[field]": "due_date",
            "sort[direction]": "desc",
            "sort[1][field]": "title",
            "sort[1][direction]": "asc",
        }

    def test_default_pagination_omitted(self) -> None:
        assert encode(None, (), Pagination(1, 10)) == {}
        assert encode(None, (), Pagination(2, 25)) == {"page": "2", "per_page": "25"}

    def test_empty_state(self) -> None:
        assert encode(FilterGroup()) == {}

    def test_query_string(self) -> None:
        codec = UrlCodec()
        text = codec.encode_query_string(None, [Sort("title")])
        assert text == "sort%5Bfield%5D=title&sort%5Bdirection%5D=asc"


# --- Round trips ---


# Three distinct sample scalars per built-in type; ranges take the first two.
_SAMPLES = {
    FieldType.STRING: ("a&b=c [x]", "100% done?", "plain"),
    FieldType.INTEGER: (-3, 0, 42),
    FieldType.FLOAT: (0.5, 2.25, -7.75),
    FieldType.BOOLEAN: (True, False, True),
    FieldType.DATE: (date(2024, 2, 29), date(2024, 3, 1), date(1999, 12, 31)),
    FieldType.DATETIME: (
        datetime(2024, 1, 1, 0, 0),
        datetime(2024, 1, 1, 23, 59, 59),
        datetime(2024, 6, 15, 12, 30, 5),
    ),
    FieldType.ENUM: ("pending", "in_progress", "completed"),
    FieldType.ARRAY: ("bug", "feature", "docs"),
}


def _generated_filters() -> list[Filter]:
    items = []
    for field_type, operators in TYPE_OPERATORS.items():
        if field_type is FieldType.CUSTOM:
            continue
        samples = _SAMPLES[field_type]
        name = f"{field_type.value}_field"
        for operator in operators:
            shape = value_shape(operator)
            if shape is ValueShape.NONE:
                items.append(Filter(name, operator, None, field_type))
            elif shape is ValueShape.SCALAR:
                items.append(Filter(name, operator, samples[0], field_type))
            elif shape is ValueShape.RANGE:
                items.append(Filter(name, operator, samples[:2], field_type))
            else:
                for length in (0, 1, 3):
                    items.append(Filter(name, operator, samples[:length], field_type))
    return items


def _filter_id(item: Filter) -> str:
    suffix = str(len(item.members)) if item.shape is ValueShape.LIST else item.shape.value
    return f"{item.type.value}-{item.operator.value}-{suffix}"


class TestRoundTrip:
    @pytest.mark.parametrize(
        "item",
        [
            Filter("title", Operator.CONTAINS, "a&b=c [x]"),
            Filter("title", Operator.IS_EMPTY),
            Filter("status", Operator.IN, ["pending", "in_progress"], FieldType.ENUM),
            Filter("complexity", Operator.GREATER_THAN_OR_EQUAL, -3, FieldType.INTEGER),
            Filter("estimated_hours", Operator.NOT_BETWEEN, (0.5, 2.25), FieldType.FLOAT),
            Filter("is_urgent", Operator.EQUALS, False, FieldType.BOOLEAN),
            Filter("due_date", Operator.BEFORE, date(2024, 2, 29), FieldType.DATE),
            Filter(
                "inserted_at",
                Operator.BETWEEN,
                (datetime(2024, 1, 1, 0, 0), datetime(2024, 1, 1, 23, 59, 59)),
                FieldType.DATETIME,
            ),
            Filter("tags", Operator.CONTAINS_NONE, [], FieldType.ARRAY),
        ],
    )
    def test_single_filter(self, item: Filter) -> None:
        group = FilterGroup(filters=(item,))
        state = _round_trip(group)
        assert state.filters == group

    @pytest.mark.parametrize("item", _generated_filters(), ids=_filter_id)
    def test_every_type_and_operator(self, item: Filter) -> None:
        group = FilterGroup(filters=(item,))
        assert _round_trip(group).filters == group

    @pytest.mark.parametrize("item", _generated_filters(), ids=_filter_id)
    def test_every_type_and_operator_nested(self, item: Filter) -> None:
        group = FilterGroup(
            filters=(Filter("status", Operator.EQUALS, "pending", FieldType.ENUM),),
            groups=(FilterGroup(filters=(item,), conjunction=Conjunction.OR),),
        )
        assert _round_trip(group).filters == group

    def test_largest_page_size(self) -> None:
        pagination = Pagination(page=2, per_page=MAX_PER_PAGE)
        assert _round_trip(FilterGroup(), (), pagination).pagination == pagination

    def test_full_state(self) -> None:
        inner = FilterGroup(
            filters=(
                Filter("is_urgent", Operator.EQUALS, True, FieldType.BOOLEAN),
                Filter("complexity", Operator.GREATER_THAN, 7, FieldType.INTEGER),
            ),
            conjunction=Conjunction.OR,
        )
        deeper = FilterGroup(
            filters=(Filter("title", Operator.STARTS_WITH, "Fix"),),
            groups=(FilterGroup(filters=(Filter("status", Operator.EQUALS, "x", "enum"),)),),
        )
        group = FilterGroup(
            filters=(Filter("status", Operator.EQUALS, "pending", FieldType.ENUM),),
            groups=(inner, deeper),
        )
        sorts = [Sort("due_date", Direction.DESC), Sort("title"), Sort("id", Direction.DESC)]
        pagination = Pagination(page=4, per_page=50)

        state = _round_trip(group, sorts, pagination)
        assert state == (group, sorts, pagination)

    def test_round_trip_through_query_string(self) -> None:
        codec = UrlCodec()
        group = FilterGroup(
            filters=(Filter("title", Operator.CONTAINS, "100% done?"),),
            conjunction=Conjunction.OR,
        )
        text = codec.encode_query_string(group, [Sort("title")], Pagination(2, 10))
        assert codec.decode_query_string(text) == (group, [Sort("title")], Pagination(2, 10))


# --- Updating existing parameters ---


class TestUpdateParams:
    STATUS = FilterGroup(filters=(Filter("status", Operator.EQUALS, "pending", FieldType.ENUM),))

    def test_stale_filters_replaced_and_foreign_keys_kept(self) -> None:
        params = {
            "tab": "open",
            "filters[title][operator]": "contains",
            "filters[title][value]": "old",
            "filters[_conjunction]": "or",
        }
        updated = UrlCodec().update_params(params, self.STATUS)
        assert updated == {
            "tab": "open",
            "filters[status][operator]": "equals",
            "filters[status][type]": "enum",
            "filters[status][value]": "pending",
        }
        assert "filters[title][value]" in params

    def test_nested_filters_replaced(self) -> None:
        params = {"filters": {"title": {"value": "old"}}, "q": ["a", "b"]}
        updated = UrlCodec().update_params(params, FilterGroup())
        assert updated == {"q": ["a", "b"]}

    def test_sorts_and_pagination_untouched_when_not_given(self) -> None:
        params = {"sort[field]": "title", "page": "3", "per_page": "25"}
        assert UrlCodec().update_params(params, None) == params

    def test_sorts_replaced(self) -> None:
        params = {"sort[field]": "title", "sort[1][field]": "id", "sort[1][direction]": "desc"}
        updated = UrlCodec().update_params(params, None, [Sort("due_date", Direction.DESC)])
        assert updated == {"sort[field]": "due_date", "sort[direction]": "desc"}
        assert UrlCodec().update_params(params, None, []) == {}

    def test_default_pagination_removes_page_keys(self) -> None:
        params = {"page": "3", "per_page": "25", "view": "table"}
        assert UrlCodec().update_params(params, None, None, Pagination()) == {"view": "table"}

    def test_pagination_replaced(self) -> None:
        params = {"page": "3", "per_page": "25"}
        updated = UrlCodec().update_params(params, None, None, Pagination(page=5, per_page=10))
        assert updated == {"page": "5"}


# --- Decoding ---


class TestDecode:
    def test_indexed_values_repaired(self) -> None:
        params = {
            "filters": {
                "status": {"operator": "in", "type": "enum", "values": {"1": "b", "0": "a"}}
            }
        }
        state = decode(params)
        assert state.filters.get("status").members == ("a", "b")

    def test_bogus_operator_dropped(self, caplog: pytest.LogCaptureFixture) -> None:
        params = {
            "filters[status][operator]": "bogus_op",
            "filters[status][value]": "x",
            "filters[title][operator]": "contains",
            "filters[title][value]": "bug",
        }
        with caplog.at_level(logging.DEBUG, logger="livefilter.url.codec"):
            state = decode(params)
        assert [f.field for f in state.filters.filters] == ["title"]
        assert "bogus_op" in caplog.text

    def test_unsupported_pair_dropped(self) -> None:
        params = {
            "filters[complexity][operator]": "contains",
            "filters[complexity][type]": "integer",
            "filters[complexity][value]": "7",
        }
        assert decode(params).filters.is_empty()

    def test_bad_value_dropped(self) -> None:
        params = {
            "filters[complexity][operator]": "equals",
            "filters[complexity][type]": "integer",
            "filters[complexity][value]": "seven",
        }
        assert decode(params).filters.is_empty()

    def test_missing_range_bound_dropped(self) -> None:
        params = {"filters[complexity][operator]": "between", "filters[complexity][start]": "1"}
        assert decode(params).filters.is_empty()

    def test_registry_supplies_type_and_operator(self, todo_registry: FieldRegistry) -> None:
        state = decode({"filters[complexity][value]": "7"}, registry=todo_registry)
        assert state.filters.get("complexity") == Filter(
            "complexity", Operator.EQUALS, 7, FieldType.INTEGER
        )
        state = decode(
            {"filters[due_date][start]": "2024-01-01", "filters[due_date][end]": "2024-01-31"},
            registry=todo_registry,
        )
        assert state.filters.get("due_date").bounds == (date(2024, 1, 1), date(2024, 1, 31))

    def test_explicit_type_wins_over_registry(self, todo_registry: FieldRegistry) -> None:
        params = {
            "filters[complexity][operator]": "contains",
            "filters[complexity][type]": "string",
            "filters[complexity][value]": "7",
        }
        state = decode(params, registry=todo_registry)
        assert state.filters.get("complexity").type is FieldType.STRING

    def test_type_inference_without_registry(self) -> None:
        state = decode(
            {
                "filters[status][values][0]": "a",
                "filters[n][start]": "1",
                "filters[n][end]": "5",
            }
        )
        assert state.filters.get("status") == Filter("status", Operator.IN, ["a"], FieldType.ENUM)
        assert state.filters.get("n").type is FieldType.INTEGER

    def test_invalid_conjunction_defaults_to_and(self) -> None:
        state = decode({"filters[_conjunction]": "xor", "filters[title][value]": "a"})
        assert state.filters.conjunction is Conjunction.AND

    def test_depth_limit(self) -> None:
        codec = UrlCodec(max_depth=1)
        deep = FilterGroup(
            groups=(
                FilterGroup(
                    filters=(Filter("a", Operator.EQUALS, "1"),),
                    groups=(FilterGroup(filters=(Filter("b", Operator.EQUALS, "2"),)),),
                ),
            )
        )
        state = codec.decode(codec.encode(deep))
        assert [f.field for f in state.filters.walk()] == ["a"]

    def test_sort_variants(self) -> None:
        assert decode({"sort": "title"}).sorts == [Sort("title")]
        assert decode({"sort[field]": "title", "sort[direction]": "DOWN"}).sorts == [Sort("title")]
        assert decode({"sort[field]": "title", "sort[direction]": "DESC"}).sorts == [
            Sort("title", Direction.DESC)
        ]

    @pytest.mark.parametrize(
        "params, expected",
        [
            ({}, Pagination(1, 10)),
            ({"page": "3", "per_page": "25"}, Pagination(3, 25)),
            ({"page": "0"}, Pagination(1, 10)),
            ({"page": "abc"}, Pagination(1, 10)),
            ({"per_page": "500"}, Pagination(1, 10)),
            ({"per_page": "-5"}, Pagination(1, 10)),
        ],
    )
    def test_pagination(self, params: dict, expected: Pagination) -> None:
        assert decode(params).pagination == expected

    def test_configured_page_size(self) -> None:
        codec = UrlCodec(default_per_page=20, max_per_page=50)
        assert codec.decode({}).pagination == Pagination(1, 20)
        assert codec.decode({"per_page": "60"}).pagination == Pagination(1, 20)
        assert codec.encode(None, (), Pagination(1, 20)) == {}

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_per_page": MAX_PER_PAGE + 1},
            {"default_per_page": 60, "max_per_page": 50},
            {"default_per_page": 0},
        ],
    )
    def test_page_size_limits_checked(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            UrlCodec(**kwargs)

    def test_non_mapping_filters_ignored(self) -> None:
        assert decode({"filters": "oops"}).filters.is_empty()


# --- Custom field types ---


class TestCustomFields:
    def test_custom_encode_decode(self) -> None:
        custom = CustomFieldType(
            name="point",
            encode=lambda value: f"{value[0]},{value[1]}",
            decode=lambda raw: tuple(int(part) for part in raw.split(",")),
        )
        registry = FieldRegistry([custom_field("location", custom)])
        group = FilterGroup(filters=(Filter("location", Operator.EQUALS, (3, 4), FieldType.CUSTOM),))

        params = encode(group, registry=registry)
        assert params["filters[location][value]"] == "3,4"
        assert decode(params, registry=registry).filters == group

    def test_custom_without_registry_dropped(self) -> None:
        params = {
            "filters[location][operator]": "equals",
            "filters[location][type]": "custom",
            "filters[location][value]": "3,4",
        }
        assert decode(params).filters.is_empty()
