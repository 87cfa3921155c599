"""Unit tests for the field registry."""

from __future__ import annotations

from datetime import date

import pytest

from livefilter.exceptions import ShapeError
from livefilter.filters.model import Filter
from livefilter.filters.operators import FieldType, Operator
from livefilter.registry import (
    CustomFieldType,
    FieldConfig,
    FieldOption,
    FieldRegistry,
    custom_field,
    humanize,
)


def test_humanize() -> None:
    assert humanize("assigned_to_id") == "Assigned to"
    assert humanize("due_date") == "Due date"
    assert humanize("id") == "Id"


class TestFieldConfig:
    def test_defaults_from_type(self) -> None:
        config = FieldConfig("title")
        assert config.type is FieldType.STRING
        assert config.label == "Title"
        assert config.default_operator is Operator.CONTAINS

    def test_operator_subset_moves_default(self) -> None:
        config = FieldConfig(
            "title", FieldType.STRING, operators=(Operator.EQUALS, Operator.STARTS_WITH)
        )
        assert config.default_operator is Operator.EQUALS
        assert config.allowed_operators == (Operator.EQUALS, Operator.STARTS_WITH)

    def test_unsupported_operator_rejected(self) -> None:
        with pytest.raises(ValueError):
            FieldConfig("title", FieldType.STRING, operators=("greater_than",))

    def test_custom_needs_strategy(self) -> None:
        with pytest.raises(ValueError):
            FieldConfig("location", FieldType.CUSTOM)

    def test_choices_normalized(self) -> None:
        config = FieldConfig(
            "status",
            FieldType.ENUM,
            choices=("in_progress", {"value": "done", "label": "Finished"}, ("x", "Ex")),
        )
        assert config.choices == (
            FieldOption("in_progress", "In progress"),
            FieldOption("done", "Finished"),
            FieldOption("x", "Ex"),
        )
        assert config.choice_label("done") == "Finished"
        assert config.choice_label("unknown_value") == "Unknown value"


class TestFieldRegistry:
    def test_lookup_unknown_field(self, todo_registry: FieldRegistry) -> None:
        assert "nope" not in todo_registry
        assert todo_registry.get("nope") is None
        assert todo_registry.type_of("nope") is FieldType.STRING

    def test_types_and_defaults(self, todo_registry: FieldRegistry) -> None:
        assert todo_registry.type_of("complexity") is FieldType.INTEGER
        assert todo_registry.default_operator_for("due_date") is Operator.BETWEEN
        assert todo_registry.default_operator_for("is_urgent") is Operator.EQUALS
        assert todo_registry.default_operator_for("tags") is Operator.CONTAINS_ANY

    def test_register_replaces(self) -> None:
        registry = FieldRegistry()
        registry.register("status", "string")
        registry.register("status", "enum", "State")
        assert len(registry) == 1
        assert registry.type_of("status") is FieldType.ENUM
        assert registry.lookup("status").label == "State"

    def test_from_fields_mappings(self) -> None:
        registry = FieldRegistry.from_fields(
            [
                {"name": "status", "type": "enum", "choices": ["a", "b"], "group": "basic"},
                {"field": "title"},
            ]
        )
        assert registry.names == ["status", "title"]
        assert registry.groups() == ["basic"]
        assert [c.field for c in registry.fields_in_group("basic")] == ["status"]

    def test_supports(self, todo_registry: FieldRegistry) -> None:
        assert todo_registry.supports("status", Operator.IN)
        assert not todo_registry.supports("status", Operator.CONTAINS)

    def test_validate(self, todo_registry: FieldRegistry) -> None:
        good = Filter("status", Operator.IN, ["pending"], FieldType.ENUM)
        assert todo_registry.validate(good) == []

        bad_choice = Filter("status", Operator.IN, ["pending", "lost"], FieldType.ENUM)
        assert todo_registry.validate(bad_choice) == ["'lost' is not a choice of 'status'"]

        wrong_type = Filter("complexity", Operator.CONTAINS, "7")
        problems = todo_registry.validate(wrong_type)
        assert len(problems) == 2

    def test_make_filter_uses_defaults(self, todo_registry: FieldRegistry) -> None:
        f = todo_registry.make_filter("tags", "bug")
        assert f == Filter("tags", Operator.CONTAINS_ANY, ("bug",), FieldType.ARRAY)

    def test_make_filter_rejects_bad_value(self, todo_registry: FieldRegistry) -> None:
        with pytest.raises(ShapeError):
            todo_registry.make_filter("complexity", "seven", Operator.EQUALS)

    def test_to_filter_value(self, todo_registry: FieldRegistry) -> None:
        assert todo_registry.to_filter_value("complexity", "7") == 7
        assert todo_registry.to_filter_value("complexity", "") is None
        assert todo_registry.to_filter_value("tags", "bug") == ["bug"]
        assert todo_registry.to_filter_value("is_urgent", "true") is True

    def test_to_ui_value(self, todo_registry: FieldRegistry) -> None:
        assert todo_registry.to_ui_value("title", None) == ""
        assert todo_registry.to_ui_value("is_urgent", None) is False
        assert todo_registry.to_ui_value("tags", ("bug", "docs")) == ["bug", "docs"]
        assert todo_registry.to_ui_value("due_date", date(2024, 3, 1)) == "2024-03-01"
        assert todo_registry.to_ui_value("complexity", 7) == 7


class TestCustomField:
    def test_custom_strategy(self) -> None:
        custom = CustomFieldType(
            name="point",
            operators=("equals", "not_equals"),
            decode=lambda raw: tuple(int(part) for part in raw.split(",")),
            encode=lambda value: ",".join(str(part) for part in value),
        )
        registry = FieldRegistry([custom_field("location", custom)])
        assert registry.type_of("location") is FieldType.CUSTOM
        assert registry.custom_type_for("location") is custom
        assert registry.operators_for("location") == (Operator.EQUALS, Operator.NOT_EQUALS)
        assert registry.default_operator_for("location") is Operator.EQUALS
