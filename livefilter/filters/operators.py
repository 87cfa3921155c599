"""Field types, operators and the type/operator support table."""

from __future__ import annotations

from enum import Enum


class FieldType(Enum):
    """Declared type of a filterable field."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    ENUM = "enum"
    ARRAY = "array"
    # Behaviour supplied by a CustomFieldType strategy in the registry.
    CUSTOM = "custom"


class Operator(Enum):
    """Comparison kind of a single filter."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    BETWEEN = "between"
    NOT_BETWEEN = "not_between"
    IS_TRUE = "is_true"
    IS_FALSE = "is_false"
    BEFORE = "before"
    AFTER = "after"
    IN = "in"
    CONTAINS_ANY = "contains_any"
    CONTAINS_ALL = "contains_all"
    CONTAINS_NONE = "contains_none"


class Conjunction(Enum):
    """Boolean combinator applied within one filter group."""

    AND = "and"
    OR = "or"


class Direction(Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


class ValueShape(Enum):
    """Shape of the value an operator expects."""

    NONE = "none"
    SCALAR = "scalar"
    RANGE = "range"
    LIST = "list"


_STRING_OPERATORS: tuple[Operator, ...] = (
    Operator.EQUALS,
    Operator.NOT_EQUALS,
    Operator.CONTAINS,
    Operator.NOT_CONTAINS,
    Operator.STARTS_WITH,
    Operator.ENDS_WITH,
    Operator.IS_EMPTY,
    Operator.IS_NOT_EMPTY,
)

_NUMERIC_OPERATORS: tuple[Operator, ...] = (
    Operator.EQUALS,
    Operator.NOT_EQUALS,
    Operator.GREATER_THAN,
    Operator.GREATER_THAN_OR_EQUAL,
    Operator.LESS_THAN,
    Operator.LESS_THAN_OR_EQUAL,
    Operator.BETWEEN,
    Operator.NOT_BETWEEN,
)

_TEMPORAL_OPERATORS: tuple[Operator, ...] = (
    Operator.EQUALS,
    Operator.NOT_EQUALS,
    Operator.BEFORE,
    Operator.AFTER,
    Operator.BETWEEN,
    Operator.IS_EMPTY,
    Operator.IS_NOT_EMPTY,
)

# Operators each built-in type supports. CUSTOM types declare their own.
TYPE_OPERATORS: dict[FieldType, tuple[Operator, ...]] = {
    FieldType.STRING: _STRING_OPERATORS,
    FieldType.INTEGER: _NUMERIC_OPERATORS,
    FieldType.FLOAT: _NUMERIC_OPERATORS,
    FieldType.BOOLEAN: (Operator.IS_TRUE, Operator.IS_FALSE, Operator.EQUALS),
    FieldType.DATE: _TEMPORAL_OPERATORS,
    FieldType.DATETIME: _TEMPORAL_OPERATORS,
    FieldType.ENUM: (Operator.EQUALS, Operator.IN),
    FieldType.ARRAY: (
        Operator.CONTAINS_ANY,
        Operator.CONTAINS_ALL,
        Operator.CONTAINS_NONE,
        Operator.IS_EMPTY,
        Operator.IS_NOT_EMPTY,
    ),
    FieldType.CUSTOM: (),
}

# Operator used when a field does not declare one.
DEFAULT_OPERATORS: dict[FieldType, Operator] = {
    FieldType.STRING: Operator.CONTAINS,
    FieldType.INTEGER: Operator.EQUALS,
    FieldType.FLOAT: Operator.EQUALS,
    FieldType.BOOLEAN: Operator.EQUALS,
    FieldType.DATE: Operator.EQUALS,
    FieldType.DATETIME: Operator.EQUALS,
    FieldType.ENUM: Operator.EQUALS,
    FieldType.ARRAY: Operator.CONTAINS_ANY,
    FieldType.CUSTOM: Operator.EQUALS,
}

# Operators that take no value; any value supplied is ignored.
VALUELESS_OPERATORS: frozenset[Operator] = frozenset(
    {Operator.IS_EMPTY, Operator.IS_NOT_EMPTY, Operator.IS_TRUE, Operator.IS_FALSE}
)

RANGE_OPERATORS: frozenset[Operator] = frozenset({Operator.BETWEEN, Operator.NOT_BETWEEN})

LIST_OPERATORS: frozenset[Operator] = frozenset(
    {Operator.IN, Operator.CONTAINS_ANY, Operator.CONTAINS_ALL, Operator.CONTAINS_NONE}
)

OPERATOR_LABELS: dict[Operator, str] = {
    Operator.EQUALS: "equals",
    Operator.NOT_EQUALS: "does not equal",
    Operator.CONTAINS: "contains",
    Operator.NOT_CONTAINS: "does not contain",
    Operator.STARTS_WITH: "starts with",
    Operator.ENDS_WITH: "ends with",
    Operator.IS_EMPTY: "is empty",
    Operator.IS_NOT_EMPTY: "is not empty",
    Operator.GREATER_THAN: "greater than",
    Operator.GREATER_THAN_OR_EQUAL: "greater than or equal to",
    Operator.LESS_THAN: "less than",
    Operator.LESS_THAN_OR_EQUAL: "less than or equal to",
    Operator.BETWEEN: "between",
    Operator.NOT_BETWEEN: "not between",
    Operator.IS_TRUE: "is true",
    Operator.IS_FALSE: "is false",
    Operator.BEFORE: "before",
    Operator.AFTER: "after",
    Operator.IN: "in",
    Operator.CONTAINS_ANY: "contains any of",
    Operator.CONTAINS_ALL: "contains all of",
    Operator.CONTAINS_NONE: "contains none of",
}


def value_shape(operator: Operator) -> ValueShape:
    """Return the value shape an operator expects."""
    if operator in VALUELESS_OPERATORS:
        return ValueShape.NONE
    if operator in RANGE_OPERATORS:
        return ValueShape.RANGE
    if operator in LIST_OPERATORS:
        return ValueShape.LIST
    return ValueShape.SCALAR


def operators_for_type(field_type: FieldType) -> tuple[Operator, ...]:
    """Return the operators a built-in field type supports."""
    return TYPE_OPERATORS.get(field_type, ())


def is_supported(field_type: FieldType, operator: Operator) -> bool:
    """Check whether an operator is in the support table for a type."""
    return operator in operators_for_type(field_type)


def operator_label(operator: Operator) -> str:
    """Human-readable label for an operator."""
    return OPERATOR_LABELS.get(operator, operator.value.replace("_", " "))


def operator_requires_value(operator: Operator) -> bool:
    return operator not in VALUELESS_OPERATORS


def input_component_for(field_type: FieldType, operator: Operator) -> str | None:
    """Suggest a UI input component for a type/operator combination.

    This is only a hint for front ends; nothing in the engine depends on it.
    """
    if operator in (Operator.IS_EMPTY, Operator.IS_NOT_EMPTY):
        return None
    if field_type in (FieldType.DATE, FieldType.DATETIME):
        return "date_range_selector" if operator in RANGE_OPERATORS else "date_selector"
    if operator in RANGE_OPERATORS:
        return "range_input"
    if field_type is FieldType.BOOLEAN:
        return "boolean_filter"
    if field_type is FieldType.ENUM:
        return "multi_select_search" if operator is Operator.IN else "search_select"
    if field_type is FieldType.ARRAY:
        return "multi_select_search"
    if field_type in (FieldType.INTEGER, FieldType.FLOAT):
        return "number_input"
    return "text_input"
