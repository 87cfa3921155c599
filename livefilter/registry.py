"""Field registry: what can be filtered, how it is typed and labelled.

A registry is built once at start-up (usually from configuration through
``Config.build_registry()``) and then passed to the compiler, the URL codec
and the event router. It is read-only after construction; callers that
register fields later must synchronize that themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Mapping

from livefilter.exceptions import ShapeError
from livefilter.filters.model import Filter
from livefilter.filters.operators import (
    DEFAULT_OPERATORS,
    FieldType,
    Operator,
    ValueShape,
    operators_for_type,
    value_shape,
)
from livefilter.filters.values import serialize_value
from livefilter.filters.values import to_filter_value as _convert_ui_value
from livefilter.filters.values import to_ui_value as _convert_filter_value

logger = logging.getLogger(__name__)


def humanize(name: str) -> str:
    """Turn a field identifier into a label: ``assigned_to_id`` -> ``Assigned to``."""
    text = name[:-3] if name.endswith("_id") and len(name) > 3 else name
    text = text.replace("_", " ").strip()
    return text[:1].upper() + text[1:]


def _identity(raw: str) -> Any:
    return raw


@dataclass(frozen=True)
class FieldOption:
    """One selectable choice of an enum or array field."""

    value: str
    label: str = ""

    def __post_init__(self) -> None:
        if not self.label:
            object.__setattr__(self, "label", humanize(self.value))


@dataclass(frozen=True)
class CustomFieldType:
    """Behaviour for a field whose type is not one of the built-in kinds.

    Attributes:
        name: Identifier shown in listings.
        operators: Operators the type accepts.
        default_operator: Operator used when none is given.
        compile: Turns a filter on this type into a clause for the query
            compiler. Returning None keeps the filter as a plain predicate.
        encode: Renders one value as URL text.
        decode: Parses URL text back into a value; raising ``ValueError``
            makes the URL codec skip the entry.
    """

    name: str
    operators: tuple[Operator, ...] = (Operator.EQUALS,)
    default_operator: Operator = Operator.EQUALS
    compile: Callable[[Filter], Any] | None = None
    encode: Callable[[Any], str] = serialize_value
    decode: Callable[[str], Any] = _identity

    def __post_init__(self) -> None:
        object.__setattr__(self, "operators", tuple(Operator(op) for op in self.operators))
        object.__setattr__(self, "default_operator", Operator(self.default_operator))


@dataclass(frozen=True)
class FieldConfig:
    """Registry entry for one field.

    ``operators`` narrows the operators offered for the field; when empty
    every operator its type supports is allowed.
    """

    field: str
    type: FieldType = FieldType.STRING
    label: str = ""
    default_operator: Operator | None = None
    operators: tuple[Operator, ...] = ()
    icon: str | None = None
    choices: tuple[FieldOption, ...] = ()
    group: str | None = None
    custom: CustomFieldType | None = None

    def __post_init__(self) -> None:
        field_type = FieldType(self.type)
        if field_type is FieldType.CUSTOM and self.custom is None:
            raise ValueError(f"custom field '{self.field}' needs a CustomFieldType")

        operators = tuple(Operator(op) for op in self.operators)
        supported = self._type_operators(field_type)
        for op in operators:
            if op not in supported:
                raise ValueError(
                    f"operator '{op.value}' is not supported for {field_type.value} field '{self.field}'"
                )

        if self.default_operator is not None:
            default = Operator(self.default_operator)
        elif self.custom is not None:
            default = self.custom.default_operator
        else:
            default = DEFAULT_OPERATORS[field_type]
        if operators and default not in operators:
            default = operators[0]

        choices = tuple(
            choice if isinstance(choice, FieldOption) else _option_from(choice)
            for choice in self.choices
        )

        object.__setattr__(self, "type", field_type)
        object.__setattr__(self, "operators", operators)
        object.__setattr__(self, "default_operator", default)
        object.__setattr__(self, "choices", choices)
        if not self.label:
            object.__setattr__(self, "label", humanize(self.field))

    def _type_operators(self, field_type: FieldType) -> tuple[Operator, ...]:
        if self.custom is not None:
            return self.custom.operators
        return operators_for_type(field_type)

    @property
    def allowed_operators(self) -> tuple[Operator, ...]:
        return self.operators or self._type_operators(self.type)

    def choice_label(self, value: str) -> str:
        for choice in self.choices:
            if choice.value == value:
                return choice.label
        return humanize(str(value))


def _option_from(raw: Any) -> FieldOption:
    if isinstance(raw, Mapping):
        return FieldOption(value=str(raw["value"]), label=str(raw.get("label", "")))
    if isinstance(raw, (tuple, list)) and len(raw) == 2:
        return FieldOption(value=str(raw[0]), label=str(raw[1]))
    return FieldOption(value=str(raw))


class FieldRegistry:
    """Lookup table from field identifier to ``FieldConfig``."""

    def __init__(self, fields: Iterable[FieldConfig] = ()) -> None:
        self._fields: dict[str, FieldConfig] = {}
        for config in fields:
            self.add(config)

    @classmethod
    def from_fields(cls, definitions: Iterable[Mapping[str, Any] | FieldConfig]) -> FieldRegistry:
        """Build a registry from ``FieldConfig`` values or plain mappings.

        Mappings use the configuration file keys: ``name`` (or ``field``),
        ``type``, ``label``, ``default_operator``, ``operators``, ``icon``,
        ``group`` and ``choices``.
        """
        registry = cls()
        for definition in definitions:
            if isinstance(definition, FieldConfig):
                registry.add(definition)
                continue
            options = dict(definition)
            name = options.pop("name", None) or options.pop("field")
            registry.register(name, options.pop("type", FieldType.STRING), **options)
        return registry

    def add(self, config: FieldConfig) -> FieldConfig:
        if config.field in self._fields:
            logger.debug("Re-registering field %s", config.field)
        self._fields[config.field] = config
        return config

    def register(
        self,
        name: str,
        type: FieldType | str = FieldType.STRING,
        label: str = "",
        **options: Any,
    ) -> FieldConfig:
        """Register a field; registering the same name again replaces it."""
        return self.add(FieldConfig(field=name, type=FieldType(type), label=label, **options))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> FieldConfig | None:
        return self._fields.get(name)

    def lookup(self, name: str) -> FieldConfig:
        """Return the entry for ``name``; unknown fields read as plain strings."""
        config = self._fields.get(name)
        if config is None:
            return FieldConfig(field=name)
        return config

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[FieldConfig]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    @property
    def names(self) -> list[str]:
        return list(self._fields)

    def groups(self) -> list[str]:
        """Distinct group names in registration order."""
        seen: list[str] = []
        for config in self._fields.values():
            if config.group and config.group not in seen:
                seen.append(config.group)
        return seen

    def fields_in_group(self, group: str) -> list[FieldConfig]:
        return [config for config in self._fields.values() if config.group == group]

    def type_of(self, name: str) -> FieldType:
        return self.lookup(name).type

    def custom_type_for(self, name: str) -> CustomFieldType | None:
        return self.lookup(name).custom

    def operators_for(self, name: str) -> tuple[Operator, ...]:
        return self.lookup(name).allowed_operators

    def default_operator_for(self, name: str) -> Operator:
        return self.lookup(name).default_operator

    def supports(self, name: str, operator: Operator) -> bool:
        return operator in self.operators_for(name)

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def validate(self, item: Filter) -> list[str]:
        """Check a filter against its registry entry.

        Returns:
            Human-readable problems; an empty list means the filter is fine.
        """
        problems: list[str] = []
        config = self.lookup(item.field)
        if item.type is not config.type:
            problems.append(
                f"'{item.field}' is registered as {config.type.value}, filter says {item.type.value}"
            )
        if item.operator not in config.allowed_operators:
            problems.append(f"'{item.field}' does not allow operator '{item.operator.value}'")
        if config.choices and item.type in (FieldType.ENUM, FieldType.ARRAY):
            allowed = {choice.value for choice in config.choices}
            values = item.members if item.shape is ValueShape.LIST else (item.value,)
            for value in values:
                if value is not None and value not in allowed:
                    problems.append(f"'{value}' is not a choice of '{item.field}'")
        return problems

    def to_filter_value(self, name: str, ui_value: Any) -> Any:
        """Convert a form value for ``name`` into a filter value."""
        return _convert_ui_value(self.type_of(name), ui_value)

    def to_ui_value(self, name: str, value: Any) -> Any:
        """Convert a filter value for ``name`` back into a form value."""
        return _convert_filter_value(self.type_of(name), value)

    def make_filter(self, name: str, value: Any, operator: Operator | str | None = None) -> Filter:
        """Build a filter for a registered field with its type and default operator.

        Raises:
            ShapeError: If the value does not fit the operator.
        """
        config = self.lookup(name)
        op = Operator(operator) if operator is not None else config.default_operator
        if value_shape(op) is ValueShape.LIST and value is not None and not isinstance(
            value, (list, tuple, set, frozenset)
        ):
            value = [value]
        try:
            return Filter(field=name, operator=op, value=value, type=config.type)
        except ShapeError:
            logger.debug("Rejected value %r for field %s", value, name)
            raise


# ----------------------------------------------------------------------
# Field helpers
# ----------------------------------------------------------------------


def string_field(name: str, label: str = "", **options: Any) -> FieldConfig:
    return FieldConfig(field=name, type=FieldType.STRING, label=label, **options)


def integer_field(name: str, label: str = "", **options: Any) -> FieldConfig:
    return FieldConfig(field=name, type=FieldType.INTEGER, label=label, **options)


def float_field(name: str, label: str = "", **options: Any) -> FieldConfig:
    return FieldConfig(field=name, type=FieldType.FLOAT, label=label, **options)


def boolean_field(name: str, label: str = "", **options: Any) -> FieldConfig:
    options.setdefault("default_operator", Operator.EQUALS)
    return FieldConfig(field=name, type=FieldType.BOOLEAN, label=label, **options)


def date_field(name: str, label: str = "", **options: Any) -> FieldConfig:
    options.setdefault("default_operator", Operator.BETWEEN)
    return FieldConfig(field=name, type=FieldType.DATE, label=label, **options)


def datetime_field(name: str, label: str = "", **options: Any) -> FieldConfig:
    options.setdefault("default_operator", Operator.BETWEEN)
    return FieldConfig(field=name, type=FieldType.DATETIME, label=label, **options)


def enum_field(
    name: str, label: str = "", choices: Iterable[Any] = (), **options: Any
) -> FieldConfig:
    options.setdefault("default_operator", Operator.EQUALS)
    return FieldConfig(
        field=name, type=FieldType.ENUM, label=label, choices=tuple(choices), **options
    )


def array_field(
    name: str, label: str = "", choices: Iterable[Any] = (), **options: Any
) -> FieldConfig:
    return FieldConfig(
        field=name, type=FieldType.ARRAY, label=label, choices=tuple(choices), **options
    )


def custom_field(
    name: str, custom: CustomFieldType, label: str = "", **options: Any
) -> FieldConfig:
    return FieldConfig(field=name, type=FieldType.CUSTOM, label=label, custom=custom, **options)
