"""Conversion between typed filter values and their wire/UI representations."""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from enum import Enum
from typing import Any

from livefilter.filters.operators import FieldType

_INT_RE = re.compile(r"[+-]?\d+")

_TEXT_TYPES: frozenset[FieldType] = frozenset({FieldType.STRING, FieldType.ENUM, FieldType.ARRAY})


def is_scalar_of(field_type: FieldType, value: object) -> bool:
    """Check that ``value`` is a valid scalar for ``field_type``.

    For ARRAY fields this checks a single member, not the list.
    """
    if field_type in _TEXT_TYPES:
        return isinstance(value, str)
    if field_type is FieldType.INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    if field_type is FieldType.FLOAT:
        return (
            isinstance(value, (int, float))
            and not isinstance(value, bool)
            and math.isfinite(value)
        )
    if field_type is FieldType.BOOLEAN:
        return isinstance(value, bool)
    if field_type is FieldType.DATE:
        return isinstance(value, date) and not isinstance(value, datetime)
    if field_type is FieldType.DATETIME:
        return isinstance(value, datetime)
    # CUSTOM values are validated by their strategy.
    return True


def coerce_value(field_type: FieldType, raw: Any) -> Any:
    """Convert a wire value into the typed scalar for ``field_type``.

    Already-typed values pass through unchanged, so this accepts both raw
    query-string text and JSON-decoded parameters.

    Raises:
        ValueError: If the value cannot be interpreted as ``field_type``.
    """
    if is_scalar_of(field_type, raw):
        return raw
    if not isinstance(raw, str):
        raise ValueError(f"expected {field_type.value}, got {type(raw).__name__}")

    text = raw.strip()
    if field_type is FieldType.INTEGER:
        if not _INT_RE.fullmatch(text):
            raise ValueError(f"invalid integer: {raw!r}")
        return int(text)
    if field_type is FieldType.FLOAT:
        number = float(text)
        if not math.isfinite(number):
            raise ValueError(f"invalid float: {raw!r}")
        return number
    if field_type is FieldType.BOOLEAN:
        lowered = text.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise ValueError(f"invalid boolean: {raw!r}")
    if field_type is FieldType.DATE:
        return date.fromisoformat(text)
    if field_type is FieldType.DATETIME:
        return datetime.fromisoformat(text)
    raise ValueError(f"cannot convert {raw!r} to {field_type.value}")


def serialize_value(value: Any) -> str:
    """Render a scalar as URL parameter text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def infer_type(raw: Any) -> FieldType:
    """Guess a field type for an untyped wire value."""
    if isinstance(raw, bool):
        return FieldType.BOOLEAN
    if isinstance(raw, int):
        return FieldType.INTEGER
    if isinstance(raw, float):
        return FieldType.FLOAT
    if not isinstance(raw, str):
        return FieldType.STRING

    text = raw.strip()
    if _INT_RE.fullmatch(text):
        return FieldType.INTEGER
    try:
        float(text)
        return FieldType.FLOAT
    except ValueError:
        pass
    try:
        date.fromisoformat(text)
        return FieldType.DATE
    except ValueError:
        pass
    try:
        datetime.fromisoformat(text)
        return FieldType.DATETIME
    except ValueError:
        pass
    return FieldType.STRING


def empty_value(field_type: FieldType) -> list[Any] | None:
    """The value a cleared field resets to."""
    return [] if field_type is FieldType.ARRAY else None


def to_filter_value(field_type: FieldType, ui_value: Any) -> Any:
    """Convert a form/UI value into a filter value.

    Returns None when the UI value should not produce a filter (blank text,
    unparseable numbers and the like).
    """
    if field_type is FieldType.ARRAY:
        if isinstance(ui_value, (list, tuple)):
            return list(ui_value)
        if isinstance(ui_value, str) and ui_value:
            return [ui_value]
        return []
    if field_type is FieldType.ENUM and isinstance(ui_value, (list, tuple)):
        return list(ui_value)
    if ui_value is None or ui_value == "":
        return None
    if field_type is FieldType.CUSTOM:
        return ui_value
    try:
        return coerce_value(field_type, ui_value)
    except ValueError:
        return None


def to_ui_value(field_type: FieldType, value: Any) -> Any:
    """Convert a filter value back into what a form input expects."""
    if field_type is FieldType.STRING:
        return "" if value is None else str(value)
    if field_type is FieldType.BOOLEAN:
        return value is True
    if field_type is FieldType.ARRAY:
        return list(value or [])
    if field_type in (FieldType.DATE, FieldType.DATETIME) and isinstance(value, date):
        return value.isoformat()
    return value
