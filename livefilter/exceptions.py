"""Exception hierarchy for livefilter."""

from pathlib import Path


class LiveFilterError(Exception):
    """Base exception for all livefilter errors.

    All exceptions in this package inherit from this class,
    allowing callers to catch all livefilter errors with
    a single except clause.
    """

    pass


# Configuration Errors
class ConfigError(LiveFilterError):
    """Configuration-related errors."""

    pass


class ConfigParseError(ConfigError):
    """Configuration file has invalid syntax."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid config at {path}: {detail}")


class ConfigValidationError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: object, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid config value for '{key}': {reason}")


# Filter Model Errors
class FilterError(LiveFilterError):
    """Filter model errors."""

    pass


class ShapeError(FilterError):
    """A value does not have the shape its operator or type requires.

    Raised while building ``Filter``, ``FilterGroup``, ``Sort`` or
    ``Pagination`` values, and by the shape accessors on ``Filter``.
    """

    def __init__(self, reason: str, *, field: str | None = None, value: object = None) -> None:
        self.reason = reason
        self.field = field
        self.value = value
        if field is not None:
            super().__init__(f"Invalid filter on '{field}': {reason}")
        else:
            super().__init__(reason)


# Query Errors
class QueryError(LiveFilterError):
    """Query compilation errors."""

    pass


class UnsupportedOperatorError(QueryError):
    """Operator is not supported for the field type."""

    def __init__(self, field: str, field_type: str, operator: str) -> None:
        self.field = field
        self.field_type = field_type
        self.operator = operator
        super().__init__(
            f"Operator '{operator}' is not supported for {field_type} field '{field}'"
        )


class UnknownFieldError(QueryError):
    """A collection has no column for the requested field."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Unknown field: {field}")


# Event Routing Errors
class RoutingError(LiveFilterError):
    """A UI action name could not be routed."""

    def __init__(self, event_name: str, reason: str) -> None:
        self.event_name = event_name
        self.reason = reason
        super().__init__(f"Cannot route '{event_name}': {reason}")


# URL decoding
class DecodeSkip(LiveFilterError):
    """A URL parameter entry is malformed and must be skipped.

    Used as a signal inside the URL codec; ``decode`` catches it per entry
    and never lets it reach the caller.
    """

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Skipping '{key}': {reason}")
