"""Configuration management for livefilter."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

import tomli_w

from livefilter.events import DEFAULT_ACTIONS, DEFAULT_PREFIXES, EventRouter
from livefilter.exceptions import (
    ConfigParseError,
    ConfigValidationError,
)
from livefilter.filters.model import DEFAULT_PER_PAGE, MAX_PER_PAGE
from livefilter.filters.operators import DEFAULT_OPERATORS, FieldType
from livefilter.filters.search import SEARCH_FIELD
from livefilter.registry import FieldConfig, FieldOption, FieldRegistry
from livefilter.url.codec import UrlCodec

if TYPE_CHECKING:
    from livefilter.events import Fallback, Handler

_FIELD_KEYS = frozenset(
    {"name", "type", "label", "default_operator", "operators", "icon", "group", "choices"}
)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".config" / "livefilter" / "config.toml"


@dataclass
class Config:
    """Application configuration.

    Attributes:
        colored_output: Whether to use colored terminal output.
        search_field: Name of the free-text search sentinel field.
        search_fields: Text fields the search sentinel expands over.
        per_page: Page size when the URL does not give one.
        max_per_page: Largest page size accepted from a URL.
        event_prefixes: Prefixes of UI action names, without the trailing
            underscore.
        event_actions: Action suffixes the event router recognizes.
        fields: Filterable fields, in display order.
        config_path: Path where config was loaded from (None if defaults).
    """

    colored_output: bool = True
    search_field: str = SEARCH_FIELD
    search_fields: list[str] = field(default_factory=list)
    per_page: int = DEFAULT_PER_PAGE
    max_per_page: int = MAX_PER_PAGE
    event_prefixes: list[str] = field(default_factory=lambda: list(DEFAULT_PREFIXES))
    event_actions: list[str] = field(default_factory=lambda: list(DEFAULT_ACTIONS))
    fields: list[FieldConfig] = field(default_factory=list)
    config_path: Path | None = None

    def validate(self) -> list[str]:
        """Validate configuration values.

        Returns:
            List of warning messages for non-fatal issues.

        Raises:
            ConfigValidationError: If a critical validation fails.
        """
        warnings: list[str] = []

        if self.max_per_page > MAX_PER_PAGE:
            raise ConfigValidationError(
                "pagination.max_per_page", self.max_per_page, f"must not exceed {MAX_PER_PAGE}"
            )

        if self.per_page > self.max_per_page:
            raise ConfigValidationError(
                "pagination.per_page",
                self.per_page,
                f"must not exceed pagination.max_per_page ({self.max_per_page})",
            )

        if not self.event_prefixes:
            raise ConfigValidationError("events.prefixes", self.event_prefixes, "must not be empty")

        if not self.search_fields:
            warnings.append(
                f"search.fields is empty; '{self.search_field}' filters will be ignored"
            )

        names = [config.field for config in self.fields]
        seen: set[str] = set()
        for name in names:
            if name in seen:
                warnings.append(f"Field '{name}' is defined more than once; the last one wins")
            seen.add(name)

        if self.fields:
            for name in self.search_fields:
                if name not in seen:
                    warnings.append(f"Search field '{name}' is not a configured field")

        return warnings

    def build_registry(self) -> FieldRegistry:
        return FieldRegistry(self.fields)

    def build_codec(self, registry: FieldRegistry | None = None) -> UrlCodec:
        return UrlCodec(
            registry if registry is not None else self.build_registry(),
            default_per_page=self.per_page,
            max_per_page=self.max_per_page,
        )

    def build_router(
        self,
        handlers: Mapping[str, Handler] | None = None,
        fallback: Fallback | None = None,
        registry: FieldRegistry | None = None,
    ) -> EventRouter:
        return EventRouter(
            handlers,
            fallback,
            prefixes=self.event_prefixes,
            actions=self.event_actions,
            registry=registry if registry is not None else self.build_registry(),
        )


def load_config(config_path: Path | None = None) -> tuple[Config, list[str]]:
    """Load configuration from file or use defaults.

    Args:
        config_path: Explicit config file path. If None, uses default location.

    Returns:
        Tuple of (Config object, list of warning messages).

    Raises:
        ConfigParseError: If config file exists but has invalid syntax.
        ConfigValidationError: If config values are invalid.
    """
    warnings: list[str] = []

    if config_path is None:
        config_path = get_default_config_path()

    config_path = config_path.expanduser().resolve()

    if not config_path.exists():
        # Use defaults
        config = Config()
        warnings.append(
            f"No config file found at {config_path}. Using defaults. "
            f"Create config with: livefilter init-config"
        )
        config_warnings = config.validate()
        return config, warnings + config_warnings

    # Load from file
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(config_path, str(e)) from e

    config = _parse_config_dict(data, config_path)
    config_warnings = config.validate()

    return config, warnings + config_warnings


def _string_list(key: str, value: Any) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigValidationError(key, value, "must be a list of strings")
    return list(value)


def _positive_int(key: str, value: Any) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise ConfigValidationError(key, value, "must be a positive integer")
    return value


def _parse_config_dict(data: dict[str, Any], config_path: Path) -> Config:
    """Parse configuration dictionary into Config object."""
    config = Config(config_path=config_path)

    # Parse [display] section
    display = data.get("display", {})
    if "colored_output" in display:
        value = display["colored_output"]
        if not isinstance(value, bool):
            raise ConfigValidationError("display.colored_output", value, "must be a boolean")
        config.colored_output = value

    # Parse [search] section
    search = data.get("search", {})
    if "field" in search:
        value = search["field"]
        if not isinstance(value, str) or not value:
            raise ConfigValidationError("search.field", value, "must be a non-empty string")
        config.search_field = value

    if "fields" in search:
        config.search_fields = _string_list("search.fields", search["fields"])

    # Parse [pagination] section
    pagination = data.get("pagination", {})
    if "per_page" in pagination:
        config.per_page = _positive_int("pagination.per_page", pagination["per_page"])

    if "max_per_page" in pagination:
        config.max_per_page = _positive_int("pagination.max_per_page", pagination["max_per_page"])

    # Parse [events] section
    events = data.get("events", {})
    if "prefixes" in events:
        config.event_prefixes = _string_list("events.prefixes", events["prefixes"])

    if "actions" in events:
        config.event_actions = _string_list("events.actions", events["actions"])

    # Parse [[fields]] tables
    fields = data.get("fields", [])
    if not isinstance(fields, list):
        raise ConfigValidationError("fields", fields, "must be an array of tables")
    config.fields = [_parse_field(index, entry) for index, entry in enumerate(fields)]

    return config


def _parse_field(index: int, entry: Any) -> FieldConfig:
    """Parse one [[fields]] table into a FieldConfig."""
    key = f"fields[{index}]"
    if not isinstance(entry, dict):
        raise ConfigValidationError(key, entry, "must be a table")

    unknown = set(entry) - _FIELD_KEYS
    if unknown:
        raise ConfigValidationError(key, entry, f"unknown keys: {', '.join(sorted(unknown))}")

    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise ConfigValidationError(f"{key}.name", name, "must be a non-empty string")

    type_name = entry.get("type", FieldType.STRING.value)
    try:
        field_type = FieldType(type_name)
    except ValueError:
        raise ConfigValidationError(f"{key}.type", type_name, "unknown field type") from None
    if field_type is FieldType.CUSTOM:
        raise ConfigValidationError(
            f"{key}.type", type_name, "custom fields must be registered in code"
        )

    for text_key in ("label", "icon", "group", "default_operator"):
        value = entry.get(text_key)
        if value is not None and not isinstance(value, str):
            raise ConfigValidationError(f"{key}.{text_key}", value, "must be a string")

    operators = _string_list(f"{key}.operators", entry.get("operators", []))

    choices: list[FieldOption] = []
    for choice in entry.get("choices", []):
        if isinstance(choice, str):
            choices.append(FieldOption(value=choice))
        elif isinstance(choice, dict) and isinstance(choice.get("value"), str):
            choices.append(FieldOption(value=choice["value"], label=str(choice.get("label", ""))))
        else:
            raise ConfigValidationError(
                f"{key}.choices", choice, "must be strings or {value, label} tables"
            )

    try:
        return FieldConfig(
            field=name,
            type=field_type,
            label=entry.get("label", ""),
            default_operator=entry.get("default_operator"),
            operators=tuple(operators),
            icon=entry.get("icon"),
            choices=tuple(choices),
            group=entry.get("group"),
        )
    except ValueError as e:
        raise ConfigValidationError(key, entry, str(e)) from None


def _field_to_dict(config: FieldConfig) -> dict[str, Any]:
    data: dict[str, Any] = {"name": config.field, "type": config.type.value, "label": config.label}
    if config.default_operator is not DEFAULT_OPERATORS[config.type]:
        data["default_operator"] = config.default_operator.value
    if config.operators:
        data["operators"] = [op.value for op in config.operators]
    if config.icon is not None:
        data["icon"] = config.icon
    if config.group is not None:
        data["group"] = config.group
    if config.choices:
        data["choices"] = [{"value": c.value, "label": c.label} for c in config.choices]
    return data


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Path to save to. If None, uses config.config_path or default.
    """
    if config_path is None:
        config_path = config.config_path or get_default_config_path()

    config_path = config_path.expanduser().resolve()

    # Ensure directory exists
    config_path.parent.mkdir(parents=True, exist_ok=True)

    # Build TOML structure
    data: dict[str, Any] = {
        "display": {
            "colored_output": config.colored_output,
        },
        "search": {
            "field": config.search_field,
            "fields": list(config.search_fields),
        },
        "pagination": {
            "per_page": config.per_page,
            "max_per_page": config.max_per_page,
        },
        "events": {
            "prefixes": list(config.event_prefixes),
            "actions": list(config.event_actions),
        },
    }

    if config.fields:
        data["fields"] = [
            _field_to_dict(entry) for entry in config.fields if entry.type is not FieldType.CUSTOM
        ]

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
