"""Route UI action names like ``filter_due_date_changed`` to handlers.

An action name is ``<prefix>_<field>_<action>``. The prefix is matched
first (longest configured prefix wins), then a known action suffix; what
remains is the field, which may itself contain underscores. The handler
table is keyed by ``"<field>_<action>"``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from livefilter.exceptions import RoutingError, ShapeError
from livefilter.filters.dates import PRESETS, resolve_date_range
from livefilter.filters.model import Filter, FilterGroup
from livefilter.filters.operators import FieldType, ValueShape, value_shape
from livefilter.filters.values import coerce_value, empty_value
from livefilter.registry import FieldRegistry
from livefilter.url.params import indexed_to_list

logger = logging.getLogger(__name__)

DEFAULT_PREFIXES: tuple[str, ...] = ("quick_filter", "filter")
DEFAULT_ACTIONS: tuple[str, ...] = ("changed", "cleared")


@dataclass(frozen=True)
class FilterEvent:
    """A parsed action name."""

    name: str
    prefix: str
    field: str
    action: str

    @property
    def handler_key(self) -> str:
        return f"{self.field}_{self.action}"


@dataclass(frozen=True)
class Dispatch:
    """What a handler receives: the event, its params and the new value.

    ``kind`` names the sub-action found in the params (``toggle``,
    ``select``, ``clear``, ``range``, ``values`` or ``value``) and is None
    when the params carried nothing recognizable, in which case ``value``
    is the unchanged current value.
    """

    event: FilterEvent
    params: Mapping[str, Any] = field(default_factory=dict)
    kind: str | None = None
    value: Any = None
    previous: Any = None

    @property
    def field(self) -> str:
        return self.event.field

    @property
    def action(self) -> str:
        return self.event.action


Handler = Callable[[Dispatch], Any]
Fallback = Callable[[str, str, Mapping[str, Any]], Any]


def parse_event(
    name: str,
    *,
    prefixes: Sequence[str] = DEFAULT_PREFIXES,
    actions: Sequence[str] = DEFAULT_ACTIONS,
    fields: Sequence[str] | None = None,
) -> FilterEvent:
    """Split an action name into prefix, field and action.

    Raises:
        RoutingError: If no prefix or action matches, the field part is
            empty, or ``fields`` is given and does not contain the field.
    """
    for prefix in sorted(prefixes, key=len, reverse=True):
        head = f"{prefix}_"
        if not name.startswith(head):
            continue
        rest = name[len(head):]
        for action in sorted(actions, key=len, reverse=True):
            tail = f"_{action}"
            if rest.endswith(tail) and len(rest) > len(tail):
                field_name = rest[: -len(tail)]
                if fields is not None and field_name not in fields:
                    raise RoutingError(name, f"unknown field '{field_name}'")
                return FilterEvent(name=name, prefix=prefix, field=field_name, action=action)
    raise RoutingError(name, "not a <prefix>_<field>_<action> name")


def build_event_name(field_name: str, action: str, prefix: str = "filter") -> str:
    """Inverse of ``parse_event``."""
    return f"{prefix}_{field_name}_{action}"


def extract_event_value(params: Mapping[str, Any]) -> tuple[str, Any] | None:
    """Find the sub-action in event params.

    Checked in order: ``clear``, ``toggle``, ``select``, ``start``/``end``,
    ``values``, ``value``.

    Returns:
        ``(kind, value)``, or None when the params hold none of them.
    """
    if "clear" in params:
        if params["clear"] is True or params["clear"] == "true":
            return ("clear", True)
        return None
    if params.get("toggle") is not None:
        return ("toggle", params["toggle"])
    if params.get("select") is not None:
        return ("select", params["select"])
    if params.get("start") is not None:
        return ("range", (params["start"], params.get("end")))
    if params.get("values") is not None:
        return ("values", indexed_to_list(params["values"]))
    if params.get("value") is not None:
        return ("value", params["value"])
    return None


def toggle_member(current: Any, value: Any) -> list[Any]:
    """Remove ``value`` from the current set, or put it in front."""
    if current is None:
        members: list[Any] = []
    elif isinstance(current, (list, tuple)):
        members = list(current)
    else:
        members = [current]
    if value in members:
        return [member for member in members if member != value]
    return [value, *members]


class EventRouter:
    """Dispatch action names to a handler table.

    Args:
        handlers: ``"<field>_<action>"`` -> callable taking a ``Dispatch``.
        fallback: Called as ``fallback(field, action, params)`` when no
            handler matches.
        prefixes: Accepted name prefixes, without the trailing underscore.
        actions: Accepted action suffixes.
        fields: When given, only these fields are accepted.
        registry: Used to pick the empty value for ``clear``.
    """

    def __init__(
        self,
        handlers: Mapping[str, Handler] | None = None,
        fallback: Fallback | None = None,
        *,
        prefixes: Sequence[str] = DEFAULT_PREFIXES,
        actions: Sequence[str] = DEFAULT_ACTIONS,
        fields: Sequence[str] | None = None,
        registry: FieldRegistry | None = None,
    ) -> None:
        self.handlers = dict(handlers or {})
        self.fallback = fallback
        self.prefixes = tuple(prefixes)
        self.actions = tuple(actions)
        self.fields = tuple(fields) if fields is not None else None
        self.registry = registry

    def parse(self, name: str) -> FilterEvent:
        return parse_event(name, prefixes=self.prefixes, actions=self.actions, fields=self.fields)

    def _cleared_value(self, field_name: str, current: Any) -> Any:
        if self.registry is not None and field_name in self.registry:
            return empty_value(self.registry.type_of(field_name))
        return [] if isinstance(current, (list, tuple)) else None

    def dispatch_for(
        self, event: FilterEvent, params: Mapping[str, Any], current: Any = None
    ) -> Dispatch:
        """Work out the new value for ``event`` from its params."""
        found = extract_event_value(params)
        if found is None and event.action == "cleared":
            found = ("clear", True)
        if found is None:
            return Dispatch(event=event, params=params, value=current, previous=current)

        kind, raw = found
        if kind == "clear":
            value = self._cleared_value(event.field, current)
        elif kind == "toggle":
            value = toggle_member(current, raw)
        else:
            value = raw
        return Dispatch(event=event, params=params, kind=kind, value=value, previous=current)

    def route(self, name: str, params: Mapping[str, Any] | None = None, current: Any = None) -> Any:
        """Parse ``name`` and call its handler, or the fallback.

        Returns:
            Whatever the handler or fallback returns.

        Raises:
            RoutingError: If the name cannot be parsed, or nothing handles it.
        """
        params = params or {}
        event = self.parse(name)
        handler = self.handlers.get(event.handler_key)
        if handler is not None:
            logger.debug("Routing %s to handler %s", name, event.handler_key)
            return handler(self.dispatch_for(event, params, current))
        if self.fallback is not None:
            logger.debug("No handler for %s, using fallback", event.handler_key)
            return self.fallback(event.field, event.action, params)
        raise RoutingError(name, f"no handler for '{event.handler_key}'")


def route(
    name: str,
    params: Mapping[str, Any] | None,
    handlers: Mapping[str, Handler],
    fallback: Fallback | None = None,
    *,
    current: Any = None,
    prefixes: Sequence[str] = DEFAULT_PREFIXES,
    actions: Sequence[str] = DEFAULT_ACTIONS,
    registry: FieldRegistry | None = None,
) -> Any:
    """One-shot ``EventRouter(...).route(...)``."""
    router = EventRouter(
        handlers, fallback, prefixes=prefixes, actions=actions, registry=registry
    )
    return router.route(name, params, current)


# ----------------------------------------------------------------------
# Applying a routed value to a filter group
# ----------------------------------------------------------------------


def _is_blank(value: Any) -> bool:
    if value is None or value == "":
        return True
    if isinstance(value, (list, tuple)):
        return len(value) == 0 or all(_is_blank(v) for v in value)
    return False


def _coerce(field_type: FieldType, raw: Any, field_name: str) -> Any:
    if field_type is FieldType.CUSTOM:
        return raw
    try:
        return coerce_value(field_type, raw)
    except ValueError as exc:
        raise ShapeError(str(exc), field=field_name, value=raw) from None


def apply_dispatch(
    group: FilterGroup, dispatch: Dispatch, registry: FieldRegistry | None = None
) -> FilterGroup:
    """Return ``group`` with the dispatched value applied to its field.

    A cleared or blank value removes the field's top-level filter; any
    other value replaces it, using the field's default operator when that
    fits the value's shape, otherwise the first allowed operator that does.
    Date preset names (``last_7_days``...) become ranges on date fields.

    Raises:
        ShapeError: If the field has no operator for the value's shape, or
            a value cannot be converted to the field's type.
    """
    registry = registry or FieldRegistry()
    name = dispatch.field
    config = registry.lookup(name)
    value = dispatch.value

    if _is_blank(value):
        return group.remove_filter(name)

    if (
        config.type in (FieldType.DATE, FieldType.DATETIME)
        and isinstance(value, str)
        and value in PRESETS
    ):
        value = resolve_date_range(value, config.type)

    if dispatch.kind == "range" or (
        isinstance(value, tuple) and len(value) == 2 and config.type in (
            FieldType.DATE, FieldType.DATETIME, FieldType.INTEGER, FieldType.FLOAT
        )
    ):
        if any(_is_blank(bound) for bound in value):
            return group.remove_filter(name)
        wanted = ValueShape.RANGE
        value = tuple(_coerce(config.type, bound, name) for bound in value)
    elif isinstance(value, (list, tuple)):
        wanted = ValueShape.LIST
        value = [_coerce(config.type, member, name) for member in value]
    else:
        wanted = ValueShape.SCALAR
        value = _coerce(config.type, value, name)

    operator = config.default_operator
    if value_shape(operator) is not wanted:
        candidates = [op for op in config.allowed_operators if value_shape(op) is wanted]
        if not candidates:
            raise ShapeError(f"no {wanted.value} operator available", field=name, value=value)
        operator = candidates[0]

    return group.with_filter(Filter(field=name, operator=operator, value=value, type=config.type))
