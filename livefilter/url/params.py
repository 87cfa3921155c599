"""Bracket-style URL parameter helpers.

Web frameworks expose ``filters[status][values][0]=a`` either as flat keys
or as nested mappings, and often turn lists into index-keyed maps
(``{"0": "a", "1": "b"}``). These helpers convert between the shapes.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_SEGMENT_RE = re.compile(r"\[([^\[\]]*)\]")
_INDEX_RE = re.compile(r"-?\d+")


def parse_key(key: str) -> list[str]:
    """Split ``a[b][c]`` into ``["a", "b", "c"]``.

    An empty segment (``a[]``) means "append". Keys that are not in bracket
    form are returned as a single segment.
    """
    match = _KEY_RE.match(key)
    if match is None:
        return [key]
    return [match.group(1), *_SEGMENT_RE.findall(match.group(2))]


def _merge(target: dict[str, Any], key: str, value: Any) -> None:
    existing = target.get(key)
    if isinstance(value, Mapping):
        if not isinstance(existing, dict):
            if existing is not None:
                logger.debug("Parameter %s replaced by nested keys", key)
            existing = {}
            target[key] = existing
        for sub_key, sub_value in value.items():
            _merge(existing, str(sub_key), sub_value)
        return
    if isinstance(existing, dict) and not isinstance(value, Mapping):
        logger.debug("Ignoring scalar %s: nested keys already present", key)
        return
    target[key] = list(value) if isinstance(value, (list, tuple)) else value


def _descend(target: dict[str, Any], segments: list[str]) -> dict[str, Any]:
    node = target
    for position, segment in enumerate(segments):
        child = node.get(segment)
        if not isinstance(child, dict):
            if child is not None:
                logger.debug(
                    "Parameter %s replaced by nested keys", "/".join(segments[: position + 1])
                )
            child = {}
            node[segment] = child
        node = child
    return node


def _put(target: dict[str, Any], segments: list[str], value: Any) -> None:
    if len(segments) > 1 and segments[-1] == "":
        # "key[]" repeated: collect into a list
        parent = _descend(target, segments[:-2])
        current = parent.get(segments[-2])
        items = current if isinstance(current, list) else []
        if isinstance(value, (list, tuple)):
            items.extend(value)
        else:
            items.append(value)
        parent[segments[-2]] = items
        return
    _merge(_descend(target, segments[:-1]), segments[-1], value)


def unflatten_params(params: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """Build nested dicts from bracket keys.

    Accepts a mapping or ``(key, value)`` pairs. Values that are already
    nested mappings are merged in, so partially flattened input works too.
    """
    pairs = params.items() if isinstance(params, Mapping) else params
    nested: dict[str, Any] = {}
    for key, value in pairs:
        _put(nested, parse_key(str(key)), value)
    return nested


def flatten_params(params: Mapping[str, Any], prefix: str = "") -> list[tuple[str, str]]:
    """Flatten nested dicts and lists into ``(bracket_key, text)`` pairs.

    Lists become ``key[0]``, ``key[1]``, ... in order.
    """
    flat: list[tuple[str, str]] = []
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        flat.extend(_flatten_value(value, name))
    return flat


def _flatten_value(value: Any, name: str) -> list[tuple[str, str]]:
    if isinstance(value, Mapping):
        return flatten_params(value, name)
    if isinstance(value, (list, tuple)):
        flat: list[tuple[str, str]] = []
        for index, item in enumerate(value):
            flat.extend(_flatten_value(item, f"{name}[{index}]"))
        return flat
    return [(name, "" if value is None else str(value))]


def indexed_to_list(value: Any) -> list[Any]:
    """Repair an index-keyed map into a list.

    Numeric keys are ordered numerically; any other keys follow in the
    order they were encountered. Lists pass through, None becomes an empty
    list and a lone scalar becomes a one-item list.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, Mapping):
        numeric: list[tuple[int, Any]] = []
        other: list[Any] = []
        for key, item in value.items():
            text = str(key)
            if _INDEX_RE.fullmatch(text):
                numeric.append((int(text), item))
            else:
                other.append(item)
        numeric.sort(key=lambda pair: pair[0])
        return [item for _, item in numeric] + other
    return [value]


def to_query_string(params: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> str:
    """URL-encode flat parameters; nested mappings are flattened first."""
    if isinstance(params, Mapping):
        pairs = flatten_params(params)
    else:
        pairs = [(key, "" if value is None else str(value)) for key, value in params]
    return urlencode(pairs)


def parse_query_string(query: str) -> dict[str, Any]:
    """Parse a query string or full URL into flat parameters.

    Repeated keys collect into a list in order of appearance.
    """
    if "://" in query:
        query = urlsplit(query).query
    elif "?" in query:
        query = query.split("?", 1)[1]

    params: dict[str, Any] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        if key in params:
            current = params[key]
            params[key] = [*current, value] if isinstance(current, list) else [current, value]
        else:
            params[key] = value
    return params
