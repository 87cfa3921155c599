"""Decode a filter query string and show what it means."""

from __future__ import annotations

import json
from typing import Any

import click
from rich.tree import Tree
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
)
from sqlalchemy.dialects import sqlite

from livefilter.cli import Context, pass_context
from livefilter.config import Config
from livefilter.exceptions import LiveFilterError
from livefilter.filters.model import Filter, FilterGroup, QueryState
from livefilter.filters.operators import FieldType, ValueShape, operator_label
from livefilter.filters.search import expand_search
from livefilter.filters.values import serialize_value
from livefilter.query.compiler import compile_query
from livefilter.query.sql import SqlCollection
from livefilter.registry import FieldRegistry
from livefilter.utils.output import console, error, info

EXIT_SUCCESS = 0
EXIT_QUERY_ERROR = 1

_COLUMN_TYPES = {
    FieldType.STRING: String,
    FieldType.ENUM: String,
    FieldType.CUSTOM: String,
    FieldType.INTEGER: Integer,
    FieldType.FLOAT: Float,
    FieldType.BOOLEAN: Boolean,
    FieldType.DATE: Date,
    FieldType.DATETIME: DateTime,
    FieldType.ARRAY: JSON,
}


def _json_value(item: Filter) -> Any:
    if item.shape is ValueShape.NONE:
        return None
    if item.shape is ValueShape.SCALAR:
        return serialize_value(item.value)
    return [serialize_value(member) for member in item.value]


def group_to_dict(group: FilterGroup) -> dict[str, Any]:
    """Plain-data view of a filter group, suitable for ``json.dumps``."""
    return {
        "conjunction": group.conjunction.value,
        "filters": [
            {
                "field": item.field,
                "operator": item.operator.value,
                "type": item.type.value,
                "value": _json_value(item),
            }
            for item in group.filters
        ],
        "groups": [group_to_dict(sub) for sub in group.groups],
    }


def state_to_dict(state: QueryState) -> dict[str, Any]:
    return {
        "filters": group_to_dict(state.filters),
        "sorts": [{"field": s.field, "direction": s.direction.value} for s in state.sorts],
        "pagination": {
            "page": state.pagination.page,
            "per_page": state.pagination.per_page,
        },
    }


def _describe(item: Filter) -> str:
    text = f"[field]{item.field}[/field] [operator]{operator_label(item.operator)}[/operator]"
    if item.shape is ValueShape.SCALAR:
        text += f" [value]{serialize_value(item.value)}[/value]"
    elif item.shape is ValueShape.RANGE:
        start, end = item.bounds
        text += f" [value]{serialize_value(start)}[/value] and [value]{serialize_value(end)}[/value]"
    elif item.shape is ValueShape.LIST:
        members = ", ".join(serialize_value(member) for member in item.members)
        text += f" [value]{members or '(none)'}[/value]"
    return text


def _add_group(tree: Tree, group: FilterGroup) -> None:
    for item in group.filters:
        tree.add(_describe(item))
    for sub in group.groups:
        branch = tree.add(f"[conjunction]{sub.conjunction.value.upper()}[/conjunction]")
        _add_group(branch, sub)


def _print_tree(state: QueryState) -> None:
    group = state.filters
    if group.is_empty():
        info("No filters")
    else:
        tree = Tree(f"[conjunction]{group.conjunction.value.upper()}[/conjunction]")
        _add_group(tree, group)
        console.print(tree)

    for index, sort in enumerate(state.sorts):
        label = "Sort" if index == 0 else "Then"
        console.print(f"{label}: [field]{sort.field}[/field] {sort.direction.value}")
    console.print(
        f"Page {state.pagination.page}, {state.pagination.per_page} per page"
    )


def build_table(name: str, registry: FieldRegistry, state: QueryState) -> Table:
    """A throwaway table with one column per registered or referenced field."""
    types: dict[str, FieldType] = {config.field: config.type for config in registry}
    for item in state.filters.walk():
        types.setdefault(item.field, item.type)
    for sort in state.sorts:
        types.setdefault(sort.field, FieldType.STRING)

    columns = [Column("id", Integer, primary_key=True)]
    columns.extend(
        Column(field_name, _COLUMN_TYPES[field_type]())
        for field_name, field_type in types.items()
        if field_name != "id"
    )
    return Table(name, MetaData(), *columns)


def _print_sql(table_name: str, registry: FieldRegistry, state: QueryState) -> None:
    table = build_table(table_name, registry, state)
    program = compile_query(
        state.filters, state.sorts, registry=registry, pagination=state.pagination
    )
    collection = program.apply(SqlCollection(table))
    compiled = collection.statement().compile(dialect=sqlite.dialect())
    click.echo(str(compiled))
    for key, value in compiled.params.items():
        click.echo(f"  {key} = {value!r}")


@click.command("decode")
@click.argument("query")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["tree", "json", "query"]),
    default="tree",
    help="Output format (default: tree)",
)
@click.option(
    "--expand-search/--no-expand-search",
    "expand_search_field",
    default=True,
    help="Expand the free-text search field over the configured search fields",
)
@click.option(
    "--sql",
    "table_name",
    default=None,
    metavar="TABLE",
    help="Also print the SQLite SELECT the filters compile to, against TABLE",
)
@pass_context
def cli(
    ctx: Context,
    query: str,
    output_format: str,
    expand_search_field: bool,
    table_name: str | None,
) -> None:
    """Decode QUERY, a URL or query string carrying filters, sort and paging.

    \b
    Examples:
      livefilter decode "filters[status][operator]=equals&filters[status][value]=pending"
      livefilter decode --format json "https://example.com/todos?sort[field]=due_date"
      livefilter decode --sql todos "filters[_search][value]=urgent"

    \b
    Output formats:
      --format tree    Indented filter tree (default)
      --format json    Decoded state as JSON
      --format query   The state encoded again as a canonical query string
    """
    config = ctx.config if ctx.config is not None else Config()
    registry = config.build_registry()
    codec = config.build_codec(registry)

    state = codec.decode_query_string(query)
    if expand_search_field:
        state = state._replace(
            filters=expand_search(
                state.filters, config.search_fields, search_field=config.search_field
            )
        )

    try:
        if output_format == "json":
            click.echo(json.dumps(state_to_dict(state), indent=2))
        elif output_format == "query":
            click.echo(codec.encode_query_string(*state))
        else:
            _print_tree(state)

        if table_name is not None:
            _print_sql(table_name, registry, state)
    except LiveFilterError as e:
        error(str(e))
        raise SystemExit(EXIT_QUERY_ERROR)

    raise SystemExit(EXIT_SUCCESS)
