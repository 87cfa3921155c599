"""List the configured filterable fields."""

from __future__ import annotations

import click

from livefilter.cli import Context, pass_context
from livefilter.config import Config
from livefilter.filters.operators import operator_label
from livefilter.utils.output import console, create_table, info


@click.command("fields")
@click.option(
    "--group",
    "-g",
    default=None,
    help="Only show fields in this group",
)
@click.option(
    "--operators/--no-operators",
    "show_operators",
    default=False,
    help="Show every operator a field accepts",
)
@pass_context
def cli(ctx: Context, group: str | None, show_operators: bool) -> None:
    """Show the fields filters may reference, with types and default operators."""
    config = ctx.config if ctx.config is not None else Config()
    registry = config.build_registry()

    entries = registry.fields_in_group(group) if group is not None else list(registry)
    if not entries:
        info("No fields configured" if group is None else f"No fields in group '{group}'")
        return

    table = create_table(title="Filterable fields", show_header=True, header_style="bold")
    table.add_column("Field", style="field", no_wrap=True)
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Default", style="operator")
    if show_operators:
        table.add_column("Operators", style="operator")
    table.add_column("Choices", style="value")

    for entry in entries:
        row = [
            entry.field,
            entry.label,
            entry.type.value,
            operator_label(entry.default_operator),
        ]
        if show_operators:
            row.append(", ".join(op.value for op in entry.allowed_operators))
        row.append(", ".join(choice.value for choice in entry.choices))
        table.add_row(*row)

    console.print(table)

    if config.search_fields and not ctx.quiet:
        info(f"Search ({config.search_field}) covers: {', '.join(config.search_fields)}")
