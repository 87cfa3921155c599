"""Write a starter configuration file."""

from __future__ import annotations

from importlib import resources
from pathlib import Path

import click

from livefilter.cli import Context, pass_context
from livefilter.config import get_default_config_path
from livefilter.utils.output import error, info, success


def _load_example_config() -> str:
    """Load the example configuration from package data."""
    return resources.files("livefilter").joinpath("config.example.toml").read_text()


@click.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    default=False,
    help="Overwrite existing config file",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output path for config file (default: ~/.config/livefilter/config.toml)",
)
@pass_context
def cli(ctx: Context, force: bool, output: Path | None) -> None:
    """Create a configuration file describing an example todo list.

    The file lists every section with comments; edit the [[fields]]
    tables to match the collection you filter.

    Examples:

    \b
      livefilter init-config
      livefilter init-config --output ./fields.toml
      livefilter init-config --force
    """
    config_path = output if output is not None else get_default_config_path()
    config_path = config_path.expanduser().resolve()

    if config_path.exists() and not force:
        error(
            f"Config file already exists: {config_path}",
            hint="Use --force to overwrite",
        )
        raise SystemExit(1)

    config_content = _load_example_config()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(config_content)
    except OSError as e:
        error(f"Failed to write config file: {e}")
        raise SystemExit(1)

    success(f"Created config file: {config_path}")
    if not ctx.quiet:
        info("Edit the [[fields]] tables to describe your collection.")
