"""Config command implementations."""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from lightguide.exceptions import ConfigurationError
from lightguide.models import DEFAULT_CONFIG_PATH, AppConfig

logger = logging.getLogger(__name__)


def config_path_from(ctx: click.Context) -> Path:
    """Config file selected with the global --config option."""
    root = ctx.find_root()
    path: Optional[Path] = (root.obj or {}).get("config_path")
    return path or DEFAULT_CONFIG_PATH


def load_config(ctx: click.Context) -> AppConfig:
    """Load the selected config, exiting with a clean message if it is invalid."""
    from lightguide.cli.main import report_error

    try:
        return AppConfig.load_or_default(config_path_from(ctx))
    except ConfigurationError as e:
        report_error(e)
        sys.exit(1)


@click.group(name="config")
def config_group():
    """Show or reset the configuration."""
    pass


@config_group.command(name="show")
@click.option("--field", "-f", default=None, help="Only show this field")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
@click.pass_context
def show_config(ctx, field: Optional[str], as_json: bool):
    """Display the effective configuration."""
    config = load_config(ctx)
    values = config.model_dump(mode="json")

    if field:
        if field not in values:
            raise click.BadParameter(f"Unknown field: {field}", param_hint="--field")
        values = {field: values[field]}

    if as_json:
        click.echo(json.dumps(values, indent=2))
        return

    width = max(len(name) for name in values)
    for name, value in values.items():
        click.echo(f"{name:<{width}}  {value}")


@config_group.command(name="path")
@click.pass_context
def show_path(ctx):
    """Print the config file location."""
    path = config_path_from(ctx)
    suffix = "" if path.exists() else " (not created yet)"
    click.echo(f"{path}{suffix}")


@config_group.command(name="reset")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def reset_config(ctx, yes: bool):
    """Overwrite the config file with the defaults (a .bak copy is kept)."""
    path = config_path_from(ctx)
    if not yes:
        click.confirm(f"Reset {path} to defaults?", abort=True)

    AppConfig().save(path)
    logger.info(f"Config reset to defaults: {path}")
    click.echo(f"Config reset to defaults: {path}")
