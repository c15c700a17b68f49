"""Main CLI entry point."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

import click

from lightguide import __version__

from .commands import config_group, device_group, grid, midi_group

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".lightguide" / "logs"


def default_log_path(debug: bool, log_file: Optional[Path]) -> Path:
    """Log file used for the given flags."""
    if log_file:
        return log_file
    if debug:
        return Path.cwd() / "lightguide-debug.log"
    return DEFAULT_LOG_DIR / "lightguide.log"


def setup_logging(verbose: int, debug: bool, log_file: Optional[Path], log_level: str) -> None:
    """
    Configure logging for the application.

    Timing results and session statistics are logged at INFO, so -v shows
    them on the console while the log file always keeps them.

    Args:
        verbose: Verbosity count (0 = WARNING, 1 = INFO, 2+ = DEBUG) for the console
        debug: If True, log everything at DEBUG to ./lightguide-debug.log
        log_file: Custom log file path (optional)
        log_level: Log level for file logging (DEBUG/INFO/WARNING/ERROR)
    """
    if debug or verbose >= 2:
        console_level = logging.DEBUG
    elif verbose == 1:
        console_level = logging.INFO
    else:
        console_level = logging.WARNING

    file_level = logging.DEBUG if debug else getattr(logging, log_level.upper())

    log_path = default_log_path(debug, log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Keeps last 5 files, max 10MB each
    file_handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    root_logger = logging.getLogger()
    root_logger.setLevel(min(file_level, console_level))
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logger.info(f"Logging configured: level={logging.getLevelName(file_level)}, file={log_path}")


def report_error(error: Exception, log_path: Optional[Path] = None) -> None:
    """Print a clean error message without traceback."""
    from lightguide.exceptions import format_error_for_display

    user_message, recovery_hint = format_error_for_display(error)

    click.echo("\n" + "=" * 70, err=True)
    click.echo(f"ERROR: {user_message}", err=True)
    click.echo("=" * 70, err=True)

    if recovery_hint:
        click.echo(f"\n{recovery_hint}", err=True)
    if log_path:
        click.echo(f"\nFor details, check the log file: {log_path}", err=True)


@click.group(invoke_without_command=True)
@click.pass_context
@click.version_option(version=__version__, prog_name="lightguide")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.lightguide/config.json)",
)
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v: INFO, -vv: DEBUG)")
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug mode (DEBUG level, logs to ./lightguide-debug.log)",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Custom log file path",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    help="Log level for file logging (default: INFO)",
)
@click.option(
    "--no-layout-sync",
    is_flag=True,
    help="Do not poll the instrument for layout changes",
)
def cli(
    ctx,
    config_path: Optional[Path],
    verbose: int,
    debug: bool,
    log_file: Optional[Path],
    log_level: str,
    no_layout_sync: bool,
):
    """
    Light Guide - timing feedback for the LinnStrument.

    Lights the pads of guide notes coming from a reference track and judges
    how precisely they are played. After a pause in the guide notes a
    statistics table with a score is logged.

    \b
    Examples:
      # Run with the default config, showing timing results
      lightguide -v

      # Use a different config file
      lightguide --config ./practice.json

      # List MIDI ports
      lightguide midi list

      # Show the instrument's current layout
      lightguide device state
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    if ctx.invoked_subcommand is not None:
        return

    from lightguide.app import LightGuideApp
    from lightguide.models import AppConfig

    setup_logging(verbose, debug, log_file, log_level)
    log_path = default_log_path(debug, log_file)
    logger.info("Starting Light Guide")

    try:
        app_config = AppConfig.load_or_default(config_path)
        if no_layout_sync:
            app_config = app_config.model_copy(update={"layout_sync": False})

        app = LightGuideApp(config=app_config)
        click.echo("Light Guide running. Press Ctrl+C to stop.", err=True)
        app.run()

    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
        click.echo("\nShutting down...", err=True)
    except click.Abort:
        raise
    except Exception as e:
        logger.exception("Error running application")
        report_error(e, log_path)
        click.echo("For logging options, run: lightguide --help", err=True)
        sys.exit(1)


cli.add_command(midi_group)
cli.add_command(device_group)
cli.add_command(config_group)
cli.add_command(grid)

if __name__ == "__main__":
    cli()
