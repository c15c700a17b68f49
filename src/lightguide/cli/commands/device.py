"""Instrument command implementations."""

import logging
import sys

import click

from lightguide.core import SystemClock
from lightguide.devices.linnstrument import DeviceStateSync
from lightguide.exceptions import DeviceError
from lightguide.midi import InstrumentTransport
from lightguide.models import AppConfig, OperatingMode

from .config import load_config

logger = logging.getLogger(__name__)


def _connect(config: AppConfig) -> tuple[InstrumentTransport, DeviceStateSync]:
    transport = InstrumentTransport(
        config.instrument_input_port,
        config.instrument_output_port,
        poll_interval=config.midi_poll_interval,
    )
    transport.start()
    sync = DeviceStateSync(
        transport,
        SystemClock(),
        config.initial_layout(),
        channel=config.nrpn_channel,
        param_timeout=config.param_timeout,
    )
    return transport, sync


@click.group(name="device")
def device_group():
    """LinnStrument commands."""
    pass


@device_group.command(name="state")
@click.option("--grid", "show_grid", is_flag=True, help="Also print the resulting pad layout")
@click.pass_context
def device_state(ctx, show_grid: bool):
    """Query the instrument's layout settings."""
    from lightguide.cli.main import report_error
    from lightguide.core import GridMap

    config = load_config(ctx)
    transport, sync = _connect(config)
    try:
        layout = sync.fetch_layout()
    except DeviceError as e:
        report_error(e)
        sys.exit(1)
    finally:
        transport.stop()

    click.echo(f"Start note:      {layout.start_note_number}")
    click.echo(f"Row interval:    {layout.row_interval}")
    click.echo(f"Column interval: {layout.column_interval}")
    click.echo(f"Tempo:           {layout.bpm} BPM")

    if show_grid:
        click.echo("")
        click.echo(GridMap(layout).render())


@device_group.command(name="mode")
@click.argument("mode", type=click.Choice(["normal", "config"], case_sensitive=False))
@click.pass_context
def device_mode(ctx, mode: str):
    """Switch the instrument's operating mode."""
    from lightguide.cli.main import report_error

    config = load_config(ctx)
    transport, sync = _connect(config)
    try:
        sync.set_operating_mode(OperatingMode[mode.upper()])
    except DeviceError as e:
        report_error(e)
        sys.exit(1)
    finally:
        transport.stop()

    click.echo(f"Operating mode set to {mode.lower()}")
