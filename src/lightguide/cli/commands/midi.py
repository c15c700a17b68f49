"""MIDI command implementations."""

import contextlib
import logging
import time
from datetime import datetime

import click
import mido

from lightguide.midi import InstrumentTransport, MidiInputManager

logger = logging.getLogger(__name__)


@click.group(name="midi")
def midi_group():
    """MIDI port commands."""
    pass


@midi_group.command(name="list")
def list_midi():
    """List available MIDI ports."""
    ports = InstrumentTransport.list_ports()

    click.echo("MIDI Input Ports:\n")
    if not ports["input"]:
        click.echo("  No MIDI input ports found.")
    else:
        for i, port in enumerate(ports["input"]):
            click.echo(f"  [{i}] {port}")

    click.echo("\nMIDI Output Ports:\n")
    if not ports["output"]:
        click.echo("  No MIDI output ports found.")
    else:
        for i, port in enumerate(ports["output"]):
            click.echo(f"  [{i}] {port}")


@midi_group.command(name="monitor")
@click.option(
    "--port",
    "-p",
    "port_filter",
    default=None,
    help="Only monitor input ports containing this text",
)
def monitor_midi(port_filter: str | None):
    """
    Print incoming MIDI messages of all (or matching) input ports.

    Useful to find out what the instrument and the guide track send.
    Clock messages are not shown. Press Ctrl+C to stop.
    """
    ports = mido.get_input_names()
    if port_filter:
        ports = [p for p in ports if port_filter.casefold() in p.casefold()]

    if not ports:
        click.echo("No MIDI input ports found.")
        return

    click.echo(f"Monitoring {len(ports)} MIDI input port(s):")
    for port in ports:
        click.echo(f"  - {port}")
    click.echo("\nPress Ctrl+C to stop\n")

    managers = []

    def make_callback(name):
        def callback(msg):
            timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
            click.echo(f"[{timestamp}] {name}: {msg}")

        return callback

    try:
        for port_name in ports:
            manager = MidiInputManager(
                device_filter=lambda p, name=port_name: p == name,
                poll_interval=10.0,
            )
            manager.on_message(make_callback(port_name))
            manager.start()
            managers.append(manager)

        while True:
            time.sleep(0.1)

    except KeyboardInterrupt:
        click.echo("\n\nStopping monitor...")

    finally:
        for manager in managers:
            with contextlib.suppress(Exception):
                manager.stop()
