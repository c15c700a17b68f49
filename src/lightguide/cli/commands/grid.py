"""Grid command implementation."""

import click

from lightguide.core import GridMap
from lightguide.models import LayoutState

from .config import load_config


@click.command(name="grid")
@click.option("--start-note", type=int, default=None, help="Note of the bottom-left pad")
@click.option("--row-interval", type=int, default=None, help="Half steps between rows")
@click.option("--column-interval", type=int, default=None, help="Half steps between columns")
@click.option("--width", type=click.Choice(["128", "200"]), default=None, help="Device size")
@click.option("--note", type=int, default=None, help="Also list the pads of this note")
@click.pass_context
def grid(
    ctx,
    start_note: int | None,
    row_interval: int | None,
    column_interval: int | None,
    width: str | None,
    note: int | None,
):
    """
    Print the pad layout, top row first.

    Options default to the configured layout. Pads outside the MIDI note
    range are shown as "--".
    """
    config = load_config(ctx)
    layout = LayoutState(
        start_note_number=config.start_note_number if start_note is None else start_note,
        row_interval=config.row_interval if row_interval is None else row_interval,
        column_interval=config.column_interval if column_interval is None else column_interval,
        device_width=config.device_width if width is None else int(width),
    )
    grid_map = GridMap(layout)
    click.echo(grid_map.render())

    if note is not None:
        pads = grid_map.coordinates(note)
        if pads:
            click.echo(f"\nNote {note} is on pads: " + ", ".join(f"({x}, {y})" for x, y in pads))
        else:
            click.echo(f"\nNote {note} is not on the grid")
