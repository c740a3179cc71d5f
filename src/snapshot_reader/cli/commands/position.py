"""Position command for showing the current change log position."""

import click
from rich.console import Console

from snapshot_reader.snapshot.errors import SnapshotError
from snapshot_reader.sources import SOURCE_KINDS, build_source

console = Console()


@click.command()
@click.option(
    "--source", "-s", type=click.Choice(SOURCE_KINDS), default="postgres", show_default=True
)
def position(source: str) -> None:
    """Print the current change log position of a source database."""
    bundle = build_source(source)
    try:
        current = bundle.position_source.current_position()
    except SnapshotError as e:
        console.print(f"[red]✗ Could not determine position: {e}[/red]")
        raise click.Abort()
    finally:
        bundle.close()

    console.print(f"[bold blue]{source}[/bold blue] current position: [green]{current}[/green]")
