"""Main CLI entry point for the snapshot reader."""

import click

from snapshot_reader import __version__
from snapshot_reader.cli.commands.position import position
from snapshot_reader.cli.commands.read_split import read_split
from snapshot_reader.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="snapshot-reader")
@click.option("--log-level", help="Logging level (default from LOG_LEVEL)")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """
    Snapshot Reader - watermark-bracketed table split snapshots for CDC.

    Reads a key range of a table between a LOW and a HIGH change log
    watermark, for:
    - PostgreSQL (WAL log sequence numbers)
    - MySQL (binlog coordinates)
    """
    ctx.ensure_object(dict)
    setup_logging(log_level)


cli.add_command(position)
cli.add_command(read_split)


if __name__ == "__main__":
    cli()
