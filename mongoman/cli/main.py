"""
Command-line entry point for MONGOMAN.
"""

import logging

import click

from .. import __version__
from ..constants import EJSON_MODES
from .commands import backup, export, import_, restore


@click.group()
@click.version_option(__version__, prog_name="mongoman")
@click.option(
    "--uri",
    "mongo_uri",
    envvar="MONGODB_URI",
    default=None,
    help="MongoDB connection URI (default: $MONGODB_URI)",
)
@click.option(
    "--ejson-mode",
    type=click.Choice(EJSON_MODES),
    default=None,
    help="Extended JSON mode for files (default: $MONGOMAN_EJSON_MODE or relaxed)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, mongo_uri: str | None, ejson_mode: str | None, verbose: bool) -> None:
    """MONGOMAN - back up, restore, export and import MongoDB data."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"mongo_uri": mongo_uri, "ejson_mode": ejson_mode}


cli.add_command(backup)
cli.add_command(restore)
cli.add_command(export)
cli.add_command(import_)


if __name__ == "__main__":
    cli()
