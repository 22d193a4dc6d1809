"""
Import command for CLI.

Inserts the documents of a JSON or CSV file into a collection, keeping any
``_id``s they carry.
"""

from pathlib import Path

import click

from ...backup.engine import import_documents, parse_import_file
from ...exceptions import QueryBuildError
from ..utils import build_config, read_text_file, run_with_connection


@click.command(name="import")
@click.argument("db_name")
@click.argument("collection_name")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_(ctx: click.Context, db_name: str, collection_name: str, input_file: Path) -> None:
    """
    Import a JSON or CSV file into a collection.

    Files ending in .csv are read as CSV; anything else as JSON (an array of
    objects or a single object).

    Examples:
        mongoman import shop orders orders.json
        mongoman import shop orders orders.csv
    """
    config = build_config(ctx)
    try:
        documents = parse_import_file(input_file.name, read_text_file(input_file))
    except QueryBuildError as e:
        raise click.ClickException(e.message) from e

    result = run_with_connection(
        config,
        lambda connection: import_documents(
            connection, db_name, collection_name, documents, mode=config.ejson_mode
        ),
    )
    click.echo(
        click.style(
            f"✅ Imported {result['insertedCount']} document(s) into "
            f"'{db_name}.{collection_name}'",
            fg="green",
        )
    )
