"""
Export command for CLI.

Writes one collection as a JSON array or as CSV.
"""

import json

import click

from ...backup.engine import export_collection, export_filename
from ...codecs.tabular import to_csv
from ...constants import EXPORT_FORMATS
from ..utils import build_config, run_with_connection, write_output


@click.command()
@click.argument("db_name")
@click.argument("collection_name")
@click.option(
    "--format",
    "-f",
    "format_type",
    type=click.Choice(EXPORT_FORMATS),
    default="json",
    help="Output format (default: json)",
)
@click.option(
    "--output",
    "-o",
    default=None,
    help="Output file (default: <collection>.<format>, '-' for stdout)",
)
@click.pass_context
def export(
    ctx: click.Context,
    db_name: str,
    collection_name: str,
    format_type: str,
    output: str | None,
) -> None:
    """
    Export a collection to JSON or CSV.

    Examples:
        mongoman export shop orders
        mongoman export shop orders --format csv -o -
    """
    config = build_config(ctx)
    documents = run_with_connection(
        config,
        lambda connection: export_collection(
            connection, db_name, collection_name, mode=config.ejson_mode
        ),
    )

    if format_type == "csv":
        content = to_csv(documents)
    else:
        content = json.dumps(documents, indent=2)

    output = output or export_filename(collection_name, format_type)
    write_output(content, output)
    if output != "-":
        click.echo(
            click.style(f"✅ Exported {len(documents)} document(s) to {output}", fg="green")
        )
