"""
Backup command for CLI.

Writes every collection of a database to one JSON bundle.
"""

import click

from ...backup.engine import backup_database, backup_filename, serialize_bundle
from ..utils import build_config, run_with_connection, write_output


@click.command()
@click.argument("db_name")
@click.option(
    "--output",
    "-o",
    default=None,
    help="Output file (default: <db>-backup-<timestamp>.json, '-' for stdout)",
)
@click.pass_context
def backup(ctx: click.Context, db_name: str, output: str | None) -> None:
    """
    Back up a database to a JSON bundle.

    DB_NAME: Database to back up

    Examples:
        mongoman backup shop
        mongoman backup shop -o shop.json
    """
    config = build_config(ctx)
    bundle = run_with_connection(
        config, lambda connection: backup_database(connection, db_name, mode=config.ejson_mode)
    )

    output = output or backup_filename(db_name)
    write_output(serialize_bundle(bundle), output)
    if output != "-":
        total = sum(len(docs) for docs in bundle.values())
        click.echo(
            click.style(
                f"✅ Backed up {len(bundle)} collection(s), {total} document(s) to {output}",
                fg="green",
            )
        )
