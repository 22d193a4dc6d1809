"""
Restore command for CLI.

Loads a JSON bundle written by ``mongoman backup`` into a database. Documents
get fresh ``_id``s.
"""

from pathlib import Path

import click

from ...backup.engine import load_bundle, restore_database
from ...exceptions import BundleValidationError, RestoreError
from ..utils import build_config, format_counts, read_text_file, run_with_connection


@click.command()
@click.argument("db_name")
@click.argument("backup_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def restore(ctx: click.Context, db_name: str, backup_file: Path) -> None:
    """
    Restore a database from a JSON bundle.

    DB_NAME: Target database
    BACKUP_FILE: Bundle written by ``mongoman backup``

    Examples:
        mongoman restore shop shop-backup-1700000000000.json
    """
    config = build_config(ctx)
    try:
        bundle = load_bundle(read_text_file(backup_file))
    except BundleValidationError as e:
        raise click.ClickException(e.message) from e

    try:
        results = run_with_connection(
            config,
            lambda connection: restore_database(
                connection, db_name, bundle, mode=config.ejson_mode
            ),
        )
    except click.ClickException as e:
        if isinstance(e.__cause__, RestoreError) and e.__cause__.results:
            click.echo("Restored before the failure:", err=True)
            click.echo(format_counts(e.__cause__.results), err=True)
        raise

    click.echo(
        click.style(
            f"✅ Restored {sum(results.values())} document(s) into '{db_name}'", fg="green"
        )
    )
    click.echo(format_counts(results))
