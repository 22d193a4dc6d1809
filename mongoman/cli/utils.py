"""
Shared helpers for CLI commands.

Every command opens the connection on entry and closes it on exit; nothing
is shared between invocations.
"""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from ..config import ConsoleConfig
from ..core.connection import ConnectionManager
from ..exceptions import MongomanError

T = TypeVar("T")


def build_config(ctx: click.Context) -> ConsoleConfig:
    """Build the console config from the global CLI options."""
    options = ctx.find_root().obj or {}
    return ConsoleConfig(
        mongo_uri=options.get("mongo_uri"),
        ejson_mode=options.get("ejson_mode"),
    )


def run_with_connection(
    config: ConsoleConfig, operation: Callable[[ConnectionManager], Awaitable[T]]
) -> T:
    """
    Run one async operation against a freshly opened connection.

    Raises:
        click.ClickException: If the connection or the operation fails
    """

    async def _run() -> T:
        async with ConnectionManager(config) as connection:
            return await operation(connection)

    try:
        return asyncio.run(_run())
    except MongomanError as e:
        raise click.ClickException(e.message) from e


def read_text_file(file_path: Path) -> str:
    """
    Read a UTF-8 input file.

    Raises:
        click.ClickException: If the file cannot be read
    """
    try:
        return file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise click.ClickException(f"Failed to read {file_path}: {e}") from e


def write_output(content: str, output: str | None) -> None:
    """
    Write command output to a file, or to stdout when output is "-".

    Raises:
        click.ClickException: If the file cannot be written
    """
    if output == "-":
        click.echo(content)
        return
    try:
        Path(output).write_text(content, encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Failed to write {output}: {e}") from e


def format_counts(results: dict[str, Any]) -> str:
    """Render per-collection counts as aligned lines."""
    if not results:
        return "  (no collections)"
    width = max(len(name) for name in results)
    return "\n".join(f"  {name.ljust(width)}  {count}" for name, count in results.items())
