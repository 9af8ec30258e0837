"""Main CLI entry point for codebase-index."""

import sys
from pathlib import Path

import typer
from loguru import logger
from pydantic import ValidationError

from .. import __version__
from ..config.settings import IndexSettings
from .commands.embedding import providers, test_connection
from .commands.index import clear, index, status, watch
from .commands.search import search
from .output import print_error

app = typer.Typer(
    name="codebase-index",
    help="Incremental semantic indexing and vector search for code workspaces.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"codebase-index {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    workspace: Path | None = typer.Option(
        None,
        "--workspace",
        "-w",
        help="Workspace root (defaults to the current directory)",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Configure logging and load settings from CODEBASE_INDEX_* variables."""
    try:
        settings = IndexSettings()
        config = settings.to_index_config()
    except ValidationError as e:
        print_error(f"Invalid configuration: {e}")
        raise typer.Exit(1)

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else settings.log_level.upper())

    ctx.obj = {"workspace": workspace or Path.cwd(), "config": config}


app.command()(index)
app.command()(search)
app.command()(status)
app.command()(clear)
app.command()(watch)
app.command("test-connection")(test_connection)
app.command()(providers)


if __name__ == "__main__":
    app()
