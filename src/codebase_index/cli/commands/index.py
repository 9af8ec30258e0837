"""Indexing commands: index, status, clear, watch."""

import asyncio

import typer
from loguru import logger
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn

from ...core.exceptions import CodebaseIndexError
from ...core.models import IndexStatus
from ...core.service import CodebaseIndexService
from ...core.watcher import FileWatcher
from ..output import (
    console,
    print_error,
    print_info,
    print_json,
    print_status,
    print_success,
)
from ._common import run_with_service


def index(
    ctx: typer.Context,
    force: bool = typer.Option(
        False, "--force", "-f", help="Clear the index and rebuild from scratch"
    ),
) -> None:
    """Index the workspace (unchanged files are skipped)."""

    async def action(service: CodebaseIndexService) -> IndexStatus:
        if force:
            await service.clear_index()

        with Progress(
            TextColumn("[bold blue]Indexing"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("{task.fields[chunks]} chunks"),
            console=console,
        ) as progress:
            task = progress.add_task("index", total=None, chunks=0)

            def on_status(status: IndexStatus) -> None:
                progress.update(
                    task,
                    completed=status.indexed_files,
                    total=status.total_files or None,
                    chunks=status.total_chunks,
                )

            service.set_status_callback(on_status)
            await service.index_workspace()
            await service.wait_until_idle()

        return service.get_status()

    try:
        final = run_with_service(ctx, action)
    except CodebaseIndexError as e:
        logger.error(f"Indexing failed: {e}")
        print_error(f"Indexing failed: {e}")
        raise typer.Exit(1)

    if final.error:
        print_error(f"Indexing stopped: {final.error}")
        raise typer.Exit(1)
    print_success(
        f"Indexed {final.total_files} files ({final.total_chunks} chunks in index)"
    )


def status(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show index status."""

    async def action(service: CodebaseIndexService) -> tuple[IndexStatus, bool]:
        return service.get_status(), await service.has_index()

    current, has_index = run_with_service(ctx, action)
    if json_output:
        print_json({**current.to_dict(), "has_index": has_index})
    else:
        print_status(current, has_index)


def clear(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete all indexed data for the workspace."""
    if not yes:
        typer.confirm("Delete the index for this workspace?", abort=True)

    async def action(service: CodebaseIndexService) -> None:
        await service.clear_index()

    run_with_service(ctx, action)
    print_success("Index cleared")


def watch(
    ctx: typer.Context,
    debounce: float = typer.Option(
        1.0, "--debounce", help="Seconds to wait for changes to settle"
    ),
) -> None:
    """Watch the workspace and re-index changed files until interrupted."""

    async def action(service: CodebaseIndexService) -> None:
        if not await service.has_index():
            print_info("No index yet, running initial indexing...")
            await service.index_workspace()
            await service.wait_until_idle()

        async with FileWatcher(service, debounce_delay=debounce):
            console.print(
                f"[bold]Watching[/bold] {service.workspace_path} (Ctrl+C to stop)"
            )
            await asyncio.Event().wait()

    try:
        run_with_service(ctx, action)
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped watching[/dim]")
