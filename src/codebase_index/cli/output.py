"""Rich console output helpers for the CLI."""

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from ..core.models import IndexStatus, SearchResult

console = Console()


def print_error(message: str) -> None:
    console.print(f"[bold red]✗[/bold red] {message}")


def print_success(message: str) -> None:
    console.print(f"[bold green]✓[/bold green] {message}")


def print_info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {message}")


def print_warning(message: str) -> None:
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_json(data: Any) -> None:
    # Plain stdout so the output stays machine-readable at any terminal width
    print(json.dumps(data, indent=2, default=str))


def print_status(status: IndexStatus, has_index: bool) -> None:
    table = Table(title="Index Status", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Index present", "yes" if has_index else "no")
    table.add_row("Indexing", "yes" if status.is_indexing else "no")
    table.add_row("Files", f"{status.indexed_files}/{status.total_files}")
    table.add_row("Chunks", str(status.total_chunks))
    if status.error:
        table.add_row("Error", f"[red]{status.error}[/red]")
    console.print(table)


def print_search_results(results: list[SearchResult], query: str) -> None:
    if not results:
        print_warning(f"No results for '{query}'")
        return

    for rank, result in enumerate(results, start=1):
        syntax = Syntax(
            result.content,
            result.language,
            line_numbers=True,
            start_line=result.start_line,
        )
        console.print(
            Panel(
                syntax,
                title=f"{rank}. {result.location}",
                subtitle=f"score {result.score:.3f}",
                title_align="left",
            )
        )


def print_providers(providers: list[dict[str, Any]]) -> None:
    table = Table(title="Embedding Providers")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("API key")
    table.add_column("Description", style="dim")
    for provider in providers:
        table.add_row(
            provider["id"],
            provider["name"],
            "required" if provider["requires_api_key"] else "-",
            provider["description"],
        )
    console.print(table)
