"""Search command."""

import typer
from loguru import logger

from ...core.exceptions import CodebaseIndexError
from ...core.models import SearchResult
from ...core.service import CodebaseIndexService
from ..output import print_error, print_json, print_search_results
from ._common import run_with_service


def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Natural language or code query"),
    top_k: int = typer.Option(10, "--top-k", "-k", min=1, help="Number of results"),
    hybrid: bool = typer.Option(
        False, "--hybrid", help="Use the hybrid search path"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Search the index for code similar to QUERY."""

    async def action(service: CodebaseIndexService) -> list[SearchResult]:
        if hybrid:
            return await service.hybrid_search(query, top_k)
        return await service.search(query, top_k)

    try:
        results = run_with_service(ctx, action)
    except CodebaseIndexError as e:
        logger.error(f"Search failed: {e}")
        print_error(str(e))
        raise typer.Exit(1)

    if json_output:
        print_json([result.to_dict() for result in results])
    else:
        print_search_results(results, query)
