"""Embedding provider commands."""

import asyncio

import typer

from ...config.settings import IndexConfig
from ...core.embedding_providers import list_providers
from ...core.embeddings import EmbeddingClient
from ..output import print_error, print_providers, print_success


def test_connection(ctx: typer.Context) -> None:
    """Embed a probe string with the configured provider."""
    config: IndexConfig = ctx.obj["config"]
    client = EmbeddingClient(config.embedding)
    result = asyncio.run(client.test_connection())

    if result.success:
        print_success(
            f"{client.provider} ({client.model}) responded in {result.latency_ms:.0f}ms"
        )
    else:
        print_error(f"{client.provider} connection failed: {result.error}")
        raise typer.Exit(1)


def providers() -> None:
    """List supported embedding providers."""
    print_providers(list_providers())
