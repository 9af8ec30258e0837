"""Embedding client: batches texts and dispatches to a provider adapter."""

import time
from collections.abc import Mapping
from typing import Any

import httpx
from loguru import logger

from ..config.defaults import CONNECTION_PROBE_TEXT, DEFAULT_EMBED_BATCH_SIZE
from ..config.settings import EmbeddingConfig
from .embedding_providers import EmbeddingProviderAdapter, create_provider
from .exceptions import EmbeddingError
from .models import ConnectionTestResult


class EmbeddingClient:
    """Converts text into fixed-length vectors using the configured provider.

    A fresh ``httpx.AsyncClient`` is opened per batch call so the client can be
    used from any event loop (the worker thread runs its own).

    Example:
        client = EmbeddingClient(EmbeddingConfig(provider="ollama"))
        vectors = await client.embed_batch(["def foo(): ...", "class Bar: ..."])
    """

    def __init__(
        self,
        config: EmbeddingConfig,
        batch_size: int = DEFAULT_EMBED_BATCH_SIZE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize embedding client.

        Args:
            config: Provider configuration
            batch_size: Maximum texts per provider request
            transport: Optional httpx transport (used by tests to stub the network)
        """
        self.config = config
        self.batch_size = batch_size
        self._transport = transport

    @property
    def provider(self) -> str:
        return self.config.provider.value

    @property
    def model(self) -> str | None:
        return self.config.model

    def update_config(self, updates: Mapping[str, Any]) -> None:
        """Merge ``updates`` onto the current configuration."""
        self.config = self.config.merge(updates)
        logger.info(
            f"Embedding config updated: provider={self.provider}, model={self.model}"
        )

    async def embed(self, text: str) -> list[float]:
        """Embed a single text."""
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed ``texts``, preserving order and length.

        Raises:
            ConfigurationError: Provider misconfigured (e.g. missing API key)
            EmbeddingProviderError: Provider request failed
            EmbeddingError: Provider returned a malformed or short response
        """
        if not texts:
            return []

        async with self._http_client() as http_client:
            adapter = create_provider(self.config, http_client)
            vectors: list[list[float]] = []
            for start in range(0, len(texts), self.batch_size):
                batch = texts[start : start + self.batch_size]
                vectors.extend(await self._embed_with(adapter, batch))

        logger.debug(f"Embedded {len(texts)} texts via {self.provider}")
        return vectors

    async def _embed_with(
        self, adapter: EmbeddingProviderAdapter, batch: list[str]
    ) -> list[list[float]]:
        vectors = await adapter.embed_batch(batch)
        if len(vectors) != len(batch):
            raise EmbeddingError(
                f"{adapter.display_name} returned {len(vectors)} embeddings "
                f"for {len(batch)} inputs",
                context={"provider": self.provider},
            )
        return vectors

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.config.timeout, transport=self._transport)

    async def test_connection(self) -> ConnectionTestResult:
        """Embed a probe string and report latency. Never raises."""
        start = time.perf_counter()
        try:
            await self.embed(CONNECTION_PROBE_TEXT)
        except Exception as e:
            logger.warning(f"Embedding connection test failed ({self.provider}): {e}")
            return ConnectionTestResult(success=False, error=str(e))

        latency_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Embedding connection test succeeded ({self.provider}, {latency_ms:.0f}ms)"
        )
        return ConnectionTestResult(success=True, latency_ms=latency_ms)
