"""Embedding provider adapters.

One adapter per provider, registered by identifier and selected at
construction time. Each adapter knows its own request/response shape:

- jina, voyage, openai: OpenAI-shaped ``{"data": [{"embedding", "index"}]}``
- cohere: ``{"embeddings": [[...]]}``
- huggingface: one request per text, token-level output is mean-pooled
- ollama: one request per text against a local server, no auth
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, ClassVar

import httpx
import numpy as np
from loguru import logger

from ..config.defaults import EMBEDDING_ENDPOINTS, RETRY_BASE_DELAY
from ..config.settings import EmbeddingConfig
from .exceptions import ConfigurationError, EmbeddingError, EmbeddingProviderError

PROVIDER_REGISTRY: dict[str, type["EmbeddingProviderAdapter"]] = {}


def register_provider(
    name: str,
) -> Callable[[type["EmbeddingProviderAdapter"]], type["EmbeddingProviderAdapter"]]:
    """Class decorator adding an adapter to :data:`PROVIDER_REGISTRY`."""

    def decorator(
        cls: type["EmbeddingProviderAdapter"],
    ) -> type["EmbeddingProviderAdapter"]:
        cls.name = name
        PROVIDER_REGISTRY[name] = cls
        return cls

    return decorator


def mean_pool(token_embeddings: list[list[float]]) -> list[float]:
    """Element-wise mean across the token dimension."""
    if not token_embeddings:
        return []
    return np.asarray(token_embeddings, dtype=np.float64).mean(axis=0).tolist()


class EmbeddingProviderAdapter(ABC):
    """Converts a batch of texts into vectors for one provider."""

    name: ClassVar[str] = ""
    display_name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    requires_api_key: ClassVar[bool] = True

    def __init__(self, config: EmbeddingConfig, http_client: httpx.AsyncClient):
        self.config = config
        self.http_client = http_client
        self.retry_base_delay = RETRY_BASE_DELAY

    @property
    def endpoint(self) -> str:
        return self.config.base_url or EMBEDDING_ENDPOINTS[self.name]

    @property
    def model(self) -> str:
        # EmbeddingConfig always fills in the provider default
        return self.config.model or ""

    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.requires_api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Return one vector per text, in input order."""

    async def _post(self, url: str, payload: dict[str, Any]) -> Any:
        """POST JSON with bounded retry on transient failures.

        Raises:
            EmbeddingProviderError: Non-2xx status or transport failure after
                all retries are exhausted
        """
        attempt = 0
        while True:
            try:
                return await self._post_once(url, payload)
            except EmbeddingProviderError as e:
                if not e.is_transient or attempt >= self.config.max_retries:
                    raise
                delay = self.retry_base_delay * (2**attempt)
                attempt += 1
                logger.warning(
                    f"{self.display_name} request failed ({e}); "
                    f"retry {attempt}/{self.config.max_retries} in {delay:.1f}s"
                )
                await asyncio.sleep(delay)

    async def _post_once(self, url: str, payload: dict[str, Any]) -> Any:
        try:
            response = await self.http_client.post(
                url, headers=self.headers(), json=payload
            )
        except httpx.TimeoutException as e:
            raise EmbeddingProviderError(
                self.name,
                f"{self.display_name} API timeout after {self.config.timeout}s",
            ) from e
        except httpx.HTTPError as e:
            raise EmbeddingProviderError(
                self.name, f"{self.display_name} API request failed: {e}"
            ) from e

        if not response.is_success:
            raise EmbeddingProviderError(
                self.name,
                f"{self.display_name} API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise EmbeddingError(
                f"{self.display_name} returned invalid JSON: {e}",
                context={"provider": self.name},
            ) from e

    def _malformed(self, data: Any) -> EmbeddingError:
        return EmbeddingError(
            f"Unexpected {self.display_name} response shape: {str(data)[:200]}",
            context={"provider": self.name},
        )


class OpenAIShapedAdapter(EmbeddingProviderAdapter):
    """Providers answering with ``data[].embedding`` plus ``data[].index``."""

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        data = await self._post(self.endpoint, {"model": self.model, "input": texts})
        try:
            items = data["data"]
            # Batched responses are not guaranteed to come back in input order
            items = sorted(
                enumerate(items),
                key=lambda pair: pair[1].get("index", pair[0]),
            )
            return [item["embedding"] for _, item in items]
        except (KeyError, TypeError, AttributeError) as e:
            raise self._malformed(data) from e


@register_provider("jina")
class JinaAdapter(OpenAIShapedAdapter):
    display_name = "Jina AI"
    description = "Free 1M tokens/month, code-optimized models"


@register_provider("voyage")
class VoyageAdapter(OpenAIShapedAdapter):
    display_name = "Voyage AI"
    description = "Free 50M tokens, code-specific models"


@register_provider("openai")
class OpenAIAdapter(OpenAIShapedAdapter):
    display_name = "OpenAI"
    description = "Paid, highest quality"


@register_provider("cohere")
class CohereAdapter(EmbeddingProviderAdapter):
    display_name = "Cohere"
    description = "Free tier, 100 requests/minute"

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        data = await self._post(
            self.endpoint,
            {
                "model": self.model,
                "texts": texts,
                "input_type": "search_document",
            },
        )
        try:
            return list(data["embeddings"])
        except (KeyError, TypeError) as e:
            raise self._malformed(data) from e


@register_provider("huggingface")
class HuggingFaceAdapter(EmbeddingProviderAdapter):
    """HuggingFace Inference API; one request per text."""

    display_name = "HuggingFace"
    description = "Free, rate limited"

    @property
    def endpoint(self) -> str:
        return self.config.base_url or f"{EMBEDDING_ENDPOINTS[self.name]}/{self.model}"

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        results = []
        for text in texts:
            data = await self._post(self.endpoint, {"inputs": text})
            results.append(self._to_vector(data))
        return results

    def _to_vector(self, data: Any) -> list[float]:
        if not isinstance(data, list) or not data:
            raise self._malformed(data)
        # [[[...]]]: batch of one token matrix
        if isinstance(data[0], list) and data[0] and isinstance(data[0][0], list):
            data = data[0]
        # [[...], [...]]: token-level embeddings
        if isinstance(data[0], list):
            return mean_pool(data)
        return [float(x) for x in data]


@register_provider("ollama")
class OllamaAdapter(EmbeddingProviderAdapter):
    """Local Ollama server; one request per text, no auth."""

    display_name = "Ollama"
    description = "Runs locally, completely free"
    requires_api_key = False

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        results = []
        for text in texts:
            data = await self._post(
                self.endpoint, {"model": self.model, "prompt": text}
            )
            try:
                results.append(data["embedding"])
            except (KeyError, TypeError) as e:
                raise self._malformed(data) from e
        return results


def create_provider(
    config: EmbeddingConfig, http_client: httpx.AsyncClient
) -> EmbeddingProviderAdapter:
    """Instantiate the adapter for ``config.provider``.

    Raises:
        ConfigurationError: Unknown provider or missing API key
    """
    provider = getattr(config.provider, "value", config.provider)
    adapter_cls = PROVIDER_REGISTRY.get(provider)
    if adapter_cls is None:
        raise ConfigurationError(f"Unsupported embedding provider: {provider}")
    if adapter_cls.requires_api_key and not config.api_key:
        raise ConfigurationError(
            f"{adapter_cls.display_name} requires an API key "
            "(set CODEBASE_INDEX_API_KEY or pass api_key)",
            context={"provider": provider},
        )
    return adapter_cls(config, http_client)


def list_providers() -> list[dict[str, Any]]:
    """Describe registered providers for a host-side provider picker."""
    return [
        {
            "id": name,
            "name": cls.display_name,
            "description": cls.description,
            "requires_api_key": cls.requires_api_key,
        }
        for name, cls in PROVIDER_REGISTRY.items()
    ]
