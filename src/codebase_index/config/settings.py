"""Pydantic configuration models for indexing and embedding."""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .defaults import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_EMBED_BATCH_SIZE,
    DEFAULT_EMBEDDING_MAX_RETRIES,
    DEFAULT_EMBEDDING_MODELS,
    DEFAULT_EMBEDDING_PROVIDER,
    DEFAULT_EMBEDDING_TIMEOUT,
    DEFAULT_FILE_EXTENSIONS,
    DEFAULT_FILES_PER_BATCH,
    DEFAULT_IGNORED_DIRS,
    DEFAULT_MAX_FILE_SIZE,
)


class EmbeddingProvider(str, Enum):
    """Supported embedding providers."""

    JINA = "jina"
    VOYAGE = "voyage"
    OPENAI = "openai"
    COHERE = "cohere"
    HUGGINGFACE = "huggingface"
    OLLAMA = "ollama"


class EmbeddingConfig(BaseModel):
    """Embedding provider configuration.

    ``model`` falls back to the provider's default model when unset.
    """

    provider: EmbeddingProvider = EmbeddingProvider(DEFAULT_EMBEDDING_PROVIDER)
    api_key: str | None = None
    model: str | None = None
    base_url: str | None = None
    timeout: float = Field(default=DEFAULT_EMBEDDING_TIMEOUT, gt=0)
    max_retries: int = Field(default=DEFAULT_EMBEDDING_MAX_RETRIES, ge=0)

    @model_validator(mode="after")
    def _default_model(self) -> "EmbeddingConfig":
        if not self.model:
            self.model = DEFAULT_EMBEDDING_MODELS[self.provider.value]
        return self

    def merge(self, updates: Mapping[str, Any]) -> "EmbeddingConfig":
        """Return a new config with ``updates`` applied on top of this one.

        Switching provider without naming a model re-derives the default model
        for the new provider.
        """
        data = self.model_dump()
        data.update(updates)
        if updates.get("provider") is not None and not updates.get("model"):
            data["model"] = None
        return EmbeddingConfig(**data)


class IndexConfig(BaseModel):
    """Configuration for one indexing run."""

    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)
    chunk_overlap: int = Field(default=DEFAULT_CHUNK_OVERLAP, ge=0)
    included_exts: set[str] = Field(
        default_factory=lambda: set(DEFAULT_FILE_EXTENSIONS)
    )
    ignored_dirs: set[str] = Field(default_factory=lambda: set(DEFAULT_IGNORED_DIRS))
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, gt=0)
    embed_batch_size: int = Field(default=DEFAULT_EMBED_BATCH_SIZE, gt=0)
    files_per_batch: int = Field(default=DEFAULT_FILES_PER_BATCH, gt=0)

    @field_validator("included_exts", mode="before")
    @classmethod
    def _normalize_exts(cls, value: Any) -> set[str]:
        normalized = set()
        for ext in value:
            ext = str(ext).strip().lower()
            if ext and not ext.startswith("."):
                ext = f".{ext}"
            if ext:
                normalized.add(ext)
        return normalized

    @model_validator(mode="after")
    def _check_overlap(self) -> "IndexConfig":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        return self

    def merge(self, updates: Mapping[str, Any]) -> "IndexConfig":
        """Return a new config with ``updates`` applied.

        A mapping under ``embedding`` is merged into the current embedding
        config rather than replacing it.
        """
        data = self.model_dump()
        updates = dict(updates)
        embedding_update = updates.pop("embedding", None)
        data.update(updates)
        if isinstance(embedding_update, EmbeddingConfig):
            data["embedding"] = embedding_update
        elif embedding_update is not None:
            data["embedding"] = self.embedding.merge(embedding_update)
        else:
            data["embedding"] = self.embedding
        return IndexConfig(**data)


class IndexSettings(BaseSettings):
    """Environment-driven settings.

    Reads ``CODEBASE_INDEX_*`` variables (and an optional ``.env`` file), e.g.
    ``CODEBASE_INDEX_PROVIDER=openai`` and ``CODEBASE_INDEX_API_KEY=sk-...``.
    """

    model_config = SettingsConfigDict(
        env_prefix="CODEBASE_INDEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: EmbeddingProvider = EmbeddingProvider(DEFAULT_EMBEDDING_PROVIDER)
    api_key: str | None = None
    model: str | None = None
    base_url: str | None = None
    timeout: float = DEFAULT_EMBEDDING_TIMEOUT
    max_retries: int = DEFAULT_EMBEDDING_MAX_RETRIES
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    log_level: str = "INFO"

    def to_index_config(self) -> IndexConfig:
        """Build an :class:`IndexConfig` from these settings."""
        return IndexConfig(
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
            embedding=EmbeddingConfig(
                provider=self.provider,
                api_key=self.api_key,
                model=self.model,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=self.max_retries,
            ),
        )
