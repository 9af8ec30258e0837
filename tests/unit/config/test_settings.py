"""Tests for configuration models and environment settings."""

import pytest
from pydantic import ValidationError

from codebase_index.config.defaults import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE
from codebase_index.config.settings import (
    EmbeddingConfig,
    EmbeddingProvider,
    IndexConfig,
    IndexSettings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's environment and any local .env file."""
    monkeypatch.chdir(tmp_path)
    for name in [
        "CODEBASE_INDEX_PROVIDER",
        "CODEBASE_INDEX_API_KEY",
        "CODEBASE_INDEX_MODEL",
        "CODEBASE_INDEX_BASE_URL",
        "CODEBASE_INDEX_TIMEOUT",
        "CODEBASE_INDEX_MAX_RETRIES",
        "CODEBASE_INDEX_CHUNK_SIZE",
        "CODEBASE_INDEX_CHUNK_OVERLAP",
        "CODEBASE_INDEX_LOG_LEVEL",
    ]:
        monkeypatch.delenv(name, raising=False)


class TestIndexConfig:
    def test_defaults(self):
        config = IndexConfig()
        assert config.chunk_size == DEFAULT_CHUNK_SIZE
        assert config.chunk_overlap == DEFAULT_CHUNK_OVERLAP
        assert ".py" in config.included_exts
        assert "node_modules" in config.ignored_dirs
        assert config.embedding.provider == EmbeddingProvider.JINA

    def test_extensions_are_normalized(self):
        config = IndexConfig(included_exts=["PY", ".Ts", " md ", ""])
        assert config.included_exts == {".py", ".ts", ".md"}

    def test_overlap_must_be_smaller_than_size(self):
        with pytest.raises(ValidationError, match="chunk_overlap"):
            IndexConfig(chunk_size=10, chunk_overlap=10)

    def test_non_positive_chunk_size_rejected(self):
        with pytest.raises(ValidationError):
            IndexConfig(chunk_size=0, chunk_overlap=0)

    def test_merge_returns_new_config(self):
        base = IndexConfig()
        merged = base.merge({"chunk_size": 200})

        assert merged.chunk_size == 200
        assert base.chunk_size == DEFAULT_CHUNK_SIZE
        assert merged.included_exts == base.included_exts

    def test_merge_embedding_mapping_keeps_other_fields(self):
        base = IndexConfig(embedding=EmbeddingConfig(provider="openai", api_key="k"))
        merged = base.merge({"embedding": {"model": "text-embedding-3-large"}})

        assert merged.embedding.provider == EmbeddingProvider.OPENAI
        assert merged.embedding.api_key == "k"
        assert merged.embedding.model == "text-embedding-3-large"

    def test_merge_embedding_config_replaces(self):
        replacement = EmbeddingConfig(provider="ollama")
        merged = IndexConfig().merge({"embedding": replacement})
        assert merged.embedding == replacement

    def test_merge_validates(self):
        with pytest.raises(ValidationError):
            IndexConfig().merge({"chunk_overlap": 500})


class TestEmbeddingConfig:
    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            EmbeddingConfig(provider="word2vec")

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            EmbeddingConfig(timeout=0)

    def test_switching_provider_resets_default_model(self):
        config = EmbeddingConfig(provider="jina").merge({"provider": "huggingface"})
        assert config.model == "sentence-transformers/all-MiniLM-L6-v2"

    def test_changing_only_key_keeps_model(self):
        config = EmbeddingConfig(provider="openai", model="custom").merge({"api_key": "new"})
        assert config.model == "custom"
        assert config.api_key == "new"


class TestIndexSettings:
    def test_defaults_without_environment(self):
        config = IndexSettings().to_index_config()
        assert config.embedding.provider == EmbeddingProvider.JINA
        assert config.embedding.api_key is None

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("CODEBASE_INDEX_PROVIDER", "voyage")
        monkeypatch.setenv("CODEBASE_INDEX_API_KEY", "pa-123")
        monkeypatch.setenv("CODEBASE_INDEX_CHUNK_SIZE", "120")
        monkeypatch.setenv("CODEBASE_INDEX_CHUNK_OVERLAP", "20")

        config = IndexSettings().to_index_config()

        assert config.embedding.provider == EmbeddingProvider.VOYAGE
        assert config.embedding.api_key == "pa-123"
        assert config.embedding.model == "voyage-code-2"
        assert config.chunk_size == 120
        assert config.chunk_overlap == 20

    def test_reads_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text(
            "CODEBASE_INDEX_PROVIDER=ollama\nCODEBASE_INDEX_MODEL=mxbai-embed-large\n"
        )

        config = IndexSettings().to_index_config()

        assert config.embedding.provider == EmbeddingProvider.OLLAMA
        assert config.embedding.model == "mxbai-embed-large"

    def test_invalid_chunking_fails_on_conversion(self, monkeypatch):
        monkeypatch.setenv("CODEBASE_INDEX_CHUNK_SIZE", "10")
        monkeypatch.setenv("CODEBASE_INDEX_CHUNK_OVERLAP", "10")

        with pytest.raises(ValidationError):
            IndexSettings().to_index_config()
