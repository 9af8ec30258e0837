"""Shared fixtures for codebase-index tests."""

import hashlib
from pathlib import Path

import pytest

from codebase_index.config.settings import EmbeddingConfig, IndexConfig
from codebase_index.core.chunker import compute_content_hash
from codebase_index.core.models import ChunkType, IndexedChunk

VECTOR_DIM = 8


def fake_vector(text: str, dim: int = VECTOR_DIM) -> list[float]:
    """Deterministic, never-zero vector derived from the text."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [digest[i] / 255.0 + 0.01 for i in range(dim)]


class FakeEmbedder:
    """Records every batch it is asked to embed."""

    def __init__(self, dim: int = VECTOR_DIM) -> None:
        self.dim = dim
        self.calls: list[list[str]] = []

    @property
    def embedded_texts(self) -> list[str]:
        return [text for batch in self.calls for text in batch]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [fake_vector(text, self.dim) for text in texts]

    async def embed(self, text: str) -> list[float]:
        return (await self.embed_batch([text]))[0]


class FakeEmbedderFactory:
    """Embedder factory handing out one shared FakeEmbedder."""

    def __init__(self, embedder: FakeEmbedder | None = None) -> None:
        self.embedder = embedder or FakeEmbedder()
        self.configs: list[IndexConfig] = []

    def __call__(self, config: IndexConfig) -> FakeEmbedder:
        self.configs.append(config)
        return self.embedder


def make_indexed_chunk(
    file_path: str,
    vector: list[float],
    start_line: int = 1,
    end_line: int = 1,
    content: str | None = None,
    file_hash: str | None = None,
) -> IndexedChunk:
    content = content if content is not None else f"# {file_path}:{start_line}"
    return IndexedChunk(
        id=f"{file_path}:{start_line - 1}",
        file_path=file_path,
        relative_path=Path(file_path).name,
        file_hash=file_hash or compute_content_hash(content),
        content=content,
        start_line=start_line,
        end_line=end_line,
        chunk_type=ChunkType.BLOCK,
        language="py",
        vector=vector,
    )


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def embedder_factory(fake_embedder: FakeEmbedder) -> FakeEmbedderFactory:
    return FakeEmbedderFactory(fake_embedder)


@pytest.fixture
def index_config() -> IndexConfig:
    """Small chunks and an Ollama config (no API key needed)."""
    return IndexConfig(
        chunk_size=10,
        chunk_overlap=2,
        files_per_batch=2,
        embedding=EmbeddingConfig(provider="ollama"),
    )


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A small workspace with indexable, ignored and excluded files."""
    root = tmp_path / "workspace"
    (root / "src").mkdir(parents=True)
    (root / "node_modules" / "lib").mkdir(parents=True)
    (root / ".git").mkdir()

    (root / "src" / "main.py").write_text("def main():\n    return 42\n")
    (root / "src" / "util.ts").write_text("export const x = 1;\n")
    (root / "README.md").write_text("# Project\n")
    (root / "notes.txt").write_text("not indexed\n")
    (root / "node_modules" / "lib" / "index.js").write_text("module.exports = {};\n")
    (root / ".git" / "config.py").write_text("hidden = True\n")
    return root


@pytest.fixture
def chunk_factory():
    """Build an :class:`IndexedChunk` with a given vector."""
    return make_indexed_chunk
