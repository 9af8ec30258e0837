"""Core functionality for codebase-index."""

from .chunker import Chunker, compute_content_hash
from .embeddings import EmbeddingClient
from .exceptions import (
    CodebaseIndexError,
    ConfigurationError,
    DatabaseError,
    EmbeddingError,
    EmbeddingProviderError,
    IndexingError,
    SearchError,
    WorkerError,
)
from .models import (
    ChunkType,
    CodeChunk,
    ConnectionTestResult,
    IndexedChunk,
    IndexStats,
    IndexStatus,
    SearchResult,
)
from .registry import IndexServiceRegistry
from .service import CodebaseIndexService
from .vector_store import VectorStore

__all__ = [
    # Components
    "Chunker",
    "CodebaseIndexService",
    "EmbeddingClient",
    "IndexServiceRegistry",
    "VectorStore",
    "compute_content_hash",
    # Models
    "ChunkType",
    "CodeChunk",
    "ConnectionTestResult",
    "IndexStats",
    "IndexStatus",
    "IndexedChunk",
    "SearchResult",
    # Exceptions
    "CodebaseIndexError",
    "ConfigurationError",
    "DatabaseError",
    "EmbeddingError",
    "EmbeddingProviderError",
    "IndexingError",
    "SearchError",
    "WorkerError",
]
