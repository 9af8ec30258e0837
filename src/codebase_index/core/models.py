"""Data models for codebase indexing."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class ChunkType(str, Enum):
    """Kind of region a chunk covers."""

    FILE = "file"  # whole small file
    BLOCK = "block"  # sliced region of a larger file


@dataclass(frozen=True)
class CodeChunk:
    """A contiguous slice of a source file's lines."""

    id: str
    file_path: str
    relative_path: str
    file_hash: str
    content: str
    start_line: int
    end_line: int
    chunk_type: ChunkType
    language: str
    symbols: tuple[str, ...] = ()

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def with_vector(self, vector: list[float]) -> "IndexedChunk":
        """Attach an embedding vector to this chunk."""
        return IndexedChunk(
            id=self.id,
            file_path=self.file_path,
            relative_path=self.relative_path,
            file_hash=self.file_hash,
            content=self.content,
            start_line=self.start_line,
            end_line=self.end_line,
            chunk_type=self.chunk_type,
            language=self.language,
            symbols=self.symbols,
            vector=list(vector),
        )


@dataclass(frozen=True)
class IndexedChunk(CodeChunk):
    """A chunk together with its embedding vector."""

    vector: list[float] = field(default_factory=list)

    def to_row(self) -> dict[str, Any]:
        """Flatten into a vector store row."""
        return {
            "id": self.id,
            "file_path": self.file_path,
            "relative_path": self.relative_path,
            "file_hash": self.file_hash,
            "content": self.content,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "chunk_type": self.chunk_type.value,
            "language": self.language,
            "symbols": ",".join(self.symbols),
            "vector": self.vector,
        }


@dataclass
class IndexStatus:
    """Mutable per-workspace indexing status, observed by the host."""

    is_indexing: bool = False
    total_files: int = 0
    indexed_files: int = 0
    total_chunks: int = 0
    last_indexed_at: float | None = None  # epoch milliseconds
    error: str | None = None

    def copy(self) -> "IndexStatus":
        return IndexStatus(**asdict(self))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class IndexStats:
    """Index statistics.

    ``file_count`` is approximated from the row count and is only suitable
    for display.
    """

    chunk_count: int = 0
    file_count: int = 0


@dataclass
class SearchResult:
    """A chunk returned from similarity search; higher ``score`` is better."""

    file_path: str
    relative_path: str
    content: str
    start_line: int
    end_line: int
    chunk_type: str
    language: str
    score: float

    @property
    def location(self) -> str:
        return f"{self.relative_path}:{self.start_line}-{self.end_line}"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ConnectionTestResult:
    """Outcome of probing an embedding provider."""

    success: bool
    latency_ms: float | None = None
    error: str | None = None
