"""Line-based code chunking.

Splits file content into overlapping fixed-size line windows. Small files are
kept whole so they never produce a tiny trailing chunk. No grammar parsing is
attempted; ``symbols`` is always empty here.
"""

import hashlib
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..config.settings import IndexConfig
from .models import ChunkType, CodeChunk

# Files up to this multiple of chunk_size lines are emitted as a single chunk
SMALL_FILE_FACTOR = 1.5


def compute_content_hash(content: str) -> str:
    """Return the SHA-256 hex digest of ``content`` (UTF-8 encoded)."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def make_chunk_id(file_path: str, zero_based_line: int) -> str:
    """Chunk ids are derived from the file path and the chunk's line offset."""
    return f"{file_path}:{zero_based_line}"


def detect_language(file_path: str) -> str:
    """Best-effort language tag: the lower-cased extension, or ``text``."""
    ext = Path(file_path).suffix.lstrip(".").lower()
    return ext or "text"


class Chunker:
    """Produces :class:`CodeChunk` objects from already-read file content."""

    def __init__(self, config: IndexConfig | None = None) -> None:
        self.config = config or IndexConfig()

    def update_config(self, updates: Mapping[str, Any]) -> None:
        self.config = self.config.merge(updates)

    def chunk_file(
        self, file_path: str, content: str, workspace_root: str
    ) -> list[CodeChunk]:
        """Split one file into chunks.

        Args:
            file_path: Absolute path of the file
            content: Full text of the file
            workspace_root: Workspace root used to compute relative paths

        Returns:
            Chunks ordered by start line; empty for blank files
        """
        if not content.strip():
            return []

        file_hash = compute_content_hash(content)
        language = detect_language(file_path)
        relative_path = os.path.relpath(file_path, workspace_root)
        return self._chunk_by_lines(
            file_path, relative_path, content, language, file_hash
        )

    def _chunk_by_lines(
        self,
        file_path: str,
        relative_path: str,
        content: str,
        language: str,
        file_hash: str,
    ) -> list[CodeChunk]:
        lines = content.split("\n")
        total_lines = len(lines)
        chunk_size = self.config.chunk_size
        step = chunk_size - self.config.chunk_overlap

        if total_lines <= chunk_size * SMALL_FILE_FACTOR:
            return [
                CodeChunk(
                    id=make_chunk_id(file_path, 0),
                    file_path=file_path,
                    relative_path=relative_path,
                    file_hash=file_hash,
                    content=content,
                    start_line=1,
                    end_line=total_lines,
                    chunk_type=ChunkType.FILE,
                    language=language,
                )
            ]

        chunks: list[CodeChunk] = []
        for start in range(0, total_lines, step):
            end = min(start + chunk_size, total_lines)
            chunk_content = "\n".join(lines[start:end])

            # Ids derive from the line offset, so skipping keeps them stable
            if chunk_content.strip():
                chunks.append(
                    CodeChunk(
                        id=make_chunk_id(file_path, start),
                        file_path=file_path,
                        relative_path=relative_path,
                        file_hash=file_hash,
                        content=chunk_content,
                        start_line=start + 1,
                        end_line=end,
                        chunk_type=ChunkType.BLOCK,
                        language=language,
                    )
                )

            if end >= total_lines:
                break

        return chunks

    def should_index_file(self, file_path: str | Path) -> bool:
        """True iff the file's extension is configured for indexing."""
        return Path(file_path).suffix.lower() in self.config.included_exts

    def should_ignore_dir(self, dir_name: str) -> bool:
        """True for configured ignored directories and any dot-directory."""
        return dir_name in self.config.ignored_dirs or dir_name.startswith(".")
