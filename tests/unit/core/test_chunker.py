"""Tests for line-based chunking."""

from pathlib import Path

import pytest

from codebase_index.config.settings import IndexConfig
from codebase_index.core.chunker import (
    Chunker,
    compute_content_hash,
    detect_language,
    make_chunk_id,
)
from codebase_index.core.models import ChunkType


def numbered_lines(count: int) -> str:
    return "\n".join(f"line_{i} = {i}" for i in range(1, count + 1))


@pytest.fixture
def chunker() -> Chunker:
    return Chunker(IndexConfig(chunk_size=10, chunk_overlap=2))


class TestHelpers:
    def test_content_hash_is_sha256_hex(self):
        digest = compute_content_hash("hello")
        assert digest == (
            "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
        )

    def test_content_hash_changes_with_content(self):
        assert compute_content_hash("a") != compute_content_hash("b")

    def test_chunk_id_uses_zero_based_line(self):
        assert make_chunk_id("/ws/a.py", 0) == "/ws/a.py:0"
        assert make_chunk_id("/ws/a.py", 900) == "/ws/a.py:900"

    def test_detect_language(self):
        assert detect_language("/ws/main.PY") == "py"
        assert detect_language("/ws/Makefile") == "text"


class TestSmallFiles:
    """Files up to 1.5x chunk_size lines stay whole."""

    def test_small_file_is_single_file_chunk(self, chunker: Chunker):
        content = numbered_lines(5)
        chunks = chunker.chunk_file("/ws/b.py", content, "/ws")

        assert len(chunks) == 1
        chunk = chunks[0]
        assert chunk.chunk_type == ChunkType.FILE
        assert chunk.start_line == 1
        assert chunk.end_line == 5
        assert chunk.content == content
        assert chunk.id == "/ws/b.py:0"
        assert chunk.relative_path == "b.py"
        assert chunk.file_hash == compute_content_hash(content)

    def test_boundary_file_is_still_single_chunk(self, chunker: Chunker):
        chunks = chunker.chunk_file("/ws/b.py", numbered_lines(15), "/ws")
        assert len(chunks) == 1
        assert chunks[0].end_line == 15

    @pytest.mark.parametrize("content", ["", "\n", "   \n\t\n"])
    def test_blank_file_yields_no_chunks(self, chunker: Chunker, content: str):
        assert chunker.chunk_file("/ws/__init__.py", content, "/ws") == []


class TestSlidingWindow:
    def test_windows_advance_by_size_minus_overlap(self, chunker: Chunker):
        chunks = chunker.chunk_file("/ws/a.py", numbered_lines(30), "/ws")

        starts = [chunk.start_line for chunk in chunks]
        assert starts == [1, 9, 17, 25]
        assert all(chunk.chunk_type == ChunkType.BLOCK for chunk in chunks)
        assert chunks[-1].end_line == 30
        assert chunks[0].content.split("\n")[-2:] == chunks[1].content.split("\n")[:2]

    def test_large_file_covers_every_line(self):
        chunker = Chunker(IndexConfig(chunk_size=1000, chunk_overlap=100))
        chunks = chunker.chunk_file("/ws/a.py", numbered_lines(20000), "/ws")

        assert len(chunks) == 23
        assert [c.start_line for c in chunks[:3]] == [1, 901, 1801]
        assert chunks[-1].end_line == 20000
        assert all(c.line_count <= 1000 for c in chunks)
        assert len({c.id for c in chunks}) == len(chunks)

    def test_whitespace_only_windows_are_skipped(self, chunker: Chunker):
        content = numbered_lines(10) + "\n" + "\n".join(["   "] * 20)
        chunks = chunker.chunk_file("/ws/a.py", content, "/ws")

        # Windows starting at lines 17 and 25 hold only blank lines
        assert [c.start_line for c in chunks] == [1, 9]
        assert "/ws/a.py:16" not in {c.id for c in chunks}

    def test_chunk_content_matches_line_range(self, chunker: Chunker):
        lines = numbered_lines(30).split("\n")
        for chunk in chunker.chunk_file("/ws/a.py", "\n".join(lines), "/ws"):
            expected = "\n".join(lines[chunk.start_line - 1 : chunk.end_line])
            assert chunk.content == expected


class TestFilters:
    def test_should_index_file_uses_extension(self, chunker: Chunker):
        assert chunker.should_index_file("/ws/a.py")
        assert chunker.should_index_file(Path("/ws/A.TS"))
        assert not chunker.should_index_file("/ws/notes.txt")

    def test_should_ignore_dir(self, chunker: Chunker):
        assert chunker.should_ignore_dir("node_modules")
        assert chunker.should_ignore_dir(".git")
        assert not chunker.should_ignore_dir("src")

    def test_update_config_merges(self, chunker: Chunker):
        chunker.update_config({"chunk_size": 50})
        assert chunker.config.chunk_size == 50
        assert chunker.config.chunk_overlap == 2
