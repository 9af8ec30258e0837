"""LanceDB vector store for code chunks.

One table (``code_chunks``) per workspace, one row per chunk. The store has no
internal locking; all mutations for a workspace are serialized by the owning
:class:`~codebase_index.core.service.CodebaseIndexService`.

The store is always in one of two states:

- ``StoreDisabled``: never initialized, failed to open, or closed. Every
  operation is a no-op returning an empty/false result.
- ``StoreReady``: connection open; ``table`` is ``None`` until the first write.
"""

import asyncio
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import lancedb
import pyarrow as pa
from loguru import logger

from ..config.defaults import ASSUMED_CHUNKS_PER_FILE, TABLE_NAME
from .exceptions import DatabaseError
from .models import IndexedChunk, IndexStats, SearchResult


def _create_chunks_schema(vector_dim: int) -> pa.Schema:
    """Create PyArrow schema with a fixed vector dimension.

    Args:
        vector_dim: Embedding vector dimension (e.g., 384, 768, 1024)

    Returns:
        PyArrow schema for the chunks table
    """
    return pa.schema(
        [
            pa.field("id", pa.string()),
            pa.field("file_path", pa.string()),
            pa.field("relative_path", pa.string()),
            pa.field("file_hash", pa.string()),
            pa.field("content", pa.string()),
            pa.field("start_line", pa.int32()),
            pa.field("end_line", pa.int32()),
            pa.field("chunk_type", pa.string()),
            pa.field("language", pa.string()),
            pa.field("symbols", pa.string()),  # Comma-separated
            pa.field("vector", pa.list_(pa.float32(), vector_dim)),
        ]
    )


def _escape(value: str) -> str:
    """Escape a string literal for a LanceDB SQL predicate."""
    return value.replace("'", "''")


def _file_predicate(file_path: str) -> str:
    return f"file_path = '{_escape(file_path)}'"


def _table_names(db: Any) -> list[str]:
    # list_tables() returns a response object with .tables on newer releases
    if hasattr(db, "list_tables"):
        response = db.list_tables()
        return list(response.tables if hasattr(response, "tables") else response)
    return list(db.table_names())


def _vector_dim(table: Any) -> int | None:
    vector_type = table.schema.field("vector").type
    return getattr(vector_type, "list_size", None)


@dataclass
class StoreDisabled:
    """Store unavailable; all operations degrade to no-ops."""

    reason: str = "not initialized"


@dataclass
class StoreReady:
    """Open connection; ``table`` is created lazily on first write."""

    db: Any
    table: Any | None = None


class VectorStore:
    """Persistent vector store backed by a LanceDB table.

    Example:
        store = VectorStore(Path("/repo/.codebase-index/index"))
        await store.initialize()
        await store.add_batch(indexed_chunks)
        results = await store.search(query_vector, top_k=5)
    """

    def __init__(self, index_path: Path, table_name: str = TABLE_NAME) -> None:
        self.index_path = Path(index_path)
        self.table_name = table_name
        self._state: StoreDisabled | StoreReady = StoreDisabled()

    @property
    def state(self) -> StoreDisabled | StoreReady:
        return self._state

    def is_initialized(self) -> bool:
        return isinstance(self._state, StoreReady)

    def _ready_table(self) -> Any | None:
        if isinstance(self._state, StoreReady):
            return self._state.table
        return None

    async def initialize(self) -> None:
        """Open (or prepare to create) the chunks table.

        Failure is not raised: the store stays disabled and every other
        operation becomes a no-op.
        """
        if isinstance(self._state, StoreReady):
            return

        try:
            self.index_path.mkdir(parents=True, exist_ok=True)
            db = lancedb.connect(str(self.index_path))
            table = None
            if self.table_name in _table_names(db):
                table = db.open_table(self.table_name)
                logger.debug(f"Opened existing table '{self.table_name}'")
            else:
                logger.debug(f"Table '{self.table_name}' will be created on first write")
            self._state = StoreReady(db=db, table=table)
            logger.info(f"Vector store initialized at: {self.index_path}")
        except Exception as e:
            logger.error(f"Failed to initialize vector store at {self.index_path}: {e}")
            self._state = StoreDisabled(reason=str(e))

    async def has_index(self) -> bool:
        """True iff the table exists and holds at least one row."""
        table = self._ready_table()
        if table is None:
            return False
        return await asyncio.to_thread(table.count_rows) > 0

    async def get_stats(self) -> IndexStats:
        """Return row count and an approximate file count.

        The file count is ``ceil(rows / ASSUMED_CHUNKS_PER_FILE)``; it is only
        meant for display and can be off in either direction.
        """
        table = self._ready_table()
        if table is None:
            return IndexStats()
        count = await asyncio.to_thread(table.count_rows)
        return IndexStats(
            chunk_count=count,
            file_count=math.ceil(count / ASSUMED_CHUNKS_PER_FILE),
        )

    async def get_file_hashes(self) -> dict[str, str]:
        """Map each indexed file path to its content hash (first seen per path)."""
        table = self._ready_table()
        if table is None:
            return {}

        try:
            rows = await asyncio.to_thread(
                lambda: table.to_arrow().select(["file_path", "file_hash"]).to_pylist()
            )
        except Exception as e:
            logger.error(f"Failed to load file hashes: {e}")
            return {}

        hashes: dict[str, str] = {}
        for row in rows:
            file_path, file_hash = row["file_path"], row["file_hash"]
            if file_path and file_hash and file_path not in hashes:
                hashes[file_path] = file_hash

        logger.debug(f"Loaded {len(hashes)} file hashes")
        return hashes

    async def create_index(self, chunks: list[IndexedChunk]) -> None:
        """Drop any existing table and build a fresh one from ``chunks``."""
        if not isinstance(self._state, StoreReady):
            return
        if not chunks:
            logger.info("No chunks to index")
            return

        state = self._state
        data = self._to_arrow(chunks)
        try:
            await asyncio.to_thread(self._drop_if_exists, state.db)
            state.table = await asyncio.to_thread(
                state.db.create_table, self.table_name, data, schema=data.schema
            )
        except Exception as e:
            logger.error(f"Failed to create index: {e}")
            raise DatabaseError(f"Failed to create index: {e}") from e
        logger.info(f"Created index with {len(chunks)} chunks")

    async def add_batch(self, chunks: list[IndexedChunk]) -> None:
        """Append ``chunks``, creating the table from this batch if needed."""
        if not isinstance(self._state, StoreReady) or not chunks:
            return

        state = self._state
        data = self._to_arrow(chunks)
        new_dim = data.schema.field("vector").type.list_size
        try:
            if state.table is not None and _vector_dim(state.table) != new_dim:
                logger.warning(
                    f"Vector dimension mismatch: table has {_vector_dim(state.table)}D, "
                    f"new data has {new_dim}D. Dropping and recreating table."
                )
                await asyncio.to_thread(self._drop_if_exists, state.db)
                state.table = None

            if state.table is None:
                state.table = await asyncio.to_thread(
                    state.db.create_table, self.table_name, data, schema=data.schema
                )
                logger.info(f"Created table with {len(chunks)} initial chunks")
            else:
                await asyncio.to_thread(state.table.add, data)
                logger.debug(f"Appended {len(chunks)} chunks")
        except Exception as e:
            logger.error(f"Failed to add chunks: {e}")
            raise DatabaseError(f"Failed to add chunks: {e}") from e

    async def upsert_file(self, file_path: str, chunks: list[IndexedChunk]) -> None:
        """Replace every row of ``file_path`` with ``chunks``.

        Delete and append are two separate store operations; a search running
        in between can see no rows for the file.
        """
        if not isinstance(self._state, StoreReady):
            return
        await self.delete_file(file_path)
        if chunks:
            await self.add_batch(chunks)

    async def delete_file(self, file_path: str) -> None:
        """Delete all rows for ``file_path``; missing rows are not an error."""
        table = self._ready_table()
        if table is None:
            return
        try:
            await asyncio.to_thread(table.delete, _file_predicate(file_path))
            logger.debug(f"Deleted rows for file: {file_path}")
        except Exception as e:
            logger.error(f"Failed to delete rows for {file_path}: {e}")
            raise DatabaseError(f"Failed to delete rows for {file_path}: {e}") from e

    async def search(self, query_vector: list[float], top_k: int = 10) -> list[SearchResult]:
        """Nearest-neighbour search by cosine distance.

        Returns up to ``top_k`` results ordered best first, with
        ``score = 1 - distance``.
        """
        table = self._ready_table()
        if table is None or top_k <= 0:
            return []

        try:
            rows = await asyncio.to_thread(
                lambda: table.search(query_vector)
                .distance_type("cosine")
                .limit(top_k)
                .to_list()
            )
        except Exception as e:
            logger.error(f"Vector search failed: {e}")
            raise DatabaseError(f"Vector search failed: {e}") from e

        return [
            SearchResult(
                file_path=row["file_path"],
                relative_path=row["relative_path"],
                content=row["content"],
                start_line=row["start_line"],
                end_line=row["end_line"],
                chunk_type=row["chunk_type"],
                language=row["language"],
                score=1.0 - float(row.get("_distance", 0.0)),
            )
            for row in rows
        ]

    async def clear(self) -> None:
        """Drop the table and forget the handle."""
        if not isinstance(self._state, StoreReady):
            return
        state = self._state
        await asyncio.to_thread(self._drop_if_exists, state.db)
        state.table = None
        logger.info(f"Cleared table '{self.table_name}'")

    async def close(self) -> None:
        """Release the connection handle. Safe to call repeatedly."""
        if isinstance(self._state, StoreReady):
            logger.debug(f"Closing vector store at {self.index_path}")
        self._state = StoreDisabled(reason="closed")

    def _drop_if_exists(self, db: Any) -> None:
        if self.table_name in _table_names(db):
            db.drop_table(self.table_name)

    @staticmethod
    def _to_arrow(chunks: list[IndexedChunk]) -> pa.Table:
        dim = len(chunks[0].vector)
        for chunk in chunks:
            if len(chunk.vector) != dim:
                raise DatabaseError(
                    f"Invalid vector dimension for chunk {chunk.id}: "
                    f"expected {dim}, got {len(chunk.vector)}"
                )
        return pa.Table.from_pylist(
            [chunk.to_row() for chunk in chunks], schema=_create_chunks_schema(dim)
        )
