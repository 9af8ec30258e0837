"""Codebase index service: orchestrates indexing for one workspace.

The service owns the vector store and a worker context. Heavy chunk + embed
work happens in the worker; every store mutation happens here, one message at
a time, so writes to the table never interleave.

State machine: Idle -> Indexing -> (Complete | Failed) -> Idle
"""

import asyncio
import time
from collections import deque
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from loguru import logger

from ..config.defaults import APP_DIR_NAME, INDEX_DIR_NAME
from ..config.settings import IndexConfig
from .embeddings import EmbeddingClient
from .exceptions import CodebaseIndexError, SearchError, WorkerError
from .messages import (
    CompleteMessage,
    ErrorMessage,
    IndexRequest,
    ProgressMessage,
    ResultMessage,
    UpdateRequest,
    UpdateResultMessage,
    WorkerMessage,
    WorkerRequest,
)
from .models import ConnectionTestResult, IndexStatus, SearchResult
from .vector_store import VectorStore
from .worker import EmbedderFactory, WorkerContext, default_embedder_factory

StatusCallback = Callable[[IndexStatus], None]


def default_index_path(workspace_path: str | Path) -> Path:
    """``<workspace>/.codebase-index/index``"""
    return Path(workspace_path) / APP_DIR_NAME / INDEX_DIR_NAME


class CodebaseIndexService:
    """Per-workspace indexing orchestrator.

    Public operations never block on indexing: :meth:`index_workspace` returns
    once the request is handed to the worker. Observe progress with
    :meth:`get_status`, a status callback, or :meth:`wait_until_idle`.

    Example:
        service = CodebaseIndexService("/path/to/repo", config)
        await service.initialize()
        await service.index_workspace()
        await service.wait_until_idle()
        results = await service.search("parse config file", top_k=5)
        await service.close()
    """

    def __init__(
        self,
        workspace_path: str | Path,
        config: IndexConfig | None = None,
        embedder_factory: EmbedderFactory = default_embedder_factory,
        embedding_client: EmbeddingClient | None = None,
        index_path: Path | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            workspace_path: Root of the workspace to index
            config: Index configuration (defaults apply when omitted)
            embedder_factory: Builds the embedder used inside the worker
            embedding_client: Client for query embeddings (built from config if omitted)
            index_path: Store directory (defaults to ``<workspace>/.codebase-index/index``)
        """
        self.workspace_path = str(Path(workspace_path).resolve())
        self.config = config or IndexConfig()
        self.embedder = embedding_client or EmbeddingClient(
            self.config.embedding, batch_size=self.config.embed_batch_size
        )
        self.vector_store = VectorStore(index_path or default_index_path(self.workspace_path))
        self._embedder_factory = embedder_factory

        self._status = IndexStatus()
        self._status_callback: StatusCallback | None = None

        self._loop: asyncio.AbstractEventLoop | None = None
        self._worker: WorkerContext | None = None
        self._inbox: asyncio.Queue[WorkerMessage] | None = None
        self._dispatcher: asyncio.Task | None = None
        # Request types posted to the worker and not yet finished, oldest first
        self._in_flight: deque[str] = deque()
        self._idle: asyncio.Event | None = None

    # ── Lifecycle ───────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Open the store and seed status from an existing index."""
        await self.vector_store.initialize()

        if self._status.is_indexing:
            return

        has_existing_index = await self.vector_store.has_index()
        if has_existing_index:
            stats = await self.vector_store.get_stats()
            self._status.total_chunks = stats.chunk_count
            self._status.total_files = stats.file_count

        logger.info(
            f"Index service initialized for: {self.workspace_path} "
            + (
                f"({self._status.total_chunks} chunks)"
                if has_existing_index
                else "(no index)"
            )
        )

    def destroy(self) -> None:
        """Terminate the worker context. The next run recreates it."""
        if self._worker is not None:
            self._worker.terminate()
            self._worker = None
        if self._dispatcher is not None and not self._dispatcher.done():
            try:
                self._dispatcher.cancel()
            except RuntimeError:
                pass  # owning loop already closed
        self._dispatcher = None
        self._inbox = None
        self._loop = None
        self._in_flight.clear()
        if self._idle is not None:
            self._idle.set()
        if self._status.is_indexing:
            self._status.is_indexing = False
            self._emit_status()

    async def close(self) -> None:
        """Destroy the worker and release the store connection."""
        worker, self._worker = self._worker, None
        if worker is not None:
            # Joining the worker thread must not block this loop
            await asyncio.to_thread(worker.terminate)
        self.destroy()
        await self.vector_store.close()

    # ── Configuration ───────────────────────────────────────────────────

    def set_status_callback(self, callback: StatusCallback | None) -> None:
        """Register the host's status-broadcast callback."""
        self._status_callback = callback

    def update_config(self, updates: Mapping[str, Any]) -> None:
        """Merge index config updates; the worker sees them on its next request."""
        self.config = self.config.merge(updates)
        self.embedder.config = self.config.embedding
        self.embedder.batch_size = self.config.embed_batch_size

    def update_embedding_config(self, updates: Mapping[str, Any]) -> None:
        """Merge embedding config updates (provider, api_key, model, base_url...)."""
        self.embedder.update_config(updates)
        self.config = self.config.merge({"embedding": self.embedder.config})

    async def test_embedding_connection(self) -> ConnectionTestResult:
        return await self.embedder.test_connection()

    # ── Queries ─────────────────────────────────────────────────────────

    def get_status(self) -> IndexStatus:
        """Snapshot of the current status."""
        return self._status.copy()

    async def has_index(self) -> bool:
        return await self.vector_store.has_index()

    async def search(self, query: str, top_k: int = 10) -> list[SearchResult]:
        """Semantic search.

        The query is embedded here rather than in the worker to keep
        interactive latency low.

        Raises:
            SearchError: Index not initialized, or embedding/search failed
        """
        if not self.vector_store.is_initialized():
            raise SearchError("Index not initialized")

        try:
            query_vector = await self.embedder.embed(query)
            return await self.vector_store.search(query_vector, top_k)
        except CodebaseIndexError as e:
            logger.error(f"Search failed for '{query}': {e}")
            raise SearchError(f"Search failed: {e}") from e

    async def hybrid_search(self, query: str, top_k: int = 10) -> list[SearchResult]:
        """Vector search over ``2 * top_k`` candidates truncated to ``top_k``.

        Reserved composition point for keyword fusion; today it is pure
        vector similarity.
        """
        candidates = await self.search(query, top_k * 2)
        return candidates[:top_k]

    # ── Mutations ───────────────────────────────────────────────────────

    async def index_workspace(self) -> None:
        """Start a full (incremental) indexing run and return immediately.

        A no-op while a run is already in progress.
        """
        if self._status.is_indexing:
            logger.info("Already indexing, skipping...")
            return

        if not self.vector_store.is_initialized():
            await self.initialize()

        self._ensure_worker()
        self._status = IndexStatus(is_indexing=True)
        self._emit_status()

        try:
            existing_hashes = await self.vector_store.get_file_hashes()
            logger.info(
                f"Starting indexing for {self.workspace_path} "
                f"({len(existing_hashes)} files already indexed)"
            )
            self._post(
                IndexRequest(
                    workspace_path=self.workspace_path,
                    config=self.config.model_copy(deep=True),
                    existing_hashes=dict(existing_hashes),
                )
            )
        except Exception as e:
            logger.error(f"Indexing failed to start: {e}")
            self._status.error = str(e)
            self._status.is_indexing = False
            self._emit_status()

    async def update_file(self, file_path: str | Path) -> None:
        """Re-index a single file in the background.

        Ignored when the store was never initialized or the extension is not
        configured for indexing.
        """
        if not self.vector_store.is_initialized():
            return

        path = Path(file_path)
        if not path.is_absolute():
            path = Path(self.workspace_path) / path
        if path.suffix.lower() not in self.config.included_exts:
            return

        self._ensure_worker()
        self._post(
            UpdateRequest(
                workspace_path=self.workspace_path,
                file=str(path),
                config=self.config.model_copy(deep=True),
            )
        )

    async def clear_index(self) -> None:
        """Drop all indexed data and reset status."""
        await self.vector_store.clear()
        self._status = IndexStatus()
        self._emit_status()
        logger.info("Index cleared")

    async def wait_until_idle(self, timeout: float | None = None) -> None:
        """Wait until every posted request has been fully handled."""
        if self._idle is None:
            return
        await asyncio.wait_for(self._idle.wait(), timeout)

    # ── Worker channel ──────────────────────────────────────────────────

    def _ensure_worker(self) -> None:
        """(Re)create the worker and message dispatcher when missing."""
        loop = asyncio.get_running_loop()
        if self._loop is not loop or self._dispatcher is None or self._dispatcher.done():
            self.destroy()
            self._loop = loop
            self._inbox = asyncio.Queue()
            self._idle = asyncio.Event()
            self._idle.set()
            self._dispatcher = loop.create_task(self._dispatch_loop(self._inbox))

        if self._worker is None or not self._worker.is_alive:
            inbox = self._inbox

            def deliver(message: WorkerMessage) -> None:
                loop.call_soon_threadsafe(inbox.put_nowait, message)

            def on_crash(error: BaseException) -> None:
                loop.call_soon_threadsafe(self._handle_worker_crash, error)

            self._in_flight.clear()
            self._worker = WorkerContext(
                deliver=deliver,
                on_crash=on_crash,
                embedder_factory=self._embedder_factory,
                name=f"index-worker:{Path(self.workspace_path).name}",
            )
            self._worker.start()
            logger.debug("Worker context created")

    def _post(self, request: WorkerRequest) -> None:
        if self._worker is None or self._idle is None:
            raise WorkerError("Worker context is not running")
        self._in_flight.append(request.type)
        self._idle.clear()
        self._worker.post(request)

    def _finish_request(self, request_type: str | None = None) -> None:
        """Retire the oldest in-flight request (if it matches ``request_type``)."""
        if self._in_flight and (request_type is None or self._in_flight[0] == request_type):
            self._in_flight.popleft()
        if not self._in_flight and self._idle is not None:
            self._idle.set()

    async def _dispatch_loop(self, inbox: asyncio.Queue[WorkerMessage]) -> None:
        while True:
            message = await inbox.get()
            try:
                await self._handle_message(message)
            except Exception as e:
                logger.error(f"Failed to handle worker message '{message.type}': {e}")
                self._status.error = str(e)
                self._emit_status()
            finally:
                inbox.task_done()

    async def _handle_message(self, message: WorkerMessage) -> None:
        if isinstance(message, ProgressMessage):
            self._update_progress(message.processed, message.total)
            self._emit_status()

        elif isinstance(message, ResultMessage):
            for stale_path in message.replaced_files:
                await self.vector_store.delete_file(stale_path)
            if message.chunks:
                await self.vector_store.add_batch(list(message.chunks))
                self._status.total_chunks += len(message.chunks)
            self._update_progress(message.processed, message.total)
            self._emit_status()

        elif isinstance(message, UpdateResultMessage):
            try:
                if message.deleted:
                    await self.vector_store.delete_file(message.file_path)
                else:
                    # Zero chunks means the file is now empty
                    await self.vector_store.upsert_file(
                        message.file_path, list(message.chunks)
                    )
                logger.debug(f"Updated index for: {message.file_path}")
            finally:
                self._finish_request("update")

        elif isinstance(message, CompleteMessage):
            self._status.is_indexing = False
            self._status.last_indexed_at = time.time() * 1000
            stats = await self.vector_store.get_stats()
            self._status.total_chunks = stats.chunk_count
            logger.info(f"Indexing complete. Total chunks: {self._status.total_chunks}")
            self._emit_status()
            self._finish_request("index")

        elif isinstance(message, ErrorMessage):
            logger.error(f"Worker error: {message.error}")
            self._status.error = message.error
            self._status.is_indexing = False
            self._emit_status()
            self._finish_request()

    def _handle_worker_crash(self, error: BaseException) -> None:
        logger.error(f"Worker context crashed: {error}")
        self._worker = None
        self._status.error = str(error) or type(error).__name__
        self._status.is_indexing = False
        self._in_flight.clear()
        self._finish_request()
        self._emit_status()

    def _update_progress(self, processed: int, total: int | None) -> None:
        self._status.indexed_files = processed
        if total:
            self._status.total_files = total

    def _emit_status(self) -> None:
        if self._status_callback is None:
            return
        try:
            self._status_callback(self._status.copy())
        except Exception as e:
            logger.warning(f"Status callback raised: {e}")
