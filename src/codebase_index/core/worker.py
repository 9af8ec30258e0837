"""Worker context for chunking and embedding off the orchestrator's loop.

The worker runs on its own thread with its own asyncio event loop. Requests
arrive through a ``queue.Queue``; results go back through a ``deliver``
callback that hands each message to the orchestrator's loop. Nothing else is
shared between the two sides.
"""

import asyncio
import queue
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from loguru import logger

from ..config.settings import IndexConfig
from .chunker import Chunker, compute_content_hash
from .embeddings import EmbeddingClient
from .exceptions import WorkerError
from .file_discovery import FileDiscovery, read_source_file
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
from .models import CodeChunk, IndexedChunk

# Emit a progress message at least every N files
PROGRESS_INTERVAL = 50

_STOP = object()


class Embedder(Protocol):
    async def embed_batch(self, texts: list[str]) -> list[list[float]]: ...


EmbedderFactory = Callable[[IndexConfig], Embedder]


def default_embedder_factory(config: IndexConfig) -> Embedder:
    return EmbeddingClient(config.embedding, batch_size=config.embed_batch_size)


async def embed_chunks(embedder: Embedder, chunks: list[CodeChunk]) -> list[IndexedChunk]:
    """Embed chunk contents and attach the vectors, preserving order."""
    if not chunks:
        return []
    vectors = await embedder.embed_batch([chunk.content for chunk in chunks])
    return [chunk.with_vector(vector) for chunk, vector in zip(chunks, vectors, strict=True)]


class IndexWorker:
    """Chunk + embed logic executed inside the worker context."""

    def __init__(
        self,
        emit: Callable[[WorkerMessage], None],
        embedder_factory: EmbedderFactory = default_embedder_factory,
    ) -> None:
        self.emit = emit
        self.embedder_factory = embedder_factory

    async def handle(self, request: WorkerRequest) -> None:
        """Process one request. Failures are reported, never raised."""
        try:
            if isinstance(request, IndexRequest):
                await self.run_index(request)
            elif isinstance(request, UpdateRequest):
                await self.run_update(request)
            else:
                raise TypeError(f"Unknown worker request: {request!r}")
        except Exception as e:
            logger.error(f"Worker failed handling '{request.type}' request: {e}")
            self.emit(ErrorMessage(error=str(e)))

    async def run_index(self, request: IndexRequest) -> None:
        """Index the whole workspace, skipping files whose hash is unchanged."""
        config = request.config
        workspace = request.workspace_path
        chunker = Chunker(config)
        discovery = FileDiscovery(Path(workspace), chunker)

        files = await asyncio.to_thread(discovery.find_indexable_files)
        total = len(files)
        logger.info(f"Worker indexing {total} files in {workspace}")
        self.emit(ProgressMessage(processed=0, total=total))

        embedder = self.embedder_factory(config)
        existing = request.existing_hashes
        seen_paths: set[str] = set()
        pending: list[CodeChunk] = []
        pending_files = 0
        replaced: list[str] = []
        processed = 0
        skipped = 0

        for path in files:
            file_path = str(path)
            processed += 1

            content = await asyncio.to_thread(read_source_file, path)
            # Unreadable files stay unseen so their stored rows are pruned below
            if content is not None:
                seen_paths.add(file_path)
                stored_hash = existing.get(file_path)
                if stored_hash is not None and stored_hash == compute_content_hash(content):
                    skipped += 1
                else:
                    if stored_hash is not None:
                        replaced.append(file_path)
                    pending.extend(chunker.chunk_file(file_path, content, workspace))
                    pending_files += 1

            if pending_files >= config.files_per_batch:
                await self._flush(embedder, pending, replaced, processed, total)
                pending, replaced, pending_files = [], [], 0
            elif processed % PROGRESS_INTERVAL == 0:
                self.emit(ProgressMessage(processed=processed, total=total))

        if pending or replaced:
            await self._flush(embedder, pending, replaced, processed, total)

        for stale_path in sorted(set(existing) - seen_paths):
            logger.debug(f"Removing index entries for vanished file: {stale_path}")
            self.emit(UpdateResultMessage(file_path=stale_path, deleted=True))

        self.emit(ProgressMessage(processed=processed, total=total))
        logger.info(
            f"Worker finished: {processed} files processed, {skipped} unchanged"
        )
        self.emit(CompleteMessage())

    async def _flush(
        self,
        embedder: Embedder,
        chunks: list[CodeChunk],
        replaced: list[str],
        processed: int,
        total: int,
    ) -> None:
        indexed = await embed_chunks(embedder, chunks)
        self.emit(
            ResultMessage(
                chunks=tuple(indexed),
                processed=processed,
                total=total,
                replaced_files=tuple(replaced),
            )
        )

    async def run_update(self, request: UpdateRequest) -> None:
        """Re-chunk and re-embed one file, or report it as deleted."""
        config = request.config
        workspace = request.workspace_path
        path = Path(request.file)
        if not path.is_absolute():
            path = Path(workspace) / path
        file_path = str(path)
        chunker = Chunker(config)

        content = None
        if path.is_file() and self._is_indexable(path, workspace, chunker):
            content = await asyncio.to_thread(read_source_file, path)

        if content is None:
            logger.debug(f"File removed or excluded: {file_path}")
            self.emit(UpdateResultMessage(file_path=file_path, deleted=True))
            return

        chunks = chunker.chunk_file(file_path, content, workspace)
        embedder = self.embedder_factory(config)
        indexed = await embed_chunks(embedder, chunks)
        self.emit(UpdateResultMessage(file_path=file_path, chunks=tuple(indexed)))

    @staticmethod
    def _is_indexable(path: Path, workspace: str, chunker: Chunker) -> bool:
        if not chunker.should_index_file(path):
            return False
        try:
            relative_dirs = path.parent.relative_to(workspace).parts
        except ValueError:
            relative_dirs = ()
        if any(chunker.should_ignore_dir(part) for part in relative_dirs):
            return False
        try:
            return path.stat().st_size <= chunker.config.max_file_size
        except OSError:
            return False


class WorkerContext:
    """Owns the worker thread and its event loop.

    Example:
        ctx = WorkerContext(deliver=on_message, on_crash=on_crash)
        ctx.start()
        ctx.post(IndexRequest(workspace_path, config, hashes))
        ...
        ctx.terminate()
    """

    def __init__(
        self,
        deliver: Callable[[WorkerMessage], None],
        on_crash: Callable[[BaseException], None],
        embedder_factory: EmbedderFactory = default_embedder_factory,
        name: str = "index-worker",
    ) -> None:
        self._deliver = deliver
        self._on_crash = on_crash
        self._embedder_factory = embedder_factory
        self._inbox: queue.Queue[Any] = queue.Queue()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._current: asyncio.Task | None = None
        self._stopping = False

    @property
    def is_alive(self) -> bool:
        return self._thread.is_alive() and not self._stopping

    def start(self) -> None:
        self._thread.start()
        logger.debug(f"Worker thread '{self._thread.name}' started")

    def post(self, request: WorkerRequest) -> None:
        """Queue a request for the worker."""
        if not self.is_alive:
            raise WorkerError("Worker context is not running")
        self._inbox.put(request)

    def terminate(self, timeout: float = 5.0) -> None:
        """Stop the worker, cancelling any in-flight request."""
        if self._stopping:
            return
        self._stopping = True
        self._inbox.put(_STOP)

        loop, task = self._loop, self._current
        if loop is not None and task is not None and not task.done():
            try:
                loop.call_soon_threadsafe(task.cancel)
            except RuntimeError:
                pass  # loop already closed

        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout)
        logger.debug(f"Worker thread '{self._thread.name}' terminated")

    def _emit(self, message: WorkerMessage) -> None:
        if self._stopping:
            return
        try:
            self._deliver(message)
        except RuntimeError as e:
            # Orchestrator loop is gone; nobody is listening any more
            logger.debug(f"Dropping worker message '{message.type}': {e}")

    def _run(self) -> None:
        try:
            asyncio.run(self._main())
        except Exception as e:
            logger.error(f"Worker thread crashed: {e}")
            if not self._stopping:
                self._stopping = True
                self._on_crash(e)

    async def _main(self) -> None:
        self._loop = asyncio.get_running_loop()
        worker = IndexWorker(self._emit, self._embedder_factory)

        while True:
            request = await asyncio.to_thread(self._inbox.get)
            if request is _STOP or self._stopping:
                break

            self._current = asyncio.create_task(worker.handle(request))
            try:
                await self._current
            except asyncio.CancelledError:
                logger.info("Worker request cancelled")
                break
            finally:
                self._current = None
