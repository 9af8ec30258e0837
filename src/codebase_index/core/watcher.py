"""File system watcher feeding incremental updates to the index service."""

import asyncio
import threading
from collections.abc import Awaitable, Callable
from concurrent.futures import Future
from pathlib import Path

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .chunker import Chunker
from .service import CodebaseIndexService


class CodeFileHandler(FileSystemEventHandler):
    """Collects changed code files and flushes them after a quiet period."""

    def __init__(
        self,
        workspace_root: Path,
        chunker: Chunker,
        callback: Callable[[str], Awaitable[None]],
        loop: asyncio.AbstractEventLoop,
        debounce_delay: float = 1.0,
    ):
        """Initialize file handler.

        Args:
            workspace_root: Watched root, used to evaluate ignored directories
            chunker: Supplies the extension and directory filters
            callback: Async callback invoked once per changed path
            loop: Event loop to schedule callbacks on
            debounce_delay: Delay in seconds to debounce rapid changes
        """
        super().__init__()
        self.workspace_root = workspace_root
        self.chunker = chunker
        self.callback = callback
        self.loop = loop
        self.debounce_delay = debounce_delay
        self.pending_changes: set[str] = set()
        self._lock = threading.Lock()
        self.debounce_task: Future | None = None

    def should_process_file(self, file_path: str) -> bool:
        path = Path(file_path)
        if not self.chunker.should_index_file(path):
            return False
        try:
            parts = path.parent.relative_to(self.workspace_root).parts
        except ValueError:
            return False
        return not any(self.chunker.should_ignore_dir(part) for part in parts)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._schedule_change(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._schedule_change(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        # The worker reports missing files as deleted
        if not event.is_directory:
            self._schedule_change(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._schedule_change(event.src_path)
            self._schedule_change(getattr(event, "dest_path", ""))

    def _schedule_change(self, file_path: str | bytes) -> None:
        file_path = file_path.decode() if isinstance(file_path, bytes) else file_path
        if not file_path or not self.should_process_file(file_path):
            return

        # Observer thread side; each change restarts the quiet period
        with self._lock:
            self.pending_changes.add(file_path)
            if self.debounce_task and not self.debounce_task.done():
                self.debounce_task.cancel()
            self.debounce_task = asyncio.run_coroutine_threadsafe(
                self._debounced_process(), self.loop
            )

    async def _debounced_process(self) -> None:
        await asyncio.sleep(self.debounce_delay)

        with self._lock:
            changes = sorted(self.pending_changes)
            self.pending_changes.clear()
            self.debounce_task = None
        for file_path in changes:
            try:
                await self.callback(file_path)
            except Exception as e:
                logger.error(f"Error processing file change {file_path}: {e}")


class FileWatcher:
    """Watches a workspace and calls ``update_file`` for changed code files."""

    def __init__(self, service: CodebaseIndexService, debounce_delay: float = 1.0):
        self.service = service
        self.workspace_root = Path(service.workspace_path)
        self.debounce_delay = debounce_delay
        self.observer: Observer | None = None
        self.handler: CodeFileHandler | None = None
        self.is_running = False

    async def start(self) -> None:
        """Start watching for file changes."""
        if self.is_running:
            logger.warning("File watcher is already running")
            return

        logger.info(f"Starting file watcher for {self.workspace_root}")
        self.handler = CodeFileHandler(
            workspace_root=self.workspace_root,
            chunker=Chunker(self.service.config),
            callback=self.service.update_file,
            loop=asyncio.get_running_loop(),
            debounce_delay=self.debounce_delay,
        )
        self.observer = Observer()
        self.observer.schedule(self.handler, str(self.workspace_root), recursive=True)
        self.observer.start()
        self.is_running = True
        logger.info("File watcher started successfully")

    async def stop(self) -> None:
        """Stop watching for file changes."""
        if not self.is_running:
            return

        logger.info("Stopping file watcher")
        if self.observer:
            self.observer.stop()
            await asyncio.to_thread(self.observer.join)
            self.observer = None
        self.handler = None
        self.is_running = False
        logger.info("File watcher stopped")

    async def __aenter__(self) -> "FileWatcher":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()
