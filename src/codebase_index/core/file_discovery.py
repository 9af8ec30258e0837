"""Workspace file enumeration and reading for indexing."""

import os
from pathlib import Path

from loguru import logger

from .chunker import Chunker


class FileDiscovery:
    """Finds indexable files under a workspace root.

    Directory pruning and extension filtering are delegated to the
    :class:`Chunker` so both use the same rules.
    """

    def __init__(self, workspace_root: Path, chunker: Chunker) -> None:
        self.workspace_root = Path(workspace_root)
        self.chunker = chunker

    def find_indexable_files(self) -> list[Path]:
        """Return absolute paths of all indexable files, sorted."""
        max_size = self.chunker.config.max_file_size
        files: list[Path] = []

        for dirpath, dirnames, filenames in os.walk(self.workspace_root):
            # Prune in place so os.walk never descends into ignored directories
            dirnames[:] = [d for d in dirnames if not self.chunker.should_ignore_dir(d)]

            for filename in filenames:
                path = Path(dirpath) / filename
                if not self.chunker.should_index_file(path):
                    continue
                try:
                    if path.stat().st_size > max_size:
                        logger.debug(f"Skipping large file: {path}")
                        continue
                except OSError as e:
                    logger.debug(f"Cannot stat {path}: {e}")
                    continue
                files.append(path)

        files.sort()
        logger.debug(f"Found {len(files)} indexable files in {self.workspace_root}")
        return files


def read_source_file(path: Path) -> str | None:
    """Read a file as UTF-8 text.

    Returns ``None`` for missing, unreadable or binary files.
    """
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        logger.debug(f"Skipping non-UTF-8 file: {path}")
    except OSError as e:
        logger.debug(f"Cannot read {path}: {e}")
    return None
