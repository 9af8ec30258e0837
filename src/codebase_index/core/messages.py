"""Typed messages exchanged between the orchestrator and its worker context.

The channel is the only communication path between the two sides, so every
message is an immutable snapshot: configs are deep copies and chunk lists are
tuples of frozen dataclasses.
"""

from dataclasses import dataclass, field
from typing import ClassVar

from ..config.settings import IndexConfig
from .models import IndexedChunk

# ── Orchestrator → Worker ───────────────────────────────────────────────


@dataclass(frozen=True)
class IndexRequest:
    """Full workspace run; files whose hash matches ``existing_hashes`` are skipped."""

    type: ClassVar[str] = "index"

    workspace_path: str
    config: IndexConfig
    existing_hashes: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateRequest:
    """Re-index a single file."""

    type: ClassVar[str] = "update"

    workspace_path: str
    file: str
    config: IndexConfig


WorkerRequest = IndexRequest | UpdateRequest


# ── Worker → Orchestrator ───────────────────────────────────────────────


@dataclass(frozen=True)
class ProgressMessage:
    type: ClassVar[str] = "progress"

    processed: int
    total: int | None = None


@dataclass(frozen=True)
class ResultMessage:
    """A batch of fully embedded chunks covering whole files.

    ``replaced_files`` lists files in the batch that were already indexed with
    a different hash; their stale rows are dropped before the append.
    """

    type: ClassVar[str] = "result"

    chunks: tuple[IndexedChunk, ...]
    processed: int
    total: int | None = None
    replaced_files: tuple[str, ...] = ()


@dataclass(frozen=True)
class UpdateResultMessage:
    """Outcome of re-indexing one file: either deleted or new chunks."""

    type: ClassVar[str] = "update_result"

    file_path: str
    deleted: bool = False
    chunks: tuple[IndexedChunk, ...] = ()


@dataclass(frozen=True)
class CompleteMessage:
    type: ClassVar[str] = "complete"


@dataclass(frozen=True)
class ErrorMessage:
    type: ClassVar[str] = "error"

    error: str


WorkerMessage = (
    ProgressMessage
    | ResultMessage
    | UpdateResultMessage
    | CompleteMessage
    | ErrorMessage
)
