"""Typed exception hierarchy for codebase-index.

Hierarchy
---------
CodebaseIndexError (base)
├── ConfigurationError        – invalid or incomplete configuration
├── EmbeddingError            – embedding generation errors
│   └── EmbeddingProviderError – non-2xx / transport failure from a provider
├── DatabaseError             – LanceDB / storage layer errors
├── IndexingError             – indexing-time failures (not the built-in IndexError)
│   └── WorkerError           – the worker context crashed or is unavailable
└── SearchError               – search-time failures
"""

from typing import Any


class CodebaseIndexError(Exception):
    """Base exception for codebase-index."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


# ── Configuration layer ─────────────────────────────────────────────────


class ConfigurationError(CodebaseIndexError):
    """Configuration / validation errors. Never retried."""

    pass


# ── Embedding layer ─────────────────────────────────────────────────────


class EmbeddingError(CodebaseIndexError):
    """Embedding generation errors."""

    pass


class EmbeddingProviderError(EmbeddingError):
    """A provider answered with a non-2xx status or could not be reached.

    ``status_code`` is ``None`` for transport-level failures (DNS, refused
    connection, timeout).
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(
            message,
            context={"provider": provider, "status_code": status_code, "body": body},
        )
        self.provider = provider
        self.status_code = status_code
        self.body = body

    @property
    def is_transient(self) -> bool:
        """True for failures worth retrying (transport errors, 429, 5xx)."""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500


# ── Database layer ──────────────────────────────────────────────────────


class DatabaseError(CodebaseIndexError):
    """Database-related errors (LanceDB / storage layer)."""

    pass


# ── Indexing layer ──────────────────────────────────────────────────────


class IndexingError(CodebaseIndexError):
    """Indexing operation failed.

    Named ``IndexingError`` (not ``IndexError``) to avoid shadowing
    the Python built-in ``IndexError``.
    """

    pass


class WorkerError(IndexingError):
    """The worker context crashed or could not be started."""

    pass


# ── Search layer ────────────────────────────────────────────────────────


class SearchError(CodebaseIndexError):
    """Search operation failed."""

    pass
