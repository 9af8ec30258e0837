"""Codebase Index - incremental semantic indexing and vector search for workspaces."""

__version__ = "0.3.0"

from .core.exceptions import CodebaseIndexError

__all__ = ["CodebaseIndexError", "__version__"]
