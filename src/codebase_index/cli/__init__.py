"""Command-line interface for codebase-index."""
