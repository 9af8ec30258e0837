"""Configuration for codebase-index."""
