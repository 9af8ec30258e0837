"""Tests for the typed exception hierarchy."""

import pytest

from codebase_index import CodebaseIndexError as ExportedBase
from codebase_index.core.exceptions import (
    CodebaseIndexError,
    ConfigurationError,
    DatabaseError,
    EmbeddingError,
    EmbeddingProviderError,
    IndexingError,
    SearchError,
    WorkerError,
)


class TestExceptionHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [ConfigurationError, EmbeddingError, DatabaseError, IndexingError, SearchError],
    )
    def test_layers_inherit_from_base(self, cls):
        assert issubclass(cls, CodebaseIndexError)

    def test_provider_error_is_embedding_error(self):
        assert issubclass(EmbeddingProviderError, EmbeddingError)

    def test_worker_error_is_indexing_error(self):
        assert issubclass(WorkerError, IndexingError)
        assert not issubclass(IndexingError, IndexError)

    def test_package_exports_base(self):
        assert ExportedBase is CodebaseIndexError

    def test_context_defaults_to_empty(self):
        assert CodebaseIndexError("boom").context == {}
        assert DatabaseError("boom", context={"table": "t"}).context == {"table": "t"}


class TestEmbeddingProviderError:
    def test_carries_status_and_body(self):
        error = EmbeddingProviderError("jina", "Jina AI API error: 402", 402, "no credits")

        assert error.provider == "jina"
        assert error.status_code == 402
        assert error.body == "no credits"
        assert error.context == {"provider": "jina", "status_code": 402, "body": "no credits"}

    @pytest.mark.parametrize(
        "status,transient",
        [(None, True), (429, True), (500, True), (503, True), (400, False), (401, False)],
    )
    def test_is_transient(self, status, transient):
        assert EmbeddingProviderError("openai", "x", status).is_transient is transient
