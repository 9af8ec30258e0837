"""Tests for the per-workspace service registry."""

from pathlib import Path

import pytest

from codebase_index.config.settings import IndexConfig
from codebase_index.core.registry import IndexServiceRegistry
from codebase_index.core.service import CodebaseIndexService


@pytest.fixture
def registry() -> IndexServiceRegistry:
    return IndexServiceRegistry()


@pytest.mark.asyncio
class TestIndexServiceRegistry:
    async def test_one_service_per_workspace(self, registry, tmp_path: Path):
        first = registry.get_or_create(tmp_path)
        again = registry.get_or_create(str(tmp_path) + "/")
        via_dots = registry.get_or_create(tmp_path / "sub" / "..")

        assert first is again is via_dots
        assert len(registry) == 1
        assert isinstance(first, CodebaseIndexService)

    async def test_config_applies_only_on_creation(self, registry, tmp_path: Path):
        service = registry.get_or_create(tmp_path, IndexConfig(chunk_size=20, chunk_overlap=2))
        registry.get_or_create(tmp_path, IndexConfig(chunk_size=99, chunk_overlap=2))

        assert service.config.chunk_size == 20

    async def test_distinct_workspaces(self, registry, tmp_path: Path):
        a = registry.get_or_create(tmp_path / "a")
        b = registry.get_or_create(tmp_path / "b")

        assert a is not b
        assert set(registry) == {a, b}
        assert tmp_path / "a" in registry
        assert str(tmp_path / "c") not in registry
        assert 42 not in registry

    async def test_destroy_closes_and_forgets(self, registry, tmp_path: Path):
        service = registry.get_or_create(tmp_path)
        await service.initialize()

        await registry.destroy(tmp_path)

        assert registry.get(tmp_path) is None
        assert not service.vector_store.is_initialized()
        assert registry.get_or_create(tmp_path) is not service

    async def test_destroy_unknown_workspace_is_noop(self, registry, tmp_path: Path):
        await registry.destroy(tmp_path / "nowhere")
        assert len(registry) == 0

    async def test_destroy_all(self, registry, tmp_path: Path):
        registry.get_or_create(tmp_path / "a")
        registry.get_or_create(tmp_path / "b")

        await registry.destroy_all()

        assert len(registry) == 0

    async def test_custom_factory(self, tmp_path: Path):
        created = []

        def factory(path, config):
            created.append(path)
            return CodebaseIndexService(path, config)

        registry = IndexServiceRegistry(factory)
        registry.get_or_create(tmp_path)
        registry.get_or_create(tmp_path)

        assert created == [str(tmp_path.resolve())]
