"""Registry holding one index service per workspace."""

from collections.abc import Callable, Iterator
from pathlib import Path

from loguru import logger

from ..config.settings import IndexConfig
from .service import CodebaseIndexService

ServiceFactory = Callable[[str, IndexConfig | None], CodebaseIndexService]


def _default_factory(
    workspace_path: str, config: IndexConfig | None
) -> CodebaseIndexService:
    return CodebaseIndexService(workspace_path, config)


class IndexServiceRegistry:
    """Keeps exactly one live :class:`CodebaseIndexService` per workspace path.

    Owned by the host's composition root and passed around explicitly.

    Example:
        registry = IndexServiceRegistry()
        service = registry.get_or_create("/path/to/repo")
        assert registry.get_or_create("/path/to/repo/") is service
        await registry.destroy("/path/to/repo")
    """

    def __init__(self, factory: ServiceFactory = _default_factory) -> None:
        self._factory = factory
        self._services: dict[str, CodebaseIndexService] = {}

    @staticmethod
    def _key(workspace_path: str | Path) -> str:
        return str(Path(workspace_path).resolve())

    def get_or_create(
        self, workspace_path: str | Path, config: IndexConfig | None = None
    ) -> CodebaseIndexService:
        """Return the service for ``workspace_path``, creating it on first use.

        ``config`` only applies when a new service is created.
        """
        key = self._key(workspace_path)
        service = self._services.get(key)
        if service is None:
            service = self._factory(key, config)
            self._services[key] = service
            logger.debug(f"Registered index service for {key}")
        return service

    def get(self, workspace_path: str | Path) -> CodebaseIndexService | None:
        return self._services.get(self._key(workspace_path))

    async def destroy(self, workspace_path: str | Path) -> None:
        """Close and forget the service for ``workspace_path`` (if any)."""
        service = self._services.pop(self._key(workspace_path), None)
        if service is not None:
            await service.close()
            logger.debug(f"Destroyed index service for {service.workspace_path}")

    async def destroy_all(self) -> None:
        for key in list(self._services):
            await self.destroy(key)

    def __contains__(self, workspace_path: object) -> bool:
        if not isinstance(workspace_path, (str, Path)):
            return False
        return self._key(workspace_path) in self._services

    def __len__(self) -> int:
        return len(self._services)

    def __iter__(self) -> Iterator[CodebaseIndexService]:
        return iter(list(self._services.values()))
