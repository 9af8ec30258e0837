"""Helpers shared by CLI commands."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import typer

from ...config.settings import IndexConfig
from ...core.service import CodebaseIndexService

T = TypeVar("T")


def build_service(ctx: typer.Context) -> CodebaseIndexService:
    workspace: Path = ctx.obj["workspace"]
    config: IndexConfig = ctx.obj["config"]
    return CodebaseIndexService(workspace, config)


def run_with_service(
    ctx: typer.Context, action: Callable[[CodebaseIndexService], Awaitable[T]]
) -> T:
    """Initialize a service, run ``action`` and always close the service."""

    async def runner() -> Any:
        service = build_service(ctx)
        await service.initialize()
        try:
            return await action(service)
        finally:
            await service.close()

    return asyncio.run(runner())
