"""Async bridge for running blocking sync operations from MCP handlers."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a blocking function in a worker thread.

    Example:
        outcome = await run_sync(engine.upload_all)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
