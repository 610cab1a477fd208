"""Async utilities for bridging blocking HTTP calls to the event loop."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    The sync engine uses this for every network round-trip so local
    reads and writes keep being served while a request is in flight.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        response = await run_sync(client.sync, token, cursor, changed)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
