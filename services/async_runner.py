"""Run coroutines on the main asyncio loop from WSGI worker threads."""

from __future__ import annotations

import asyncio
from concurrent.futures import Future
from typing import Awaitable, Optional, TypeVar


_loop: Optional[asyncio.AbstractEventLoop] = None
T = TypeVar("T")


def set_main_loop(loop: Optional[asyncio.AbstractEventLoop]) -> None:
    global _loop
    _loop = loop


def get_main_loop() -> asyncio.AbstractEventLoop:
    if _loop is None:
        raise RuntimeError("Asyncio loop is not initialized")
    return _loop


def _check_thread(loop: asyncio.AbstractEventLoop) -> None:
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        return
    if running is loop:
        # Blocking on the loop from inside it would never return
        raise RuntimeError("run_coroutine_sync called from the main loop thread")


def run_coroutine_sync(coro: Awaitable[T], timeout: Optional[float] = None) -> T:
    loop = get_main_loop()
    _check_thread(loop)
    future = asyncio.run_coroutine_threadsafe(coro, loop)
    return future.result(timeout)


def submit_coroutine(coro: Awaitable[T]) -> Future:
    return asyncio.run_coroutine_threadsafe(coro, get_main_loop())
