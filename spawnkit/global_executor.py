"""Executor backed by a shared event loop running in a background thread."""

from __future__ import annotations

import asyncio
import dataclasses
import threading
from collections.abc import Awaitable, Callable, Generator
from typing import Any

from spawnkit.asyncio_executor import (
    _call_on,
    _completed,
    _discard,
    _drive,
    _running_loop,
    _settled,
    _start_task,
    _track,
)
from spawnkit.base import FullExecutor, LocalExecutorError, Task

__all__ = ["GlobalTask", "GlobalExecutor", "SharedExecutor", "shutdown_global_loop"]

_lock = threading.Lock()
_loop: asyncio.AbstractEventLoop | None = None
_thread: threading.Thread | None = None


def _run_loop(loop: asyncio.AbstractEventLoop, ready: threading.Event) -> None:
    asyncio.set_event_loop(loop)
    loop.call_soon(ready.set)
    try:
        loop.run_forever()
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.run_until_complete(loop.shutdown_default_executor())
        finally:
            loop.close()


def _global_loop() -> asyncio.AbstractEventLoop:
    """Return the shared loop, starting its thread on first use."""
    global _loop, _thread
    with _lock:
        if _loop is None or _loop.is_closed():
            loop = asyncio.new_event_loop()
            ready = threading.Event()
            thread = threading.Thread(
                target=_run_loop, args=(loop, ready), name="spawnkit-global", daemon=True
            )
            thread.start()
            ready.wait()
            _loop, _thread = loop, thread
        return _loop


async def _cancel_all() -> None:
    current = asyncio.current_task()
    pending = [task for task in asyncio.all_tasks() if task is not current]
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)


def shutdown_global_loop() -> None:
    """Cancel every task on the shared loop and stop its thread.

    The next spawn starts a fresh loop.
    """
    global _loop, _thread
    with _lock:
        loop, thread = _loop, _thread
        if thread is not None and thread is threading.current_thread():
            raise RuntimeError("cannot shut down the global loop from its own thread")
        _loop = _thread = None
    if loop is None or thread is None or loop.is_closed():
        return
    asyncio.run_coroutine_threadsafe(_cancel_all(), loop).result()
    loop.call_soon_threadsafe(loop.stop)
    thread.join()


class GlobalTask(Task):
    """Handle on a spawned coroutine that can be cancelled or detached.

    Once detached or cancelled, awaiting the handle returns at once.
    """

    def __init__(self, future: asyncio.Task[None]) -> None:
        self._task: asyncio.Task[None] | None = future

    def __repr__(self) -> str:
        return f"GlobalTask({self._task!r})"

    async def cancel(self) -> bool:
        task, self._task = self._task, None
        if task is None:
            return False
        if not task.done():
            _call_on(task.get_loop(), task.cancel)
        await _settled(task)
        return _completed(task)

    def detach(self) -> None:
        """Let the task run on in the background without tracking it."""
        self._task = None

    def __await__(self) -> Generator[Any, None, None]:
        return self._result().__await__()

    async def _result(self) -> None:
        task = self._task
        if task is None:
            return
        await _settled(task)
        task.result()


@dataclasses.dataclass(frozen=True)
class GlobalExecutor(FullExecutor):
    """Spawns onto the shared background loop; local tasks go on the caller's loop."""

    def block_on(self, f: Awaitable[None]) -> None:
        if _running_loop() is not None:
            _discard(f)
            raise RuntimeError("cannot block from inside a running event loop")
        asyncio.run(_drive(f))

    def spawn(self, f: Awaitable[None]) -> GlobalTask:
        return GlobalTask(_start_task(_global_loop(), f))

    def spawn_local(self, f: Awaitable[None]) -> GlobalTask:
        loop = _running_loop()
        if loop is None:
            raise LocalExecutorError(f)
        return GlobalTask(_track(loop.create_task(_drive(f))))

    async def spawn_blocking(self, f: Callable[[], None]) -> None:
        await asyncio.get_running_loop().run_in_executor(None, f)


@dataclasses.dataclass(frozen=True)
class SharedExecutor(GlobalExecutor):
    """Like :class:`GlobalExecutor`, but without support for local tasks."""

    def spawn_local(self, f: Awaitable[None]) -> GlobalTask:
        raise LocalExecutorError(f)