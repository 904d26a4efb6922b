"""Executor that runs coroutines on an asyncio event loop."""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
from collections.abc import Awaitable, Callable, Generator
from typing import Any

from spawnkit.base import FullExecutor, LocalExecutorError, Task

__all__ = ["AsyncioExecutor", "AsyncioTask"]

# asyncio holds tasks weakly; spawned tasks must outlive their handles.
_live_tasks: set[asyncio.Task[None]] = set()


async def _drive(f: Awaitable[None]) -> None:
    await f


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def _is_local(loop: asyncio.AbstractEventLoop) -> bool:
    """True when ``loop`` may be used directly from the calling thread."""
    return _running_loop() is loop or not loop.is_running()


def _discard(f: Awaitable[None]) -> None:
    """Close ``f`` if it is a coroutine that will never be awaited."""
    if inspect.iscoroutine(f):
        f.close()


def _track(task: asyncio.Task[None]) -> asyncio.Task[None]:
    _live_tasks.add(task)
    task.add_done_callback(_live_tasks.discard)
    return task


def _call_on(loop: asyncio.AbstractEventLoop, fn: Callable[[], Any]) -> None:
    """Call ``fn`` on ``loop``, from whichever thread this runs in."""
    if _is_local(loop):
        fn()
    else:
        loop.call_soon_threadsafe(fn)


async def _create(f: Awaitable[None]) -> asyncio.Task[None]:
    return _track(asyncio.get_running_loop().create_task(_drive(f)))


def _start_task(loop: asyncio.AbstractEventLoop, f: Awaitable[None]) -> asyncio.Task[None]:
    """Start ``f`` as a task on ``loop`` and keep it alive until done."""
    if _is_local(loop):
        return _track(loop.create_task(_drive(f)))
    return asyncio.run_coroutine_threadsafe(_create(f), loop).result()


async def _settled(task: asyncio.Task[None]) -> None:
    """Wait until ``task`` is done, whichever loop it runs on."""
    if task.done():
        return
    loop = task.get_loop()
    if _running_loop() is loop:
        await asyncio.wait({task})
    else:
        await asyncio.wrap_future(asyncio.run_coroutine_threadsafe(asyncio.wait({task}), loop))


def _completed(task: asyncio.Task[None]) -> bool:
    """True when a finished ``task`` ran to completion."""
    return not task.cancelled() and task.exception() is None


async def _in_executor(f: Callable[[], None]) -> None:
    await asyncio.get_running_loop().run_in_executor(None, f)


class AsyncioTask(Task):
    """Handle on a coroutine spawned on an asyncio event loop."""

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task

    def __repr__(self) -> str:
        return f"AsyncioTask({self._task!r})"

    async def cancel(self) -> bool:
        task = self._task
        if not task.done():
            _call_on(task.get_loop(), task.cancel)
        await _settled(task)
        return _completed(task)

    def __await__(self) -> Generator[Any, None, None]:
        return self._result().__await__()

    async def _result(self) -> None:
        await _settled(self._task)
        self._task.result()


@dataclasses.dataclass(frozen=True)
class AsyncioExecutor(FullExecutor):
    """Executor on an asyncio event loop.

    With no loop given, coroutines are spawned on the loop running in the
    calling thread.
    """

    loop: asyncio.AbstractEventLoop | None = None

    def with_loop(self, loop: asyncio.AbstractEventLoop) -> AsyncioExecutor:
        """Return a copy of this executor bound to ``loop``."""
        return dataclasses.replace(self, loop=loop)

    @classmethod
    def current(cls) -> AsyncioExecutor:
        """Return an executor bound to the running loop; RuntimeError if none."""
        return cls(asyncio.get_running_loop())

    def block_on(self, f: Awaitable[None]) -> None:
        if _running_loop() is not None:
            _discard(f)
            raise RuntimeError("cannot block from inside a running event loop")
        if self.loop is None:
            asyncio.run(_drive(f))
        elif self.loop.is_running():
            _discard(f)
            raise RuntimeError("the executor's event loop is already running")
        else:
            self.loop.run_until_complete(_drive(f))

    def spawn(self, f: Awaitable[None]) -> AsyncioTask:
        loop = self.loop if self.loop is not None else _running_loop()
        if loop is None:
            _discard(f)
            raise RuntimeError("no running event loop to spawn on")
        return AsyncioTask(_start_task(loop, f))

    def spawn_local(self, f: Awaitable[None]) -> Task:
        raise LocalExecutorError(f)

    async def spawn_blocking(self, f: Callable[[], None]) -> None:
        try:
            if self.loop is None or self.loop is _running_loop():
                await _in_executor(f)
            else:
                await asyncio.wrap_future(
                    asyncio.run_coroutine_threadsafe(_in_executor(f), self.loop)
                )
        except Exception as exc:
            raise RuntimeError("blocking task failed") from exc