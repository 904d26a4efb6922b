"""Common interfaces for spawning coroutines and blocking work on an executor."""

from __future__ import annotations

import abc
from collections.abc import Awaitable, Callable, Generator
from typing import Any

__all__ = [
    "LocalExecutorError",
    "Executor",
    "BlockingExecutor",
    "FullExecutor",
    "Task",
    "DelegatingExecutor",
]

Job = Awaitable[None]
BlockingJob = Callable[[], None]


class LocalExecutorError(Exception):
    """Raised when an executor cannot spawn a task on the current thread.

    The awaitable that could not be spawned is kept in ``future`` so the
    caller can run it some other way.
    """

    def __init__(self, future: Job) -> None:
        super().__init__("the executor does not support spawning local tasks")
        self.future = future

    def __repr__(self) -> str:
        return "LocalExecutorError(Future)"


class Task(abc.ABC):
    """Handle on a spawned coroutine: await it, let it run, or cancel it."""

    @abc.abstractmethod
    async def cancel(self) -> bool:
        """Cancel the task and wait for it to stop.

        Returns True if the task had completed just before it was cancelled,
        False if it did not complete.
        """

    @abc.abstractmethod
    def __await__(self) -> Generator[Any, None, None]:
        """Wait for the task to complete."""


class Executor(abc.ABC):
    """Common interface for spawning coroutines on an executor."""

    @abc.abstractmethod
    def block_on(self, f: Job) -> None:
        """Run ``f`` to completion, blocking the calling thread."""

    @abc.abstractmethod
    def spawn(self, f: Job) -> Task:
        """Spawn ``f`` and return a handle tracking its completion."""

    def spawn_local(self, f: Job) -> Task:
        """Spawn ``f`` on the current thread and return its handle.

        Executors that do not support local tasks raise
        :class:`LocalExecutorError` holding ``f``.
        """
        raise LocalExecutorError(f)


class BlockingExecutor(abc.ABC):
    """Common interface for running blocking callables off the event loop."""

    @abc.abstractmethod
    async def spawn_blocking(self, f: BlockingJob) -> None:
        """Run the blocking callable ``f`` on a dedicated pool and wait for it."""


class FullExecutor(Executor, BlockingExecutor):
    """An executor that spawns both coroutines and blocking callables."""


class DelegatingExecutor(FullExecutor):
    """Executor that forwards every operation to a wrapped executor."""

    def __init__(self, target: Executor) -> None:
        self.target = target

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.target!r})"

    def block_on(self, f):
        self.target.block_on(f)

    def spawn(self, f):
        return self.target.spawn(f)

    def spawn_local(self, f):
        return self.target.spawn_local(f)

    async def spawn_blocking(self, f):
        await self.target.spawn_blocking(f)