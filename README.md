# spawnkit

A small set of abstract interfaces that give libraries one way to run
coroutines, spawn background tasks and push blocking calls onto worker
threads. The application picks the executor that does the work. The
package uses only the standard library.

## Interfaces

`spawnkit.base` defines:

- `Executor`
  - `block_on(f)` runs an awaitable until it completes and blocks the
    calling thread while it runs.
  - `spawn(f)` starts an awaitable in the background and returns a `Task`.
  - `spawn_local(f)` starts an awaitable on the current thread. The default
    implementation raises `LocalExecutorError`. The awaitable that could not
    be started is kept in the error's `future` attribute.
- `BlockingExecutor`: `await spawn_blocking(f)` runs a plain callable on a
  worker pool and waits for it to finish.
- `FullExecutor`: both of the above.
- `Task`: an awaitable handle on a spawned coroutine.
  - Awaiting the handle waits for the task. If the task raised, the
    exception is raised again.
  - `await task.cancel()` cancels the task and waits for it to stop. It
    returns `True` if the task had run to completion just before it was
    cancelled, and `False` otherwise.
- `DelegatingExecutor(target)`: passes every call on to `target`.

## Implementations

### `spawnkit.asyncio_executor`

`AsyncioExecutor` runs work on an asyncio event loop. There are three ways
to build one:

- `AsyncioExecutor()` spawns on the loop that is running in the calling
  thread.
- `AsyncioExecutor.current()` binds to the running loop. It raises
  `RuntimeError` if no loop is running.
- `AsyncioExecutor().with_loop(loop)` returns a copy bound to `loop`. That
  loop may be running in another thread.

How each method behaves:

- `block_on` raises `RuntimeError` when it is called from inside a running
  loop. It also raises `RuntimeError` when the bound loop is already running.
- `spawn` raises `RuntimeError` when there is no loop to spawn on.
- `spawn_local` always raises `LocalExecutorError`.
- `spawn_blocking` uses the loop's default thread pool. If the callable
  fails, it raises `RuntimeError("blocking task failed")` and chains the
  original exception.

Spawned tasks are returned as `AsyncioTask` handles.

### `spawnkit.global_executor`

`GlobalExecutor` spawns coroutines on a shared event loop. That loop runs in
a daemon thread, which starts on first use.

- `spawn_local` starts the coroutine on the loop that is running in the
  calling thread. If no loop is running there, it raises
  `LocalExecutorError`.
- `block_on` runs the coroutine with a fresh event loop. It raises
  `RuntimeError` when it is called from inside a running loop.

`SharedExecutor` works the same way, except that `spawn_local` always raises
`LocalExecutorError`.

Spawned tasks are returned as `GlobalTask` handles:

- `detach()` lets the task keep running without being tracked.
- Once a handle has been detached or cancelled, awaiting it returns at once.

`shutdown_global_loop()` cancels every task on the shared loop and stops its
thread. The next spawn starts a new loop.

## Examples

```python
import asyncio

from spawnkit.asyncio_executor import AsyncioExecutor


async def main():
    executor = AsyncioExecutor.current()
    task = executor.spawn(asyncio.sleep(0.1))
    await executor.spawn_blocking(lambda: print("on a worker thread"))
    await task


asyncio.run(main())
```

```python
import asyncio

from spawnkit.global_executor import GlobalExecutor, shutdown_global_loop

executor = GlobalExecutor()


async def main():
    task = executor.spawn(asyncio.sleep(0.1))
    await task


executor.block_on(main())
shutdown_global_loop()
```

Library code should accept any `FullExecutor` rather than depend on a
particular implementation.

## Limitations

Both implementations are built on asyncio. No other event-loop library is
supported. The worker pool for blocking calls is always the event loop's
default executor, and it cannot be configured through this package.