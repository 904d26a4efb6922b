import asyncio
import threading

import pytest

from spawnkit.asyncio_executor import AsyncioExecutor, AsyncioTask
from spawnkit.base import LocalExecutorError


async def _idle():
    pass


async def _append(sink, value):
    sink.append(value)


async def _append_thread_ident(sink):
    sink.append(threading.get_ident())


async def _forever(started):
    started.set()
    await asyncio.sleep(3600)


async def _wait_in_thread(event):
    await asyncio.get_running_loop().run_in_executor(None, event.wait)


@pytest.fixture
def idle_coro():
    pending = _idle()
    yield pending
    pending.close()


@pytest.fixture
def background_loop():
    loop = asyncio.new_event_loop()
    started = threading.Event()
    loop.call_soon(started.set)
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    started.wait()
    yield loop, thread
    loop.call_soon_threadsafe(loop.stop)
    thread.join()
    loop.close()


@pytest.fixture
def fresh_loop():
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.mark.asyncio
async def test_spawn_runs_coroutine():
    results = []
    task = AsyncioExecutor().spawn(_append(results, "ran"))
    assert isinstance(task, AsyncioTask)
    assert await task is None
    assert results == ["ran"]


@pytest.mark.parametrize(
    "call",
    [lambda coro: AsyncioExecutor().spawn(coro), lambda coro: AsyncioExecutor.current()],
    ids=["spawn", "current"],
)
def test_without_running_loop_raises(idle_coro, call):
    with pytest.raises(RuntimeError):
        call(idle_coro)


@pytest.mark.asyncio
async def test_cancel_pending_task_returns_false():
    started = asyncio.Event()
    task = AsyncioExecutor().spawn(_forever(started))
    await started.wait()
    assert await task.cancel() is False
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_cancel_completed_task_returns_true():
    task = AsyncioExecutor().spawn(_idle())
    await task
    assert await task.cancel() is True


@pytest.mark.asyncio
async def test_cancel_task_that_finishes_anyway_returns_true():
    started = asyncio.Event()

    async def stubborn():
        try:
            await _forever(started)
        except asyncio.CancelledError:
            return

    task = AsyncioExecutor().spawn(stubborn())
    await started.wait()
    assert await task.cancel() is True


@pytest.mark.asyncio
async def test_failing_task_raises_and_cancel_returns_false():
    async def boom():
        raise ValueError("boom")

    task = AsyncioExecutor().spawn(boom())
    with pytest.raises(ValueError, match="boom"):
        await task
    assert await task.cancel() is False


def test_spawn_local_is_unsupported(idle_coro):
    with pytest.raises(LocalExecutorError) as info:
        AsyncioExecutor().spawn_local(idle_coro)
    assert info.value.future is idle_coro


def test_block_on_runs_to_completion():
    results = []

    async def work():
        await asyncio.sleep(0)
        results.append(1)

    assert AsyncioExecutor().block_on(work()) is None
    assert results == [1]


@pytest.mark.asyncio
async def test_block_on_inside_running_loop_raises(idle_coro):
    with pytest.raises(RuntimeError):
        AsyncioExecutor().block_on(idle_coro)


def test_block_on_with_given_loop(fresh_loop):
    seen = []

    async def work():
        seen.append(asyncio.get_running_loop())

    AsyncioExecutor().with_loop(fresh_loop).block_on(work())
    assert seen == [fresh_loop]


def test_with_loop_returns_new_executor(fresh_loop):
    base = AsyncioExecutor()
    bound = base.with_loop(fresh_loop)
    assert base.loop is None
    assert bound.loop is fresh_loop
    assert bound == AsyncioExecutor(fresh_loop)


def test_default_executors_are_equal():
    first = AsyncioExecutor()
    assert first.loop is None
    assert (first == AsyncioExecutor()) is True


@pytest.mark.asyncio
async def test_current_binds_running_loop():
    assert AsyncioExecutor.current().loop is asyncio.get_running_loop()


@pytest.mark.asyncio
async def test_spawn_blocking_runs_in_another_thread():
    idents = []
    await AsyncioExecutor().spawn_blocking(lambda: idents.append(threading.get_ident()))
    assert len(idents) == 1
    assert idents[0] != threading.get_ident()


@pytest.mark.asyncio
async def test_spawn_blocking_failure_raises_runtime_error():
    def fail():
        raise ValueError("bad")

    with pytest.raises(RuntimeError) as info:
        await AsyncioExecutor().spawn_blocking(fail)
    assert isinstance(info.value.__cause__, ValueError)


@pytest.mark.asyncio
async def test_spawn_on_loop_in_other_thread(background_loop):
    loop, thread = background_loop
    idents = []
    assert await AsyncioExecutor(loop).spawn(_append_thread_ident(idents)) is None
    assert idents == [thread.ident]


@pytest.mark.asyncio
async def test_cancel_on_loop_in_other_thread(background_loop):
    loop, _thread = background_loop
    started = threading.Event()
    task = AsyncioExecutor(loop).spawn(_forever(started))
    await _wait_in_thread(started)
    assert await task.cancel() is False


@pytest.mark.asyncio
async def test_spawn_blocking_with_loop_in_other_thread(background_loop):
    loop, _thread = background_loop
    results = []
    await AsyncioExecutor(loop).spawn_blocking(lambda: results.append("done"))
    assert results == ["done"]