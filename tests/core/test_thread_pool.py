import asyncio
import threading
import time

import pytest

from statewatch.core.thread_pool import get_io_pool, run_in_cleanup, run_in_io, shutdown_pools


@pytest.fixture(autouse=True)
def _reset_pools():
    shutdown_pools()
    yield
    shutdown_pools()


@pytest.mark.asyncio
async def test_io_calls_run_serially_on_one_thread():
    events = []

    def _job(idx: int, delay: float):
        events.append(("start", idx))
        time.sleep(delay)
        events.append(("end", idx))
        return threading.get_ident()

    t1, t2, t3 = await asyncio.gather(
        run_in_io(_job, 1, 0.05),
        run_in_io(_job, 2, 0.01),
        run_in_io(_job, 3, 0.0),
    )

    assert t1 == t2 == t3
    assert t1 != threading.get_ident()
    assert events == [
        ("start", 1),
        ("end", 1),
        ("start", 2),
        ("end", 2),
        ("start", 3),
        ("end", 3),
    ]


@pytest.mark.asyncio
async def test_timeout_stops_waiting_for_blocked_call():
    release = threading.Event()

    def _blocked():
        release.wait(2.0)
        return "late"

    started = time.perf_counter()
    with pytest.raises(asyncio.TimeoutError):
        await run_in_io(_blocked, timeout=0.05)
    elapsed = time.perf_counter() - started
    release.set()

    assert elapsed < 1.0


@pytest.mark.asyncio
async def test_exceptions_propagate_to_caller():
    def _boom():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await run_in_io(_boom)


def test_pool_recreated_after_shutdown():
    first = get_io_pool()
    assert get_io_pool() is first
    shutdown_pools()
    assert get_io_pool() is not first


@pytest.mark.asyncio
async def test_cleanup_runs_while_io_thread_is_blocked():
    release = threading.Event()
    io_call = asyncio.ensure_future(run_in_io(release.wait, 2.0))
    try:
        assert await run_in_cleanup(lambda: "parked", timeout=0.5) == "parked"
        assert not io_call.done()
    finally:
        release.set()
    assert await io_call is True
