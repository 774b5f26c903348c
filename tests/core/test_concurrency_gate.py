# tests/core/test_concurrency_gate.py

import asyncio

import pytest

from cherrypick.core.gate import ConcurrencyGate

# Mark all tests in this file as asyncio
pytestmark = pytest.mark.asyncio


## 1. Construction
# ------------------

async def test_default_capacity_is_fifty():
    gate = ConcurrencyGate()
    assert gate.capacity == 50
    assert gate.in_flight == 0
    assert not gate.cancelled


async def test_rejects_capacity_below_one():
    with pytest.raises(ValueError):
        ConcurrencyGate(0)


## 2. Acquire / release
# ----------------------

async def test_acquire_and_release_track_in_flight():
    gate = ConcurrencyGate(2)
    await gate.acquire()
    await gate.acquire()
    assert gate.in_flight == 2

    gate.release()
    assert gate.in_flight == 1
    gate.release()
    assert gate.in_flight == 0
    assert gate.peak_in_flight == 2


async def test_release_without_acquire_raises():
    gate = ConcurrencyGate(1)
    with pytest.raises(RuntimeError):
        gate.release()


async def test_acquire_blocks_until_a_permit_is_released():
    """A third acquirer on a full gate waits for a release."""
    gate = ConcurrencyGate(2)
    await gate.acquire()
    await gate.acquire()

    waiter = asyncio.create_task(gate.acquire())
    await asyncio.sleep(0.01)
    assert not waiter.done()

    gate.release()
    await asyncio.wait_for(waiter, 1)
    assert gate.in_flight == 2


async def test_permits_are_granted_in_fifo_order():
    gate = ConcurrencyGate(1)
    await gate.acquire()
    order = []

    async def worker(n):
        async with gate.permit():
            order.append(n)

    tasks = [asyncio.create_task(worker(n)) for n in range(5)]
    await asyncio.sleep(0.01)
    gate.release()
    await asyncio.gather(*tasks)

    assert order == [0, 1, 2, 3, 4]
    assert gate.in_flight == 0


@pytest.mark.parametrize("capacity", [1, 3, 8])
async def test_in_flight_never_exceeds_capacity(capacity):
    gate = ConcurrencyGate(capacity)
    observed = []

    async def worker():
        async with gate.permit():
            observed.append(gate.in_flight)
            await asyncio.sleep(0.001)

    await asyncio.gather(*(worker() for _ in range(40)))

    assert max(observed) <= capacity
    assert gate.peak_in_flight == capacity
    assert gate.in_flight == 0


## 3. Scoped release
# -------------------

async def test_permit_is_released_when_block_raises():
    gate = ConcurrencyGate(1)

    with pytest.raises(ValueError):
        async with gate.permit():
            raise ValueError("boom")

    assert gate.in_flight == 0
    await asyncio.wait_for(gate.acquire(), 1)


## 4. Cancellation
# -----------------

async def test_cancel_wakes_blocked_acquirers_with_cancelled_error():
    gate = ConcurrencyGate(1)
    await gate.acquire()

    waiters = [asyncio.create_task(gate.acquire()) for _ in range(3)]
    await asyncio.sleep(0.01)
    gate.cancel()

    results = await asyncio.wait_for(
        asyncio.gather(*waiters, return_exceptions=True), 1
    )
    assert all(isinstance(r, asyncio.CancelledError) for r in results)
    assert gate.in_flight == 1


async def test_acquire_after_cancel_fails_immediately():
    gate = ConcurrencyGate(5)
    gate.cancel()

    with pytest.raises(asyncio.CancelledError):
        await gate.acquire()
    assert gate.in_flight == 0


async def test_task_cancellation_while_waiting_leaves_no_leaked_permit():
    gate = ConcurrencyGate(1)
    await gate.acquire()

    waiter = asyncio.create_task(gate.acquire())
    await asyncio.sleep(0.01)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    gate.release()
    assert gate.in_flight == 0
    await asyncio.wait_for(gate.acquire(), 1)
    assert gate.in_flight == 1


async def test_permit_granted_to_a_cancelled_waiter_is_handed_back():
    """Release hands the permit over, then the waiter is cancelled before it resumes."""
    gate = ConcurrencyGate(1)
    await gate.acquire()

    waiter = asyncio.create_task(gate.acquire())
    await asyncio.sleep(0.01)

    gate.release()
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert gate.in_flight == 0


async def test_cancel_leaves_permit_holders_running():
    gate = ConcurrencyGate(1)
    release_holder = asyncio.Event()

    async def holder():
        async with gate.permit():
            await release_holder.wait()
        return "done"

    holding = asyncio.create_task(holder())
    waiting = asyncio.create_task(gate.acquire())
    await asyncio.sleep(0.01)

    gate.cancel()
    release_holder.set()

    assert await asyncio.wait_for(holding, 1) == "done"
    with pytest.raises(asyncio.CancelledError):
        await waiting
    assert gate.in_flight == 0
