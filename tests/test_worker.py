"""Tests for the worker build/run/cancel/rebuild lifecycle."""

import asyncio

import pytest

from podcastd.errors import ConfigurationError, StoreError
from podcastd.scheduling import (
    ScheduleExpression,
    SchedulingContext,
    Worker,
    WorkerState,
    seconds,
)


async def eventually(predicate, timeout: float = 2.0) -> None:
    """Poll until predicate() is true."""

    async def poll():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(poll(), timeout=timeout)


@pytest.fixture
async def worker(builder, store, root_scope, clock):
    worker = Worker("test", builder, store, root_scope, tick_interval=0.01, clock=clock)
    yield worker
    worker.stop()
    if worker.task is not None:
        await asyncio.wait_for(worker.task, timeout=1)


class TestWorkerSchedule:
    """Tests for Worker.schedule()."""

    async def test_schedule_starts_tick_loop(self, worker, builder):
        assert worker.state is WorkerState.IDLE

        await worker.schedule()

        assert worker.state is WorkerState.RUNNING
        assert worker.generation == 1
        assert builder.calls == 1
        assert worker.task is not None and not worker.task.done()
        assert worker.scheduler is not None

    async def test_reschedule_cancels_previous_generation(self, worker, root_scope):
        await worker.schedule()
        first_scope, first_task = worker.active_scope, worker.task

        await worker.schedule()

        assert first_scope.cancelled
        assert not worker.active_scope.cancelled
        assert worker.active_scope is not first_scope
        assert root_scope.children == (worker.active_scope,)
        await asyncio.wait_for(first_task, timeout=1)
        assert not worker.task.done()

    async def test_concurrent_schedules_leave_one_loop(self, worker, builder, root_scope):
        await asyncio.gather(worker.schedule(), worker.schedule(), worker.schedule())

        assert builder.calls == 3
        assert worker.generation == 3
        assert len(root_scope.children) == 1
        assert worker.state is WorkerState.RUNNING

    async def test_builder_failure_propagates_and_leaves_worker_idle(
        self, worker, builder
    ):
        await worker.schedule()
        previous_scope, previous_task = worker.active_scope, worker.task

        builder.error = ConfigurationError("bad schedule")
        with pytest.raises(ConfigurationError):
            await worker.schedule()

        assert worker.state is WorkerState.IDLE
        assert previous_scope.cancelled
        assert worker.scheduler is None
        await asyncio.wait_for(previous_task, timeout=1)

    async def test_store_failure_propagates(self, worker, builder):
        builder.error = StoreError("database is locked")
        with pytest.raises(StoreError):
            await worker.schedule()
        assert worker.state is WorkerState.IDLE
        assert worker.generation == 0

    async def test_recovers_after_failed_build(self, worker, builder):
        builder.error = ConfigurationError("bad schedule")
        with pytest.raises(ConfigurationError):
            await worker.schedule()

        builder.error = None
        await worker.schedule()
        assert worker.state is WorkerState.RUNNING

    async def test_builder_gets_fresh_scheduler(self, worker, builder, store):
        contexts: list[SchedulingContext] = []
        builder.register = contexts.append

        await worker.schedule()
        await worker.schedule()

        assert contexts[0].scheduler is not contexts[1].scheduler
        assert contexts[0].store is store
        assert worker.scheduler is contexts[1].scheduler


class TestWorkerStop:
    """Tests for Worker.stop() and root cancellation."""

    async def test_stop_without_schedule_is_noop(self, worker):
        worker.stop()
        assert worker.state is WorkerState.IDLE

    async def test_stop_ends_tick_loop(self, worker):
        await worker.schedule()
        task = worker.task

        worker.stop()
        worker.stop()

        assert worker.state is WorkerState.IDLE
        await asyncio.wait_for(task, timeout=1)

    async def test_root_cancel_stops_worker(self, worker, root_scope):
        await worker.schedule()
        task = worker.task

        root_scope.cancel()

        assert worker.state is WorkerState.IDLE
        await asyncio.wait_for(task, timeout=1)

    async def test_schedule_after_root_cancel_stays_idle(self, worker, root_scope):
        root_scope.cancel()
        await worker.schedule()
        assert worker.state is WorkerState.IDLE
        await asyncio.wait_for(worker.task, timeout=1)


class TestTickLoop:
    """Tests for the worker's tick loop."""

    async def test_fires_jobs_as_clock_advances(self, worker, builder, clock):
        fired = []
        builder.register = lambda ctx: ctx.add_job(
            ScheduleExpression(seconds(1)), lambda: fired.append(clock())
        )
        await worker.schedule()

        clock.advance(seconds=1)
        await eventually(lambda: len(fired) == 1)

        clock.advance(seconds=1)
        await eventually(lambda: len(fired) == 2)

    async def test_stopped_worker_never_fires(self, worker, builder, clock):
        fired = []
        builder.register = lambda ctx: ctx.add_job(
            ScheduleExpression(seconds(1)), lambda: fired.append(clock())
        )
        await worker.schedule()
        worker.stop()
        await asyncio.wait_for(worker.task, timeout=1)

        clock.advance(seconds=5)
        await asyncio.sleep(0.05)
        assert fired == []

    async def test_root_cancel_ends_all_firings(
        self, worker, builder, clock, root_scope
    ):
        fired = []
        builder.register = lambda ctx: ctx.add_job(
            ScheduleExpression(seconds(1)), lambda: fired.append(clock())
        )
        await worker.schedule()
        clock.advance(seconds=1)
        await eventually(lambda: len(fired) == 1)

        root_scope.cancel()
        await asyncio.wait_for(worker.task, timeout=1)
        clock.advance(seconds=10)
        await asyncio.sleep(0.05)

        assert len(fired) == 1

    async def test_tick_failure_does_not_end_loop(self, worker, caplog):
        await worker.schedule()
        scheduler = worker.scheduler
        calls = []

        def flaky_advance(now=None):
            calls.append(now)
            if len(calls) == 1:
                raise RuntimeError("tick exploded")
            return 0

        scheduler.advance = flaky_advance

        await eventually(lambda: len(calls) >= 3)
        assert worker.state is WorkerState.RUNNING
        assert not worker.task.done()
        assert "worker_tick_failed" in caplog.text
