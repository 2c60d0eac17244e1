"""Worker - owns one scheduler's build / run / cancel / rebuild lifecycle."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, tzinfo
from enum import StrEnum

from podcastd.scheduling.cancel import CancelScope
from podcastd.scheduling.compiler import compile_expression
from podcastd.scheduling.expression import ScheduleExpression
from podcastd.scheduling.job import CompiledJob, JobAction
from podcastd.scheduling.scheduler import Clock, RecurringScheduler
from podcastd.store.entities import EntityReader

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 1.0


class WorkerState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class SchedulingContext:
    """What a builder gets: a fresh scheduler and read access to the store."""

    scheduler: RecurringScheduler
    store: EntityReader

    @property
    def timezone(self) -> tzinfo:
        return self.scheduler.timezone

    def add_job(
        self,
        expression: ScheduleExpression,
        action: JobAction,
        *,
        name: str | None = None,
    ) -> CompiledJob:
        return compile_expression(expression, self.scheduler, action, name=name)


# Builders register jobs on the context and raise ConfigurationError or
# StoreError when the stored configuration cannot be turned into a schedule.
Builder = Callable[[SchedulingContext], Awaitable[None]]


class Worker:
    """Runs a tick loop over a scheduler built from fresh store state.

    ``schedule()`` tears down the current tick loop (without waiting for it
    to exit) and starts a new one; ``stop()`` just tears down. A failed
    build leaves the worker idle rather than running a stale schedule.

    Concurrent ``schedule()`` calls are serialized internally. ``stop()``
    racing an in-flight ``schedule()`` is not: the build in progress still
    starts its loop once it completes.

    Example:
        root = CancelScope(name="root")
        worker = Worker("podcasts", build_podcast_jobs, store, root)
        await worker.schedule()
        ...
        root.cancel()
    """

    def __init__(
        self,
        name: str,
        builder: Builder,
        store: EntityReader,
        root_scope: CancelScope,
        timezone: tzinfo = UTC,
        *,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        clock: Clock | None = None,
    ) -> None:
        self._name = name
        self._builder = builder
        self._store = store
        self._root_scope = root_scope
        self._timezone = timezone
        self._tick_interval = tick_interval
        self._clock = clock
        self._active_scope: CancelScope | None = None
        self._scheduler: RecurringScheduler | None = None
        self._task: asyncio.Task | None = None
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def timezone(self) -> tzinfo:
        return self._timezone

    @property
    def state(self) -> WorkerState:
        if self._active_scope is not None and not self._active_scope.cancelled:
            return WorkerState.RUNNING
        return WorkerState.IDLE

    @property
    def active_scope(self) -> CancelScope | None:
        return self._active_scope

    @property
    def scheduler(self) -> RecurringScheduler | None:
        """Scheduler of the running generation, if any."""
        return self._scheduler if self.state is WorkerState.RUNNING else None

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    @property
    def generation(self) -> int:
        return self._generation

    async def schedule(self) -> None:
        """Cancel the current tick loop and start one from a fresh build.

        Raises:
            ConfigurationError: Stored schedule data is invalid.
            StoreError: The store could not be read.
        """
        async with self._lock:
            self.stop()

            scheduler = RecurringScheduler(self._timezone, clock=self._clock)
            await self._builder(SchedulingContext(scheduler, self._store))

            scope = self._root_scope.child(name=f"{self._name}-tick")
            self._generation += 1
            self._active_scope = scope
            self._scheduler = scheduler
            self._task = asyncio.create_task(
                self._tick_loop(scheduler, scope, self._generation),
                name=f"worker-{self._name}-{self._generation}",
            )
            logger.info(
                "worker_scheduled",
                extra={
                    "worker.name": self._name,
                    "worker.generation": self._generation,
                    "worker.jobs": len(scheduler.jobs),
                },
            )

    def stop(self) -> None:
        """Cancel the current tick loop, if any. Never blocks."""
        scope = self._active_scope
        if scope is None or scope.cancelled:
            return
        scope.cancel()
        logger.debug(
            "worker_stopped",
            extra={"worker.name": self._name, "worker.generation": self._generation},
        )

    async def _tick_loop(
        self, scheduler: RecurringScheduler, scope: CancelScope, generation: int
    ) -> None:
        while True:
            try:
                await asyncio.wait_for(scope.wait(), timeout=self._tick_interval)
            except TimeoutError:
                pass
            if scope.cancelled:
                break
            try:
                scheduler.advance()
            except Exception:
                logger.exception(
                    "worker_tick_failed",
                    extra={"worker.name": self._name, "worker.generation": generation},
                )
        logger.debug(
            "worker_tick_loop_exited",
            extra={"worker.name": self._name, "worker.generation": generation},
        )
