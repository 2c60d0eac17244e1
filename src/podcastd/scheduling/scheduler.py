"""Recurring scheduler - holds compiled jobs and fires the due ones."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from datetime import UTC, datetime, tzinfo

from podcastd.scheduling.job import CompiledJob

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class RecurringScheduler:
    """Ordered collection of compiled jobs for one worker generation.

    ``advance()`` is driven externally (see Worker). Actions are
    fire-and-forget: coroutine results are spawned as tasks and never
    awaited by the scheduler, so a slow action never delays the next tick.

    Example:
        scheduler = RecurringScheduler(ZoneInfo("Europe/Paris"))
        compile_expression(expression, scheduler, refresh)
        scheduler.advance()
    """

    def __init__(self, timezone: tzinfo = UTC, clock: Clock | None = None) -> None:
        self._timezone = timezone
        self._clock = clock
        self._jobs: list[CompiledJob] = []
        self._tasks: set[asyncio.Task] = set()

    @property
    def timezone(self) -> tzinfo:
        return self._timezone

    @property
    def jobs(self) -> list[CompiledJob]:
        return list(self._jobs)

    @property
    def pending_tasks(self) -> set[asyncio.Task]:
        return set(self._tasks)

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock().astimezone(self._timezone)
        return datetime.now(self._timezone)

    def register(self, job: CompiledJob) -> CompiledJob:
        job.schedule_next(self.now())
        self._jobs.append(job)
        logger.debug(
            "scheduler_job_registered",
            extra={
                "job.name": job.name,
                "job.next_run": job.next_run.isoformat() if job.next_run else None,
            },
        )
        return job

    def next_fire_time(self) -> datetime | None:
        upcoming = [job.next_run for job in self._jobs if job.next_run is not None]
        if not upcoming:
            return None
        return min(upcoming, key=lambda moment: moment.timestamp())

    def advance(self, now: datetime | None = None) -> int:
        """Fire every due job once and recompute its next run.

        Jobs are visited in registration order.

        Returns:
            Number of jobs fired.
        """
        now = (now or self.now()).astimezone(self._timezone)
        fired = 0
        for job in self._jobs:
            if job.exhausted or not job.is_due(now):
                continue
            job.record_run(now)
            fired += 1
            self._dispatch(job)
        return fired

    def _dispatch(self, job: CompiledJob) -> None:
        try:
            result = job.action()
        except Exception:
            logger.exception("scheduled_job_failed", extra={"job.name": job.name})
            return
        if not inspect.isawaitable(result):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            logger.error("scheduled_job_needs_event_loop", extra={"job.name": job.name})
            return
        task = asyncio.ensure_future(result, loop=loop)
        self._tasks.add(task)
        task.add_done_callback(self._task_done(job))

    def _task_done(self, job: CompiledJob) -> Callable[[asyncio.Task], None]:
        def callback(task: asyncio.Task) -> None:
            self._tasks.discard(task)
            if task.cancelled():
                return
            if exc := task.exception():
                logger.error(
                    "scheduled_job_failed",
                    extra={"job.name": job.name, "error.message": str(exc)},
                    exc_info=exc,
                )

        return callback
