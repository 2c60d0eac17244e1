"""Schedule compiler - turns ScheduleExpressions into CompiledJobs."""

from __future__ import annotations

from datetime import UTC, datetime, tzinfo

from podcastd.errors import ConfigurationError
from podcastd.scheduling.expression import (
    AndEvery,
    At,
    Count,
    Plus,
    RepeatingEvery,
    ScheduleExpression,
)
from podcastd.scheduling.job import CompiledJob, JobAction, RepeatConfig, RunConfig
from podcastd.scheduling.scheduler import RecurringScheduler


def build_job(
    expression: ScheduleExpression,
    action: JobAction,
    timezone: tzinfo = UTC,
    *,
    name: str | None = None,
) -> CompiledJob:
    """Compile an expression without registering it anywhere.

    Adjustments are applied left to right. ``At`` and ``Plus`` refine the
    most recent cadence (the base, or the last ``AndEvery``); ``Count`` and
    ``RepeatingEvery`` apply to the whole job.

    Raises:
        ConfigurationError: If an adjustment is invalid (``Count(0)``, a
            named day used as an offset or repeat step).
    """
    run_configs = [RunConfig(expression.base)]
    limit: int | None = None
    repeat: RepeatConfig | None = None

    for adjustment in expression.adjustments:
        match adjustment:
            case At(time=t):
                run_configs[-1].at = t
            case Plus(interval=interval):
                _require_sized(interval, "Plus")
                run_configs[-1].offsets.append(interval)
            case AndEvery(interval=interval):
                run_configs.append(RunConfig(interval))
            case Count(times=times):
                if times < 1:
                    raise ConfigurationError(
                        f"Count must be at least 1, got {times}: the job could never fire"
                    )
                limit = times
            case RepeatingEvery(interval=interval, times=times):
                _require_sized(interval, "RepeatingEvery")
                repeat = RepeatConfig(interval, times) if times else None
            case _:
                raise ConfigurationError(f"Unknown adjustment: {adjustment!r}")

    return CompiledJob(
        expression,
        run_configs,
        action,
        timezone,
        limit=limit,
        repeat=repeat,
        name=name,
    )


def compile_expression(
    expression: ScheduleExpression,
    scheduler: RecurringScheduler,
    action: JobAction,
    *,
    name: str | None = None,
) -> CompiledJob:
    """Compile an expression and register the job on ``scheduler``.

    Nothing is registered when compilation fails.
    """
    job = build_job(expression, action, scheduler.timezone, name=name)
    return scheduler.register(job)


def upcoming_fire_times(
    expression: ScheduleExpression,
    start: datetime,
    count: int,
    timezone: tzinfo = UTC,
) -> list[datetime]:
    """Fire times an expression would produce from ``start``, assuming every
    firing is observed exactly on time."""
    job = build_job(expression, _noop, timezone)
    job.schedule_next(start)
    fire_times: list[datetime] = []
    while job.next_run is not None and len(fire_times) < count:
        fire_times.append(job.next_run)
        job.record_run(job.next_run)
    return fire_times


def _require_sized(interval, adjustment: str) -> None:
    if not interval.is_sized:
        raise ConfigurationError(f"{adjustment} needs a sized interval, got {interval}")


def _noop() -> None:
    return None
