"""Scheduling subsystem - hot-reloadable recurring jobs.

Public API:
- compile_expression: Compile a ScheduleExpression onto a scheduler
- RecurringScheduler: Holds compiled jobs, fires due ones on advance()
- Worker: Builds, runs, cancels and rebuilds one scheduler's tick loop
- ChangeWatcher: Rebuilds a Worker on every store change notification
- CancelScope: Hierarchical cancellation flags

Types:
- Interval, ScheduleExpression and the adjustments (At, Plus, AndEvery,
  Count, RepeatingEvery)
- CompiledJob, SchedulingContext, WorkerState
"""

from podcastd.scheduling.cancel import CancelScope
from podcastd.scheduling.compiler import (
    build_job,
    compile_expression,
    upcoming_fire_times,
)
from podcastd.scheduling.expression import (
    Adjustment,
    AndEvery,
    At,
    Count,
    Plus,
    RepeatingEvery,
    ScheduleExpression,
)
from podcastd.scheduling.intervals import (
    Interval,
    Unit,
    days,
    hours,
    minutes,
    seconds,
    weeks,
)
from podcastd.scheduling.job import CompiledJob
from podcastd.scheduling.scheduler import RecurringScheduler
from podcastd.scheduling.watcher import ChangeWatcher
from podcastd.scheduling.worker import (
    DEFAULT_TICK_INTERVAL,
    Builder,
    SchedulingContext,
    Worker,
    WorkerState,
)

__all__ = [
    "DEFAULT_TICK_INTERVAL",
    "Adjustment",
    "AndEvery",
    "At",
    "Builder",
    "CancelScope",
    "ChangeWatcher",
    "CompiledJob",
    "Count",
    "Interval",
    "Plus",
    "RecurringScheduler",
    "RepeatingEvery",
    "ScheduleExpression",
    "SchedulingContext",
    "Unit",
    "Worker",
    "WorkerState",
    "build_job",
    "compile_expression",
    "days",
    "hours",
    "minutes",
    "seconds",
    "upcoming_fire_times",
    "weeks",
]
