"""Compiled jobs and their next-fire bookkeeping."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, time, timedelta, tzinfo
from typing import Any

from podcastd.scheduling.expression import ScheduleExpression
from podcastd.scheduling.intervals import Interval

# Job action: called with no arguments; may return an awaitable, which the
# scheduler runs as a detached task.
JobAction = Callable[[], Awaitable[Any] | None]


@dataclass
class RunConfig:
    """One cadence of a job: base interval, optional time of day, offsets."""

    base: Interval
    at: time | None = None
    offsets: list[Interval] = field(default_factory=list)

    @property
    def shift(self) -> timedelta:
        return sum((offset.duration for offset in self.offsets), timedelta())

    def next_after(self, moment: datetime) -> datetime:
        shift = self.shift
        if not shift:
            return self.base.next_after(moment, self.at)
        shifted = (_utc(moment) - shift).astimezone(moment.tzinfo)
        fire = self.base.next_after(shifted, self.at)
        return (_utc(fire) + shift).astimezone(moment.tzinfo)


@dataclass(frozen=True)
class RepeatConfig:
    """Sub-firings after each main firing."""

    interval: Interval
    times: int


class CompiledJob:
    """A runnable job derived from a ScheduleExpression.

    Next-fire times are always recomputed from the run configs relative to
    the time a firing was observed, so late or missed ticks never queue up
    extra firings.
    """

    def __init__(
        self,
        expression: ScheduleExpression,
        run_configs: list[RunConfig],
        action: JobAction,
        timezone: tzinfo,
        *,
        limit: int | None = None,
        repeat: RepeatConfig | None = None,
        name: str | None = None,
    ) -> None:
        self.expression = expression
        self.run_configs = run_configs
        self.action = action
        self.timezone = timezone
        self.limit = limit
        self.repeat = repeat
        self.name = name or str(expression)
        self.next_run: datetime | None = None
        self.last_run: datetime | None = None
        self.run_count = 0
        self._cycle_start: datetime | None = None
        self._next_is_repeat = False

    def __repr__(self) -> str:
        return (
            f"CompiledJob(name={self.name!r}, next_run={self.next_run}, "
            f"run_count={self.run_count})"
        )

    @property
    def exhausted(self) -> bool:
        return self.limit is not None and self.run_count >= self.limit

    def is_due(self, now: datetime) -> bool:
        return self.next_run is not None and _utc(self.next_run) <= _utc(now)

    def schedule_next(self, now: datetime) -> datetime | None:
        """Compute the next main firing after ``now``."""
        if self.exhausted:
            self.next_run = None
            return None
        local = now.astimezone(self.timezone)
        self.next_run = min(
            (config.next_after(local) for config in self.run_configs), key=_utc
        )
        self._next_is_repeat = False
        return self.next_run

    def record_run(self, now: datetime) -> datetime | None:
        """Account for a firing observed at ``now`` and pick the next one."""
        if not self._next_is_repeat:
            self._cycle_start = self.next_run or now
        self.last_run = now
        self.run_count += 1

        next_main = self.schedule_next(now)
        if next_main is None or self.repeat is None or self._cycle_start is None:
            return next_main

        repeat_at = self._next_repeat(now)
        if repeat_at is not None and _utc(repeat_at) < _utc(next_main):
            self.next_run = repeat_at
            self._next_is_repeat = True
        return self.next_run

    def _next_repeat(self, now: datetime) -> datetime | None:
        assert self.repeat is not None and self._cycle_start is not None
        step = self.repeat.interval.duration
        elapsed = _utc(now) - _utc(self._cycle_start)
        index = int(elapsed // step) + 1
        if index > self.repeat.times:
            return None
        return (_utc(self._cycle_start) + step * index).astimezone(self.timezone)


def _utc(moment: datetime) -> datetime:
    # Same-zone aware datetimes compare and subtract as wall-clock times.
    return moment.astimezone(UTC)
