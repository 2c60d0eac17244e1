"""Recurrence units.

An Interval is either sized (``Minutes(5)``) or a named day (``Monday``,
``Weekday``). Sized sub-day intervals fire on a grid counted from local
midnight when their period divides a day, and from a fixed epoch otherwise,
stepping in absolute time across clock changes. Day-or-longer intervals fire
at a time of day (midnight unless an ``At`` adjustment says otherwise).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from enum import StrEnum
from functools import total_ordering
from typing import Any

from podcastd.errors import ConfigurationError

SECONDS_PER_DAY = 86400

# Anchor for sub-day periods that do not divide a day.
EPOCH = date(1970, 1, 1)


class Unit(StrEnum):
    """Interval units, valued by their wire tag."""

    SECONDS = "Seconds"
    MINUTES = "Minutes"
    HOURS = "Hours"
    DAYS = "Days"
    WEEKS = "Weeks"
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"
    WEEKDAY = "Weekday"


UNIT_SECONDS: dict[Unit, int] = {
    Unit.SECONDS: 1,
    Unit.MINUTES: 60,
    Unit.HOURS: 3600,
    Unit.DAYS: SECONDS_PER_DAY,
    Unit.WEEKS: 7 * SECONDS_PER_DAY,
}

DAY_NUMBERS: dict[Unit, int] = {
    Unit.MONDAY: 0,
    Unit.TUESDAY: 1,
    Unit.WEDNESDAY: 2,
    Unit.THURSDAY: 3,
    Unit.FRIDAY: 4,
    Unit.SATURDAY: 5,
    Unit.SUNDAY: 6,
}

_UNIT_ORDER = {unit: index for index, unit in enumerate(Unit)}


@total_ordering
@dataclass(frozen=True)
class Interval:
    """A recurrence unit with a multiplier (always 1 for named days)."""

    unit: Unit
    size: int = 1

    def __post_init__(self) -> None:
        if isinstance(self.size, bool) or not isinstance(self.size, int):
            raise ConfigurationError(f"Interval size must be an integer: {self.size!r}")
        if self.size < 1:
            raise ConfigurationError(f"Interval size must be positive: {self.size}")
        if not self.is_sized and self.size != 1:
            raise ConfigurationError(f"{self.unit} does not take a size")

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Interval):
            return NotImplemented
        return (_UNIT_ORDER[self.unit], self.size) < (
            _UNIT_ORDER[other.unit],
            other.size,
        )

    def __str__(self) -> str:
        if self.is_sized:
            return f"{self.unit}({self.size})"
        return str(self.unit)

    @property
    def is_sized(self) -> bool:
        return self.unit in UNIT_SECONDS

    @property
    def is_sub_day(self) -> bool:
        return self.unit in (Unit.SECONDS, Unit.MINUTES, Unit.HOURS)

    @property
    def duration(self) -> timedelta:
        """Fixed length of a sized interval.

        Raises:
            ConfigurationError: For named days, which have no fixed length.
        """
        if not self.is_sized:
            raise ConfigurationError(f"{self} has no fixed duration")
        return timedelta(seconds=UNIT_SECONDS[self.unit] * self.size)

    def next_after(self, moment: datetime, at: time | None = None) -> datetime:
        """First firing strictly after ``moment``, in ``moment``'s timezone.

        Args:
            moment: Timezone-aware reference time. Sub-second precision
                is dropped before evaluation.
            at: Time of day. For sub-day intervals it anchors the phase of
                the cycle; otherwise it is the firing time on matching days.
        """
        moment = moment.replace(microsecond=0)
        if self.is_sub_day:
            return self._next_sub_day(moment, at)

        fire_time = at or time(0)
        today = moment.date()
        match self.unit:
            case Unit.DAYS:
                first = today + timedelta(days=-today.toordinal() % self.size)
                return _first_after(moment, first, fire_time, timedelta(days=self.size))
            case Unit.WEEKS:
                monday = today - timedelta(days=today.weekday())
                week_index = (monday.toordinal() - 1) // 7
                first = monday + timedelta(weeks=-week_index % self.size)
                return _first_after(moment, first, fire_time, timedelta(weeks=self.size))
            case Unit.WEEKDAY:
                day = today
                while True:
                    if day.weekday() < 5:
                        candidate = _at(day, fire_time, moment)
                        if candidate > moment:
                            return candidate
                    day += timedelta(days=1)
            case _:
                target = DAY_NUMBERS[self.unit]
                first = today + timedelta(days=(target - today.weekday()) % 7)
                return _first_after(moment, first, fire_time, timedelta(weeks=1))

    def _next_sub_day(self, moment: datetime, at: time | None) -> datetime:
        # Grid arithmetic runs on absolute time so clock changes neither
        # stall nor double a cadence.
        period = UNIT_SECONDS[self.unit] * self.size
        phase = _seconds_of_day(at) % period if at else 0
        if SECONDS_PER_DAY % period == 0:
            anchor = _at(moment.date(), time(0), moment)
        else:
            anchor = datetime.combine(EPOCH, time(0), tzinfo=moment.tzinfo)
        anchor = anchor.astimezone(UTC) + timedelta(seconds=phase)

        elapsed = int((moment.astimezone(UTC) - anchor).total_seconds())
        step = elapsed // period + 1
        candidate = anchor + timedelta(seconds=step * period)
        return candidate.astimezone(moment.tzinfo)

    def to_json(self) -> Any:
        if self.is_sized:
            return {self.unit.value: self.size}
        return self.unit.value

    @classmethod
    def from_json(cls, data: Any) -> Interval:
        """Parse the wire form: ``{"Minutes": 5}`` or ``"Monday"``."""
        if isinstance(data, str):
            unit = _parse_unit(data)
            if unit in UNIT_SECONDS:
                raise ConfigurationError(f"{unit} requires a size")
            return cls(unit)
        if isinstance(data, dict) and len(data) == 1:
            (tag, size), = data.items()
            unit = _parse_unit(tag)
            if unit not in UNIT_SECONDS:
                raise ConfigurationError(f"{unit} does not take a size")
            return cls(unit, size)
        raise ConfigurationError(f"Invalid interval: {data!r}")


def seconds(n: int) -> Interval:
    return Interval(Unit.SECONDS, n)


def minutes(n: int) -> Interval:
    return Interval(Unit.MINUTES, n)


def hours(n: int) -> Interval:
    return Interval(Unit.HOURS, n)


def days(n: int) -> Interval:
    return Interval(Unit.DAYS, n)


def weeks(n: int) -> Interval:
    return Interval(Unit.WEEKS, n)


def _parse_unit(tag: Any) -> Unit:
    try:
        return Unit(tag)
    except ValueError:
        raise ConfigurationError(f"Unknown interval unit: {tag!r}") from None


def _seconds_of_day(value: time) -> int:
    return value.hour * 3600 + value.minute * 60 + value.second


def _at(day: date, fire_time: time, moment: datetime) -> datetime:
    return datetime.combine(day, fire_time, tzinfo=moment.tzinfo)


def _first_after(
    moment: datetime, first: date, fire_time: time, step: timedelta
) -> datetime:
    candidate = _at(first, fire_time, moment)
    if candidate <= moment:
        candidate = _at(first + step, fire_time, moment)
    return candidate
