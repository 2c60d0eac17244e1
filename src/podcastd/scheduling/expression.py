"""Schedule expressions.

A ScheduleExpression is a base Interval refined by an ordered list of
adjustments. Order matters: each adjustment acts on the job state left by
the previous ones (``Plus`` after ``AndEvery`` shifts the second cadence,
not the first).

Wire format::

    {"base": {"Minutes": 5},
     "adjustments": [{"At": "08:00:00"}, {"Plus": {"Seconds": 30}},
                     {"AndEvery": "Monday"}, {"Count": 3},
                     {"RepeatingEvery": [{"Minutes": 1}, 4]}]}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import time
from typing import Any

from podcastd.errors import ConfigurationError
from podcastd.scheduling.intervals import Interval


@dataclass(frozen=True)
class At:
    """Fire at a time of day."""

    time: time


@dataclass(frozen=True)
class Plus:
    """Shift the cycle start by an interval."""

    interval: Interval


@dataclass(frozen=True)
class AndEvery:
    """Add an independent second cadence."""

    interval: Interval


@dataclass(frozen=True)
class Count:
    """Cap total executions."""

    times: int


@dataclass(frozen=True)
class RepeatingEvery:
    """Sub-fire every ``interval``, up to ``times`` times per base cycle."""

    interval: Interval
    times: int


Adjustment = At | Plus | AndEvery | Count | RepeatingEvery


@dataclass(frozen=True)
class ScheduleExpression:
    """Declarative recurrence: a base interval plus ordered adjustments."""

    base: Interval
    adjustments: tuple[Adjustment, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Absent and empty adjustment lists are the same expression.
        if self.adjustments is None:
            object.__setattr__(self, "adjustments", ())
        elif not isinstance(self.adjustments, tuple):
            object.__setattr__(self, "adjustments", tuple(self.adjustments))

    def __str__(self) -> str:
        parts = [f"every {self.base}"]
        parts.extend(_describe(adjustment) for adjustment in self.adjustments)
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "base": self.base.to_json(),
            "adjustments": [adjustment_to_json(a) for a in self.adjustments],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> ScheduleExpression:
        """Parse an expression payload.

        Raises:
            ConfigurationError: If the payload does not describe a schedule.
        """
        if not isinstance(data, dict) or "base" not in data:
            raise ConfigurationError(f"Invalid schedule expression: {data!r}")
        raw_adjustments = data.get("adjustments")
        if raw_adjustments is None:
            raw_adjustments = []
        if not isinstance(raw_adjustments, list):
            raise ConfigurationError(
                f"Schedule adjustments must be a list: {raw_adjustments!r}"
            )
        return cls(
            base=Interval.from_json(data["base"]),
            adjustments=tuple(adjustment_from_json(a) for a in raw_adjustments),
        )

    @classmethod
    def from_json(cls, text: str | bytes) -> ScheduleExpression:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Schedule expression is not JSON: {e}") from e
        return cls.from_dict(data)


def adjustment_to_json(adjustment: Adjustment) -> dict[str, Any]:
    match adjustment:
        case At(time=t):
            return {"At": t.isoformat()}
        case Plus(interval=interval):
            return {"Plus": interval.to_json()}
        case AndEvery(interval=interval):
            return {"AndEvery": interval.to_json()}
        case Count(times=times):
            return {"Count": times}
        case RepeatingEvery(interval=interval, times=times):
            return {"RepeatingEvery": [interval.to_json(), times]}
    raise TypeError(f"Not an adjustment: {adjustment!r}")


def adjustment_from_json(data: Any) -> Adjustment:
    """Parse one adjustment from its single-key wire form."""
    if not isinstance(data, dict) or len(data) != 1:
        raise ConfigurationError(f"Invalid adjustment: {data!r}")
    ((tag, value),) = data.items()
    match tag:
        case "At":
            return At(_parse_time(value))
        case "Plus":
            return Plus(Interval.from_json(value))
        case "AndEvery":
            return AndEvery(Interval.from_json(value))
        case "Count":
            return Count(_parse_count(value))
        case "RepeatingEvery":
            if not isinstance(value, list) or len(value) != 2:
                raise ConfigurationError(
                    f"RepeatingEvery takes [interval, times]: {value!r}"
                )
            return RepeatingEvery(Interval.from_json(value[0]), _parse_count(value[1]))
    raise ConfigurationError(f"Unknown adjustment: {tag!r}")


def _parse_time(value: Any) -> time:
    if not isinstance(value, str):
        raise ConfigurationError(f"Time of day must be a string: {value!r}")
    try:
        parsed = time.fromisoformat(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid time of day {value!r}: {e}") from e
    if parsed.tzinfo is not None:
        raise ConfigurationError(f"Time of day must not carry an offset: {value!r}")
    return parsed


def _parse_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigurationError(f"Count must be a non-negative integer: {value!r}")
    return value


def _describe(adjustment: Adjustment) -> str:
    match adjustment:
        case At(time=t):
            return f"at {t.isoformat()}"
        case Plus(interval=interval):
            return f"plus {interval}"
        case AndEvery(interval=interval):
            return f"and every {interval}"
        case Count(times=times):
            return f"{times} times"
        case RepeatingEvery(interval=interval, times=times):
            return f"repeating every {interval} x{times}"
    return repr(adjustment)
