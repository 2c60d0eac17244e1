"""Configuration models using Pydantic."""

import re
from datetime import UTC, timedelta, timezone, tzinfo
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from podcastd.config.paths import get_database_path

OFFSET_PATTERN = re.compile(r"^(?:UTC)?([+-])(\d{2}):?(\d{2})$")


class ConfigError(Exception):
    """Configuration error."""

    pass


def resolve_timezone(value: str) -> tzinfo:
    """Turn a timezone setting into a tzinfo.

    Accepts IANA names ("Europe/Paris"), "UTC", and fixed offsets
    ("+02:00", "UTC-0530").

    Raises:
        ConfigError: If the value names no known zone.
    """
    value = value.strip()
    if value.upper() in ("UTC", "Z"):
        return UTC
    if match := OFFSET_PATTERN.match(value):
        sign, hours, minutes = match.groups()
        offset = timedelta(hours=int(hours), minutes=int(minutes))
        if offset >= timedelta(hours=24):
            raise ConfigError(f"Timezone offset out of range: {value}")
        return timezone(-offset if sign == "-" else offset)
    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"Unknown timezone: {value}") from e


class SchedulerConfig(BaseModel):
    """Configuration for the job scheduler.

    Every worker ticks at the same cadence and evaluates its jobs in the
    same timezone.
    """

    tick_interval: float = Field(default=1.0, gt=0)
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            resolve_timezone(value)
        except ConfigError as e:
            raise ValueError(str(e)) from e
        return value

    @property
    def tzinfo(self) -> tzinfo:
        return resolve_timezone(self.timezone)


class StoreConfig(BaseModel):
    """Configuration for the entity store."""

    database_path: Path = Field(default_factory=get_database_path)
    # How often a watched store checks for commits from other processes.
    poll_interval: float = Field(default=1.0, gt=0)


class PodcastdConfig(BaseModel):
    """Root configuration model."""

    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None
