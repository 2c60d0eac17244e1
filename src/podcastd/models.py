"""Stored entities: podcasts and server settings.

Both are persisted as JSON in the entity store; podcasts under
``podcasts/<name>``, settings under ``config``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from podcastd.errors import ConfigurationError
from podcastd.scheduling import ScheduleExpression, minutes

PODCASTS_PREFIX = "podcasts/"
SETTINGS_KEY = "config"

YOUTUBE_FEED_URL = "https://www.youtube.com/feeds/videos.xml?channel_id={channel_id}"

# SponsorBlock only has data for YouTube.
SPONSORBLOCK_CATEGORIES: dict[str, str] = {
    "sponsor": "Sponsor",
    "intro": "Intermission/Intro Animation",
    "outro": "Endcards/Credits",
    "selfpromo": "Unpaid/Self Promotion",
    "interaction": "Interaction Reminder",
    "preview": "Preview/Recap",
    "music_offtopic": "Non-Music Section",
}


def podcast_key(name: str) -> str:
    return f"{PODCASTS_PREFIX}{name}"


@dataclass(frozen=True)
class Source:
    """Where a podcast feed comes from. Only YouTube channels for now."""

    channel_id: str
    kind: str = "Youtube"

    @property
    def feed_url(self) -> str:
        return YOUTUBE_FEED_URL.format(channel_id=self.channel_id)

    def to_json(self) -> dict[str, str]:
        return {self.kind: self.channel_id}

    @classmethod
    def from_json(cls, data: Any) -> Source:
        if isinstance(data, dict) and len(data) == 1:
            ((kind, channel_id),) = data.items()
            if kind == "Youtube" and isinstance(channel_id, str) and channel_id:
                return cls(channel_id)
        raise ConfigurationError(f"Unsupported podcast source: {data!r}")


@dataclass
class Podcast:
    """A stored podcast entry, keyed by name."""

    name: str
    source: Source
    # How often to check the source. None means never.
    update_schedule: ScheduleExpression | None = None
    # SponsorBlock segment categories to cut. None means keep everything.
    sponsorblock_categories: list[str] | None = None
    downloader_arguments: list[str] | None = None

    @property
    def key(self) -> str:
        return podcast_key(self.name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "source": self.source.to_json(),
            "update_schedule": self.update_schedule.to_dict()
            if self.update_schedule
            else None,
            "sponsorblock_categories": self.sponsorblock_categories,
            "downloader_arguments": self.downloader_arguments,
        }

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), indent=2).encode()

    @classmethod
    def from_dict(cls, data: Any) -> Podcast:
        """Parse a stored podcast.

        Raises:
            ConfigurationError: If the record is not a valid podcast.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"Podcast record must be an object: {data!r}")
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ConfigurationError("Podcast record has no name")
        schedule = data.get("update_schedule")
        return cls(
            name=name,
            source=Source.from_json(data.get("source")),
            update_schedule=ScheduleExpression.from_dict(schedule)
            if schedule is not None
            else None,
            sponsorblock_categories=_string_list(data, "sponsorblock_categories"),
            downloader_arguments=_string_list(data, "downloader_arguments"),
        )

    @classmethod
    def from_json(cls, raw: bytes | str) -> Podcast:
        return cls.from_dict(_load_json(raw, "podcast"))


def default_downloader_schedule() -> ScheduleExpression:
    return ScheduleExpression(minutes(5))


@dataclass
class ServerSettings:
    """Server settings stored in the entity store.

    Changing ``downloader_schedule`` reschedules the downloader worker
    live; the other fields are read when the daemon starts.
    """

    # How often the downloader worker processes its queue.
    downloader_schedule: ScheduleExpression = field(
        default_factory=default_downloader_schedule
    )
    # Where media and feeds are written (and served from, if enabled).
    media_directory: str = "media"
    # Serve /<podcast>/feed and /<podcast>/media/<id>.<ext> as well.
    serve_feed_and_media: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "downloader_schedule": self.downloader_schedule.to_dict(),
            "media_directory": self.media_directory,
            "serve_feed_and_media": self.serve_feed_and_media,
        }

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), indent=2).encode()

    @classmethod
    def from_dict(cls, data: Any) -> ServerSettings:
        if not isinstance(data, dict):
            raise ConfigurationError(f"Server settings must be an object: {data!r}")
        settings = cls()
        if (schedule := data.get("downloader_schedule")) is not None:
            settings.downloader_schedule = ScheduleExpression.from_dict(schedule)
        if (media_directory := data.get("media_directory")) is not None:
            if not isinstance(media_directory, str):
                raise ConfigurationError("media_directory must be a string")
            settings.media_directory = media_directory
        if (serve := data.get("serve_feed_and_media")) is not None:
            if not isinstance(serve, bool):
                raise ConfigurationError("serve_feed_and_media must be a boolean")
            settings.serve_feed_and_media = serve
        return settings

    @classmethod
    def from_json(cls, raw: bytes | str) -> ServerSettings:
        return cls.from_dict(_load_json(raw, "server settings"))


def _load_json(raw: bytes | str, what: str) -> Any:
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Stored {what} is not valid JSON: {e}") from e


def _string_list(data: dict[str, Any], key: str) -> list[str] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"{key} must be a list of strings")
    return value
