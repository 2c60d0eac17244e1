"""Podcast and server settings management on top of the entity store.

Every write here produces a store change notification, which the runtime's
change watchers turn into worker rebuilds.
"""

from __future__ import annotations

import logging

from podcastd.errors import ConfigurationError, PodcastNotFoundError
from podcastd.models import (
    PODCASTS_PREFIX,
    SETTINGS_KEY,
    SPONSORBLOCK_CATEGORIES,
    Podcast,
    ServerSettings,
    Source,
    podcast_key,
)
from podcastd.scheduling import ScheduleExpression, build_job
from podcastd.store import EntityReader, EntityStore

logger = logging.getLogger(__name__)


def filter_sponsorblock_categories(categories: list[str] | None) -> list[str] | None:
    """Keep only known categories; ``["all"]`` selects every category."""
    if categories is None:
        return None
    if categories == ["all"]:
        return list(SPONSORBLOCK_CATEGORIES)
    return [c for c in categories if c in SPONSORBLOCK_CATEGORIES]


async def create_podcast(
    store: EntityStore,
    name: str,
    source: Source,
    update_schedule: ScheduleExpression | None = None,
    sponsorblock_categories: list[str] | None = None,
    downloader_arguments: list[str] | None = None,
) -> Podcast:
    """Store a podcast under its name, overwriting any existing entry.

    Raises:
        ConfigurationError: If the name is empty or the schedule would be
            rejected by the compiler.
    """
    if not name or "/" in name:
        raise ConfigurationError(f"Invalid podcast name: {name!r}")
    if update_schedule is not None:
        # Reject what the podcast worker would fail to build.
        build_job(update_schedule, lambda: None)

    podcast = Podcast(
        name=name,
        source=source,
        update_schedule=update_schedule,
        sponsorblock_categories=filter_sponsorblock_categories(sponsorblock_categories),
        downloader_arguments=downloader_arguments,
    )
    await store.insert(podcast.key, podcast.to_json())
    logger.info(
        "podcast_saved",
        extra={"podcast.name": name, "podcast.scheduled": update_schedule is not None},
    )
    return podcast


async def list_podcasts(store: EntityReader) -> list[Podcast]:
    """All stored podcasts. Records that fail to parse are skipped."""
    podcasts = []
    for key, raw in await store.scan_all(PODCASTS_PREFIX):
        try:
            podcasts.append(Podcast.from_json(raw))
        except ConfigurationError as e:
            logger.warning(
                "podcast_record_skipped",
                extra={"store.key": key, "error.message": str(e)},
            )
    return podcasts


async def get_podcast(store: EntityReader, name: str) -> Podcast:
    """Raises PodcastNotFoundError if missing, ConfigurationError if corrupt."""
    raw = await store.get(podcast_key(name))
    if raw is None:
        raise PodcastNotFoundError(name)
    return Podcast.from_json(raw)


async def purge_podcast(store: EntityStore, name: str) -> bool:
    """Delete a podcast entry. Returns whether it existed."""
    removed = await store.remove(podcast_key(name))
    if removed:
        logger.info("podcast_purged", extra={"podcast.name": name})
    return removed


async def process_podcast(store: EntityReader, name: str) -> Podcast:
    """Run a podcast's refresh now, bypassing the scheduler."""
    from podcastd.jobs import refresh_podcast

    podcast = await get_podcast(store, name)
    await refresh_podcast(podcast)
    return podcast


async def get_server_settings(store: EntityReader) -> ServerSettings:
    """Stored server settings, or defaults when none are stored."""
    raw = await store.get(SETTINGS_KEY)
    if raw is None:
        return ServerSettings()
    return ServerSettings.from_json(raw)


async def save_server_settings(store: EntityStore, settings: ServerSettings) -> None:
    build_job(settings.downloader_schedule, lambda: None)
    await store.insert(SETTINGS_KEY, settings.to_json())
    logger.info("server_settings_saved")
