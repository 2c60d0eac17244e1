"""Job families: the builders the runtime hands to its workers.

Each builder reads the store from scratch and registers the complete job
set for its family. Builders fail as a whole: one malformed record means no
jobs at all, so a worker never runs half of a schedule.
"""

import logging

from podcastd.models import PODCASTS_PREFIX, SETTINGS_KEY, Podcast, ServerSettings
from podcastd.podcasts import get_server_settings
from podcastd.scheduling import SchedulingContext, build_job

logger = logging.getLogger(__name__)

DOWNLOADER_WORKER = "downloader"
PODCAST_WORKER = "podcasts"

# Worker name -> store prefix whose changes trigger a rebuild.
WATCHED_PREFIXES = {
    DOWNLOADER_WORKER: SETTINGS_KEY,
    PODCAST_WORKER: PODCASTS_PREFIX,
}


async def run_downloader(settings: ServerSettings) -> None:
    # TODO: process the download queue into settings.media_directory
    logger.info(
        "download_queue_tick",
        extra={"downloader.media_directory": settings.media_directory},
    )


async def refresh_podcast(podcast: Podcast) -> None:
    # TODO: fetch the feed and download new episodes with SponsorBlock cuts applied
    logger.info(
        "podcast_refresh",
        extra={"podcast.name": podcast.name, "podcast.feed_url": podcast.source.feed_url},
    )


async def build_downloader_jobs(ctx: SchedulingContext) -> None:
    """Register the downloader job from the stored server settings."""
    settings = await get_server_settings(ctx.store)
    ctx.add_job(
        settings.downloader_schedule,
        lambda: run_downloader(settings),
        name=DOWNLOADER_WORKER,
    )


async def build_podcast_jobs(ctx: SchedulingContext) -> None:
    """Register one refresh job per podcast with an update schedule."""
    records = await ctx.store.scan_all(PODCASTS_PREFIX)
    podcasts = [Podcast.from_json(raw) for _, raw in records]

    # Compile everything before registering anything.
    jobs = [
        build_job(
            podcast.update_schedule,
            _refresh_action(podcast),
            ctx.timezone,
            name=f"refresh:{podcast.name}",
        )
        for podcast in podcasts
        if podcast.update_schedule is not None
    ]
    for job in jobs:
        ctx.scheduler.register(job)

    logger.debug(
        "podcast_jobs_built",
        extra={"podcasts.total": len(podcasts), "podcasts.scheduled": len(jobs)},
    )


def _refresh_action(podcast: Podcast):
    return lambda: refresh_podcast(podcast)
