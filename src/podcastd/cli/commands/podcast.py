"""Podcast management commands."""

from pathlib import Path
from typing import Annotated

import click
import typer

from podcastd.cli.console import (
    console,
    create_table,
    dim,
    error,
    load_config_or_exit,
    run_with_store,
    success,
    warning,
)


def register(app: typer.Typer) -> None:
    """Register the podcast command."""

    @app.command()
    def podcast(
        action: Annotated[
            str | None,
            typer.Argument(help="Action: add, list, show, remove, process"),
        ] = None,
        name: Annotated[
            str | None,
            typer.Argument(help="Podcast name"),
        ] = None,
        channel: Annotated[
            str | None,
            typer.Option("--channel", help="YouTube channel ID (for add)"),
        ] = None,
        schedule: Annotated[
            str | None,
            typer.Option(
                "--schedule",
                "-s",
                help="Update schedule as JSON (for add); omit to never update",
            ),
        ] = None,
        sponsorblock: Annotated[
            list[str] | None,
            typer.Option(
                "--sponsorblock",
                help="SponsorBlock category to cut; repeatable, 'all' for every one",
            ),
        ] = None,
        downloader_args: Annotated[
            list[str] | None,
            typer.Option("--arg", help="Extra downloader argument; repeatable"),
        ] = None,
        config_path: Annotated[
            Path | None,
            typer.Option("--config", "-c", help="Path to configuration file"),
        ] = None,
    ) -> None:
        """Manage stored podcasts.

        A running daemon sharing the same database picks these edits up on
        its next store poll and reschedules without a restart.

        Examples:
            podcastd podcast list
            podcastd podcast add tech --channel UC123 -s '{"base": {"Hours": 1}}'
            podcastd podcast add tech --channel UC123 --sponsorblock all
            podcastd podcast process tech
            podcastd podcast remove tech
        """
        if action is None:
            ctx = click.get_current_context()
            click.echo(ctx.get_help())
            raise typer.Exit(0)

        if action not in ("add", "list", "show", "remove", "process"):
            error(f"Unknown action: {action}")
            console.print("Valid actions: add, list, show, remove, process")
            raise typer.Exit(1)

        if action != "list" and not name:
            error(f"A podcast name is required for {action}")
            raise typer.Exit(1)

        config = load_config_or_exit(config_path)

        if action == "list":
            _podcast_list(config)
        elif action == "show":
            _podcast_show(config, name)
        elif action == "add":
            _podcast_add(config, name, channel, schedule, sponsorblock, downloader_args)
        elif action == "remove":
            _podcast_remove(config, name)
        else:
            _podcast_process(config, name)


def _podcast_list(config) -> None:
    from podcastd.podcasts import list_podcasts

    podcasts = run_with_store(config, list_podcasts)
    if not podcasts:
        warning("No podcasts stored")
        return

    table = create_table(
        "Podcasts",
        [
            ("Name", "cyan"),
            ("Source", ""),
            ("Update schedule", "green"),
            ("SponsorBlock", "dim"),
        ],
    )
    for item in podcasts:
        table.add_row(
            item.name,
            item.source.channel_id,
            str(item.update_schedule) if item.update_schedule else "[dim]never[/dim]",
            ", ".join(item.sponsorblock_categories or []) or "-",
        )
    console.print(table)
    dim(f"Total: {len(podcasts)} podcast(s)")


def _podcast_show(config, name: str) -> None:
    from podcastd.errors import PodcastdError
    from podcastd.podcasts import get_podcast

    try:
        item = run_with_store(config, lambda store: get_podcast(store, name))
    except PodcastdError as e:
        error(str(e))
        raise typer.Exit(1) from None

    console.print(f"[bold]{item.name}[/bold]")
    console.print(f"  Feed: {item.source.feed_url}")
    console.print(
        f"  Update schedule: {item.update_schedule or '[dim]never[/dim]'}"
    )
    if item.sponsorblock_categories:
        console.print(f"  SponsorBlock: {', '.join(item.sponsorblock_categories)}")
    if item.downloader_arguments:
        console.print(f"  Downloader arguments: {' '.join(item.downloader_arguments)}")


def _podcast_add(
    config,
    name: str,
    channel: str | None,
    schedule: str | None,
    sponsorblock: list[str] | None,
    downloader_args: list[str] | None,
) -> None:
    from podcastd.errors import PodcastdError
    from podcastd.models import Source
    from podcastd.podcasts import create_podcast
    from podcastd.scheduling import ScheduleExpression

    if not channel:
        error("--channel is required for add")
        raise typer.Exit(1)

    try:
        update_schedule = (
            ScheduleExpression.from_json(schedule) if schedule is not None else None
        )
        item = run_with_store(
            config,
            lambda store: create_podcast(
                store,
                name,
                Source(channel),
                update_schedule=update_schedule,
                sponsorblock_categories=sponsorblock or None,
                downloader_arguments=downloader_args or None,
            ),
        )
    except PodcastdError as e:
        error(str(e))
        raise typer.Exit(1) from None

    success(f"Saved podcast {item.name}")
    if item.update_schedule is None:
        dim("No update schedule; the podcast will only refresh on 'process'")


def _podcast_remove(config, name: str) -> None:
    from podcastd.podcasts import purge_podcast

    removed = run_with_store(config, lambda store: purge_podcast(store, name))
    if not removed:
        error(f"Podcast not found: {name}")
        raise typer.Exit(1)
    success(f"Removed podcast {name}")


def _podcast_process(config, name: str) -> None:
    from podcastd.errors import PodcastdError
    from podcastd.podcasts import process_podcast

    try:
        run_with_store(config, lambda store: process_podcast(store, name))
    except PodcastdError as e:
        error(str(e))
        raise typer.Exit(1) from None
    success(f"Processed podcast {name}")
