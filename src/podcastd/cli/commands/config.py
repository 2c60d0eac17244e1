"""Configuration management commands."""

from pathlib import Path
from typing import Annotated

import click
import typer

from podcastd.cli.console import (
    console,
    create_table,
    error,
    load_config_or_exit,
    run_with_store,
    success,
)


def register(app: typer.Typer) -> None:
    """Register the config command."""

    @app.command()
    def config(
        action: Annotated[
            str | None,
            typer.Argument(help="Action: show, validate, set-downloader"),
        ] = None,
        value: Annotated[
            str | None,
            typer.Argument(help="New downloader schedule as JSON (for set-downloader)"),
        ] = None,
        path: Annotated[
            Path | None,
            typer.Option(
                "--path",
                "-p",
                help="Path to config file (default: $PODCASTD_HOME/config.toml)",
            ),
        ] = None,
    ) -> None:
        """Manage daemon configuration and stored server settings.

        Examples:
            podcastd config show
            podcastd config validate --path ./config.toml
            podcastd config set-downloader '{"base": {"Minutes": 10}}'
        """
        if action is None:
            ctx = click.get_current_context()
            click.echo(ctx.get_help())
            raise typer.Exit(0)

        from podcastd.config import find_config_path

        if action == "validate":
            expanded_path = path.expanduser() if path else find_config_path()
            if expanded_path is None or not expanded_path.exists():
                error(f"Config file not found: {expanded_path or path}")
                raise typer.Exit(1)
            load_config_or_exit(expanded_path)
            success(f"Config is valid: {expanded_path}")

        elif action == "show":
            config_obj = load_config_or_exit(path)
            _config_show(config_obj, path or find_config_path())

        elif action == "set-downloader":
            if value is None:
                error("A schedule is required for set-downloader")
                raise typer.Exit(1)
            config_obj = load_config_or_exit(path)
            _set_downloader(config_obj, value)

        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: show, validate, set-downloader")
            raise typer.Exit(1)


def _config_show(config_obj, source: Path | None) -> None:
    from podcastd.errors import PodcastdError
    from podcastd.podcasts import get_server_settings

    try:
        settings = run_with_store(config_obj, get_server_settings)
    except PodcastdError as e:
        error(f"Stored server settings are invalid: {e}")
        raise typer.Exit(1) from None

    table = create_table("Configuration", [("Setting", "cyan"), ("Value", "green")])
    table.add_row("Config file", str(source) if source else "[dim]defaults[/dim]")
    table.add_row("Database", str(config_obj.store.database_path))
    table.add_row("Store poll interval", f"{config_obj.store.poll_interval}s")
    table.add_row("Timezone", config_obj.scheduler.timezone)
    table.add_row("Tick interval", f"{config_obj.scheduler.tick_interval}s")
    table.add_row("Downloader schedule", str(settings.downloader_schedule))
    table.add_row("Media directory", settings.media_directory)
    table.add_row("Serve feed and media", "yes" if settings.serve_feed_and_media else "no")
    console.print(table)


def _set_downloader(config_obj, value: str) -> None:
    from podcastd.errors import PodcastdError
    from podcastd.podcasts import get_server_settings, save_server_settings
    from podcastd.scheduling import ScheduleExpression

    async def update(store):
        settings = await get_server_settings(store)
        settings.downloader_schedule = ScheduleExpression.from_json(value)
        await save_server_settings(store, settings)
        return settings

    try:
        settings = run_with_store(config_obj, update)
    except PodcastdError as e:
        error(str(e))
        raise typer.Exit(1) from None
    success(f"Downloader schedule set to {settings.downloader_schedule}")
