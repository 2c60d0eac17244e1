"""Serve command: run the scheduler daemon."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer


def register(app: typer.Typer) -> None:
    """Register the serve command."""

    @app.command()
    def serve(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
        log_file: Annotated[
            bool,
            typer.Option(
                "--log-file/--no-log-file",
                help="Also write JSONL logs under $PODCASTD_HOME/logs",
            ),
        ] = True,
    ) -> None:
        """Start the podcastd scheduler daemon."""
        try:
            asyncio.run(_run_daemon(config, log_file))
        except KeyboardInterrupt:
            # Use print here since logging may not be configured yet
            print("\nDaemon stopped")


async def _run_daemon(config_path: Path | None, log_to_file: bool) -> None:
    from podcastd.cli.console import error, load_config_or_exit
    from podcastd.errors import SchedulingError
    from podcastd.logging import configure_logging
    from podcastd.runtime import Runtime

    config = load_config_or_exit(config_path)
    configure_logging(config.log_level, use_rich=True, log_to_file=log_to_file)

    runtime = Runtime(config)
    try:
        await runtime.start()
    except SchedulingError as e:
        error(f"Failed to start scheduler: {e}")
        raise typer.Exit(1) from None

    await runtime.run_until_stopped()
