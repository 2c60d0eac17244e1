"""Preview command: show when a schedule expression would fire."""

from datetime import datetime
from typing import Annotated

import typer

from podcastd.cli.console import console, create_table, error


def register(app: typer.Typer) -> None:
    """Register the preview command."""

    @app.command()
    def preview(
        expression: Annotated[
            str,
            typer.Argument(
                help='Schedule expression as JSON, e.g. \'{"base": {"Minutes": 5}}\''
            ),
        ],
        count: Annotated[
            int,
            typer.Option("--count", "-n", min=1, help="Number of firings to show"),
        ] = 5,
        start: Annotated[
            str | None,
            typer.Option(
                "--from",
                help="ISO start time (default: now)",
            ),
        ] = None,
        timezone: Annotated[
            str,
            typer.Option("--timezone", "-z", help="Timezone to evaluate in"),
        ] = "UTC",
    ) -> None:
        """Print the upcoming fire times of a schedule expression.

        Examples:
            podcastd preview '{"base": {"Minutes": 5}, "adjustments": [{"At": "08:00:00"}]}'
            podcastd preview '{"base": {"Seconds": 1}, "adjustments": [{"Count": 3}]}' -n 10
        """
        from podcastd.config import ConfigError, resolve_timezone
        from podcastd.errors import ConfigurationError
        from podcastd.scheduling import ScheduleExpression, upcoming_fire_times

        try:
            tz = resolve_timezone(timezone)
        except ConfigError as e:
            error(str(e))
            raise typer.Exit(1) from None

        if start is None:
            start_at = datetime.now(tz)
        else:
            try:
                start_at = datetime.fromisoformat(start)
            except ValueError:
                error(f"Invalid start time: {start}")
                raise typer.Exit(1) from None
            if start_at.tzinfo is None:
                start_at = start_at.replace(tzinfo=tz)

        try:
            parsed = ScheduleExpression.from_json(expression)
            fire_times = upcoming_fire_times(parsed, start_at, count, tz)
        except ConfigurationError as e:
            error(f"Invalid schedule: {e}")
            raise typer.Exit(1) from None

        table = create_table(str(parsed), [("#", "dim"), ("Fires at", "green")])
        for index, fire_time in enumerate(fire_times, start=1):
            table.add_row(str(index), fire_time.isoformat())
        console.print(table)
        if len(fire_times) < count:
            console.print(f"[dim]Stops after {len(fire_times)} firing(s)[/dim]")
