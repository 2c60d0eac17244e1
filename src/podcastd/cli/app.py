"""Main CLI application."""

import typer

from podcastd.cli.commands import config, podcast, preview, serve

app = typer.Typer(
    name="podcastd",
    help="podcastd - podcast feed keeper",
    no_args_is_help=True,
)

serve.register(app)
preview.register(app)
podcast.register(app)
config.register(app)


if __name__ == "__main__":
    app()
