"""CLI command modules."""

from podcastd.cli.commands import config, podcast, preview, serve

__all__ = [
    "config",
    "podcast",
    "preview",
    "serve",
]
