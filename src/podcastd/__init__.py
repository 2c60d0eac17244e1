"""podcastd - podcast feed keeper with a hot-reloadable job scheduler."""

__version__ = "0.1.0"
