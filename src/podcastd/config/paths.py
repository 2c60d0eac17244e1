"""Centralized path management for podcastd.

All state (config, database, logs) lives under a single base directory,
overridable with the PODCASTD_HOME environment variable.

Default location: ~/.podcastd
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "PODCASTD_HOME"


@lru_cache(maxsize=1)
def get_podcastd_home() -> Path:
    """Get the base directory for all podcastd data.

    Resolution order:
    1. PODCASTD_HOME environment variable (if set)
    2. ~/.podcastd
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".podcastd"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_podcastd_home() / "config.toml"


def get_database_path() -> Path:
    """Get the entity store database path."""
    return get_podcastd_home() / "data" / "podcastd.db"


def get_logs_path() -> Path:
    """Get the default logs directory path."""
    return get_podcastd_home() / "logs"
