"""Configuration module."""

from podcastd.config.loader import find_config_path, get_default_config, load_config
from podcastd.config.models import (
    ConfigError,
    PodcastdConfig,
    SchedulerConfig,
    StoreConfig,
    resolve_timezone,
)
from podcastd.config.paths import (
    get_config_path,
    get_database_path,
    get_logs_path,
    get_podcastd_home,
)

__all__ = [
    "ConfigError",
    "PodcastdConfig",
    "SchedulerConfig",
    "StoreConfig",
    "find_config_path",
    "get_config_path",
    "get_database_path",
    "get_default_config",
    "get_logs_path",
    "get_podcastd_home",
    "load_config",
    "resolve_timezone",
]
