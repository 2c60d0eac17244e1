"""Tests for configuration loading and models."""

from datetime import UTC, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from podcastd.config import (
    ConfigError,
    PodcastdConfig,
    SchedulerConfig,
    get_config_path,
    get_database_path,
    get_default_config,
    get_podcastd_home,
    load_config,
    resolve_timezone,
)


class TestPaths:
    """Tests for PODCASTD_HOME path resolution."""

    def test_home_from_env(self, podcastd_home):
        assert get_podcastd_home() == podcastd_home.resolve()

    def test_derived_paths(self, podcastd_home):
        home = podcastd_home.resolve()
        assert get_config_path() == home / "config.toml"
        assert get_database_path() == home / "data" / "podcastd.db"


class TestResolveTimezone:
    """Tests for resolve_timezone."""

    @pytest.mark.parametrize("value", ["UTC", "utc", "Z"])
    def test_utc(self, value):
        assert resolve_timezone(value) is UTC

    def test_iana_name(self):
        assert resolve_timezone("Europe/Paris") == ZoneInfo("Europe/Paris")

    @pytest.mark.parametrize(
        ("value", "offset"),
        [
            ("+02:00", timedelta(hours=2)),
            ("-0530", timedelta(hours=-5, minutes=-30)),
            ("UTC+01:00", timedelta(hours=1)),
        ],
    )
    def test_fixed_offsets(self, value, offset):
        assert resolve_timezone(value).utcoffset(None) == offset

    @pytest.mark.parametrize("value", ["Mars/Olympus", "+25:00"])
    def test_unknown(self, value):
        with pytest.raises(ConfigError):
            resolve_timezone(value)


class TestSchedulerConfig:
    """Tests for SchedulerConfig model."""

    def test_defaults(self):
        config = SchedulerConfig()
        assert config.tick_interval == 1.0
        assert config.timezone == "UTC"
        assert config.tzinfo is UTC

    def test_rejects_non_positive_tick(self):
        with pytest.raises(ValidationError):
            SchedulerConfig(tick_interval=0)

    def test_rejects_unknown_timezone(self):
        with pytest.raises(ValidationError):
            SchedulerConfig(timezone="Nowhere/Special")


class TestLoadConfig:
    """Tests for load_config."""

    def test_load_file(self, config_file, tmp_path):
        config = load_config(config_file)
        assert config.log_level == "DEBUG"
        assert config.scheduler.tick_interval == 0.5
        assert config.scheduler.tzinfo == ZoneInfo("Europe/Paris")
        assert config.store.database_path == tmp_path / "data" / "podcastd.db"

    def test_defaults_when_no_file(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        config = load_config()
        assert config == get_default_config()
        assert config.store.database_path == get_database_path()

    def test_finds_home_config(self, podcastd_home, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        podcastd_home.mkdir(parents=True)
        (podcastd_home / "config.toml").write_text('[scheduler]\ntimezone = "+02:00"\n')
        assert load_config().scheduler.timezone == "+02:00"

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("not valid toml [[[")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text('[scheduler]\ntimezone = "Nowhere/Special"\n')
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)

    def test_path_expands_user(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        (tmp_path / "podcastd.toml").write_text("log_level = \"WARNING\"\n")
        assert load_config(Path("~/podcastd.toml")).log_level == "WARNING"

    def test_model_accepts_empty(self):
        assert PodcastdConfig.model_validate({}).log_level is None
