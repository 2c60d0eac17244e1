"""Tests for CLI commands."""

import asyncio
import logging

import pytest

from podcastd.cli.app import app
from podcastd.config import load_config
from podcastd.runtime import open_store

SECOND_COUNT_3 = '{"base": {"Seconds": 1}, "adjustments": [{"Count": 3}]}'


def store_insert(config_file, key: str, value: bytes) -> None:
    async def insert():
        store = await open_store(load_config(config_file))
        try:
            await store.insert(key, value)
        finally:
            await store.close()

    asyncio.run(insert())


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestPreviewCommand:
    """Tests for 'podcastd preview' command."""

    def test_lists_fire_times(self, cli_runner):
        result = cli_runner.invoke(
            app,
            ["preview", SECOND_COUNT_3, "-n", "10", "--from", "2024-01-01T00:00:00+00:00"],
        )
        assert result.exit_code == 0
        assert "2024-01-01T00:00:01+00:00" in result.stdout
        assert "2024-01-01T00:00:03+00:00" in result.stdout
        assert "2024-01-01T00:00:04+00:00" not in result.stdout
        assert "Stops after 3 firing(s)" in result.stdout

    def test_naive_start_uses_timezone(self, cli_runner):
        result = cli_runner.invoke(
            app,
            [
                "preview",
                '{"base": {"Days": 1}, "adjustments": [{"At": "08:00:00"}]}',
                "-n",
                "1",
                "--from",
                "2024-06-01T07:00:00",
                "--timezone",
                "Europe/Paris",
            ],
        )
        assert result.exit_code == 0
        assert "2024-06-01T08:00:00+02:00" in result.stdout

    def test_invalid_expression(self, cli_runner):
        result = cli_runner.invoke(app, ["preview", '{"base": "Often"}'])
        assert result.exit_code == 1
        assert "Invalid schedule" in result.stdout

    def test_uncompilable_expression(self, cli_runner):
        result = cli_runner.invoke(
            app, ["preview", '{"base": {"Seconds": 1}, "adjustments": [{"Count": 0}]}']
        )
        assert result.exit_code == 1
        assert "Count must be at least 1" in result.stdout

    def test_unknown_timezone(self, cli_runner):
        result = cli_runner.invoke(
            app, ["preview", SECOND_COUNT_3, "--timezone", "Mars/Olympus"]
        )
        assert result.exit_code == 1
        assert "Unknown timezone" in result.stdout

    def test_invalid_start(self, cli_runner):
        result = cli_runner.invoke(app, ["preview", SECOND_COUNT_3, "--from", "soon"])
        assert result.exit_code == 1
        assert "Invalid start time" in result.stdout


class TestPodcastCommand:
    """Tests for 'podcastd podcast' command."""

    def invoke(self, cli_runner, config_file, *args):
        return cli_runner.invoke(app, ["podcast", *args, "--config", str(config_file)])

    def test_add_list_show_remove(self, cli_runner, config_file):
        result = self.invoke(
            cli_runner,
            config_file,
            "add",
            "tech",
            "--channel",
            "UC123",
            "--schedule",
            '{"base": {"Hours": 1}}',
            "--sponsorblock",
            "sponsor",
            "--sponsorblock",
            "bogus",
        )
        assert result.exit_code == 0
        assert "Saved podcast tech" in result.stdout

        result = self.invoke(cli_runner, config_file, "list")
        assert result.exit_code == 0
        assert "tech" in result.stdout
        assert "Hours(1)" in result.stdout
        assert "Total: 1 podcast(s)" in result.stdout

        result = self.invoke(cli_runner, config_file, "show", "tech")
        assert result.exit_code == 0
        assert "channel_id=UC123" in result.stdout
        assert "SponsorBlock: sponsor" in result.stdout
        assert "bogus" not in result.stdout

        result = self.invoke(cli_runner, config_file, "remove", "tech")
        assert result.exit_code == 0
        assert "Removed podcast tech" in result.stdout

        result = self.invoke(cli_runner, config_file, "list")
        assert "No podcasts stored" in result.stdout

    def test_add_without_schedule(self, cli_runner, config_file):
        result = self.invoke(cli_runner, config_file, "add", "quiet", "--channel", "UC1")
        assert result.exit_code == 0
        assert "No update schedule" in result.stdout

    def test_add_requires_channel(self, cli_runner, config_file):
        result = self.invoke(cli_runner, config_file, "add", "tech")
        assert result.exit_code == 1
        assert "--channel is required" in result.stdout

    def test_add_rejects_bad_schedule(self, cli_runner, config_file):
        result = self.invoke(
            cli_runner,
            config_file,
            "add",
            "tech",
            "--channel",
            "UC1",
            "--schedule",
            '{"base": {"Hours": 1}, "adjustments": [{"Count": 0}]}',
        )
        assert result.exit_code == 1
        assert "Count must be at least 1" in result.stdout

    def test_name_required(self, cli_runner, config_file):
        result = self.invoke(cli_runner, config_file, "remove")
        assert result.exit_code == 1
        assert "name is required" in result.stdout

    def test_remove_missing(self, cli_runner, config_file):
        result = self.invoke(cli_runner, config_file, "remove", "ghost")
        assert result.exit_code == 1
        assert "Podcast not found: ghost" in result.stdout

    def test_process(self, cli_runner, config_file):
        self.invoke(cli_runner, config_file, "add", "tech", "--channel", "UC1")
        result = self.invoke(cli_runner, config_file, "process", "tech")
        assert result.exit_code == 0
        assert "Processed podcast tech" in result.stdout

    def test_process_missing(self, cli_runner, config_file):
        result = self.invoke(cli_runner, config_file, "process", "ghost")
        assert result.exit_code == 1
        assert "Podcast not found: ghost" in result.stdout

    def test_unknown_action(self, cli_runner):
        result = cli_runner.invoke(app, ["podcast", "rename", "tech"])
        assert result.exit_code == 1
        assert "Unknown action" in result.stdout

    def test_no_action_shows_help(self, cli_runner):
        result = cli_runner.invoke(app, ["podcast"])
        assert result.exit_code == 0
        assert "Manage stored podcasts" in result.stdout


class TestConfigCommand:
    """Tests for 'podcastd config' command."""

    def test_show(self, cli_runner, config_file):
        result = cli_runner.invoke(app, ["config", "show", "--path", str(config_file)])
        assert result.exit_code == 0
        assert "Europe/Paris" in result.stdout
        assert "Minutes(5)" in result.stdout

    def test_show_missing_file(self, cli_runner, tmp_path):
        result = cli_runner.invoke(
            app, ["config", "show", "--path", str(tmp_path / "missing.toml")]
        )
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_set_downloader(self, cli_runner, config_file):
        result = cli_runner.invoke(
            app,
            [
                "config",
                "set-downloader",
                '{"base": {"Hours": 1}}',
                "--path",
                str(config_file),
            ],
        )
        assert result.exit_code == 0
        assert "Downloader schedule set to every Hours(1)" in result.stdout

        result = cli_runner.invoke(app, ["config", "show", "--path", str(config_file)])
        assert "Hours(1)" in result.stdout

    def test_set_downloader_rejects_invalid(self, cli_runner, config_file):
        result = cli_runner.invoke(
            app,
            ["config", "set-downloader", '{"base": "Often"}', "--path", str(config_file)],
        )
        assert result.exit_code == 1

    def test_show_corrupt_settings(self, cli_runner, config_file):
        store_insert(config_file, "config", b"{broken")
        result = cli_runner.invoke(app, ["config", "show", "--path", str(config_file)])
        assert result.exit_code == 1
        assert "Stored server settings are invalid" in result.stdout

    def test_validate_success(self, cli_runner, config_file):
        result = cli_runner.invoke(
            app, ["config", "validate", "--path", str(config_file)]
        )
        assert result.exit_code == 0
        assert "valid" in result.stdout.lower()

    def test_validate_invalid_toml(self, cli_runner, tmp_path):
        invalid_file = tmp_path / "invalid.toml"
        invalid_file.write_text("not valid toml [[[")

        result = cli_runner.invoke(
            app, ["config", "validate", "--path", str(invalid_file)]
        )
        assert result.exit_code == 1

    def test_unknown_action(self, cli_runner):
        result = cli_runner.invoke(app, ["config", "unknown"])
        assert result.exit_code == 1
        assert "Unknown action" in result.stdout


class TestServeCommand:
    """Tests for 'podcastd serve' command."""

    def test_missing_config(self, cli_runner, tmp_path):
        result = cli_runner.invoke(
            app, ["serve", "--config", str(tmp_path / "missing.toml")]
        )
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_bad_stored_schedule_is_fatal(self, cli_runner, config_file, restore_logging):
        store_insert(config_file, "config", b'{"downloader_schedule": {"base": "Often"}}')
        result = cli_runner.invoke(
            app, ["serve", "--config", str(config_file), "--no-log-file"]
        )
        assert result.exit_code == 1
        assert "Failed to start scheduler" in result.stdout
