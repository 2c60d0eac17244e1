"""Shared test fixtures and factories."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from podcastd.config.models import PodcastdConfig, SchedulerConfig, StoreConfig
from podcastd.config.paths import get_podcastd_home
from podcastd.scheduling import CancelScope, SchedulingContext
from podcastd.store import Database, EntityStore

# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def podcastd_home(tmp_path: Path, monkeypatch) -> Path:
    """Point PODCASTD_HOME at a temp directory for every test."""
    home = tmp_path / "home"
    monkeypatch.setenv("PODCASTD_HOME", str(home))
    monkeypatch.delenv("PODCASTD_LOG_LEVEL", raising=False)
    get_podcastd_home.cache_clear()
    yield home
    get_podcastd_home.cache_clear()


# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Manually advanced clock for schedulers and workers."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 7, 58, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, moment: datetime) -> datetime:
        self.now = moment
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def daemon_config(tmp_path: Path) -> PodcastdConfig:
    """Configuration with a temp database and a fast tick."""
    return PodcastdConfig(
        scheduler=SchedulerConfig(tick_interval=0.01),
        store=StoreConfig(
            database_path=tmp_path / "data" / "test.db", poll_interval=0.01
        ),
    )


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(f"""
log_level = "DEBUG"

[scheduler]
tick_interval = 0.5
timezone = "Europe/Paris"

[store]
database_path = "{tmp_path / "data" / "podcastd.db"}"
""")
    return config_path


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """Create a temporary test database."""
    db = Database(database_path=tmp_path / "test.db")
    await db.connect()
    await db.create_tables()

    yield db

    await db.disconnect()


@pytest.fixture
async def store(database: Database) -> AsyncGenerator[EntityStore, None]:
    entity_store = EntityStore(database)
    yield entity_store
    await entity_store.close()


@pytest.fixture
def root_scope() -> CancelScope:
    scope = CancelScope(name="root")
    yield scope
    scope.cancel()


# =============================================================================
# Builders
# =============================================================================


class RecordingBuilder:
    """Builder that records each build and can be told to fail."""

    def __init__(self, register=None):
        self.calls = 0
        self.error: Exception | None = None
        self.register = register

    async def __call__(self, ctx: SchedulingContext) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.register is not None:
            self.register(ctx)


@pytest.fixture
def builder() -> RecordingBuilder:
    return RecordingBuilder()


# =============================================================================
# CLI Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})
