"""Async SQLAlchemy engine for the entity store.

The daemon and the CLI open the same SQLite file, so connections use WAL
journaling and a busy timeout instead of failing on a held write lock.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from podcastd.store.models import Base

SQLITE_BUSY_TIMEOUT_MS = 5000


def sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


def _configure_sqlite(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
    cursor.close()


class Database:
    """Owns the engine and session factory for one store file.

    Example:
        db = Database(database_path=get_database_path())
        await db.connect()
        await db.create_tables()
        async with db.session() as session:
            ...
        await db.disconnect()
    """

    def __init__(
        self, database_url: str | None = None, database_path: Path | None = None
    ):
        if database_url is None and database_path is None:
            raise ValueError("Either database_url or database_path must be provided")
        self._path = database_path
        self._url = database_url or sqlite_url(database_path)
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self._engine

    async def connect(self) -> None:
        """Create the engine. The parent directory is created if missing."""
        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        self._engine = create_async_engine(self._url)
        if self._url.startswith("sqlite"):
            event.listen(self._engine.sync_engine, "connect", _configure_sqlite)
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)

    async def create_tables(self) -> None:
        """Create the entities table if it does not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and rolls back on error."""
        if self._sessions is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
