"""Entity store - keyed byte records with change notifications.

Readers (schedule builders) only need ``get``, ``scan_all`` and ``watch``;
writes come from the management surface (CLI, podcast services). Writes made
through this store are published to matching subscribers right away. Commits
from other connections to the same file (a CLI process editing the daemon's
store) are found by polling the ``updated_at`` stamps of every record and
diffing them against the last snapshot, so removals show up too.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from podcastd.errors import StoreError
from podcastd.store.engine import Database
from podcastd.store.models import Entity, utc_now

logger = logging.getLogger(__name__)


class ChangeKind(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    REMOVE = "remove"


@dataclass(frozen=True)
class ChangeEvent:
    """Something under a watched prefix changed."""

    key: str
    kind: ChangeKind


class Subscription:
    """Live stream of change events for one prefix.

    Iterating yields events until the subscription (or its store) is
    closed. A closed subscription cannot be restarted; call ``watch``
    again for a new one.
    """

    def __init__(self, prefix: str, store: EntityStore) -> None:
        self._prefix = prefix
        self._store = store
        self._queue: asyncio.Queue[ChangeEvent | None] = asyncio.Queue()
        self._closed = False

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def closed(self) -> bool:
        return self._closed

    def matches(self, key: str) -> bool:
        return key.startswith(self._prefix)

    def publish(self, event: ChangeEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)
        self._store._unsubscribe(self)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> ChangeEvent:
        event = await self._queue.get()
        if event is None:
            raise StopAsyncIteration
        return event

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class EntityReader(Protocol):
    """Read contract consumed by schedule builders."""

    async def get(self, key: str) -> bytes | None: ...

    async def scan_all(self, prefix: str = "") -> list[tuple[str, bytes]]: ...

    def watch(self, prefix: str = "") -> Subscription: ...


class EntityStore:
    """SQLite-backed entity store.

    Example:
        db = Database(database_path=get_database_path())
        await db.connect()
        await db.create_tables()
        store = EntityStore(db)
        await store.poll_changes()  # baseline for changes from other processes

        async with store.watch("podcasts/") as events:
            async for event in events:
                ...
    """

    def __init__(self, database: Database, *, poll_interval: float = 1.0) -> None:
        self._db = database
        self._poll_interval = poll_interval
        self._subscriptions: list[Subscription] = []
        # key -> updated_at as last seen; None until the first poll.
        self._snapshot: dict[str, datetime] | None = None
        self._snapshot_lock = asyncio.Lock()
        self._poll_task: asyncio.Task | None = None

    @property
    def database(self) -> Database:
        return self._db

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def get(self, key: str) -> bytes | None:
        try:
            async with self._db.session() as session:
                entity = await session.get(Entity, key)
                return entity.value if entity else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read {key!r}: {e}") from e

    async def scan_all(self, prefix: str = "") -> list[tuple[str, bytes]]:
        """All records whose key starts with ``prefix``, ordered by key."""
        stmt = select(Entity).order_by(Entity.key)
        if prefix:
            stmt = stmt.where(Entity.key.startswith(prefix, autoescape=True))
        try:
            async with self._db.session() as session:
                result = await session.execute(stmt)
                return [(entity.key, entity.value) for entity in result.scalars()]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to scan {prefix!r}: {e}") from e

    async def insert(self, key: str, value: bytes) -> ChangeEvent:
        """Insert or overwrite a record."""
        stamp = utc_now()
        async with self._snapshot_lock:
            try:
                async with self._db.session() as session:
                    entity = await session.get(Entity, key)
                    if entity is None:
                        session.add(Entity(key=key, value=value, updated_at=stamp))
                        kind = ChangeKind.INSERT
                    else:
                        entity.value = value
                        entity.updated_at = stamp
                        kind = ChangeKind.UPDATE
            except SQLAlchemyError as e:
                raise StoreError(f"Failed to write {key!r}: {e}") from e
            if self._snapshot is not None:
                self._snapshot[key] = _as_stored(stamp)
        event = ChangeEvent(key, kind)
        self._publish(event)
        return event

    async def remove(self, key: str) -> bool:
        """Delete a record. Returns whether it existed."""
        async with self._snapshot_lock:
            try:
                async with self._db.session() as session:
                    entity = await session.get(Entity, key)
                    if entity is None:
                        return False
                    await session.delete(entity)
            except SQLAlchemyError as e:
                raise StoreError(f"Failed to remove {key!r}: {e}") from e
            if self._snapshot is not None:
                self._snapshot.pop(key, None)
        self._publish(ChangeEvent(key, ChangeKind.REMOVE))
        return True

    def watch(self, prefix: str = "") -> Subscription:
        """Subscribe to changes under ``prefix``.

        The subscription is registered before this returns, so writes made
        afterwards through this store are never missed. The first
        subscription also starts polling for commits made through other
        connections; those are seen from the last ``poll_changes()``
        baseline on.
        """
        subscription = Subscription(prefix, self)
        self._subscriptions.append(subscription)
        if not self.polling:
            self._poll_task = asyncio.create_task(
                self._poll_loop(), name="entity-store-poll"
            )
        return subscription

    async def poll_changes(self) -> list[ChangeEvent]:
        """Publish records changed by other connections since the last poll.

        The first call only records a baseline and reports nothing.

        Raises:
            StoreError: If the table cannot be read.
        """
        stmt = select(Entity.key, Entity.updated_at)
        async with self._snapshot_lock:
            try:
                async with self._db.session() as session:
                    result = await session.execute(stmt)
                    current = {key: _as_stored(stamp) for key, stamp in result.all()}
            except SQLAlchemyError as e:
                raise StoreError(f"Failed to poll for changes: {e}") from e

            previous, self._snapshot = self._snapshot, current
            if previous is None:
                return []

        events = []
        for key in sorted(current.keys() | previous.keys()):
            if key not in previous:
                events.append(ChangeEvent(key, ChangeKind.INSERT))
            elif key not in current:
                events.append(ChangeEvent(key, ChangeKind.REMOVE))
            elif current[key] != previous[key]:
                events.append(ChangeEvent(key, ChangeKind.UPDATE))
        for event in events:
            self._publish(event)
        return events

    async def close(self) -> None:
        """Stop polling, end all subscriptions and release the database."""
        if self._poll_task is not None:
            self._poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._poll_task
            self._poll_task = None
        for subscription in list(self._subscriptions):
            subscription.close()
        await self._db.disconnect()

    async def _poll_loop(self) -> None:
        while True:
            try:
                await self.poll_changes()
            except StoreError as e:
                logger.warning("store_poll_failed", extra={"error.message": str(e)})
            await asyncio.sleep(self._poll_interval)

    def _publish(self, event: ChangeEvent) -> None:
        logger.debug(
            "entity_changed", extra={"store.key": event.key, "store.change": event.kind}
        )
        for subscription in list(self._subscriptions):
            if subscription.matches(event.key):
                subscription.publish(event)

    def _unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)


def _as_stored(stamp: datetime) -> datetime:
    # SQLite DATETIME columns come back naive.
    return stamp.replace(tzinfo=None)
