"""Change watcher - rebuilds a worker whenever its entities change.

Reconciliation is coarse: every notification, whatever the key or kind of
change, triggers one full ``Worker.schedule()``. There is no batching and no
diffing; the rebuilt schedule always reflects a complete read of the store.
"""

import asyncio
import contextlib
import logging

from podcastd.errors import SchedulingError
from podcastd.scheduling.worker import Worker
from podcastd.store.entities import ChangeEvent, EntityReader, Subscription

logger = logging.getLogger(__name__)


class ChangeWatcher:
    """Consumes store notifications for a prefix and rebuilds a worker.

    Example:
        watcher = ChangeWatcher(store, "podcasts/", podcast_worker)
        await watcher.start()
        ...
        await watcher.stop()
    """

    def __init__(self, store: EntityReader, prefix: str, worker: Worker):
        self._store = store
        self._prefix = prefix
        self._worker = worker
        self._subscription: Subscription | None = None
        self._task: asyncio.Task | None = None
        self._rebuilds = 0
        self._failures = 0

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def worker(self) -> Worker:
        return self._worker

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def rebuilds(self) -> int:
        return self._rebuilds

    @property
    def failures(self) -> int:
        return self._failures

    async def start(self) -> None:
        if self.running:
            return
        # Subscribe before spawning so no write after start() is missed.
        self._subscription = self._store.watch(self._prefix)
        self._task = asyncio.create_task(
            self._consume(self._subscription),
            name=f"watcher-{self._worker.name}",
        )
        logger.info(
            "change_watcher_started",
            extra={"watch.prefix": self._prefix, "worker.name": self._worker.name},
        )

    async def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _consume(self, subscription: Subscription) -> None:
        async for event in subscription:
            await self.reconcile(event)

    async def reconcile(self, event: ChangeEvent) -> None:
        """Rebuild the worker once for ``event``.

        A failed rebuild leaves the worker stopped until the next
        notification succeeds.
        """
        self._rebuilds += 1
        try:
            await self._worker.schedule()
        except SchedulingError as e:
            self._failures += 1
            logger.error(
                "worker_rebuild_failed",
                extra={
                    "worker.name": self._worker.name,
                    "store.key": event.key,
                    "store.change": event.kind,
                    "error.message": str(e),
                },
            )
            return
        except Exception:
            self._failures += 1
            logger.exception(
                "worker_rebuild_crashed",
                extra={"worker.name": self._worker.name, "store.key": event.key},
            )
            return
        logger.info(
            "worker_rebuilt",
            extra={
                "worker.name": self._worker.name,
                "store.key": event.key,
                "store.change": event.kind,
            },
        )
