"""Daemon runtime: store, root cancellation scope, workers and watchers."""

from __future__ import annotations

import asyncio
import logging
import signal as signal_module

from podcastd.config.models import PodcastdConfig
from podcastd.jobs import (
    DOWNLOADER_WORKER,
    PODCAST_WORKER,
    WATCHED_PREFIXES,
    build_downloader_jobs,
    build_podcast_jobs,
)
from podcastd.scheduling import Builder, CancelScope, ChangeWatcher, Worker
from podcastd.store import Database, EntityStore

logger = logging.getLogger(__name__)

BUILDERS: dict[str, Builder] = {
    DOWNLOADER_WORKER: build_downloader_jobs,
    PODCAST_WORKER: build_podcast_jobs,
}


async def open_store(config: PodcastdConfig) -> EntityStore:
    db = Database(database_path=config.store.database_path)
    await db.connect()
    await db.create_tables()
    store = EntityStore(db, poll_interval=config.store.poll_interval)
    await store.poll_changes()
    return store


class Runtime:
    """Owns everything that lives for the whole process.

    The root scope is created here and cancelled exactly once, by
    ``shutdown()``; every worker's tick loop descends from it.

    Example:
        runtime = Runtime(config)
        await runtime.start()   # raises if any first schedule fails
        await runtime.run_until_stopped()
    """

    def __init__(
        self,
        config: PodcastdConfig,
        *,
        store: EntityStore | None = None,
        builders: dict[str, Builder] | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._owns_store = store is None
        self._builders = builders or BUILDERS
        self._root_scope = CancelScope(name="root")
        self._workers: dict[str, Worker] = {}
        self._watchers: list[ChangeWatcher] = []
        self._stopped = asyncio.Event()

    @property
    def root_scope(self) -> CancelScope:
        return self._root_scope

    @property
    def store(self) -> EntityStore:
        if self._store is None:
            raise RuntimeError("Runtime not started. Call start() first.")
        return self._store

    @property
    def workers(self) -> dict[str, Worker]:
        return dict(self._workers)

    @property
    def watchers(self) -> list[ChangeWatcher]:
        return list(self._watchers)

    async def start(self) -> None:
        """Build every worker and start watching for changes.

        A worker whose first schedule fails aborts startup: the daemon does
        not run with a missing job family.

        Raises:
            SchedulingError: A worker's first build failed.
        """
        if self._store is None:
            self._store = await open_store(self._config)

        scheduler_config = self._config.scheduler
        for name, builder in self._builders.items():
            self._workers[name] = Worker(
                name,
                builder,
                self._store,
                self._root_scope,
                scheduler_config.tzinfo,
                tick_interval=scheduler_config.tick_interval,
            )

        try:
            for worker in self._workers.values():
                await worker.schedule()
            for name, worker in self._workers.items():
                prefix = WATCHED_PREFIXES.get(name)
                if prefix is None:
                    continue
                watcher = ChangeWatcher(self._store, prefix, worker)
                await watcher.start()
                self._watchers.append(watcher)
        except Exception:
            logger.error("runtime_start_failed")
            await self.shutdown()
            raise

        logger.info(
            "runtime_started",
            extra={
                "runtime.workers": ",".join(self._workers),
                "scheduler.timezone": scheduler_config.timezone,
                "scheduler.tick_interval": scheduler_config.tick_interval,
            },
        )

    def request_stop(self) -> None:
        self._stopped.set()

    async def run_until_stopped(self) -> None:
        """Wait for SIGINT/SIGTERM (or ``request_stop()``), then shut down."""
        loop = asyncio.get_running_loop()
        signal_count = 0

        def handle_signal() -> None:
            nonlocal signal_count
            signal_count += 1
            if signal_count == 1:
                logger.info("runtime_shutting_down")
                self.request_stop()
            else:
                logger.warning("runtime_force_shutdown")
                import os

                os._exit(1)

        for sig in (signal_module.SIGTERM, signal_module.SIGINT):
            loop.add_signal_handler(sig, handle_signal)
        try:
            await self._stopped.wait()
        finally:
            for sig in (signal_module.SIGTERM, signal_module.SIGINT):
                loop.remove_signal_handler(sig)
            await self.shutdown()

    async def shutdown(self) -> None:
        """Cancel every tick loop, stop watchers, close the store."""
        self._root_scope.cancel()
        tick_loops = [w.task for w in self._workers.values() if w.task is not None]
        await asyncio.gather(*tick_loops, return_exceptions=True)
        for watcher in self._watchers:
            await watcher.stop()
        self._watchers.clear()
        if self._store is not None and self._owns_store:
            await self._store.close()
            self._store = None
        self._stopped.set()
        logger.info("runtime_stopped")
