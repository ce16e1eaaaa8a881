"""
Periodic TTL sweep for the translation cache.
"""

import asyncio
from typing import Optional

from shared.logging import get_logger
from .cache_store import CacheStore


class ExpirySweeper:
    """Runs ``CacheStore.sweep_expired`` on a fixed interval in one background task."""

    def __init__(self, store: CacheStore, interval_seconds: float = 60.0):
        self.store = store
        self.interval_seconds = interval_seconds
        self.logger = get_logger("content.sweeper")
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep loop; a second call while running is a no-op."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        self.logger.info("Cache sweeper started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self.logger.info("Cache sweeper stopped")

    def sweep_once(self) -> int:
        evicted = self.store.sweep_expired()
        if evicted:
            self.logger.info("Expired translation cache entries removed", evicted=evicted, remaining=len(self.store))
        return evicted

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.sweep_once()
            except Exception as exc:
                self.logger.error("Cache sweep failed", error=str(exc))
