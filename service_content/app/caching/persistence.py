"""
Best-effort persistence of the translation cache across process restarts.

The cache is serialized as one JSON document into a single key-value slot
(``translation-cache`` by default). Persistence is advisory: a missing or
corrupt snapshot means starting cold, and a failed write only costs the next
start its warm cache.
"""

import asyncio
import os
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import redis.asyncio as redis
from pydantic import BaseModel, Field

from shared.errors import PersistenceError
from shared.logging import get_logger
from .cache_store import CacheEntry, CacheStore


SNAPSHOT_VERSION = 2
DEFAULT_SLOT_KEY = "translation-cache"


class SnapshotEntry(BaseModel):
    """Serialized form of a CacheEntry."""
    namespace: str
    language: str
    data: Dict[str, Any]
    timestamp: float
    last_access: float
    hits: int = Field(default=1, ge=0)


class CacheSnapshot(BaseModel):
    """Persisted cache contents."""
    version: int = SNAPSHOT_VERSION
    saved_at: float
    entries: List[SnapshotEntry] = Field(default_factory=list)

    @classmethod
    def from_entries(cls, entries: List[CacheEntry], saved_at: Optional[float] = None) -> "CacheSnapshot":
        return cls(
            saved_at=time.time() if saved_at is None else saved_at,
            entries=[
                SnapshotEntry(
                    namespace=entry.namespace,
                    language=entry.language,
                    data=entry.data,
                    timestamp=entry.timestamp,
                    last_access=entry.last_access,
                    hits=entry.hits,
                )
                for entry in entries
            ],
        )

    def to_entries(self) -> List[CacheEntry]:
        return [
            CacheEntry(
                namespace=item.namespace,
                language=item.language,
                data=item.data,
                timestamp=item.timestamp,
                last_access=item.last_access,
                hits=item.hits,
            )
            for item in self.entries
        ]


class SnapshotSlot(ABC):
    """A single durable key-value slot holding the serialized snapshot."""

    key: str

    @abstractmethod
    async def read(self) -> Optional[str]:
        """Return the stored payload, or None when the slot is empty."""

    @abstractmethod
    async def write(self, payload: str) -> None:
        """Replace the stored payload."""

    @abstractmethod
    async def delete(self) -> None:
        """Empty the slot."""

    async def close(self) -> None:
        return None

    def describe(self) -> str:
        return f"{type(self).__name__}({self.key})"


class FileSnapshotSlot(SnapshotSlot):
    """Stores the snapshot as ``<directory>/<key>.json``."""

    def __init__(self, directory: Union[str, Path], key: str = DEFAULT_SLOT_KEY):
        self.directory = Path(directory)
        self.key = key

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}.json"

    async def read(self) -> Optional[str]:
        return await asyncio.to_thread(self._read)

    async def write(self, payload: str) -> None:
        await asyncio.to_thread(self._write, payload)

    async def delete(self) -> None:
        await asyncio.to_thread(self._delete)

    def _read(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError("Failed to read cache snapshot", {"path": str(self.path), "error": str(exc)}) from exc

    def _write(self, payload: str) -> None:
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise PersistenceError("Failed to write cache snapshot", {"path": str(self.path), "error": str(exc)}) from exc

    def _delete(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise PersistenceError("Failed to delete cache snapshot", {"path": str(self.path), "error": str(exc)}) from exc


class RedisSnapshotSlot(SnapshotSlot):
    """Stores the snapshot under a single Redis key."""

    def __init__(self, redis_url: str, key: str = DEFAULT_SLOT_KEY, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.key = key
        self._redis = client

    async def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._redis

    async def read(self) -> Optional[str]:
        client = await self._get_redis()
        payload = await client.get(self.key)
        if isinstance(payload, bytes):
            return payload.decode("utf-8")
        return payload

    async def write(self, payload: str) -> None:
        client = await self._get_redis()
        await client.set(self.key, payload)

    async def delete(self) -> None:
        client = await self._get_redis()
        await client.delete(self.key)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


class PersistenceAdapter:
    """Loads the cache at startup and writes it back on a debounced schedule."""

    def __init__(self, store: CacheStore, slot: SnapshotSlot, debounce_seconds: float = 1.0):
        self.store = store
        self.slot = slot
        self.debounce_seconds = debounce_seconds
        self.logger = get_logger("content.persistence")

        self._write_lock = asyncio.Lock()
        self._pending: Optional[asyncio.Task] = None
        self._dirty = False
        self._last_change = 0.0
        self._attached = False

    def attach(self) -> None:
        """Start scheduling saves whenever the store changes."""
        if not self._attached:
            self.store.add_listener(self._on_store_change)
            self._attached = True

    async def load(self) -> Optional[CacheSnapshot]:
        """Read and validate the persisted snapshot; None on absence or any anomaly."""
        try:
            payload = await self.slot.read()
        except Exception as exc:
            self.logger.warning("Failed to read translation cache snapshot", slot=self.slot.describe(), error=str(exc))
            return None

        if not payload:
            return None

        try:
            snapshot = CacheSnapshot.model_validate_json(payload)
        except ValueError as exc:
            self.logger.warning("Discarding corrupt translation cache snapshot", slot=self.slot.describe(), error=str(exc))
            return None

        if snapshot.version != SNAPSHOT_VERSION:
            self.logger.warning(
                "Discarding translation cache snapshot with unknown version",
                slot=self.slot.describe(),
                version=snapshot.version,
            )
            return None

        return snapshot

    async def restore(self) -> int:
        """Load the snapshot into the store; returns the number of live entries restored."""
        snapshot = await self.load()
        if snapshot is None:
            return 0

        restored = self.store.restore(snapshot.to_entries())
        self.logger.info(
            "Restored translation cache",
            restored=restored,
            persisted=len(snapshot.entries),
            slot=self.slot.describe(),
        )
        return restored

    async def save(self, snapshot: Optional[CacheSnapshot] = None) -> bool:
        """Write the snapshot (or the current store) to the slot. Never raises."""
        async with self._write_lock:
            try:
                if snapshot is None:
                    snapshot = CacheSnapshot.from_entries(self.store.entries())

                if not snapshot.entries:
                    await self.slot.delete()
                else:
                    await self.slot.write(snapshot.model_dump_json())

                self.logger.debug("Saved translation cache", entries=len(snapshot.entries), slot=self.slot.describe())
                return True

            except Exception as exc:
                self.logger.warning("Failed to save translation cache", slot=self.slot.describe(), error=str(exc))
                return False

    def schedule_save(self) -> None:
        """Request a save after the debounce window; repeated calls coalesce."""
        self._dirty = True
        self._last_change = time.monotonic()

        if self._pending is not None and not self._pending.done():
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (synchronous caller); flush() picks the change up later
            return

        self._pending = loop.create_task(self._debounced_save())

    async def _debounced_save(self) -> None:
        while self._dirty:
            remaining = self._last_change + self.debounce_seconds - time.monotonic()
            if remaining > 0:
                await asyncio.sleep(remaining)
                continue
            self._dirty = False
            # A started write keeps the lock until it lands, even if flush()
            # cancels this task
            await asyncio.shield(self.save())

    async def flush(self) -> bool:
        """Cancel any pending debounced save and write immediately.

        A debounced write already in progress finishes first; the write made
        here is always the last one.
        """
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
            try:
                await self._pending
            except asyncio.CancelledError:
                pass
        self._pending = None
        self._dirty = False
        return await self.save()

    async def close(self) -> None:
        await self.flush()
        try:
            await self.slot.close()
        except Exception as exc:
            self.logger.warning("Failed to close snapshot slot", slot=self.slot.describe(), error=str(exc))

    def _on_store_change(self, event: str, count: int) -> None:
        if event == "restore":
            return
        self.schedule_save()


def create_snapshot_slot(backend: str, *, path: str, redis_url: str, key: str = DEFAULT_SLOT_KEY) -> Optional[SnapshotSlot]:
    """Build the configured slot backend; None disables persistence."""
    if backend == "file":
        return FileSnapshotSlot(path, key)
    if backend == "redis":
        return RedisSnapshotSlot(redis_url, key)
    return None
