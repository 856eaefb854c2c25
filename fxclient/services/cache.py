"""Two-tier (memory + disk) response cache with TTL and request coalescing."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import json
import logging
import os
import re
import tempfile
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

CACHE_SUFFIX = ".cache"
_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._,-]")
MAX_KEY_STEM = 120

Fetcher = Callable[[], Awaitable[bytes]]


@dataclass(frozen=True)
class CacheEntry:
    """Raw response bytes plus the time they were written and their TTL."""

    data: bytes
    timestamp: float
    ttl: float

    def age(self, now: float | None = None) -> float:
        return (time.time() if now is None else now) - self.timestamp

    def is_expired(self, now: float | None = None) -> bool:
        # A TTL of zero is never fresh.
        return self.age(now) >= self.ttl

    def to_json(self, key: str) -> str:
        return json.dumps(
            {
                "key": key,
                "data": base64.b64encode(self.data).decode("ascii"),
                "timestamp": self.timestamp,
                "ttl": self.ttl,
            }
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> tuple[str, "CacheEntry"]:
        payload = json.loads(raw)
        entry = cls(
            data=base64.b64decode(payload["data"]),
            timestamp=float(payload["timestamp"]),
            ttl=float(payload["ttl"]),
        )
        return str(payload["key"]), entry


def sanitize_key(key: str) -> str:
    """Turn an arbitrary cache key into a safe file name stem."""

    stem = _UNSAFE_KEY_CHARS.sub("_", key).strip("._") or "_"
    if len(stem) <= MAX_KEY_STEM:
        return stem
    digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
    return f"{stem[: MAX_KEY_STEM - len(digest) - 1]}-{digest}"


class FXCache:
    """Cache of raw response bytes keyed by request signature.

    Memory is authoritative once an entry is loaded; the disk directory is the
    durable backing used after a restart. All state is owned by the event
    loop the cache is used from, so bookkeeping between awaits is atomic.
    """

    def __init__(self, directory: str | os.PathLike[str], clock: Callable[[], float] = time.time) -> None:
        self._directory = Path(directory)
        self._clock = clock
        self._memory: dict[str, CacheEntry] = {}
        self._inflight: dict[str, asyncio.Task[bytes]] = {}
        # Bumped by clear_all so disk reads started before a clear are discarded.
        self._generation = 0
        self._clearing = 0
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("FX cache directory %s unavailable: %s", self._directory, exc)

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def memory_count(self) -> int:
        return len(self._memory)

    @property
    def disk_count(self) -> int:
        try:
            return sum(1 for _ in self._directory.glob(f"*{CACHE_SUFFIX}"))
        except OSError:
            return 0

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    def is_fresh(self, entry: CacheEntry) -> bool:
        return not entry.is_expired(self._clock())

    async def get(self, key: str) -> CacheEntry | None:
        """Memory first; on a miss, promote the disk copy into memory."""

        entry = self._memory.get(key)
        if entry is not None:
            return entry

        if self._clearing:
            return None

        generation = self._generation
        entry = await asyncio.to_thread(self._load_from_disk, key)
        # A concurrent set() or clear_all() may have run while the read was in flight.
        if entry is None or generation != self._generation:
            return self._memory.get(key)
        return self._memory.setdefault(key, entry)

    async def set(self, key: str, data: bytes, ttl: float) -> None:
        entry = CacheEntry(data=bytes(data), timestamp=self._clock(), ttl=float(ttl))
        self._memory[key] = entry
        await asyncio.to_thread(self._save_to_disk, key, entry)

    async def get_or_fetch(self, key: str, ttl: float, fetch: Fetcher) -> bytes:
        """Return fresh cached bytes, or fetch once no matter how many callers ask.

        Concurrent callers for the same key share a single fetch. A failed
        fetch falls back to the stale entry when one exists. Cancelling one
        caller never cancels the shared fetch.
        """

        entry = await self.get(key)
        if entry is not None and self.is_fresh(entry):
            return entry.data

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(key, ttl, fetch, entry))
            task.add_done_callback(_observe_result)
            self._inflight[key] = task
        else:
            logger.debug("Joining in-flight fetch for %s", key)

        return await asyncio.shield(task)

    async def _fetch_and_store(
        self,
        key: str,
        ttl: float,
        fetch: Fetcher,
        fallback: CacheEntry | None,
    ) -> bytes:
        try:
            data = await fetch()
        except BaseException as exc:
            self._inflight.pop(key, None)
            if fallback is None or not isinstance(exc, Exception):
                raise
            logger.warning(
                "Fetch for %s failed (%s); serving stale entry aged %.0fs",
                key,
                exc,
                fallback.age(self._clock()),
                extra={"event": "fx.cache.stale", "cache_key": key, "stale": True},
            )
            return fallback.data

        self._inflight.pop(key, None)
        await self.set(key, data, ttl)
        return data

    async def clear_all(self) -> None:
        self._generation += 1
        self._clearing += 1
        self._memory.clear()
        try:
            await asyncio.to_thread(self._delete_all_files)
        finally:
            self._clearing -= 1

    async def clear_expired(self) -> int:
        """Drop entries older than their own TTL from both tiers; returns keys removed."""

        now = self._clock()
        removed: set[str] = set()
        for key, entry in list(self._memory.items()):
            if entry.is_expired(now):
                del self._memory[key]
                removed.add(key)

        removed.update(await asyncio.to_thread(self._delete_expired_files, now))
        if removed:
            logger.info("Removed %s expired FX cache entries", len(removed))
        return len(removed)

    def _path_for(self, key: str) -> Path:
        return self._directory / f"{sanitize_key(key)}{CACHE_SUFFIX}"

    def _load_from_disk(self, key: str) -> CacheEntry | None:
        path = self._path_for(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Could not read FX cache file %s: %s", path, exc)
            return None

        try:
            stored_key, entry = CacheEntry.from_json(raw)
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding corrupt FX cache file %s: %s", path, exc)
            return None

        if stored_key != key:
            # Sanitisation collision: the file belongs to another key.
            return None
        return entry

    def _save_to_disk(self, key: str, entry: CacheEntry) -> None:
        path = self._path_for(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(entry.to_json(key))
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.warning("Could not persist FX cache entry %s: %s", key, exc)

    def _delete_all_files(self) -> None:
        for path in self._cache_files():
            path.unlink(missing_ok=True)

    def _delete_expired_files(self, now: float) -> set[str]:
        removed: set[str] = set()
        for path in self._cache_files():
            try:
                stored_key, entry = CacheEntry.from_json(path.read_text(encoding="utf-8"))
            except (OSError, ValueError, KeyError, TypeError) as exc:
                logger.warning("Removing unreadable FX cache file %s: %s", path, exc)
                path.unlink(missing_ok=True)
                continue

            # The file may have been rewritten by set() since memory was swept.
            if entry.is_expired(now):
                path.unlink(missing_ok=True)
                removed.add(stored_key)
        return removed

    def _cache_files(self) -> list[Path]:
        try:
            return list(self._directory.glob(f"*{CACHE_SUFFIX}"))
        except OSError:
            return []


def _observe_result(task: asyncio.Task) -> None:
    # Every waiter may have been cancelled; mark the outcome as retrieved.
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Shared FX fetch failed: %s", task.exception())
