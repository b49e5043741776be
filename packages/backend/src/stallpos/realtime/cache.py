"""Dataset cache — get-or-compute with a per-key TTL.

Learn: Dashboards hammer the same few collections (the menu, the list of
open orders). Instead of hitting the database on every request, readers go
through get_or_compute() with a logical dataset name ("orders",
"available_products", ...). Entries expire a fixed time after they were
computed, and every mutation invalidates the datasets it can change, so
readers never wait a full TTL to see a write.

Concurrent misses on the same key each run compute() unless the cache was
built with dedupe_inflight=True, in which case later callers await the
first caller's future.

An invalidate() that lands while a compute is in flight wins: every key
carries a generation number, and a compute only stores its result if the
generation it started under is still current. The caller still gets the
value it computed, but the next reader recomputes.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import structlog

logger = structlog.get_logger()

Compute = Callable[[], Awaitable[Any]]


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class DatasetCache:
    """In-process TTL cache keyed by dataset name."""

    def __init__(
        self,
        default_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        dedupe_inflight: bool = False,
    ):
        self.default_ttl = default_ttl
        self.dedupe_inflight = dedupe_inflight
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._inflight: dict[str, asyncio.Future] = {}
        self._generations: dict[str, int] = {}
        self._epoch = 0

    async def get_or_compute(
        self,
        key: str,
        compute: Compute,
        ttl: Optional[float] = None,
    ) -> Any:
        """Return the fresh cached value for key, or compute and store it.

        A failing compute() leaves the cache untouched and the exception
        propagates to the caller. There is no retry.
        """
        entry = self._entries.get(key)
        if entry is not None and self._clock() < entry.expires_at:
            logger.debug("cache.hit", key=key)
            return entry.value

        if self.dedupe_inflight and key in self._inflight:
            logger.debug("cache.join_inflight", key=key)
            return await asyncio.shield(self._inflight[key])

        logger.debug("cache.miss", key=key)
        if not self.dedupe_inflight:
            return await self._compute_and_store(key, compute, ttl)

        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await self._compute_and_store(key, compute, ttl)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Nobody else may be waiting; mark the exception as retrieved
            future.exception()
            raise
        else:
            future.set_result(value)
            return value
        finally:
            if self._inflight.get(key) is future:
                del self._inflight[key]

    async def _compute_and_store(
        self, key: str, compute: Compute, ttl: Optional[float]
    ) -> Any:
        started = self._clock()
        generation = self._generation(key)
        value = await compute()
        if self._generation(key) != generation:
            logger.debug("cache.stale_compute_dropped", key=key)
            return value
        lifetime = self.default_ttl if ttl is None else ttl
        # TTL runs from the moment the read was requested.
        self._entries[key] = CacheEntry(value=value, expires_at=started + lifetime)
        return value

    def invalidate(self, key: str) -> None:
        """Drop the entry for key, fresh or not. Missing keys are ignored.

        Computes already running for key will not store their result, and
        later callers no longer join them.
        """
        self._generations[key] = self._generations.get(key, 0) + 1
        self._inflight.pop(key, None)
        if self._entries.pop(key, None) is not None:
            logger.debug("cache.invalidated", key=key)

    def clear(self) -> None:
        self._epoch += 1
        self._entries.clear()
        self._inflight.clear()

    def _generation(self, key: str) -> tuple[int, int]:
        return self._epoch, self._generations.get(key, 0)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self._clock() < entry.expires_at

    def __len__(self) -> int:
        return len(self._entries)
