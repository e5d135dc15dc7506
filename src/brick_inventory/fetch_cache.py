"""Two-tier (memory + disk) cache for byte payloads fetched by URL.

Used for thumbnails; anything that fits ``get(url) -> bytes`` can sit on top
of it, including the HTML page fetches.

Guarantees:
- at most one network fetch in flight per URL; concurrent callers share it
  and see the same bytes or the same exception,
- at most ``max_concurrent_downloads`` network fetches at once (the worker
  pool is the permit pool; queued fetches start in submission order),
- failed fetches are never cached,
- after ``invalidate(url)`` returns neither tier holds the old bytes.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from .cache import cache_paths, read_cached, remove_cached, write_cached
from .http_client import NO_CACHE_HEADERS, HttpClient
from .logging_utils import log_event

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT_DOWNLOADS = 4
DEFAULT_MEMORY_LIMIT = 100
DEFAULT_TIMEOUT_S = 60.0


class FetchCache:
    def __init__(
        self,
        http: HttpClient,
        cache_dir: Path,
        *,
        max_concurrent_downloads: int = DEFAULT_MAX_CONCURRENT_DOWNLOADS,
        memory_limit: int = DEFAULT_MEMORY_LIMIT,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        if max_concurrent_downloads < 1:
            raise ValueError("max_concurrent_downloads must be at least 1")
        if memory_limit < 1:
            raise ValueError("memory_limit must be at least 1")

        self._http = http
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.max_concurrent_downloads = max_concurrent_downloads
        self.memory_limit = memory_limit
        self._timeout_s = timeout_s

        # Guards _memory, _in_flight and _generation.
        self._lock = threading.Lock()
        # Bumped by invalidate(); a disk read that straddles a bump is not
        # promoted into memory.
        self._generation = 0
        self._memory: OrderedDict[str, bytes] = OrderedDict()
        self._in_flight: dict[str, Future[bytes]] = {}
        self._pool = ThreadPoolExecutor(
            max_workers=max_concurrent_downloads,
            thread_name_prefix="fetch-cache",
        )

    def __enter__(self) -> FetchCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._pool.shutdown(wait=True)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, url: str, *, timeout: float | None = None) -> bytes:
        """Return the bytes for *url*, fetching them at most once.

        *timeout* bounds only this caller's wait (``TimeoutError`` when it
        expires); the shared fetch keeps running for everybody else.
        """

        with self._lock:
            cached = self._memory_get(url)
            generation = self._generation
        if cached is not None:
            log_event(logger, logging.DEBUG, "cache_hit", tier="memory", url=url)
            return cached

        from_disk = read_cached(cache_paths(self.cache_dir, url=url))
        if from_disk is not None:
            with self._lock:
                if generation == self._generation:
                    self._memory_put(url, from_disk)
            log_event(logger, logging.DEBUG, "cache_hit", tier="disk", url=url)
            return from_disk

        with self._lock:
            # A fetch may have finished while we were reading the disk.
            cached = self._memory_get(url)
            if cached is not None:
                return cached
            future = self._in_flight.get(url)
            if future is None:
                log_event(logger, logging.DEBUG, "cache_miss", url=url)
                future = self._pool.submit(self._fetch, url)
                self._in_flight[url] = future
            else:
                log_event(logger, logging.DEBUG, "cache_join_in_flight", url=url)

        return future.result(timeout=timeout)

    def invalidate(self, url: str) -> None:
        # Both tiers go under the lock so a concurrent disk hit either sees
        # the new generation or finds no file.
        with self._lock:
            self._generation += 1
            self._memory.pop(url, None)
            remove_cached(cache_paths(self.cache_dir, url=url))
        log_event(logger, logging.DEBUG, "cache_invalidated", url=url)

    def in_memory(self, url: str) -> bool:
        with self._lock:
            return url in self._memory

    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fetch(self, url: str) -> bytes:
        try:
            body = self._http.fetch_bytes(
                url, headers=NO_CACHE_HEADERS, timeout_s=self._timeout_s
            )
            write_cached(cache_paths(self.cache_dir, url=url), body)
            with self._lock:
                self._memory_put(url, body)
            log_event(logger, logging.DEBUG, "cache_fetched", url=url, size=len(body))
            return body
        except Exception as e:
            log_event(logger, logging.INFO, "cache_fetch_failed", url=url, error=e)
            raise
        finally:
            with self._lock:
                self._in_flight.pop(url, None)

    def _memory_get(self, url: str) -> bytes | None:
        # Caller holds self._lock.
        data = self._memory.get(url)
        if data is not None:
            self._memory.move_to_end(url)
        return data

    def _memory_put(self, url: str, data: bytes) -> None:
        # Caller holds self._lock. Eviction is memory-only; disk keeps the entry.
        self._memory[url] = data
        self._memory.move_to_end(url)
        while len(self._memory) > self.memory_limit:
            evicted, _ = self._memory.popitem(last=False)
            log_event(logger, logging.DEBUG, "cache_evicted", url=evicted)
