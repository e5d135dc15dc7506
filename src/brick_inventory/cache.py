"""On-disk tier of the fetch cache: one file per URL, named by its sha256."""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .logging_utils import log_event

logger = logging.getLogger(__name__)


def cache_key(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CacheEntry:
    url: str
    body_path: Path


def cache_paths(cache_dir: Path, *, url: str) -> CacheEntry:
    return CacheEntry(url=url, body_path=cache_dir / cache_key(url))


def read_cached(entry: CacheEntry) -> bytes | None:
    """Return the cached body, or ``None`` on a miss.

    An unreadable or empty file counts as corrupt: it is deleted and
    reported as a miss.
    """

    path = entry.body_path
    if not path.exists():
        return None
    try:
        body = path.read_bytes()
    except OSError:
        body = b""
    if body:
        return body

    log_event(logger, logging.INFO, "disk_cache_corrupt", url=entry.url, path=path)
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        log_event(logger, logging.WARNING, "disk_cache_unlink_failed", path=path, error=e)
    return None


def write_cached(entry: CacheEntry, body: bytes) -> bool:
    """Atomically write *body*; best effort, returns ``False`` on failure."""

    path = entry.body_path
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
        with os.fdopen(fd, "wb") as f:
            f.write(body)
        os.replace(tmp_name, path)
        return True
    except OSError as e:
        log_event(logger, logging.WARNING, "disk_cache_write_failed", url=entry.url, error=e)
        for leftover in (tmp_name, path):
            if leftover is None:
                continue
            try:
                Path(leftover).unlink(missing_ok=True)
            except OSError:
                pass
        return False


def remove_cached(entry: CacheEntry) -> None:
    try:
        entry.body_path.unlink(missing_ok=True)
    except OSError as e:
        log_event(logger, logging.WARNING, "disk_cache_unlink_failed", path=entry.body_path, error=e)
