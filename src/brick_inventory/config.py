from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

BRICKLINK_BASE_URL = "https://www.bricklink.com"
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; brick-inventory/0.1)"

_ENV_PREFIX = "BRICK_INVENTORY_"


def _default_cache_dir() -> Path:
    return Path(tempfile.gettempdir()) / "brick_inventory" / "thumbnails"


def _path(value: str) -> Path:
    return Path(value).expanduser()


# env suffix -> (field name, converter)
_ENV_FIELDS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "BASE_URL": ("base_url", str),
    "PAGE_TIMEOUT": ("page_timeout_s", float),
    "THUMBNAIL_TIMEOUT": ("thumbnail_timeout_s", float),
    "MAX_CONCURRENT_DOWNLOADS": ("max_concurrent_downloads", int),
    "MEMORY_CACHE_LIMIT": ("memory_cache_limit", int),
    "CACHE_DIR": ("cache_dir", _path),
    "ENRICHMENT_WORKERS": ("enrichment_workers", int),
    "MAX_NESTED_DEPTH": ("max_nested_depth", int),
    "USER_AGENT": ("user_agent", str),
}


@dataclass
class ScraperConfig:
    base_url: str = BRICKLINK_BASE_URL
    page_timeout_s: float = 45.0
    thumbnail_timeout_s: float = 60.0
    max_concurrent_downloads: int = 4
    memory_cache_limit: int = 100
    cache_dir: Path = field(default_factory=_default_cache_dir)
    enrichment_workers: int = 8
    max_nested_depth: int = 2
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if self.max_concurrent_downloads < 1:
            raise ValueError("max_concurrent_downloads must be at least 1")
        if self.memory_cache_limit < 1:
            raise ValueError("memory_cache_limit must be at least 1")
        if self.enrichment_workers < 1:
            raise ValueError("enrichment_workers must be at least 1")
        if self.max_nested_depth < 0:
            raise ValueError("max_nested_depth must not be negative")
        self.base_url = self.base_url.rstrip("/")
        self.cache_dir = Path(self.cache_dir)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ScraperConfig:
        """Build a config, overriding defaults with ``BRICK_INVENTORY_*`` vars.

        Blank values are ignored. Unparsable numbers raise ``ValueError``.
        """

        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}
        for suffix, (name, convert) in _ENV_FIELDS.items():
            raw = env.get(_ENV_PREFIX + suffix)
            if raw is None or not raw.strip():
                continue
            kwargs[name] = convert(raw.strip())
        return cls(**kwargs)
