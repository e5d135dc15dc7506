from __future__ import annotations

import logging
from dataclasses import replace

import requests

from .color_guide import ColorGuideEntry, color_guide_url, parse_color_guide
from .config import ScraperConfig
from .convert.html_to_md import html_to_markdown
from .enrichment import Fetch, InventoryEnricher
from .extractor import extract_inventory
from .fetch_cache import FetchCache
from .http_client import HttpClient
from .logging_utils import log_event
from .models import Inventory
from .urls import inventory_url

logger = logging.getLogger(__name__)


class InventoryService:
    """Fetch a set's inventory page and turn it into a fully resolved Inventory."""

    def __init__(
        self,
        fetch: Fetch,
        *,
        config: ScraperConfig | None = None,
        enricher: InventoryEnricher | None = None,
    ) -> None:
        self.config = config or ScraperConfig()
        self._fetch = fetch
        self.enricher = enricher or InventoryEnricher(
            fetch,
            base_url=self.config.base_url,
            max_workers=self.config.enrichment_workers,
            max_depth=self.config.max_nested_depth,
        )

    def set_inventory_url(self, set_number: str) -> str:
        return inventory_url(set_number, item_type="S", base_url=self.config.base_url)

    def fetch_markdown(self, url: str) -> str:
        return html_to_markdown(self._fetch(url), source_url=url)

    def fetch_inventory(self, set_number: str) -> Inventory:
        url = self.set_inventory_url(set_number)
        markdown = self.fetch_markdown(url)
        inventory = extract_inventory(markdown, set_number, url)

        parts = self.enricher.enrich_parts(inventory.parts)
        minifigures = self.enricher.enrich_minifigures(inventory.minifigures)

        log_event(
            logger,
            logging.INFO,
            "inventory_fetched",
            set_number=set_number,
            parts=len(parts),
            minifigures=len(minifigures),
        )
        return replace(inventory, parts=tuple(parts), minifigures=tuple(minifigures))

    def fetch_color_guide(self, locale: str = "en-us") -> list[ColorGuideEntry]:
        url = color_guide_url(locale)
        entries = parse_color_guide(self._fetch(url), url)
        log_event(logger, logging.INFO, "color_guide_fetched", locale=locale, colors=len(entries))
        return entries


def build_http_client(config: ScraperConfig, *, timeout_s: float | None = None) -> HttpClient:
    session = requests.Session()
    return HttpClient(
        session,
        timeout_s=config.page_timeout_s if timeout_s is None else timeout_s,
        user_agent=config.user_agent,
    )


def build_thumbnail_cache(config: ScraperConfig, http: HttpClient | None = None) -> FetchCache:
    return FetchCache(
        http or build_http_client(config, timeout_s=config.thumbnail_timeout_s),
        config.cache_dir,
        max_concurrent_downloads=config.max_concurrent_downloads,
        memory_limit=config.memory_cache_limit,
        timeout_s=config.thumbnail_timeout_s,
    )
