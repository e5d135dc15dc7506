"""Concurrent resolution of nested inventories.

Every minifigure stub (and every part carrying an inventory link, such as a
multipack or a sprue) gets its own fetch + convert + extract cycle. Results
land in a slot list at the input index, so output order always matches input
order. The first failure cancels whatever has not started yet and is
re-raised; callers never see a partially enriched list.
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Callable, Sequence, TypeVar

from .config import BRICKLINK_BASE_URL
from .convert.html_to_md import html_to_markdown
from .extractor import extract_inventory
from .logging_utils import log_event
from .models import Minifigure, Part
from .urls import inventory_url

logger = logging.getLogger(__name__)

Fetch = Callable[[str], bytes]

T = TypeVar("T")
R = TypeVar("R")


def run_ordered(
    items: Sequence[T],
    task: Callable[[T], R],
    *,
    max_workers: int,
    label: str = "tasks",
) -> list[R]:
    """Run *task* over *items* concurrently; return results in input order."""

    if not items:
        return []

    slots: list[R | None] = [None] * len(items)
    with ThreadPoolExecutor(
        max_workers=min(max_workers, len(items)),
        thread_name_prefix=f"enrich-{label}",
    ) as pool:
        futures: dict[Future[R], int] = {
            pool.submit(task, item): index for index, item in enumerate(items)
        }
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)

        for future in done:
            error = future.exception()
            if error is not None:
                for other in pending:
                    other.cancel()
                log_event(
                    logger,
                    logging.INFO,
                    "enrichment_failed",
                    label=label,
                    index=futures[future],
                    error=error,
                )
                raise error

        for future, index in futures.items():
            slots[index] = future.result()

    log_event(logger, logging.DEBUG, "enrichment_done", label=label, count=len(items))
    return [slot for slot in slots if slot is not None]


class InventoryEnricher:
    def __init__(
        self,
        fetch: Fetch,
        *,
        base_url: str = BRICKLINK_BASE_URL,
        max_workers: int = 8,
        max_depth: int = 2,
    ) -> None:
        self._fetch = fetch
        self.base_url = base_url
        self.max_workers = max_workers
        self.max_depth = max_depth

    def _nested_parts(self, url: str, label: str) -> tuple[Part, ...]:
        html = self._fetch(url)
        markdown = html_to_markdown(html, source_url=url)
        nested = extract_inventory(markdown, label, url, parts_only=True)
        return nested.parts

    # ------------------------------------------------------------------
    # Minifigures
    # ------------------------------------------------------------------

    def minifigure_inventory_url(self, stub: Minifigure) -> str:
        if stub.inventory_url:
            return stub.inventory_url
        return inventory_url(stub.identifier, item_type="M", base_url=self.base_url)

    def enrich_minifigure(self, stub: Minifigure) -> Minifigure:
        url = self.minifigure_inventory_url(stub)
        parts = self._nested_parts(url, stub.identifier)
        parts = tuple(self.enrich_parts(parts, depth=1))
        return replace(stub, inventory_url=url, parts=parts)

    def enrich_minifigures(self, stubs: Sequence[Minifigure]) -> list[Minifigure]:
        log_event(logger, logging.DEBUG, "enrich_minifigures", count=len(stubs))
        return run_ordered(
            stubs,
            self.enrich_minifigure,
            max_workers=self.max_workers,
            label="minifigures",
        )

    # ------------------------------------------------------------------
    # Parts with their own inventory
    # ------------------------------------------------------------------

    def enrich_part(self, part: Part, *, depth: int = 0) -> Part:
        if not part.inventory_url or depth >= self.max_depth:
            return part
        subparts = self._nested_parts(part.inventory_url, part.part_id)
        subparts = tuple(self.enrich_parts(subparts, depth=depth + 1))
        return replace(part, subparts=subparts)

    def enrich_parts(self, parts: Sequence[Part], *, depth: int = 0) -> list[Part]:
        if depth >= self.max_depth or not any(p.inventory_url for p in parts):
            return list(parts)
        return run_ordered(
            parts,
            lambda part: self.enrich_part(part, depth=depth),
            max_workers=self.max_workers,
            label="parts",
        )
