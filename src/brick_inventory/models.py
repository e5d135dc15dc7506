"""Inventory records produced by the extractor.

All records are frozen: they are value data handed to the persistence layer.
Enrichment builds new records with ``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class PartSection(str, Enum):
    REGULAR = "regular"
    COUNTERPART = "counterpart"
    EXTRA = "extra"
    ALTERNATE = "alternate"


class ItemType(str, Enum):
    PARTS = "parts"
    MINIFIGURES = "minifigures"


@dataclass(frozen=True)
class Category:
    name: str
    id: str | None = None


@dataclass(frozen=True)
class Part:
    part_id: str
    name: str
    color_name: str
    color_id: str
    quantity: int
    section: PartSection = PartSection.REGULAR
    part_url: str | None = None
    image_url: str | None = None
    # Link to the part's own inventory (multipacks, sprues).
    inventory_url: str | None = None
    subparts: tuple[Part, ...] = ()


@dataclass(frozen=True)
class Minifigure:
    identifier: str
    name: str
    quantity: int
    image_url: str | None = None
    catalog_url: str | None = None
    inventory_url: str | None = None
    categories: tuple[Category, ...] = ()
    parts: tuple[Part, ...] = ()


@dataclass(frozen=True)
class Inventory:
    set_number: str
    name: str
    thumbnail_url: str | None = None
    parts: tuple[Part, ...] = ()
    categories: tuple[Category, ...] = ()
    minifigures: tuple[Minifigure, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-ready dict (enums become their string values)."""

        def _plain(value: Any) -> Any:
            if isinstance(value, Enum):
                return value.value
            if isinstance(value, dict):
                return {k: _plain(v) for k, v in value.items()}
            if isinstance(value, (list, tuple)):
                return [_plain(v) for v in value]
            return value

        return _plain(asdict(self))
