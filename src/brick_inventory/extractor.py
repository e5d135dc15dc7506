"""Parse the Markdown rendering of a BrickLink inventory page.

The page's item table is scanned line by line. Marker rows switch the
current section (``Regular Items:``, ``Extra Items:`` ...) and the current
item type (``Parts:`` / ``Minifigures:``); item rows are recognized by their
catalog link. A row that looks like an item but cannot be parsed aborts the
whole extraction with :class:`MalformedRowError`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from .config import BRICKLINK_BASE_URL
from .errors import MalformedRowError, MissingSetNameError, TableNotFoundError
from .logging_utils import log_event
from .models import Category, Inventory, ItemType, Minifigure, Part, PartSection
from .urls import absolutize, promote_to_high_resolution, query_param

logger = logging.getLogger(__name__)

TABLE_HEADER_MARKER = "| **Image**"
CATEGORY_MARKER = "[Catalog]"
SET_IMAGE_MARKER = "catalogItemPic.asp?S="
PART_LINK_MARKER = "catalog/catalogitem.page?P="
MINIFIG_LINK_MARKER = "catalogitem.page?M="
INVENTORY_LINK_MARKER = "catalogiteminv.asp"

_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_IMAGE_RE = re.compile(r"!\[[^\]]*\]\(([^)]+)\)")
_ALT_NAME_RE = re.compile(r"Name:\s*(.+?)\]\(")
_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
_QUANTITY_RE = re.compile(r"^\d+$")
_WHITESPACE_RE = re.compile(r"\s+")
_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_CELL_SEPARATOR_RE = re.compile(r"(?<!\\)\|")
_SECTION_RE = re.compile(
    r"^(regular|extras?|counterparts?|alternates?)(\s+items?)?$"
)

_SECTIONS = {
    "regular": PartSection.REGULAR,
    "extra": PartSection.EXTRA,
    "extras": PartSection.EXTRA,
    "counterpart": PartSection.COUNTERPART,
    "counterparts": PartSection.COUNTERPART,
    "alternate": PartSection.ALTERNATE,
    "alternates": PartSection.ALTERNATE,
}

# Bold snippets on the set image line that are table chrome, not the name.
_NOT_A_SET_NAME = ("image", "qty", "parts", "regular items", "mid")


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def split_cells(line: str) -> list[str]:
    """Split a Markdown table line into trimmed cells (outer pipes dropped).

    Escaped pipes (``\\|``) are cell content, not separators.
    """

    parts = _CELL_SEPARATOR_RE.split(line.strip())
    cells = [c.strip().replace("\\|", "|") for c in parts]
    if cells and not cells[0]:
        cells = cells[1:]
    if cells and not cells[-1]:
        cells = cells[:-1]
    return cells


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------


def section_marker(cells: list[str]) -> PartSection | None:
    for cell in cells:
        if not cell:
            continue
        plain = _PUNCTUATION_RE.sub("", cell.lower()).replace("_", "")
        match = _SECTION_RE.match(normalize_whitespace(plain))
        if match:
            return _SECTIONS[match.group(1)]
    return None


def item_type_marker(line: str) -> ItemType | None:
    lowered = line.lower()
    if "[catalog]" in lowered:
        return None
    if "minifigures:" in lowered:
        return ItemType.MINIFIGURES
    if "parts:" in lowered:
        return ItemType.PARTS
    return None


def row_item_type(line: str) -> ItemType | None:
    if PART_LINK_MARKER in line:
        return ItemType.PARTS
    if MINIFIG_LINK_MARKER in line:
        return ItemType.MINIFIGURES
    return None


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def extract_links(text: str | None) -> list[tuple[str, str]]:
    if not text:
        return []
    return [
        (m.group(1).strip(), m.group(2).strip())
        for m in _LINK_RE.finditer(text)
        if not m.group(1).startswith("!")
    ]


def extract_image_url(text: str | None) -> str | None:
    if not text:
        return None
    match = _IMAGE_RE.search(text)
    if not match:
        return None
    return absolutize(match.group(1).strip(), base_url=BRICKLINK_BASE_URL)


def extract_alt_name(text: str | None) -> str:
    if not text:
        return ""
    match = _ALT_NAME_RE.search(text)
    return normalize_whitespace(match.group(1)) if match else ""


def _category_id(url: str) -> str | None:
    cat_string = query_param(url, "catString")
    if not cat_string:
        return None
    return cat_string.split(".")[-1] or None


def _is_item_scoped(url: str) -> bool:
    lowered = url.lower()
    return (
        "catalogitem.page" in lowered
        or "catalogitem.asp" in lowered
        or query_param(url, "S") is not None
    )


def extract_categories(text: str | None) -> list[Category]:
    """Breadcrumb categories from a ``Catalog: A: B`` line, parent-most first."""

    categories: list[Category] = []
    for label, url in extract_links(text):
        if label == "Catalog":
            continue
        if _is_item_scoped(url):
            break
        categories.append(Category(name=normalize_whitespace(label), id=_category_id(url)))
    return categories


def _first_matching(cells: list[str], needle: str) -> int | None:
    for i, cell in enumerate(cells):
        if needle in cell:
            return i
    return None


def _description_text(cell: str | None) -> str:
    if not cell:
        return ""
    bold = _BOLD_RE.search(cell)
    if bold:
        return normalize_whitespace(bold.group(1))
    return normalize_whitespace(cell.split("\n", 1)[0].replace("**", ""))


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------


@dataclass
class _Row:
    line: str
    cells: list[str]

    def cell(self, index: int | None) -> str | None:
        if index is None or index >= len(self.cells):
            return None
        return self.cells[index]

    @property
    def image_index(self) -> int | None:
        for i, cell in enumerate(self.cells):
            if _IMAGE_RE.search(cell):
                return i
        return None

    @property
    def quantity_index(self) -> int | None:
        for i, cell in enumerate(self.cells):
            if _QUANTITY_RE.match(cell):
                return i
        return None

    @property
    def description_index(self) -> int | None:
        for i, cell in enumerate(self.cells):
            if "**" in cell and "No:" not in cell:
                return i
        return None

    def merge(self, other: list[str]) -> None:
        for i, extra in enumerate(other):
            if not extra:
                continue
            if self.cells[i]:
                self.cells[i] = self.cells[i] + "\n" + extra
            else:
                self.cells[i] = extra


def _is_marker(line: str, cells: list[str]) -> bool:
    return section_marker(cells) is not None or item_type_marker(line) is not None


def _collect_row(lines: list[str], start: int) -> tuple[_Row, int]:
    """Merge an item line with its continuation lines.

    Multi-line table cells render as extra physical lines whose anchor
    column (quantity, else image, else the first cell) is blank.
    """

    head = lines[start].strip()
    row = _Row(line=head, cells=split_cells(head))
    anchor = row.quantity_index
    if anchor is None:
        anchor = row.image_index
    if anchor is None:
        anchor = 0

    index = start + 1
    while index < len(lines):
        line = lines[index].strip()
        if not line.startswith("|") or row_item_type(line) is not None:
            break
        cells = split_cells(line)
        if len(cells) != len(row.cells) or _is_marker(line, cells):
            break
        if anchor < len(cells) and cells[anchor]:
            break
        row.merge(cells)
        index += 1
    return row, index


def parse_part_row(
    row: _Row,
    *,
    base_url: str,
    section: PartSection,
) -> Part:
    image_cell = row.cell(row.image_index)
    link_index = _first_matching(row.cells, PART_LINK_MARKER)
    link_cell = row.cell(link_index)

    links = extract_links(link_cell)
    if not links:
        raise MalformedRowError(row.line, "no part link")
    part_id, href = links[0]
    if not part_id:
        raise MalformedRowError(row.line, "empty part id")
    part_url = absolutize(href, base_url=base_url)

    inventory_url = None
    for _, url in links[1:]:
        if INVENTORY_LINK_MARKER in url.lower():
            inventory_url = absolutize(url, base_url=base_url)
            break

    quantity_cell = row.cell(row.quantity_index)
    quantity = int(quantity_cell) if quantity_cell else 0

    name = extract_alt_name(image_cell)
    description = _description_text(row.cell(row.description_index))

    color_name = ""
    if name and name in description:
        color_name = description[: description.index(name)].strip()
    if not color_name:
        color_name = description

    return Part(
        part_id=part_id,
        part_url=part_url,
        name=name or description,
        color_name=color_name,
        color_id=query_param(part_url, "idColor") or "",
        image_url=extract_image_url(image_cell),
        quantity=quantity,
        section=section,
        inventory_url=inventory_url,
    )


def parse_minifigure_row(row: _Row, *, base_url: str) -> Minifigure:
    image_cell = row.cell(row.image_index)
    link_cell = row.cell(_first_matching(row.cells, MINIFIG_LINK_MARKER))

    links = extract_links(link_cell)
    if not links:
        raise MalformedRowError(row.line, "no minifigure link")
    identifier, href = links[0]
    if not identifier:
        raise MalformedRowError(row.line, "empty minifigure id")

    inventory_url = None
    if len(links) > 1:
        inventory_url = absolutize(links[1][1], base_url=base_url)

    quantity_cell = row.cell(row.quantity_index)
    quantity = int(quantity_cell) if quantity_cell else 0

    categories: list[Category] = []
    for cell in row.cells:
        for line in cell.split("\n"):
            if "Catalog" in line and _LINK_RE.search(line):
                categories = extract_categories(line)
                break
        if categories:
            break

    name = extract_alt_name(image_cell) or _description_text(row.cell(row.description_index))

    return Minifigure(
        identifier=identifier,
        name=name,
        quantity=quantity,
        image_url=extract_image_url(image_cell),
        catalog_url=absolutize(href, base_url=base_url),
        inventory_url=inventory_url,
        categories=tuple(categories),
    )


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SetMetadata:
    name: str | None
    thumbnail_url: str | None
    categories: tuple[Category, ...]


def _set_name(line: str) -> str | None:
    match = _ALT_NAME_RE.search(line)
    if match:
        return normalize_whitespace(match.group(1))
    for bold in _BOLD_RE.finditer(line):
        candidate = normalize_whitespace(bold.group(1))
        lowered = candidate.lower()
        if candidate and not any(word in lowered for word in _NOT_A_SET_NAME):
            return candidate
    return None


def parse_metadata(lines: list[str]) -> SetMetadata:
    name: str | None = None
    preferred_thumb: str | None = None
    fallback_thumb: str | None = None
    categories: tuple[Category, ...] | None = None

    for line in lines:
        if categories is None and CATEGORY_MARKER in line:
            categories = tuple(extract_categories(line))

        if SET_IMAGE_MARKER not in line:
            continue
        if name is None:
            name = _set_name(line)
        for match in _IMAGE_RE.finditer(line):
            url = absolutize(match.group(1).strip())
            if preferred_thumb is None and "/S/" in url:
                preferred_thumb = promote_to_high_resolution(url)
            elif fallback_thumb is None:
                fallback_thumb = url

    return SetMetadata(
        name=name,
        thumbnail_url=preferred_thumb or fallback_thumb,
        categories=categories or (),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def extract_inventory(
    markdown: str,
    set_number: str,
    base_url: str,
    *,
    parts_only: bool = False,
) -> Inventory:
    """Turn a rendered inventory page into an :class:`Inventory`.

    With ``parts_only`` (nested minifigure/multipack pages) the page header
    is not scanned and minifigure rows are ignored; the name falls back to
    *set_number*.
    """

    lines = markdown.splitlines()
    header_index = next(
        (i for i, line in enumerate(lines) if TABLE_HEADER_MARKER in line), None
    )
    if header_index is None:
        raise TableNotFoundError(set_number)

    section = PartSection.REGULAR
    item_type = ItemType.PARTS
    parts: list[Part] = []
    minifigures: list[Minifigure] = []

    index = header_index + 2  # header + separator
    while index < len(lines):
        line = lines[index].strip()
        if not line.startswith("|"):
            index += 1
            continue

        kind = row_item_type(line)
        if kind is not None:
            if kind != item_type or (parts_only and kind == ItemType.MINIFIGURES):
                index += 1
                continue
            row, index = _collect_row(lines, index)
            if kind == ItemType.PARTS:
                parts.append(parse_part_row(row, base_url=base_url, section=section))
            else:
                minifigures.append(parse_minifigure_row(row, base_url=base_url))
            continue

        cells = split_cells(line)
        new_section = section_marker(cells)
        if new_section is not None:
            section = new_section
        else:
            new_type = item_type_marker(line)
            if new_type is not None:
                item_type = new_type
        index += 1

    if parts_only:
        inventory = Inventory(set_number=set_number, name=set_number, parts=tuple(parts))
    else:
        metadata = parse_metadata(lines)
        if not metadata.name:
            raise MissingSetNameError(set_number)
        inventory = Inventory(
            set_number=set_number,
            name=metadata.name,
            thumbnail_url=metadata.thumbnail_url,
            parts=tuple(parts),
            categories=metadata.categories,
            minifigures=tuple(minifigures),
        )

    log_event(
        logger,
        logging.DEBUG,
        "inventory_extracted",
        set_number=set_number,
        parts=len(inventory.parts),
        minifigures=len(inventory.minifigures),
        parts_only=parts_only,
    )
    return inventory
