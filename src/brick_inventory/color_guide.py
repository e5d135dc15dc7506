"""Parse BrickLink's color guide into BrickLink/LEGO color pairs.

The guide is a table with one ``tr`` per color. A usable row has at least
eight ``td`` cells:

- cell 0 carries the swatch color in its ``style`` attribute,
- cell 1 holds the BrickLink name in a ``p`` and a ``LEGO Color: Name - 21``
  note in a ``span``,
- the last cell is the BrickLink color id.

Rows without a LEGO note (BrickLink-only colors) and header rows are skipped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Callable, Iterator

from .convert.dom import Element, Node, Text, build_tree
from .errors import ColorGuideNotFoundError
from .logging_utils import log_event

logger = logging.getLogger(__name__)

COLOR_GUIDE_URL = "https://v2.bricklink.com/{locale}/catalog/color-guide"
LEGO_COLOR_LABEL = "LEGO Color:"
SWATCH_STYLE_PROPERTY = "--bl-castor-table-swatch-with-image-background-color"
MIN_CELLS = 8

_LEGO_ID_RE = re.compile(r"^(?P<name>.*?)\s*-\s*(?P<id>\d+)$")


@dataclass(frozen=True)
class ColorGuideEntry:
    bricklink_color_id: int
    bricklink_name: str
    lego_color_name: str | None = None
    lego_color_id: int | None = None
    hex_color: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def color_guide_url(locale: str = "en-us") -> str:
    return COLOR_GUIDE_URL.format(locale=locale.strip().lower())


def parse_color_guide(html: bytes | str, base_url: str | None = None) -> list[ColorGuideEntry]:
    """Return one entry per parseable color row, in page order.

    Raises :class:`ColorGuideNotFoundError` when no row parses.
    """

    root = build_tree(html, base_url)
    entries = [e for e in map(_parse_row, _iter_elements(root, "tr")) if e is not None]
    if not entries:
        raise ColorGuideNotFoundError(base_url)
    log_event(logger, logging.DEBUG, "color_guide_parsed", url=base_url, colors=len(entries))
    return entries


def parse_lego_color(text: str) -> tuple[str | None, int | None]:
    """Split ``LEGO Color: Bright Red - 21`` into ``("Bright Red", 21)``.

    Only a trailing integer after the last hyphen counts as an id, so
    hyphenated names such as ``Trans-Clear`` survive intact.
    """

    text = text.replace("\u00a0", " ").strip()
    if LEGO_COLOR_LABEL not in text:
        return None, None
    content = text.replace(LEGO_COLOR_LABEL, "").strip()
    m = _LEGO_ID_RE.match(content)
    if m:
        return m.group("name") or None, int(m.group("id"))
    return content or None, None


def swatch_hex(style: str) -> str | None:
    for declaration in style.split(";"):
        prop, sep, value = declaration.partition(":")
        if not sep or prop.strip() != SWATCH_STYLE_PROPERTY:
            continue
        value = value.strip()
        if value.startswith("#"):
            return value
    return None


def _parse_row(row: Element) -> ColorGuideEntry | None:
    cells = [c for c in row.children if isinstance(c, Element) and c.tag == "td"]
    if len(cells) < MIN_CELLS:
        return None

    name_cell = cells[1]
    lego_note = _first_descendant(
        name_cell, lambda el: el.tag == "span" and LEGO_COLOR_LABEL in text_content(el)
    )
    name_el = _first_descendant(name_cell, lambda el: el.tag == "p")
    if lego_note is None or name_el is None:
        return None

    id_text = text_content(cells[-1]).strip().replace(",", "")
    if not (id_text.isascii() and id_text.isdigit()):
        return None

    lego_name, lego_id = parse_lego_color(text_content(lego_note))
    return ColorGuideEntry(
        bricklink_color_id=int(id_text),
        bricklink_name=text_content(name_el).strip(),
        lego_color_name=lego_name,
        lego_color_id=lego_id,
        hex_color=swatch_hex(cells[0].attributes.get("style", "")),
    )


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------


def text_content(node: Node) -> str:
    if isinstance(node, Text):
        return node.content
    return "".join(text_content(child) for child in node.children)


def _iter_elements(node: Element, tag: str) -> Iterator[Element]:
    if node.tag == tag:
        yield node
    for child in node.children:
        if isinstance(child, Element):
            yield from _iter_elements(child, tag)


def _first_descendant(node: Element, predicate: Callable[[Element], bool]) -> Element | None:
    for child in node.children:
        if not isinstance(child, Element):
            continue
        if predicate(child):
            return child
        found = _first_descendant(child, predicate)
        if found is not None:
            return found
    return None
