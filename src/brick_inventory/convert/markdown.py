"""Render an Element/Text tree as Markdown.

Only the tag subset that shows up on catalog pages is handled; unknown tags
contribute their children's text. Rendering is a pure function of the tree.
"""

from __future__ import annotations

import re
from typing import Callable

from .dom import Element, Node, Text

SUPPRESSED_TAGS = frozenset(
    {
        "script",
        "style",
        "iframe",
        "nav",
        "meta",
        "link",
        "title",
        "select",
        "input",
        "button",
        "noscript",
        "footer",
    }
)

_TABLE_SECTION_TAGS = frozenset({"thead", "tbody", "tfoot"})
_WHITESPACE_RUN = re.compile(r"\s+")
_LEADING_WS = re.compile(r"^\s+")
_TRAILING_WS = re.compile(r"\s+$")
_BLANK_LINE_RUN = re.compile(r"\n{2,}")


def render(node: Node) -> str:
    if isinstance(node, Text):
        return _render_text(node)
    return _render_element(node)


def ensure_two_trailing_newlines(text: str) -> str:
    """Terminate *text* with a paragraph break unless it already has one."""

    if not text:
        return text
    trailing = len(text) - len(text.rstrip("\n"))
    if trailing == 0:
        return text + "\n\n"
    if trailing == 1:
        return text + "\n"
    return text


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def _render_text(node: Text) -> str:
    if node.preserve_whitespace:
        return node.content
    text = node.content
    leading = " " if text.startswith(" ") else ""
    trailing = " " if text.endswith(" ") else ""
    body = _WHITESPACE_RUN.sub(" ", text.strip())
    return leading + body + trailing


# ---------------------------------------------------------------------------
# Elements
# ---------------------------------------------------------------------------


def _children(el: Element) -> str:
    return "".join(render(child) for child in el.children)


def _wrap_inline(content: str, marker: str) -> str:
    trimmed = content.strip()
    if not trimmed:
        return content
    leading_match = _LEADING_WS.search(content)
    trailing_match = _TRAILING_WS.search(content)
    leading = leading_match.group(0) if leading_match else ""
    trailing = trailing_match.group(0) if trailing_match else ""
    return f"{leading}{marker}{trimmed}{marker}{trailing}"


def _render_paragraph(el: Element) -> str:
    content = ""
    for child in el.children:
        if child.is_block:
            content = ensure_two_trailing_newlines(content)
        content += render(child)
    return content.strip()


def _render_link(el: Element) -> str:
    href = el.attributes.get("href", "")
    content = _children(el).strip()
    if "#" in href:
        # Anchor to a fragment: keep the text, drop the link.
        return content
    if href and content:
        return f"[{content}]({href})"
    return ""


def _render_image(el: Element) -> str:
    src = el.attributes.get("src", "")
    alt = el.attributes.get("alt", "Image")
    if not src or src.startswith("data:"):
        return ""
    return f"![{alt}]({src})"


def _render_unordered_list(el: Element) -> str:
    out = ""
    for child in el.children:
        text = render(child)
        if text:
            out += f"- {text}\n"
    return out


def _render_ordered_list(el: Element) -> str:
    out = ""
    index = 1
    for child in el.children:
        text = render(child)
        if text:
            out += f"{index}. {text}\n"
            index += 1
    return out


def _render_list_item(el: Element) -> str:
    return _children(el).strip()


def _render_heading(el: Element) -> str:
    level = int(el.tag[1])
    return "#" * level + " " + _children(el)


def _render_blockquote(el: Element) -> str:
    body = "\n".join(render(child).strip() for child in el.children)
    return "> " + body.replace("\n", "\n> ")


def _render_pre(el: Element) -> str:
    only = el.children[0] if len(el.children) == 1 else None
    if isinstance(only, Element) and only.tag == "code":
        content = _children(only)
    else:
        content = _children(el)
    return "```\n" + content.strip("\n") + "\n```\n"


def normalize_cell(content: str) -> str:
    normalized = content.replace("\r\n", "\n")
    normalized = _BLANK_LINE_RUN.sub("\n", normalized)
    lines = [line.strip() for line in normalized.split("\n")]
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


def _render_header_cell(el: Element) -> str:
    return "**" + normalize_cell(_children(el).strip()) + "**"


def _render_data_cell(el: Element) -> str:
    return normalize_cell(_children(el).strip())


def _render_loose_row(el: Element) -> str:
    cells = [render(child).strip() for child in el.children]
    return " | ".join(cells) + "\n"


def _table_rows(el: Element) -> list[list[str]]:
    rows: list[list[str]] = []
    for child in el.children:
        if not isinstance(child, Element):
            continue
        if child.tag == "tr":
            rows.append([render(cell).strip() for cell in child.children])
        elif child.tag in _TABLE_SECTION_TAGS:
            rows.extend(_table_rows(child))
    return rows


def format_table(rows: list[list[str]]) -> str:
    """Lay out rendered cell texts as a Markdown table.

    Row 0 is the header. Multi-line cells spread over several physical lines.
    """

    if not rows:
        return ""
    width = max(len(row) for row in rows)
    # Literal pipes are escaped so every line has exactly width + 1 separators.
    rows = [[cell.replace("|", "\\|") for cell in row] + [""] * (width - len(row)) for row in rows]

    col_widths = [0] * width
    for row in rows:
        for i, cell in enumerate(row):
            longest = max(len(line) for line in cell.split("\n"))
            col_widths[i] = max(col_widths[i], longest)

    # Markdown separators need at least three dashes per column.
    separator = "| " + " | ".join("-" * max(w, 3) for w in col_widths) + " |\n"

    out = ""
    for row_index, row in enumerate(rows):
        cell_lines = [cell.split("\n") for cell in row]
        line_count = max(len(lines) for lines in cell_lines)
        for line_index in range(line_count):
            formatted = "|"
            for i, lines in enumerate(cell_lines):
                line = lines[line_index] if line_index < len(lines) else ""
                formatted += f" {line.ljust(col_widths[i])} |"
            out += formatted + "\n"
        if row_index == 0:
            out += separator
    return out


def _render_table(el: Element) -> str:
    return format_table(_table_rows(el))


def _render_figcaption(el: Element) -> str:
    return "\n" + _children(el).strip()


_HANDLERS: dict[str, Callable[[Element], str]] = {
    "p": _render_paragraph,
    "div": _render_paragraph,
    "b": lambda el: _wrap_inline(_children(el), "**"),
    "strong": lambda el: _wrap_inline(_children(el), "**"),
    "i": lambda el: _wrap_inline(_children(el), "*"),
    "em": lambda el: _wrap_inline(_children(el), "*"),
    "code": lambda el: _wrap_inline(_children(el), "`"),
    "a": _render_link,
    "img": _render_image,
    "br": lambda el: "\n",
    "ul": _render_unordered_list,
    "ol": _render_ordered_list,
    "li": _render_list_item,
    "h1": _render_heading,
    "h2": _render_heading,
    "h3": _render_heading,
    "h4": _render_heading,
    "h5": _render_heading,
    "h6": _render_heading,
    "blockquote": _render_blockquote,
    "pre": _render_pre,
    "table": _render_table,
    "tr": _render_loose_row,
    "th": _render_header_cell,
    "td": _render_data_cell,
    "figcaption": _render_figcaption,
}


def _render_element(el: Element) -> str:
    if el.tag in SUPPRESSED_TAGS:
        return ""
    handler = _HANDLERS.get(el.tag, _children)
    result = handler(el)
    if el.is_block:
        result = ensure_two_trailing_newlines(result)
    return result
