"""Element/Text tree built from a stream of tokenizer events.

BeautifulSoup (``html.parser``) is the tokenizer: its parse is walked as a
flat stream of open/text/close events and fed to :class:`DomBuilder`, which
applies the whitespace and href rules while assembling the tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction

from ..errors import EmptyDocumentError
from ..urls import resolve_href

BLOCK_LEVEL_TAGS = frozenset(
    {
        "p",
        "div",
        "ul",
        "ol",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "blockquote",
        "pre",
        "figure",
        "table",
        "noscript",
    }
)

# Whitespace-only text directly inside these is source indentation.
_WHITESPACE_DROPPING_TAGS = frozenset(
    {"ul", "ol", "body", "div", "blockquote", "tr", "table"}
)
_VERBATIM_TAGS = frozenset({"pre", "code"})
_SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


@dataclass
class Element:
    tag: str
    attributes: dict[str, str] = field(default_factory=dict)
    children: list[Node] = field(default_factory=list)

    @property
    def is_block(self) -> bool:
        return self.tag in BLOCK_LEVEL_TAGS


@dataclass(frozen=True)
class Text:
    content: str
    preserve_whitespace: bool = False

    @property
    def is_block(self) -> bool:
        return False


Node = Union[Element, Text]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OpenTag:
    tag: str
    attributes: dict[str, str]


@dataclass(frozen=True)
class TextEvent:
    text: str


@dataclass(frozen=True)
class CloseTag:
    tag: str


Event = Union[OpenTag, TextEvent, CloseTag]


def _attr_text(val: object) -> str:
    if isinstance(val, list):
        return " ".join(str(v) for v in val)
    return str(val or "")


def iter_events(data: bytes | str) -> Iterator[Event]:
    """Tokenize *data* and yield open/text/close events in document order."""

    soup = BeautifulSoup(data, "html.parser")

    def _walk(tag: Tag) -> Iterator[Event]:
        for child in tag.children:
            if isinstance(child, Tag):
                attrs = {str(k).lower(): _attr_text(v) for k, v in child.attrs.items()}
                yield OpenTag(child.name.lower(), attrs)
                yield from _walk(child)
                yield CloseTag(child.name.lower())
            elif isinstance(child, NavigableString):
                if isinstance(child, _SKIPPED_STRINGS):
                    continue
                yield TextEvent(str(child))

    yield from _walk(soup)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class DomBuilder:
    def __init__(self, *, base_url: str | None = None) -> None:
        self.base_url = base_url
        self.root: Element | None = None
        self._stack: list[Element] = []

    def feed(self, events: Iterator[Event] | list[Event]) -> DomBuilder:
        for event in events:
            if isinstance(event, OpenTag):
                self.open_tag(event.tag, event.attributes)
            elif isinstance(event, TextEvent):
                self.text(event.text)
            elif isinstance(event, CloseTag):
                self.close_tag(event.tag)
        return self

    def open_tag(self, tag: str, attributes: dict[str, str] | None = None) -> None:
        attrs = dict(attributes or {})
        if tag == "a" and "href" in attrs:
            href = resolve_href(attrs["href"], self.base_url)
            if href is None:
                del attrs["href"]
            else:
                attrs["href"] = href

        element = Element(tag=tag, attributes=attrs)
        if self._stack:
            self._stack[-1].children.append(element)
        elif self.root is None:
            self.root = element
        else:
            # Keep a single root: later top-level elements hang off the first.
            self.root.children.append(element)
        self._stack.append(element)

    def text(self, content: str) -> None:
        if not self._stack:
            return
        current = self._stack[-1]

        if any(el.tag in _VERBATIM_TAGS for el in self._stack):
            current.children.append(Text(content, preserve_whitespace=True))
            return

        if not content.strip() and current.tag in _WHITESPACE_DROPPING_TAGS:
            return

        current.children.append(Text(content, preserve_whitespace=False))

    def close_tag(self, tag: str) -> None:
        # Unbalanced closes are tolerated.
        if self._stack:
            self._stack.pop()


def build_tree(data: bytes | str, base_url: str | None = None) -> Element:
    builder = DomBuilder(base_url=base_url).feed(iter_events(data))
    if builder.root is None:
        raise EmptyDocumentError(base_url)
    return builder.root
