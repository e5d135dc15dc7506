from __future__ import annotations

from .dom import build_tree
from .markdown import render


def html_to_markdown(html: bytes | str, *, source_url: str | None = None) -> str:
    """Convert an HTML page to Markdown.

    Anchor hrefs are absolutized against *source_url*; the result is trimmed.
    """

    root = build_tree(html, base_url=source_url)
    return render(root).strip()
