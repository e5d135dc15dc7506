from __future__ import annotations

from urllib.parse import (
    ParseResult,
    parse_qsl,
    urlencode,
    urljoin,
    urlparse,
    urlunparse,
)

from .config import BRICKLINK_BASE_URL


def normalize_url(raw_url: str) -> str:
    """Normalize a URL before it goes on the wire.

    - Lowercases scheme + hostname.
    - Strips fragments.
    """

    parsed: ParseResult = urlparse(raw_url)
    parsed = parsed._replace(
        scheme=(parsed.scheme or "").lower(),
        netloc=(parsed.netloc or "").lower(),
        fragment="",
    )
    return urlunparse(parsed)


def resolve_href(href: str, base_url: str | None) -> str | None:
    """Rewrite an anchor href: drop ``javascript:`` links, absolutize the rest."""

    href = href.strip()
    if href.lower().startswith("javascript:"):
        return None
    if not base_url:
        return href
    try:
        return urljoin(base_url, href)
    except ValueError:
        return href


def absolutize(url: str, *, base_url: str = BRICKLINK_BASE_URL) -> str:
    """Return *url* unchanged if it has a scheme, else resolve it on *base_url*.

    Protocol-relative paths (``//img.bricklink.com/...``) pick up https.
    """

    if urlparse(url).scheme:
        return url
    return urljoin(base_url + "/", url)


def query_param(url: str | None, name: str) -> str | None:
    """Case-insensitive lookup of a query parameter."""

    if not url:
        return None
    wanted = name.lower()
    for key, value in parse_qsl(urlparse(url).query, keep_blank_values=True):
        if key.lower() == wanted:
            return value
    return None


def promote_to_high_resolution(url: str) -> str:
    """Swap a BrickLink small-image path (``/S/``) for the large one (``/SL/``)."""

    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    if "bricklink.com" not in host or "/S/" not in parsed.path:
        return url
    return urlunparse(parsed._replace(path=parsed.path.replace("/S/", "/SL/")))


def inventory_url(
    identifier: str,
    *,
    item_type: str = "S",
    base_url: str = BRICKLINK_BASE_URL,
) -> str:
    """Build the catalog inventory page URL for a set (S), minifig (M) or part (P)."""

    query = urlencode({item_type: identifier, "viewType": "R"})
    return f"{base_url.rstrip('/')}/catalogItemInv.asp?{query}"
