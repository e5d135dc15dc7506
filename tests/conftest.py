"""Shared fixtures: catalog pages on disk and an in-memory fetcher."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from brick_inventory.errors import InvalidResponseError

FIXTURES = Path(__file__).parent / "fixtures"

SET_URL = "https://www.bricklink.com/catalogItemInv.asp?S=41314-1&viewType=R"
FRND097_URL = "https://www.bricklink.com/catalogItemInv.asp?M=frnd097"
FRND099_URL = "https://www.bricklink.com/catalogItemInv.asp?M=frnd099&viewType=R"
MULTIPACK_URL = "https://www.bricklink.com/catalogItemInv.asp?P=93082&colorID=42"
SPRUE_URL = "https://www.bricklink.com/catalogItemInv.asp?P=3742sprue&colorID=5"


def load_fixture(name: str) -> bytes:
    return (FIXTURES / name).read_bytes()


class FakeFetch:
    """``fetch(url) -> bytes`` backed by a dict; unknown URLs answer 404."""

    def __init__(self, pages: dict[str, bytes]) -> None:
        self.pages = dict(pages)
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def __call__(self, url: str) -> bytes:
        with self._lock:
            self.calls.append(url)
        if url not in self.pages:
            raise InvalidResponseError(url, 404)
        return self.pages[url]

    # Same shape as HttpClient.fetch_bytes for code that wants a client.
    def fetch_bytes(self, url: str, **_: object) -> bytes:
        return self(url)


@pytest.fixture
def set_html() -> bytes:
    return load_fixture("set_41314-1.html")


@pytest.fixture
def catalog_pages() -> dict[str, bytes]:
    return {
        SET_URL: load_fixture("set_41314-1.html"),
        FRND097_URL: load_fixture("minifig_frnd097.html"),
        FRND099_URL: load_fixture("minifig_frnd099.html"),
        MULTIPACK_URL: load_fixture("part_93082.html"),
        SPRUE_URL: load_fixture("part_3742sprue.html"),
    }


@pytest.fixture
def fake_fetch(catalog_pages: dict[str, bytes]) -> FakeFetch:
    return FakeFetch(catalog_pages)
