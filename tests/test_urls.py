"""Tests for URL helpers."""

from __future__ import annotations

import pytest

from brick_inventory.urls import (
    absolutize,
    inventory_url,
    normalize_url,
    promote_to_high_resolution,
    query_param,
    resolve_href,
)


class TestResolveHref:
    @pytest.mark.parametrize("href", ["javascript:void(0)", "  JavaScript:go()"])
    def test_javascript_dropped(self, href: str) -> None:
        assert resolve_href(href, "https://www.bricklink.com/") is None

    def test_relative(self) -> None:
        assert resolve_href("v2/x.page", "https://www.bricklink.com/a/b.asp") == "https://www.bricklink.com/a/v2/x.page"

    def test_absolute_kept(self) -> None:
        assert resolve_href("https://other.test/x", "https://www.bricklink.com/") == "https://other.test/x"


class TestAbsolutize:
    def test_protocol_relative(self) -> None:
        assert absolutize("//img.bricklink.com/P/1.png") == "https://img.bricklink.com/P/1.png"

    def test_root_relative(self) -> None:
        assert absolutize("/catalog.asp") == "https://www.bricklink.com/catalog.asp"

    def test_custom_base(self) -> None:
        assert absolutize("/x", base_url="http://mirror.test") == "http://mirror.test/x"

    def test_absolute_unchanged(self) -> None:
        assert absolutize("https://img.bricklink.com/S/1.jpg") == "https://img.bricklink.com/S/1.jpg"


class TestQueryParam:
    def test_case_insensitive_name(self) -> None:
        url = "https://www.bricklink.com/v2/catalog/catalogitem.page?P=3001&idColor=5"
        assert query_param(url, "idcolor") == "5"
        assert query_param(url, "p") == "3001"

    def test_missing(self) -> None:
        assert query_param("https://www.bricklink.com/catalog.asp", "S") is None
        assert query_param(None, "S") is None


class TestPromote:
    def test_small_to_large(self) -> None:
        assert promote_to_high_resolution("https://img.bricklink.com/S/41314-1.jpg") == "https://img.bricklink.com/SL/41314-1.jpg"

    def test_other_hosts_untouched(self) -> None:
        assert promote_to_high_resolution("https://cdn.test/S/1.jpg") == "https://cdn.test/S/1.jpg"

    def test_other_paths_untouched(self) -> None:
        url = "https://img.bricklink.com/ItemImage/SN/0/1.png"
        assert promote_to_high_resolution(url) == url


class TestInventoryUrl:
    def test_set(self) -> None:
        assert inventory_url("41314-1") == "https://www.bricklink.com/catalogItemInv.asp?S=41314-1&viewType=R"

    def test_minifigure_on_custom_base(self) -> None:
        assert (
            inventory_url("frnd097", item_type="M", base_url="https://mirror.test/")
            == "https://mirror.test/catalogItemInv.asp?M=frnd097&viewType=R"
        )


def test_normalize_url() -> None:
    assert normalize_url("HTTP://Example.COM/Path?q=1#frag") == "http://example.com/Path?q=1"
