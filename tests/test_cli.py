"""Tests for the argparse CLI.

``build_http_client`` is patched where each command looks it up
(``brick_inventory.cli`` or ``brick_inventory.service``) so commands run
against the fixtures.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from brick_inventory.cli import main

from conftest import FIXTURES, SET_URL, FakeFetch


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("BRICK_INVENTORY_BASE_URL", "BRICK_INVENTORY_CACHE_DIR", "BRICK_INVENTORY_ENRICHMENT_WORKERS"):
        monkeypatch.delenv(name, raising=False)


class TestInventoryCommand:
    def test_prints_json(self, fake_fetch: FakeFetch, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("brick_inventory.cli.build_http_client", return_value=fake_fetch):
            code = main(["inventory", "41314-1"])
        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["set_number"] == "41314-1"
        assert data["name"] == "Stephanie's House"
        assert data["parts"][3]["section"] == "counterpart"
        assert [m["identifier"] for m in data["minifigures"]] == ["frnd097", "frnd099"]

    def test_writes_file(self, fake_fetch: FakeFetch, tmp_path: Path) -> None:
        out = tmp_path / "nested" / "inv.json"
        with patch("brick_inventory.cli.build_http_client", return_value=fake_fetch):
            code = main(["inventory", "41314-1", "--out", str(out), "--workers", "2"])
        assert code == 0
        assert json.loads(out.read_text(encoding="utf-8"))["thumbnail_url"] == (
            "https://img.bricklink.com/SL/41314-1.jpg"
        )

    def test_fetch_error_exit_code(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("brick_inventory.cli.build_http_client", return_value=FakeFetch({})):
            code = main(["inventory", "41314-1"])
        assert code == 3
        assert "404" in capsys.readouterr().err

    def test_invalid_config_exit_code(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["inventory", "41314-1", "--workers", "0"])
        assert code == 2
        assert "enrichment_workers" in capsys.readouterr().err

    def test_base_url_override(self, catalog_pages: dict[str, bytes], capsys: pytest.CaptureFixture[str]) -> None:
        mirror_url = SET_URL.replace("https://www.bricklink.com", "https://mirror.test")
        fetch = FakeFetch(
            {url.replace("https://www.bricklink.com", "https://mirror.test"): page for url, page in catalog_pages.items()}
        )
        with patch("brick_inventory.cli.build_http_client", return_value=fetch):
            code = main(["inventory", "41314-1", "--base-url", "https://mirror.test/"])
        assert code == 0
        assert fetch.calls[0] == mirror_url


class TestMarkdownCommand:
    def test_from_file(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(
            [
                "markdown",
                "--file",
                str(FIXTURES / "part_3742sprue.html"),
                "--source-url",
                "https://www.bricklink.com/catalogItemInv.asp?P=3742sprue",
            ]
        )
        assert code == 0
        out = capsys.readouterr().out
        assert out.startswith("| **Image**")
        assert "[3742](https://www.bricklink.com/v2/catalog/catalogitem.page?P=3742&idColor=5)" in out

    def test_missing_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["markdown", "--file", str(tmp_path / "nope.html")]) == 3

    def test_source_is_required(self) -> None:
        with pytest.raises(SystemExit):
            main(["markdown"])


class TestThumbnailCommands:
    def test_thumbnail_and_invalidate(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        url = "https://img.bricklink.com/SL/41314-1.jpg"
        fetch = FakeFetch({url: b"\xff\xd8jpeg"})
        cache_dir = tmp_path / "cache"
        out = tmp_path / "thumb.jpg"

        with patch("brick_inventory.service.build_http_client", return_value=fetch):
            code = main(["thumbnail", url, "--out", str(out), "--cache-dir", str(cache_dir)])
        assert code == 0
        assert out.read_bytes() == b"\xff\xd8jpeg"
        assert len(list(cache_dir.iterdir())) == 1

        assert main(["invalidate", url, "--cache-dir", str(cache_dir)]) == 0
        assert list(cache_dir.iterdir()) == []
        assert "invalidated" in capsys.readouterr().out

    def test_thumbnail_failure(self, tmp_path: Path) -> None:
        with patch("brick_inventory.service.build_http_client", return_value=FakeFetch({})):
            code = main(
                [
                    "thumbnail",
                    "https://img.bricklink.com/SL/none.jpg",
                    "--out",
                    str(tmp_path / "x.jpg"),
                    "--cache-dir",
                    str(tmp_path / "cache"),
                ]
            )
        assert code == 3
        assert not (tmp_path / "x.jpg").exists()


class TestColorsCommand:
    def test_prints_entries(self, capsys: pytest.CaptureFixture[str]) -> None:
        url = "https://v2.bricklink.com/en-us/catalog/color-guide"
        fetch = FakeFetch({url: (FIXTURES / "color_guide_en-us.html").read_bytes()})
        with patch("brick_inventory.cli.build_http_client", return_value=fetch):
            code = main(["colors"])
        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data[1] == {
            "bricklink_color_id": 5,
            "bricklink_name": "Red",
            "lego_color_name": "Bright Red",
            "lego_color_id": 21,
            "hex_color": "#B40000",
        }

    def test_empty_guide_exit_code(self, capsys: pytest.CaptureFixture[str]) -> None:
        url = "https://v2.bricklink.com/de-de/catalog/color-guide"
        fetch = FakeFetch({url: b"<html><body></body></html>"})
        with patch("brick_inventory.cli.build_http_client", return_value=fetch):
            code = main(["colors", "--locale", "de-de"])
        assert code == 3
        assert "color guide" in capsys.readouterr().err
