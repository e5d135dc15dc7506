from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

import requests
from tqdm import tqdm

from .config import ScraperConfig
from .convert.html_to_md import html_to_markdown
from .errors import BrickInventoryError
from .logging_utils import configure_logging
from .service import InventoryService, build_http_client, build_thumbnail_cache


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--timeout", type=float, default=None)
    p.add_argument("--base-url", default=None)
    p.add_argument("-v", "--verbose", action="store_true")


def _add_cache_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--cache-dir", type=Path, default=None)
    p.add_argument("--max-concurrent-downloads", type=int, default=None)


def _config_from_args(args: argparse.Namespace) -> ScraperConfig:
    overrides: dict[str, object] = {}
    if getattr(args, "base_url", None):
        overrides["base_url"] = args.base_url
    if getattr(args, "timeout", None) is not None:
        overrides["page_timeout_s"] = float(args.timeout)
        overrides["thumbnail_timeout_s"] = float(args.timeout)
    if getattr(args, "cache_dir", None) is not None:
        overrides["cache_dir"] = args.cache_dir
    if getattr(args, "max_concurrent_downloads", None) is not None:
        overrides["max_concurrent_downloads"] = int(args.max_concurrent_downloads)
    if getattr(args, "workers", None) is not None:
        overrides["enrichment_workers"] = int(args.workers)
    # replace() re-runs validation on the overridden values.
    return replace(ScraperConfig.from_env(), **overrides)


def _write_json(payload: object, out: Path | None) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if out is None:
        print(text)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text + "\n", encoding="utf-8", newline="\n")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="brick_inventory")
    sub = parser.add_subparsers(dest="cmd", required=True)

    inv_p = sub.add_parser(
        "inventory",
        help="Fetch and parse BrickLink set inventories (minifigures resolved)",
    )
    inv_p.add_argument("set_numbers", nargs="+", metavar="SET")
    inv_p.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Write JSON here instead of stdout",
    )
    inv_p.add_argument("--workers", type=int, default=None)
    _add_common_args(inv_p)

    md_p = sub.add_parser("markdown", help="Convert an HTML page to Markdown")
    source = md_p.add_mutually_exclusive_group(required=True)
    source.add_argument("--url", default=None)
    source.add_argument("--file", type=Path, default=None)
    md_p.add_argument(
        "--source-url",
        default=None,
        help="Base URL for resolving relative links in --file",
    )
    _add_common_args(md_p)

    thumb_p = sub.add_parser("thumbnail", help="Fetch an image through the cache")
    thumb_p.add_argument("url")
    thumb_p.add_argument("--out", type=Path, required=True)
    _add_common_args(thumb_p)
    _add_cache_args(thumb_p)

    colors_p = sub.add_parser("colors", help="Fetch the BrickLink color guide")
    colors_p.add_argument("--locale", default="en-us")
    colors_p.add_argument("--out", type=Path, default=None)
    _add_common_args(colors_p)

    inval_p = sub.add_parser("invalidate", help="Drop an image from the cache")
    inval_p.add_argument("url")
    _add_common_args(inval_p)
    _add_cache_args(inval_p)

    args = parser.parse_args(argv)
    configure_logging(verbose=bool(args.verbose))

    try:
        config = _config_from_args(args)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2

    if args.cmd == "inventory":
        http = build_http_client(config)
        service = InventoryService(http.fetch_bytes, config=config)
        inventories = []
        try:
            for set_number in tqdm(
                args.set_numbers,
                desc="Inventories",
                unit="set",
                disable=len(args.set_numbers) < 2,
            ):
                inventories.append(service.fetch_inventory(set_number).to_dict())
        except (BrickInventoryError, requests.RequestException) as e:
            print(str(e), file=sys.stderr)
            return 3

        payload: object = inventories[0] if len(inventories) == 1 else inventories
        try:
            _write_json(payload, args.out)
        except OSError as e:
            print(str(e), file=sys.stderr)
            return 2
        return 0

    if args.cmd == "markdown":
        try:
            if args.file is not None:
                html: bytes = args.file.read_bytes()
                source_url = args.source_url
            else:
                http = build_http_client(config)
                html = http.fetch_bytes(args.url)
                source_url = args.url
            print(html_to_markdown(html, source_url=source_url))
        except (OSError, BrickInventoryError, requests.RequestException) as e:
            print(str(e), file=sys.stderr)
            return 3
        return 0

    if args.cmd == "colors":
        http = build_http_client(config)
        service = InventoryService(http.fetch_bytes, config=config)
        try:
            entries = service.fetch_color_guide(args.locale)
            _write_json([e.to_dict() for e in entries], args.out)
        except (OSError, BrickInventoryError, requests.RequestException) as e:
            print(str(e), file=sys.stderr)
            return 3
        return 0

    if args.cmd == "thumbnail":
        try:
            with build_thumbnail_cache(config) as cache:
                data = cache.get(args.url)
            args.out.parent.mkdir(parents=True, exist_ok=True)
            args.out.write_bytes(data)
        except (OSError, BrickInventoryError, requests.RequestException) as e:
            print(str(e), file=sys.stderr)
            return 3
        print(f"thumbnail: {args.url} -> {args.out} ({len(data)} bytes)")
        return 0

    if args.cmd == "invalidate":
        try:
            with build_thumbnail_cache(config) as cache:
                cache.invalidate(args.url)
        except OSError as e:
            print(str(e), file=sys.stderr)
            return 2
        print(f"invalidated: {args.url}")
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
