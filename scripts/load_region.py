#!/usr/bin/env python3
"""Load one parent region through regionfeed and report the result.

Usage
-----
Point the loader at a feature server and run::

    export REGIONFEED_BASE_URL="https://maps.example.org"
    python scripts/load_region.py GM0363 --layer bag

Options::

    --layer {bag,postcode6}   Layer to load (default: bag)
    --keys 1011,1012          Use these child keys instead of asking the server
    --cache PATH              SQLite cache file (default: REGIONFEED_CACHE_PATH or memory)
    --output FILE             Write the merged GeoJSON to FILE
    --cancel-after SECONDS    Cancel the load after SECONDS (for testing cancellation)
    -v / --verbose            Enable DEBUG logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import aiohttp

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from regionfeed import (  # noqa: E402
    BAG_LAYER,
    POSTCODE6_LAYER,
    LoaderConfig,
    RegionFeedError,
    RegionLoader,
    RemoteKeyResolver,
    StaticKeyResolver,
)
from regionfeed._transport import HttpTransport  # noqa: E402

_LAYERS = {"bag": BAG_LAYER, "postcode6": POSTCODE6_LAYER}


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("parent", help="Parent region key, e.g. GM0363")
    parser.add_argument("--layer", choices=sorted(_LAYERS), default="bag")
    parser.add_argument("--keys", help="Comma separated child keys")
    parser.add_argument("--cache", help="SQLite cache file")
    parser.add_argument("--output", type=Path, help="Write merged GeoJSON here")
    parser.add_argument("--cancel-after", type=float, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def _print_progress(message: str, loaded: int, total: int) -> None:
    if message:
        print(f"[{loaded}/{total}] {message}", file=sys.stderr)


async def _run(args: argparse.Namespace) -> int:
    overrides = {"cache_path": args.cache} if args.cache else {}
    config = LoaderConfig.from_env(**overrides)
    layer = _LAYERS[args.layer]

    async with aiohttp.ClientSession() as http:
        if args.keys:
            resolver = StaticKeyResolver({args.parent: args.keys.split(",")})
        else:
            endpoint = layer.writeback_endpoint or layer.endpoint
            resolver = RemoteKeyResolver(
                HttpTransport(config, http),
                endpoint,
                parent_param=layer.parent_param,
            )

        async with RegionLoader(config, layer, resolver, session=http) as loader:
            loader.on_progress(_print_progress)
            handle = loader.start_load(args.parent)
            if args.cancel_after is not None:
                asyncio.get_running_loop().call_later(args.cancel_after, handle.cancel)
            try:
                result = await handle.wait()
            except RegionFeedError as exc:
                print(f"error: {exc}", file=sys.stderr)
                return 1

    print(
        f"{result.state}: {len(result.features)} features, "
        f"{result.loaded_count}/{result.total_count} regions, failed={result.failed_keys}"
    )
    if args.output:
        args.output.write_text(json.dumps(result.collection.to_geojson()), encoding="utf-8")
        print(f"Wrote {args.output}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
