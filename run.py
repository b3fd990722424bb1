"""CLI entrypoint."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from sweekar import categories, config
from sweekar.app import AppSettings, SweekarApp
from sweekar.discovery import CycleResult, CycleState
from sweekar.geo import validate_coordinate
from sweekar.listing import filter_by_name, paginate
from sweekar.location import FixedLocationProvider, GeolocationProvider, ReplayLocationProvider
from sweekar.reporting import (
    ensure_dir,
    render_summary,
    write_json_object,
    write_resources_csv,
    write_resources_json,
    write_summary,
)

_load_dotenv = load_dotenv


def _repo_root() -> Path:
    return Path(__file__).resolve().parent


def load_env(path: str = ".env", root_dir: Optional[Path] = None) -> None:
    """Optionally load a repo-root .env file without overriding real env vars."""
    root = Path(root_dir) if root_dir else _repo_root()
    env_path = (root / path).resolve()
    if not env_path.exists():
        return
    _load_dotenv(dotenv_path=env_path, override=False)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find women's and LGBTQIA+ support resources nearby")
    parser.add_argument("--preflight", action="store_true", help="Run offline checks only")
    parser.add_argument(
        "--list-categories",
        choices=sorted(categories.CATEGORY_GROUPS),
        default=None,
        help="Print the category catalogue for a group and exit",
    )
    parser.add_argument("--category-search", type=str, default="", help="Filter --list-categories by name")
    parser.add_argument("--category", type=str, default=None, help="Category key, e.g. safety or lgbtq_healthcare")
    parser.add_argument("--lat", type=float, default=None)
    parser.add_argument("--lng", type=float, default=None)
    parser.add_argument(
        "--fixes",
        type=str,
        default=None,
        help="JSON Lines file of location fixes to replay as a location watch",
    )
    parser.add_argument(
        "--fix-interval",
        type=float,
        default=0.0,
        help="Seconds between replayed fixes (default: 0)",
    )
    parser.add_argument("--search", type=str, default="", help="Only keep resources whose name contains this")
    parser.add_argument("--page", type=int, default=1, help="Page of results to print")
    parser.add_argument(
        "--max-requests",
        type=int,
        default=config.MAX_PLACES_REQUESTS_PER_CYCLE,
        help="Places requests allowed per cycle (default: derived from the category)",
    )
    parser.add_argument("--store-path", type=str, default=config.STORE_DB_PATH)
    parser.add_argument("--categories-file", type=str, default=None, help="Optional categories.json override")
    parser.add_argument("--out", type=str, default=config.OUTPUT_DIR)
    return parser.parse_args(argv)


def build_location_provider(args: argparse.Namespace) -> Optional[GeolocationProvider]:
    if args.fixes:
        return ReplayLocationProvider.from_jsonl(args.fixes, interval_seconds=args.fix_interval)
    if (args.lat is None) != (args.lng is None):
        raise ValueError("--lat and --lng must be given together")
    if args.lat is not None:
        return FixedLocationProvider(validate_coordinate(args.lat, args.lng))
    return None


async def discover(app: SweekarApp, category: Optional[str], watch: bool) -> Optional[CycleResult]:
    if not watch:
        return await app.discovery.discover_once(category)
    session = app.discovery.start(category)
    try:
        results = await session.wait()
    finally:
        await session.close()
    return results[-1] if results else None


def print_categories(group: str, term: str) -> None:
    for info in categories.search_categories(term, group):
        profile = categories.lookup(info.key)
        marker = "" if profile is not categories.FALLBACK_PROFILE else " (generic search)"
        print(f"{info.key:<22} {info.name}{marker} - {info.description}")


def run_preflight(api_key: Optional[str], store_path: str) -> int:
    ok = True
    if api_key:
        print("API key: OK")
    else:
        print("API key: MISSING")
        ok = False

    print(f"Categories: {len(categories.known_keys())} configured")

    store_dir = Path(store_path).resolve().parent
    if os.access(store_dir, os.W_OK):
        print(f"Store: OK ({store_path})")
    else:
        print(f"Store: FAIL ({store_dir} is not writable)")
        ok = False

    print("Preflight: PASS" if ok else "Preflight: FAIL")
    return 0 if ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    load_env()
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        config.load_category_overrides(args.categories_file)
    except (OSError, ValueError) as exc:
        print(f"Error: invalid categories file: {exc}", file=sys.stderr)
        return 1

    if args.list_categories:
        print_categories(args.list_categories, args.category_search)
        return 0

    if args.preflight:
        api_key = (os.environ.get(config.API_KEY_ENV) or "").strip()
        return run_preflight(api_key, args.store_path)

    try:
        provider = build_location_provider(args)
        settings = AppSettings.from_env(
            store_path=args.store_path,
            max_requests_per_cycle=args.max_requests,
        )
        with SweekarApp(settings, location_provider=provider) as app:
            result = asyncio.run(discover(app, args.category, watch=bool(args.fixes)))
            metrics = app.metrics.as_dict()
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if result is None:
        print("No discovery cycle completed.", file=sys.stderr)
        return 1
    if result.state == CycleState.FAILED:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    resources = filter_by_name(result.resources, args.search)
    page = paginate(resources, args.page)

    ensure_dir(args.out)
    write_resources_json(f"{args.out}/resources.json", resources)
    write_resources_csv(f"{args.out}/resources.csv", resources)
    summary_lines = render_summary(result, metrics)
    write_summary(f"{args.out}/summary.txt", summary_lines)
    write_json_object(f"{args.out}/summary.json", {**result.summary(), "requests": metrics})

    for line in summary_lines:
        print(line)
    if not page.items:
        if args.search:
            print(f'No resources found matching "{args.search}"')
        else:
            print(f"No {result.category} resources found nearby")
    else:
        print(f"Page {page.page} / {page.total_pages}:")
        for resource in page.items:
            print(f"- {resource.name} | {resource.address} | {resource.phone} | {resource.status}")
    print(f"Done. Results written to {args.out}/resources.csv and {args.out}/resources.json")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
