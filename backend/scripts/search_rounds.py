#!/usr/bin/env python3
"""
Run a nearby rounds search against the local SQLite DB and print the JSON response.

  Run: python scripts/search_rounds.py --lat 37.7749 --lng -122.4194 --radius-miles 5
       python scripts/search_rounds.py --discovery --days 7
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add backend root to path
backend = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend))

from pydantic import ValidationError

from settings import get_settings
from src.data.rounds_repo import make_date_fetcher, make_range_fetcher
from src.geo.precision import DEFAULT_DATE_WINDOW_DAYS, DEFAULT_RADIUS_MILES
from src.search.models import DEFAULT_PAGE_SIZE, NearbySearchRequest
from src.search.service import SearchError, search_nearby


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Search rounds near a point")
    parser.add_argument("--lat", type=float)
    parser.add_argument("--lng", type=float)
    parser.add_argument("--radius-miles", default=DEFAULT_RADIUS_MILES, type=float)
    parser.add_argument(
        "--days",
        default=DEFAULT_DATE_WINDOW_DAYS,
        type=int,
        help="Only rounds starting within this many days from now (0 = any time)",
    )
    parser.add_argument("--limit", default=DEFAULT_PAGE_SIZE, type=int, help="Page size")
    parser.add_argument("--status", default="open", help="Round status to match ('any' disables the filter)")
    parser.add_argument("--visibility", default=None, help="Round visibility (default: public)")
    parser.add_argument("--host", default=None, help="Only rounds hosted by this uid")
    parser.add_argument("--include-full", action="store_true", help="Include rounds with no open spots")
    parser.add_argument(
        "--discovery",
        action="store_true",
        help="Date-only search anywhere, soonest first (--days must be > 0)",
    )
    parser.add_argument(
        "--db",
        default=backend / settings.rounds_db_path,
        type=Path,
        help="Path to SQLite DB file",
    )
    args = parser.parse_args()
    if not args.discovery and (args.lat is None or args.lng is None):
        parser.error("--lat and --lng are required unless --discovery is set")

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else settings.log_level.upper(),
        format="%(levelname)s %(name)s %(message)s",
    )

    if not args.db.exists():
        print(f"Error: DB not found: {args.db} (run scripts/load_rounds.py first)", file=sys.stderr)
        return 1

    try:
        request = NearbySearchRequest(
            lat=args.lat if args.lat is not None else 0.0,
            lng=args.lng if args.lng is not None else 0.0,
            radius_miles=args.radius_miles,
            date_window_days=args.days,
            page_size=args.limit,
            status=None if args.status == "any" else args.status,
            visibility=args.visibility,
            host_uid=args.host,
            exclude_full_rounds=not args.include_full,
            discovery_mode=args.discovery,
        )
        response = asyncio.run(
            search_nearby(
                request,
                fetch_range=make_range_fetcher(args.db),
                fetch_by_date=make_date_fetcher(args.db),
            )
        )
    except (ValidationError, SearchError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(response.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
