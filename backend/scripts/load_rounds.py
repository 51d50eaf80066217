#!/usr/bin/env python3
"""
Load rounds from a CSV file into the local SQLite DB.

CSV must have columns: round_id, title, lat, lng
Optional columns: start_time, chosen_tee_time (ISO 8601, e.g. 2025-06-01T15:00:00Z),
status, visibility, host_uid, max_players, accepted_count
(Header row expected.)

Each row's geohash is computed at the storage precision on insert.
  Run: python scripts/load_rounds.py --csv path/to/rounds.csv
"""
import argparse
import csv
import logging
import sqlite3
import sys
from pathlib import Path

# Add backend root to path
backend = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend))

from settings import get_settings
from src.data.rounds_repo import init_db, parse_start_time, upsert_round

logger = logging.getLogger("load_rounds")

REQUIRED_COLUMNS = ("round_id", "lat", "lng")


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Load rounds CSV into SQLite")
    parser.add_argument(
        "--csv",
        required=True,
        type=Path,
        help="Path to CSV (round_id, title, lat, lng[, start_time])",
    )
    parser.add_argument(
        "--db",
        default=backend / settings.rounds_db_path,
        type=Path,
        help="Path to SQLite DB file",
    )
    parser.add_argument(
        "--replace",
        action="store_true",
        help="Delete existing rounds before loading",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(levelname)s %(name)s %(message)s",
    )

    if not args.csv.exists():
        print(f"Error: CSV not found: {args.csv}", file=sys.stderr)
        return 1

    args.db.parent.mkdir(parents=True, exist_ok=True)
    init_db(args.db)

    count = 0
    skipped = 0
    with sqlite3.connect(args.db) as conn, open(args.csv, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames:
            print("Error: empty CSV", file=sys.stderr)
            return 1
        # Normalize headers (strip BOM / spaces)
        fieldnames = [h.strip().lower().lstrip("\ufeff") for h in reader.fieldnames]
        missing = [c for c in REQUIRED_COLUMNS if c not in fieldnames]
        if missing:
            print(f"Error: CSV is missing columns {missing}. Got: {fieldnames}", file=sys.stderr)
            return 1

        if args.replace:
            conn.execute("DELETE FROM rounds")
        for row in reader:
            row = {k.strip().lower().lstrip("\ufeff"): (v or "") for k, v in row.items() if k}
            round_id = row.get("round_id", "").strip()
            if not round_id:
                skipped += 1
                continue
            try:
                lat = float(row.get("lat", ""))
                lng = float(row.get("lng", ""))
                upsert_round(
                    conn,
                    round_id=round_id,
                    title=row.get("title", "").strip(),
                    lat=lat,
                    lng=lng,
                    start_time=parse_start_time(row.get("start_time")),
                    status=row.get("status", "").strip() or "open",
                    visibility=row.get("visibility", "").strip() or "public",
                    host_uid=row.get("host_uid", "").strip(),
                    max_players=int(row.get("max_players") or 4),
                    accepted_count=int(row.get("accepted_count") or 1),
                    chosen_tee_time=parse_start_time(row.get("chosen_tee_time")),
                )
            except ValueError:
                logger.warning("telemetry load_rounds skipped round_id=%s", round_id)
                skipped += 1
                continue
            count += 1
        conn.commit()

    print(f"Loaded {count} rounds into {args.db} (skipped {skipped})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
