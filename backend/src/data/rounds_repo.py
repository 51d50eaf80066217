"""
Local rounds repository: SQLite table with a stored geohash column.
Serves the lexicographic range queries planned by src.geo.bounds, and
date-window queries for discovery searches.
"""
import asyncio
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple

from src.geo.geohash import encode
from src.geo.models import GeoRange
from src.geo.precision import STORAGE_PRECISION
from src.search.models import Candidate

_COLUMNS = "round_id, lat, lng, geohash, start_time, status, visibility, max_players, accepted_count, host_uid, chosen_tee_time"
# Rounds with only a chosen tee time are dated by it
_EFFECTIVE_START = "COALESCE(start_time, chosen_tee_time)"


class RoundRecord(NamedTuple):
    round_id: str
    title: str
    lat: float
    lng: float
    geohash: str
    start_time: datetime | None = None
    status: str = "open"
    visibility: str = "public"
    max_players: int = 4
    accepted_count: int = 1
    host_uid: str = ""
    chosen_tee_time: datetime | None = None


def _to_db_time(value: datetime | None) -> str | None:
    """Store times as UTC ISO strings so text comparison matches time order."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="seconds")


def parse_start_time(value: str | None) -> datetime | None:
    if not value or not value.strip():
        return None
    try:
        t = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if t.tzinfo is None:
        t = t.replace(tzinfo=timezone.utc)
    return t


def init_db(db_path: str | Path) -> None:
    """Create rounds table and indexes if they do not exist; add newer columns to older DBs."""
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS rounds (
                round_id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                lat REAL,
                lng REAL,
                geohash TEXT NOT NULL DEFAULT '',
                start_time TEXT
            )
            """
        )
        # Optional columns (backward-compatible migration)
        cols = [r[1] for r in conn.execute("PRAGMA table_info(rounds)").fetchall()]
        for col, typ in (
            ("host_uid", "TEXT NOT NULL DEFAULT ''"),
            ("status", "TEXT NOT NULL DEFAULT 'open'"),
            ("visibility", "TEXT NOT NULL DEFAULT 'public'"),
            ("max_players", "INTEGER NOT NULL DEFAULT 4"),
            ("accepted_count", "INTEGER NOT NULL DEFAULT 1"),
            ("chosen_tee_time", "TEXT"),
        ):
            if col not in cols:
                conn.execute(f"ALTER TABLE rounds ADD COLUMN {col} {typ}")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_rounds_geohash ON rounds(geohash)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_rounds_start_time ON rounds(start_time)")
        conn.commit()


def upsert_round(
    conn: sqlite3.Connection,
    round_id: str,
    title: str,
    lat: float,
    lng: float,
    start_time: datetime | None = None,
    *,
    status: str = "open",
    visibility: str = "public",
    max_players: int = 4,
    accepted_count: int = 1,
    host_uid: str = "",
    chosen_tee_time: datetime | None = None,
) -> RoundRecord:
    """Insert or replace a round, writing its geohash at STORAGE_PRECISION."""
    geohash = encode(lat, lng, STORAGE_PRECISION)
    if geohash is None:
        raise ValueError(f"invalid_coordinates lat={lat} lng={lng}")
    conn.execute(
        """
        INSERT OR REPLACE INTO rounds
            (round_id, title, lat, lng, geohash, start_time,
             status, visibility, max_players, accepted_count, host_uid, chosen_tee_time)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            round_id,
            title,
            lat,
            lng,
            geohash,
            _to_db_time(start_time),
            status,
            visibility,
            max_players,
            accepted_count,
            host_uid,
            _to_db_time(chosen_tee_time),
        ),
    )
    return RoundRecord(
        round_id=round_id,
        title=title,
        lat=lat,
        lng=lng,
        geohash=geohash,
        start_time=start_time,
        status=status,
        visibility=visibility,
        max_players=max_players,
        accepted_count=accepted_count,
        host_uid=host_uid,
        chosen_tee_time=chosen_tee_time,
    )


def _row_to_candidate(r: sqlite3.Row) -> Candidate:
    return Candidate(
        id=r["round_id"],
        lat=r["lat"],
        lng=r["lng"],
        geohash=r["geohash"],
        start_time=parse_start_time(r["start_time"]),
        status=r["status"],
        visibility=r["visibility"],
        max_players=r["max_players"],
        accepted_count=r["accepted_count"],
        host_uid=r["host_uid"],
        chosen_tee_time=parse_start_time(r["chosen_tee_time"]),
    )


def _query(db_path: Path, sql: str, params: list) -> list[Candidate]:
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        rows = conn.execute(sql, params).fetchall()
    return [_row_to_candidate(r) for r in rows]


def fetch_range(
    db_path: str | Path,
    bound: GeoRange,
    limit: int,
    start_time_min: datetime | None = None,
    start_time_max: datetime | None = None,
) -> list[Candidate]:
    """
    Return up to limit rounds with bound.start <= geohash < bound.end, ordered by geohash.
    When a time window is given, only rounds whose start time (or chosen tee time)
    falls in start_time_min <= t < start_time_max match.
    """
    db_path = Path(db_path)
    if not db_path.exists() or limit <= 0:
        return []

    sql = f"SELECT {_COLUMNS} FROM rounds WHERE geohash >= ? AND geohash < ?"
    params: list = [bound.start, bound.end]
    if start_time_min is not None:
        sql += f" AND {_EFFECTIVE_START} >= ?"
        params.append(_to_db_time(start_time_min))
    if start_time_max is not None:
        sql += f" AND {_EFFECTIVE_START} < ?"
        params.append(_to_db_time(start_time_max))
    sql += " ORDER BY geohash, round_id LIMIT ?"
    params.append(limit)
    return _query(db_path, sql, params)


def fetch_by_start_time(
    db_path: str | Path,
    start_time_min: datetime,
    start_time_max: datetime,
    limit: int,
) -> list[Candidate]:
    """Return up to limit rounds starting in [start_time_min, start_time_max), soonest first, anywhere."""
    db_path = Path(db_path)
    if not db_path.exists() or limit <= 0:
        return []
    sql = (
        f"SELECT {_COLUMNS} FROM rounds WHERE {_EFFECTIVE_START} >= ? AND {_EFFECTIVE_START} < ?"
        f" ORDER BY {_EFFECTIVE_START}, round_id LIMIT ?"
    )
    return _query(db_path, sql, [_to_db_time(start_time_min), _to_db_time(start_time_max), limit])


def make_range_fetcher(db_path: str | Path):
    """Adapt fetch_range to the async fetcher signature used by search_nearby. Each query runs in a worker thread."""

    async def _fetch(
        bound: GeoRange,
        limit: int,
        start_time_min: datetime | None,
        start_time_max: datetime | None,
    ) -> list[Candidate]:
        return await asyncio.to_thread(fetch_range, db_path, bound, limit, start_time_min, start_time_max)

    return _fetch


def make_date_fetcher(db_path: str | Path):
    """Adapt fetch_by_start_time for discovery searches."""

    async def _fetch(start_time_min: datetime, start_time_max: datetime, limit: int) -> list[Candidate]:
        return await asyncio.to_thread(fetch_by_start_time, db_path, start_time_min, start_time_max, limit)

    return _fetch
