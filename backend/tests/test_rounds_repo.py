"""Tests for rounds_repo geohash range and start time queries."""
import asyncio
import sqlite3
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from src.data.rounds_repo import (
    fetch_by_start_time,
    fetch_range,
    init_db,
    make_date_fetcher,
    make_range_fetcher,
    parse_start_time,
    upsert_round,
)
from src.geo.bounds import range_for
from src.geo.geohash import encode
from src.geo.precision import STORAGE_PRECISION

JUNE_1 = datetime(2025, 6, 1, 15, 0, tzinfo=timezone.utc)
JUNE_20 = datetime(2025, 6, 20, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def temp_db():
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = f.name
    try:
        init_db(path)
        with sqlite3.connect(path) as conn:
            upsert_round(conn, "sf-1", "Presidio", 37.78, -122.42, JUNE_1)
            upsert_round(conn, "sf-2", "Lincoln Park", 37.7749, -122.4194, JUNE_20)
            upsert_round(conn, "marin", "Mill Valley", 37.9, -122.0, JUNE_1)
            upsert_round(conn, "nyc", "Van Cortlandt", 40.8876, -73.8874, None)
            conn.commit()
        yield path
    finally:
        Path(path).unlink(missing_ok=True)


def test_upsert_writes_storage_precision_geohash(temp_db):
    with sqlite3.connect(temp_db) as conn:
        row = conn.execute("SELECT geohash FROM rounds WHERE round_id = ?", ("sf-1",)).fetchone()
    assert row[0] == encode(37.78, -122.42, STORAGE_PRECISION)
    assert len(row[0]) == STORAGE_PRECISION


def test_upsert_rejects_invalid_coordinates(temp_db):
    with sqlite3.connect(temp_db) as conn:
        with pytest.raises(ValueError):
            upsert_round(conn, "bad", "Nowhere", 91.0, 0.0)


def test_fetch_range_matches_prefix(temp_db):
    prefix = encode(37.7749, -122.4194, 5)
    rows = fetch_range(temp_db, range_for(prefix), limit=10)
    ids = {r.id for r in rows}
    assert "sf-2" in ids
    assert "nyc" not in ids
    assert all(r.geohash.startswith(prefix) for r in rows)


def test_fetch_range_respects_limit(temp_db):
    rows = fetch_range(temp_db, range_for("9"), limit=1)
    assert len(rows) == 1


def test_fetch_range_time_window(temp_db):
    rows = fetch_range(
        temp_db,
        range_for("9"),
        limit=10,
        start_time_min=datetime(2025, 6, 10, tzinfo=timezone.utc),
        start_time_max=datetime(2025, 7, 1, tzinfo=timezone.utc),
    )
    assert [r.id for r in rows] == ["sf-2"]
    assert rows[0].start_time == JUNE_20


def test_fetch_range_empty_when_db_missing():
    assert fetch_range("/nonexistent/rounds.db", range_for("9q"), limit=10) == []


def test_make_range_fetcher_runs_async(temp_db):
    fetch = make_range_fetcher(temp_db)
    rows = asyncio.run(fetch(range_for("dr"), 10, None, None))
    assert [r.id for r in rows] == ["nyc"]
    assert rows[0].start_time is None


def test_parse_start_time():
    assert parse_start_time("2025-06-01T15:00:00Z") == JUNE_1
    naive = parse_start_time("2025-06-01T15:00:00")
    assert naive.tzinfo is not None
    assert parse_start_time("") is None
    assert parse_start_time(None) is None
    assert parse_start_time("tomorrow") is None


def test_upsert_stores_round_attributes(temp_db):
    tee = datetime(2025, 6, 5, 8, 0, tzinfo=timezone.utc)
    with sqlite3.connect(temp_db) as conn:
        upsert_round(
            conn,
            "harding",
            "Harding Park",
            37.72,
            -122.49,
            status="closed",
            visibility="friends",
            max_players=3,
            accepted_count=3,
            host_uid="host-1",
            chosen_tee_time=tee,
        )
        conn.commit()
    rows = fetch_range(temp_db, range_for(encode(37.72, -122.49, 5)), limit=10)
    row = next(r for r in rows if r.id == "harding")
    assert (row.status, row.visibility, row.host_uid) == ("closed", "friends", "host-1")
    assert row.is_full
    assert row.start_time is None
    assert row.effective_start == tee


def test_fetch_range_time_window_uses_chosen_tee_time(temp_db):
    with sqlite3.connect(temp_db) as conn:
        upsert_round(conn, "tee-only", "Harding Park", 37.72, -122.49, chosen_tee_time=JUNE_20)
        conn.commit()
    rows = fetch_range(
        temp_db,
        range_for("9"),
        limit=10,
        start_time_min=datetime(2025, 6, 10, tzinfo=timezone.utc),
        start_time_max=datetime(2025, 7, 1, tzinfo=timezone.utc),
    )
    assert {r.id for r in rows} == {"tee-only", "sf-2"}


def test_fetch_by_start_time_orders_across_regions(temp_db):
    rows = fetch_by_start_time(
        temp_db,
        datetime(2025, 6, 1, tzinfo=timezone.utc),
        datetime(2025, 7, 1, tzinfo=timezone.utc),
        limit=10,
    )
    assert [r.id for r in rows] == ["marin", "sf-1", "sf-2"]
    assert fetch_by_start_time(temp_db, JUNE_20, JUNE_20, limit=10) == []
    assert fetch_by_start_time("/nonexistent/rounds.db", JUNE_1, JUNE_20, limit=10) == []


def test_make_date_fetcher_runs_async(temp_db):
    fetch = make_date_fetcher(temp_db)
    rows = asyncio.run(fetch(JUNE_20, datetime(2025, 6, 21, tzinfo=timezone.utc), 10))
    assert [r.id for r in rows] == ["sf-2"]


def test_init_db_adds_columns_to_older_table():
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = f.name
    try:
        with sqlite3.connect(path) as conn:
            conn.execute(
                "CREATE TABLE rounds (round_id TEXT PRIMARY KEY, title TEXT NOT NULL, lat REAL, lng REAL,"
                " geohash TEXT NOT NULL DEFAULT '', start_time TEXT)"
            )
            conn.execute(
                "INSERT INTO rounds VALUES (?, ?, ?, ?, ?, ?)",
                ("old", "Presidio", 37.78, -122.42, encode(37.78, -122.42, STORAGE_PRECISION), None),
            )
            conn.commit()
        init_db(path)
        rows = fetch_range(path, range_for("9q"), limit=10)
        assert [r.id for r in rows] == ["old"]
        assert (rows[0].status, rows[0].visibility, rows[0].max_players, rows[0].accepted_count) == ("open", "public", 4, 1)
    finally:
        Path(path).unlink(missing_ok=True)
