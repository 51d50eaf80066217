"""In-memory search metrics (production: replace with Prometheus or similar)."""
import time
from collections.abc import MutableMapping
from threading import Lock

_start_time = time.monotonic()
_counts: MutableMapping[str, int] = {}
_lock = Lock()


def record_search(*, ranges: int, fetched: int, results: int, truncated: bool, discovery: bool = False) -> None:
    with _lock:
        _counts["searches"] = _counts.get("searches", 0) + 1
        _counts["ranges"] = _counts.get("ranges", 0) + ranges
        _counts["candidates"] = _counts.get("candidates", 0) + fetched
        _counts["results"] = _counts.get("results", 0) + results
        if truncated:
            _counts["truncated"] = _counts.get("truncated", 0) + 1
        if discovery:
            _counts["discovery"] = _counts.get("discovery", 0) + 1
        elif ranges == 0:
            _counts["empty_plans"] = _counts.get("empty_plans", 0) + 1


def get_metrics() -> dict:
    with _lock:
        counts = dict(_counts)
    uptime_seconds = time.monotonic() - _start_time
    return {
        "searches_total": counts.get("searches", 0),
        "ranges_queried_total": counts.get("ranges", 0),
        "candidates_fetched_total": counts.get("candidates", 0),
        "results_total": counts.get("results", 0),
        "searches_truncated": counts.get("truncated", 0),
        "searches_empty_plan": counts.get("empty_plans", 0),
        "searches_discovery": counts.get("discovery", 0),
        "uptime_seconds": round(uptime_seconds, 1),
    }


def reset_metrics() -> None:
    with _lock:
        _counts.clear()
