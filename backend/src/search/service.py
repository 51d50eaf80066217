"""
Nearby rounds search: plan geohash ranges, fan out range queries, then
filter and rank the merged candidates by exact Haversine distance.
The store is injected as an async fetch_range callable; discovery mode
(date window only, anywhere) uses an injected fetch_by_date callable instead.
"""
import asyncio
import logging
import time
from collections.abc import Awaitable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Callable

from src.geo.bounds import query_bounds
from src.geo.distance import haversine_distance_miles
from src.geo.models import GeoRange, SearchLimits
from src.geo.precision import SEARCH_LIMITS, query_precision
from src.monitoring import record_search
from src.search.models import (
    Candidate,
    NearbyPageCursor,
    NearbyResult,
    NearbySearchRequest,
    NearbySearchResponse,
    SearchDebugInfo,
)

logger = logging.getLogger(__name__)

# bound, limit, start_time_min, start_time_max
RangeFetcher = Callable[[GeoRange, int, datetime | None, datetime | None], Awaitable[list[Candidate]]]
# start_time_min, start_time_max, limit
DateFetcher = Callable[[datetime, datetime, int], Awaitable[list[Candidate]]]

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


class SearchError(ValueError):
    """Base for rejected search requests; message is a stable code."""


class InvalidCoordinatesError(SearchError):
    def __init__(self):
        super().__init__("invalid_coordinates")


class RadiusTooLargeError(SearchError):
    def __init__(self):
        super().__init__("radius_out_of_range")


class DateWindowTooLargeError(SearchError):
    def __init__(self):
        super().__init__("date_window_out_of_range")


class DateWindowInvalidError(SearchError):
    def __init__(self):
        super().__init__("date_window_invalid")


class InvalidCursorError(SearchError):
    def __init__(self):
        super().__init__("invalid_cursor")


def validate_request(request: NearbySearchRequest, limits: SearchLimits = SEARCH_LIMITS) -> None:
    """Re-check bounds against `limits`, which may be tighter than the model's defaults."""
    if not request.discovery_mode:
        if not (-90 <= request.lat <= 90) or not (-180 <= request.lng <= 180):
            raise InvalidCoordinatesError()
        if not (0 < request.radius_miles <= limits.max_radius_miles):
            raise RadiusTooLargeError()
    if not (0 <= request.date_window_days <= limits.max_date_window_days):
        raise DateWindowTooLargeError()
    if request.discovery_mode and request.date_window_days == 0:
        # Discovery has no geo bound, so it needs a real window
        raise DateWindowInvalidError()

    cursor = request.cursor
    if cursor is not None:
        if request.discovery_mode and cursor.last_start_time is None:
            raise InvalidCursorError()
        if not request.discovery_mode and cursor.last_distance_miles is None:
            raise InvalidCursorError()


def _utc(t: datetime) -> datetime:
    return t.replace(tzinfo=timezone.utc) if t.tzinfo is None else t


def _in_window(candidate: Candidate, start_min: datetime, start_max: datetime) -> bool:
    t = candidate.effective_start
    if t is None:
        return False
    return start_min <= _utc(t) < start_max


def apply_round_filters(candidates: Iterable[Candidate], request: NearbySearchRequest) -> list[Candidate]:
    """Status, visibility (public unless asked otherwise), full rounds, host."""
    visibility = request.visibility or "public"
    out = []
    for c in candidates:
        if request.status is not None and c.status != request.status:
            continue
        if c.visibility != visibility:
            continue
        if request.exclude_full_rounds and c.is_full:
            continue
        if request.host_uid is not None and c.host_uid != request.host_uid:
            continue
        out.append(c)
    return out


def rank_candidates(
    lat: float,
    lng: float,
    radius_miles: float,
    candidates: Iterable[Candidate],
) -> list[NearbyResult]:
    """Drop rows without coordinates or outside radius_miles; sort by (distance, id)."""
    with_dist: list[tuple[float, str, datetime | None]] = []
    for c in candidates:
        if c.lat is None or c.lng is None:
            continue
        d = haversine_distance_miles(lat, lng, c.lat, c.lng)
        if d <= radius_miles:
            with_dist.append((d, c.id, c.effective_start))
    with_dist.sort(key=lambda x: (x[0], x[1]))
    return [NearbyResult(id=cid, distance_miles=d, start_time=t) for d, cid, t in with_dist]


def order_by_start_time(candidates: Iterable[Candidate]) -> list[NearbyResult]:
    """Sort by (start time, id); rounds without any start time go last."""
    rows = sorted(candidates, key=lambda c: (_utc(c.effective_start) if c.effective_start else _FAR_FUTURE, c.id))
    return [NearbyResult(id=c.id, start_time=c.effective_start) for c in rows]


def _after_cursor(results: list[NearbyResult], cursor: NearbyPageCursor | None) -> list[NearbyResult]:
    if cursor is None:
        return results
    if cursor.last_distance_miles is not None:
        key = (cursor.last_distance_miles, cursor.last_id)
        return [r for r in results if (r.distance_miles, r.id) > key]
    key = (_utc(cursor.last_start_time), cursor.last_id)
    return [r for r in results if (_utc(r.start_time) if r.start_time else _FAR_FUTURE, r.id) > key]


def _page(
    results: list[NearbyResult],
    page_size: int,
    discovery: bool,
) -> tuple[list[NearbyResult], bool, NearbyPageCursor | None]:
    page = results[:page_size]
    has_more = len(results) > len(page)
    next_cursor = None
    if has_more and page:
        last = page[-1]
        if discovery:
            if last.start_time is not None:
                next_cursor = NearbyPageCursor(last_id=last.id, last_start_time=last.start_time)
        else:
            next_cursor = NearbyPageCursor(last_id=last.id, last_distance_miles=last.distance_miles)
    return page, has_more, next_cursor


async def _fetch_all(
    fetch_range: RangeFetcher,
    ranges: list[GeoRange],
    limit: int,
    start_min: datetime | None,
    start_max: datetime | None,
) -> list[list[Candidate]]:
    """Run one query per range concurrently; if any fails the rest are cancelled and awaited."""
    tasks = [asyncio.ensure_future(fetch_range(bound, limit, start_min, start_max)) for bound in ranges]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def search_nearby(
    request: NearbySearchRequest,
    *,
    fetch_range: RangeFetcher | None = None,
    fetch_by_date: DateFetcher | None = None,
    now: datetime | None = None,
    limits: SearchLimits = SEARCH_LIMITS,
) -> NearbySearchResponse:
    """
    Return rounds within request.radius_miles of (lat, lng), nearest first, up to page_size.
    With discovery_mode, return rounds in the date window anywhere, soonest first.
    Raises SearchError for out-of-range input; errors from the fetchers propagate.
    """
    validate_request(request, limits)
    now = _utc(now) if now is not None else datetime.now(timezone.utc)

    if request.discovery_mode:
        if fetch_by_date is None:
            raise TypeError("discovery search needs fetch_by_date")
        return await _search_discovery(request, fetch_by_date, now, limits)
    if fetch_range is None:
        raise TypeError("geo search needs fetch_range")
    return await _search_geo(request, fetch_range, now, limits)


async def _search_geo(
    request: NearbySearchRequest,
    fetch_range: RangeFetcher,
    now: datetime,
    limits: SearchLimits,
) -> NearbySearchResponse:
    start = time.perf_counter()
    precision = query_precision(request.radius_miles)
    ranges = query_bounds(request.lat, request.lng, precision)
    if not ranges:
        logger.info("telemetry geo_search empty_plan lat=%s lng=%s", request.lat, request.lng)
        record_search(ranges=0, fetched=0, results=0, truncated=False)
        return NearbySearchResponse(items=[])

    start_min: datetime | None = None
    start_max: datetime | None = None
    if request.date_window_days > 0:
        start_min = now
        start_max = now + timedelta(days=request.date_window_days)

    per_range = min(limits.per_range_limit, limits.max_candidates_total)
    # All range queries are joined here before any distance filtering
    results = await _fetch_all(fetch_range, ranges, per_range, start_min, start_max)

    fetched = 0
    is_truncated = False
    unique: dict[str, Candidate] = {}
    for rows in results:
        fetched += len(rows)
        if len(rows) >= per_range:
            is_truncated = True
        for row in rows:
            if row.id in unique:
                continue
            if len(unique) >= limits.max_candidates_total:
                is_truncated = True
                break
            unique[row.id] = row

    candidates = list(unique.values())
    if start_min is not None and start_max is not None:
        candidates = [c for c in candidates if _in_window(c, start_min, start_max)]
    after_date = len(candidates)

    candidates = apply_round_filters(candidates, request)
    ranked = rank_candidates(request.lat, request.lng, request.radius_miles, candidates)
    page, has_more, next_cursor = _page(_after_cursor(ranked, request.cursor), request.page_size, discovery=False)
    duration_ms = int((time.perf_counter() - start) * 1000)

    debug = SearchDebugInfo(
        ranges_queried=len(ranges),
        candidates_fetched=fetched,
        candidates_after_date=after_date,
        candidates_after_distance=len(ranked),
        results_count=len(page),
        duration_ms=duration_ms,
        precision=precision,
    )
    logger.info(
        "telemetry geo_search precision=%s ranges=%s fetched=%s unique=%s results=%s truncated=%s duration_ms=%s",
        precision,
        len(ranges),
        fetched,
        len(unique),
        len(page),
        is_truncated,
        duration_ms,
    )
    record_search(ranges=len(ranges), fetched=fetched, results=len(page), truncated=is_truncated)
    return NearbySearchResponse(
        items=page,
        has_more=has_more,
        next_cursor=next_cursor,
        is_truncated=is_truncated,
        debug=debug,
    )


async def _search_discovery(
    request: NearbySearchRequest,
    fetch_by_date: DateFetcher,
    now: datetime,
    limits: SearchLimits,
) -> NearbySearchResponse:
    start = time.perf_counter()
    start_min = now
    start_max = now + timedelta(days=request.date_window_days)
    limit = limits.max_candidates_total
    rows = await fetch_by_date(start_min, start_max, limit)

    fetched = len(rows)
    candidates = [c for c in rows if _in_window(c, start_min, start_max)]
    after_date = len(candidates)
    candidates = apply_round_filters(candidates, request)
    ordered = order_by_start_time(candidates)
    page, has_more, next_cursor = _page(_after_cursor(ordered, request.cursor), request.page_size, discovery=True)
    is_truncated = fetched >= limit
    duration_ms = int((time.perf_counter() - start) * 1000)

    debug = SearchDebugInfo(
        ranges_queried=0,
        candidates_fetched=fetched,
        candidates_after_date=after_date,
        candidates_after_distance=len(ordered),
        results_count=len(page),
        duration_ms=duration_ms,
        precision=0,
    )
    logger.info(
        "telemetry discovery_search days=%s fetched=%s results=%s truncated=%s duration_ms=%s",
        request.date_window_days,
        fetched,
        len(page),
        is_truncated,
        duration_ms,
    )
    record_search(ranges=0, fetched=fetched, results=len(page), truncated=is_truncated, discovery=True)
    return NearbySearchResponse(
        items=page,
        has_more=has_more,
        next_cursor=next_cursor,
        is_truncated=is_truncated,
        debug=debug,
    )
