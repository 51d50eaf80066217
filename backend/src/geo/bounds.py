"""
Range-query planning: turn a set of geohash cells into the fewest
half-open [start, end) ranges a lexicographic index can serve.
"""
from collections.abc import Iterable

from src.geo.geohash import encode
from src.geo.models import GeoRange
from src.geo.neighbors import neighbors_with_center

# Sorts after every BASE32 character, so [h, h + SENTINEL) covers all hashes prefixed by h.
SENTINEL = "~"


def range_for(geohash: str) -> GeoRange:
    """Half-open range of every stored hash with this prefix. Stored hashes are lower-case."""
    h = geohash.lower()
    return GeoRange(h, h + SENTINEL)


def merge_ranges(ranges: Iterable[GeoRange]) -> list[GeoRange]:
    """Merge overlapping or touching ranges. Output is sorted by start and non-overlapping."""
    ordered = sorted(ranges, key=lambda r: r.start)
    if not ordered:
        return []

    merged: list[GeoRange] = []
    current = ordered[0]
    for nxt in ordered[1:]:
        if current.end >= nxt.start:
            current = GeoRange(current.start, max(current.end, nxt.end))
        else:
            merged.append(current)
            current = nxt
    merged.append(current)
    return merged


def plan_ranges(geohashes: Iterable[str]) -> list[GeoRange]:
    """One range per cell, merged. Empty input means no area to search and gives []."""
    return merge_ranges(range_for(h) for h in geohashes if h)


def query_bounds(lat: float, lng: float, precision: int) -> list[GeoRange]:
    """Ranges covering the cell containing (lat, lng) plus its 8 neighbors at `precision`."""
    center = encode(lat, lng, precision)
    if center is None:
        return []
    return plan_ranges(neighbors_with_center(center))
