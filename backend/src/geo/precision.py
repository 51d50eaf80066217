"""
Geohash precision policy for radius searches.

A search covers the center cell plus its 8 neighbors, so the query precision
is picked per radius bucket to keep the 3x3 window at roughly twice the
radius. Rows close to the edge of a large radius can still fall outside the
window; that approximation is accepted in exchange for a fixed fan-out.
"""
import math

from src.geo.distance import EARTH_RADIUS_MILES, meters_to_miles
from src.geo.geohash import cell_size
from src.geo.models import PrecisionTier, SearchLimits

# Precision of the stored geohash field. Longer than any query precision so every query prefix matches.
STORAGE_PRECISION = 9

# (exclusive upper bound in miles, precision)
_RADIUS_BUCKETS = (
    (1.0, 6),
    (5.0, 5),
    (50.0, 4),
    (150.0, 3),
)
_FALLBACK_PRECISION = 2

SEARCH_LIMITS = SearchLimits(
    max_candidates_total=2000,
    per_range_limit=200,
    max_radius_miles=100.0,
    max_date_window_days=30,
)

DEFAULT_RADIUS_MILES = 25.0
DEFAULT_DATE_WINDOW_DAYS = 30

_MILES_PER_DEGREE = EARTH_RADIUS_MILES * math.pi / 180.0


def query_precision(radius_miles: float) -> int:
    """Smaller radius -> longer (finer) geohash. Radii below 1 mile, zero included, use the finest tier."""
    for upper, precision in _RADIUS_BUCKETS:
        if radius_miles < upper:
            return precision
    return _FALLBACK_PRECISION


def query_precision_for_meters(radius_m: float) -> int:
    return query_precision(meters_to_miles(radius_m))


def approximate_cell_size_miles(precision: int) -> tuple[float, float]:
    """(width, height) of a cell in miles, measured at the equator. Width shrinks with cos(latitude)."""
    lat_deg, lng_deg = cell_size(precision)
    return lng_deg * _MILES_PER_DEGREE, lat_deg * _MILES_PER_DEGREE


def _tier(upper: float, precision: int) -> PrecisionTier:
    width, height = approximate_cell_size_miles(precision)
    return PrecisionTier(
        max_radius_miles=upper,
        precision=precision,
        cell_width_miles=width,
        cell_height_miles=height,
    )


PRECISION_TIERS: tuple[PrecisionTier, ...] = tuple(
    _tier(upper, precision) for upper, precision in _RADIUS_BUCKETS
) + (_tier(math.inf, _FALLBACK_PRECISION),)


def precision_tier(radius_miles: float) -> PrecisionTier:
    precision = query_precision(radius_miles)
    return next(t for t in PRECISION_TIERS if t.precision == precision)
