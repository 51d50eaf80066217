"""Value types shared by the geohash search core."""
from typing import NamedTuple

LAT_MIN, LAT_MAX = -90.0, 90.0
LNG_MIN, LNG_MAX = -180.0, 180.0


class GeoPoint(NamedTuple):
    latitude: float
    longitude: float

    @property
    def is_valid(self) -> bool:
        return LAT_MIN <= self.latitude <= LAT_MAX and LNG_MIN <= self.longitude <= LNG_MAX


class GeoRange(NamedTuple):
    """Half-open [start, end) over lexicographic geohash order."""

    start: str
    end: str


class PrecisionTier(NamedTuple):
    max_radius_miles: float  # exclusive upper bound; inf for the last tier
    precision: int
    cell_width_miles: float
    cell_height_miles: float


class SearchLimits(NamedTuple):
    max_candidates_total: int
    per_range_limit: int
    max_radius_miles: float
    max_date_window_days: int
