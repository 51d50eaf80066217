"""Adjacent geohash cells at the same precision."""
from src.geo.geohash import cell_size, decode, encode
from src.geo.models import LAT_MAX, LAT_MIN, LNG_MAX, LNG_MIN

# (lat, lng) multipliers of the cell size: N, NE, E, SE, S, SW, W, NW
_COMPASS_OFFSETS = (
    (1, 0),
    (1, 1),
    (0, 1),
    (-1, 1),
    (-1, 0),
    (-1, -1),
    (0, -1),
    (1, -1),
)


def _wrap_lng(lng: float) -> float:
    """Wrap longitude into [-180, 180)."""
    span = LNG_MAX - LNG_MIN
    while lng < LNG_MIN:
        lng += span
    while lng >= LNG_MAX:
        lng -= span
    return lng


def _clamp_lat(lat: float) -> float:
    return max(LAT_MIN, min(LAT_MAX, lat))


def neighbors(geohash: str) -> list[str]:
    """
    Return up to 8 distinct cells around `geohash` in compass order (N, NE, E, SE, S, SW, W, NW).
    The input itself is never included. Near the poles several offsets clamp onto the
    same cell, so fewer than 8 come back. Undecodable input returns [].
    """
    center = decode(geohash)
    if center is None:
        return []

    precision = len(geohash)
    lat_deg, lng_deg = cell_size(precision)
    origin = geohash.lower()
    result: list[str] = []
    for dlat, dlng in _COMPASS_OFFSETS:
        lat = _clamp_lat(center.latitude + dlat * lat_deg)
        lng = _wrap_lng(center.longitude + dlng * lng_deg)
        cell = encode(lat, lng, precision)
        if cell and cell != origin and cell not in result:
            result.append(cell)
    return result


def neighbors_with_center(geohash: str) -> list[str]:
    """Sorted, deduplicated union of `geohash` and its neighbors (at most 9 cells)."""
    if decode(geohash) is None:
        return []
    return sorted({geohash.lower(), *neighbors(geohash)})
