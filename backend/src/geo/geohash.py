"""
Geohash encode/decode over the standard base-32 alphabet.

Bits alternate longitude/latitude starting with longitude; every 5 bits
become one character, most-significant bit first. Invalid input yields None
rather than an exception so callers can reject a search without try/except.
"""

from src.geo.models import LAT_MAX, LAT_MIN, LNG_MAX, LNG_MIN, GeoPoint

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
BITS_PER_CHAR = 5
MIN_PRECISION = 1
MAX_PRECISION = 12

_DECODE_MAP = {c: i for i, c in enumerate(BASE32)}


def encode(lat: float, lng: float, precision: int = 9) -> str | None:
    """Return the geohash of (lat, lng) with `precision` characters, or None if any input is out of range."""
    if not (MIN_PRECISION <= precision <= MAX_PRECISION):
        return None
    if not (LAT_MIN <= lat <= LAT_MAX) or not (LNG_MIN <= lng <= LNG_MAX):
        return None

    lat_lo, lat_hi = LAT_MIN, LAT_MAX
    lng_lo, lng_hi = LNG_MIN, LNG_MAX
    is_lng = True
    bits = 0
    bit_count = 0
    out: list[str] = []

    while len(out) < precision:
        if is_lng:
            mid = (lng_lo + lng_hi) / 2
            if lng >= mid:
                bits = (bits << 1) | 1
                lng_lo = mid
            else:
                bits <<= 1
                lng_hi = mid
        else:
            mid = (lat_lo + lat_hi) / 2
            if lat >= mid:
                bits = (bits << 1) | 1
                lat_lo = mid
            else:
                bits <<= 1
                lat_hi = mid
        is_lng = not is_lng
        bit_count += 1

        if bit_count == BITS_PER_CHAR:
            out.append(BASE32[bits])
            bits = 0
            bit_count = 0

    return "".join(out)


def decode_bbox(geohash: str) -> tuple[float, float, float, float] | None:
    """Return (lat_min, lat_max, lng_min, lng_max) of the cell, or None for an empty/invalid hash."""
    if not geohash:
        return None

    lat_lo, lat_hi = LAT_MIN, LAT_MAX
    lng_lo, lng_hi = LNG_MIN, LNG_MAX
    is_lng = True

    for char in geohash.lower():
        value = _DECODE_MAP.get(char)
        if value is None:
            return None
        for shift in range(BITS_PER_CHAR - 1, -1, -1):
            bit = (value >> shift) & 1
            if is_lng:
                mid = (lng_lo + lng_hi) / 2
                if bit:
                    lng_lo = mid
                else:
                    lng_hi = mid
            else:
                mid = (lat_lo + lat_hi) / 2
                if bit:
                    lat_lo = mid
                else:
                    lat_hi = mid
            is_lng = not is_lng

    return lat_lo, lat_hi, lng_lo, lng_hi


def decode(geohash: str) -> GeoPoint | None:
    """Return the center of the geohash cell, or None if the hash is empty or has characters outside BASE32."""
    bbox = decode_bbox(geohash)
    if bbox is None:
        return None
    lat_lo, lat_hi, lng_lo, lng_hi = bbox
    return GeoPoint((lat_lo + lat_hi) / 2, (lng_lo + lng_hi) / 2)


def cell_size(precision: int) -> tuple[float, float]:
    """
    Angular (lat_degrees, lng_degrees) of a cell at `precision`.
    Longitude is bisected first so it gets the extra bit when the total is odd.
    """
    total_bits = precision * BITS_PER_CHAR
    lng_bits = (total_bits + 1) // 2
    lat_bits = total_bits // 2
    return 180.0 / (2 ** lat_bits), 360.0 / (2 ** lng_bits)
