"""Tests for geohash encode/decode and cell geometry."""
import pytest

from src.geo.geohash import BASE32, cell_size, decode, decode_bbox, encode
from src.geo.models import GeoPoint

SAN_FRANCISCO = (37.7749, -122.4194)


def test_encode_known_value():
    # Reference point from the geohash literature
    assert encode(57.64911, 10.40744, 11) == "u4pruydqqvj"


def test_encode_san_francisco_prefix():
    assert encode(*SAN_FRANCISCO, 5) == "9q8yy"


def test_encode_default_precision_is_storage_length():
    assert len(encode(*SAN_FRANCISCO)) == 9


def test_encode_corners():
    assert encode(-90.0, -180.0, 4) == "0000"
    assert encode(90.0, 180.0, 4) == "zzzz"


@pytest.mark.parametrize("precision", [0, 13, -1])
def test_encode_invalid_precision_returns_none(precision):
    assert encode(10.0, 10.0, precision) is None


@pytest.mark.parametrize("lat,lng", [(90.1, 0.0), (-91.0, 0.0), (0.0, 180.5), (0.0, -181.0)])
def test_encode_invalid_coordinates_returns_none(lat, lng):
    assert encode(lat, lng, 6) is None


def test_decode_known_cell_center():
    point = decode("ezs42")
    assert point is not None
    assert abs(point.latitude - 42.605) < 0.03
    assert abs(point.longitude - (-5.603)) < 0.03


def test_decode_is_case_insensitive():
    assert decode("EZS42") == decode("ezs42")


@pytest.mark.parametrize("bad", ["", "ezs4a", "9q8yi", "abc", "u4pr!"])
def test_decode_invalid_returns_none(bad):
    assert decode(bad) is None
    assert decode_bbox(bad) is None


def test_decode_bbox_contains_center():
    lat_lo, lat_hi, lng_lo, lng_hi = decode_bbox("9q8yy")
    point = decode("9q8yy")
    assert lat_lo < point.latitude < lat_hi
    assert lng_lo < point.longitude < lng_hi
    lat_deg, lng_deg = cell_size(5)
    assert lat_hi - lat_lo == pytest.approx(lat_deg)
    assert lng_hi - lng_lo == pytest.approx(lng_deg)


def test_round_trip_within_one_cell():
    for lat in (-89.9, -45.5, -0.001, 0.0, 12.34, 37.7749, 89.9):
        for lng in (-179.9, -122.4194, -0.5, 0.0, 10.40744, 179.9):
            for precision in range(1, 13):
                point = decode(encode(lat, lng, precision))
                lat_deg, lng_deg = cell_size(precision)
                assert abs(point.latitude - lat) <= lat_deg
                assert abs(point.longitude - lng) <= lng_deg


def test_decode_then_encode_reproduces_hash():
    for h in ("0", "z", "9q8yy", "u4pruydqqvj", "ezs42", "bpbpbpbpbpbp", "s0000"):
        point = decode(h)
        assert encode(point.latitude, point.longitude, len(h)) == h


def test_prefix_monotonicity():
    for lat, lng in (SAN_FRANCISCO, (-33.8688, 151.2093), (51.5074, -0.1278), (0.0, 0.0)):
        for precision in range(1, 12):
            shorter = encode(lat, lng, precision)
            longer = encode(lat, lng, precision + 1)
            assert longer.startswith(shorter)


def test_encode_uses_only_alphabet():
    h = encode(-12.5, 77.25, 12)
    assert len(h) == 12
    assert set(h) <= set(BASE32)


def test_cell_size_bit_allocation():
    # 5 bits: 3 longitude, 2 latitude
    assert cell_size(1) == (45.0, 45.0)
    # 10 bits: 5 each
    assert cell_size(2) == (5.625, 11.25)
    # 25 bits: 13 longitude, 12 latitude
    assert cell_size(5) == (180.0 / 2**12, 360.0 / 2**13)


def test_decode_returns_valid_geopoint():
    point = decode("zzzzzzzzzzzz")
    assert isinstance(point, GeoPoint)
    assert point.is_valid
    assert not GeoPoint(91.0, 0.0).is_valid
    assert not GeoPoint(0.0, -180.5).is_valid
