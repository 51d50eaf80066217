"""
Haversine distance for exact filtering and ranking of geohash candidates.
"""
import math

from src.geo.models import GeoPoint

# Mean Earth radius per unit
EARTH_RADIUS_MILES = 3958.8
EARTH_RADIUS_KM = 6371.0
EARTH_RADIUS_M = 6_371_000.0

METERS_PER_MILE = 1609.344


def central_angle(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Return the central angle in radians between two points given in degrees.
    The haversine term is clamped to [0, 1]; rounding can push it just past 1 for antipodal points.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlng / 2) ** 2
    a = min(1.0, max(0.0, a))
    return 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def haversine_distance_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Return great-circle distance in miles. Arguments in degrees."""
    return EARTH_RADIUS_MILES * central_angle(lat1, lng1, lat2, lng2)


def haversine_distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Return great-circle distance in kilometers. Arguments in degrees."""
    return EARTH_RADIUS_KM * central_angle(lat1, lng1, lat2, lng2)


def haversine_distance_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Return great-circle distance in meters. Arguments in degrees."""
    return EARTH_RADIUS_M * central_angle(lat1, lng1, lat2, lng2)


def distance_miles(a: GeoPoint, b: GeoPoint) -> float:
    return haversine_distance_miles(a.latitude, a.longitude, b.latitude, b.longitude)


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    return haversine_distance_m(a.latitude, a.longitude, b.latitude, b.longitude)


def miles_to_meters(miles: float) -> float:
    return miles * METERS_PER_MILE


def meters_to_miles(meters: float) -> float:
    return meters / METERS_PER_MILE
