"""
Geographic helpers for seller discovery.

Provides:
- Haversine great-circle distance in miles
- GeoLocation value object (coordinates plus free-text address fields)
- Geohash encoding for seller records
- Radius checks and display formatting

Distances are plain arithmetic: malformed numeric input (NaN) propagates as
NaN rather than raising, and a NaN distance never falls within a radius.
"""

import math
from dataclasses import dataclass
from typing import Optional

import pygeohash

EARTH_RADIUS_MILES = 3959
DEFAULT_GEOHASH_PRECISION = 10


def distance_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate Haversine distance between two coordinates.

    Args:
        lat1, lon1: First point in degrees
        lat2, lon2: Second point in degrees

    Returns:
        Great-circle distance in miles
    """
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_MILES * c


@dataclass
class GeoLocation:
    """Geographic coordinates with optional address details"""
    latitude: float
    longitude: float
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None

    def distance_to(self, other: "GeoLocation") -> float:
        """Haversine distance to another location in miles."""
        return distance_miles(self.latitude, self.longitude, other.latitude, other.longitude)

    def geohash(self, precision: int = DEFAULT_GEOHASH_PRECISION) -> str:
        return encode_geohash(self.latitude, self.longitude, precision)


def encode_geohash(latitude: float, longitude: float,
                   precision: int = DEFAULT_GEOHASH_PRECISION) -> str:
    """Geohash string stored on seller records."""
    return pygeohash.encode(latitude, longitude, precision=precision)


def is_within_radius(center_lat: float, center_lon: float,
                     point_lat: float, point_lon: float,
                     radius_miles: float) -> bool:
    return distance_miles(center_lat, center_lon, point_lat, point_lon) <= radius_miles


def format_distance(miles: float) -> str:
    if miles < 0.1:
        return "Less than 0.1 mi"
    return f"{miles:.1f} mi"
