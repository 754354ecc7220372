"""Great-circle distance, bearing and heading helpers. Pure functions, no I/O."""

import math

from transit_eta.models.responses import BoundingBox

# Earth's radius in kilometers for haversine calculation
EARTH_RADIUS_KM = 6371.0

# Approximate kilometers per degree of latitude
KM_PER_DEGREE = 111.0


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the great-circle distance between two points in kilometers.

    Args:
        lat1, lon1: First point coordinates in degrees.
        lat2, lon2: Second point coordinates in degrees.

    Returns:
        Distance in kilometers.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def bearing_degrees(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial compass bearing from point 1 to point 2, in [0, 360)."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lon = math.radians(lon2 - lon1)

    y = math.sin(delta_lon) * math.cos(lat2_rad)
    x = math.cos(lat1_rad) * math.sin(lat2_rad) - math.sin(lat1_rad) * math.cos(
        lat2_rad
    ) * math.cos(delta_lon)

    bearing = math.degrees(math.atan2(y, x)) % 360.0
    # -0.0 % 360 and values a hair under 360 can round to 360.0
    return 0.0 if bearing >= 360.0 else bearing


def angular_difference(a: float, b: float) -> float:
    """Smallest absolute difference between two bearings, in [0, 180]."""
    diff = abs(a - b) % 360.0
    return 360.0 - diff if diff > 180.0 else diff


def is_heading_toward(
    vehicle_bearing: float | None,
    bearing_to_target: float,
    tolerance_degrees: float = 60.0,
) -> bool:
    """Check whether a vehicle's heading points at a target within a tolerance.

    A vehicle that reported no bearing never matches.

    Example: bearing 350 vs target 10 -> difference 20 -> True
    """
    if vehicle_bearing is None:
        return False
    return angular_difference(vehicle_bearing, bearing_to_target) <= tolerance_degrees


def bounding_box(lat: float, lon: float, radius_km: float) -> BoundingBox:
    """Build a query rectangle around a center point.

    1 degree of latitude is ~111 km; a degree of longitude shrinks with cos(lat).
    """
    lat_offset = radius_km / KM_PER_DEGREE
    lon_offset = radius_km / (KM_PER_DEGREE * math.cos(math.radians(lat)))

    return BoundingBox(
        min_lon=lon - lon_offset,
        min_lat=lat - lat_offset,
        max_lon=lon + lon_offset,
        max_lat=lat + lat_offset,
    )
