"""
Geographic utility functions.

This module provides core geospatial calculations used throughout the application:
great-circle distance, the direction match between two trips, and the
lat/lon window used to pre-filter "near" queries.
"""

from math import radians, cos, sin, asin, sqrt
from typing import Tuple

EARTH_RADIUS_METERS = 6371000
METERS_PER_DEGREE_LAT = 111000.0

Point = Tuple[float, float]


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points in meters using Haversine formula.
    
    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point
    
    Returns:
        Distance in meters
    """
    lat1, lon1, lat2, lon2 = map(radians, [float(lat1), float(lon1), float(lat2), float(lon2)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(sqrt(a))
    return c * EARTH_RADIUS_METERS


def _displacement(start: Point, end: Point, ref_lat: float) -> Point:
    """Planar (east, north) displacement in degrees of latitude."""
    dx = (float(end[1]) - float(start[1])) * cos(radians(ref_lat))
    dy = float(end[0]) - float(start[0])
    return dx, dy


def direction_similarity(start_a: Point, end_a: Point, start_b: Point, end_b: Point) -> float:
    """
    Cosine similarity between the travel directions of two trips.

    Each argument is a (latitude, longitude) pair. Longitude deltas are scaled by
    cos(mean latitude) so east-west and north-south movement weigh the same.

    Returns:
        Value in [-1, 1]; 1 means same heading, -1 opposite. 0 if either trip
        has no displacement.
    """
    ref_lat = (float(start_a[0]) + float(end_a[0]) + float(start_b[0]) + float(end_b[0])) / 4
    ax, ay = _displacement(start_a, end_a, ref_lat)
    bx, by = _displacement(start_b, end_b, ref_lat)

    norm_a = sqrt(ax * ax + ay * ay)
    norm_b = sqrt(bx * bx + by * by)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = (ax * bx + ay * by) / (norm_a * norm_b)
    # float error can push the ratio just past the unit interval
    return max(-1.0, min(1.0, similarity))


def bounding_box(lat: float, lon: float, radius_meters: float) -> Tuple[float, float, float, float]:
    """
    Lat/lon window that contains the circle of radius_meters around a point.

    Used to narrow a database query before the exact Haversine check.

    Returns:
        (min_lat, max_lat, min_lon, max_lon)
    """
    lat = float(lat)
    lon = float(lon)
    lat_offset = radius_meters / METERS_PER_DEGREE_LAT
    cos_lat = abs(cos(radians(lat)))
    if cos_lat < 1e-6:
        lon_offset = 180.0
    else:
        lon_offset = min(180.0, radius_meters / (METERS_PER_DEGREE_LAT * cos_lat))

    return (
        max(-90.0, lat - lat_offset),
        min(90.0, lat + lat_offset),
        lon - lon_offset,
        lon + lon_offset,
    )
