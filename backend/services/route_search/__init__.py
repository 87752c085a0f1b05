"""
Route search service.

This module handles:
    - Listing scheduled routes near a point
    - Matching routes to a requested trip by distance and heading
"""

from .proximity import (
    DEFAULT_MAX_DISTANCE,
    MIN_DIRECTION_SIMILARITY,
    RouteMatch,
    bookable_routes,
    scheduled_routes,
    find_nearby_routes,
    search_routes,
)

__all__ = [
    "DEFAULT_MAX_DISTANCE",
    "MIN_DIRECTION_SIMILARITY",
    "RouteMatch",
    "bookable_routes",
    "scheduled_routes",
    "find_nearby_routes",
    "search_routes",
]
