"""
Find published routes near a point or along a requested trip.

Candidates are narrowed with a lat/lon window in the database, then checked
exactly with Haversine distance in Python.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_type, time as time_type
from typing import List, Optional, Tuple

from django.db.models import QuerySet
from django.utils import timezone

from common.utils import bounding_box, calculate_distance, direction_similarity
from routes.models import Route

logger = logging.getLogger(__name__)

DEFAULT_MAX_DISTANCE = 10000  # meters
MIN_DIRECTION_SIMILARITY = 0.5
BOARDING_WINDOW_MINUTES = 30

DIRECTION_WEIGHT = 0.6
DISTANCE_WEIGHT = 0.4

Point = Tuple[float, float]


@dataclass
class RouteMatch:
    route: Route
    pickup_distance: float
    dropoff_distance: float
    direction_similarity: float
    score: float


def scheduled_routes() -> QuerySet:
    """Scheduled routes that have not departed yet."""
    return (
        Route.objects.select_related("driver", "vehicle")
        .filter(status="scheduled", departure_time__gt=timezone.now())
    )


def bookable_routes() -> QuerySet:
    """Scheduled future routes that still have seats."""
    return scheduled_routes().filter(available_seats__gt=0)


def within_box(queryset: QuerySet, prefix: str, point: Point, radius: float) -> QuerySet:
    """Restrict queryset to rows whose <prefix>_latitude/longitude fall in the window."""
    min_lat, max_lat, min_lon, max_lon = bounding_box(point[0], point[1], radius)
    queryset = queryset.filter(**{
        f"{prefix}_latitude__gte": min_lat,
        f"{prefix}_latitude__lte": max_lat,
    })
    # Window wraps the antimeridian; latitude alone still narrows it
    if min_lon < -180 or max_lon > 180:
        return queryset
    return queryset.filter(**{
        f"{prefix}_longitude__gte": min_lon,
        f"{prefix}_longitude__lte": max_lon,
    })


def _minutes_of_day(value: time_type) -> int:
    return value.hour * 60 + value.minute


def _within_boarding_window(route: Route, boarding_time: time_type) -> bool:
    departure = timezone.localtime(route.departure_time).time()
    diff = abs(_minutes_of_day(departure) - _minutes_of_day(boarding_time))
    # 23:50 and 00:10 are twenty minutes apart
    diff = min(diff, 24 * 60 - diff)
    return diff <= BOARDING_WINDOW_MINUTES


def find_nearby_routes(lat: float, lon: float, max_distance: float = DEFAULT_MAX_DISTANCE) -> List[Tuple[Route, float]]:
    """
    Scheduled future routes whose start point lies within max_distance meters,
    full ones included.

    Returns:
        List of (route, distance) sorted closest first
    """
    candidates = within_box(scheduled_routes(), "start", (lat, lon), max_distance)

    results: List[Tuple[Route, float]] = []
    for route in candidates:
        distance = calculate_distance(lat, lon, route.start_latitude, route.start_longitude)
        if distance <= max_distance:
            results.append((route, distance))

    results.sort(key=lambda item: item[1])
    return results


def score_match(similarity: float, pickup_distance: float, dropoff_distance: float, max_distance: float) -> float:
    """Blend heading match with how close both ends are (1.0 is a perfect fit)."""
    closeness = 1 - (pickup_distance + dropoff_distance) / (2 * max_distance)
    return similarity * DIRECTION_WEIGHT + closeness * DISTANCE_WEIGHT


def search_routes(
    start: Point,
    end: Point,
    max_distance: float = DEFAULT_MAX_DISTANCE,
    number_of_seats: int = 1,
    date: Optional[date_type] = None,
    vehicle_type: Optional[str] = None,
    boarding_time: Optional[time_type] = None,
) -> List[RouteMatch]:
    """
    Routes that start near `start`, end near `end` and head the same way.

    Args:
        start: requested (lat, lon) pickup
        end: requested (lat, lon) drop-off
        max_distance: radius in meters applied to both ends
        number_of_seats: seats the passenger needs
        date: only routes departing on this (local) date
        vehicle_type: only routes driven with this vehicle type
        boarding_time: only routes departing within 30 minutes of this time of day

    Returns:
        RouteMatch list, best score first, ties broken by earlier departure
    """
    queryset = bookable_routes().filter(available_seats__gte=number_of_seats)
    if date:
        queryset = queryset.filter(departure_time__date=date)
    if vehicle_type:
        queryset = queryset.filter(vehicle__type=vehicle_type)

    queryset = within_box(queryset, "start", start, max_distance)
    queryset = within_box(queryset, "end", end, max_distance)

    matches: List[RouteMatch] = []
    for route in queryset:
        if boarding_time and not _within_boarding_window(route, boarding_time):
            continue

        pickup_distance = calculate_distance(start[0], start[1], route.start_latitude, route.start_longitude)
        if pickup_distance > max_distance:
            continue
        dropoff_distance = calculate_distance(end[0], end[1], route.end_latitude, route.end_longitude)
        if dropoff_distance > max_distance:
            continue

        similarity = direction_similarity(start, end, route.start_point, route.end_point)
        if similarity < MIN_DIRECTION_SIMILARITY:
            continue

        matches.append(RouteMatch(
            route=route,
            pickup_distance=pickup_distance,
            dropoff_distance=dropoff_distance,
            direction_similarity=similarity,
            score=score_match(similarity, pickup_distance, dropoff_distance, max_distance),
        ))

    matches.sort(key=lambda m: (-m.score, m.route.departure_time))
    logger.debug("Route search matched %d of %d candidates", len(matches), len(queryset))
    return matches
