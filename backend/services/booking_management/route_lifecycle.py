"""
Route status changes and live driver position.
"""

import logging
from typing import Tuple

from django.db import transaction
from django.utils import timezone

from common.utils import calculate_distance
from routes.models import Route
from .booking_lifecycle import cancel_bookings_for_route, complete_bookings_for_route
from .exceptions import (
    InvalidStatusTransitionError,
    NotAuthorizedError,
    RouteNotFoundError,
)

logger = logging.getLogger(__name__)


ROUTE_TRANSITIONS = {
    'scheduled': {'in-progress', 'cancelled'},
    'in-progress': {'completed', 'cancelled'},
}

# Smaller moves are relayed but not written to the database
MIN_PERSIST_DISTANCE_METERS = 10


def get_route(route_id: int) -> Route:
    try:
        return Route.objects.select_related('driver', 'vehicle').get(pk=route_id)
    except Route.DoesNotExist:
        raise RouteNotFoundError("Route not found")


def get_driver_route(user, route_id: int) -> Route:
    """
    Fetch a route the user drives.

    Raises:
        RouteNotFoundError, NotAuthorizedError
    """
    route = get_route(route_id)
    if route.driver_id != user.id:
        raise NotAuthorizedError("Not authorized to manage this route")
    return route


@transaction.atomic
def update_route_status(user, route_id: int, new_status: str) -> Route:
    """
    Move a route to a new status on behalf of its driver.

    Cancelling cancels the route's open bookings; completing closes the
    bookings that were riding. Passengers are notified after commit.

    Raises:
        RouteNotFoundError: route does not exist
        NotAuthorizedError: user is not the route's driver
        InvalidStatusTransitionError: the move is not allowed from the current status
    """
    try:
        route = Route.objects.select_for_update().get(pk=route_id)
    except Route.DoesNotExist:
        raise RouteNotFoundError("Route not found")

    if route.driver_id != user.id:
        raise NotAuthorizedError("Not authorized to update this route")

    if new_status not in ROUTE_TRANSITIONS.get(route.status, set()):
        raise InvalidStatusTransitionError(
            f"Cannot change route from {route.status} to {new_status}"
        )

    # Collect recipients before the cascade changes booking statuses
    passenger_ids = set(
        route.bookings.filter(status__in=['pending', 'confirmed', 'in-progress'])
        .values_list('user_id', flat=True)
    )

    # Cascade while the route is still open so cancelled seats are returned
    if new_status == 'cancelled':
        cancel_bookings_for_route(route)
    elif new_status == 'completed':
        complete_bookings_for_route(route)

    route.status = new_status
    route.save(update_fields=['status', 'updated_at'])

    logger.info("Route %s -> %s", route.id, new_status)

    from realtime.notifications import notify_route_status
    transaction.on_commit(lambda: notify_route_status(route, passenger_ids))

    return route


def record_route_location(route: Route, lat: float, lon: float) -> bool:
    """
    Store the driver's position on the route if it moved far enough.

    Returns:
        True if the position was written
    """
    if route.current_latitude is not None and route.current_longitude is not None:
        moved = calculate_distance(route.current_latitude, route.current_longitude, lat, lon)
        if moved < MIN_PERSIST_DISTANCE_METERS:
            return False

    route.current_latitude = round(lat, 6)
    route.current_longitude = round(lon, 6)
    route.last_location_update = timezone.now()
    route.save(update_fields=['current_latitude', 'current_longitude', 'last_location_update'])
    return True


def update_route_location(user, route_id: int, lat: float, lon: float) -> Tuple[Route, bool]:
    """
    Persist a driver position sent over HTTP and push it to route subscribers.

    Returns:
        (route, persisted)
    """
    route = get_driver_route(user, route_id)
    persisted = record_route_location(route, lat, lon)

    from realtime.broadcast import broadcast_route_location
    broadcast_route_location(route.id, user.id, lat, lon, force=True)

    return route, persisted
