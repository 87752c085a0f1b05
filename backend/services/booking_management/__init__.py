"""
Booking management service - Seat reservations and booking lifecycle.

This module handles:
    - Reserving seats on published routes
    - Moving bookings through their statuses
    - Cascading route cancellation/completion to bookings
    - Expiring pending bookings nobody confirmed
    - Route status changes and live driver position
"""

from .booking_lifecycle import (
    create_booking,
    get_user_bookings,
    get_visible_booking,
    update_booking_status,
    cancel_bookings_for_route,
    complete_bookings_for_route,
    expire_stale_bookings,
    stale_pending_bookings,
    hold_seats,
    release_seats,
)

from .route_lifecycle import (
    get_route,
    get_driver_route,
    update_route_status,
    record_route_location,
    update_route_location,
)

from .exceptions import (
    RouteNotFoundError,
    RouteNotBookableError,
    NotEnoughSeatsError,
    BookingNotFoundError,
    InvalidStatusTransitionError,
    NotAuthorizedError,
)

__all__ = [
    # Lifecycle operations
    "create_booking",
    "get_user_bookings",
    "get_visible_booking",
    "update_booking_status",
    "cancel_bookings_for_route",
    "complete_bookings_for_route",
    "expire_stale_bookings",
    "stale_pending_bookings",
    "hold_seats",
    "release_seats",
    "get_route",
    "get_driver_route",
    "update_route_status",
    "record_route_location",
    "update_route_location",
    # Exceptions
    "RouteNotFoundError",
    "RouteNotBookableError",
    "NotEnoughSeatsError",
    "BookingNotFoundError",
    "InvalidStatusTransitionError",
    "NotAuthorizedError",
]
