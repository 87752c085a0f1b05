"""
Core booking lifecycle operations.

This module contains the business logic for booking seats on routes,
moving bookings through their statuses, and the route-wide cascades
triggered when a driver cancels or completes a trip.

Seat accounting never reads the count into Python: holds and releases are
single conditional UPDATE statements, so concurrent bookings on the same
route cannot oversell it.
"""

import logging
from datetime import timedelta
from typing import Optional, Dict, Any, List

from django.db import close_old_connections, transaction
from django.db.models import F
from django.utils import timezone

from bookings.models import Booking
from common.utils import reverse_geocode
from routes.models import Route
from .exceptions import (
    BookingNotFoundError,
    InvalidStatusTransitionError,
    NotAuthorizedError,
    NotEnoughSeatsError,
    RouteNotBookableError,
    RouteNotFoundError,
)

logger = logging.getLogger(__name__)


ACTIVE_BOOKING_STATUSES = ('pending', 'confirmed', 'in-progress')

CLOSED_ROUTE_STATUSES = ('completed', 'cancelled')

BOOKING_TRANSITIONS = {
    'pending': {'confirmed', 'cancelled'},
    'confirmed': {'in-progress', 'cancelled'},
    'in-progress': {'completed'},
}

# Either party may cancel; everything else is the driver's call
DRIVER_ONLY_STATUSES = {'confirmed', 'in-progress', 'completed'}


# ===================== Seat Accounting =====================

def hold_seats(route_id: int, seats: int) -> bool:
    """
    Atomically take seats from a scheduled route.

    Returns:
        True if the seats were reserved, False if the route had too few left
    """
    updated = Route.objects.filter(
        pk=route_id,
        status='scheduled',
        available_seats__gte=seats,
    ).update(
        available_seats=F('available_seats') - seats,
        updated_at=timezone.now(),
    )
    return updated == 1


def release_seats(route_id: int, seats: int) -> bool:
    """
    Atomically return seats to a route that is still running.

    Completed and cancelled routes keep their final seat count.

    Returns:
        True if the seats went back to the route
    """
    updated = Route.objects.filter(pk=route_id).exclude(
        status__in=CLOSED_ROUTE_STATUSES,
    ).update(
        available_seats=F('available_seats') + seats,
        updated_at=timezone.now(),
    )
    return updated == 1


# ===================== Passenger Operations =====================

def _location_fields(prefix: str, location: Optional[Dict[str, Any]], fallback: Dict[str, Any]) -> Dict[str, Any]:
    if not location:
        location = fallback
    elif not location.get("address"):
        location = {**location, "address": reverse_geocode(location["latitude"], location["longitude"]) or ""}

    return {
        f"{prefix}_address": location["address"],
        f"{prefix}_latitude": location["latitude"],
        f"{prefix}_longitude": location["longitude"],
    }


def create_booking(
    passenger,
    route_id: int,
    number_of_seats: int = 1,
    pickup_location: Optional[Dict[str, Any]] = None,
    dropoff_location: Optional[Dict[str, Any]] = None,
) -> Booking:
    """
    Reserve seats on a route for a passenger.

    Args:
        passenger: User model instance making the booking
        route_id: ID of the route to book
        number_of_seats: Seats to reserve (>= 1)
        pickup_location: {"latitude", "longitude", "address"}; defaults to route start
        dropoff_location: same shape; defaults to route end

    Returns:
        The created Booking

    Raises:
        RouteNotFoundError: route does not exist
        RouteNotBookableError: route not scheduled, already departed, or the
            passenger is its driver
        NotEnoughSeatsError: fewer free seats than requested
    """
    try:
        route = Route.objects.get(pk=route_id)
    except Route.DoesNotExist:
        raise RouteNotFoundError("Route not found")

    if route.driver_id == passenger.id:
        raise RouteNotBookableError("You cannot book your own route")

    if route.status != 'scheduled' or route.departure_time <= timezone.now():
        raise RouteNotBookableError("Route is not open for booking")

    # Outside the transaction: reverse geocoding may call the network
    pickup = _location_fields("pickup", pickup_location, {
        "address": route.start_address,
        "latitude": route.start_latitude,
        "longitude": route.start_longitude,
    })
    dropoff = _location_fields("dropoff", dropoff_location, {
        "address": route.end_address,
        "latitude": route.end_latitude,
        "longitude": route.end_longitude,
    })

    return _reserve(passenger, route, number_of_seats, pickup, dropoff)


@transaction.atomic
def _reserve(passenger, route: Route, number_of_seats: int, pickup: Dict[str, Any], dropoff: Dict[str, Any]) -> Booking:
    if not hold_seats(route.id, number_of_seats):
        raise NotEnoughSeatsError("Not enough seats available")

    booking = Booking.objects.create(
        user=passenger,
        route=route,
        number_of_seats=number_of_seats,
        total_fare=route.fare * number_of_seats,
        status='pending',
        estimated_pickup_time=route.departure_time,
        **pickup,
        **dropoff,
    )

    logger.info(
        "Booking %s: user %s reserved %s seat(s) on route %s",
        booking.id, passenger.id, number_of_seats, route.id,
    )

    from realtime.notifications import notify_booking_event
    transaction.on_commit(lambda: notify_booking_event(
        'booking_created',
        booking,
        route.driver_id,
        f"{passenger.name} booked {number_of_seats} seat(s)",
    ))

    return booking


def get_user_bookings(user):
    """All bookings made by a passenger, newest first."""
    return Booking.objects.filter(user=user).select_related('route', 'route__driver', 'route__vehicle', 'user')


def get_visible_booking(user, booking_id: int) -> Booking:
    """
    Fetch a booking the user is a party to (passenger or route driver).

    Raises:
        BookingNotFoundError, NotAuthorizedError
    """
    try:
        booking = Booking.objects.select_related('route', 'user').get(pk=booking_id)
    except Booking.DoesNotExist:
        raise BookingNotFoundError("Booking not found")

    if user.id not in (booking.user_id, booking.route.driver_id):
        raise NotAuthorizedError("Not authorized to view this booking")

    return booking


# ===================== Status Transitions =====================

def _apply_cancellation(booking: Booking, reason: str) -> None:
    booking.status = 'cancelled'
    booking.cancelled_at = timezone.now()
    booking.cancellation_reason = reason
    if booking.payment_status == 'completed':
        booking.payment_status = 'refunded'
    release_seats(booking.route_id, booking.number_of_seats)


@transaction.atomic
def update_booking_status(user, booking_id: int, new_status: str, reason: str = "") -> Booking:
    """
    Move a booking to a new status on behalf of the passenger or the route driver.

    Raises:
        BookingNotFoundError: booking does not exist
        NotAuthorizedError: user is not a party, or a passenger tried a driver-only step
        InvalidStatusTransitionError: the move is not allowed from the current status
    """
    try:
        booking = Booking.objects.select_for_update().select_related('route').get(pk=booking_id)
    except Booking.DoesNotExist:
        raise BookingNotFoundError("Booking not found")

    is_passenger = booking.user_id == user.id
    is_driver = booking.route.driver_id == user.id

    if not (is_passenger or is_driver):
        raise NotAuthorizedError("Not authorized to update this booking")

    allowed = BOOKING_TRANSITIONS.get(booking.status, set())
    if new_status not in allowed:
        raise InvalidStatusTransitionError(
            f"Cannot change booking from {booking.status} to {new_status}"
        )

    if new_status in DRIVER_ONLY_STATUSES and not is_driver:
        raise NotAuthorizedError(f"Only the route driver can mark a booking {new_status}")

    now = timezone.now()
    if new_status == 'cancelled':
        by = "driver" if is_driver else "passenger"
        _apply_cancellation(booking, reason or f"Cancelled by {by}")
    elif new_status == 'in-progress':
        booking.status = new_status
        booking.actual_pickup_time = now
    elif new_status == 'completed':
        booking.status = new_status
        booking.completion_time = now
    else:
        booking.status = new_status

    booking.save()
    logger.info("Booking %s -> %s by user %s", booking.id, booking.status, user.id)

    # Tell the other party
    recipient_id = booking.user_id if is_driver else booking.route.driver_id
    from realtime.notifications import notify_booking_event
    transaction.on_commit(lambda: notify_booking_event(
        'booking_status_changed',
        booking,
        recipient_id,
        f"Booking is now {booking.status}",
    ))

    return booking


# ===================== Route-wide Cascades =====================

def cancel_bookings_for_route(route: Route, reason: str = "Route cancelled by driver") -> List[Booking]:
    """Cancel every pending/confirmed booking on a route, returning their seats."""
    cancelled = []
    bookings = route.bookings.select_for_update().filter(status__in=['pending', 'confirmed'])
    for booking in bookings:
        _apply_cancellation(booking, reason)
        booking.save()
        cancelled.append(booking)

    if cancelled:
        logger.info("Cancelled %s booking(s) on route %s", len(cancelled), route.id)
    return cancelled


def complete_bookings_for_route(route: Route) -> int:
    """Mark every in-progress booking on a finished route as completed."""
    return route.bookings.filter(status='in-progress').update(
        status='completed',
        completion_time=timezone.now(),
        updated_at=timezone.now(),
    )


# ===================== Housekeeping =====================

def stale_pending_bookings(grace_minutes: int = 30):
    """Pending bookings whose route departed more than grace_minutes ago."""
    cutoff = timezone.now() - timedelta(minutes=grace_minutes)
    return Booking.objects.filter(status='pending', route__departure_time__lt=cutoff)


def expire_stale_bookings(grace_minutes: int = 30) -> int:
    """
    Cancel pending bookings whose route departed more than grace_minutes ago.

    The driver never confirmed them, so the seats go back to the route.

    Returns:
        Number of bookings expired
    """
    stale_ids = list(
        stale_pending_bookings(grace_minutes)
        .order_by('route__departure_time')
        .values_list('id', flat=True)
    )

    expired_count = 0
    for booking_id in stale_ids:
        with transaction.atomic():
            booking = Booking.objects.select_for_update().filter(pk=booking_id, status='pending').first()
            if booking is None:
                continue
            _apply_cancellation(booking, "Expired: not confirmed before departure")
            booking.save()
            expired_count += 1

    if expired_count:
        logger.info("Expired %s stale pending booking(s)", expired_count)

    # Close stale DB connections for long-running workers
    close_old_connections()
    return expired_count
