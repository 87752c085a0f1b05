"""
Notification helpers for sending WebSocket messages to connected users.

Every socket joins a personal group user_<id>; server code pushes booking and
route events there. Delivery is best-effort: failures are logged, never raised
into the request that triggered them.
"""

from __future__ import annotations

import logging
from typing import Dict, Any, Iterable

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)


def user_group(user_id: int) -> str:
    return f"user_{user_id}"


def notify_user_event(user_id: int | None, event_type: str, payload: Dict[str, Any]) -> bool:
    """
    Send an event to one user's personal group.

    Args:
        user_id: Target user ID
        event_type: Handler name in consumer (booking_created, booking_status_changed, route_status_changed)
        payload: Event body

    Returns:
        True if sent successfully, False otherwise
    """
    if not user_id:
        return False

    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False

    message = {"type": event_type, **payload}
    try:
        logger.debug("WS -> user_%s: %s", user_id, message)
        async_to_sync(channel_layer.group_send)(user_group(user_id), message)
    except Exception:
        logger.exception("Failed to send %s to user %s", event_type, user_id)
        return False
    return True


def notify_booking_event(
    event_type: str,
    booking,
    recipient_id: int | None,
    message: str = "",
) -> bool:
    """
    Tell one party of a booking that it was created or changed status.

    Args:
        event_type: booking_created or booking_status_changed
        booking: Booking model instance
        recipient_id: Passenger or driver user ID
        message: Optional message to include
    """
    from bookings.serializers import BookingSerializer

    payload = {
        "booking_id": booking.id,
        "route_id": booking.route_id,
        "status": booking.status,
        "booking": dict(BookingSerializer(booking).data),
    }
    if message:
        payload["message"] = message

    return notify_user_event(recipient_id, event_type, payload)


def notify_route_status(route, passenger_ids: Iterable[int], message: str = "") -> int:
    """
    Tell passengers holding bookings on a route that its status changed.

    Returns:
        Number of passengers notified
    """
    payload = {
        "route_id": route.id,
        "status": route.status,
        "message": message or f"Route is now {route.status}",
    }

    notified = 0
    for passenger_id in passenger_ids:
        if notify_user_event(passenger_id, "route_status_changed", payload):
            notified += 1
    return notified
