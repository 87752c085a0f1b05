"""
Route location broadcast.

A driver's position is fanned out to the channel group of the route they are
driving. Everyone watching that route (passengers, the route page) joins the
group with a `subscribe` message on the location socket.

Flow:
1. Driver sends updateLocation (socket) or POSTs the location (HTTP fallback)
2. Position is stored on the Route when it moved far enough
3. The update is group_sent to route_<id>_location, rate limited per driver
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Any

from channels.layers import get_channel_layer
from asgiref.sync import async_to_sync
from django.utils import timezone

logger = logging.getLogger(__name__)

MIN_BROADCAST_INTERVAL = 0.5  # seconds

# Rate limiting cache (per process)
_last_broadcast_times: Dict[int, float] = {}


def _should_broadcast(driver_id: int, min_interval: float = MIN_BROADCAST_INTERVAL) -> bool:
    """Check if enough time has passed since last broadcast for this driver."""
    now = time.time()
    last_time = _last_broadcast_times.get(driver_id, 0)
    if now - last_time < min_interval:
        return False
    _last_broadcast_times[driver_id] = now
    return True


def route_location_group(route_id: int) -> str:
    return f"route_{route_id}_location"


def build_location_payload(route_id: int, driver_id: int, lat: float, lon: float) -> Dict[str, Any]:
    return {
        "type": "route_location",
        "route_id": route_id,
        "driver_id": driver_id,
        "location": {"latitude": lat, "longitude": lon},
        "timestamp": timezone.now().isoformat(),
    }


# ---------------------- Sync Broadcast ----------------------

def broadcast_route_location(
    route_id: int,
    driver_id: int,
    lat: float,
    lon: float,
    force: bool = False,
) -> Dict[str, Any]:
    """
    Send a driver position to every subscriber of the route.

    Args:
        route_id: Route being driven
        driver_id: Driver's user ID
        lat: Latitude
        lon: Longitude
        force: Skip the per-driver rate limit

    Returns:
        Dict with broadcast outcome
    """
    if not force and not _should_broadcast(driver_id):
        return {"broadcasted": False, "reason": "rate_limited"}
    if force:
        _last_broadcast_times[driver_id] = time.time()

    channel_layer = get_channel_layer()
    if not channel_layer:
        return {"broadcasted": False, "reason": "no_channel_layer"}

    try:
        async_to_sync(channel_layer.group_send)(
            route_location_group(route_id),
            build_location_payload(route_id, driver_id, lat, lon),
        )
    except Exception as e:
        logger.exception("broadcast_route_location failed for route %s", route_id)
        return {"broadcasted": False, "error": str(e)}

    return {"broadcasted": True, "group": route_location_group(route_id)}


# ---------------------- Async Broadcast ----------------------

async def broadcast_route_location_async(
    route_id: int,
    driver_id: int,
    lat: float,
    lon: float,
    force: bool = False,
) -> Dict[str, Any]:
    """Async version of broadcast_route_location."""
    if not force and not _should_broadcast(driver_id):
        return {"broadcasted": False, "reason": "rate_limited"}
    if force:
        _last_broadcast_times[driver_id] = time.time()

    channel_layer = get_channel_layer()
    if not channel_layer:
        return {"broadcasted": False, "reason": "no_channel_layer"}

    try:
        await channel_layer.group_send(
            route_location_group(route_id),
            build_location_payload(route_id, driver_id, lat, lon),
        )
    except Exception as e:
        logger.exception("broadcast_route_location_async failed for route %s", route_id)
        return {"broadcasted": False, "error": str(e)}

    return {"broadcasted": True, "group": route_location_group(route_id)}
