"""Route location WebSocket consumer: live driver position per route."""

import logging
from typing import Dict, Any, Optional, Set

from channels.db import database_sync_to_async

from realtime.broadcast import broadcast_route_location_async, route_location_group
from realtime.utils import InvalidMessageError, parse_location, parse_route_id
from .base import BaseConsumer

logger = logging.getLogger(__name__)


class RouteLocationConsumer(BaseConsumer):
    """
    WebSocket consumer for route tracking.

    Any authenticated user may:
        - subscribe / unsubscribe to a route's location group

    The route's driver may additionally:
        - send updateLocation to publish their position to subscribers
    """

    async def on_connect(self):
        self.subscribed_routes: Set[int] = set()

        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": "Location connection established",
        })

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Handle route tracking messages."""
        try:
            if msg_type == "subscribe":
                await self._handle_subscribe(data)
            elif msg_type == "unsubscribe":
                await self._handle_unsubscribe(data)
            elif msg_type in ("updateLocation", "update_location"):
                await self._handle_update_location(data)
            else:
                await self.send_error(f"Unknown message type: {msg_type}")
        except InvalidMessageError as e:
            await self.send_error(str(e))

    # ---------------------- Message Handlers ----------------------

    async def _handle_subscribe(self, data: Dict[str, Any]):
        """Join route_<id>_location to receive the driver's position."""
        route_id = parse_route_id(data)

        route_info = await self._get_route_info(route_id)
        if route_info is None:
            await self.send_error("Route not found")
            return

        await self._join_group(route_location_group(route_id))
        self.subscribed_routes.add(route_id)

        # Send the last known position so the map is not empty until the next update
        await self.send_success(
            "subscribed",
            route_id=route_id,
            location=route_info["location"],
        )

    async def _handle_unsubscribe(self, data: Dict[str, Any]):
        route_id = parse_route_id(data)

        await self._leave_group(route_location_group(route_id))
        self.subscribed_routes.discard(route_id)

        await self.send_success("unsubscribed", route_id=route_id)

    async def _handle_update_location(self, data: Dict[str, Any]):
        """
        Driver publishes their position for a route.
        Stored on the route (if moved) and relayed to every subscriber.
        """
        route_id = parse_route_id(data)
        lat, lon = parse_location(data)

        route_info = await self._get_route_info(route_id)
        if route_info is None:
            await self.send_error("Route not found")
            return

        if route_info["driver_id"] != self.user_id:
            await self.send_error("Only the route driver can update its location")
            return

        await self._record_location(route_id, lat, lon)
        await broadcast_route_location_async(route_id, self.user_id, lat, lon)

    # ---------------------- Event Handlers (from group_send) ----------------------

    async def route_location(self, event):
        """Forward a driver position to a subscriber."""
        route_id = event.get("route_id")
        await self.send_json({
            "type": f"route:{route_id}:location",
            "route_id": route_id,
            "location": event.get("location"),
            "driver_id": event.get("driver_id"),
            "timestamp": event.get("timestamp"),
        })

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _get_route_info(self, route_id: int) -> Optional[Dict[str, Any]]:
        from routes.models import Route
        route = Route.objects.filter(pk=route_id).first()
        if route is None:
            return None

        location = None
        if route.current_latitude is not None and route.current_longitude is not None:
            location = {
                "latitude": float(route.current_latitude),
                "longitude": float(route.current_longitude),
            }
        return {"driver_id": route.driver_id, "location": location}

    @database_sync_to_async
    def _record_location(self, route_id: int, lat: float, lon: float) -> bool:
        from routes.models import Route
        from services.booking_management import record_route_location
        try:
            route = Route.objects.get(pk=route_id)
            return record_route_location(route, lat, lon)
        except Exception:
            logger.exception("Failed to store location for route %s", route_id)
            return False
