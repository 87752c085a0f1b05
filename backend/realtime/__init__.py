"""
Realtime app for WebSocket communication.

This app provides:
- A location socket where drivers publish their position per route
- Per-route broadcast groups that passengers subscribe to
- Notification helpers for pushing booking/route events to one user
- JWT authentication middleware for WebSocket connections

Key Components:
    - broadcast.py: Route location broadcasting with per-driver rate limit
    - consumers/: WebSocket consumers (base, route location)
    - notifications.py: Booking and route event notification helpers
    - middleware.py: JWT auth for the socket handshake

Usage:
    from realtime.consumers import RouteLocationConsumer
    from realtime.notifications import notify_booking_event, notify_route_status
    from realtime.broadcast import broadcast_route_location
"""
