"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers.location_consumer import RouteLocationConsumer

websocket_urlpatterns = [
    # Route location relay (drivers publish, anyone signed in subscribes)
    # URL: ws://localhost:8000/ws/location/?token=<access>
    re_path(
        r"ws/location/$",
        RouteLocationConsumer.as_asgi(),
        name="location-ws"
    ),
]
