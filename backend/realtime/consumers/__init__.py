"""Realtime consumers for WebSocket communication."""

from .base import BaseConsumer
from .location_consumer import RouteLocationConsumer

__all__ = [
    "BaseConsumer",
    "RouteLocationConsumer",
]
