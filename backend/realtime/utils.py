"""Helpers for validating socket message bodies."""

from typing import Any, Dict, Tuple

from routes.serializers import LocationSerializer


class InvalidMessageError(ValueError):
    """Raised when a socket message body is malformed."""


def parse_route_id(data: Dict[str, Any]) -> int:
    route_id = data.get("route_id")
    if route_id is None or isinstance(route_id, bool):
        raise InvalidMessageError("route_id is required")
    try:
        return int(route_id)
    except (TypeError, ValueError):
        raise InvalidMessageError("route_id must be an integer")


def parse_location(data: Dict[str, Any]) -> Tuple[float, float]:
    """
    Extract (latitude, longitude) from {"location": {...}}.

    Raises:
        InvalidMessageError: location missing or out of range
    """
    location = data.get("location")
    if not isinstance(location, dict):
        raise InvalidMessageError("location with latitude and longitude is required")

    serializer = LocationSerializer(data=location)
    if not serializer.is_valid():
        raise InvalidMessageError("Invalid location coordinates")

    return (
        float(serializer.validated_data["latitude"]),
        float(serializer.validated_data["longitude"]),
    )
