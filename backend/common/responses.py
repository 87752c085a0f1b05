"""Translate service-layer errors into API responses."""

from rest_framework import status
from rest_framework.response import Response

from services.booking_management.exceptions import (
    BookingNotFoundError,
    InvalidStatusTransitionError,
    NotAuthorizedError,
    NotEnoughSeatsError,
    RouteNotBookableError,
    RouteNotFoundError,
)

ERROR_STATUS = {
    RouteNotFoundError: status.HTTP_404_NOT_FOUND,
    BookingNotFoundError: status.HTTP_404_NOT_FOUND,
    NotAuthorizedError: status.HTTP_403_FORBIDDEN,
    RouteNotBookableError: status.HTTP_400_BAD_REQUEST,
    NotEnoughSeatsError: status.HTTP_400_BAD_REQUEST,
    InvalidStatusTransitionError: status.HTTP_400_BAD_REQUEST,
}

SERVICE_ERRORS = tuple(ERROR_STATUS)


def error_response(exc: Exception) -> Response:
    return Response({"error": str(exc)}, status=ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST))


def flatten_errors(errors) -> list:
    """Serializer.errors (nested dicts/lists) as a flat list of messages."""
    if isinstance(errors, dict):
        return [message for value in errors.values() for message in flatten_errors(value)]
    if isinstance(errors, (list, tuple)):
        return [message for value in errors for message in flatten_errors(value)]
    return [str(errors)]


def validation_failed(errors) -> Response:
    return Response(
        {"message": "Validation failed", "errors": flatten_errors(errors)},
        status=status.HTTP_400_BAD_REQUEST,
    )
