"""Custom exceptions for booking and route management."""


class RouteNotFoundError(Exception):
    """Raised when a route cannot be found."""
    pass


class RouteNotBookableError(Exception):
    """Raised when a route is not open for new bookings."""
    pass


class NotEnoughSeatsError(Exception):
    """Raised when a route has fewer free seats than requested."""
    pass


class BookingNotFoundError(Exception):
    """Raised when a booking cannot be found."""
    pass


class InvalidStatusTransitionError(Exception):
    """Raised when a status change is not allowed from the current state."""
    pass


class NotAuthorizedError(Exception):
    """Raised when the user is not a party allowed to perform the operation."""
    pass
