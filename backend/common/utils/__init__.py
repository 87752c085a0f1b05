"""Common utility functions."""

from .geo import bounding_box, calculate_distance, direction_similarity
from .maps import geocode_address, reverse_geocode

__all__ = [
    "bounding_box",
    "calculate_distance",
    "direction_similarity",
    "geocode_address",
    "reverse_geocode",
]
