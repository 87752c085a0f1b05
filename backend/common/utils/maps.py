"""
Address lookups against OpenStreetMap Nominatim.

Failures never raise: callers get None and decide whether the address was required.
"""

import logging
from typing import Optional, Tuple

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


def _get(path: str, params: dict):
    response = requests.get(
        f"{settings.NOMINATIM_URL.rstrip('/')}/{path}",
        params={"format": "json", **params},
        headers={"User-Agent": settings.NOMINATIM_USER_AGENT},
        timeout=settings.GEOCODING_TIMEOUT,
    )
    response.raise_for_status()
    return response.json()


def geocode_address(address: str) -> Optional[Tuple[float, float, str]]:
    """
    Resolve a free-text address.

    Returns:
        (latitude, longitude, display_name) of the best match, or None
    """
    if not address:
        return None

    try:
        results = _get("search", {"q": address, "limit": 1})
    except (requests.RequestException, ValueError) as e:
        logger.warning("Geocoding failed for %r: %s", address, e)
        return None

    if not results:
        return None

    best = results[0]
    return float(best["lat"]), float(best["lon"]), best.get("display_name", address)


def reverse_geocode(lat: float, lon: float) -> Optional[str]:
    """Human-readable address for a coordinate pair, or None."""
    try:
        result = _get("reverse", {"lat": lat, "lon": lon})
    except (requests.RequestException, ValueError) as e:
        logger.warning("Reverse geocoding failed for %s,%s: %s", lat, lon, e)
        return None

    return result.get("display_name")
