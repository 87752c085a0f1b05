"""Celery tasks for booking housekeeping."""

import logging

from celery import shared_task
from django.conf import settings

logger = logging.getLogger(__name__)


@shared_task
def expire_stale_bookings_task(grace_minutes: int = None):
    """
    Periodic task (Celery beat) that cancels pending bookings left
    unconfirmed after their route departed.
    """
    from services.booking_management import expire_stale_bookings

    if grace_minutes is None:
        grace_minutes = settings.STALE_BOOKING_GRACE_MINUTES

    expired = expire_stale_bookings(grace_minutes=grace_minutes)
    logger.info("Stale booking sweep expired %s booking(s)", expired)
    return expired
