"""Celery application for background jobs (stale booking expiry)."""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ridelink.settings.settings")

app = Celery("ridelink")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
