"""Tells what to show in the Django admin interface for routes app"""

from django.contrib import admin
from .models import Route


@admin.register(Route)
class RouteAdmin(admin.ModelAdmin):
    """Route admin"""
    list_display = ['id', 'driver', 'vehicle', 'start_address', 'end_address',
                    'departure_time', 'available_seats', 'fare', 'status']
    list_filter = ['status', 'departure_time']
    search_fields = ['driver__email', 'vehicle__vehicle_number', 'start_address', 'end_address']
    readonly_fields = ['created_at', 'updated_at', 'last_location_update']
    date_hierarchy = 'departure_time'
