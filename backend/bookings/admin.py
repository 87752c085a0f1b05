"""Tells what to show in the Django admin interface for bookings app"""

from django.contrib import admin
from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Booking admin"""
    list_display = ['id', 'user', 'route', 'number_of_seats', 'total_fare',
                    'status', 'payment_status', 'created_at']
    list_filter = ['status', 'payment_status', 'created_at']
    search_fields = ['user__email', 'route__start_address', 'route__end_address', 'pickup_address']
    readonly_fields = ['created_at', 'updated_at', 'actual_pickup_time', 'completion_time', 'cancelled_at']
    date_hierarchy = 'created_at'
