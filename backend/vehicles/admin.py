from django.contrib import admin
from .models import Vehicle


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ("vehicle_number", "owner", "type", "capacity", "status", "verification_status")
    list_filter = ("type", "status", "verification_status")
    search_fields = ("vehicle_number", "owner__email", "owner__name")
    readonly_fields = ("created_at", "updated_at")
