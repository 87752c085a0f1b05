from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Registration, login, profile and role switch
    path('api/users/', include('accounts.urls')),

    # Driver-owned vehicles
    path('api/vehicles/', include('vehicles.urls')),

    # Published routes, proximity search and live location fallback
    path('api/routes/', include('routes.urls')),

    # Passenger seat bookings
    path('api/bookings/', include('bookings.urls')),
]
