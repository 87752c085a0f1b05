from django.urls import path
from .views import (
    VehicleListCreateView,
    VehicleDetailView,
    VehicleStatusView,
)

urlpatterns = [
    path("", VehicleListCreateView.as_view(), name="vehicle-list"),
    path("<int:vehicle_id>/", VehicleDetailView.as_view(), name="vehicle-detail"),
    path("<int:vehicle_id>/status/", VehicleStatusView.as_view(), name="vehicle-status"),
]
