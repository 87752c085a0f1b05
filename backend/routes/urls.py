from django.urls import path

from .views import (
    NearbyRoutesView,
    RecentRoutesView,
    RouteBookingsView,
    RouteDetailView,
    RouteListCreateView,
    RouteLocationView,
    RouteSearchView,
    RouteStatusView,
)

urlpatterns = [
    path("", RouteListCreateView.as_view(), name="route-list"),
    path("recent/", RecentRoutesView.as_view(), name="route-recent"),
    path("nearby/", NearbyRoutesView.as_view(), name="route-nearby"),
    path("search/", RouteSearchView.as_view(), name="route-search"),
    path("<int:route_id>/", RouteDetailView.as_view(), name="route-detail"),
    path("<int:route_id>/status/", RouteStatusView.as_view(), name="route-status"),
    path("<int:route_id>/bookings/", RouteBookingsView.as_view(), name="route-bookings"),
    path("<int:route_id>/location/", RouteLocationView.as_view(), name="route-location"),
]
