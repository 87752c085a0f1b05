from django.urls import path

from .views import BookingDetailView, BookingListCreateView, BookingStatusView

urlpatterns = [
    path("", BookingListCreateView.as_view(), name="booking-list"),
    path("<int:booking_id>/", BookingDetailView.as_view(), name="booking-detail"),
    path("<int:booking_id>/status/", BookingStatusView.as_view(), name="booking-status"),
]
