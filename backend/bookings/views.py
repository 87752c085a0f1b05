import logging

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from common.responses import SERVICE_ERRORS, error_response
from services.booking_management import (
    create_booking,
    get_user_bookings,
    get_visible_booking,
    update_booking_status,
)
from .serializers import BookingCreateSerializer, BookingSerializer, BookingStatusSerializer

logger = logging.getLogger(__name__)


class BookingListCreateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        bookings = get_user_bookings(request.user)
        return Response(BookingSerializer(bookings, many=True).data)

    def post(self, request):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            booking = create_booking(
                request.user,
                data["route_id"],
                data["number_of_seats"],
                pickup_location=data.get("pickup_location"),
                dropoff_location=data.get("dropoff_location"),
            )
        except SERVICE_ERRORS as e:
            return error_response(e)

        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


class BookingDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, booking_id: int):
        try:
            booking = get_visible_booking(request.user, booking_id)
        except SERVICE_ERRORS as e:
            return error_response(e)
        return Response(BookingSerializer(booking).data)


class BookingStatusView(APIView):
    """
    Passenger or route driver moves a booking along.

    PATCH Body:
    {
        "status": "confirmed",   // confirmed, in-progress, completed, cancelled
        "reason": "optional cancellation note"
    }
    """
    permission_classes = [IsAuthenticated]

    def patch(self, request, booking_id: int):
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            booking = update_booking_status(
                request.user,
                booking_id,
                serializer.validated_data["status"],
                reason=serializer.validated_data["reason"],
            )
        except SERVICE_ERRORS as e:
            return error_response(e)

        return Response(BookingSerializer(booking).data)
