from rest_framework import serializers

from accounts.serializers import UserBasicSerializer
from routes.serializers import LocationSerializer, RouteSerializer
from .models import Booking


class BookingSerializer(serializers.ModelSerializer):
    """Booking with the passenger and the booked route"""
    user = UserBasicSerializer(read_only=True)
    route = RouteSerializer(read_only=True)

    class Meta:
        model = Booking
        fields = ['id', 'user', 'route',
                  'pickup_address', 'pickup_latitude', 'pickup_longitude',
                  'dropoff_address', 'dropoff_latitude', 'dropoff_longitude',
                  'number_of_seats', 'total_fare', 'status', 'payment_status',
                  'estimated_pickup_time', 'actual_pickup_time', 'completion_time',
                  'cancelled_at', 'cancellation_reason', 'created_at', 'updated_at']
        read_only_fields = fields


class RouteBookingSerializer(serializers.ModelSerializer):
    """Booking as the driver sees it on their route (no nested route)"""
    user = UserBasicSerializer(read_only=True)

    class Meta:
        model = Booking
        fields = ['id', 'user',
                  'pickup_address', 'pickup_latitude', 'pickup_longitude',
                  'dropoff_address', 'dropoff_latitude', 'dropoff_longitude',
                  'number_of_seats', 'total_fare', 'status', 'payment_status',
                  'estimated_pickup_time', 'created_at']
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    """
    Expected body:
    {
        "route_id": 12,
        "number_of_seats": 2,
        "pickup_location": {"latitude": .., "longitude": .., "address": ".."},   // optional
        "dropoff_location": {"latitude": .., "longitude": .., "address": ".."}   // optional
    }
    """
    route_id = serializers.IntegerField(error_messages={"required": "Route is required"})
    number_of_seats = serializers.IntegerField(min_value=1, default=1)
    pickup_location = LocationSerializer(required=False, allow_null=True)
    dropoff_location = LocationSerializer(required=False, allow_null=True)


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[choice for choice, _ in Booking.STATUS_CHOICES])
    reason = serializers.CharField(required=False, allow_blank=True, default="")
