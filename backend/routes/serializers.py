from collections.abc import Mapping
from decimal import Decimal

from django.utils import timezone
from rest_framework import serializers
from rest_framework.fields import SkipField
from rest_framework.settings import api_settings

from accounts.serializers import UserBasicSerializer
from common.responses import flatten_errors
from common.utils.maps import geocode_address
from vehicles.models import Vehicle
from vehicles.serializers import VehicleBasicSerializer
from .models import Route


class RouteSerializer(serializers.ModelSerializer):
    """Serializer for published routes"""
    driver = UserBasicSerializer(read_only=True)
    vehicle = VehicleBasicSerializer(read_only=True)

    class Meta:
        model = Route
        fields = ['id', 'driver', 'vehicle',
                  'start_address', 'start_latitude', 'start_longitude',
                  'end_address', 'end_latitude', 'end_longitude',
                  'departure_time', 'estimated_arrival_time', 'fare',
                  'available_seats', 'status', 'created_at', 'updated_at']
        read_only_fields = fields


class RouteCreateSerializer(serializers.Serializer):
    """
    Validates a new route for the requesting driver (passed as context["driver"]).

    Coordinates may be omitted, in which case the address is geocoded.
    Every problem with the payload is reported together as one list of messages.
    """
    vehicle_id = serializers.IntegerField(
        error_messages={"required": "Vehicle is required", "null": "Vehicle is required"}
    )

    start_address = serializers.CharField(
        error_messages={"required": "Start location is required", "blank": "Start location is required"}
    )
    start_latitude = serializers.FloatField(min_value=-90, max_value=90, required=False, allow_null=True)
    start_longitude = serializers.FloatField(min_value=-180, max_value=180, required=False, allow_null=True)

    end_address = serializers.CharField(
        error_messages={"required": "End location is required", "blank": "End location is required"}
    )
    end_latitude = serializers.FloatField(min_value=-90, max_value=90, required=False, allow_null=True)
    end_longitude = serializers.FloatField(min_value=-180, max_value=180, required=False, allow_null=True)

    departure_time = serializers.DateTimeField(
        error_messages={"required": "Departure time is required"}
    )
    estimated_arrival_time = serializers.DateTimeField(required=False, allow_null=True)

    fare = serializers.DecimalField(
        max_digits=10, decimal_places=2,
        error_messages={"required": "Fare is required"}
    )
    available_seats = serializers.IntegerField(
        error_messages={"required": "Available seats is required"}
    )

    def to_internal_value(self, data):
        if not isinstance(data, Mapping):
            raise serializers.ValidationError({api_settings.NON_FIELD_ERRORS_KEY: ["Invalid data"]})

        errors = []
        values = {}
        for field in self._writable_fields:
            try:
                values[field.field_name] = field.run_validation(field.get_value(data))
            except SkipField:
                continue
            except serializers.ValidationError as exc:
                errors.extend(flatten_errors(exc.detail))

        errors.extend(self.check_route(values))
        if errors:
            raise serializers.ValidationError({api_settings.NON_FIELD_ERRORS_KEY: errors})
        return values

    def _resolve_point(self, data, prefix, errors, label):
        lat = data.get(f"{prefix}_latitude")
        lon = data.get(f"{prefix}_longitude")
        if lat is None or lon is None:
            address = data.get(f"{prefix}_address")
            found = geocode_address(address) if address else None
            if found is None:
                errors.append(f"{label} coordinates are required")
                return
            lat, lon = found[0], found[1]

        data[f"{prefix}_latitude"] = Decimal(str(round(lat, 6)))
        data[f"{prefix}_longitude"] = Decimal(str(round(lon, 6)))

    def check_route(self, data):
        """
        Business rules over whatever fields parsed; a field that failed to
        parse is already reported and is skipped here.
        """
        errors = []
        driver = self.context["driver"]
        departure = data.get("departure_time")
        arrival = data.get("estimated_arrival_time")
        fare = data.get("fare")
        seats = data.get("available_seats")

        if departure is not None and departure < timezone.now():
            errors.append("Departure time must be in the future")
        if departure is not None and arrival is not None and arrival <= departure:
            errors.append("Estimated arrival time must be after departure time")

        if fare is not None and fare <= 0:
            errors.append("Fare must be greater than 0")
        if seats is not None and seats <= 0:
            errors.append("Available seats must be greater than 0")

        if "vehicle_id" in data:
            vehicle = Vehicle.objects.filter(id=data["vehicle_id"], owner=driver).first()
            if vehicle is None:
                errors.append("Vehicle not found")
            elif vehicle.status != "active":
                errors.append("Vehicle is not active")
            elif seats is not None and seats > vehicle.capacity:
                errors.append("Available seats cannot exceed vehicle capacity")
            data["vehicle"] = vehicle

        self._resolve_point(data, "start", errors, "Start")
        self._resolve_point(data, "end", errors, "End")
        return errors

    def create(self, validated_data):
        validated_data.pop("vehicle_id")
        return Route.objects.create(driver=self.context["driver"], **validated_data)


class RouteStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[choice for choice, _ in Route.STATUS_CHOICES])


class LocationSerializer(serializers.Serializer):
    """
    Validates latitude/longitude sent by a passenger or driver.

    Expected body:
    {
        "latitude": <float>,
        "longitude": <float>,
        "address": <optional str>
    }
    """

    latitude = serializers.FloatField(
        min_value=-90,
        max_value=90,
        help_text="Latitude between -90 and 90 degrees."
    )

    longitude = serializers.FloatField(
        min_value=-180,
        max_value=180,
        help_text="Longitude between -180 and 180 degrees."
    )

    address = serializers.CharField(required=False, allow_blank=True, default="")


class NearbyQuerySerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)
    maxDistance = serializers.IntegerField(min_value=1, required=False, default=10000)


class RouteSearchSerializer(serializers.Serializer):
    start_location = LocationSerializer()
    end_location = LocationSerializer()
    max_distance = serializers.IntegerField(min_value=1, required=False, default=10000)
    number_of_seats = serializers.IntegerField(min_value=1, required=False, default=1)
    date = serializers.DateField(required=False, allow_null=True)
    boarding_time = serializers.TimeField(required=False, allow_null=True)
    vehicle_type = serializers.ChoiceField(
        choices=[choice for choice, _ in Vehicle.TYPE_CHOICES],
        required=False,
        allow_null=True,
        allow_blank=True,
    )


class RouteMatchSerializer(serializers.Serializer):
    """Search hit: the route plus how well it fits the requested trip"""
    route = RouteSerializer()
    pickup_distance = serializers.FloatField()
    dropoff_distance = serializers.FloatField()
    direction_similarity = serializers.FloatField()
    score = serializers.FloatField()

    def to_representation(self, instance):
        data = super().to_representation(instance)
        route = data.pop("route")
        return {**route, **data}
