from rest_framework import serializers
from vehicles.models import Vehicle


class VehicleSerializer(serializers.ModelSerializer):
    """
    Full vehicle serializer, used for registration and listing.
    New vehicles always start active and pending verification.
    """

    class Meta:
        model = Vehicle
        fields = [
            "id",
            "owner",
            "type",
            "vehicle_number",
            "capacity",
            "description",
            "status",
            "verification_status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "owner", "status", "verification_status", "created_at", "updated_at"]

    def validate_capacity(self, value):
        if value < 1:
            raise serializers.ValidationError("Capacity must be at least 1")
        return value


class VehicleBasicSerializer(serializers.ModelSerializer):
    """
    Lite version of vehicle info nested inside route details.
    """
    class Meta:
        model = Vehicle
        fields = ["id", "type", "vehicle_number", "capacity"]


class VehicleStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=["active", "maintenance", "inactive"])
