import logging

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from vehicles.models import Vehicle
from vehicles.serializers import VehicleSerializer, VehicleStatusSerializer

logger = logging.getLogger(__name__)


# Utility: Ensure request.user is a driver
def require_driver(user):
    if user.role != "driver":
        return Response({"error": "Only drivers allowed"}, status=403)
    return None


def get_owned_vehicle(user, vehicle_id):
    return Vehicle.objects.filter(id=vehicle_id, owner=user).first()


class VehicleListCreateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        vehicles = Vehicle.objects.filter(owner=request.user)
        serializer = VehicleSerializer(vehicles, many=True)
        return Response(serializer.data)

    def post(self, request):
        denied = require_driver(request.user)
        if denied:
            return denied

        serializer = VehicleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        vehicle = serializer.save(owner=request.user, status="active", verification_status="pending")
        logger.info("Driver %s registered vehicle %s", request.user.id, vehicle.vehicle_number)

        return Response(VehicleSerializer(vehicle).data, status=status.HTTP_201_CREATED)


class VehicleDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, vehicle_id: int):
        vehicle = get_owned_vehicle(request.user, vehicle_id)
        if not vehicle:
            return Response({"error": "Vehicle not found"}, status=404)
        return Response(VehicleSerializer(vehicle).data)


class VehicleStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def patch(self, request, vehicle_id: int):
        # Vehicles owned by someone else are reported as missing
        vehicle = get_owned_vehicle(request.user, vehicle_id)
        if not vehicle:
            return Response({"error": "Vehicle not found"}, status=404)

        serializer = VehicleStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        vehicle.status = serializer.validated_data["status"]
        vehicle.save(update_fields=["status", "updated_at"])

        return Response(VehicleSerializer(vehicle).data)
