import logging

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated

from accounts.permissions import IsDriver
from bookings.serializers import RouteBookingSerializer
from common.responses import SERVICE_ERRORS, error_response, validation_failed
from services.booking_management import (
    get_driver_route,
    get_route,
    update_route_location,
    update_route_status,
)
from services.route_search import find_nearby_routes, search_routes
from .models import Route
from .serializers import (
    LocationSerializer,
    NearbyQuerySerializer,
    RouteCreateSerializer,
    RouteMatchSerializer,
    RouteSearchSerializer,
    RouteSerializer,
    RouteStatusSerializer,
)

logger = logging.getLogger(__name__)

RECENT_ROUTES_LIMIT = 5


class RouteListCreateView(APIView):
    """
    Drivers publish routes and list their own.

    POST Body:
    {
        "vehicle_id": 3,
        "start_address": "MG Road, Bengaluru",
        "start_latitude": 12.9756,      // optional if the address geocodes
        "start_longitude": 77.6050,
        "end_address": "Whitefield, Bengaluru",
        "end_latitude": 12.9698,
        "end_longitude": 77.7500,
        "departure_time": "2026-01-10T08:30:00Z",
        "estimated_arrival_time": "2026-01-10T09:30:00Z",   // optional
        "fare": "120.00",
        "available_seats": 3
    }
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        routes = Route.objects.filter(driver=request.user).select_related("driver", "vehicle")
        return Response(RouteSerializer(routes, many=True).data)

    def post(self, request):
        serializer = RouteCreateSerializer(data=request.data, context={"driver": request.user})
        if not serializer.is_valid():
            return validation_failed(serializer.errors)

        route = serializer.save()
        logger.info("Driver %s published route %s", request.user.id, route.id)
        return Response(RouteSerializer(route).data, status=status.HTTP_201_CREATED)


class RecentRoutesView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        routes = Route.objects.select_related("driver", "vehicle")[:RECENT_ROUTES_LIMIT]
        return Response(RouteSerializer(routes, many=True).data)


class NearbyRoutesView(APIView):
    """GET ?lat=..&lng=..&maxDistance=10000 (meters)"""
    permission_classes = [AllowAny]

    def get(self, request):
        query = NearbyQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(
                {"error": "Valid lat and lng query parameters are required", "details": query.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        params = query.validated_data
        results = find_nearby_routes(params["lat"], params["lng"], params["maxDistance"])

        data = []
        for route, distance in results:
            data.append({**RouteSerializer(route).data, "distance": round(distance, 1)})
        return Response(data)


class RouteSearchView(APIView):
    """
    Match routes to a trip.

    POST Body:
    {
        "start_location": {"latitude": 12.97, "longitude": 77.59},
        "end_location": {"latitude": 12.97, "longitude": 77.75},
        "max_distance": 5000,        // optional, meters
        "number_of_seats": 1,        // optional
        "date": "2026-01-10",        // optional
        "boarding_time": "08:30",    // optional, +/- 30 minutes
        "vehicle_type": "car"        // optional
    }
    """
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = RouteSearchSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_failed(serializer.errors)

        params = serializer.validated_data
        start = params["start_location"]
        end = params["end_location"]

        matches = search_routes(
            (start["latitude"], start["longitude"]),
            (end["latitude"], end["longitude"]),
            max_distance=params["max_distance"],
            number_of_seats=params["number_of_seats"],
            date=params.get("date"),
            vehicle_type=params.get("vehicle_type") or None,
            boarding_time=params.get("boarding_time"),
        )
        return Response(RouteMatchSerializer(matches, many=True).data)


class RouteDetailView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, route_id: int):
        try:
            route = get_route(route_id)
        except SERVICE_ERRORS as e:
            return error_response(e)
        return Response(RouteSerializer(route).data)


class RouteStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def patch(self, request, route_id: int):
        serializer = RouteStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            route = update_route_status(request.user, route_id, serializer.validated_data["status"])
        except SERVICE_ERRORS as e:
            return error_response(e)

        return Response(RouteSerializer(route).data)


class RouteBookingsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, route_id: int):
        try:
            route = get_driver_route(request.user, route_id)
        except SERVICE_ERRORS as e:
            return error_response(e)

        bookings = route.bookings.select_related("user")
        return Response(RouteBookingSerializer(bookings, many=True).data)


class RouteLocationView(APIView):
    """
    GET: last known driver position (public)
    POST: driver publishes a position over HTTP when the socket is unavailable
        {"latitude": 12.97, "longitude": 77.59}
    """

    def get_permissions(self):
        if self.request.method == "GET":
            return [AllowAny()]
        return [IsAuthenticated()]

    def get(self, request, route_id: int):
        try:
            route = get_route(route_id)
        except SERVICE_ERRORS as e:
            return error_response(e)

        location = None
        if route.current_latitude is not None and route.current_longitude is not None:
            location = {
                "latitude": float(route.current_latitude),
                "longitude": float(route.current_longitude),
            }

        return Response({
            "route_id": route.id,
            "driver_id": route.driver_id,
            "location": location,
            "last_location_update": route.last_location_update,
        })

    def post(self, request, route_id: int):
        serializer = LocationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lat = serializer.validated_data["latitude"]
        lon = serializer.validated_data["longitude"]

        try:
            route, persisted = update_route_location(request.user, route_id, lat, lon)
        except SERVICE_ERRORS as e:
            return error_response(e)

        return Response({
            "route_id": route.id,
            "location": {"latitude": lat, "longitude": lon},
            "persisted": persisted,
        })
