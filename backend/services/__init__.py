"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - booking_management: Seat reservations and booking lifecycle
    - route_search: Nearby routes and trip matching
"""
