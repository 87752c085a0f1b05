"""End-to-end smoke check for the route location relay.

Prerequisites:
1. `python manage.py runserver` (daphne) must be running.
2. Install the dev extra once: `pip install -e ".[dev]"` (requests, websocket-client).

The script will:
- Ensure a demo driver and passenger exist (auto-register if missing).
- Register a vehicle and publish a route as the driver via REST.
- Open a passenger socket and subscribe to the route.
- Open a driver socket, send updateLocation and wait for the passenger to receive it.
"""

from __future__ import annotations

import json
import os
import queue
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Dict

import requests
import websocket  # type: ignore

BASE_URL = os.environ.get("RIDELINK_BASE_URL", "http://127.0.0.1:8000")
API_ROOT = f"{BASE_URL}/api"

DRIVER_CREDS = {
    "name": "WS Demo Driver",
    "email": "ws_demo_driver@example.com",
    "password": "demo1234",
    "role": "driver",
}

PASSENGER_CREDS = {
    "name": "WS Demo Passenger",
    "email": "ws_demo_passenger@example.com",
    "password": "demo1234",
    "role": "user",
}

START = {"latitude": 28.6139, "longitude": 77.2090}
END = {"latitude": 28.6129, "longitude": 77.2295}


def _login_or_register(session: requests.Session, payload: Dict) -> Dict:
    login_body = {"email": payload["email"], "password": payload["password"]}
    login_resp = session.post(f"{API_ROOT}/users/login/", json=login_body, timeout=10)

    if login_resp.status_code != 200:
        reg_resp = session.post(f"{API_ROOT}/users/register/", json=payload, timeout=10)
        reg_resp.raise_for_status()
        login_resp = session.post(f"{API_ROOT}/users/login/", json=login_body, timeout=10)

    login_resp.raise_for_status()
    data = login_resp.json()
    session.headers.update({"Authorization": f"Bearer {data['tokens']['access']}"})
    data["user"]["access"] = data["tokens"]["access"]
    return data["user"]


def _publish_route(session: requests.Session) -> Dict:
    vehicles = session.get(f"{API_ROOT}/vehicles/", timeout=10)
    vehicles.raise_for_status()
    active = [v for v in vehicles.json() if v["status"] == "active"]

    if active:
        vehicle = active[0]
    else:
        resp = session.post(
            f"{API_ROOT}/vehicles/",
            json={"type": "car", "vehicle_number": f"WS-{int(time.time())}", "capacity": 4},
            timeout=10,
        )
        resp.raise_for_status()
        vehicle = resp.json()

    departure = datetime.now(timezone.utc) + timedelta(hours=1)
    resp = session.post(
        f"{API_ROOT}/routes/",
        json={
            "vehicle_id": vehicle["id"],
            "start_address": "Connaught Place",
            "start_latitude": START["latitude"],
            "start_longitude": START["longitude"],
            "end_address": "India Gate",
            "end_latitude": END["latitude"],
            "end_longitude": END["longitude"],
            "departure_time": departure.isoformat(),
            "fare": "50.00",
            "available_seats": 3,
        },
        timeout=10,
    )
    resp.raise_for_status()
    return resp.json()


def _socket_url(access_token: str) -> str:
    return BASE_URL.replace("http", "ws", 1) + f"/ws/location/?token={access_token}"


def _listen_as_passenger(token: str, route_id: int, ready_evt: threading.Event, queue_out: queue.Queue) -> None:
    expected_type = f"route:{route_id}:location"

    def on_open(ws):  # type: ignore[no-untyped-def]
        ws.send(json.dumps({"type": "subscribe", "route_id": route_id}))

    def on_message(ws, message):  # type: ignore[no-untyped-def]
        payload = json.loads(message)
        print(f"[WS passenger] {payload}")
        if payload.get("type") == "subscribed":
            ready_evt.set()
        elif payload.get("type") == expected_type:
            queue_out.put(payload)
            ws.close()

    def on_error(ws, error):  # type: ignore[no-untyped-def]
        print(f"[WS passenger] Error: {error}")
        ready_evt.set()

    ws_app = websocket.WebSocketApp(
        _socket_url(token),
        on_open=on_open,
        on_message=on_message,
        on_error=on_error,
    )
    ws_app.run_forever()


def _send_driver_update(token: str, route_id: int) -> None:
    ws = websocket.create_connection(_socket_url(token), timeout=10)
    try:
        print(f"[WS driver] {ws.recv()}")
        ws.send(json.dumps({
            "type": "updateLocation",
            "route_id": route_id,
            "location": {"latitude": START["latitude"] + 0.001, "longitude": START["longitude"] + 0.001},
        }))
        # Give the server a moment to relay before closing
        time.sleep(1)
    finally:
        ws.close()


def main() -> None:
    driver_session = requests.Session()
    passenger_session = requests.Session()

    print("[HTTP] Logging in / registering demo accounts ...")
    driver = _login_or_register(driver_session, DRIVER_CREDS)
    passenger = _login_or_register(passenger_session, PASSENGER_CREDS)
    route = _publish_route(driver_session)
    print(f"[HTTP] Driver #{driver['id']} published route #{route['id']} for passenger #{passenger['id']}")

    ready_evt = threading.Event()
    message_queue: queue.Queue = queue.Queue()
    ws_thread = threading.Thread(
        target=_listen_as_passenger,
        args=(passenger["access"], route["id"], ready_evt, message_queue),
        daemon=True,
    )
    ws_thread.start()

    if not ready_evt.wait(timeout=5):
        raise TimeoutError("Passenger WebSocket failed to subscribe within 5 seconds")

    _send_driver_update(driver["access"], route["id"])

    try:
        payload = message_queue.get(timeout=10)
    except queue.Empty:
        raise TimeoutError("Passenger did not receive the driver location within 10 seconds")

    print("[RESULT] Passenger received location", payload["location"], "from driver", payload["driver_id"])
    print("[DONE] Location relay check completed.")


if __name__ == "__main__":
    main()
