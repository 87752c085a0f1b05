from datetime import timedelta
from decimal import Decimal

from asgiref.sync import sync_to_async
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.test import TransactionTestCase
from django.utils import timezone
from rest_framework_simplejwt.tokens import AccessToken

from accounts.models import User
from routes.models import Route
from vehicles.models import Vehicle
from . import broadcast
from .middleware import JWTAuthMiddleware
from .notifications import notify_route_status
from .routing import websocket_urlpatterns

application = JWTAuthMiddleware(URLRouter(websocket_urlpatterns))


class LocationSocketTests(TransactionTestCase):
    def setUp(self):
        broadcast._last_broadcast_times.clear()

        self.driver = User.objects.create_user(email='driver@example.com', password='secret123',
                                               name='Driver', role='driver')
        self.passenger = User.objects.create_user(email='rider@example.com', password='secret123',
                                                  name='Rider')
        vehicle = Vehicle.objects.create(owner=self.driver, type='car', vehicle_number='DL-01-0001', capacity=4)
        self.route = Route.objects.create(
            driver=self.driver,
            vehicle=vehicle,
            start_address='Connaught Place',
            start_latitude=Decimal('28.613900'),
            start_longitude=Decimal('77.209000'),
            end_address='India Gate',
            end_latitude=Decimal('28.612900'),
            end_longitude=Decimal('77.229500'),
            departure_time=timezone.now() + timedelta(hours=1),
            fare=Decimal('50.00'),
            available_seats=3,
        )

    async def connect(self, user=None, token=None):
        if token is None:
            token = str(AccessToken.for_user(user))
        communicator = WebsocketCommunicator(application, f"/ws/location/?token={token}")
        connected, _ = await communicator.connect()
        if connected:
            greeting = await communicator.receive_json_from()
            self.assertEqual(greeting['type'], 'connection_established')
        return communicator, connected

    async def subscribe(self, communicator, route_id):
        await communicator.send_json_to({'type': 'subscribe', 'route_id': route_id})
        return await communicator.receive_json_from()

    async def test_connection_without_token_is_closed(self):
        communicator = WebsocketCommunicator(application, "/ws/location/")
        connected, _ = await communicator.connect()
        self.assertFalse(connected)

    async def test_connection_with_bad_token_is_closed(self):
        _, connected = await self.connect(token='not-a-jwt')
        self.assertFalse(connected)

    async def test_subscribe_to_unknown_route_reports_error(self):
        communicator, _ = await self.connect(self.passenger)

        reply = await self.subscribe(communicator, 9999)

        self.assertEqual(reply, {'type': 'error', 'message': 'Route not found'})
        await communicator.disconnect()

    async def test_driver_update_reaches_subscribers_and_is_stored(self):
        driver, _ = await self.connect(self.driver)
        passenger, _ = await self.connect(self.passenger)

        reply = await self.subscribe(passenger, self.route.id)
        self.assertEqual(reply['type'], 'subscribed')
        self.assertIsNone(reply['location'])

        await driver.send_json_to({
            'type': 'updateLocation',
            'route_id': self.route.id,
            'location': {'latitude': 28.6141, 'longitude': 77.2101},
        })

        event = await passenger.receive_json_from()
        self.assertEqual(event['type'], f'route:{self.route.id}:location')
        self.assertEqual(event['route_id'], self.route.id)
        self.assertEqual(event['driver_id'], self.driver.id)
        self.assertEqual(event['location'], {'latitude': 28.6141, 'longitude': 77.2101})

        route = await database_sync_to_async(Route.objects.get)(id=self.route.id)
        self.assertEqual(route.current_latitude, Decimal('28.614100'))
        self.assertIsNotNone(route.last_location_update)

        await driver.disconnect()
        await passenger.disconnect()

    async def test_updates_are_rate_limited_per_driver(self):
        driver, _ = await self.connect(self.driver)
        passenger, _ = await self.connect(self.passenger)
        await self.subscribe(passenger, self.route.id)

        for lon in (77.2101, 77.2201):
            await driver.send_json_to({
                'type': 'updateLocation',
                'route_id': self.route.id,
                'location': {'latitude': 28.6141, 'longitude': lon},
            })

        first = await passenger.receive_json_from()
        self.assertEqual(first['location']['longitude'], 77.2101)
        self.assertTrue(await passenger.receive_nothing(timeout=0.2))

        await driver.disconnect()
        await passenger.disconnect()

    async def test_passenger_cannot_publish_location(self):
        passenger, _ = await self.connect(self.passenger)

        await passenger.send_json_to({
            'type': 'updateLocation',
            'route_id': self.route.id,
            'location': {'latitude': 28.6141, 'longitude': 77.2101},
        })

        reply = await passenger.receive_json_from()
        self.assertEqual(reply['type'], 'error')
        self.assertEqual(reply['message'], 'Only the route driver can update its location')
        await passenger.disconnect()

    async def test_bad_messages_are_reported_without_closing(self):
        driver, _ = await self.connect(self.driver)

        await driver.send_json_to({'type': 'updateLocation', 'route_id': self.route.id,
                                   'location': {'latitude': 123, 'longitude': 0}})
        self.assertEqual((await driver.receive_json_from())['message'], 'Invalid location coordinates')

        await driver.send_json_to({'type': 'subscribe'})
        self.assertEqual((await driver.receive_json_from())['message'], 'route_id is required')

        await driver.send_json_to({'type': 'teleport'})
        self.assertEqual((await driver.receive_json_from())['message'], 'Unknown message type: teleport')

        await driver.send_to(text_data='{not json')
        self.assertEqual((await driver.receive_json_from())['message'], 'Invalid JSON')

        # Still usable afterwards
        reply = await self.subscribe(driver, self.route.id)
        self.assertEqual(reply['type'], 'subscribed')
        await driver.disconnect()

    async def test_unsubscribed_clients_stop_receiving(self):
        driver, _ = await self.connect(self.driver)
        passenger, _ = await self.connect(self.passenger)
        await self.subscribe(passenger, self.route.id)

        await passenger.send_json_to({'type': 'unsubscribe', 'route_id': self.route.id})
        self.assertEqual((await passenger.receive_json_from())['type'], 'unsubscribed')

        await driver.send_json_to({
            'type': 'updateLocation',
            'route_id': self.route.id,
            'location': {'latitude': 28.6141, 'longitude': 77.2101},
        })
        self.assertTrue(await passenger.receive_nothing(timeout=0.2))

        await driver.disconnect()
        await passenger.disconnect()

    async def test_route_status_is_pushed_to_user_group(self):
        passenger, _ = await self.connect(self.passenger)

        self.route.status = 'cancelled'
        notified = await sync_to_async(notify_route_status)(self.route, [self.passenger.id])

        self.assertEqual(notified, 1)
        event = await passenger.receive_json_from()
        self.assertEqual(event['type'], 'route_status_changed')
        self.assertEqual(event['route_id'], self.route.id)
        self.assertEqual(event['status'], 'cancelled')
        await passenger.disconnect()


class BroadcastRateLimitTests(TransactionTestCase):
    def setUp(self):
        broadcast._last_broadcast_times.clear()

    def test_forced_broadcast_skips_rate_limit(self):
        first = broadcast.broadcast_route_location(1, 7, 28.6, 77.2)
        throttled = broadcast.broadcast_route_location(1, 7, 28.6, 77.2)
        forced = broadcast.broadcast_route_location(1, 7, 28.6, 77.2, force=True)

        self.assertTrue(first['broadcasted'])
        self.assertEqual(throttled, {'broadcasted': False, 'reason': 'rate_limited'})
        self.assertTrue(forced['broadcasted'])
        self.assertIsNotNone(get_channel_layer())

    def test_group_name_per_route(self):
        self.assertEqual(broadcast.route_location_group(42), 'route_42_location')
