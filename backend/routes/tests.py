from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from bookings.models import Booking
from vehicles.models import Vehicle
from services.booking_management import create_booking
from services.route_search import search_routes
from .models import Route

# MG Road -> Whitefield, Bengaluru (heading east)
MG_ROAD = (12.9756, 77.6050)
WHITEFIELD = (12.9698, 77.7500)


def make_route(driver, vehicle, start=MG_ROAD, end=WHITEFIELD, **extra):
    fields = {
        'start_address': 'Start',
        'start_latitude': Decimal(str(start[0])),
        'start_longitude': Decimal(str(start[1])),
        'end_address': 'End',
        'end_latitude': Decimal(str(end[0])),
        'end_longitude': Decimal(str(end[1])),
        'departure_time': timezone.now() + timedelta(hours=2),
        'fare': Decimal('100.00'),
        'available_seats': 3,
    }
    fields.update(extra)
    return Route.objects.create(driver=driver, vehicle=vehicle, **fields)


class RouteTestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.driver = User.objects.create_user(email='driver@example.com', password='secret123',
                                               name='Driver', role='driver')
        self.passenger = User.objects.create_user(email='rider@example.com', password='secret123',
                                                  name='Rider')
        self.vehicle = Vehicle.objects.create(owner=self.driver, type='car',
                                              vehicle_number='KA-01-1234', capacity=4)


class RouteCreateTests(RouteTestCase):
    def payload(self, **overrides):
        data = {
            'vehicle_id': self.vehicle.id,
            'start_address': 'MG Road',
            'start_latitude': MG_ROAD[0],
            'start_longitude': MG_ROAD[1],
            'end_address': 'Whitefield',
            'end_latitude': WHITEFIELD[0],
            'end_longitude': WHITEFIELD[1],
            'departure_time': (timezone.now() + timedelta(hours=3)).isoformat(),
            'fare': '150.00',
            'available_seats': 3,
        }
        data.update(overrides)
        return data

    def test_driver_creates_scheduled_route(self):
        self.client.force_authenticate(user=self.driver)

        response = self.client.post('/api/routes/', self.payload(), format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['status'], 'scheduled')
        self.assertEqual(response.data['driver']['id'], self.driver.id)
        self.assertEqual(response.data['vehicle']['vehicle_number'], 'KA-01-1234')

    def test_passenger_cannot_create_route(self):
        self.client.force_authenticate(user=self.passenger)
        response = self.client.post('/api/routes/', self.payload(), format='json')
        self.assertEqual(response.status_code, 403)

    def test_validation_errors_are_collected(self):
        self.client.force_authenticate(user=self.driver)

        response = self.client.post('/api/routes/', self.payload(
            available_seats=9,
            estimated_arrival_time=(timezone.now() + timedelta(hours=1)).isoformat(),
        ), format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['message'], 'Validation failed')
        self.assertIn('Available seats cannot exceed vehicle capacity', response.data['errors'])
        self.assertIn('Estimated arrival time must be after departure time', response.data['errors'])

    def test_field_errors_use_readable_messages(self):
        self.client.force_authenticate(user=self.driver)
        data = self.payload(fare='0')
        del data['start_address']

        response = self.client.post('/api/routes/', data, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('Start location is required', response.data['errors'])
        self.assertIn('Fare must be greater than 0', response.data['errors'])

    def test_departure_in_the_past_is_rejected(self):
        self.client.force_authenticate(user=self.driver)

        response = self.client.post('/api/routes/', self.payload(
            departure_time=(timezone.now() - timedelta(hours=1)).isoformat(),
        ), format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('Departure time must be in the future', response.data['errors'])

    def test_inactive_vehicle_is_rejected(self):
        self.vehicle.status = 'maintenance'
        self.vehicle.save()
        self.client.force_authenticate(user=self.driver)

        response = self.client.post('/api/routes/', self.payload(), format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('Vehicle is not active', response.data['errors'])

    def test_field_and_business_errors_are_reported_together(self):
        self.vehicle.status = 'maintenance'
        self.vehicle.save()
        self.client.force_authenticate(user=self.driver)
        departure = timezone.now() - timedelta(hours=1)

        response = self.client.post('/api/routes/', self.payload(
            fare='0',
            departure_time=departure.isoformat(),
            estimated_arrival_time=(departure - timedelta(minutes=30)).isoformat(),
        ), format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['message'], 'Validation failed')
        for message in ('Fare must be greater than 0',
                        'Vehicle is not active',
                        'Departure time must be in the future',
                        'Estimated arrival time must be after departure time'):
            self.assertIn(message, response.data['errors'])

    def test_unparseable_field_does_not_hide_other_errors(self):
        self.client.force_authenticate(user=self.driver)

        response = self.client.post('/api/routes/', self.payload(fare='abc', available_seats=9), format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(len(response.data['errors']), 2)
        self.assertIn('Available seats cannot exceed vehicle capacity', response.data['errors'])

    def test_someone_elses_vehicle_is_not_found(self):
        other = User.objects.create_user(email='other@example.com', password='secret123',
                                         name='Other', role='driver')
        self.client.force_authenticate(user=other)

        response = self.client.post('/api/routes/', self.payload(), format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('Vehicle not found', response.data['errors'])

    @patch('routes.serializers.geocode_address')
    def test_missing_coordinates_are_geocoded(self, mock_geocode):
        mock_geocode.return_value = (12.9716, 77.5946, 'Bengaluru, Karnataka, India')
        self.client.force_authenticate(user=self.driver)
        data = self.payload()
        del data['start_latitude']
        del data['start_longitude']

        response = self.client.post('/api/routes/', data, format='json')

        self.assertEqual(response.status_code, 201)
        mock_geocode.assert_called_once_with('MG Road')
        route = Route.objects.get(id=response.data['id'])
        self.assertEqual(route.start_latitude, Decimal('12.971600'))

    @patch('routes.serializers.geocode_address', return_value=None)
    def test_ungeocodable_address_without_coordinates_fails(self, mock_geocode):
        self.client.force_authenticate(user=self.driver)
        data = self.payload()
        del data['end_latitude']
        del data['end_longitude']

        response = self.client.post('/api/routes/', data, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('End coordinates are required', response.data['errors'])


class RouteListingTests(RouteTestCase):
    def test_driver_lists_own_routes_newest_first(self):
        first = make_route(self.driver, self.vehicle)
        second = make_route(self.driver, self.vehicle)
        self.client.force_authenticate(user=self.driver)

        response = self.client.get('/api/routes/')

        self.assertEqual([r['id'] for r in response.data], [second.id, first.id])

    def test_recent_returns_at_most_five(self):
        for _ in range(7):
            make_route(self.driver, self.vehicle)
        self.client.force_authenticate(user=self.passenger)

        response = self.client.get('/api/routes/recent/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 5)

    def test_detail_is_public(self):
        route = make_route(self.driver, self.vehicle)

        response = self.client.get(f'/api/routes/{route.id}/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['id'], route.id)

    def test_unknown_route_is_404(self):
        self.assertEqual(self.client.get('/api/routes/9999/').status_code, 404)


class NearbyRoutesTests(RouteTestCase):
    def test_nearby_is_ordered_by_distance_and_skips_unbookable(self):
        near = make_route(self.driver, self.vehicle, start=(12.9757, 77.6051))
        farther = make_route(self.driver, self.vehicle, start=(12.9850, 77.6100))
        make_route(self.driver, self.vehicle, start=(13.5000, 77.6000))                 # ~58 km away
        make_route(self.driver, self.vehicle, start=MG_ROAD, status='cancelled')
        make_route(self.driver, self.vehicle, start=MG_ROAD,
                   departure_time=timezone.now() - timedelta(hours=1))

        response = self.client.get('/api/routes/nearby/', {
            'lat': MG_ROAD[0], 'lng': MG_ROAD[1], 'maxDistance': 5000,
        })

        self.assertEqual(response.status_code, 200)
        self.assertEqual([r['id'] for r in response.data], [near.id, farther.id])
        self.assertLess(response.data[0]['distance'], response.data[1]['distance'])

    def test_fully_booked_route_is_still_listed(self):
        full = make_route(self.driver, self.vehicle, available_seats=0)

        response = self.client.get('/api/routes/nearby/', {'lat': MG_ROAD[0], 'lng': MG_ROAD[1]})

        self.assertEqual(response.status_code, 200)
        self.assertEqual([r['id'] for r in response.data], [full.id])
        self.assertEqual(response.data[0]['available_seats'], 0)

    def test_fully_booked_route_is_not_a_search_match(self):
        make_route(self.driver, self.vehicle, available_seats=0)
        self.assertEqual(search_routes(MG_ROAD, WHITEFIELD), [])

    def test_missing_coordinates_is_400(self):
        response = self.client.get('/api/routes/nearby/', {'lat': 'abc'})
        self.assertEqual(response.status_code, 400)


class RouteSearchTests(RouteTestCase):
    def search(self, **extra):
        body = {
            'start_location': {'latitude': MG_ROAD[0], 'longitude': MG_ROAD[1]},
            'end_location': {'latitude': WHITEFIELD[0], 'longitude': WHITEFIELD[1]},
            'max_distance': 5000,
        }
        body.update(extra)
        return self.client.post('/api/routes/search/', body, format='json')

    def test_closer_route_scores_higher(self):
        offset = make_route(self.driver, self.vehicle, start=(12.9900, 77.6100), end=(12.9800, 77.7600))
        exact = make_route(self.driver, self.vehicle)

        response = self.search()

        self.assertEqual(response.status_code, 200)
        self.assertEqual([r['id'] for r in response.data], [exact.id, offset.id])
        self.assertGreater(response.data[0]['score'], response.data[1]['score'])
        self.assertAlmostEqual(response.data[0]['pickup_distance'], 0, places=3)

    def test_opposite_direction_is_filtered(self):
        # Starts near the requested drop-off, ends near the pickup, but radius covers both
        make_route(self.driver, self.vehicle, start=(12.9756, 77.6400), end=(12.9756, 77.6050))

        matches = search_routes(MG_ROAD, (12.9756, 77.6400), max_distance=5000)

        self.assertEqual(matches, [])

    def test_equal_scores_break_ties_by_departure(self):
        later = make_route(self.driver, self.vehicle, departure_time=timezone.now() + timedelta(hours=5))
        sooner = make_route(self.driver, self.vehicle, departure_time=timezone.now() + timedelta(hours=1))

        matches = search_routes(MG_ROAD, WHITEFIELD)

        self.assertEqual([m.route.id for m in matches], [sooner.id, later.id])

    def test_vehicle_type_and_seat_filters(self):
        bike = Vehicle.objects.create(owner=self.driver, type='bike', vehicle_number='KA-09-9999', capacity=1)
        make_route(self.driver, bike, available_seats=1)
        car_route = make_route(self.driver, self.vehicle)

        response = self.search(vehicle_type='car')
        self.assertEqual([r['id'] for r in response.data], [car_route.id])

        response = self.search(number_of_seats=2)
        self.assertEqual([r['id'] for r in response.data], [car_route.id])

    def test_boarding_time_window(self):
        tomorrow = (timezone.now() + timedelta(days=1)).replace(hour=8, minute=30, second=0, microsecond=0)
        on_time = make_route(self.driver, self.vehicle, departure_time=tomorrow)
        make_route(self.driver, self.vehicle, departure_time=tomorrow + timedelta(hours=2))

        response = self.search(boarding_time='08:45', date=tomorrow.date().isoformat())

        self.assertEqual(response.status_code, 200)
        self.assertEqual([r['id'] for r in response.data], [on_time.id])

    def test_invalid_location_is_validation_error(self):
        response = self.search(start_location={'latitude': 200, 'longitude': 0})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['message'], 'Validation failed')


class RouteStatusTests(RouteTestCase):
    def setUp(self):
        super().setUp()
        self.route = make_route(self.driver, self.vehicle)

    def test_only_driver_can_change_status(self):
        self.client.force_authenticate(user=self.passenger)

        response = self.client.patch(f'/api/routes/{self.route.id}/status/', {'status': 'cancelled'}, format='json')

        self.assertEqual(response.status_code, 403)

    def test_unknown_route_is_404(self):
        self.client.force_authenticate(user=self.driver)
        response = self.client.patch('/api/routes/9999/status/', {'status': 'cancelled'}, format='json')
        self.assertEqual(response.status_code, 404)

    def test_invalid_transition_is_400(self):
        self.client.force_authenticate(user=self.driver)

        response = self.client.patch(f'/api/routes/{self.route.id}/status/', {'status': 'completed'}, format='json')

        self.assertEqual(response.status_code, 400)
        self.route.refresh_from_db()
        self.assertEqual(self.route.status, 'scheduled')

    def test_cancel_cascades_to_bookings_and_notifies(self):
        booking = create_booking(self.passenger, self.route.id, 2)
        self.client.force_authenticate(user=self.driver)

        with patch('realtime.notifications.notify_user_event') as mock_notify:
            with self.captureOnCommitCallbacks(execute=True):
                response = self.client.patch(f'/api/routes/{self.route.id}/status/',
                                             {'status': 'cancelled'}, format='json')

        self.assertEqual(response.status_code, 200)
        booking.refresh_from_db()
        self.route.refresh_from_db()
        self.assertEqual(booking.status, 'cancelled')
        self.assertIsNotNone(booking.cancelled_at)
        self.assertEqual(self.route.available_seats, 3)
        mock_notify.assert_called_once()
        self.assertEqual(mock_notify.call_args[0][0], self.passenger.id)
        self.assertEqual(mock_notify.call_args[0][1], 'route_status_changed')

    def test_completing_route_completes_riding_bookings(self):
        booking = create_booking(self.passenger, self.route.id, 1)
        Booking.objects.filter(id=booking.id).update(status='in-progress')
        self.client.force_authenticate(user=self.driver)

        self.client.patch(f'/api/routes/{self.route.id}/status/', {'status': 'in-progress'}, format='json')
        response = self.client.patch(f'/api/routes/{self.route.id}/status/', {'status': 'completed'}, format='json')

        self.assertEqual(response.status_code, 200)
        booking.refresh_from_db()
        self.assertEqual(booking.status, 'completed')
        self.assertIsNotNone(booking.completion_time)

    def test_route_bookings_visible_only_to_driver(self):
        create_booking(self.passenger, self.route.id, 1)

        self.client.force_authenticate(user=self.driver)
        response = self.client.get(f'/api/routes/{self.route.id}/bookings/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['user']['id'], self.passenger.id)

        self.client.force_authenticate(user=self.passenger)
        response = self.client.get(f'/api/routes/{self.route.id}/bookings/')
        self.assertEqual(response.status_code, 403)


class RouteLocationTests(RouteTestCase):
    def setUp(self):
        super().setUp()
        self.route = make_route(self.driver, self.vehicle)

    @patch('realtime.broadcast.broadcast_route_location')
    def test_driver_posts_location_and_small_moves_are_not_stored(self, mock_broadcast):
        self.client.force_authenticate(user=self.driver)

        response = self.client.post(f'/api/routes/{self.route.id}/location/',
                                    {'latitude': 12.9760, 'longitude': 77.6060}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['persisted'])
        mock_broadcast.assert_called_once_with(self.route.id, self.driver.id, 12.9760, 77.6060, force=True)

        # ~3 m further: relayed but not written
        response = self.client.post(f'/api/routes/{self.route.id}/location/',
                                    {'latitude': 12.97602, 'longitude': 77.60602}, format='json')
        self.assertFalse(response.data['persisted'])
        self.assertEqual(mock_broadcast.call_count, 2)

        self.route.refresh_from_db()
        self.assertEqual(self.route.current_latitude, Decimal('12.976000'))
        self.assertIsNotNone(self.route.last_location_update)

    def test_passenger_cannot_post_location(self):
        self.client.force_authenticate(user=self.passenger)

        response = self.client.post(f'/api/routes/{self.route.id}/location/',
                                    {'latitude': 12.9760, 'longitude': 77.6060}, format='json')

        self.assertEqual(response.status_code, 403)

    def test_last_location_is_public(self):
        self.route.current_latitude = Decimal('12.976000')
        self.route.current_longitude = Decimal('77.606000')
        self.route.save()

        response = self.client.get(f'/api/routes/{self.route.id}/location/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['location'], {'latitude': 12.976, 'longitude': 77.606})
