from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.db import connection
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from routes.models import Route
from services.booking_management import hold_seats
from vehicles.models import Vehicle
from .models import Booking
from .tasks import expire_stale_bookings_task


class BookingTestCase(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.driver = User.objects.create_user(
			email='driver@example.com',
			password='driver1234',
			name='Driver',
			role='driver',
		)
		self.passenger = User.objects.create_user(
			email='passenger@example.com',
			password='pass1234',
			name='Passenger',
		)
		self.stranger = User.objects.create_user(
			email='stranger@example.com',
			password='pass1234',
			name='Stranger',
		)
		self.vehicle = Vehicle.objects.create(
			owner=self.driver,
			type='car',
			vehicle_number='WB-1001',
			capacity=4,
		)
		self.route = self.make_route()

	def make_route(self, **extra):
		fields = dict(
			driver=self.driver,
			vehicle=self.vehicle,
			start_address='Connaught Place',
			start_latitude=Decimal('28.613900'),
			start_longitude=Decimal('77.209000'),
			end_address='India Gate',
			end_latitude=Decimal('28.612900'),
			end_longitude=Decimal('77.229500'),
			departure_time=timezone.now() + timedelta(hours=2),
			fare=Decimal('80.00'),
			available_seats=3,
		)
		fields.update(extra)
		return Route.objects.create(**fields)

	def book(self, user, seats=1, route=None, **extra):
		self.client.force_authenticate(user=user)
		body = {'route_id': (route or self.route).id, 'number_of_seats': seats, **extra}
		return self.client.post('/api/bookings/', body, format='json')

	def set_status(self, user, booking_id, new_status):
		self.client.force_authenticate(user=user)
		return self.client.patch('/api/bookings/%d/status/' % booking_id, {'status': new_status}, format='json')


class BookingCreateTests(BookingTestCase):
	def test_booking_reserves_seats_and_prices_trip(self):
		response = self.book(self.passenger, seats=2)

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['status'], 'pending')
		self.assertEqual(response.data['total_fare'], '160.00')
		self.assertEqual(response.data['pickup_address'], 'Connaught Place')
		self.assertEqual(response.data['dropoff_address'], 'India Gate')

		self.route.refresh_from_db()
		self.assertEqual(self.route.available_seats, 1)

		booking = Booking.objects.get(id=response.data['id'])
		self.assertEqual(booking.estimated_pickup_time, self.route.departure_time)

	def test_custom_pickup_location_is_kept(self):
		response = self.book(self.passenger, pickup_location={
			'latitude': 28.6200,
			'longitude': 77.2100,
			'address': 'Janpath',
		})

		self.assertEqual(response.status_code, 201)
		booking = Booking.objects.get(id=response.data['id'])
		self.assertEqual(booking.pickup_address, 'Janpath')
		self.assertEqual(booking.pickup_latitude, Decimal('28.620000'))
		self.assertEqual(booking.dropoff_address, 'India Gate')

	@patch('services.booking_management.booking_lifecycle.reverse_geocode', return_value='Rajpath, New Delhi')
	def test_location_without_address_is_reverse_geocoded(self, mock_reverse):
		response = self.book(self.passenger, dropoff_location={'latitude': 28.6150, 'longitude': 77.2200})

		self.assertEqual(response.status_code, 201)
		mock_reverse.assert_called_once_with(28.615, 77.22)
		self.assertEqual(response.data['dropoff_address'], 'Rajpath, New Delhi')

	def test_reverse_geocoding_runs_before_the_seat_hold_transaction(self):
		depth = len(connection.savepoint_ids)
		depths_seen = []

		def lookup(lat, lon):
			depths_seen.append(len(connection.savepoint_ids))
			return 'Rajpath, New Delhi'

		with patch('services.booking_management.booking_lifecycle.reverse_geocode', side_effect=lookup):
			response = self.book(self.passenger, dropoff_location={'latitude': 28.6150, 'longitude': 77.2200})

		self.assertEqual(response.status_code, 201)
		self.assertEqual(depths_seen, [depth])

	def test_driver_is_notified_after_commit(self):
		with patch('realtime.notifications.notify_user_event') as mock_notify:
			with self.captureOnCommitCallbacks(execute=True):
				response = self.book(self.passenger)

		self.assertEqual(response.status_code, 201)
		mock_notify.assert_called_once()
		recipient, event_type, payload = mock_notify.call_args[0]
		self.assertEqual(recipient, self.driver.id)
		self.assertEqual(event_type, 'booking_created')
		self.assertEqual(payload['booking_id'], response.data['id'])

	def test_not_enough_seats_leaves_count_untouched(self):
		response = self.book(self.passenger, seats=4)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'Not enough seats available')
		self.route.refresh_from_db()
		self.assertEqual(self.route.available_seats, 3)
		self.assertFalse(Booking.objects.exists())

	def test_driver_cannot_book_own_route(self):
		response = self.book(self.driver)
		self.assertEqual(response.status_code, 400)

	def test_unknown_route_is_404(self):
		self.client.force_authenticate(user=self.passenger)
		response = self.client.post('/api/bookings/', {'route_id': 9999}, format='json')
		self.assertEqual(response.status_code, 404)

	def test_unscheduled_or_departed_route_is_not_bookable(self):
		cancelled = self.make_route(status='cancelled')
		departed = self.make_route(departure_time=timezone.now() - timedelta(minutes=5))

		self.assertEqual(self.book(self.passenger, route=cancelled).status_code, 400)
		self.assertEqual(self.book(self.passenger, route=departed).status_code, 400)

	def test_seat_hold_never_goes_negative(self):
		self.assertTrue(hold_seats(self.route.id, 2))
		self.assertFalse(hold_seats(self.route.id, 2))
		self.assertTrue(hold_seats(self.route.id, 1))
		self.assertFalse(hold_seats(self.route.id, 1))

		self.route.refresh_from_db()
		self.assertEqual(self.route.available_seats, 0)

	def test_list_returns_only_callers_bookings(self):
		self.book(self.passenger)
		self.book(self.stranger)

		self.client.force_authenticate(user=self.passenger)
		response = self.client.get('/api/bookings/')

		self.assertEqual(response.status_code, 200)
		self.assertEqual([b['user']['id'] for b in response.data], [self.passenger.id])


class BookingStatusTests(BookingTestCase):
	def setUp(self):
		super().setUp()
		response = self.book(self.passenger, seats=2)
		self.booking = Booking.objects.get(id=response.data['id'])

	def test_detail_visible_to_both_parties_only(self):
		for user, expected in ((self.passenger, 200), (self.driver, 200), (self.stranger, 403)):
			self.client.force_authenticate(user=user)
			response = self.client.get('/api/bookings/%d/' % self.booking.id)
			self.assertEqual(response.status_code, expected)

	def test_passenger_cannot_confirm(self):
		response = self.set_status(self.passenger, self.booking.id, 'confirmed')

		self.assertEqual(response.status_code, 403)
		self.booking.refresh_from_db()
		self.assertEqual(self.booking.status, 'pending')

	def test_stranger_cannot_cancel(self):
		response = self.set_status(self.stranger, self.booking.id, 'cancelled')
		self.assertEqual(response.status_code, 403)

	def test_driver_runs_booking_to_completion(self):
		self.assertEqual(self.set_status(self.driver, self.booking.id, 'confirmed').status_code, 200)
		self.assertEqual(self.set_status(self.driver, self.booking.id, 'in-progress').status_code, 200)
		self.booking.refresh_from_db()
		self.assertIsNotNone(self.booking.actual_pickup_time)

		response = self.set_status(self.driver, self.booking.id, 'completed')

		self.assertEqual(response.status_code, 200)
		self.booking.refresh_from_db()
		self.assertEqual(self.booking.status, 'completed')
		self.assertIsNotNone(self.booking.completion_time)

	def test_skipping_a_step_is_rejected(self):
		response = self.set_status(self.driver, self.booking.id, 'completed')

		self.assertEqual(response.status_code, 400)
		self.assertIn('pending', response.data['error'])

	def test_cancelled_booking_cannot_be_reopened(self):
		self.set_status(self.passenger, self.booking.id, 'cancelled')
		response = self.set_status(self.driver, self.booking.id, 'confirmed')
		self.assertEqual(response.status_code, 400)

	def test_passenger_cancel_returns_seats_and_refunds(self):
		Booking.objects.filter(id=self.booking.id).update(payment_status='completed')

		with patch('realtime.notifications.notify_user_event') as mock_notify:
			with self.captureOnCommitCallbacks(execute=True):
				response = self.set_status(self.passenger, self.booking.id, 'cancelled')

		self.assertEqual(response.status_code, 200)
		self.booking.refresh_from_db()
		self.route.refresh_from_db()
		self.assertEqual(self.booking.status, 'cancelled')
		self.assertEqual(self.booking.payment_status, 'refunded')
		self.assertIsNotNone(self.booking.cancelled_at)
		self.assertEqual(self.booking.cancellation_reason, 'Cancelled by passenger')
		self.assertEqual(self.route.available_seats, 3)

		# The driver hears about it
		self.assertEqual(mock_notify.call_args[0][0], self.driver.id)
		self.assertEqual(mock_notify.call_args[0][1], 'booking_status_changed')

	def test_cancel_after_route_closed_keeps_seat_count(self):
		self.set_status(self.driver, self.booking.id, 'confirmed')
		Route.objects.filter(id=self.route.id).update(status='completed')

		response = self.set_status(self.passenger, self.booking.id, 'cancelled')

		self.assertEqual(response.status_code, 200)
		self.route.refresh_from_db()
		self.assertEqual(self.route.available_seats, 1)

	def test_unknown_booking_is_404(self):
		response = self.set_status(self.driver, 9999, 'confirmed')
		self.assertEqual(response.status_code, 404)


class StaleBookingExpiryTests(BookingTestCase):
	def setUp(self):
		super().setUp()
		self.departed = self.make_route(
			departure_time=timezone.now() - timedelta(hours=1),
			available_seats=1,
		)
		self.stale = self.add_booking(self.departed, 'pending')
		self.confirmed = self.add_booking(self.departed, 'confirmed')

		self.just_left = self.make_route(departure_time=timezone.now() - timedelta(minutes=10))
		self.recent = self.add_booking(self.just_left, 'pending')

	def add_booking(self, route, status, seats=1):
		return Booking.objects.create(
			user=self.passenger,
			route=route,
			pickup_latitude=route.start_latitude,
			pickup_longitude=route.start_longitude,
			dropoff_latitude=route.end_latitude,
			dropoff_longitude=route.end_longitude,
			number_of_seats=seats,
			total_fare=route.fare * seats,
			status=status,
			estimated_pickup_time=route.departure_time,
		)

	def test_command_expires_only_stale_pending_bookings(self):
		out = StringIO()
		call_command('expire_stale_bookings', grace_minutes=30, stdout=out)

		self.stale.refresh_from_db()
		self.confirmed.refresh_from_db()
		self.recent.refresh_from_db()
		self.departed.refresh_from_db()

		self.assertEqual(self.stale.status, 'cancelled')
		self.assertIsNotNone(self.stale.cancelled_at)
		self.assertEqual(self.confirmed.status, 'confirmed')
		self.assertEqual(self.recent.status, 'pending')
		self.assertEqual(self.departed.available_seats, 2)
		self.assertIn('Expired 1', out.getvalue())

	def test_dry_run_changes_nothing(self):
		out = StringIO()
		call_command('expire_stale_bookings', grace_minutes=5, dry_run=True, stdout=out)

		self.stale.refresh_from_db()
		self.recent.refresh_from_db()
		self.assertEqual(self.stale.status, 'pending')
		self.assertEqual(self.recent.status, 'pending')
		self.assertIn('Would expire 2', out.getvalue())

	def test_celery_task_uses_configured_grace_period(self):
		with self.settings(STALE_BOOKING_GRACE_MINUTES=5):
			expired = expire_stale_bookings_task()

		self.assertEqual(expired, 2)
		self.recent.refresh_from_db()
		self.assertEqual(self.recent.status, 'cancelled')
