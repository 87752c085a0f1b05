from django.test import TestCase
from rest_framework.test import APIClient

from accounts.models import User
from .models import Vehicle


class VehicleOwnershipTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.driver = User.objects.create_user(email='driver@example.com', password='secret123',
                                               name='Driver', role='driver')
        self.other_driver = User.objects.create_user(email='other@example.com', password='secret123',
                                                     name='Other', role='driver')
        self.passenger = User.objects.create_user(email='rider@example.com', password='secret123',
                                                  name='Rider')
        self.vehicle = Vehicle.objects.create(owner=self.other_driver, type='car',
                                              vehicle_number='KA-01-0001', capacity=4)

    def test_driver_registers_vehicle_active_and_pending_verification(self):
        self.client.force_authenticate(user=self.driver)

        response = self.client.post('/api/vehicles/', {
            'type': 'van',
            'vehicle_number': 'KA-02-0002',
            'capacity': 7,
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['owner'], self.driver.id)
        self.assertEqual(response.data['status'], 'active')
        self.assertEqual(response.data['verification_status'], 'pending')

    def test_passenger_cannot_register_vehicle(self):
        self.client.force_authenticate(user=self.passenger)

        response = self.client.post('/api/vehicles/', {
            'type': 'car',
            'vehicle_number': 'KA-03-0003',
            'capacity': 4,
        }, format='json')

        self.assertEqual(response.status_code, 403)
        self.assertFalse(Vehicle.objects.filter(vehicle_number='KA-03-0003').exists())

    def test_duplicate_vehicle_number_is_rejected(self):
        self.client.force_authenticate(user=self.driver)

        response = self.client.post('/api/vehicles/', {
            'type': 'car',
            'vehicle_number': 'KA-01-0001',
            'capacity': 4,
        }, format='json')

        self.assertEqual(response.status_code, 400)

    def test_zero_capacity_is_rejected(self):
        self.client.force_authenticate(user=self.driver)

        response = self.client.post('/api/vehicles/', {
            'type': 'bike',
            'vehicle_number': 'KA-04-0004',
            'capacity': 0,
        }, format='json')

        self.assertEqual(response.status_code, 400)

    def test_list_returns_only_own_vehicles(self):
        Vehicle.objects.create(owner=self.driver, type='bike', vehicle_number='KA-05-0005', capacity=1)
        self.client.force_authenticate(user=self.driver)

        response = self.client.get('/api/vehicles/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual([v['vehicle_number'] for v in response.data], ['KA-05-0005'])

    def test_other_drivers_vehicle_is_not_found(self):
        self.client.force_authenticate(user=self.driver)

        self.assertEqual(self.client.get(f'/api/vehicles/{self.vehicle.id}/').status_code, 404)
        response = self.client.patch(f'/api/vehicles/{self.vehicle.id}/status/',
                                     {'status': 'maintenance'}, format='json')
        self.assertEqual(response.status_code, 404)

        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.status, 'active')

    def test_owner_can_change_status(self):
        self.client.force_authenticate(user=self.other_driver)

        response = self.client.patch(f'/api/vehicles/{self.vehicle.id}/status/',
                                     {'status': 'maintenance'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.status, 'maintenance')
