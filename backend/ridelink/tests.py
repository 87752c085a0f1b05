from unittest.mock import patch

import redis
from django.test import TestCase
from rest_framework.test import APIClient


class HealthCheckTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    @patch('ridelink.views.redis.Redis.from_url')
    def test_healthy_when_all_services_respond(self, mock_from_url):
        mock_from_url.return_value.ping.return_value = True

        response = self.client.get('/health/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], 'healthy')
        self.assertEqual(set(response.data['services']), {'database', 'redis', 'channels', 'celery'})

    @patch('ridelink.views.redis.Redis.from_url')
    def test_unhealthy_when_redis_is_down(self, mock_from_url):
        mock_from_url.return_value.ping.side_effect = redis.ConnectionError('refused')

        response = self.client.get('/health/')

        self.assertEqual(response.status_code, 503)
        self.assertTrue(response.data['services']['redis'].startswith('unhealthy'))
