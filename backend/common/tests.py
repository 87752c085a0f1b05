from unittest.mock import patch, MagicMock

import requests
from django.test import SimpleTestCase

from common.utils import (
    bounding_box,
    calculate_distance,
    direction_similarity,
    geocode_address,
    reverse_geocode,
)
from common.responses import flatten_errors


class DistanceTests(SimpleTestCase):
    def test_same_point_is_zero(self):
        self.assertEqual(calculate_distance(28.6139, 77.2090, 28.6139, 77.2090), 0)

    def test_one_degree_of_latitude(self):
        self.assertAlmostEqual(calculate_distance(0, 0, 1, 0), 111195, delta=5)

    def test_accepts_decimal_strings_and_is_symmetric(self):
        a = calculate_distance('12.9756', '77.6050', '12.9698', '77.7500')
        b = calculate_distance(12.9698, 77.7500, 12.9756, 77.6050)
        self.assertAlmostEqual(a, b)
        self.assertAlmostEqual(a, 15730, delta=100)


class DirectionSimilarityTests(SimpleTestCase):
    def test_same_heading_is_one(self):
        self.assertAlmostEqual(direction_similarity((0, 0), (0, 1), (1, 0), (1, 2)), 1.0)

    def test_opposite_heading_is_minus_one(self):
        self.assertAlmostEqual(direction_similarity((0, 0), (0, 1), (0, 1), (0, 0)), -1.0)

    def test_perpendicular_is_zero(self):
        self.assertAlmostEqual(direction_similarity((0, 0), (0, 1), (0, 0), (1, 0)), 0.0)

    def test_degenerate_trip_is_zero(self):
        self.assertEqual(direction_similarity((5, 5), (5, 5), (0, 0), (1, 1)), 0.0)

    def test_longitude_is_scaled_by_latitude(self):
        # At 60N one degree east is half as long as one degree north
        similarity = direction_similarity((60, 0), (61, 2), (60, 0), (61, 1))
        self.assertLess(similarity, 1.0)
        diagonal = direction_similarity((60, 0), (61, 2), (60, 0), (60, 1))
        self.assertAlmostEqual(diagonal, 0.7071, places=2)


class BoundingBoxTests(SimpleTestCase):
    def test_box_contains_radius(self):
        min_lat, max_lat, min_lon, max_lon = bounding_box(12.97, 77.59, 5000)

        self.assertLess(min_lat, 12.97)
        self.assertGreater(max_lat, 12.97)
        self.assertLess(calculate_distance(12.97, 77.59, max_lat, 77.59), 5100)
        self.assertGreater(calculate_distance(12.97, 77.59, 12.97, max_lon), 4900)

    def test_latitude_is_clamped_at_pole(self):
        min_lat, max_lat, min_lon, max_lon = bounding_box(89.99, 0, 50000)

        self.assertEqual(max_lat, 90.0)
        self.assertEqual((min_lon, max_lon), (-180.0, 180.0))


@patch('common.utils.maps.requests.get')
class GeocodingTests(SimpleTestCase):
    def response(self, payload):
        mock = MagicMock()
        mock.json.return_value = payload
        return mock

    def test_geocode_returns_best_match(self, mock_get):
        mock_get.return_value = self.response([
            {'lat': '12.9716', 'lon': '77.5946', 'display_name': 'Bengaluru, Karnataka, India'},
        ])

        self.assertEqual(geocode_address('Bengaluru'), (12.9716, 77.5946, 'Bengaluru, Karnataka, India'))
        _, kwargs = mock_get.call_args
        self.assertEqual(kwargs['params']['q'], 'Bengaluru')
        self.assertIn('User-Agent', kwargs['headers'])
        self.assertIn('timeout', kwargs)

    def test_geocode_no_results(self, mock_get):
        mock_get.return_value = self.response([])
        self.assertIsNone(geocode_address('nowhere at all'))

    def test_network_failure_returns_none(self, mock_get):
        mock_get.side_effect = requests.ConnectionError('down')

        with self.assertLogs('common.utils.maps', level='WARNING'):
            self.assertIsNone(geocode_address('Bengaluru'))
            self.assertIsNone(reverse_geocode(12.97, 77.59))

    def test_reverse_geocode(self, mock_get):
        mock_get.return_value = self.response({'display_name': 'MG Road, Bengaluru'})
        self.assertEqual(reverse_geocode(12.9756, 77.6050), 'MG Road, Bengaluru')

    def test_empty_address_skips_lookup(self, mock_get):
        self.assertIsNone(geocode_address(''))
        mock_get.assert_not_called()


class FlattenErrorsTests(SimpleTestCase):
    def test_nested_errors_become_flat_list(self):
        errors = {
            'fare': ['Fare must be greater than 0'],
            'non_field_errors': ['Vehicle not found'],
            'start_location': {'latitude': ['Ensure this value is less than or equal to 90.']},
        }
        self.assertEqual(flatten_errors(errors), [
            'Fare must be greater than 0',
            'Vehicle not found',
            'Ensure this value is less than or equal to 90.',
        ])
