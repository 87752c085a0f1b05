from django.test import TestCase
from rest_framework.test import APIClient

from .models import User


class RegistrationTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_register_defaults_to_passenger_and_returns_tokens(self):
        response = self.client.post('/api/users/register/', {
            'name': 'Asha Rao',
            'email': 'Asha@Example.com',
            'password': 'secret123',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['user']['role'], 'user')
        self.assertEqual(response.data['user']['email'], 'asha@example.com')
        self.assertIn('access', response.data['tokens'])
        self.assertIn('refresh', response.data['tokens'])

    def test_register_rejects_duplicate_email(self):
        User.objects.create_user(email='asha@example.com', password='secret123', name='Asha')

        response = self.client.post('/api/users/register/', {
            'name': 'Other Asha',
            'email': 'ASHA@example.com',
            'password': 'secret123',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('User already exists', response.data['email'])

    def test_register_requires_six_character_password(self):
        response = self.client.post('/api/users/register/', {
            'name': 'Asha',
            'email': 'asha@example.com',
            'password': '123',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('password', response.data)


class LoginAndTokenTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(
            email='ravi@example.com',
            password='secret123',
            name='Ravi',
            role='driver',
        )

    def test_login_is_case_insensitive_on_email(self):
        response = self.client.post('/api/users/login/', {
            'email': 'RAVI@example.com',
            'password': 'secret123',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['user']['id'], self.user.id)
        self.assertEqual(response.data['user']['role'], 'driver')

    def test_login_with_wrong_password_is_401(self):
        response = self.client.post('/api/users/login/', {
            'email': 'ravi@example.com',
            'password': 'wrong-password',
        }, format='json')

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['error'], 'Invalid email or password')

    def test_refresh_returns_new_access_token(self):
        login = self.client.post('/api/users/login/', {
            'email': 'ravi@example.com',
            'password': 'secret123',
        }, format='json')

        response = self.client.post('/api/users/token/refresh/', {
            'refresh': login.data['tokens']['refresh'],
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertIn('access', response.data)

    def test_refresh_with_garbage_token_is_401(self):
        response = self.client.post('/api/users/token/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, 401)

    def test_refresh_without_token_is_400(self):
        response = self.client.post('/api/users/token/refresh/', {}, format='json')
        self.assertEqual(response.status_code, 400)


class ProfileTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email='meena@example.com', password='secret123', name='Meena')
        self.client.force_authenticate(user=self.user)

    def test_profile_requires_authentication(self):
        response = APIClient().get('/api/users/profile/')
        self.assertEqual(response.status_code, 401)

    def test_update_profile_changes_name_and_password(self):
        response = self.client.put('/api/users/profile/', {
            'name': 'Meena K',
            'phone_number': '9000000000',
            'password': 'newsecret1',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertEqual(self.user.name, 'Meena K')
        self.assertTrue(self.user.check_password('newsecret1'))

    def test_update_profile_cannot_take_another_users_email(self):
        User.objects.create_user(email='taken@example.com', password='secret123', name='Taken')

        response = self.client.put('/api/users/profile/', {'email': 'taken@example.com'}, format='json')

        self.assertEqual(response.status_code, 400)

    def test_role_switch_returns_fresh_tokens(self):
        response = self.client.patch('/api/users/role/', {'role': 'driver'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['user']['role'], 'driver')
        self.assertIn('access', response.data['tokens'])
        self.user.refresh_from_db()
        self.assertTrue(self.user.is_driver)

    def test_role_switch_rejects_unknown_role(self):
        response = self.client.patch('/api/users/role/', {'role': 'admin'}, format='json')
        self.assertEqual(response.status_code, 400)
