# apps/users/tests.py
"""
Users app tests - Testing user roles and staff management
"""
from django.test import TestCase
from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase, APIClient
from rest_framework import status
from django.urls import reverse

User = get_user_model()


class UserModelTests(TestCase):
    """Test CustomUser model"""

    def test_create_user(self):
        """Test creating a regular user"""
        user = User.objects.create_user(
            username='testuser',
            email='test@example.com',
            password='testpass123'
        )

        self.assertEqual(user.username, 'testuser')
        self.assertTrue(user.check_password('testpass123'))
        self.assertEqual(user.role, User.ROLE_RECEPTIONIST)
        self.assertFalse(user.is_superuser)

    def test_create_superuser(self):
        """Test creating a superuser"""
        user = User.objects.create_superuser(
            username='admin',
            email='admin@example.com',
            password='adminpass123'
        )

        self.assertTrue(user.is_superuser)
        self.assertTrue(user.is_admin())
        self.assertTrue(user.can_manage_purchases())

    def test_user_role_methods(self):
        """Test user role checking methods"""
        admin = User.objects.create_user(username='admin', password='pass', role=User.ROLE_ADMIN)
        pharmacist = User.objects.create_user(username='pharma', password='pass', role=User.ROLE_PHARMACIST)
        doctor = User.objects.create_user(username='doctor', password='pass', role=User.ROLE_DOCTOR)

        self.assertTrue(admin.is_admin())
        self.assertFalse(admin.is_pharmacist())
        self.assertTrue(pharmacist.is_pharmacist())
        self.assertTrue(pharmacist.can_manage_purchases())
        self.assertFalse(doctor.can_manage_purchases())


class StaffViewSetTests(APITestCase):
    """Test StaffViewSet endpoints"""

    def setUp(self):
        """Set up test data"""
        self.client = APIClient()
        self.admin = User.objects.create_user(username='admin', password='pass123', role=User.ROLE_ADMIN)
        self.pharmacist = User.objects.create_user(
            username='pharma', password='pass123', role=User.ROLE_PHARMACIST
        )
        self.url = reverse('staff-list')

    def test_list_staff_as_admin(self):
        """Test that admins see non-admin staff only"""
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        usernames = [user['username'] for user in response.data['results']]
        self.assertEqual(usernames, ['pharma'])

    def test_list_staff_as_pharmacist(self):
        """Test that pharmacists cannot manage staff"""
        self.client.force_authenticate(user=self.pharmacist)
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['message'], 'Only administrators can perform this action.')

    def test_create_staff_as_admin(self):
        """Test creating a pharmacist account"""
        self.client.force_authenticate(user=self.admin)
        data = {
            'username': 'newpharma',
            'email': 'new@example.com',
            'password': 'securepass123',
            'first_name': 'New',
            'last_name': 'Pharmacist',
            'role': User.ROLE_PHARMACIST,
        }

        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(username='newpharma')
        self.assertEqual(user.role, User.ROLE_PHARMACIST)
        self.assertTrue(user.check_password('securepass123'))
        self.assertNotIn('password', response.data)

    def test_create_admin_role_rejected(self):
        """Test that staff creation cannot hand out the ADMIN role"""
        self.client.force_authenticate(user=self.admin)
        data = {'username': 'sneaky', 'password': 'securepass123', 'role': User.ROLE_ADMIN}

        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(User.objects.filter(username='sneaky').exists())

    def test_create_with_duplicate_email(self):
        """Test that an email can only be used once"""
        User.objects.create_user(username='other', email='taken@example.com', password='pass123')
        self.client.force_authenticate(user=self.admin)
        data = {
            'username': 'someone',
            'email': 'taken@example.com',
            'password': 'securepass123',
            'role': User.ROLE_DOCTOR,
        }

        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Email already in use')

    def test_deactivate_and_activate(self):
        """Test toggling a staff account"""
        self.client.force_authenticate(user=self.admin)
        url = reverse('staff-deactivate', kwargs={'pk': self.pharmacist.pk})

        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.pharmacist.refresh_from_db()
        self.assertFalse(self.pharmacist.is_active)

        url = reverse('staff-activate', kwargs={'pk': self.pharmacist.pk})
        response = self.client.post(url)
        self.pharmacist.refresh_from_db()
        self.assertTrue(self.pharmacist.is_active)
