# apps/core/tests.py
"""
Core app tests - Testing permissions, the error envelope, and form fields
"""
from decimal import Decimal
from django.test import TestCase
from django.contrib.auth import get_user_model
from django.http import Http404
from rest_framework.test import APITestCase, APIClient
from rest_framework import status
from rest_framework.exceptions import ValidationError, NotAuthenticated, PermissionDenied

from apps.core.exceptions import (
    InsufficientStockError,
    BusinessRuleViolationError,
    custom_exception_handler,
    _first_error_message,
)
from apps.core.fields import AmountField

User = get_user_model()


class BaseTestCase(APITestCase):
    """Base test case with common setup for all tests"""

    def setUp(self):
        """Set up test users and authentication"""
        self.superuser = User.objects.create_superuser(
            username='admin',
            email='admin@test.com',
            password='testpass123',
            first_name='Admin',
            last_name='User'
        )

        self.admin = User.objects.create_user(
            username='admin_user',
            email='admin@example.com',
            password='testpass123',
            role=User.ROLE_ADMIN
        )

        self.pharmacist = User.objects.create_user(
            username='pharmacist_user',
            email='pharmacist@example.com',
            password='testpass123',
            role=User.ROLE_PHARMACIST
        )

        self.receptionist = User.objects.create_user(
            username='receptionist_user',
            email='receptionist@example.com',
            password='testpass123',
            role=User.ROLE_RECEPTIONIST
        )

        self.client = APIClient()

    def authenticate(self, user):
        """Helper to authenticate as a specific user"""
        self.client.force_authenticate(user=user)

    def unauthenticate(self):
        """Helper to clear authentication"""
        self.client.force_authenticate(user=None)


class MockRequest:
    def __init__(self, user, method='GET'):
        self.user = user
        self.method = method


class PermissionTests(BaseTestCase):
    """Test custom permission classes"""

    def test_is_admin_permission(self):
        """Test that superusers and ADMIN role pass IsAdmin, others do not"""
        from apps.core.permissions import IsAdmin

        permission = IsAdmin()
        self.assertTrue(permission.has_permission(MockRequest(self.superuser), None))
        self.assertTrue(permission.has_permission(MockRequest(self.admin), None))
        self.assertFalse(permission.has_permission(MockRequest(self.pharmacist), None))

    def test_is_pharmacy_staff_permission(self):
        """Test that admins and pharmacists pass IsPharmacyStaff"""
        from apps.core.permissions import IsPharmacyStaff

        permission = IsPharmacyStaff()
        self.assertTrue(permission.has_permission(MockRequest(self.admin), None))
        self.assertTrue(permission.has_permission(MockRequest(self.pharmacist), None))
        self.assertFalse(permission.has_permission(MockRequest(self.receptionist), None))


class ExceptionHandlerTests(TestCase):
    """Test the {message: ""} error envelope"""

    def handle(self, exc):
        return custom_exception_handler(exc, {'view': None})

    def test_insufficient_stock_error(self):
        """Test InsufficientStockError default payload"""
        response = self.handle(InsufficientStockError())

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'message': 'Insufficient stock'})

    def test_business_rule_violation_keeps_custom_message(self):
        """Test that a custom detail message survives the handler"""
        response = self.handle(BusinessRuleViolationError(detail={'message': 'Cannot change factor'}))

        self.assertEqual(response.data, {'message': 'Cannot change factor'})

    def test_validation_error_first_field_message(self):
        """Test that the first failing field's message is reported"""
        exc = ValidationError({
            'distributor': ['Please select a distributor'],
            'medicines': ['Please add at least one medicine'],
        })
        response = self.handle(exc)

        self.assertEqual(response.data, {'message': 'Please select a distributor'})

    def test_nested_list_errors(self):
        """Test that errors inside list items are found"""
        exc = ValidationError({'medicines': [{}, {'mrp': ['MRP must be greater than 0']}]})
        response = self.handle(exc)

        self.assertEqual(response.data['message'], 'MRP must be greater than 0')

    def test_generic_message_gets_field_name(self):
        """Test that DRF's generic messages are prefixed with the field"""
        response = self.handle(ValidationError({'name': ['This field is required.']}))

        self.assertEqual(response.data['message'], 'name: This field is required.')

    def test_status_specific_messages(self):
        """Test 401, 403 and 404 messages"""
        self.assertEqual(self.handle(NotAuthenticated()).data['message'], 'Authentication required')
        self.assertEqual(self.handle(Http404()).data['message'], 'Not found')
        self.assertEqual(self.handle(PermissionDenied('No access')).data['message'], 'No access')

    def test_non_api_exception_is_not_handled(self):
        """Test that unexpected exceptions are left to Django"""
        self.assertIsNone(self.handle(ValueError('boom')))

    def test_first_error_message_empty(self):
        """Test that empty structures yield no message"""
        self.assertIsNone(_first_error_message({}))
        self.assertIsNone(_first_error_message([None, {}]))


class AmountFieldTests(TestCase):
    """Test AmountField parsing"""

    def test_extra_decimal_places_are_rounded(self):
        """Test that extra precision is rounded half-up instead of rejected"""
        field = AmountField()

        self.assertEqual(field.run_validation('12.345'), Decimal('12.35'))
        self.assertEqual(field.run_validation('12.344'), Decimal('12.34'))

    def test_empty_as_zero(self):
        """Test that blank inputs read as zero when enabled"""
        field = AmountField(empty_as_zero=True)

        self.assertEqual(field.run_validation(''), Decimal('0'))
        self.assertEqual(field.run_validation(None), Decimal('0'))

    def test_empty_rejected_by_default(self):
        """Test that a required field still rejects null"""
        field = AmountField()

        with self.assertRaises(ValidationError):
            field.run_validation(None)

    def test_too_many_digits(self):
        """Test that values beyond max_digits are rejected"""
        field = AmountField(max_digits=5, decimal_places=2)

        with self.assertRaises(ValidationError):
            field.run_validation('123456.78')


class PaginationTests(BaseTestCase):
    """Test pagination on list endpoints"""

    def test_static_pagination_defaults(self):
        """Test StaticPagination page sizes"""
        from apps.core.pagination import StaticPagination

        pagination = StaticPagination()
        self.assertEqual(pagination.page_size, 10)
        self.assertEqual(pagination.max_page_size, 100)

    def test_unauthenticated_request(self):
        """Test that anonymous requests get the 401 envelope"""
        response = self.client.get('/api/distributors/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data, {'message': 'Authentication required'})
