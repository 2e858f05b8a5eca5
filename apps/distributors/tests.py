# apps/distributors/tests.py
"""
Distributors app tests - Testing distributor and manufacturer masters
"""
from decimal import Decimal
from django.test import TestCase
from django.urls import reverse
from rest_framework import status

from apps.core.tests import BaseTestCase
from apps.distributors.models import Distributor, Manufacturer
from apps.purchases.models import Purchase


class SoftDeleteModelTests(TestCase):
    """Test soft delete on master records"""

    def test_soft_delete_and_restore(self):
        """Test that soft deleted records drop out of alive()"""
        distributor = Distributor.objects.create(
            name='Kerala Herbals',
            gst_no='32ABCDE1234F1Z5',
            primary_contact_no='9876543210',
            address='MG Road, Kochi, Kerala'
        )

        distributor.soft_delete()
        self.assertTrue(distributor.is_deleted)
        self.assertIsNotNone(distributor.deleted_at)
        self.assertFalse(Distributor.objects.alive().exists())
        self.assertEqual(Distributor.objects.deleted().count(), 1)

        distributor.restore()
        self.assertTrue(Distributor.objects.alive().exists())


class DistributorViewSetTests(BaseTestCase):
    """Test DistributorViewSet endpoints"""

    def setUp(self):
        super().setUp()
        self.url = reverse('distributor-list')
        self.valid_data = {
            'name': 'Kerala Herbals',
            'gst_no': '32abcde1234f1z5',
            'primary_contact_no': '9876543210',
            'secondary_contact_no': '',
            'address': 'MG Road, Kochi, Kerala',
        }

    def test_create_distributor(self):
        """Test creating a distributor as pharmacist"""
        self.authenticate(self.pharmacist)
        response = self.client.post(self.url, self.valid_data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        distributor = Distributor.objects.get()
        self.assertEqual(distributor.gst_no, '32ABCDE1234F1Z5')
        self.assertEqual(distributor.secondary_contact_no, '')

    def test_create_distributor_as_receptionist(self):
        """Test that receptionists can read but not create"""
        self.authenticate(self.receptionist)

        response = self.client.post(self.url, self.valid_data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_validation_messages(self):
        """Test the form validation messages"""
        self.authenticate(self.admin)
        cases = [
            ('name', 'Ab', 'Name must be at least 3 characters long'),
            ('gst_no', '32ABCDE', 'GST number must be at least 15 characters long'),
            ('primary_contact_no', '98765', 'Primary contact number must be exactly 10 digits'),
            ('secondary_contact_no', '12ab567890', 'Secondary contact number must be exactly 10 digits'),
            ('address', 'Kochi', 'Address must be at least 10 characters long'),
        ]
        for field, value, message in cases:
            data = dict(self.valid_data, **{field: value})
            response = self.client.post(self.url, data, format='json')

            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, field)
            self.assertEqual(response.data['message'], message)

    def test_delete_is_soft(self):
        """Test that deleting keeps the row for old purchases"""
        distributor = Distributor.objects.create(**dict(self.valid_data, gst_no='32ABCDE1234F1Z5'))
        self.authenticate(self.admin)

        response = self.client.delete(reverse('distributor-detail', kwargs={'pk': distributor.pk}))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        distributor.refresh_from_db()
        self.assertTrue(distributor.is_deleted)
        self.assertEqual(distributor.deleted_by, self.admin)

        response = self.client.get(self.url)
        self.assertEqual(response.data['count'], 0)

    def test_list_purchase_statistics(self):
        """Test that list rows carry purchase count and amount"""
        distributor = Distributor.objects.create(**dict(self.valid_data, gst_no='32ABCDE1234F1Z5'))
        Purchase.objects.create(distributor=distributor, total_amount=Decimal('100.50'))
        Purchase.objects.create(distributor=distributor, total_amount=Decimal('50.00'))
        self.authenticate(self.receptionist)

        response = self.client.get(self.url)

        row = response.data['results'][0]
        self.assertEqual(row['purchase_count'], 2)
        self.assertEqual(row['total_purchase_amount'], '150.50')

    def test_distributor_purchases(self):
        """Test listing the purchases of one distributor"""
        distributor = Distributor.objects.create(**dict(self.valid_data, gst_no='32ABCDE1234F1Z5'))
        Purchase.objects.create(distributor=distributor, invoice_number='INV-1')
        self.authenticate(self.pharmacist)

        response = self.client.get(reverse('distributor-purchases', kwargs={'pk': distributor.pk}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['results'][0]['invoiceNumber'], 'INV-1')


class ManufacturerViewSetTests(BaseTestCase):
    """Test ManufacturerViewSet endpoints"""

    def setUp(self):
        super().setUp()
        self.url = reverse('manufacturer-list')

    def test_create_manufacturer(self):
        """Test creating a manufacturer"""
        self.authenticate(self.pharmacist)
        data = {
            'name': 'Kottakkal',
            'agency_name': 'Arya Vaidya Sala',
            'mr_name': 'Suresh',
            'contact_number': '9123456780',
        }

        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Manufacturer.objects.get().secondary_number, '')

    def test_invalid_contact_number(self):
        """Test the contact number message"""
        self.authenticate(self.pharmacist)
        data = {
            'name': 'Kottakkal',
            'agency_name': 'Arya Vaidya Sala',
            'mr_name': 'Suresh',
            'contact_number': '91234',
        }

        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Contact number must be exactly 10 digits')

    def test_medicine_count(self):
        """Test that only active medicines are counted"""
        from apps.medicines.models import Medicine

        manufacturer = Manufacturer.objects.create(
            name='Kottakkal', agency_name='Arya Vaidya Sala', mr_name='Suresh', contact_number='9123456780'
        )
        Medicine.objects.create(name='Triphala Churna', manufacturer=manufacturer)
        Medicine.objects.create(name='Old Tonic', manufacturer=manufacturer, is_active=False)
        self.authenticate(self.receptionist)

        response = self.client.get(self.url)

        self.assertEqual(response.data['results'][0]['medicine_count'], 1)
