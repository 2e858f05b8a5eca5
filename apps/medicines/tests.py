# apps/medicines/tests.py
"""
Medicines app tests - Testing batch stock, the stock service, and endpoints
"""
from datetime import timedelta
from decimal import Decimal
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status

from apps.core.exceptions import InsufficientStockError
from apps.core.tests import BaseTestCase
from apps.distributors.models import Distributor
from apps.medicines.models import Medicine, Stock
from apps.medicines.services import StockService
from apps.purchases.models import Purchase, PurchaseItem


class StockModelTests(TestCase):
    """Test Stock model"""

    def setUp(self):
        self.medicine = Medicine.objects.create(name='Ashwagandha Tablet', total_quantity_in_a_unit=10)

    def test_main_unit_prices(self):
        """Test that per sub-unit prices convert to main-unit prices"""
        stock = Stock.objects.create(
            medicine=self.medicine,
            batch_number='b1',
            total_quantity=Decimal('30'),
            mrp=Decimal('6.5'),
            selling_price=Decimal('5.25'),
        )

        self.assertEqual(stock.sub_units_per_unit, 10)
        self.assertEqual(stock.mrp_per_main_unit, Decimal('65.00'))
        self.assertEqual(stock.selling_price_per_main_unit, Decimal('52.50'))

    def test_stock_status(self):
        """Test low stock, out of stock and expiry flags"""
        stock = Stock.objects.create(
            medicine=self.medicine,
            batch_number='b1',
            total_quantity=Decimal('0'),
            reorder_level=Decimal('5'),
            expiry_date=timezone.now() - timedelta(days=1),
        )

        self.assertTrue(stock.is_out_of_stock)
        self.assertTrue(stock.is_low_stock)
        self.assertTrue(stock.is_expired)

    def test_medicine_total_stock(self):
        """Test stock summed across batches"""
        Stock.objects.create(medicine=self.medicine, batch_number='b1', total_quantity=Decimal('30'))
        Stock.objects.create(medicine=self.medicine, batch_number='b2', total_quantity=Decimal('12.5'))

        self.assertEqual(self.medicine.total_stock, Decimal('42.5'))


class StockServiceTests(TestCase):
    """Test StockService receive/release"""

    def setUp(self):
        self.medicine = Medicine.objects.create(name='Triphala Churna', total_quantity_in_a_unit=10)

    def test_receive_creates_batch(self):
        """Test that receiving into an unknown batch creates it"""
        stock = StockService.receive(
            self.medicine, ' AB12 ', Decimal('30'), mrp=Decimal('6'), selling_price=Decimal('5.5')
        )

        self.assertEqual(stock.batch_number, 'ab12')
        self.assertEqual(stock.total_quantity, Decimal('30'))
        self.assertEqual(stock.mrp, Decimal('6'))
        self.assertEqual(stock.unit_type, self.medicine.unit_type)

    def test_receive_adds_to_existing_batch(self):
        """Test that the same batch accumulates quantity"""
        StockService.receive(self.medicine, 'ab12', Decimal('30'))
        stock = StockService.receive(self.medicine, 'AB12', Decimal('20'))

        self.assertEqual(stock.total_quantity, Decimal('50'))
        self.assertEqual(Stock.objects.count(), 1)

    def test_release(self):
        """Test releasing part of a batch"""
        StockService.receive(self.medicine, 'ab12', Decimal('30'))
        stock = StockService.release(self.medicine, 'ab12', Decimal('10'))

        self.assertEqual(stock.total_quantity, Decimal('20'))

    def test_release_insufficient(self):
        """Test releasing more than the batch holds"""
        StockService.receive(self.medicine, 'ab12', Decimal('5'))

        with self.assertRaises(InsufficientStockError):
            StockService.release(self.medicine, 'ab12', Decimal('10'))

        self.assertEqual(Stock.objects.get().total_quantity, Decimal('5'))

    def test_release_unknown_batch(self):
        """Test releasing from a batch that was never received"""
        with self.assertRaises(InsufficientStockError):
            StockService.release(self.medicine, 'missing', Decimal('1'))

    def test_release_zero_is_noop(self):
        """Test that a zero release does nothing"""
        self.assertIsNone(StockService.release(self.medicine, 'missing', 0))

    def test_update_stock_converts_main_unit_price(self):
        """Test that the form's main-unit selling price is stored per sub-unit"""
        stock = StockService.receive(self.medicine, 'ab12', Decimal('30'))

        stock = StockService.update_stock(stock, {
            'selling_price_per_main_unit': Decimal('55.00'),
            'medicine_name': 'Triphala Churna 100g',
            'batch_number': ' AB13 ',
        })

        self.assertEqual(stock.selling_price, Decimal('5.5'))
        self.assertEqual(stock.batch_number, 'ab13')
        self.medicine.refresh_from_db()
        self.assertEqual(self.medicine.name, 'Triphala Churna 100g')

    def test_get_low_stock(self):
        """Test low stock by reorder level and by explicit threshold"""
        StockService.receive(self.medicine, 'low', Decimal('5'))
        StockService.receive(self.medicine, 'high', Decimal('50'))

        self.assertEqual(
            list(StockService.get_low_stock().values_list('batch_number', flat=True)), ['low']
        )
        self.assertEqual(StockService.get_low_stock(threshold=100).count(), 2)


class MedicineViewSetTests(BaseTestCase):
    """Test MedicineViewSet endpoints"""

    def setUp(self):
        super().setUp()
        self.url = reverse('medicine-list')
        self.medicine = Medicine.objects.create(name='Brahmi Vati', total_quantity_in_a_unit=10)

    def test_create_medicine(self):
        """Test creating a medicine as pharmacist"""
        self.authenticate(self.pharmacist)
        data = {
            'name': 'Chyawanprash',
            'hsn_code': '3004',
            'unit_type': Medicine.UNIT_JAR,
            'base_unit_type': Medicine.BASE_GRAM,
            'total_quantity_in_a_unit': 500,
        }

        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_quantity_in_a_unit'], 500)

    def test_factor_locked_after_purchase(self):
        """Test that the units-per-pack factor cannot change once purchased"""
        distributor = Distributor.objects.create(
            name='Kerala Herbals', gst_no='32ABCDE1234F1Z5',
            primary_contact_no='9876543210', address='MG Road, Kochi, Kerala'
        )
        purchase = Purchase.objects.create(distributor=distributor)
        PurchaseItem.objects.create(
            purchase=purchase, medicine=self.medicine, batch_number='b1',
            total_purchased_unit=Decimal('1'), purchase_price=Decimal('10')
        )
        self.authenticate(self.pharmacist)

        response = self.client.patch(
            reverse('medicine-detail', kwargs={'pk': self.medicine.pk}),
            {'total_quantity_in_a_unit': 20},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            response.data['message'], 'Quantity in a unit cannot change once the medicine has purchases'
        )

    def test_delete_deactivates(self):
        """Test that deleting a medicine only deactivates it"""
        self.authenticate(self.admin)

        response = self.client.delete(reverse('medicine-detail', kwargs={'pk': self.medicine.pk}))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.medicine.refresh_from_db()
        self.assertFalse(self.medicine.is_active)


class StockViewSetTests(BaseTestCase):
    """Test StockViewSet endpoints"""

    def setUp(self):
        super().setUp()
        self.medicine = Medicine.objects.create(name='Brahmi Vati', total_quantity_in_a_unit=10)
        self.stock = StockService.receive(
            self.medicine, 'b1', Decimal('5'), mrp=Decimal('6'), selling_price=Decimal('5')
        )
        StockService.receive(self.medicine, 'b2', Decimal('500'))

    def test_list_requires_pharmacy_staff(self):
        """Test that receptionists cannot see stock"""
        self.authenticate(self.receptionist)
        response = self.client.get(reverse('stock-list'))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_stock(self):
        """Test the stock edit form"""
        self.authenticate(self.pharmacist)

        response = self.client.patch(
            reverse('stock-detail', kwargs={'pk': self.stock.pk}),
            {'selling_price_per_main_unit': '60.00', 'total_quantity': '8'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['selling_price_per_main_unit'], '60.00')
        self.stock.refresh_from_db()
        self.assertEqual(self.stock.selling_price, Decimal('6'))
        self.assertEqual(self.stock.total_quantity, Decimal('8'))

    def test_update_stock_duplicate_batch(self):
        """Test renaming a batch onto an existing one"""
        self.authenticate(self.pharmacist)

        response = self.client.patch(
            reverse('stock-detail', kwargs={'pk': self.stock.pk}),
            {'batch_number': 'B2'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'This batch already exists for the medicine')

    def test_low_stock_endpoint(self):
        """Test low stock listing"""
        self.authenticate(self.pharmacist)

        response = self.client.get(reverse('stock-low-stock'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['batch_number'] for row in response.data['results']], ['b1'])

    def test_low_stock_invalid_threshold(self):
        """Test a non-numeric threshold"""
        self.authenticate(self.pharmacist)

        response = self.client.get(reverse('stock-low-stock'), {'threshold': 'abc'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
