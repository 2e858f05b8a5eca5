# apps/purchases/tests.py
"""
Purchases app tests - Testing the pricing calculator, purchase stock flow,
and the purchase endpoints
"""
from datetime import date
from decimal import Decimal
from django.test import SimpleTestCase
from django.urls import reverse
from rest_framework import status

from apps.core.tests import BaseTestCase
from apps.distributors.models import Distributor
from apps.medicines.models import Medicine, Stock
from apps.purchases.models import Purchase, PurchaseItem
from apps.purchases.pricing import (
    BillDiscount,
    Central,
    Flat,
    NoTax,
    PurchaseLine,
    State,
    bill_totals,
    build_purchase_payload,
    empty_line,
    final_price,
    line_from_payload,
    line_to_payload,
    main_unit_price_to_sub_unit,
    recompute,
    recompute_on_discount1_amount_change,
    recompute_on_discount2_amount_change,
    recompute_on_main_unit_price_change,
    recompute_on_sub_unit_price_change,
    recompute_on_sub_units_change,
    recompute_on_units_change,
    select_medicine,
    single_entry_totals,
    sub_unit_price_to_main_unit,
    tax_mode_from_entry,
    to_decimal,
)

D = Decimal


def priced_line(factor=10, units=3, main_price=50):
    line = select_medicine(empty_line(), 7, hsn_code='3004', sub_units_per_unit=factor)
    line = recompute_on_main_unit_price_change(line, main_price)
    return recompute_on_units_change(line, units)


class PricingCalculatorTests(SimpleTestCase):
    """Test the purchase line pricing calculator"""

    def test_discount_cascade_and_flat_tax(self):
        """Test 1000 less 10% less 5% plus 12% tax"""
        line = PurchaseLine(
            purchase_price=D('1000'),
            discount_percentage=D('10'),
            discount2_percentage=D('5'),
            tax_mode=Flat(D('12')),
        )

        self.assertEqual(line.discount_price, D('100'))
        self.assertEqual(line.after_discount1, D('900'))
        self.assertEqual(line.discount2_price, D('45'))
        self.assertEqual(line.taxable_amount, D('855'))
        self.assertEqual(line.tax_amount, D('102.6'))
        self.assertEqual(final_price(line), D('957.6'))

    def test_units_and_main_price(self):
        """Test 3 packs of 10 at 50 a pack"""
        line = priced_line()

        self.assertEqual(line.total_purchased_unit, D('30'))
        self.assertEqual(line.price_per_sub_unit, D('5'))
        self.assertEqual(line.purchase_price, D('150'))

    def test_sub_units_change(self):
        """Test that editing sub-units derives the pack count"""
        line = recompute_on_sub_units_change(priced_line(), 25)

        self.assertEqual(line.purchased_units, D('2.5'))
        self.assertEqual(line.purchase_price, D('125'))

    def test_sub_unit_price_change(self):
        """Test that editing the sub-unit price derives the pack price"""
        line = recompute_on_sub_unit_price_change(priced_line(), 4)

        self.assertEqual(line.price_per_main_unit, D('40'))
        self.assertEqual(line.purchase_price, D('120'))

    def test_discount_amounts_back_compute_percentages(self):
        """Test that discount amounts are stored as percentages"""
        line = PurchaseLine(purchase_price=D('1000'), discount_percentage=D('10'))

        line = recompute_on_discount2_amount_change(line, 45)
        self.assertEqual(line.discount2_percentage, D('5'))
        self.assertEqual(line.discount2_price, D('45'))

        line = recompute_on_discount1_amount_change(line, 250)
        self.assertEqual(line.discount_percentage, D('25'))
        self.assertEqual(line.discount_price, D('250'))

    def test_discount_amount_with_zero_price(self):
        """Test that a discount amount on a zero price gives 0%"""
        line = recompute_on_discount1_amount_change(empty_line(), 50)

        self.assertEqual(line.discount_percentage, D('0'))

    def test_zero_factor_gives_zero(self):
        """Test that a zero units-per-pack factor never divides"""
        line = select_medicine(empty_line(), 7, sub_units_per_unit=0)
        line = recompute_on_main_unit_price_change(line, 50)
        self.assertEqual(line.price_per_sub_unit, D('0'))

        line = recompute_on_sub_units_change(line, 30)
        self.assertEqual(line.purchased_units, D('0'))
        self.assertEqual(line.purchase_price, D('0'))

    def test_missing_factor_defaults_to_one(self):
        """Test selecting a medicine without a factor"""
        line = select_medicine(empty_line(), 7)

        self.assertEqual(line.sub_units_per_unit, D('1'))

    def test_recompute_is_idempotent(self):
        """Test that applying the same edit twice changes nothing more"""
        line = priced_line()

        once = recompute(line, 'purchased_units', 4)
        self.assertEqual(recompute(once, 'purchased_units', 4), once)

    def test_every_recompute_is_idempotent(self):
        """Test that repeating any single edit changes nothing more"""
        line = recompute(priced_line(), 'discount_percentage', 10)
        line = recompute(line, 'discount2_percentage', 5)
        edits = [
            ('purchased_units', 4),
            ('total_purchased_unit', 25),
            ('price_per_main_unit', 60),
            ('price_per_sub_unit', 7),
            ('discount_percentage', 15),
            ('discount_price', 30),
            ('discount2_percentage', 8),
            ('discount2_price', 12),
            ('tax_percentage', 12),
        ]
        for field_name, value in edits:
            with self.subTest(field=field_name):
                once = recompute(line, field_name, value)
                self.assertEqual(recompute(once, field_name, value), once)

    def test_units_round_trip_through_sub_units(self):
        """Test that units to sub-units and back gives the units again"""
        for factor, units in [(10, '3'), (3, '7'), (1, '2.5'), (12, '0.5')]:
            with self.subTest(factor=factor, units=units):
                line = recompute_on_units_change(priced_line(factor=factor), units)
                back = recompute_on_sub_units_change(line, line.total_purchased_unit)

                self.assertEqual(back.purchased_units, D(units))

    def test_final_price_monotonic(self):
        """Test that discounts never raise the final price and tax never lowers it"""
        line = PurchaseLine(
            purchase_price=D('1000'),
            discount_percentage=D('10'),
            discount2_percentage=D('5'),
            tax_mode=Flat(D('12')),
        )
        steps = [D('0'), D('2.5'), D('10'), D('50'), D('99.9'), D('100')]

        for field_name in ('discount_percentage', 'discount2_percentage'):
            with self.subTest(field=field_name):
                prices = [final_price(recompute(line, field_name, step)) for step in steps]
                self.assertEqual(prices, sorted(prices, reverse=True))

        prices = [final_price(recompute(line, 'tax_percentage', step)) for step in steps + [D('200')]]
        self.assertEqual(prices, sorted(prices))

    def test_recompute_dispatch(self):
        """Test plain field edits and unknown fields"""
        line = recompute(priced_line(), 'mrp', '600')
        self.assertEqual(line.mrp, D('600'))
        self.assertEqual(line.purchase_price, D('150'))

        line = recompute(line, 'tax_percentage', '12')
        self.assertEqual(line.tax_mode, Flat(D('12')))

        with self.assertRaises(ValueError):
            recompute(line, 'purchase_price', 10)

    def test_empty_and_invalid_input(self):
        """Test that blank or garbage numbers count as zero"""
        self.assertEqual(to_decimal(''), D('0'))
        self.assertEqual(to_decimal(None), D('0'))
        self.assertEqual(to_decimal('abc'), D('0'))
        self.assertEqual(to_decimal('NaN'), D('0'))
        self.assertEqual(to_decimal(' 12.5 '), D('12.5'))

        line = recompute(priced_line(), 'purchased_units', '')
        self.assertEqual(line.purchase_price, D('0'))

    def test_bill_totals(self):
        """Test a bill of 957.6 and 200 less a 50 bill discount"""
        lines = [
            PurchaseLine(
                purchase_price=D('1000'),
                discount_percentage=D('10'),
                discount2_percentage=D('5'),
                tax_mode=Flat(D('12')),
            ),
            PurchaseLine(purchase_price=D('200')),
        ]

        totals = bill_totals(lines, D('50'))

        self.assertEqual(totals.taxable_amount, D('1055'))
        self.assertEqual(totals.subtotal_amount, D('1157.6'))
        self.assertEqual(totals.total_amount, D('1107.6'))

    def test_bill_total_not_floored(self):
        """Test that a bill discount above the subtotal goes negative"""
        totals = bill_totals([PurchaseLine(purchase_price=D('200'))], D('300'))

        self.assertEqual(totals.total_amount, D('-100'))

    def test_bill_totals_empty(self):
        """Test a bill without lines"""
        totals = bill_totals([])

        self.assertEqual(totals.subtotal_amount, D('0'))
        self.assertEqual(totals.total_amount, D('0'))

    def test_bill_discount_alternatives(self):
        """Test that percent and amount clear each other"""
        discount = BillDiscount().with_amount(30).with_percent(5)
        self.assertEqual(discount.amount, D('0'))
        self.assertEqual(discount.effective_amount(1000), D('50'))

        discount = discount.with_amount(30)
        self.assertEqual(discount.percent, D('0'))
        self.assertEqual(discount.effective_amount(1000), D('30'))

    def test_bill_discount_apply(self):
        """Test bill totals with a percentage bill discount taken off"""
        lines = [PurchaseLine(purchase_price=D('800')), PurchaseLine(purchase_price=D('200'))]

        totals, discount3_amount = BillDiscount().with_percent(10).apply(lines)

        self.assertEqual(discount3_amount, D('100'))
        self.assertEqual(totals.subtotal_amount, D('1000'))
        self.assertEqual(totals.total_amount, D('900'))

    def test_single_entry_state_tax(self):
        """Test 50 x 10 with 20% discount and 6% + 6% state tax"""
        totals = single_entry_totals(50, 10, 20, State(cgst=D('6'), sgst=D('6')))

        self.assertEqual(totals.total_price, D('500'))
        self.assertEqual(totals.discount_amount, D('100'))
        self.assertEqual(totals.taxable_amount, D('400'))
        self.assertEqual(totals.cgst_amount, D('24'))
        self.assertEqual(totals.sgst_amount, D('24'))
        self.assertEqual(totals.tax_amount, D('48'))
        self.assertEqual(totals.grand_total, D('448'))

    def test_single_entry_central_and_no_tax(self):
        """Test IGST and untaxed entries"""
        totals = single_entry_totals(10, 10, 0, Central(igst=D('18')))
        self.assertEqual(totals.igst_amount, D('18'))
        self.assertEqual(totals.grand_total, D('118'))

        totals = single_entry_totals(10, 10, 0, NoTax())
        self.assertEqual(totals.tax_amount, D('0'))
        self.assertEqual(totals.grand_total, D('100'))

    def test_single_entry_floored(self):
        """Test that an oversized discount floors the entry at zero"""
        totals = single_entry_totals(10, 10, 150, State(cgst=D('6'), sgst=D('6')))

        self.assertEqual(totals.taxable_amount, D('0'))
        self.assertEqual(totals.grand_total, D('0'))

    def test_tax_mode_from_entry(self):
        """Test that rates of other tax types are dropped"""
        central = tax_mode_from_entry('central', cgst=9, sgst=9, igst=18)
        self.assertEqual(central, Central(igst=D('18')))
        self.assertEqual(central.as_entry()['cgst'], D('0'))

        state = tax_mode_from_entry('state', cgst=6, sgst=6, igst=18)
        self.assertEqual(state.rate, D('12'))
        self.assertEqual(state.as_entry()['igst'], D('0'))

        self.assertEqual(tax_mode_from_entry('bogus'), NoTax())

    def test_unit_price_conversions(self):
        """Test main and sub-unit price conversions"""
        self.assertEqual(main_unit_price_to_sub_unit(50, 10), D('5'))
        self.assertEqual(main_unit_price_to_sub_unit(50, 0), D('0'))
        self.assertEqual(sub_unit_price_to_main_unit('5.5', 10), D('55'))

    def test_line_to_payload(self):
        """Test the sub-unit denominated payload item"""
        line = recompute(priced_line(), 'mrp', 600)
        line = recompute(line, 'selling_price', 550)
        line = recompute(line, 'batch_number', ' AB12 ')
        line = recompute(line, 'expiry_date', date(2026, 12, 31))

        item = line_to_payload(line)

        self.assertEqual(item['medicine'], 7)
        self.assertEqual(item['totalPurchasedUnit'], D('3'))
        self.assertEqual(item['pricePerUnit'], D('5'))
        self.assertEqual(item['purchasePrice'], D('150'))
        self.assertEqual(item['mrp'], D('60'))
        self.assertEqual(item['sellingPrice'], D('55'))
        self.assertEqual(item['batchNumber'], 'ab12')
        self.assertEqual(item['expiryDate'], '2026-12-31')
        self.assertIsNone(item['manufacturingDate'])

    def test_payload_round_trip(self):
        """Test that a line survives conversion to the payload and back"""
        line = recompute(priced_line(), 'mrp', 600)
        line = recompute(line, 'selling_price', 550)
        line = recompute(line, 'discount_percentage', 10)
        line = recompute(line, 'tax_percentage', 12)
        line = recompute(line, 'batch_number', 'ab12')

        self.assertEqual(line_from_payload(line_to_payload(line), 10), line)

    def test_line_from_payload_keeps_tax_type(self):
        """Test that stored entries keep their tax mode"""
        item = {
            'totalPurchasedUnit': 50, 'purchasePrice': 500, 'taxType': 'state',
            'cgst': 6, 'sgst': 6, 'taxPercentage': 12,
        }

        line = line_from_payload(item, 0)

        self.assertEqual(line.sub_units_per_unit, D('1'))
        self.assertEqual(line.tax_mode, State(cgst=D('6'), sgst=D('6')))
        self.assertEqual(final_price(line), D('560'))

    def test_build_purchase_payload(self):
        """Test that blank rows are skipped and totals included"""
        line = recompute(priced_line(), 'tax_percentage', 12)

        payload = build_purchase_payload(
            [line, empty_line()],
            invoice_number='INV-7',
            distributor=3,
            purchase_date=date(2024, 5, 1),
            bill_discount=BillDiscount().with_percent(10),
        )

        self.assertEqual(len(payload['medicines']), 1)
        self.assertEqual(payload['taxableAmount'], D('150'))
        self.assertEqual(payload['discount3Amount'], D('16.8'))
        self.assertEqual(payload['totalAmount'], D('151.2'))
        self.assertEqual(payload['purchaseDate'], '2024-05-01')
        self.assertEqual(payload['discount3Percent'], D('10'))


class PurchaseTestCase(BaseTestCase):
    """Shared purchase fixtures"""

    def setUp(self):
        super().setUp()
        self.distributor = Distributor.objects.create(
            name='Kerala Herbals',
            gst_no='32ABCDE1234F1Z5',
            primary_contact_no='9876543210',
            address='MG Road, Kochi, Kerala'
        )
        self.medicine = Medicine.objects.create(
            name='Ashwagandha Tablet',
            hsn_code='3004',
            total_quantity_in_a_unit=10
        )
        self.url = reverse('purchase-list')

    def line(self, **overrides):
        data = {
            'medicine': self.medicine.pk,
            'totalPurchasedUnit': 3,
            'pricePerUnit': '5',
            'purchasePrice': '150',
            'mrp': '6',
            'sellingPrice': '5.5',
            'discountPercentage': 10,
            'discount2Percentage': 5,
            'taxPercentage': 12,
            'hsnCode': '3004',
            'batchNumber': ' B1 ',
            'manufacturingDate': '2024-01-01T00:00:00Z',
            'expiryDate': '2026-12-31T00:00:00Z',
        }
        data.update(overrides)
        return data

    def payload(self, lines=None, **overrides):
        data = {
            'invoiceNumber': 'INV-1001',
            'distributor': self.distributor.pk,
            'medicines': lines if lines is not None else [self.line()],
            'discount3Amount': '3.64',
        }
        data.update(overrides)
        return data

    def stock_quantity(self, batch='b1'):
        return Stock.objects.get(medicine=self.medicine, batch_number=batch).total_quantity


class PurchaseViewSetTests(PurchaseTestCase):
    """Test PurchaseViewSet endpoints"""

    def test_create_purchase(self):
        """Test recording a purchase: totals and stock"""
        self.authenticate(self.pharmacist)

        response = self.client.post(self.url, self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['taxableAmount'], '128.25')
        self.assertEqual(response.data['subtotalAmount'], '143.64')
        self.assertEqual(response.data['totalAmount'], '140.00')
        self.assertEqual(response.data['createdBy'], 'pharmacist_user')

        item = PurchaseItem.objects.get()
        self.assertEqual(item.batch_number, 'b1')
        self.assertEqual(item.final_price, D('143.64'))
        self.assertEqual(item.tax_type, PurchaseItem.TAX_FLAT)
        self.assertEqual(self.stock_quantity(), D('30'))

    def test_create_purchase_as_receptionist(self):
        """Test that receptionists cannot record purchases"""
        self.authenticate(self.receptionist)

        response = self.client.post(self.url, self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(
            response.data['message'], 'Only administrators or pharmacists can perform this action.'
        )

    def test_missing_distributor(self):
        """Test the distributor message comes first"""
        self.authenticate(self.pharmacist)
        data = self.payload(lines=[])
        del data['distributor']

        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Please select a distributor')

    def test_empty_medicines(self):
        """Test that a purchase needs at least one line"""
        self.authenticate(self.pharmacist)

        response = self.client.post(self.url, self.payload(lines=[]), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Please add at least one medicine')

    def test_line_validation_messages(self):
        """Test the first failing line rule is reported"""
        self.authenticate(self.pharmacist)
        cases = [
            ({'totalPurchasedUnit': 0, 'mrp': ''}, 'Quantity must be greater than 0'),
            ({'pricePerUnit': '0'}, 'Purchase price must be greater than 0'),
            ({'mrp': ''}, 'MRP must be greater than 0'),
            ({'discountPercentage': 120}, 'Discount must be between 0-100'),
            ({'hsnCode': ''}, 'HSN Code is required'),
            ({'batchNumber': '  '}, 'Batch number is required'),
            ({'expiryDate': None}, 'Expiry date is required'),
        ]
        for overrides, message in cases:
            response = self.client.post(self.url, self.payload([self.line(**overrides)]), format='json')

            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, message)
            self.assertEqual(response.data['message'], message)

        self.assertFalse(Purchase.objects.exists())

    def test_update_purchase_rebooks_stock(self):
        """Test that editing lines releases old stock and receives the new"""
        self.authenticate(self.pharmacist)
        response = self.client.post(self.url, self.payload(), format='json')
        purchase_id = response.data['id']

        data = self.payload([self.line(totalPurchasedUnit=2, purchasePrice='100')], discount3Amount=0)
        response = self.client.put(
            reverse('purchase-detail', kwargs={'pk': purchase_id}), data, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.stock_quantity(), D('20'))
        self.assertEqual(PurchaseItem.objects.count(), 1)
        # 100 less 10% less 5% plus 12%
        self.assertEqual(Purchase.objects.get().total_amount, D('95.76'))

    def test_delete_purchase_releases_stock(self):
        """Test that deleting a purchase takes its stock back out"""
        self.authenticate(self.pharmacist)
        response = self.client.post(self.url, self.payload(), format='json')

        response = self.client.delete(reverse('purchase-detail', kwargs={'pk': response.data['id']}))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.stock_quantity(), D('0'))
        self.assertFalse(Purchase.objects.exists())

    def test_delete_purchase_with_used_stock(self):
        """Test that a purchase whose stock was used cannot be deleted"""
        self.authenticate(self.pharmacist)
        response = self.client.post(self.url, self.payload(), format='json')
        Stock.objects.filter(batch_number='b1').update(total_quantity=D('5'))

        response = self.client.delete(reverse('purchase-detail', kwargs={'pk': response.data['id']}))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(response.data['message'].startswith('Insufficient stock'))
        self.assertTrue(Purchase.objects.exists())

    def test_bill_discount_above_subtotal(self):
        """Test that the bill total may go negative"""
        self.authenticate(self.pharmacist)

        response = self.client.post(self.url, self.payload(discount3Amount='500'), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['totalAmount'], '-356.36')

    def test_bill_discount_percent(self):
        """Test a percentage bill discount"""
        self.authenticate(self.pharmacist)

        response = self.client.post(
            self.url, self.payload(discount3Amount=0, discount3Percent=10), format='json'
        )

        self.assertEqual(response.data['discount3Amount'], '14.36')
        self.assertEqual(response.data['totalAmount'], '129.28')

    def test_bill_discount_amount_clears_percent(self):
        """Test that setting a flat bill discount drops the percentage"""
        self.authenticate(self.pharmacist)
        response = self.client.post(
            self.url, self.payload(discount3Amount=0, discount3Percent=10), format='json'
        )

        response = self.client.patch(
            reverse('purchase-detail', kwargs={'pk': response.data['id']}),
            {'discount3Amount': '5'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['discount3Amount'], '5.00')
        self.assertEqual(response.data['totalAmount'], '138.64')
        self.assertEqual(Purchase.objects.get().discount3_percent, D('0'))

    def test_bill_discount_percent_replaces_amount(self):
        """Test that setting a bill discount percentage replaces the flat amount"""
        self.authenticate(self.pharmacist)
        response = self.client.post(self.url, self.payload(), format='json')

        response = self.client.patch(
            reverse('purchase-detail', kwargs={'pk': response.data['id']}),
            {'discount3Percent': 10},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['discount3Amount'], '14.36')
        self.assertEqual(response.data['totalAmount'], '129.28')

    def test_purchase_price_derived_from_unit_price(self):
        """Test that a sent purchase price never overrides price per unit x quantity"""
        self.authenticate(self.pharmacist)

        response = self.client.post(
            self.url, self.payload([self.line(purchasePrice='999')]), format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['medicines'][0]['purchasePrice'], '150.00')
        self.assertEqual(response.data['totalAmount'], '140.00')
        self.assertEqual(PurchaseItem.objects.get().purchase_price, D('150.00'))

    def test_list_and_retrieve(self):
        """Test list rows and the detail view with lines"""
        self.authenticate(self.pharmacist)
        response = self.client.post(self.url, self.payload(), format='json')
        purchase_id = response.data['id']

        response = self.client.get(self.url)
        self.assertEqual(response.data['results'][0]['itemCount'], 1)
        self.assertNotIn('medicines', response.data['results'][0])

        response = self.client.get(reverse('purchase-detail', kwargs={'pk': purchase_id}))
        self.assertEqual(response.data['medicines'][0]['medicineName'], 'Ashwagandha Tablet')

    def test_dashboard(self):
        """Test purchase totals"""
        self.authenticate(self.pharmacist)
        self.client.post(self.url, self.payload(), format='json')

        response = self.client.get(reverse('purchase-dashboard'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['purchase_count'], 1)
        self.assertEqual(response.data['total_amount'], D('140'))
        self.assertEqual(response.data['tax_amount'], D('15.39'))
        self.assertEqual(response.data['top_distributors'][0]['name'], 'Kerala Herbals')

    def test_dashboard_invalid_range(self):
        """Test an end date before the start date"""
        self.authenticate(self.pharmacist)

        response = self.client.get(
            reverse('purchase-dashboard'), {'start_date': '2024-05-01', 'end_date': '2024-04-01'}
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'End date cannot be before start date')


class PurchaseCalculatorEndpointTests(PurchaseTestCase):
    """Test the calculator endpoints used by the purchase form"""

    def test_calculate_line(self):
        """Test recomputing a row after the pack count changes"""
        self.authenticate(self.receptionist)
        data = {'line': {'subUnitsPerUnit': 10, 'pricePerMainUnit': 50}, 'field': 'purchasedUnits', 'value': 3}

        response = self.client.post(reverse('purchase-calculate-line'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['totalPurchasedUnit'], D('30'))
        self.assertEqual(response.data['pricePerUnit'], D('5'))
        self.assertEqual(response.data['purchasePrice'], D('150'))
        self.assertEqual(response.data['finalPrice'], D('150'))

    def test_calculate_line_select_medicine(self):
        """Test that picking a medicine fills its factor and HSN code"""
        self.authenticate(self.pharmacist)
        data = {'line': {}, 'field': 'medicine', 'value': self.medicine.pk}

        response = self.client.post(reverse('purchase-calculate-line'), data, format='json')

        self.assertEqual(response.data['subUnitsPerUnit'], D('10'))
        self.assertEqual(response.data['hsnCode'], '3004')

    def test_calculate_line_unknown_medicine(self):
        """Test picking a medicine that does not exist"""
        self.authenticate(self.pharmacist)
        data = {'field': 'medicine', 'value': 9999}

        response = self.client.post(reverse('purchase-calculate-line'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Medicine not found')

    def test_calculate_line_not_editable(self):
        """Test that derived fields cannot be edited directly"""
        self.authenticate(self.pharmacist)
        data = {'line': {}, 'field': 'purchasePrice', 'value': 10}

        response = self.client.post(reverse('purchase-calculate-line'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], '"purchasePrice" is not an editable purchase line field')

    def test_calculate_totals(self):
        """Test bill totals for form rows"""
        self.authenticate(self.pharmacist)
        data = {
            'medicines': [
                {'purchasePrice': 1000, 'discountPercentage': 10, 'discount2Percentage': 5, 'taxPercentage': 12},
                {'purchasePrice': 200, 'discountPercentage': ''},
            ],
            'discount3Amount': 50,
        }

        response = self.client.post(reverse('purchase-calculate-totals'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['taxableAmount'], D('1055'))
        self.assertEqual(response.data['subtotalAmount'], D('1157.6'))
        self.assertEqual(response.data['totalAmount'], D('1107.6'))

        data['discount3Percent'] = 10
        response = self.client.post(reverse('purchase-calculate-totals'), data, format='json')
        self.assertEqual(response.data['discount3Amount'], D('115.76'))
        self.assertEqual(response.data['totalAmount'], D('1041.84'))

    def test_preview(self):
        """Test the payload built from form rows"""
        self.authenticate(self.pharmacist)
        row = {
            'medicine': self.medicine.pk,
            'purchasedUnits': 3,
            'totalPurchasedUnit': 30,
            'pricePerMainUnit': 50,
            'pricePerUnit': 5,
            'purchasePrice': 150,
            'mrp': 600,
            'sellingPrice': 550,
            'taxPercentage': 12,
            'batchNumber': ' AB12 ',
            'hsnCode': '3004',
        }
        data = {
            'invoiceNumber': 'INV-7',
            'distributor': self.distributor.pk,
            'medicines': [row, {}],
            'discount3Percent': 10,
        }

        response = self.client.post(reverse('purchase-preview'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['medicines']), 1)
        item = response.data['medicines'][0]
        self.assertEqual(item['totalPurchasedUnit'], D('3'))
        self.assertEqual(item['mrp'], D('60'))
        self.assertEqual(item['batchNumber'], 'ab12')
        self.assertEqual(response.data['discount3Amount'], D('16.8'))
        self.assertEqual(response.data['totalAmount'], D('151.2'))
        self.assertFalse(Purchase.objects.exists())


class PurchaseEntryViewSetTests(PurchaseTestCase):
    """Test the single purchase line edit form"""

    def setUp(self):
        super().setUp()
        self.authenticate(self.pharmacist)
        response = self.client.post(self.url, self.payload(discount3Amount=0), format='json')
        self.item = PurchaseItem.objects.get(purchase_id=response.data['id'])
        self.entry_url = reverse('purchase-entry-detail', kwargs={'pk': self.item.pk})

    def entry(self, **overrides):
        data = {
            'medicine': self.medicine.pk,
            'totalPurchasedUnit': 5,
            'pricePerUnit': 10,
            'mrp': 12,
            'batchNumber': 'b1',
            'taxType': 'state',
            'cgst': 6,
            'sgst': 6,
            'manufacturingDate': '2024-01-01T00:00:00Z',
            'expiryDate': '2026-12-31T00:00:00Z',
            'sellingPrice': 11,
            'discount': 20,
            'hsnCode': '3004',
        }
        data.update(overrides)
        return data

    def test_update_entry_state_tax(self):
        """Test 5 packs of 10 at 10 each less 20% with 6% + 6% state tax"""
        response = self.client.put(self.entry_url, self.entry(), format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['totalPrice'], '500.00')
        self.assertEqual(response.data['taxableAmount'], '400.00')
        self.assertEqual(response.data['taxAmount'], '48.00')
        self.assertEqual(response.data['grandTotal'], '448.00')
        self.assertEqual(response.data['taxPercentage'], '12.0000')

        self.assertEqual(self.stock_quantity(), D('50'))
        self.assertEqual(Purchase.objects.get().total_amount, D('448.00'))

    def test_resaving_entry_keeps_purchase_price(self):
        """Test that saving a line with its own quantity and price keeps both"""
        data = self.entry(totalPurchasedUnit=3, pricePerUnit=5, mrp=6, sellingPrice='5.5', discount=0)

        response = self.client.put(self.entry_url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['totalPrice'], '150.00')
        self.assertEqual(response.data['grandTotal'], '168.00')
        self.item.refresh_from_db()
        self.assertEqual(self.item.purchase_price, D('150.00'))
        self.assertEqual(self.stock_quantity(), D('30'))

    def test_update_entry_central_tax(self):
        """Test switching an entry to IGST"""
        response = self.client.put(self.entry_url, self.entry(taxType='central', igst=18), format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.item.refresh_from_db()
        self.assertEqual(self.item.tax_type, PurchaseItem.TAX_CENTRAL)
        self.assertEqual(self.item.cgst, D('0'))
        self.assertEqual(self.item.final_price, D('472.00'))

    def test_tax_rate_messages(self):
        """Test the tax type and rate messages"""
        cases = [
            ({'taxType': 'central', 'igst': 0}, 'IGST is required and must be greater than 0.'),
            ({'cgst': 0}, 'CGST is required and must be greater than 0.'),
            ({'sgst': None}, 'SGST is required and must be greater than 0.'),
            ({'taxType': 'flat'}, 'Tax type is required'),
        ]
        for overrides, message in cases:
            response = self.client.put(self.entry_url, self.entry(**overrides), format='json')

            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, message)
            self.assertEqual(response.data['message'], message)

    def test_field_messages(self):
        """Test the entry field messages"""
        cases = [
            ({'totalPurchasedUnit': 0}, 'Total purchased unit must be at least 1'),
            ({'discount': 150}, 'Discount cannot exceed 100%'),
            ({'batchNumber': ''}, 'Batch number is required'),
        ]
        for overrides, message in cases:
            response = self.client.put(self.entry_url, self.entry(**overrides), format='json')

            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, message)
            self.assertEqual(response.data['message'], message)

        self.assertEqual(self.stock_quantity(), D('30'))
