# apps/purchases/models.py
"""
Purchase bills and their medicine lines.

Each ``PurchaseItem`` stores the submitted payload line (sub-unit prices,
main-unit quantity) plus the amounts the pricing calculator derives from it.
Stored amounts are always recomputed server side.
"""
from decimal import Decimal, ROUND_HALF_UP
from django.db import models
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.core.models import TimeStampedModel
from .pricing import (
    BillDiscount, final_price, line_from_payload, tax_mode_from_entry,
)

CENTS = Decimal('0.01')
RATE = Decimal('0.0001')


def quantize_money(value):
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def quantize_rate(value):
    return Decimal(value).quantize(RATE, rounding=ROUND_HALF_UP)


class Purchase(TimeStampedModel):
    """
    A distributor invoice recorded by the pharmacy.
    """
    invoice_number = models.CharField(max_length=100, blank=True, default='', db_index=True)
    distributor = models.ForeignKey(
        'distributors.Distributor',
        on_delete=models.PROTECT,
        related_name='purchases'
    )
    purchase_date = models.DateTimeField(default=timezone.now, db_index=True)

    # Bill level discount ("discount 3"): percent or flat amount
    discount3_percent = models.DecimalField(max_digits=7, decimal_places=4, default=Decimal('0'))
    discount3_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))

    taxable_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    subtotal_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    # Not floored: a bill discount above the subtotal gives a negative total
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchases_created'
    )

    class Meta:
        ordering = ['-purchase_date', '-created_at']
        indexes = [
            models.Index(fields=['distributor', 'purchase_date'], name='purchase_distributor_date_idx'),
        ]

    def __str__(self):
        return f"Purchase {self.invoice_number or self.pk} - {self.distributor}"

    @property
    def bill_discount(self):
        return BillDiscount(percent=self.discount3_percent, amount=self.discount3_amount)

    @property
    def item_count(self):
        return self.items.count()

    def pricing_lines(self):
        return [item.to_line() for item in self.items.select_related('medicine')]

    def calculate_totals(self):
        """
        Recompute the bill totals from the stored lines and save them.
        """
        with transaction.atomic():
            locked = Purchase.objects.select_for_update().get(pk=self.pk)
            lines = locked.pricing_lines()
            totals, discount3_amount = locked.bill_discount.apply(lines)

            locked.discount3_amount = quantize_money(discount3_amount)
            locked.taxable_amount = quantize_money(totals.taxable_amount)
            locked.subtotal_amount = quantize_money(totals.subtotal_amount)
            locked.total_amount = quantize_money(totals.total_amount)
            locked.save(update_fields=[
                'discount3_amount', 'taxable_amount', 'subtotal_amount', 'total_amount', 'updated_at'
            ])

            self.refresh_from_db()


class PurchaseItem(TimeStampedModel):
    """
    One medicine line of a purchase.

    ``total_purchased_unit`` is in main units; ``price_per_unit``, ``mrp``
    and ``selling_price`` are per sub-unit.
    """
    TAX_FLAT = 'flat'
    TAX_NONE = 'noTax'
    TAX_CENTRAL = 'central'
    TAX_STATE = 'state'
    TAX_CHOICES = [
        (TAX_FLAT, 'Flat percentage'),
        (TAX_NONE, 'No tax'),
        (TAX_CENTRAL, 'Central (IGST)'),
        (TAX_STATE, 'State (CGST + SGST)'),
    ]

    purchase = models.ForeignKey(Purchase, on_delete=models.CASCADE, related_name='items')
    medicine = models.ForeignKey(
        'medicines.Medicine',
        on_delete=models.PROTECT,
        related_name='purchase_items'
    )
    hsn_code = models.CharField(max_length=20, blank=True, default='')
    batch_number = models.CharField(max_length=100, db_index=True)
    manufacturing_date = models.DateTimeField(null=True, blank=True)
    expiry_date = models.DateTimeField(null=True, blank=True)

    total_purchased_unit = models.DecimalField(max_digits=14, decimal_places=3)
    price_per_unit = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal('0'))
    purchase_price = models.DecimalField(max_digits=14, decimal_places=2)
    mrp = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal('0'))
    selling_price = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal('0'))

    discount_percentage = models.DecimalField(max_digits=7, decimal_places=4, default=Decimal('0'))
    discount_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    discount2_percentage = models.DecimalField(max_digits=7, decimal_places=4, default=Decimal('0'))
    discount2_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))

    tax_type = models.CharField(max_length=10, choices=TAX_CHOICES, default=TAX_FLAT)
    tax_percentage = models.DecimalField(max_digits=7, decimal_places=4, default=Decimal('0'))
    cgst = models.DecimalField(max_digits=7, decimal_places=4, default=Decimal('0'))
    sgst = models.DecimalField(max_digits=7, decimal_places=4, default=Decimal('0'))
    igst = models.DecimalField(max_digits=7, decimal_places=4, default=Decimal('0'))

    taxable_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    final_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.medicine.name} [{self.batch_number}] x {self.total_purchased_unit}"

    @property
    def sub_units_per_unit(self):
        return self.medicine.total_quantity_in_a_unit

    @property
    def stock_quantity(self):
        """Sub-units this line puts on the shelf"""
        return self.total_purchased_unit * self.sub_units_per_unit

    @property
    def tax_mode(self):
        return tax_mode_from_entry(
            self.tax_type,
            cgst=self.cgst,
            sgst=self.sgst,
            igst=self.igst,
            tax_percentage=self.tax_percentage,
        )

    def as_payload(self):
        """The line in the camelCase shape the purchase form submits"""
        return {
            'medicine': self.medicine_id,
            'totalPurchasedUnit': self.total_purchased_unit,
            'pricePerUnit': self.price_per_unit,
            'purchasePrice': self.purchase_price,
            'mrp': self.mrp,
            'sellingPrice': self.selling_price,
            'batchNumber': self.batch_number,
            'hsnCode': self.hsn_code,
            'manufacturingDate': self.manufacturing_date,
            'expiryDate': self.expiry_date,
            'discountPercentage': self.discount_percentage,
            'discountPrice': self.discount_price,
            'discount2Percentage': self.discount2_percentage,
            'discount2Price': self.discount2_price,
            'taxType': self.tax_type,
            'taxPercentage': self.tax_percentage,
            'cgst': self.cgst,
            'sgst': self.sgst,
            'igst': self.igst,
        }

    def to_line(self):
        return line_from_payload(self.as_payload(), self.sub_units_per_unit)

    def refresh_pricing(self):
        """
        Derive discount, tax and final amounts from the stored inputs.
        Does NOT save.
        """
        mode = self.tax_mode
        entry = mode.as_entry()
        self.tax_type = mode.tax_type
        self.cgst, self.sgst, self.igst = entry['cgst'], entry['sgst'], entry['igst']
        self.tax_percentage = quantize_rate(mode.rate)

        line = self.to_line()
        self.discount_price = quantize_money(line.discount_price)
        self.discount2_price = quantize_money(line.discount2_price)
        self.taxable_amount = quantize_money(line.taxable_amount)
        self.tax_amount = quantize_money(line.tax_amount)
        self.final_price = quantize_money(final_price(line))
