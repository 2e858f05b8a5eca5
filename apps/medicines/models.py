# apps/medicines/models.py
"""
Medicine master data and batch-level stock.

Stock quantities and prices are kept per sub-unit (tablet, ml, ...); the
``total_quantity_in_a_unit`` of the medicine converts them to main units
(strip, bottle, ...).
"""
from decimal import Decimal, ROUND_HALF_UP
from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator
from django.utils import timezone

from apps.core.models import TimeStampedModel
from apps.purchases.pricing import sub_unit_price_to_main_unit


class Medicine(TimeStampedModel):
    UNIT_STRIP = 'strip'
    UNIT_BOTTLE = 'bottle'
    UNIT_PACKET = 'packet'
    UNIT_BOX = 'box'
    UNIT_JAR = 'jar'
    UNIT_TUBE = 'tube'
    UNIT_CHOICES = [
        (UNIT_STRIP, 'Strip'),
        (UNIT_BOTTLE, 'Bottle'),
        (UNIT_PACKET, 'Packet'),
        (UNIT_BOX, 'Box'),
        (UNIT_JAR, 'Jar'),
        (UNIT_TUBE, 'Tube'),
    ]

    BASE_TABLET = 'tablet'
    BASE_CAPSULE = 'capsule'
    BASE_SYRUP = 'syrup'
    BASE_POWDER = 'powder'
    BASE_OIL = 'oil'
    BASE_GRAM = 'gram'
    BASE_CHOICES = [
        (BASE_TABLET, 'Tablet'),
        (BASE_CAPSULE, 'Capsule'),
        (BASE_SYRUP, 'Syrup (ml)'),
        (BASE_POWDER, 'Powder'),
        (BASE_OIL, 'Oil (ml)'),
        (BASE_GRAM, 'Gram'),
    ]

    name = models.CharField(max_length=255, db_index=True)
    manufacturer = models.ForeignKey(
        'distributors.Manufacturer',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='medicines'
    )
    hsn_code = models.CharField(max_length=20, blank=True, default='')
    unit_type = models.CharField(max_length=20, choices=UNIT_CHOICES, default=UNIT_STRIP)
    base_unit_type = models.CharField(max_length=20, choices=BASE_CHOICES, default=BASE_TABLET)
    total_quantity_in_a_unit = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        help_text="Number of sub-units (tablets, ml, ...) in one main unit"
    )
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.total_quantity_in_a_unit} {self.base_unit_type}/{self.unit_type})"

    @property
    def total_stock(self):
        """Sub-units on hand across all batches"""
        return self.stocks.aggregate(total=models.Sum('total_quantity'))['total'] or Decimal('0')


class Stock(TimeStampedModel):
    """
    One batch of a medicine on the shelf.
    """
    medicine = models.ForeignKey(Medicine, on_delete=models.CASCADE, related_name='stocks')
    batch_number = models.CharField(max_length=100, db_index=True)
    total_quantity = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Quantity in sub-units"
    )
    unit_type = models.CharField(max_length=20, blank=True, default='')
    mrp = models.DecimalField(max_digits=12, decimal_places=4, default=Decimal('0'))
    selling_price = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        default=Decimal('0'),
        help_text="Price per sub-unit"
    )
    manufacturing_date = models.DateTimeField(null=True, blank=True)
    expiry_date = models.DateTimeField(null=True, blank=True, db_index=True)
    reorder_level = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal(settings.LOW_STOCK_THRESHOLD),
    )

    class Meta:
        ordering = ['expiry_date', 'medicine__name']
        constraints = [
            models.UniqueConstraint(fields=['medicine', 'batch_number'], name='unique_medicine_batch'),
        ]

    def __str__(self):
        return f"{self.medicine.name} [{self.batch_number}] qty={self.total_quantity}"

    @property
    def sub_units_per_unit(self):
        return self.medicine.total_quantity_in_a_unit

    @property
    def selling_price_per_main_unit(self):
        return sub_unit_price_to_main_unit(self.selling_price, self.sub_units_per_unit).quantize(
            Decimal('0.01'), rounding=ROUND_HALF_UP
        )

    @property
    def mrp_per_main_unit(self):
        return sub_unit_price_to_main_unit(self.mrp, self.sub_units_per_unit).quantize(
            Decimal('0.01'), rounding=ROUND_HALF_UP
        )

    @property
    def is_low_stock(self):
        return self.total_quantity <= self.reorder_level

    @property
    def is_out_of_stock(self):
        return self.total_quantity == 0

    @property
    def is_expired(self):
        return bool(self.expiry_date and self.expiry_date <= timezone.now())
