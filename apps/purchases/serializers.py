# apps/purchases/serializers.py
"""
Purchase serializers. Keys are camelCase, matching the purchase forms.
"""
from rest_framework import serializers

from apps.core.fields import AmountField
from apps.distributors.models import Distributor
from apps.medicines.models import Medicine
from .models import Purchase, PurchaseItem
from .pricing import (
    EDITABLE_FIELDS, Flat, PurchaseLine, final_price, tax_mode_from_entry, to_decimal,
)


def _positive(value):
    return to_decimal(value) > 0


def _not_negative(value):
    return to_decimal(value) >= 0


def _percentage(value):
    return 0 <= to_decimal(value) <= 100


def _present(value):
    return bool(value and str(value).strip())


# Checked in order; the first failure is reported
LINE_RULES = (
    ('total_purchased_unit', _positive, "Quantity must be greater than 0"),
    ('price_per_unit', _positive, "Purchase price must be greater than 0"),
    ('mrp', _positive, "MRP must be greater than 0"),
    ('selling_price', _not_negative, "Selling price cannot be negative"),
    ('discount_percentage', _percentage, "Discount must be between 0-100"),
    ('discount2_percentage', _percentage, "Discount2 must be between 0-100"),
    ('tax_percentage', _not_negative, "Tax cannot be negative"),
    ('hsn_code', _present, "HSN Code is required"),
    ('batch_number', _present, "Batch number is required"),
    ('manufacturing_date', lambda value: value is not None, "Manufacturing date is required"),
    ('expiry_date', lambda value: value is not None, "Expiry date is required"),
)


def _amount(source=None, decimal_places=2, max_digits=14, **kwargs):
    kwargs.setdefault('required', False)
    kwargs.setdefault('default', 0)
    return AmountField(
        source=source,
        max_digits=max_digits,
        decimal_places=decimal_places,
        empty_as_zero=True,
        **kwargs
    )


ENTRY_TAX_TYPES = (PurchaseItem.TAX_NONE, PurchaseItem.TAX_CENTRAL, PurchaseItem.TAX_STATE)


def _read_only_amount(source):
    return serializers.DecimalField(source=source, max_digits=14, decimal_places=2, read_only=True)


class PurchaseItemSerializer(serializers.ModelSerializer):
    """
    One submitted purchase line: main-unit quantity, sub-unit prices.
    The purchase price is always derived from them.
    """
    medicine = serializers.PrimaryKeyRelatedField(
        queryset=Medicine.objects.all(),
        error_messages={
            'required': "Please select a medicine",
            'null': "Please select a medicine",
            'does_not_exist': "Medicine not found",
        },
    )
    medicineName = serializers.CharField(source='medicine.name', read_only=True)
    totalPurchasedUnit = _amount('total_purchased_unit', decimal_places=3)
    pricePerUnit = _amount('price_per_unit', decimal_places=4)
    purchasePrice = _read_only_amount('purchase_price')
    mrp = _amount(decimal_places=4)
    sellingPrice = _amount('selling_price', decimal_places=4)
    discountPercentage = _amount('discount_percentage', decimal_places=4, max_digits=7)
    discountPrice = _read_only_amount('discount_price')
    discount2Percentage = _amount('discount2_percentage', decimal_places=4, max_digits=7)
    discount2Price = _read_only_amount('discount2_price')
    taxPercentage = _amount('tax_percentage', decimal_places=4, max_digits=7)
    taxType = serializers.CharField(source='tax_type', read_only=True)
    hsnCode = serializers.CharField(source='hsn_code', required=False, allow_blank=True, default='')
    batchNumber = serializers.CharField(source='batch_number', required=False, allow_blank=True, default='')
    manufacturingDate = serializers.DateTimeField(
        source='manufacturing_date', required=False, allow_null=True, default=None
    )
    expiryDate = serializers.DateTimeField(source='expiry_date', required=False, allow_null=True, default=None)
    taxableAmount = _read_only_amount('taxable_amount')
    taxAmount = _read_only_amount('tax_amount')
    finalPrice = _read_only_amount('final_price')

    class Meta:
        model = PurchaseItem
        fields = [
            'id', 'medicine', 'medicineName', 'totalPurchasedUnit', 'pricePerUnit',
            'purchasePrice', 'mrp', 'sellingPrice', 'discountPercentage', 'discountPrice',
            'discount2Percentage', 'discount2Price', 'taxPercentage', 'taxType', 'hsnCode',
            'batchNumber', 'manufacturingDate', 'expiryDate', 'taxableAmount', 'taxAmount',
            'finalPrice'
        ]

    def validate(self, attrs):
        for name, check, message in LINE_RULES:
            if not check(attrs.get(name)):
                raise serializers.ValidationError({"message": message})

        attrs['tax_type'] = PurchaseItem.TAX_FLAT
        return attrs


class PurchaseSerializer(serializers.ModelSerializer):
    """
    Bulk purchase: bill header plus its medicine lines.
    Totals are always recomputed from the lines.
    """
    invoiceNumber = serializers.CharField(
        source='invoice_number', required=False, allow_blank=True, default='', max_length=100
    )
    distributor = serializers.PrimaryKeyRelatedField(
        queryset=Distributor.objects.alive(),
        error_messages={
            'required': "Please select a distributor",
            'null': "Please select a distributor",
            'does_not_exist': "Distributor not found",
        },
    )
    distributorName = serializers.CharField(source='distributor.name', read_only=True)
    purchaseDate = serializers.DateTimeField(source='purchase_date', required=False)
    medicines = PurchaseItemSerializer(
        many=True,
        source='items',
        allow_empty=False,
        error_messages={
            'required': "Please add at least one medicine",
            'empty': "Please add at least one medicine",
        },
    )
    discount3Percent = _amount('discount3_percent', decimal_places=4, max_digits=7)
    discount3Amount = _amount('discount3_amount')
    taxableAmount = _read_only_amount('taxable_amount')
    subtotalAmount = _read_only_amount('subtotal_amount')
    totalAmount = _read_only_amount('total_amount')
    createdBy = serializers.CharField(source='created_by.username', read_only=True, default=None)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Purchase
        fields = [
            'id', 'invoiceNumber', 'distributor', 'distributorName', 'purchaseDate',
            'medicines', 'discount3Percent', 'discount3Amount', 'taxableAmount',
            'subtotalAmount', 'totalAmount', 'createdBy', 'createdAt', 'updatedAt'
        ]

    def validate_discount3Percent(self, value):
        if not 0 <= value <= 100:
            raise serializers.ValidationError("Bill discount must be between 0-100")
        return value

    def validate_discount3Amount(self, value):
        if value < 0:
            raise serializers.ValidationError("Bill discount cannot be negative")
        return value

    def create(self, validated_data):
        from .services import PurchaseService
        return PurchaseService.create_purchase(validated_data)

    def update(self, instance, validated_data):
        from .services import PurchaseService
        return PurchaseService.update_purchase(instance, validated_data)


class PurchaseListSerializer(serializers.ModelSerializer):
    """Purchase without its lines, for list screens"""
    invoiceNumber = serializers.CharField(source='invoice_number', read_only=True)
    distributorName = serializers.CharField(source='distributor.name', read_only=True)
    purchaseDate = serializers.DateTimeField(source='purchase_date', read_only=True)
    itemCount = serializers.IntegerField(source='item_count', read_only=True)
    discount3Amount = _read_only_amount('discount3_amount')
    taxableAmount = _read_only_amount('taxable_amount')
    totalAmount = _read_only_amount('total_amount')

    class Meta:
        model = Purchase
        fields = [
            'id', 'invoiceNumber', 'distributor', 'distributorName', 'purchaseDate',
            'itemCount', 'discount3Amount', 'taxableAmount', 'totalAmount'
        ]


class PurchaseEntrySerializer(serializers.ModelSerializer):
    """
    Single purchase line edit form: quantity x unit price, one discount and
    a tax type with its IGST or CGST/SGST rates.
    """
    medicine = serializers.PrimaryKeyRelatedField(
        queryset=Medicine.objects.all(),
        error_messages={
            'required': "Medicine name is required",
            'null': "Medicine name is required",
            'does_not_exist': "Medicine not found",
        },
    )
    medicineName = serializers.CharField(source='medicine.name', read_only=True)
    totalPurchasedUnit = AmountField(source='total_purchased_unit', max_digits=14, decimal_places=3)
    pricePerUnit = AmountField(source='price_per_unit', max_digits=14, decimal_places=4)
    totalPrice = _read_only_amount('purchase_price')
    mrp = AmountField(max_digits=14, decimal_places=4)
    batchNumber = serializers.CharField(
        source='batch_number', error_messages={'blank': "Batch number is required"}
    )
    taxType = serializers.ChoiceField(
        source='tax_type',
        choices=ENTRY_TAX_TYPES,
        error_messages={'invalid_choice': "Tax type is required", 'required': "Tax type is required"},
    )
    cgst = _amount(decimal_places=4, max_digits=7, default=None)
    sgst = _amount(decimal_places=4, max_digits=7, default=None)
    igst = _amount(decimal_places=4, max_digits=7, default=None)
    purchaseDate = serializers.DateTimeField(source='purchase.purchase_date', required=False)
    expiryDate = serializers.DateTimeField(source='expiry_date')
    manufacturingDate = serializers.DateTimeField(source='manufacturing_date')
    sellingPrice = AmountField(source='selling_price', max_digits=14, decimal_places=4)
    discount = AmountField(source='discount_percentage', max_digits=7, decimal_places=4)
    hsnCode = serializers.CharField(source='hsn_code', error_messages={'blank': "HSN Code is required"})
    taxPercentage = serializers.DecimalField(source='tax_percentage', max_digits=7, decimal_places=4, read_only=True)
    taxableAmount = _read_only_amount('taxable_amount')
    taxAmount = _read_only_amount('tax_amount')
    grandTotal = _read_only_amount('final_price')

    class Meta:
        model = PurchaseItem
        fields = [
            'id', 'purchase', 'medicine', 'medicineName', 'totalPurchasedUnit', 'pricePerUnit',
            'totalPrice', 'mrp', 'batchNumber', 'taxType', 'cgst', 'sgst', 'igst',
            'purchaseDate', 'expiryDate', 'manufacturingDate', 'sellingPrice', 'discount',
            'hsnCode', 'taxPercentage', 'taxableAmount', 'taxAmount', 'grandTotal'
        ]
        read_only_fields = ['purchase']

    def validate_totalPurchasedUnit(self, value):
        if value < 1:
            raise serializers.ValidationError("Total purchased unit must be at least 1")
        return value

    def validate_pricePerUnit(self, value):
        if value < 1:
            raise serializers.ValidationError("Price per unit must be at least 1")
        return value

    def validate_mrp(self, value):
        if value < 1:
            raise serializers.ValidationError("MRP must be at least 1")
        return value

    def validate_sellingPrice(self, value):
        if value < 1:
            raise serializers.ValidationError("Selling price must be at least 1")
        return value

    def validate_discount(self, value):
        if value < 0:
            raise serializers.ValidationError("Discount cannot be negative")
        if value > 100:
            raise serializers.ValidationError("Discount cannot exceed 100%")
        return value

    def _rate(self, attrs, name):
        if name in attrs and attrs[name] is not None:
            return attrs[name]
        return getattr(self.instance, name, None)

    def validate(self, attrs):
        tax_type = attrs.get('tax_type', getattr(self.instance, 'tax_type', None))
        if tax_type not in ENTRY_TAX_TYPES:
            raise serializers.ValidationError({"message": "Tax type is required"})

        rates = {name: self._rate(attrs, name) for name in ('cgst', 'sgst', 'igst')}
        for name, value in rates.items():
            if value is not None and not _percentage(value):
                raise serializers.ValidationError({"message": f"{name.upper()} must be between 0-100"})

        if tax_type == PurchaseItem.TAX_CENTRAL and not _positive(rates['igst']):
            raise serializers.ValidationError({"message": "IGST is required and must be greater than 0."})
        if tax_type == PurchaseItem.TAX_STATE:
            if not _positive(rates['cgst']):
                raise serializers.ValidationError({"message": "CGST is required and must be greater than 0."})
            if not _positive(rates['sgst']):
                raise serializers.ValidationError({"message": "SGST is required and must be greater than 0."})

        for name in ('cgst', 'sgst', 'igst', 'tax_type'):
            attrs.pop(name, None)
        attrs['tax_mode'] = tax_mode_from_entry(tax_type, **rates)
        return attrs

    def update(self, instance, validated_data):
        from .services import PurchaseService

        purchase_data = validated_data.pop('purchase', {})
        if 'purchase_date' in purchase_data:
            validated_data['purchase_date'] = purchase_data['purchase_date']
        return PurchaseService.update_entry(instance, validated_data)


# Live calculator (edit screens)

ROW_FIELDS = {
    'medicine': 'medicine',
    'hsnCode': 'hsn_code',
    'subUnitsPerUnit': 'sub_units_per_unit',
    'purchasedUnits': 'purchased_units',
    'totalPurchasedUnit': 'total_purchased_unit',
    'pricePerMainUnit': 'price_per_main_unit',
    'pricePerUnit': 'price_per_sub_unit',
    'purchasePrice': 'purchase_price',
    'mrp': 'mrp',
    'sellingPrice': 'selling_price',
    'discountPercentage': 'discount_percentage',
    'discountPrice': 'discount_price',
    'discount2Percentage': 'discount2_percentage',
    'discount2Price': 'discount2_price',
    'taxPercentage': 'tax_percentage',
    'batchNumber': 'batch_number',
    'manufacturingDate': 'manufacturing_date',
    'expiryDate': 'expiry_date',
}

# Row keys that are properties of the line rather than dataclass fields
DERIVED_ROW_FIELDS = ('discount_price', 'discount2_price', 'tax_percentage')

# Fields a single edit can change: the medicine picker plus the recompute fields
EDITABLE_ROW_FIELDS = ['medicine'] + [
    camel for camel, name in ROW_FIELDS.items() if name in EDITABLE_FIELDS
]


def _row_amount(**kwargs):
    kwargs.setdefault('required', False)
    kwargs.setdefault('default', 0)
    return AmountField(max_digits=24, decimal_places=8, empty_as_zero=True, **kwargs)


class PurchaseRowSerializer(serializers.Serializer):
    """
    A purchase form row as the client holds it: main-unit quantities and
    prices. Blank numeric inputs count as 0.
    """
    medicine = serializers.IntegerField(required=False, allow_null=True, default=None)
    hsnCode = serializers.CharField(required=False, allow_blank=True, default='')
    subUnitsPerUnit = AmountField(
        max_digits=24, decimal_places=8, required=False, allow_null=True, default=None
    )
    purchasedUnits = _row_amount()
    totalPurchasedUnit = _row_amount()
    pricePerMainUnit = _row_amount()
    pricePerUnit = _row_amount()
    purchasePrice = _row_amount()
    mrp = _row_amount()
    sellingPrice = _row_amount()
    discountPercentage = _row_amount()
    discount2Percentage = _row_amount()
    taxPercentage = _row_amount()
    batchNumber = serializers.CharField(required=False, allow_blank=True, default='')
    manufacturingDate = serializers.DateTimeField(required=False, allow_null=True, default=None)
    expiryDate = serializers.DateTimeField(required=False, allow_null=True, default=None)


class CalculateLineSerializer(serializers.Serializer):
    line = PurchaseRowSerializer(required=False, default=dict)
    field = serializers.ChoiceField(
        choices=EDITABLE_ROW_FIELDS,
        error_messages={'invalid_choice': "\"{input}\" is not an editable purchase line field"},
    )
    value = serializers.JSONField(required=False, allow_null=True, default=None)


class CalculateTotalsSerializer(serializers.Serializer):
    medicines = PurchaseRowSerializer(many=True, required=False, default=list)
    discount3Percent = _row_amount()
    discount3Amount = _row_amount()


class PurchasePreviewSerializer(CalculateTotalsSerializer):
    invoiceNumber = serializers.CharField(required=False, allow_blank=True, default='')
    distributor = serializers.IntegerField(required=False, allow_null=True, default=None)
    purchaseDate = serializers.DateTimeField(required=False, allow_null=True, default=None)


class PurchaseDashboardQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    distributor = serializers.IntegerField(required=False)

    def validate(self, attrs):
        start, end = attrs.get('start_date'), attrs.get('end_date')
        if start and end and end < start:
            raise serializers.ValidationError({"message": "End date cannot be before start date"})
        return attrs


def row_to_line(row):
    """Build a pricing line from a validated form row"""
    values = {
        name: row[camel] for camel, name in ROW_FIELDS.items()
        if camel in row and name not in DERIVED_ROW_FIELDS
    }
    if values.get('sub_units_per_unit') is None:
        values['sub_units_per_unit'] = 1
    values['sub_units_per_unit'] = to_decimal(values['sub_units_per_unit'])
    tax_mode = Flat(percentage=to_decimal(row.get('taxPercentage')))
    return PurchaseLine(tax_mode=tax_mode, **values)


def line_to_row(line):
    """Form row for a pricing line, with the derived amounts"""
    row = {camel: getattr(line, name) for camel, name in ROW_FIELDS.items()}
    row.update({
        'afterDiscount1': line.after_discount1,
        'taxableAmount': line.taxable_amount,
        'taxAmount': line.tax_amount,
        'finalPrice': final_price(line),
    })
    return row
