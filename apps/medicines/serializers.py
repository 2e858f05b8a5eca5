# apps/medicines/serializers.py
from rest_framework import serializers

from apps.core.fields import AmountField
from .models import Medicine, Stock


class MedicineSerializer(serializers.ModelSerializer):
    manufacturer_name = serializers.CharField(source='manufacturer.name', read_only=True, default=None)
    total_stock = serializers.DecimalField(max_digits=14, decimal_places=3, read_only=True)

    class Meta:
        model = Medicine
        fields = [
            'id', 'name', 'manufacturer', 'manufacturer_name', 'hsn_code', 'unit_type',
            'base_unit_type', 'total_quantity_in_a_unit', 'is_active', 'total_stock',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        if len(value.strip()) < 2:
            raise serializers.ValidationError("Medicine name must be at least 2 characters")
        return value.strip()

    def validate_total_quantity_in_a_unit(self, value):
        if value < 1:
            raise serializers.ValidationError("Quantity in a unit must be at least 1")
        return value


class StockSerializer(serializers.ModelSerializer):
    medicine_name = serializers.CharField(source='medicine.name', read_only=True)
    total_quantity_in_a_unit = serializers.IntegerField(source='medicine.total_quantity_in_a_unit', read_only=True)
    selling_price_per_main_unit = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    mrp_per_main_unit = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)
    is_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = Stock
        fields = [
            'id', 'medicine', 'medicine_name', 'batch_number', 'total_quantity', 'unit_type',
            'total_quantity_in_a_unit', 'mrp', 'selling_price', 'mrp_per_main_unit',
            'selling_price_per_main_unit', 'manufacturing_date', 'expiry_date', 'reorder_level',
            'is_low_stock', 'is_expired', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class StockUpdateSerializer(serializers.Serializer):
    """
    Stock edit form. The selling price is entered per main unit.
    """
    medicine_name = serializers.CharField(required=False, max_length=255)
    total_quantity = AmountField(max_digits=14, decimal_places=3, required=False)
    unit_type = serializers.CharField(required=False, allow_blank=True, max_length=20)
    batch_number = serializers.CharField(required=False, max_length=100)
    selling_price_per_main_unit = AmountField(max_digits=14, decimal_places=2, required=False)
    manufacturing_date = serializers.DateTimeField(required=False, allow_null=True)
    expiry_date = serializers.DateTimeField(required=False, allow_null=True)
    reorder_level = AmountField(max_digits=14, decimal_places=3, required=False)

    def validate_total_quantity(self, value):
        if value < 0:
            raise serializers.ValidationError("Quantity cannot be negative")
        return value

    def validate_selling_price_per_main_unit(self, value):
        if value < 0:
            raise serializers.ValidationError("Selling price cannot be negative")
        return value

    def validate_batch_number(self, value):
        if not value.strip():
            raise serializers.ValidationError("Batch number is required")
        return value

    def validate(self, data):
        batch_number = data.get('batch_number')
        if batch_number and self.instance:
            clash = Stock.objects.filter(
                medicine=self.instance.medicine,
                batch_number=batch_number.strip().lower(),
            ).exclude(pk=self.instance.pk)
            if clash.exists():
                raise serializers.ValidationError({"message": "This batch already exists for the medicine"})

        manufacturing = data.get('manufacturing_date', getattr(self.instance, 'manufacturing_date', None))
        expiry = data.get('expiry_date', getattr(self.instance, 'expiry_date', None))
        if manufacturing and expiry and expiry <= manufacturing:
            raise serializers.ValidationError({"message": "Expiry date must be after manufacturing date"})
        return data

    def update(self, instance, validated_data):
        from .services import StockService
        return StockService.update_stock(instance, dict(validated_data))
