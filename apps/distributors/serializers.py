# apps/distributors/serializers.py
import re

from rest_framework import serializers

from .models import Distributor, Manufacturer

PHONE_RE = re.compile(r'^\d{10}$')


def _min_length(value, length, message):
    if len((value or '').strip()) < length:
        raise serializers.ValidationError(message)
    return value.strip()


def _phone(value, message, required=True):
    if not value and not required:
        return ''
    if not PHONE_RE.match(value or ''):
        raise serializers.ValidationError(message)
    return value


class DistributorSerializer(serializers.ModelSerializer):
    purchase_count = serializers.IntegerField(read_only=True)
    total_purchase_amount = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = Distributor
        fields = [
            'id', 'name', 'gst_no', 'primary_contact_no', 'secondary_contact_no',
            'address', 'is_active', 'purchase_count', 'total_purchase_amount',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {
            'secondary_contact_no': {'required': False, 'allow_blank': True},
        }

    def validate_name(self, value):
        return _min_length(value, 3, "Name must be at least 3 characters long")

    def validate_gst_no(self, value):
        return _min_length(value, 15, "GST number must be at least 15 characters long").upper()

    def validate_primary_contact_no(self, value):
        return _phone(value, "Primary contact number must be exactly 10 digits")

    def validate_secondary_contact_no(self, value):
        return _phone(value, "Secondary contact number must be exactly 10 digits", required=False)

    def validate_address(self, value):
        return _min_length(value, 10, "Address must be at least 10 characters long")


class ManufacturerSerializer(serializers.ModelSerializer):
    medicine_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Manufacturer
        fields = [
            'id', 'name', 'agency_name', 'mr_name', 'contact_number',
            'secondary_number', 'medicine_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {
            'secondary_number': {'required': False, 'allow_blank': True},
        }

    def validate_name(self, value):
        return _min_length(value, 3, "Name must be at least 3 characters long")

    def validate_agency_name(self, value):
        return _min_length(value, 3, "Agency Name must be at least 3 characters long")

    def validate_mr_name(self, value):
        return _min_length(value, 3, "MR Name must be at least 3 characters long")

    def validate_contact_number(self, value):
        return _phone(value, "Contact number must be exactly 10 digits")

    def validate_secondary_number(self, value):
        return _phone(value, "Secondary number must be exactly 10 digits", required=False)
