from django.contrib import admin

from .models import Medicine, Stock


@admin.register(Medicine)
class MedicineAdmin(admin.ModelAdmin):
    list_display = ('name', 'manufacturer', 'unit_type', 'base_unit_type', 'total_quantity_in_a_unit', 'is_active')
    list_filter = ('unit_type', 'base_unit_type', 'is_active')
    search_fields = ('name', 'hsn_code')


@admin.register(Stock)
class StockAdmin(admin.ModelAdmin):
    list_display = ('medicine', 'batch_number', 'total_quantity', 'selling_price', 'expiry_date')
    list_filter = ('medicine',)
    search_fields = ('medicine__name', 'batch_number')
