from django.contrib import admin

from .models import Purchase, PurchaseItem


class PurchaseItemInline(admin.TabularInline):
    model = PurchaseItem
    extra = 0
    fields = ('medicine', 'batch_number', 'total_purchased_unit', 'purchase_price',
              'discount_percentage', 'discount2_percentage', 'tax_type', 'tax_percentage', 'final_price')
    readonly_fields = ('final_price',)


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    list_display = ('invoice_number', 'distributor', 'purchase_date', 'total_amount')
    list_filter = ('distributor',)
    search_fields = ('invoice_number', 'distributor__name')
    readonly_fields = ('taxable_amount', 'subtotal_amount', 'total_amount')
    inlines = [PurchaseItemInline]
