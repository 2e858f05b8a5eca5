from django.contrib import admin

from .models import Distributor, Manufacturer


@admin.register(Distributor)
class DistributorAdmin(admin.ModelAdmin):
    list_display = ('name', 'gst_no', 'primary_contact_no', 'is_active', 'is_deleted')
    list_filter = ('is_active', 'is_deleted')
    search_fields = ('name', 'gst_no')


@admin.register(Manufacturer)
class ManufacturerAdmin(admin.ModelAdmin):
    list_display = ('name', 'agency_name', 'mr_name', 'contact_number', 'is_deleted')
    list_filter = ('is_deleted',)
    search_fields = ('name', 'agency_name', 'mr_name')
