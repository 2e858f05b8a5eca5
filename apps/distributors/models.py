# apps/distributors/models.py
from django.db import models
from apps.core.models import TimeStampedModel, SoftDeleteModel


class Distributor(TimeStampedModel, SoftDeleteModel):
    """
    Wholesaler the clinic buys medicines from.
    """
    name = models.CharField(max_length=255, db_index=True)
    gst_no = models.CharField(max_length=20, verbose_name="GST number")
    primary_contact_no = models.CharField(max_length=10)
    secondary_contact_no = models.CharField(max_length=10, blank=True, default='')
    address = models.TextField()
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['name', 'is_active'], name='distributor_name_active_idx'),
        ]

    def __str__(self):
        return self.name


class Manufacturer(TimeStampedModel, SoftDeleteModel):
    """
    Medicine manufacturer and the medical representative who covers it.
    """
    name = models.CharField(max_length=255, db_index=True)
    agency_name = models.CharField(max_length=255)
    mr_name = models.CharField(max_length=255, verbose_name="MR name")
    contact_number = models.CharField(max_length=10)
    secondary_number = models.CharField(max_length=10, blank=True, default='')

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.agency_name})"
