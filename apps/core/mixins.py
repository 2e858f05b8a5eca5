# apps/core/mixins.py
"""
Reusable mixins for ViewSets.
"""
from rest_framework import filters
from rest_framework.permissions import IsAuthenticated
from django_filters.rest_framework import DjangoFilterBackend

from apps.core.permissions import IsPharmacyStaff


class StandardFilterMixin:
    """
    Provides standard filtering, searching, and ordering configuration.
    """
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]


class TimestampOrderingMixin:
    """
    Provides default ordering by creation date (newest first).
    """
    ordering_fields = ['created_at', 'updated_at']
    ordering = ['-created_at']


class SetCreatedByMixin:
    """
    Automatically sets the created_by field to the current user.
    """
    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)


class StaffWritePermissionMixin:
    """
    - List/Retrieve: Any authenticated user
    - Write operations: Admins and pharmacists
    """
    def get_permissions(self):
        if self.action in ['list', 'retrieve']:
            return [IsAuthenticated()]
        return [IsPharmacyStaff()]


class SoftDeleteMixin:
    """
    Marks instances as deleted instead of removing them.
    """
    def perform_destroy(self, instance):
        if hasattr(instance, 'soft_delete'):
            instance.soft_delete(self.request.user)
        else:
            super().perform_destroy(instance)
