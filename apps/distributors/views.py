# apps/distributors/views.py
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django.db.models import Count, Sum, Q

from apps.core.mixins import (
    StandardFilterMixin, TimestampOrderingMixin, StaffWritePermissionMixin, SoftDeleteMixin
)
from apps.core.pagination import StaticPagination
from .models import Distributor, Manufacturer
from .serializers import DistributorSerializer, ManufacturerSerializer


class DistributorViewSet(StandardFilterMixin, TimestampOrderingMixin, StaffWritePermissionMixin,
                         SoftDeleteMixin, viewsets.ModelViewSet):
    """
    ViewSet for managing distributors.

    Endpoints:
        - GET /api/distributors/ - List distributors with purchase totals
        - POST /api/distributors/ - Create distributor
        - GET/PUT/PATCH /api/distributors/{id}/
        - DELETE /api/distributors/{id}/ - Soft delete
        - GET /api/distributors/{id}/purchases/ - Purchases from this distributor
    """
    queryset = Distributor.objects.alive()
    serializer_class = DistributorSerializer
    pagination_class = StaticPagination

    filterset_fields = ['is_active']
    search_fields = ['name', 'gst_no', 'primary_contact_no']
    ordering_fields = ['name', 'created_at']
    ordering = ['name']

    def get_queryset(self):
        """Annotate purchase count and amount per distributor"""
        return super().get_queryset().annotate(
            purchase_count=Count('purchases', distinct=True),
            total_purchase_amount=Sum('purchases__total_amount'),
        )

    @action(detail=True, methods=['get'])
    def purchases(self, request, pk=None):
        """List the purchases made from a distributor"""
        from apps.purchases.serializers import PurchaseListSerializer

        distributor = self.get_object()
        purchases = distributor.purchases.select_related('distributor').order_by('-purchase_date')

        page = self.paginate_queryset(purchases)
        if page is not None:
            serializer = PurchaseListSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        serializer = PurchaseListSerializer(purchases, many=True)
        return Response(serializer.data)


class ManufacturerViewSet(StandardFilterMixin, TimestampOrderingMixin, StaffWritePermissionMixin,
                          SoftDeleteMixin, viewsets.ModelViewSet):
    """
    ViewSet for managing manufacturers.
    """
    queryset = Manufacturer.objects.alive()
    serializer_class = ManufacturerSerializer
    pagination_class = StaticPagination

    search_fields = ['name', 'agency_name', 'mr_name']
    ordering_fields = ['name', 'created_at']
    ordering = ['name']

    def get_queryset(self):
        return super().get_queryset().annotate(
            medicine_count=Count('medicines', filter=Q(medicines__is_active=True)),
        )
