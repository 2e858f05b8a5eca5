# apps/medicines/views.py
from rest_framework import viewsets, mixins
from rest_framework.decorators import action
from rest_framework.response import Response
from django.utils import timezone

from apps.core.exceptions import BusinessRuleViolationError
from apps.core.mixins import StandardFilterMixin, TimestampOrderingMixin, StaffWritePermissionMixin
from apps.core.pagination import StaticPagination
from apps.core.permissions import IsPharmacyStaff
from .models import Medicine, Stock
from .serializers import MedicineSerializer, StockSerializer, StockUpdateSerializer
from .services import StockService


class MedicineViewSet(StandardFilterMixin, TimestampOrderingMixin, StaffWritePermissionMixin,
                      viewsets.ModelViewSet):
    """
    ViewSet for the medicine master.

    Endpoints:
        - GET /api/medicines/ - List medicines
        - POST /api/medicines/ - Create medicine
        - GET/PUT/PATCH/DELETE /api/medicines/{id}/
    """
    queryset = Medicine.objects.select_related('manufacturer')
    serializer_class = MedicineSerializer
    pagination_class = StaticPagination

    filterset_fields = ['manufacturer', 'unit_type', 'base_unit_type', 'is_active']
    search_fields = ['name', 'hsn_code', 'manufacturer__name']
    ordering_fields = ['name', 'created_at']
    ordering = ['name']

    def perform_update(self, serializer):
        instance = serializer.instance
        new_factor = serializer.validated_data.get('total_quantity_in_a_unit', instance.total_quantity_in_a_unit)
        if new_factor != instance.total_quantity_in_a_unit and instance.purchase_items.exists():
            # Stored quantities and sub-unit prices were converted with the old factor
            raise BusinessRuleViolationError(detail={
                'message': "Quantity in a unit cannot change once the medicine has purchases"
            })
        serializer.save()

    def perform_destroy(self, instance):
        # Purchases keep pointing at the medicine, so it is only deactivated
        instance.is_active = False
        instance.save(update_fields=['is_active', 'updated_at'])


class StockViewSet(StandardFilterMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin,
                   mixins.UpdateModelMixin, viewsets.GenericViewSet):
    """
    Batch stock. Quantities are received through purchases; the edit form
    adjusts a batch directly.

    Endpoints:
        - GET /api/stock/ - List batches
        - GET /api/stock/{id}/ - Retrieve batch
        - PUT/PATCH /api/stock/{id}/ - Stock edit form
        - GET /api/stock/low-stock/ - Batches at or below reorder level
        - GET /api/stock/expired/ - Expired batches still holding quantity
    """
    queryset = Stock.objects.select_related('medicine')
    pagination_class = StaticPagination
    permission_classes = [IsPharmacyStaff]

    filterset_fields = ['medicine', 'batch_number']
    search_fields = ['medicine__name', 'batch_number']
    ordering_fields = ['expiry_date', 'total_quantity', 'created_at']
    ordering = ['expiry_date']

    def get_serializer_class(self):
        if self.action in ['update', 'partial_update']:
            return StockUpdateSerializer
        return StockSerializer

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        serializer = StockUpdateSerializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        stock = serializer.save()
        return Response(StockSerializer(stock).data)

    @action(detail=False, methods=['get'], url_path='low-stock')
    def low_stock(self, request):
        """
        Batches with low stock.

        Query params:
            - threshold: Optional sub-unit threshold instead of each batch's reorder level
        """
        threshold = request.query_params.get('threshold')
        if threshold:
            try:
                threshold = int(threshold)
            except ValueError:
                return Response({'message': 'Threshold must be a whole number'}, status=400)
        queryset = StockService.get_low_stock(threshold or None)

        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = StockSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        serializer = StockSerializer(queryset, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'])
    def expired(self, request):
        """Expired batches that still hold quantity"""
        queryset = self.get_queryset().filter(expiry_date__lte=timezone.now(), total_quantity__gt=0)

        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = StockSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        serializer = StockSerializer(queryset, many=True)
        return Response(serializer.data)
