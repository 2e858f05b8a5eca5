# apps/purchases/views.py
import logging

from django.db.models import Count, Sum
from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.core.mixins import StandardFilterMixin, TimestampOrderingMixin, SetCreatedByMixin
from apps.core.pagination import StaticPagination
from apps.core.permissions import IsPharmacyStaff
from apps.medicines.models import Medicine
from .models import Purchase, PurchaseItem
from .pricing import (
    BillDiscount, build_purchase_payload, recompute, select_medicine,
)
from .serializers import (
    PurchaseSerializer, PurchaseListSerializer, PurchaseEntrySerializer,
    CalculateLineSerializer, CalculateTotalsSerializer, PurchasePreviewSerializer,
    PurchaseDashboardQuerySerializer, ROW_FIELDS, row_to_line, line_to_row,
)
from .services import PurchaseService

logger = logging.getLogger(__name__)

CALCULATOR_ACTIONS = ('calculate_line', 'calculate_totals', 'preview')


def _with_medicine_factor(row):
    """Fill the units-per-pack factor from the medicine master when the row lacks it"""
    if row.get('subUnitsPerUnit') is None and row.get('medicine'):
        factor = Medicine.objects.filter(pk=row['medicine']).values_list(
            'total_quantity_in_a_unit', flat=True
        ).first()
        if factor is not None:
            row = {**row, 'subUnitsPerUnit': factor}
    return row


def _bill_discount(data):
    discount = BillDiscount()
    if data['discount3Percent'] > 0:
        return discount.with_percent(data['discount3Percent'])
    return discount.with_amount(data['discount3Amount'])


class PurchaseViewSet(StandardFilterMixin, TimestampOrderingMixin, SetCreatedByMixin,
                      viewsets.ModelViewSet):
    """
    ViewSet for medicine purchases.

    Permissions:
        - Purchases: Admins and pharmacists
        - Calculators: Any authenticated user

    Endpoints:
        - GET /api/purchases/ - List purchases
        - POST /api/purchases/ - Record a purchase (stock is received)
        - GET /api/purchases/{id}/ - Purchase with its lines
        - PUT/PATCH /api/purchases/{id}/ - Edit a purchase (stock is re-booked)
        - DELETE /api/purchases/{id}/ - Delete a purchase (stock is released)
        - POST /api/purchases/calculate-line/ - Recompute a form row after one edit
        - POST /api/purchases/calculate-totals/ - Bill totals for form rows
        - POST /api/purchases/preview/ - The payload the form would submit
        - GET /api/purchases/dashboard/ - Purchase totals for a date range
    """
    queryset = Purchase.objects.select_related('distributor', 'created_by')
    pagination_class = StaticPagination

    filterset_fields = ['distributor']
    search_fields = ['invoice_number', 'distributor__name', 'items__medicine__name']
    ordering_fields = ['purchase_date', 'total_amount', 'created_at']
    ordering = ['-purchase_date']

    def get_permissions(self):
        if self.action in CALCULATOR_ACTIONS:
            return [IsAuthenticated()]
        return [IsPharmacyStaff()]

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action == 'retrieve':
            queryset = queryset.prefetch_related('items__medicine')
        return queryset.distinct() if self.request.query_params.get('search') else queryset

    def get_serializer_class(self):
        if self.action == 'list':
            return PurchaseListSerializer
        return PurchaseSerializer

    def perform_destroy(self, instance):
        PurchaseService.delete_purchase(instance)

    @action(detail=False, methods=['post'], url_path='calculate-line')
    def calculate_line(self, request):
        """
        Recompute a purchase form row after one field changed.

        Request body:
            {
                "line": {"subUnitsPerUnit": 10, "pricePerMainUnit": 50, ...},
                "field": "purchasedUnits",
                "value": 3
            }
        """
        serializer = CalculateLineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        line = row_to_line(_with_medicine_factor(data['line']))
        if data['field'] == 'medicine':
            medicine = None
            if data['value'] is not None:
                medicine = Medicine.objects.filter(pk=data['value']).first()
                if medicine is None:
                    return Response({'message': 'Medicine not found'}, status=status.HTTP_400_BAD_REQUEST)
            line = select_medicine(
                line,
                medicine.pk if medicine else None,
                hsn_code=medicine.hsn_code if medicine else '',
                sub_units_per_unit=medicine.total_quantity_in_a_unit if medicine else None,
            )
        else:
            line = recompute(line, ROW_FIELDS[data['field']], data['value'])

        return Response(line_to_row(line))

    @action(detail=False, methods=['post'], url_path='calculate-totals')
    def calculate_totals(self, request):
        """Bill totals for the rows currently on the purchase form"""
        serializer = CalculateTotalsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        lines = [row_to_line(_with_medicine_factor(row)) for row in data['medicines']]
        totals, discount3_amount = _bill_discount(data).apply(lines)

        return Response({
            'taxableAmount': totals.taxable_amount,
            'subtotalAmount': totals.subtotal_amount,
            'discount3Amount': discount3_amount,
            'totalAmount': totals.total_amount,
        })

    @action(detail=False, methods=['post'])
    def preview(self, request):
        """
        Build the purchase payload from form rows without saving anything.
        Rows without a medicine are left out.
        """
        serializer = PurchasePreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        lines = [row_to_line(_with_medicine_factor(row)) for row in data['medicines']]
        payload = build_purchase_payload(
            lines,
            invoice_number=data['invoiceNumber'],
            distributor=data['distributor'],
            purchase_date=data['purchaseDate'],
            bill_discount=_bill_discount(data),
        )
        return Response(payload)

    @action(detail=False, methods=['get'])
    def dashboard(self, request):
        """
        Purchase totals.

        Query params:
            - start_date, end_date: YYYY-MM-DD, inclusive
            - distributor: Distributor ID
        """
        query = PurchaseDashboardQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        purchases = Purchase.objects.all()
        if 'start_date' in params:
            purchases = purchases.filter(purchase_date__date__gte=params['start_date'])
        if 'end_date' in params:
            purchases = purchases.filter(purchase_date__date__lte=params['end_date'])
        if 'distributor' in params:
            purchases = purchases.filter(distributor_id=params['distributor'])

        totals = purchases.aggregate(
            purchase_count=Count('id'),
            amount=Sum('total_amount'),
            taxable=Sum('taxable_amount'),
            discount3=Sum('discount3_amount'),
        )
        top_distributors = (
            purchases.values('distributor_id', 'distributor__name')
            .annotate(purchase_count=Count('id'), amount=Sum('total_amount'))
            .order_by('-amount')[:5]
        )

        return Response({
            'purchase_count': totals['purchase_count'],
            'total_amount': totals['amount'] or 0,
            'taxable_amount': totals['taxable'] or 0,
            'discount3_amount': totals['discount3'] or 0,
            'tax_amount': PurchaseItem.objects.filter(purchase__in=purchases).aggregate(
                total=Sum('tax_amount')
            )['total'] or 0,
            'top_distributors': [
                {
                    'distributor': row['distributor_id'],
                    'name': row['distributor__name'],
                    'purchase_count': row['purchase_count'],
                    'total_amount': row['amount'],
                }
                for row in top_distributors
            ],
        })


class PurchaseEntryViewSet(mixins.RetrieveModelMixin, mixins.UpdateModelMixin, viewsets.GenericViewSet):
    """
    Single purchase line, edited with the tax-type form.

    Endpoints:
        - GET /api/purchase-entries/{id}/
        - PUT/PATCH /api/purchase-entries/{id}/
    """
    queryset = PurchaseItem.objects.select_related('medicine', 'purchase')
    serializer_class = PurchaseEntrySerializer
    permission_classes = [IsPharmacyStaff]
