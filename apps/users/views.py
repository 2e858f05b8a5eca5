# apps/users/views.py
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.core.pagination import StaticPagination
from apps.core.permissions import IsAdmin
from apps.core.mixins import StandardFilterMixin
from .models import CustomUser
from .serializers import UserSerializer, StaffCreateSerializer


class StaffViewSet(StandardFilterMixin, viewsets.ModelViewSet):
    """
    ViewSet for managing clinic staff accounts.

    Permissions:
        - Only admins can manage staff

    Endpoints:
        - GET /api/staff/ - List staff
        - POST /api/staff/ - Create a doctor, pharmacist or receptionist
        - GET /api/staff/{id}/ - Retrieve staff member
        - PUT/PATCH /api/staff/{id}/ - Update staff member
        - DELETE /api/staff/{id}/ - Delete staff member
        - POST /api/staff/{id}/deactivate/ - Deactivate account
        - POST /api/staff/{id}/activate/ - Activate account
    """
    queryset = CustomUser.objects.exclude(role=CustomUser.ROLE_ADMIN).filter(is_superuser=False)
    permission_classes = [IsAdmin]
    pagination_class = StaticPagination
    filterset_fields = ['role', 'is_active']
    search_fields = ['username', 'email', 'first_name', 'last_name', 'phone_number']
    ordering_fields = ['username', 'email', 'date_joined']
    ordering = ['username']

    def get_serializer_class(self):
        if self.action == 'create':
            return StaffCreateSerializer
        return UserSerializer

    @action(detail=True, methods=['post'])
    def deactivate(self, request, pk=None):
        """Deactivate a staff account"""
        user = self.get_object()
        user.is_active = False
        user.save(update_fields=['is_active'])
        return Response({"message": "Account deactivated"})

    @action(detail=True, methods=['post'])
    def activate(self, request, pk=None):
        """Activate a staff account"""
        user = self.get_object()
        user.is_active = True
        user.save(update_fields=['is_active'])
        return Response({"message": "Account activated"})
