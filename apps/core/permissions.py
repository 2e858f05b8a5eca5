# apps/core/permissions.py
"""
Centralized permission classes for the entire application.
"""
from rest_framework import permissions


def _is_admin(user):
    return user.is_superuser or user.role == 'ADMIN'


class IsAdmin(permissions.BasePermission):
    """
    Permission class for admin-only access.
    Grants access to superusers and users with ADMIN role.
    """
    message = "Only administrators can perform this action."

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and _is_admin(request.user)
        )


class IsPharmacyStaff(permissions.BasePermission):
    """
    Admins and pharmacists: the people allowed to record purchases and
    touch stock.
    """
    message = "Only administrators or pharmacists can perform this action."

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and (_is_admin(request.user) or request.user.role == 'PHARMACIST')
        )
