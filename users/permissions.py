"""
Users — DRF Permission Classes

Role checks shared by every app's ViewSets.

@file users/permissions.py
"""

from rest_framework.permissions import SAFE_METHODS, BasePermission


class HasRole(BasePermission):
    """
    Checks that the user holds one of the roles listed in
    ``view.required_roles``. Superusers always pass.

    Usage::

        class MyViewSet(viewsets.ModelViewSet):
            permission_classes = [IsAuthenticated, HasRole]
            required_roles = ['MEDICAL_STAFF']
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        required = getattr(view, 'required_roles', [])
        if not required:
            return True
        return user.has_role(*required)


class HasRoleOrReadOnly(HasRole):
    """Any authenticated user reads; writes require ``view.required_roles``."""

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return super().has_permission(request, view)
