"""Custom DRF permissions for the agency API."""
from rest_framework.permissions import BasePermission


class IsManagerOrAdmin(BasePermission):
    """Allow access to superusers and users with the ADMIN or MANAGER role."""

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_manager_role)


class IsOwnerOrManager(BasePermission):
    """Object-level check: agents only reach records they own."""

    owner_field = "agent_id"

    def has_object_permission(self, request, view, obj):
        if request.user.is_manager_role:
            return True
        return getattr(obj, self.owner_field, None) == request.user.pk
