"""
Tenant-aware permissions для DRF.

Рассчитаны на OrganizationScopedMixin, который кладёт в request
`tenant_membership` до проверки прав.
"""
from rest_framework.permissions import BasePermission

from .models import TenantMembership


class IsTenantMember(BasePermission):
    """Пользователь должен быть активным участником организации из URL."""

    message = 'You are not a member of this organization'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return getattr(request, 'tenant_membership', None) is not None


class IsTenantAdmin(BasePermission):
    """Владелец или администратор организации."""

    message = 'Only organization owners and admins can perform this action'

    ADMIN_ROLES = (TenantMembership.TenantRole.OWNER, TenantMembership.TenantRole.ADMIN)

    def has_permission(self, request, view):
        membership = getattr(request, 'tenant_membership', None)
        if membership is None:
            return False
        return membership.role in self.ADMIN_ROLES
