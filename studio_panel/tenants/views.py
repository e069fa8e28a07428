"""
API views для tenants.

MyOrganizationsView - организации, в которых состоит пользователь.
OrganizationDetailView - информация об организации из URL (только участникам).
"""
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from .mixins import OrganizationScopedMixin
from .models import Tenant
from .permissions import IsTenantMember
from .serializers import TenantSerializer


class MyOrganizationsView(APIView):
    """
    GET /api/organizations/

    Активные членства текущего пользователя.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        tenants = Tenant.objects.filter(
            memberships__user=request.user,
            memberships__is_active=True,
        ).distinct()
        serializer = TenantSerializer(tenants, many=True, context={'user': request.user})
        return Response({'organizations': serializer.data})


class OrganizationDetailView(OrganizationScopedMixin, APIView):
    """
    GET /api/organizations/<org_id>/
    """
    permission_classes = [IsAuthenticated, IsTenantMember]

    def get(self, request, org_id):
        serializer = TenantSerializer(self.tenant, context={'user': request.user})
        return Response(serializer.data)
