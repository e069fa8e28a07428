"""
Tenant mixins - переиспользуемые компоненты для tenant-scoped моделей и API.

Организация берётся из URL (`/api/organizations/<org_id>/...`), членство
пользователя проверяется до выполнения любого обработчика.
"""
from django.db import models
from rest_framework.exceptions import NotFound

from .models import Tenant, TenantMembership


# ═══════════════════════════════════════════════════════════════
# MODEL MIXINS
# ═══════════════════════════════════════════════════════════════

class TenantQuerySet(models.QuerySet):
    """QuerySet с явной фильтрацией по организации."""

    def for_tenant(self, tenant):
        return self.filter(tenant=tenant)


class TenantManager(models.Manager):
    """Manager, который возвращает TenantQuerySet."""

    def get_queryset(self):
        return TenantQuerySet(self.model, using=self._db)

    def for_tenant(self, tenant):
        return self.get_queryset().for_tenant(tenant)


class TenantModelMixin(models.Model):
    """
    Абстрактный mixin - добавляет FK tenant к модели.

    Использование:
        class Venue(TenantModelMixin, models.Model):
            name = models.CharField(...)
    """
    tenant = models.ForeignKey(
        'tenants.Tenant',
        on_delete=models.CASCADE,
        related_name='%(app_label)s_%(class)ss',
        verbose_name='Организация',
        db_index=True,
    )

    objects = TenantManager()

    class Meta:
        abstract = True


# ═══════════════════════════════════════════════════════════════
# VIEW MIXINS
# ═══════════════════════════════════════════════════════════════

class OrganizationScopedMixin:
    """
    Mixin для APIView / ViewSet - определяет организацию по `org_id` из URL.

    Ставит:
      - self.tenant / request.tenant                 = Tenant
      - request.tenant_membership                    = TenantMembership (или None)

    Неизвестная организация → 404. Отсутствие членства отсекается
    permission-классом IsTenantMember (403).
    """

    organization_url_kwarg = 'org_id'

    def initial(self, request, *args, **kwargs):
        self.tenant = None
        request.tenant = None
        request.tenant_membership = None
        if request.user and request.user.is_authenticated:
            self.tenant = self._resolve_tenant(request, kwargs.get(self.organization_url_kwarg))
        super().initial(request, *args, **kwargs)

    def _resolve_tenant(self, request, org_id):
        tenant = Tenant.objects.filter(pk=org_id).first()
        if tenant is None:
            raise NotFound('Organization not found')
        request.tenant = tenant
        request.tenant_membership = TenantMembership.objects.filter(
            tenant=tenant, user=request.user, is_active=True
        ).first()
        return tenant


class TenantViewSetMixin(OrganizationScopedMixin):
    """
    Mixin для DRF ViewSets - фильтрует queryset по организации из URL
    и проставляет tenant при создании объектов.

    Использование:
        class VenueViewSet(TenantViewSetMixin, viewsets.ModelViewSet):
            queryset = Venue.objects.all()
            serializer_class = VenueSerializer
    """

    tenant_field = 'tenant'

    def get_queryset(self):
        qs = super().get_queryset()
        if self.tenant is None:
            return qs.none()
        return qs.filter(**{self.tenant_field: self.tenant})

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['tenant'] = getattr(self, 'tenant', None)
        return context

    def perform_create(self, serializer):
        serializer.save(tenant=self.tenant)

    def perform_update(self, serializer):
        # При обновлении организацию не меняем
        serializer.save()
