from rest_framework import serializers
from rest_framework.exceptions import NotFound

from .models import Tenant, TenantMembership


class TenantSerializer(serializers.ModelSerializer):
    role = serializers.SerializerMethodField()

    class Meta:
        model = Tenant
        fields = ['id', 'name', 'slug', 'kind', 'status', 'timezone', 'role', 'created_at']
        read_only_fields = fields

    def get_role(self, obj):
        user = self.context.get('user')
        if user is None:
            return None
        membership = TenantMembership.objects.filter(tenant=obj, user=user, is_active=True).first()
        return membership.role if membership else None


class TenantPrimaryKeyRelatedField(serializers.PrimaryKeyRelatedField):
    """
    PK-поле, которое видит только объекты организации из context['tenant'].

    not_found_as_404=True: ссылка на чужой/несуществующий объект → 404
    вместо ошибки валидации.
    """

    def __init__(self, **kwargs):
        self.not_found_as_404 = kwargs.pop('not_found_as_404', False)
        super().__init__(**kwargs)

    def get_queryset(self):
        queryset = super().get_queryset()
        tenant = self.context.get('tenant')
        if tenant is None:
            return queryset.none()
        return queryset.filter(tenant=tenant)

    def to_internal_value(self, data):
        if self.not_found_as_404:
            try:
                return self.get_queryset().get(pk=data)
            except (TypeError, ValueError, self.get_queryset().model.DoesNotExist):
                raise NotFound(self.error_messages['does_not_exist'].format(pk_value=data))
        return super().to_internal_value(data)
