from django.contrib import admin
from .models import Tenant, TenantMembership


class TenantMembershipInline(admin.TabularInline):
    model = TenantMembership
    extra = 0
    readonly_fields = ('joined_at', 'updated_at')
    raw_id_fields = ('user',)


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug', 'kind', 'status', 'owner', 'created_at')
    list_filter = ('status', 'kind')
    search_fields = ('name', 'slug', 'owner__email')
    readonly_fields = ('id', 'created_at', 'updated_at')
    raw_id_fields = ('owner',)
    prepopulated_fields = {'slug': ('name',)}
    inlines = [TenantMembershipInline]

    fieldsets = (
        ('Основное', {
            'fields': ('id', 'name', 'slug', 'kind', 'status', 'owner')
        }),
        ('Локализация', {
            'fields': ('timezone',)
        }),
        ('Даты', {
            'fields': ('created_at', 'updated_at')
        }),
    )


@admin.register(TenantMembership)
class TenantMembershipAdmin(admin.ModelAdmin):
    list_display = ('user', 'tenant', 'role', 'is_active', 'joined_at')
    list_filter = ('role', 'is_active')
    search_fields = ('user__email', 'user__username', 'tenant__name', 'tenant__slug')
    raw_id_fields = ('user', 'tenant')
