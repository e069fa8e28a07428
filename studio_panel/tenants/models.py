"""
Tenant models - ядро мультитенантной архитектуры.

Подход: shared-database, shared-schema с tenant FK на каждой модели верхнего уровня.
Tenant = организация: танцевальная школа или независимый преподаватель.
"""

import uuid
from django.db import models
from django.conf import settings


class Tenant(models.Model):
    """
    Организация (школа танцев, независимый преподаватель).
    Все данные в системе привязаны к tenant через FK.
    """

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Активна'
        INACTIVE = 'inactive', 'Неактивна'
        SUSPENDED = 'suspended', 'Приостановлена'

    class Kind(models.TextChoices):
        SCHOOL = 'school', 'Школа'
        INDEPENDENT_TEACHER = 'independent_teacher', 'Независимый преподаватель'

    # === Идентификация ===
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    slug = models.SlugField(
        max_length=50, unique=True, db_index=True,
        help_text='Уникальный идентификатор (для URL/субдомена)'
    )
    name = models.CharField(max_length=200, help_text='Название организации')
    kind = models.CharField(
        max_length=30, choices=Kind.choices, default=Kind.SCHOOL,
        help_text='Тип организации',
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.ACTIVE,
        help_text='Статус',
    )

    # === Владелец ===
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='owned_tenants',
        help_text='Пользователь-создатель. Имеет полные права на tenant.',
        null=True, blank=True,
    )

    # === Локализация ===
    timezone = models.CharField(max_length=50, default='UTC', help_text='Часовой пояс')

    # === Даты ===
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name = 'Организация'
        verbose_name_plural = 'Организации'

    def __str__(self):
        return f'{self.name} ({self.slug})'

    @property
    def is_active(self):
        return self.status == self.Status.ACTIVE


class TenantMembership(models.Model):
    """
    M2M-связь пользователя с организацией.
    Один пользователь может состоять в нескольких организациях с разными ролями.
    """

    class TenantRole(models.TextChoices):
        OWNER = 'owner', 'Владелец'
        ADMIN = 'admin', 'Администратор'
        TEACHER = 'teacher', 'Преподаватель'
        STAFF = 'staff', 'Сотрудник'

    tenant = models.ForeignKey(
        Tenant, on_delete=models.CASCADE,
        related_name='memberships',
        verbose_name='Организация',
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='tenant_memberships',
        verbose_name='Пользователь',
    )
    role = models.CharField(
        max_length=20, choices=TenantRole.choices,
        default=TenantRole.STAFF,
        verbose_name='Роль в организации',
    )
    is_active = models.BooleanField(default=True, verbose_name='Активен')
    joined_at = models.DateTimeField(auto_now_add=True, verbose_name='Дата вступления')
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Членство в организации'
        verbose_name_plural = 'Членства в организациях'
        unique_together = ['tenant', 'user']
        indexes = [
            models.Index(fields=['tenant', 'role'], name='membership_tenant_role_idx'),
            models.Index(fields=['user', 'is_active'], name='membership_user_active_idx'),
        ]

    def __str__(self):
        return f'{self.user} → {self.tenant} ({self.role})'
