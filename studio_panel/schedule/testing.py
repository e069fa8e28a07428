"""
Общие фабрики для тестов расписания и посещений.
"""
from datetime import date, time

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from tenants.models import Tenant, TenantMembership
from .models import Teacher, Venue, Group, Student, Enrollment, ClassSession

User = get_user_model()


def make_organization(slug, user=None, role=TenantMembership.TenantRole.ADMIN):
    tenant = Tenant.objects.create(slug=slug, name=slug.title(), owner=user)
    if user is not None:
        TenantMembership.objects.create(tenant=tenant, user=user, role=role)
    return tenant


class ScheduleFixturesMixin:
    """Организация с залом, преподавателем, группой и авторизованным клиентом"""

    org_slug = 'salsa'

    def setUp(self):
        self.user = User.objects.create_user(username=f'{self.org_slug}-admin', password='pass')
        self.tenant = make_organization(self.org_slug, self.user)
        self.venue = Venue.objects.create(tenant=self.tenant, name='Hall A')
        self.teacher = Teacher.objects.create(tenant=self.tenant, full_name='Maria Lopez')
        self.group = Group.objects.create(
            tenant=self.tenant, name='Salsa Beginners', teacher=self.teacher, venue=self.venue
        )
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

    def url(self, path):
        return f'/api/organizations/{self.tenant.pk}/{path}'

    def make_student(self, name='Ana Diaz', tenant=None):
        return Student.objects.create(tenant=tenant or self.tenant, full_name=name)

    def enroll(self, student, start, end=None, group=None):
        return Enrollment.objects.create(student=student, group=group or self.group, start_date=start, end_date=end)

    def make_session(self, on_date, start=time(10, 0), end=time(11, 30), group=None, adhoc=False,
                     status=ClassSession.STATUS_SCHEDULED, **extra):
        return ClassSession.objects.create(
            tenant=self.tenant,
            group=None if adhoc else (group or self.group),
            teacher=self.teacher,
            venue=self.venue,
            date=on_date,
            start_time=start,
            end_time=end,
            status=status,
            **extra
        )


def d(value):
    """'2025-06-04' → date"""
    return date.fromisoformat(value)
