"""
Тесты изоляции организаций.

Каждый запрос под /api/organizations/<org_id>/ выполняется только для
участника организации; чужие данные не видны.
"""
import uuid

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from schedule.models import Group, Student, Teacher
from .models import Tenant, TenantMembership

User = get_user_model()


def create_org(slug, owner=None, role=TenantMembership.TenantRole.OWNER):
    tenant = Tenant.objects.create(slug=slug, name=slug.title(), owner=owner)
    if owner is not None:
        TenantMembership.objects.create(tenant=tenant, user=owner, role=role)
    return tenant


class OrganizationAccessTests(TestCase):
    """Доступ к API организации: 401 / 403 / 404"""

    def setUp(self):
        self.owner = User.objects.create_user(username='owner', password='pass')
        self.outsider = User.objects.create_user(username='outsider', password='pass')
        self.tenant = create_org('salsa', self.owner)
        self.client = APIClient()

    def test_unauthenticated_is_401(self):
        response = self.client.get(f'/api/organizations/{self.tenant.pk}/students/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_non_member_is_403(self):
        self.client.force_authenticate(user=self.outsider)
        response = self.client.get(f'/api/organizations/{self.tenant.pk}/students/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'You are not a member of this organization')

    def test_inactive_member_is_403(self):
        TenantMembership.objects.create(
            tenant=self.tenant, user=self.outsider,
            role=TenantMembership.TenantRole.TEACHER, is_active=False,
        )
        self.client.force_authenticate(user=self.outsider)
        response = self.client.get(f'/api/organizations/{self.tenant.pk}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_organization_is_404(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.get(f'/api/organizations/{uuid.uuid4()}/students/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Organization not found')

    def test_member_sees_organization(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.get(f'/api/organizations/{self.tenant.pk}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['slug'], 'salsa')
        self.assertEqual(response.data['role'], TenantMembership.TenantRole.OWNER)


class TenantIsolationTests(TestCase):
    """Данные одной организации не видны и не достижимы из другой"""

    def setUp(self):
        self.salsa_owner = User.objects.create_user(username='salsa', password='pass')
        self.tango_owner = User.objects.create_user(username='tango', password='pass')
        self.salsa = create_org('salsa', self.salsa_owner)
        self.tango = create_org('tango', self.tango_owner)

        self.tango_teacher = Teacher.objects.create(tenant=self.tango, full_name='Diego Ramos')
        self.tango_group = Group.objects.create(tenant=self.tango, name='Tango', teacher=self.tango_teacher)
        Student.objects.create(tenant=self.tango, full_name='Carla Ruiz')
        Student.objects.create(tenant=self.salsa, full_name='Ana Diaz')

        self.client = APIClient()
        self.client.force_authenticate(user=self.salsa_owner)

    def test_for_tenant_filters_manager_and_queryset(self):
        self.assertEqual(
            list(Student.objects.for_tenant(self.salsa).values_list('full_name', flat=True)),
            ['Ana Diaz'],
        )
        self.assertEqual(Student.objects.filter(full_name__startswith='C').for_tenant(self.salsa).count(), 0)
        self.assertEqual(Student.objects.filter(full_name__startswith='C').for_tenant(self.tango).count(), 1)

    def test_lists_only_own_students(self):
        response = self.client.get(f'/api/organizations/{self.salsa.pk}/students/')
        self.assertEqual([s['fullName'] for s in response.data], ['Ana Diaz'])

    def test_cannot_read_other_organization(self):
        response = self.client.get(f'/api/organizations/{self.tango.pk}/students/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_foreign_group_id_is_404(self):
        response = self.client.get(f'/api/organizations/{self.salsa.pk}/groups/{self.tango_group.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_group_with_foreign_teacher_rejected(self):
        response = self.client.post(
            f'/api/organizations/{self.salsa.pk}/groups/',
            {'name': 'Mixed', 'teacherId': self.tango_teacher.pk},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Teacher not found or does not belong to organization')
        self.assertFalse(Group.objects.filter(name='Mixed').exists())

    def test_created_objects_belong_to_url_organization(self):
        response = self.client.post(
            f'/api/organizations/{self.salsa.pk}/venues/', {'name': 'Hall B'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(self.salsa.schedule_venues.get().name, 'Hall B')


class MyOrganizationsTests(TestCase):

    def test_lists_active_memberships(self):
        user = User.objects.create_user(username='maria', password='pass')
        salsa = create_org('salsa', user, role=TenantMembership.TenantRole.TEACHER)
        tango = create_org('tango')
        TenantMembership.objects.create(
            tenant=tango, user=user, role=TenantMembership.TenantRole.TEACHER, is_active=False
        )
        create_org('bachata')

        client = APIClient()
        client.force_authenticate(user=user)
        response = client.get('/api/organizations/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        organizations = response.data['organizations']
        self.assertEqual([o['id'] for o in organizations], [str(salsa.pk)])
        self.assertEqual(organizations[0]['role'], TenantMembership.TenantRole.TEACHER)
