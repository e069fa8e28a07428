"""
Тесты зачислений: интервалы дат, перевод между группами, API.
"""
from django.core.exceptions import ValidationError
from django.test import TestCase
from rest_framework import status

from .enrollment_service import EnrollmentService
from .models import Enrollment, Group
from .testing import ScheduleFixturesMixin, d, make_organization


class EnrollmentServiceTests(ScheduleFixturesMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.ana = self.make_student('Ana Diaz')
        self.advanced = Group.objects.create(tenant=self.tenant, name='Salsa Advanced', teacher=self.teacher)

    def test_enrollments_on_date_inclusive_boundaries(self):
        self.enroll(self.ana, d('2025-01-01'), d('2025-03-31'))
        for on_date, expected in [
            ('2024-12-31', 0),
            ('2025-01-01', 1),
            ('2025-03-31', 1),
            ('2025-04-01', 0),
        ]:
            with self.subTest(on_date=on_date):
                enrollments = EnrollmentService.get_enrollments_on_date(self.group.pk, self.tenant, d(on_date))
                self.assertEqual(len(enrollments), expected)

    def test_open_enrollment_covers_future(self):
        self.enroll(self.ana, d('2025-01-01'))
        enrollments = EnrollmentService.get_enrollments_on_date(self.group.pk, self.tenant, d('2030-01-01'))
        self.assertEqual([e.student_id for e in enrollments], [self.ana.pk])

    def test_enrollments_sorted_by_student_name(self):
        zoe = self.make_student('Zoe Martin')
        bruno = self.make_student('Bruno Silva')
        for student in (zoe, self.ana, bruno):
            self.enroll(student, d('2025-01-01'))
        enrollments = EnrollmentService.get_enrollments_on_date(self.group.pk, self.tenant, d('2025-02-01'))
        self.assertEqual([e.student.full_name for e in enrollments], ['Ana Diaz', 'Bruno Silva', 'Zoe Martin'])

    def test_other_tenant_sees_nothing(self):
        self.enroll(self.ana, d('2025-01-01'))
        other = make_organization('tango')
        self.assertEqual(EnrollmentService.get_enrollments_on_date(self.group.pk, other, d('2025-02-01')), [])

    def test_create_enrollment_rejects_end_before_start(self):
        with self.assertRaisesMessage(ValidationError, 'endDate must not be before startDate'):
            EnrollmentService.create_enrollment(self.tenant, self.ana, self.group, d('2025-03-01'), d('2025-02-01'))

    def test_create_enrollment_rejects_foreign_student(self):
        other = make_organization('tango')
        stranger = self.make_student('Carla Ruiz', tenant=other)
        with self.assertRaisesMessage(ValidationError, 'Student and group must belong to the organization'):
            EnrollmentService.create_enrollment(self.tenant, stranger, self.group, d('2025-03-01'))

    def test_end_enrollment_keeps_row(self):
        enrollment = self.enroll(self.ana, d('2025-01-01'))
        EnrollmentService.end_enrollment(enrollment, d('2025-05-31'))
        enrollment.refresh_from_db()
        self.assertEqual(enrollment.end_date, d('2025-05-31'))
        self.assertEqual(Enrollment.objects.count(), 1)

    def test_move_student_between_groups(self):
        """Перевод закрывает старое зачисление и открывает новое"""
        self.enroll(self.ana, d('2025-01-01'))
        ended, created = EnrollmentService.move_student(
            self.tenant, self.ana, self.group, self.advanced, d('2025-06-01'), d('2025-05-31')
        )
        self.assertEqual(ended.end_date, d('2025-05-31'))
        self.assertEqual(created.group_id, self.advanced.pk)
        self.assertEqual(created.start_date, d('2025-06-01'))
        self.assertIsNone(created.end_date)

        on_may = EnrollmentService.get_enrollments_on_date(self.group.pk, self.tenant, d('2025-05-31'))
        on_june = EnrollmentService.get_enrollments_on_date(self.advanced.pk, self.tenant, d('2025-06-01'))
        self.assertEqual(len(on_may), 1)
        self.assertEqual(len(on_june), 1)
        self.assertEqual(EnrollmentService.get_enrollments_on_date(self.group.pk, self.tenant, d('2025-06-01')), [])

    def test_move_without_active_enrollment_fails(self):
        self.enroll(self.ana, d('2025-01-01'), d('2025-02-28'))
        with self.assertRaisesMessage(ValidationError, 'No active enrollment found to end'):
            EnrollmentService.move_student(self.tenant, self.ana, self.group, self.advanced, d('2025-06-01'))
        self.assertFalse(Enrollment.objects.filter(group=self.advanced).exists())


class EnrollmentAPITests(ScheduleFixturesMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.ana = self.make_student('Ana Diaz')
        self.advanced = Group.objects.create(tenant=self.tenant, name='Salsa Advanced', teacher=self.teacher)

    def test_enroll_student(self):
        response = self.client.post(
            self.url(f'groups/{self.group.pk}/enrollments/'),
            {'studentId': self.ana.pk, 'startDate': '2025-01-01'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['groupId'], self.group.pk)
        self.assertEqual(response.data['student']['fullName'], 'Ana Diaz')
        self.assertIsNone(response.data['endDate'])

    def test_enroll_rejects_end_before_start(self):
        response = self.client.post(
            self.url(f'groups/{self.group.pk}/enrollments/'),
            {'studentId': self.ana.pk, 'startDate': '2025-03-01', 'endDate': '2025-02-01'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'endDate must not be before startDate')

    def test_enroll_foreign_student_rejected(self):
        other = make_organization('tango')
        stranger = self.make_student('Carla Ruiz', tenant=other)
        response = self.client.post(
            self.url(f'groups/{self.group.pk}/enrollments/'),
            {'studentId': stranger.pk, 'startDate': '2025-01-01'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Student not found or does not belong to organization')

    def test_list_active_on(self):
        self.enroll(self.ana, d('2025-01-01'), d('2025-03-31'))
        bruno = self.make_student('Bruno Silva')
        self.enroll(bruno, d('2025-04-01'))

        response = self.client.get(self.url(f'groups/{self.group.pk}/enrollments/'), {'activeOn': '2025-02-01'})
        self.assertEqual([e['studentId'] for e in response.data['enrollments']], [self.ana.pk])

        response = self.client.get(self.url(f'groups/{self.group.pk}/enrollments/'))
        self.assertEqual(len(response.data['enrollments']), 2)

    def test_end_enrollment(self):
        enrollment = self.enroll(self.ana, d('2025-01-01'))
        response = self.client.patch(
            self.url(f'groups/{self.group.pk}/enrollments/{enrollment.pk}/'),
            {'endDate': '2025-05-31'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['endDate'], '2025-05-31')

    def test_end_enrollment_requires_date(self):
        enrollment = self.enroll(self.ana, d('2025-01-01'))
        response = self.client.patch(
            self.url(f'groups/{self.group.pk}/enrollments/{enrollment.pk}/'), {}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'endDate (YYYY-MM-DD) is required')

    def test_unknown_enrollment_is_404(self):
        response = self.client.patch(
            self.url(f'groups/{self.group.pk}/enrollments/999999/'), {'endDate': '2025-05-31'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Enrollment not found')

    def test_student_enrollments_history(self):
        self.enroll(self.ana, d('2025-01-01'), d('2025-05-31'))
        self.enroll(self.ana, d('2025-06-01'), group=self.advanced)
        response = self.client.get(self.url(f'students/{self.ana.pk}/enrollments/'))
        self.assertEqual([e['groupId'] for e in response.data['enrollments']], [self.advanced.pk, self.group.pk])

    def test_move_student(self):
        self.enroll(self.ana, d('2025-01-01'))
        response = self.client.post(
            self.url(f'students/{self.ana.pk}/enrollments/move/'),
            {'fromGroupId': self.group.pk, 'toGroupId': self.advanced.pk, 'startDate': '2025-06-01'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['ended']['endDate'], '2025-06-01')
        self.assertEqual(response.data['enrollment']['groupId'], self.advanced.pk)

    def test_move_rejects_end_after_new_start(self):
        """Старое зачисление не может закончиться позже начала нового"""
        self.enroll(self.ana, d('2025-01-01'))
        response = self.client.post(
            self.url(f'students/{self.ana.pk}/enrollments/move/'),
            {
                'fromGroupId': self.group.pk,
                'toGroupId': self.advanced.pk,
                'startDate': '2025-06-01',
                'endDate': '2025-06-10',
            },
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'End date must be before or equal to start date')
        self.assertFalse(Enrollment.objects.filter(group=self.advanced).exists())
        self.assertIsNone(Enrollment.objects.get(group=self.group).end_date)

    def test_move_to_unknown_group_is_404(self):
        self.enroll(self.ana, d('2025-01-01'))
        response = self.client.post(
            self.url(f'students/{self.ana.pk}/enrollments/move/'),
            {'fromGroupId': self.group.pk, 'toGroupId': 999999, 'startDate': '2025-06-01'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Group not found')

    def test_move_without_enrollment_is_400(self):
        response = self.client.post(
            self.url(f'students/{self.ana.pk}/enrollments/move/'),
            {'fromGroupId': self.group.pk, 'toGroupId': self.advanced.pk, 'startDate': '2025-06-01'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'No active enrollment found to end')
