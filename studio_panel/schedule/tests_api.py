"""
Тесты API расписания и занятий.

Covers:
- GET/PATCH /groups/<id>/schedule/ и генерация занятий
- CRUD /sessions/ (валидация, 404 для чужих ссылок, 409 при удалении)
- /groups/<id>/sessions/
- management command generate_group_sessions
"""
from datetime import time
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from rest_framework import status

from tenants.models import TenantMembership
from .attendance_service import AttendanceService
from .models import ClassSession, Group, GroupSchedule, Teacher
from .schedule_service import ScheduleService, SessionGenerator
from .testing import ScheduleFixturesMixin, d, make_organization

User = get_user_model()


class GroupScheduleAPITests(ScheduleFixturesMixin, TestCase):

    def schedule_url(self, group_id=None):
        return self.url(f'groups/{group_id or self.group.pk}/schedule/')

    def patch_schedule(self, **overrides):
        body = {
            'recurrence': 'weekly',
            'durationHours': 1.5,
            'effectiveFrom': '2025-06-01',
            'slots': [{'dayOfWeek': 3, 'startTime': '10:00'}],
        }
        body.update(overrides)
        return self.client.patch(self.schedule_url(), body, format='json')

    def test_patch_creates_version(self):
        response = self.patch_schedule()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        schedule = response.data['schedule']
        self.assertEqual(schedule['recurrence'], 'weekly')
        self.assertEqual(schedule['durationHours'], 1.5)
        self.assertEqual(schedule['effectiveFrom'], '2025-06-01')
        self.assertIsNone(schedule['effectiveTo'])
        self.assertEqual(schedule['slots'], [{'dayOfWeek': 3, 'startTime': '10:00', 'sortOrder': 0}])
        self.assertEqual(response.data['generatedSessions'], 0)

    def test_patch_with_generation(self):
        response = self.patch_schedule(
            generateSessions=True, generateFrom='2025-06-01', generateTo='2025-06-30'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['generatedSessions'], 4)
        self.assertEqual(ClassSession.objects.filter(group=self.group).count(), 4)

    def test_patch_reversed_generation_window_skips_generation(self):
        response = self.patch_schedule(
            generateSessions=True, generateFrom='2025-06-30', generateTo='2025-06-01'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['generatedSessions'], 0)

    def test_patch_validation_messages(self):
        cases = [
            ({'recurrence': 'twice_weekly'}, 'Twice-weekly schedule must have exactly two slots'),
            ({'durationHours': 0}, 'Duration per session (hours) is required and must be positive'),
            ({'slots': [{'dayOfWeek': 0, 'startTime': '10:00'}]}, 'Slot 1: dayOfWeek must be 1–7 (Monday–Sunday)'),
            ({'slots': [{'dayOfWeek': 3, 'startTime': '10am'}]}, 'Slot 1: startTime must be HH:mm'),
            ({'effectiveFrom': None}, 'effectiveFrom (YYYY-MM-DD) is required'),
        ]
        for overrides, message in cases:
            with self.subTest(message=message):
                response = self.patch_schedule(**overrides)
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(response.data['error'], message)
        self.assertFalse(GroupSchedule.objects.exists())

    def test_day_of_week_as_string_is_accepted(self):
        response = self.patch_schedule(slots=[{'dayOfWeek': '5', 'startTime': '9:00'}])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['schedule']['slots'][0]['dayOfWeek'], 5)
        self.assertEqual(response.data['schedule']['slots'][0]['startTime'], '09:00')

    def test_future_only_edit_through_api(self):
        self.patch_schedule(effectiveFrom='2025-01-01')
        response = self.patch_schedule(
            effectiveFrom='2025-06-01',
            applyToFutureOnly=True,
            slots=[{'dayOfWeek': 4, 'startTime': '19:00'}],
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        closed = GroupSchedule.objects.get(effective_from=d('2025-01-01'))
        self.assertEqual(closed.effective_to, d('2025-05-31'))

    def test_overlapping_edit_is_400(self):
        self.patch_schedule(effectiveFrom='2025-01-01')
        response = self.patch_schedule(effectiveFrom='2025-06-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('applyToFutureOnly', response.data['error'])

    def test_get_returns_versions_for_window(self):
        self.patch_schedule(effectiveFrom='2025-01-01')
        self.patch_schedule(effectiveFrom='2025-06-01', applyToFutureOnly=True)

        response = self.client.get(self.schedule_url(), {'from': '2025-05-01', 'to': '2025-06-30'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [s['effectiveFrom'] for s in response.data['schedules']],
            ['2025-01-01', '2025-06-01'],
        )

        response = self.client.get(self.schedule_url(), {'from': '2025-01-01', 'to': '2025-02-01'})
        self.assertEqual(len(response.data['schedules']), 1)

    def test_get_without_window_returns_current_version(self):
        ScheduleService.upsert_schedule(
            self.group, self.tenant, recurrence='weekly', duration_hours=1,
            effective_from=d('2020-01-01'), slots=[{'day_of_week': 1, 'start_time': '18:00'}],
        )
        response = self.client.get(self.schedule_url())
        self.assertEqual(len(response.data['schedules']), 1)

    def test_unknown_group_is_404(self):
        response = self.client.get(self.schedule_url(999999))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Group not found')

    def test_group_of_other_organization_is_404(self):
        other_user = User.objects.create_user(username='tango-admin', password='pass')
        other = make_organization('tango', other_user)
        other_teacher = Teacher.objects.create(tenant=other, full_name='Diego Ramos')
        foreign = Group.objects.create(tenant=other, name='Tango', teacher=other_teacher)
        response = self.client.get(self.schedule_url(foreign.pk))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_generate_endpoint(self):
        self.patch_schedule()
        url = self.url(f'groups/{self.group.pk}/schedule/generate/')
        response = self.client.post(url, {'from': '2025-06-01', 'to': '2025-06-30'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'created': 4})

        response = self.client.post(url, {'from': '2025-06-01', 'to': '2025-06-30'}, format='json')
        self.assertEqual(response.data, {'created': 0})

    def test_generate_endpoint_validates_window(self):
        url = self.url(f'groups/{self.group.pk}/schedule/generate/')
        response = self.client.post(url, {'from': '2025-06-01'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'from and to (YYYY-MM-DD) are required')

        response = self.client.post(url, {'from': '2025-06-30', 'to': '2025-06-01'}, format='json')
        self.assertEqual(response.data['error'], 'from must not be after to')


class ClassSessionAPITests(ScheduleFixturesMixin, TestCase):

    def session_body(self, **overrides):
        body = {
            'groupId': self.group.pk,
            'teacherId': self.teacher.pk,
            'venueId': self.venue.pk,
            'date': '2025-06-04',
            'startTime': '10:00',
            'endTime': '11:30',
        }
        body.update(overrides)
        return body

    def test_create_session(self):
        response = self.client.post(self.url('sessions/'), self.session_body(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], ClassSession.STATUS_SCHEDULED)
        self.assertEqual(response.data['startTime'], '10:00')
        self.assertEqual(response.data['teacherName'], 'Maria Lopez')
        self.assertEqual(ClassSession.objects.get().tenant_id, self.tenant.pk)

    def test_create_adhoc_session_without_group(self):
        response = self.client.post(self.url('sessions/'), self.session_body(groupId=None), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['groupId'])

    def test_create_requires_teacher_and_date(self):
        body = self.session_body()
        del body['teacherId']
        response = self.client.post(self.url('sessions/'), body, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Teacher is required')

        body = self.session_body()
        del body['date']
        response = self.client.post(self.url('sessions/'), body, format='json')
        self.assertEqual(response.data['error'], 'Date is required')

    def test_start_must_be_before_end(self):
        response = self.client.post(
            self.url('sessions/'), self.session_body(startTime='12:00', endTime='11:00'), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Start time must be before end time')

    def test_foreign_teacher_is_404(self):
        other = make_organization('tango')
        stranger = Teacher.objects.create(tenant=other, full_name='Diego Ramos')
        response = self.client.post(self.url('sessions/'), self.session_body(teacherId=stranger.pk), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Teacher not found or does not belong to organization')
        self.assertFalse(ClassSession.objects.exists())

    def test_invalid_status_rejected(self):
        response = self.client.post(self.url('sessions/'), self.session_body(status='done'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Status must be scheduled, held, or cancelled')

    def test_list_filters(self):
        self.make_session(d('2025-06-04'))
        held = self.make_session(d('2025-06-11'), status=ClassSession.STATUS_HELD)
        self.make_session(d('2025-06-18'), adhoc=True)

        response = self.client.get(self.url('sessions/'), {'status': 'held'})
        self.assertEqual([s['id'] for s in response.data], [held.pk])

        response = self.client.get(self.url('sessions/'), {'groupId': self.group.pk, 'dateFrom': '2025-06-05'})
        self.assertEqual([s['id'] for s in response.data], [held.pk])

        response = self.client.get(self.url('sessions/'), {'dateTo': '2025-06-30'})
        self.assertEqual(len(response.data), 3)

    def test_list_rejects_unknown_status_filter(self):
        response = self.client.get(self.url('sessions/'), {'status': 'done'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_session(self):
        session = self.make_session(d('2025-06-04'))
        response = self.client.patch(
            self.url(f'sessions/{session.pk}/'), {'startTime': '10:30', 'endTime': '12:00'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        session.refresh_from_db()
        self.assertEqual(session.start_time, time(10, 30))

    def test_update_compares_only_times_sent_together(self):
        session = self.make_session(d('2025-06-04'))
        response = self.client.patch(
            self.url(f'sessions/{session.pk}/'), {'startTime': '12:00', 'endTime': '11:00'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Start time must be before end time')

        response = self.client.patch(self.url(f'sessions/{session.pk}/'), {'startTime': '11:00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_generated_overnight_session_can_be_updated(self):
        """Занятие 23:00-00:30 из расписания редактируется без переписывания времени"""
        ScheduleService.upsert_schedule(
            self.group, self.tenant, recurrence='weekly', duration_hours=1.5,
            effective_from=d('2025-01-01'), slots=[{'day_of_week': 3, 'start_time': '23:00'}],
        )
        SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-06-01'), d('2025-06-07'))
        session = ClassSession.objects.get()
        self.assertEqual((session.start_time, session.end_time), (time(23, 0), time(0, 30)))

        response = self.client.patch(self.url(f'sessions/{session.pk}/'), {'venueId': None}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        session.refresh_from_db()
        self.assertIsNone(session.venue_id)
        self.assertEqual(session.end_time, time(0, 30))

    def test_set_status(self):
        session = self.make_session(d('2025-06-04'))
        response = self.client.patch(self.url(f'sessions/{session.pk}/status/'), {'status': 'held'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'held')

        response = self.client.patch(self.url(f'sessions/{session.pk}/status/'), {'status': 'done'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_session_is_404(self):
        response = self.client.get(self.url('sessions/999999/'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Session not found')

    def test_delete_session(self):
        session = self.make_session(d('2025-06-04'))
        response = self.client.delete(self.url(f'sessions/{session.pk}/'))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(ClassSession.objects.exists())

    def test_delete_with_attendance_is_409(self):
        session = self.make_session(d('2025-06-04'))
        student = self.make_student()
        AttendanceService.bulk_upsert(session, self.tenant, [{'student_id': student.pk, 'status': 'present'}])

        response = self.client.delete(self.url(f'sessions/{session.pk}/'))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(ClassSession.objects.filter(pk=session.pk).exists())

    def test_delete_requires_admin_role(self):
        staff = User.objects.create_user(username='salsa-staff', password='pass')
        TenantMembership.objects.create(
            tenant=self.tenant, user=staff, role=TenantMembership.TenantRole.STAFF
        )
        session = self.make_session(d('2025-06-04'))
        self.client.force_authenticate(user=staff)

        response = self.client.get(self.url(f'sessions/{session.pk}/'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.delete(self.url(f'sessions/{session.pk}/'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(ClassSession.objects.filter(pk=session.pk).exists())


class GroupSessionsAPITests(ScheduleFixturesMixin, TestCase):

    def test_create_defaults_teacher_and_venue_from_group(self):
        response = self.client.post(
            self.url(f'groups/{self.group.pk}/sessions/'),
            {'date': '2025-06-07', 'startTime': '15:00', 'endTime': '16:00'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        session = ClassSession.objects.get()
        self.assertEqual(session.group_id, self.group.pk)
        self.assertEqual(session.teacher_id, self.teacher.pk)
        self.assertEqual(session.venue_id, self.venue.pk)

    def test_list_group_sessions(self):
        self.make_session(d('2025-06-04'))
        self.make_session(d('2025-06-05'), adhoc=True)
        response = self.client.get(self.url(f'groups/{self.group.pk}/sessions/'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['sessions']), 1)


class DirectoryAPITests(ScheduleFixturesMixin, TestCase):

    def test_group_requires_teacher(self):
        response = self.client.post(self.url('groups/'), {'name': 'Bachata'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Teacher is required')

    def test_group_created_in_organization(self):
        response = self.client.post(
            self.url('groups/'), {'name': 'Bachata', 'teacherId': self.teacher.pk}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Group.objects.get(name='Bachata').tenant_id, self.tenant.pk)

    def test_student_search(self):
        self.make_student('Ana Diaz')
        self.make_student('Bruno Silva')
        response = self.client.get(self.url('students/'), {'search': 'bru'})
        self.assertEqual([s['fullName'] for s in response.data], ['Bruno Silva'])

    def test_group_with_active_enrollments_cannot_be_deleted(self):
        self.enroll(self.make_student('Ana Diaz'), d('2020-01-01'))
        response = self.client.delete(self.url(f'groups/{self.group.pk}/'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot delete group with active enrollments')
        self.assertEqual(response.data['activeEnrollmentsCount'], 1)
        self.assertTrue(Group.objects.filter(pk=self.group.pk).exists())

    def test_group_with_only_past_enrollments_is_deleted(self):
        self.enroll(self.make_student('Ana Diaz'), d('2020-01-01'), d('2020-06-30'))
        response = self.client.delete(self.url(f'groups/{self.group.pk}/'))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Group.objects.filter(pk=self.group.pk).exists())

    def test_teacher_with_groups_cannot_be_deleted(self):
        response = self.client.delete(self.url(f'teachers/{self.teacher.pk}/'))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Teacher.objects.filter(pk=self.teacher.pk).exists())

    def test_lists_are_tenant_scoped(self):
        other = make_organization('tango')
        Teacher.objects.create(tenant=other, full_name='Diego Ramos')
        response = self.client.get(self.url('teachers/'))
        self.assertEqual([t['fullName'] for t in response.data], ['Maria Lopez'])


class GenerateGroupSessionsCommandTests(ScheduleFixturesMixin, TestCase):

    def setUp(self):
        super().setUp()
        ScheduleService.upsert_schedule(
            self.group, self.tenant, recurrence='weekly', duration_hours=1.5,
            effective_from=d('2025-01-01'), slots=[{'day_of_week': 3, 'start_time': '10:00'}],
        )

    def run_command(self, *args):
        out = StringIO()
        call_command('generate_group_sessions', *args, stdout=out)
        return out.getvalue()

    def test_generates_for_active_groups(self):
        output = self.run_command('--org', 'salsa', '--from', '2025-06-01', '--to', '2025-06-30')
        self.assertIn('Created 4 sessions', output)
        self.assertEqual(ClassSession.objects.count(), 4)

    def test_dry_run(self):
        output = self.run_command('--org', 'salsa', '--from', '2025-06-01', '--to', '2025-06-30', '--dry-run')
        self.assertIn('DRY RUN: would create 4 sessions', output)
        self.assertFalse(ClassSession.objects.exists())

    def test_paused_group_skipped_unless_named(self):
        self.group.status = Group.STATUS_PAUSED
        self.group.save()
        self.run_command('--org', 'salsa', '--from', '2025-06-01', '--to', '2025-06-30')
        self.assertFalse(ClassSession.objects.exists())

        self.run_command('--org', 'salsa', '--group', str(self.group.pk), '--from', '2025-06-01', '--to', '2025-06-30')
        self.assertEqual(ClassSession.objects.count(), 4)

    def test_unknown_organization(self):
        with self.assertRaises(CommandError):
            self.run_command('--org', 'nope')

    def test_bad_window(self):
        with self.assertRaisesMessage(CommandError, 'from must not be after to'):
            self.run_command('--org', 'salsa', '--from', '2025-06-30', '--to', '2025-06-01')
        with self.assertRaises(CommandError):
            self.run_command('--org', 'salsa', '--from', '2025/06/01')
