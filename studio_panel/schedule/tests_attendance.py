"""
Тесты посещений.

Covers:
- Ожидаемый состав занятия по дате занятия
- Массовая отметка (bulk upsert)
- Отчёт «не отмечены» и история ученика
- API /sessions/<id>/attendance/
"""
from django.core.exceptions import ValidationError
from django.test import TestCase
from rest_framework import status

from .attendance_service import AttendanceService
from .models import AttendanceRecord, ClassSession
from .testing import ScheduleFixturesMixin, d, make_organization


class ExpectedAttendanceTests(ScheduleFixturesMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.ana = self.make_student('Ana Diaz')
        self.enroll(self.ana, d('2025-01-01'), d('2025-03-31'))
        self.february = self.make_session(d('2025-02-15'))
        self.april = self.make_session(d('2025-04-15'))

    def test_student_expected_while_enrolled(self):
        """Ученик ожидается на занятии внутри интервала зачисления"""
        result = AttendanceService.get_expected_and_recorded(self.tenant, self.february.pk)
        self.assertEqual([row['student'].pk for row in result['expected']], [self.ana.pk])
        self.assertEqual(result['rows'][0]['status'], None)
        self.assertIsNone(result['rows'][0]['record_id'])

    def test_student_not_expected_after_enrollment_ended(self):
        result = AttendanceService.get_expected_and_recorded(self.tenant, self.april.pk)
        self.assertEqual(result, {'expected': [], 'rows': []})

    def test_enrollment_boundaries_are_inclusive(self):
        first_day = self.make_session(d('2025-01-01'), status=ClassSession.STATUS_HELD)
        last_day = self.make_session(d('2025-03-31'))
        for session in (first_day, last_day):
            result = AttendanceService.get_expected_and_recorded(self.tenant, session.pk)
            self.assertEqual(len(result['expected']), 1)

    def test_unknown_session_gives_empty_lists(self):
        self.assertEqual(
            AttendanceService.get_expected_and_recorded(self.tenant, 999999),
            {'expected': [], 'rows': []},
        )

    def test_session_of_other_tenant_is_invisible(self):
        other = make_organization('tango')
        self.assertEqual(
            AttendanceService.get_expected_and_recorded(other, self.february.pk),
            {'expected': [], 'rows': []},
        )

    def test_student_expected_once_with_overlapping_enrollments(self):
        self.enroll(self.ana, d('2025-02-01'))
        result = AttendanceService.get_expected_and_recorded(self.tenant, self.february.pk)
        self.assertEqual(len(result['expected']), 1)
        self.assertEqual(len(result['rows']), 1)

    def test_recorded_status_is_shown(self):
        AttendanceService.bulk_upsert(
            self.february, self.tenant, [{'student_id': self.ana.pk, 'status': 'present'}]
        )
        row = AttendanceService.get_expected_and_recorded(self.tenant, self.february.pk)['rows'][0]
        self.assertEqual(row['status'], 'present')
        self.assertIsNotNone(row['record_id'])
        self.assertIsNotNone(row['marked_at'])

    def test_adhoc_session_shows_only_recorded_rows(self):
        adhoc = self.make_session(d('2025-02-16'), adhoc=True)
        guest = self.make_student('Bruno Silva')
        result = AttendanceService.get_expected_and_recorded(self.tenant, adhoc.pk)
        self.assertEqual(result, {'expected': [], 'rows': []})

        AttendanceService.bulk_upsert(adhoc, self.tenant, [{'student_id': guest.pk, 'status': 'present'}])
        result = AttendanceService.get_expected_and_recorded(self.tenant, adhoc.pk)
        self.assertEqual(result['expected'], [])
        self.assertEqual([row['student'].pk for row in result['rows']], [guest.pk])


class BulkUpsertTests(ScheduleFixturesMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.ana = self.make_student('Ana Diaz')
        self.bruno = self.make_student('Bruno Silva')
        self.session = self.make_session(d('2025-02-15'))

    def test_update_keeps_single_record(self):
        """Повторная отметка меняет статус, а не создаёт вторую запись"""
        AttendanceService.bulk_upsert(self.session, self.tenant, [{'student_id': self.ana.pk, 'status': 'present'}])
        updated = AttendanceService.bulk_upsert(
            self.session, self.tenant, [{'student_id': self.ana.pk, 'status': 'late'}]
        )
        self.assertEqual(updated, 1)
        record = AttendanceRecord.objects.get(session=self.session, student=self.ana)
        self.assertEqual(record.status, AttendanceRecord.STATUS_LATE)
        self.assertEqual(AttendanceRecord.objects.count(), 1)

    def test_marks_several_students(self):
        updated = AttendanceService.bulk_upsert(self.session, self.tenant, [
            {'student_id': self.ana.pk, 'status': 'present'},
            {'student_id': self.bruno.pk, 'status': 'excused'},
        ])
        self.assertEqual(updated, 2)
        self.assertEqual(
            dict(AttendanceRecord.objects.values_list('student_id', 'status')),
            {self.ana.pk: 'present', self.bruno.pk: 'excused'},
        )

    def test_empty_entries_do_nothing(self):
        self.assertEqual(AttendanceService.bulk_upsert(self.session, self.tenant, []), 0)

    def test_invalid_status_rejects_whole_batch(self):
        with self.assertRaisesMessage(ValidationError, 'Each entry must have studentId and status'):
            AttendanceService.bulk_upsert(self.session, self.tenant, [
                {'student_id': self.ana.pk, 'status': 'present'},
                {'student_id': self.bruno.pk, 'status': 'sick'},
            ])
        self.assertFalse(AttendanceRecord.objects.exists())

    def test_student_of_other_tenant_rejected(self):
        other = make_organization('tango')
        stranger = self.make_student('Carla Ruiz', tenant=other)
        with self.assertRaisesMessage(ValidationError, 'Student not found in organization'):
            AttendanceService.bulk_upsert(self.session, self.tenant, [
                {'student_id': self.ana.pk, 'status': 'present'},
                {'student_id': stranger.pk, 'status': 'present'},
            ])
        self.assertFalse(AttendanceRecord.objects.exists())


class AttendanceReportsTests(ScheduleFixturesMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.ana = self.make_student('Ana Diaz')
        self.bruno = self.make_student('Bruno Silva')
        self.enroll(self.ana, d('2025-01-01'))
        self.enroll(self.bruno, d('2025-01-01'))

    def test_missing_attendance_lists_partially_marked_held_sessions(self):
        partial = self.make_session(d('2025-02-10'), status=ClassSession.STATUS_HELD)
        complete = self.make_session(d('2025-02-17'), status=ClassSession.STATUS_HELD)
        newest = self.make_session(d('2025-02-24'), status=ClassSession.STATUS_HELD)
        self.make_session(d('2025-03-03'))  # ещё не проведено

        AttendanceService.bulk_upsert(partial, self.tenant, [{'student_id': self.ana.pk, 'status': 'present'}])
        AttendanceService.bulk_upsert(complete, self.tenant, [
            {'student_id': self.ana.pk, 'status': 'present'},
            {'student_id': self.bruno.pk, 'status': 'absent'},
        ])

        missing = AttendanceService.sessions_with_missing_attendance(self.tenant)
        self.assertEqual([s.pk for s in missing], [newest.pk, partial.pk])

        missing = AttendanceService.sessions_with_missing_attendance(
            self.tenant, date_from=d('2025-02-01'), date_to=d('2025-02-20')
        )
        self.assertEqual([s.pk for s in missing], [partial.pk])

    def test_held_session_without_expected_students_is_not_missing(self):
        self.make_session(d('2024-12-20'), status=ClassSession.STATUS_HELD)
        self.assertEqual(AttendanceService.sessions_with_missing_attendance(self.tenant), [])

    def test_student_history_newest_first(self):
        older = self.make_session(d('2025-02-10'))
        newer = self.make_session(d('2025-02-17'))
        AttendanceService.bulk_upsert(older, self.tenant, [{'student_id': self.ana.pk, 'status': 'present'}])
        AttendanceService.bulk_upsert(newer, self.tenant, [{'student_id': self.ana.pk, 'status': 'late'}])

        history = list(AttendanceService.student_history(self.tenant, self.ana))
        self.assertEqual([r.session_id for r in history], [newer.pk, older.pk])

        history = list(AttendanceService.student_history(self.tenant, self.ana, date_to=d('2025-02-12')))
        self.assertEqual([r.session_id for r in history], [older.pk])


class AttendanceAPITests(ScheduleFixturesMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.ana = self.make_student('Ana Diaz')
        self.enroll(self.ana, d('2025-01-01'), d('2025-03-31'))
        self.session = self.make_session(d('2025-02-15'))

    def attendance_url(self, session_id=None):
        return self.url(f'sessions/{session_id or self.session.pk}/attendance/')

    def test_get_expected_and_rows(self):
        response = self.client.get(self.attendance_url())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['expected'][0]['studentId'], self.ana.pk)
        self.assertEqual(response.data['expected'][0]['student']['fullName'], 'Ana Diaz')
        self.assertEqual(response.data['rows'][0]['status'], None)

    def test_patch_marks_attendance(self):
        response = self.client.patch(
            self.attendance_url(),
            {'entries': [{'studentId': self.ana.pk, 'status': 'present'}]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'message': 'Attendance updated', 'updated': 1})

        response = self.client.get(self.attendance_url())
        self.assertEqual(response.data['rows'][0]['status'], 'present')

    def test_patch_entries_must_be_list(self):
        response = self.client.patch(self.attendance_url(), {'entries': 'present'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'entries must be an array of { studentId, status }')

    def test_patch_invalid_status(self):
        response = self.client.patch(
            self.attendance_url(),
            {'entries': [{'studentId': self.ana.pk, 'status': 'sick'}]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            response.data['error'],
            'Each entry must have studentId and status (present, absent, excused, late)',
        )

    def test_unknown_session_is_404(self):
        response = self.client.get(self.attendance_url(999999))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Session not found')

    def test_missing_report_endpoint(self):
        self.session.status = ClassSession.STATUS_HELD
        self.session.save()
        response = self.client.get(self.url('attendance/missing/'), {'dateFrom': '2025-02-01'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([s['id'] for s in response.data['sessions']], [self.session.pk])

    def test_missing_report_rejects_bad_date(self):
        response = self.client.get(self.url('attendance/missing/'), {'dateFrom': '15.02.2025'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'dateFrom must be a date (YYYY-MM-DD)')

    def test_student_history_endpoint(self):
        AttendanceService.bulk_upsert(self.session, self.tenant, [{'student_id': self.ana.pk, 'status': 'excused'}])
        response = self.client.get(self.url(f'students/{self.ana.pk}/attendance/'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        record = response.data['records'][0]
        self.assertEqual(record['status'], 'excused')
        self.assertEqual(record['session']['date'], '2025-02-15')
        self.assertEqual(record['session']['startTime'], '10:00')

    def test_student_history_unknown_student(self):
        response = self.client.get(self.url('students/999999/attendance/'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Student not found')
