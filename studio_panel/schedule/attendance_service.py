"""
Сервис посещений.

Ожидаемый состав занятия вычисляется по дате занятия: кто был зачислен
в группу в тот день, а не кто состоит в ней сейчас. Поэтому прошлые занятия
всегда показывают состав «как тогда».
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from .enrollment_service import EnrollmentService
from .models import AttendanceRecord, ClassSession, Student

logger = logging.getLogger(__name__)

STATUS_VALUES = [choice[0] for choice in AttendanceRecord.STATUS_CHOICES]


class AttendanceService:
    """Ожидаемый состав занятия и отметки посещения"""

    @staticmethod
    def get_expected_and_recorded(tenant, session_id):
        """
        Ожидаемые ученики занятия + уже проставленные отметки.

        Args:
            tenant: организация
            session_id: ID занятия

        Returns:
            dict: {
                'expected': [{'student', 'enrollment_id'}],
                'rows': [{'student', 'status', 'record_id', 'marked_at'}]
            }
            Ученик без отметки → status = None (не «отсутствовал»).
            Несуществующее занятие → пустые списки.
        """
        session = ClassSession.objects.for_tenant(tenant).filter(pk=session_id).first()
        if session is None:
            return {'expected': [], 'rows': []}

        records = {
            record.student_id: record
            for record in AttendanceRecord.objects.filter(
                session=session, student__tenant=tenant
            ).select_related('student')
        }

        if session.group_id is None:
            # Разовое занятие без группы: показываем только то, что отмечено
            rows = [
                _row(record.student, record)
                for record in sorted(records.values(), key=lambda r: (r.student.full_name, r.student_id))
            ]
            return {'expected': [], 'rows': rows}

        enrollments = EnrollmentService.get_enrollments_on_date(session.group_id, tenant, session.date)

        expected = []
        rows = []
        seen = set()
        for enrollment in enrollments:
            if enrollment.student_id in seen:
                continue
            seen.add(enrollment.student_id)
            expected.append({'student': enrollment.student, 'enrollment_id': enrollment.pk})
            rows.append(_row(enrollment.student, records.get(enrollment.student_id)))

        return {'expected': expected, 'rows': rows}

    @staticmethod
    def bulk_upsert(session, tenant, entries):
        """
        Проставить посещение сразу нескольким ученикам (одна транзакция).

        Args:
            session: ClassSession организации
            entries: список {'student_id', 'status'}

        Returns:
            int: количество обработанных записей

        Raises:
            ValidationError: неизвестный статус или ученик не из организации
        """
        for entry in entries:
            if not entry.get('student_id') or entry.get('status') not in STATUS_VALUES:
                raise ValidationError(
                    'Each entry must have studentId and status (present, absent, excused, late)'
                )

        student_ids = {entry['student_id'] for entry in entries}
        known = set(
            Student.objects.for_tenant(tenant).filter(pk__in=student_ids).values_list('pk', flat=True)
        )
        unknown = student_ids - known
        if unknown:
            logger.warning(f"Attendance update refused for session {session.pk}: unknown students {sorted(unknown)}")
            raise ValidationError('Student not found in organization')

        with transaction.atomic():
            for entry in entries:
                AttendanceRecord.objects.update_or_create(
                    session=session,
                    student_id=entry['student_id'],
                    defaults={'status': entry['status']},
                )

        logger.info(f"Attendance updated: session {session.pk}, {len(entries)} entries")
        return len(entries)

    @staticmethod
    def sessions_with_missing_attendance(tenant, date_from=None, date_to=None):
        """
        Проведённые групповые занятия, где хотя бы у одного ожидаемого
        ученика нет отметки.

        Returns:
            list[ClassSession]: от новых к старым
        """
        sessions = ClassSession.objects.filter(
            tenant=tenant,
            status=ClassSession.STATUS_HELD,
            group__isnull=False,
        ).select_related('group', 'teacher', 'venue')
        if date_from:
            sessions = sessions.filter(date__gte=date_from)
        if date_to:
            sessions = sessions.filter(date__lte=date_to)

        missing = []
        for session in sessions.order_by('-date', '-start_time', '-id'):
            expected_ids = {
                enrollment.student_id
                for enrollment in EnrollmentService.get_enrollments_on_date(
                    session.group_id, tenant, session.date
                )
            }
            if not expected_ids:
                continue
            recorded_ids = set(
                AttendanceRecord.objects.filter(session=session).values_list('student_id', flat=True)
            )
            if expected_ids - recorded_ids:
                missing.append(session)
        return missing

    @staticmethod
    def student_history(tenant, student, date_from=None, date_to=None):
        """История посещений ученика, новые сверху"""
        records = AttendanceRecord.objects.filter(
            student=student,
            session__tenant=tenant,
        ).select_related('session', 'session__group', 'student')
        if date_from:
            records = records.filter(session__date__gte=date_from)
        if date_to:
            records = records.filter(session__date__lte=date_to)
        return records.order_by('-session__date', '-marked_at')


def _row(student, record):
    return {
        'student': student,
        'status': record.status if record else None,
        'record_id': record.pk if record else None,
        'marked_at': record.marked_at if record else None,
    }
