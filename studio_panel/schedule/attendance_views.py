"""
API посещений.

Endpoints:
- GET   /api/organizations/<org_id>/sessions/<session_id>/attendance/
- PATCH /api/organizations/<org_id>/sessions/<session_id>/attendance/
- GET   /api/organizations/<org_id>/attendance/missing/?dateFrom=&dateTo=
- GET   /api/organizations/<org_id>/students/<student_id>/attendance/?dateFrom=&dateTo=
"""
import logging

from django.core.exceptions import ValidationError
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from .attendance_serializers import (
    AttendanceHistorySerializer,
    AttendanceRowSerializer,
    ExpectedStudentSerializer,
)
from .attendance_service import AttendanceService
from .models import ClassSession, Student
from .serializers import ClassSessionSerializer
from .views import OrganizationAPIView, _query_date

logger = logging.getLogger(__name__)

ENTRY_ERROR = 'Each entry must have studentId and status (present, absent, excused, late)'


def _entries_from_wire(raw_entries):
    """[{studentId, status}] → [{'student_id', 'status'}]"""
    if not isinstance(raw_entries, list):
        raise ValidationError('entries must be an array of { studentId, status }')
    entries = []
    for raw in raw_entries:
        if not isinstance(raw, dict):
            raise ValidationError(ENTRY_ERROR)
        student_id = raw.get('studentId')
        if isinstance(student_id, bool):
            raise ValidationError(ENTRY_ERROR)
        try:
            student_id = int(student_id)
        except (TypeError, ValueError):
            raise ValidationError(ENTRY_ERROR)
        entries.append({'student_id': student_id, 'status': raw.get('status')})
    return entries


class SessionAttendanceView(OrganizationAPIView):
    """Ожидаемый состав занятия и отметки посещения"""

    def _get_session(self, session_id):
        session = ClassSession.objects.for_tenant(self.tenant).filter(pk=session_id).first()
        if session is None:
            raise NotFound('Session not found')
        return session

    def get(self, request, org_id, session_id):
        session = self._get_session(session_id)
        result = AttendanceService.get_expected_and_recorded(self.tenant, session.pk)
        return Response({
            'expected': ExpectedStudentSerializer(result['expected'], many=True).data,
            'rows': AttendanceRowSerializer(result['rows'], many=True).data,
        })

    def patch(self, request, org_id, session_id):
        session = self._get_session(session_id)
        entries = _entries_from_wire(request.data.get('entries'))
        updated = AttendanceService.bulk_upsert(session, self.tenant, entries)
        return Response({'message': 'Attendance updated', 'updated': updated})


class MissingAttendanceView(OrganizationAPIView):
    """Проведённые занятия, где отмечены не все ожидаемые ученики"""

    def get(self, request, org_id):
        sessions = AttendanceService.sessions_with_missing_attendance(
            self.tenant,
            date_from=_query_date(request, 'dateFrom'),
            date_to=_query_date(request, 'dateTo'),
        )
        return Response({'sessions': ClassSessionSerializer(sessions, many=True).data})


class StudentAttendanceView(OrganizationAPIView):
    """История посещений ученика"""

    def get(self, request, org_id, student_id):
        student = Student.objects.for_tenant(self.tenant).filter(pk=student_id).first()
        if student is None:
            raise NotFound('Student not found')
        records = AttendanceService.student_history(
            self.tenant,
            student,
            date_from=_query_date(request, 'dateFrom'),
            date_to=_query_date(request, 'dateTo'),
        )
        return Response({'records': AttendanceHistorySerializer(records, many=True).data})
