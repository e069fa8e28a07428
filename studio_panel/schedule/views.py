"""
API расписания и занятий организации.

Все endpoints живут под /api/organizations/<org_id>/ и требуют членства
в организации. Ошибки валидации сервисов (django ValidationError)
превращаются в 400 {'error': ...} общим обработчиком исключений.
"""
import logging

from django.core.exceptions import ValidationError
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from tenants.mixins import OrganizationScopedMixin, TenantViewSetMixin
from tenants.permissions import IsTenantAdmin, IsTenantMember
from .enrollment_service import EnrollmentService
from .models import Venue, Teacher, Student, Group, Enrollment, ClassSession
from .recurrence import parse_iso_date
from .schedule_service import (
    ScheduleService,
    SessionGenerator,
    check_generation_window,
    parse_generation_window,
)
from .serializers import (
    VenueSerializer,
    TeacherSerializer,
    StudentSerializer,
    GroupSerializer,
    EnrollmentSerializer,
    MoveStudentSerializer,
    GroupScheduleSerializer,
    ClassSessionSerializer,
    SessionStatusSerializer,
)

logger = logging.getLogger(__name__)


def _query_date(request, name):
    """Дата из query-параметра (или None). Некорректная дата → 400."""
    raw = request.query_params.get(name)
    if not raw:
        return None
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f'{name} must be a date (YYYY-MM-DD)')


def _query_int(request, name):
    raw = request.query_params.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be an integer')


def _body_date(value, message, required=True):
    if value in (None, ''):
        if required:
            raise ValidationError(message)
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(message)


def _coerce_day(value):
    """dayOfWeek из JSON: 3, 3.0 и "3" → 3; остальное отдаём валидатору как есть"""
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


def _slots_from_wire(raw_slots):
    if not isinstance(raw_slots, list):
        return raw_slots
    slots = []
    for raw in raw_slots:
        if not isinstance(raw, dict):
            slots.append(raw)
            continue
        slots.append({
            'day_of_week': _coerce_day(raw.get('dayOfWeek')),
            'start_time': raw.get('startTime'),
        })
    return slots


def get_group_or_404(tenant, group_id):
    group = Group.objects.for_tenant(tenant).filter(pk=group_id).select_related('teacher', 'venue').first()
    if group is None:
        raise NotFound('Group not found')
    return group


class OrganizationAPIView(OrganizationScopedMixin, APIView):
    """APIView в контексте организации из URL"""
    permission_classes = [IsAuthenticated, IsTenantMember]


class AdminDestroyMixin:
    """Удаление - только владельцу / администратору организации"""

    def get_permissions(self):
        if self.action == 'destroy':
            return [IsAuthenticated(), IsTenantMember(), IsTenantAdmin()]
        return super().get_permissions()


# ═══════════════════════════════════════════════════════════════
# РАСПИСАНИЕ ГРУППЫ
# ═══════════════════════════════════════════════════════════════

class GroupScheduleView(OrganizationAPIView):
    """
    GET   /api/organizations/<org_id>/groups/<group_id>/schedule/[?from=&to=]
    PATCH /api/organizations/<org_id>/groups/<group_id>/schedule/

    Без from/to - версии, действующие сегодня; с обоими - пересекающие окно.
    """

    def get(self, request, org_id, group_id):
        group = get_group_or_404(self.tenant, group_id)
        from_date = _query_date(request, 'from')
        to_date = _query_date(request, 'to')

        if from_date and to_date:
            versions = ScheduleService.get_versions_overlapping_window(
                group.pk, self.tenant, from_date, to_date
            )
        else:
            versions = ScheduleService.get_active_versions(group.pk, self.tenant)

        return Response({'schedules': GroupScheduleSerializer(versions, many=True).data})

    def patch(self, request, org_id, group_id):
        group = get_group_or_404(self.tenant, group_id)
        data = request.data

        effective_from = _body_date(
            data.get('effectiveFrom'), 'effectiveFrom (YYYY-MM-DD) is required', required=False
        )
        effective_to = _body_date(
            data.get('effectiveTo'), 'effectiveTo must be a date (YYYY-MM-DD)', required=False
        )

        # Окно генерации проверяем до записи расписания
        generate_window = None
        if data.get('generateSessions') and data.get('generateFrom') and data.get('generateTo'):
            generate_from = _body_date(data.get('generateFrom'), 'generateFrom must be a date (YYYY-MM-DD)')
            generate_to = _body_date(data.get('generateTo'), 'generateTo must be a date (YYYY-MM-DD)')
            if generate_from <= generate_to:
                check_generation_window(generate_from, generate_to)
                generate_window = (generate_from, generate_to)

        schedule = ScheduleService.upsert_schedule(
            group,
            self.tenant,
            recurrence=data.get('recurrence'),
            duration_hours=data.get('durationHours'),
            effective_from=effective_from,
            effective_to=effective_to,
            apply_to_future_only=bool(data.get('applyToFutureOnly')),
            slots=_slots_from_wire(data.get('slots')),
        )

        generated = 0
        if generate_window:
            generated = SessionGenerator.generate_sessions(group.pk, self.tenant, *generate_window)

        return Response({
            'schedule': GroupScheduleSerializer(schedule).data,
            'generatedSessions': generated,
        })


class GroupScheduleGenerateView(OrganizationAPIView):
    """
    POST /api/organizations/<org_id>/groups/<group_id>/schedule/generate/
    Body: {from, to} → {created}
    """

    def post(self, request, org_id, group_id):
        group = get_group_or_404(self.tenant, group_id)
        from_date, to_date = parse_generation_window(request.data.get('from'), request.data.get('to'))
        created = SessionGenerator.generate_sessions(group.pk, self.tenant, from_date, to_date)
        return Response({'created': created})


# ═══════════════════════════════════════════════════════════════
# ЗАНЯТИЯ
# ═══════════════════════════════════════════════════════════════

def filter_sessions(queryset, request):
    """Фильтры списка занятий из query-параметров"""
    group_id = _query_int(request, 'groupId')
    teacher_id = _query_int(request, 'teacherId')
    venue_id = _query_int(request, 'venueId')
    date_from = _query_date(request, 'dateFrom')
    date_to = _query_date(request, 'dateTo')
    status_value = request.query_params.get('status')

    if group_id is not None:
        queryset = queryset.filter(group_id=group_id)
    if teacher_id is not None:
        queryset = queryset.filter(teacher_id=teacher_id)
    if venue_id is not None:
        queryset = queryset.filter(venue_id=venue_id)
    if date_from:
        queryset = queryset.filter(date__gte=date_from)
    if date_to:
        queryset = queryset.filter(date__lte=date_to)
    if status_value:
        if status_value not in dict(ClassSession.STATUS_CHOICES):
            raise ValidationError('Status must be scheduled, held, or cancelled')
        queryset = queryset.filter(status=status_value)
    return queryset.order_by('date', 'start_time', 'id')


class ClassSessionViewSet(AdminDestroyMixin, TenantViewSetMixin, viewsets.ModelViewSet):
    """
    /api/organizations/<org_id>/sessions/

    - GET    ?groupId=&teacherId=&venueId=&dateFrom=&dateTo=&status=
    - POST   создать занятие (teacherId, date обязательны)
    - GET/PATCH/DELETE <id>/  (DELETE → 409, если есть отметки посещения)
    - PATCH  <id>/status/
    """
    queryset = ClassSession.objects.select_related('group', 'teacher', 'venue')
    serializer_class = ClassSessionSerializer
    permission_classes = [IsAuthenticated, IsTenantMember]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action == 'list':
            queryset = filter_sessions(queryset, self.request)
        return queryset

    def get_object(self):
        session = self.get_queryset().filter(pk=self.kwargs.get('pk')).first()
        if session is None:
            raise NotFound('Session not found')
        self.check_object_permissions(self.request, session)
        return session

    def perform_create(self, serializer):
        session = serializer.save(tenant=self.tenant)
        logger.info(f"Session {session.pk} created in organization {self.tenant.slug} on {session.date}")

    def destroy(self, request, *args, **kwargs):
        session = self.get_object()
        if session.attendance_records.exists():
            logger.warning(f"Session {session.pk} delete refused: has attendance records")
            return Response(
                {'error': 'Session has attendance records; remove or migrate them before deleting the session'},
                status=status.HTTP_409_CONFLICT,
            )
        session_id = session.pk
        session.delete()
        logger.info(f"Session {session_id} deleted in organization {self.tenant.slug}")
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['patch'], url_path='status')
    def set_status(self, request, *args, **kwargs):
        session = self.get_object()
        serializer = SessionStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session.status = serializer.validated_data['status']
        session.save(update_fields=['status', 'updated_at'])
        logger.info(f"Session {session.pk} status → {session.status}")
        return Response(ClassSessionSerializer(session).data)


class GroupSessionsView(OrganizationAPIView):
    """
    GET  /api/organizations/<org_id>/groups/<group_id>/sessions/
    POST /api/organizations/<org_id>/groups/<group_id>/sessions/

    При создании преподаватель и зал по умолчанию берутся из группы.
    """

    def get(self, request, org_id, group_id):
        group = get_group_or_404(self.tenant, group_id)
        sessions = filter_sessions(
            ClassSession.objects.filter(tenant=self.tenant, group=group).select_related('group', 'teacher', 'venue'),
            request,
        )
        return Response({'sessions': ClassSessionSerializer(sessions, many=True).data})

    def post(self, request, org_id, group_id):
        group = get_group_or_404(self.tenant, group_id)
        data = dict(request.data.items())
        data['groupId'] = group.pk
        data.setdefault('teacherId', group.teacher_id)
        data.setdefault('venueId', group.venue_id)

        serializer = ClassSessionSerializer(data=data, context={'tenant': self.tenant, 'request': request})
        serializer.is_valid(raise_exception=True)
        session = serializer.save(tenant=self.tenant)
        logger.info(f"Session {session.pk} created for group {group.pk} on {session.date}")
        return Response(ClassSessionSerializer(session).data, status=status.HTTP_201_CREATED)


# ═══════════════════════════════════════════════════════════════
# СПРАВОЧНИКИ
# ═══════════════════════════════════════════════════════════════

class VenueViewSet(AdminDestroyMixin, TenantViewSetMixin, viewsets.ModelViewSet):
    queryset = Venue.objects.all()
    serializer_class = VenueSerializer
    permission_classes = [IsAuthenticated, IsTenantMember]


class TeacherViewSet(AdminDestroyMixin, TenantViewSetMixin, viewsets.ModelViewSet):
    queryset = Teacher.objects.all()
    serializer_class = TeacherSerializer
    permission_classes = [IsAuthenticated, IsTenantMember]


class StudentViewSet(AdminDestroyMixin, TenantViewSetMixin, viewsets.ModelViewSet):
    queryset = Student.objects.all()
    serializer_class = StudentSerializer
    permission_classes = [IsAuthenticated, IsTenantMember]

    def get_queryset(self):
        queryset = super().get_queryset()
        search = self.request.query_params.get('search')
        if search:
            queryset = queryset.filter(full_name__icontains=search)
        return queryset


class GroupViewSet(AdminDestroyMixin, TenantViewSetMixin, viewsets.ModelViewSet):
    queryset = Group.objects.select_related('teacher', 'venue')
    serializer_class = GroupSerializer
    permission_classes = [IsAuthenticated, IsTenantMember]

    def get_queryset(self):
        queryset = super().get_queryset()
        status_value = self.request.query_params.get('status')
        if status_value:
            queryset = queryset.filter(status=status_value)
        return queryset

    def destroy(self, request, *args, **kwargs):
        group = self.get_object()
        active = EnrollmentService.get_active_enrollments(group.pk, self.tenant)
        if active:
            logger.warning(f"Group {group.pk} delete refused: {len(active)} active enrollments")
            return Response(
                {
                    'error': 'Cannot delete group with active enrollments',
                    'activeEnrollmentsCount': len(active),
                },
                status=status.HTTP_400_BAD_REQUEST,
            )
        group_id = group.pk
        group.delete()
        logger.info(f"Group {group_id} deleted in organization {self.tenant.slug}")
        return Response(status=status.HTTP_204_NO_CONTENT)


# ═══════════════════════════════════════════════════════════════
# ЗАЧИСЛЕНИЯ
# ═══════════════════════════════════════════════════════════════

class GroupEnrollmentsView(OrganizationAPIView):
    """
    GET  /api/organizations/<org_id>/groups/<group_id>/enrollments/[?activeOn=YYYY-MM-DD]
    POST /api/organizations/<org_id>/groups/<group_id>/enrollments/  {studentId, startDate, endDate?}
    """

    def get(self, request, org_id, group_id):
        group = get_group_or_404(self.tenant, group_id)
        active_on = _query_date(request, 'activeOn')
        if active_on:
            enrollments = EnrollmentService.get_enrollments_on_date(group.pk, self.tenant, active_on)
        else:
            enrollments = group.enrollments.select_related('student').order_by('start_date', 'id')
        return Response({'enrollments': EnrollmentSerializer(enrollments, many=True).data})

    def post(self, request, org_id, group_id):
        group = get_group_or_404(self.tenant, group_id)
        serializer = EnrollmentSerializer(data=request.data, context={'tenant': self.tenant})
        serializer.is_valid(raise_exception=True)
        enrollment = EnrollmentService.create_enrollment(
            self.tenant,
            serializer.validated_data['student'],
            group,
            serializer.validated_data['start_date'],
            serializer.validated_data.get('end_date'),
        )
        return Response(EnrollmentSerializer(enrollment).data, status=status.HTTP_201_CREATED)


class EnrollmentDetailView(OrganizationAPIView):
    """
    PATCH /api/organizations/<org_id>/groups/<group_id>/enrollments/<enrollment_id>/  {endDate}

    Зачисление не удаляется - только завершается датой.
    """

    def patch(self, request, org_id, group_id, enrollment_id):
        group = get_group_or_404(self.tenant, group_id)
        enrollment = Enrollment.objects.filter(pk=enrollment_id, group=group).select_related('student').first()
        if enrollment is None:
            raise NotFound('Enrollment not found')
        end_date = _body_date(request.data.get('endDate'), 'endDate (YYYY-MM-DD) is required')
        EnrollmentService.end_enrollment(enrollment, end_date)
        return Response(EnrollmentSerializer(enrollment).data)


class StudentEnrollmentsView(OrganizationAPIView):
    """GET /api/organizations/<org_id>/students/<student_id>/enrollments/"""

    def get(self, request, org_id, student_id):
        student = Student.objects.for_tenant(self.tenant).filter(pk=student_id).first()
        if student is None:
            raise NotFound('Student not found')
        enrollments = student.enrollments.select_related('student', 'group').order_by('-start_date', '-id')
        return Response({'enrollments': EnrollmentSerializer(enrollments, many=True).data})


class MoveStudentView(OrganizationAPIView):
    """
    POST /api/organizations/<org_id>/students/<student_id>/enrollments/move/
    Body: {fromGroupId, toGroupId, startDate, endDate?}
    """

    def post(self, request, org_id, student_id):
        student = Student.objects.for_tenant(self.tenant).filter(pk=student_id).first()
        if student is None:
            raise NotFound('Student not found')

        serializer = MoveStudentSerializer(data=request.data, context={'tenant': self.tenant})
        serializer.is_valid(raise_exception=True)
        ended, created = EnrollmentService.move_student(
            self.tenant,
            student,
            serializer.validated_data['fromGroupId'],
            serializer.validated_data['toGroupId'],
            serializer.validated_data['startDate'],
            serializer.validated_data.get('endDate'),
        )
        return Response({
            'ended': EnrollmentSerializer(ended).data,
            'enrollment': EnrollmentSerializer(created).data,
        }, status=status.HTTP_201_CREATED)
