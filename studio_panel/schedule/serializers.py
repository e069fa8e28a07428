from rest_framework import serializers

from tenants.serializers import TenantPrimaryKeyRelatedField
from .models import (
    Venue, Teacher, Student, Group, Enrollment,
    GroupSchedule, GroupScheduleSlot, ClassSession,
)

TIME_FORMAT = '%H:%M'


class VenueSerializer(serializers.ModelSerializer):
    """Сериализатор для зала"""
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Venue
        fields = ['id', 'name', 'address', 'createdAt']


class TeacherSerializer(serializers.ModelSerializer):
    """Сериализатор для преподавателя"""
    fullName = serializers.CharField(source='full_name', max_length=200)
    userId = serializers.PrimaryKeyRelatedField(source='user', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Teacher
        fields = ['id', 'fullName', 'email', 'phone', 'userId', 'createdAt']


class StudentSerializer(serializers.ModelSerializer):
    """Сериализатор для ученика"""
    fullName = serializers.CharField(source='full_name', max_length=200)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Student
        fields = ['id', 'fullName', 'email', 'phone', 'createdAt']


class GroupSerializer(serializers.ModelSerializer):
    """Сериализатор для группы"""
    teacherId = TenantPrimaryKeyRelatedField(
        source='teacher',
        queryset=Teacher.objects.all(),
        error_messages={
            'required': 'Teacher is required',
            'does_not_exist': 'Teacher not found or does not belong to organization',
        },
    )
    teacherName = serializers.CharField(source='teacher.full_name', read_only=True)
    venueId = TenantPrimaryKeyRelatedField(
        source='venue',
        queryset=Venue.objects.all(),
        required=False,
        allow_null=True,
        error_messages={'does_not_exist': 'Venue not found or does not belong to organization'},
    )
    startedAt = serializers.DateTimeField(source='started_at', required=False, allow_null=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Group
        fields = [
            'id', 'name', 'status',
            'teacherId', 'teacherName', 'venueId',
            'startedAt', 'createdAt', 'updatedAt',
        ]


class EnrollmentSerializer(serializers.ModelSerializer):
    """Зачисление ученика в группу (интервал дат)"""
    studentId = TenantPrimaryKeyRelatedField(
        source='student',
        queryset=Student.objects.all(),
        error_messages={'does_not_exist': 'Student not found or does not belong to organization'},
    )
    groupId = serializers.PrimaryKeyRelatedField(source='group', read_only=True)
    student = StudentSerializer(read_only=True)
    startDate = serializers.DateField(source='start_date')
    endDate = serializers.DateField(source='end_date', required=False, allow_null=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Enrollment
        fields = ['id', 'studentId', 'groupId', 'student', 'startDate', 'endDate', 'createdAt']

    def validate(self, attrs):
        start = attrs.get('start_date') or getattr(self.instance, 'start_date', None)
        end = attrs.get('end_date')
        if start and end and end < start:
            raise serializers.ValidationError('endDate must not be before startDate')
        return attrs


class MoveStudentSerializer(serializers.Serializer):
    """Перевод ученика между группами"""
    fromGroupId = TenantPrimaryKeyRelatedField(
        queryset=Group.objects.all(),
        not_found_as_404=True,
        error_messages={'does_not_exist': 'Group not found'},
    )
    toGroupId = TenantPrimaryKeyRelatedField(
        queryset=Group.objects.all(),
        not_found_as_404=True,
        error_messages={'does_not_exist': 'Group not found'},
    )
    startDate = serializers.DateField()
    endDate = serializers.DateField(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs['fromGroupId'].pk == attrs['toGroupId'].pk:
            raise serializers.ValidationError('Target group must differ from the current group')
        end_date = attrs.get('endDate')
        if end_date and end_date > attrs['startDate']:
            raise serializers.ValidationError('End date must be before or equal to start date')
        return attrs


# ═══════════════════════════════════════════════════════════════
# РАСПИСАНИЕ
# ═══════════════════════════════════════════════════════════════

class GroupScheduleSlotSerializer(serializers.ModelSerializer):
    dayOfWeek = serializers.IntegerField(source='day_of_week')
    startTime = serializers.TimeField(source='start_time', format=TIME_FORMAT)
    sortOrder = serializers.IntegerField(source='sort_order')

    class Meta:
        model = GroupScheduleSlot
        fields = ['dayOfWeek', 'startTime', 'sortOrder']


class GroupScheduleSerializer(serializers.ModelSerializer):
    """Версия расписания со слотами (только чтение)"""
    groupId = serializers.IntegerField(source='group_id', read_only=True)
    durationHours = serializers.FloatField(source='duration_hours')
    effectiveFrom = serializers.DateField(source='effective_from')
    effectiveTo = serializers.DateField(source='effective_to', allow_null=True)
    slots = GroupScheduleSlotSerializer(many=True, read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = GroupSchedule
        fields = [
            'id', 'groupId', 'recurrence', 'durationHours',
            'effectiveFrom', 'effectiveTo', 'slots', 'createdAt',
        ]
        read_only_fields = fields


# ═══════════════════════════════════════════════════════════════
# ЗАНЯТИЯ
# ═══════════════════════════════════════════════════════════════

class ClassSessionSerializer(serializers.ModelSerializer):
    """
    Занятие на дату.

    Ссылки на группу / зал / преподавателя другой организации → 404.
    """
    groupId = TenantPrimaryKeyRelatedField(
        source='group',
        queryset=Group.objects.all(),
        required=False,
        allow_null=True,
        not_found_as_404=True,
        error_messages={'does_not_exist': 'Group not found'},
    )
    groupName = serializers.CharField(source='group.name', read_only=True, allow_null=True)
    venueId = TenantPrimaryKeyRelatedField(
        source='venue',
        queryset=Venue.objects.all(),
        required=False,
        allow_null=True,
        not_found_as_404=True,
        error_messages={'does_not_exist': 'Venue not found or does not belong to organization'},
    )
    teacherId = TenantPrimaryKeyRelatedField(
        source='teacher',
        queryset=Teacher.objects.all(),
        not_found_as_404=True,
        error_messages={
            'required': 'Teacher is required',
            'null': 'Teacher is required',
            'does_not_exist': 'Teacher not found or does not belong to organization',
        },
    )
    teacherName = serializers.CharField(source='teacher.full_name', read_only=True)
    date = serializers.DateField(error_messages={'required': 'Date is required', 'null': 'Date is required'})
    startTime = serializers.TimeField(
        source='start_time', format=TIME_FORMAT, input_formats=[TIME_FORMAT],
        required=False, allow_null=True,
    )
    endTime = serializers.TimeField(
        source='end_time', format=TIME_FORMAT, input_formats=[TIME_FORMAT],
        required=False, allow_null=True,
    )
    status = serializers.ChoiceField(
        choices=ClassSession.STATUS_CHOICES,
        required=False,
        error_messages={'invalid_choice': 'Status must be scheduled, held, or cancelled'},
    )
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = ClassSession
        fields = [
            'id', 'groupId', 'groupName', 'venueId',
            'teacherId', 'teacherName',
            'date', 'startTime', 'endTime', 'status',
            'createdAt', 'updatedAt',
        ]

    def validate(self, attrs):
        # Сравниваем только время из запроса: сохранённое занятие может
        # переходить через полночь (23:00 → 00:30)
        start = attrs.get('start_time')
        end = attrs.get('end_time')
        if start and end and start >= end:
            raise serializers.ValidationError('Start time must be before end time')
        return attrs


class SessionStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=ClassSession.STATUS_CHOICES,
        error_messages={
            'required': 'Status must be scheduled, held, or cancelled',
            'invalid_choice': 'Status must be scheduled, held, or cancelled',
        },
    )
