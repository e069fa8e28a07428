"""
Сериализаторы для посещений: ожидаемый состав занятия, строки журнала,
история ученика.
"""
from rest_framework import serializers

from .models import AttendanceRecord
from .serializers import ClassSessionSerializer, StudentSerializer


class ExpectedStudentSerializer(serializers.Serializer):
    """Ожидаемый ученик: зачисление активно на дату занятия"""
    studentId = serializers.IntegerField(source='student.id')
    student = StudentSerializer()
    enrollmentId = serializers.IntegerField(source='enrollment_id')


class AttendanceRowSerializer(serializers.Serializer):
    """Строка журнала: status = None - «не отмечен»"""
    studentId = serializers.IntegerField(source='student.id')
    student = StudentSerializer()
    status = serializers.CharField(allow_null=True)
    recordId = serializers.IntegerField(source='record_id', allow_null=True)
    markedAt = serializers.DateTimeField(source='marked_at', allow_null=True)


class AttendanceHistorySerializer(serializers.ModelSerializer):
    """Запись посещения вместе с занятием"""
    sessionId = serializers.IntegerField(source='session_id', read_only=True)
    studentId = serializers.IntegerField(source='student_id', read_only=True)
    markedAt = serializers.DateTimeField(source='marked_at', read_only=True)
    session = ClassSessionSerializer(read_only=True)

    class Meta:
        model = AttendanceRecord
        fields = ['id', 'sessionId', 'studentId', 'status', 'markedAt', 'session']
