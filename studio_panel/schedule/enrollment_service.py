"""
Сервис зачислений учеников в группы.

Зачисление - интервал дат [start_date, end_date]. Строки никогда не удаляются:
уход из группы фиксируется датой окончания, поэтому по любой прошлой дате
можно восстановить состав группы.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from .models import Enrollment

logger = logging.getLogger(__name__)


def active_on(on_date):
    """Q-условие «зачисление активно на дату»"""
    return Q(start_date__lte=on_date) & (Q(end_date__isnull=True) | Q(end_date__gte=on_date))


class EnrollmentService:
    """Запросы и изменения интервалов зачисления"""

    @staticmethod
    def get_enrollments_on_date(group_id, tenant, on_date):
        """
        Кто был зачислен в группу на дату.

        start_date <= on_date AND (end_date IS NULL OR end_date >= on_date);
        ученик и группа должны принадлежать организации.

        Returns:
            list[Enrollment]: с подгруженным student, по ФИО
        """
        return list(
            Enrollment.objects.filter(
                active_on(on_date),
                group_id=group_id,
                group__tenant=tenant,
                student__tenant=tenant,
            )
            .select_related('student')
            .order_by('student__full_name', 'id')
        )

    @staticmethod
    def get_active_enrollments(group_id, tenant):
        """Текущий состав группы (на сегодня)"""
        return EnrollmentService.get_enrollments_on_date(group_id, tenant, timezone.localdate())

    @staticmethod
    def create_enrollment(tenant, student, group, start_date, end_date=None):
        """
        Зачислить ученика в группу.

        Raises:
            ValidationError: чужая организация или end_date раньше start_date
        """
        if student.tenant_id != tenant.pk or group.tenant_id != tenant.pk:
            raise ValidationError('Student and group must belong to the organization')
        if end_date and end_date < start_date:
            raise ValidationError('endDate must not be before startDate')

        enrollment = Enrollment.objects.create(
            student=student,
            group=group,
            start_date=start_date,
            end_date=end_date,
        )
        logger.info(
            f"Enrollment created: student {student.pk} → group {group.pk} from {start_date}"
        )
        return enrollment

    @staticmethod
    def end_enrollment(enrollment, end_date):
        """Завершить зачисление (строка остаётся в истории)"""
        if end_date < enrollment.start_date:
            raise ValidationError('endDate must not be before startDate')
        enrollment.end_date = end_date
        enrollment.save(update_fields=['end_date'])
        logger.info(f"Enrollment {enrollment.pk} ended on {end_date}")
        return enrollment

    @staticmethod
    def move_student(tenant, student, from_group, to_group, start_date, end_date=None):
        """
        Перевести ученика из одной группы в другую.

        Открытое зачисление в from_group закрывается датой end_date
        (по умолчанию start_date), в to_group открывается новое с start_date.

        Returns:
            tuple[Enrollment, Enrollment]: (закрытое, созданное)

        Raises:
            ValidationError: нет активного зачисления в from_group
        """
        end_value = end_date or start_date

        with transaction.atomic():
            current = (
                Enrollment.objects.select_for_update()
                .filter(student=student, group=from_group, group__tenant=tenant)
                .filter(Q(end_date__isnull=True) | Q(end_date__gte=end_value))
                .order_by('-start_date', '-id')
                .first()
            )
            if current is None:
                raise ValidationError('No active enrollment found to end')

            ended = EnrollmentService.end_enrollment(current, end_value)
            created = EnrollmentService.create_enrollment(tenant, student, to_group, start_date)

        logger.info(
            f"Student {student.pk} moved: group {from_group.pk} → group {to_group.pk} on {start_date}"
        )
        return ended, created
