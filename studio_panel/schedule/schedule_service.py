"""
Расписание групп: версии расписания, редактирование «только для будущих
занятий» и генерация занятий (ClassSession) из расписания.

Версия расписания (GroupSchedule) действует в интервале
[effective_from, effective_to]. Изменение расписания никогда не трогает
прошлое: текущая версия закрывается датой «накануне», новая открывается
с effective_from. Уже созданные занятия при этом не меняются.
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q, Prefetch
from django.utils import timezone

from .models import ClassSession, Group, GroupSchedule, GroupScheduleSlot
from .recurrence import (
    add_hours_to_time,
    iso_weekday,
    iter_dates,
    parse_duration_hours,
    parse_hhmm,
    parse_iso_date,
    previous_day,
)

logger = logging.getLogger(__name__)

MAX_DURATION_HOURS = 24


def _versions_for_group(group_id, tenant):
    return (
        GroupSchedule.objects.filter(group_id=group_id, tenant=tenant)
        .prefetch_related(
            Prefetch('slots', queryset=GroupScheduleSlot.objects.order_by('sort_order', 'id'))
        )
        .order_by('effective_from', 'id')
    )


def _generation_max_days():
    return getattr(settings, 'SCHEDULE_GENERATION_MAX_DAYS', 366)


# ═══════════════════════════════════════════════════════════════
# ВАЛИДАЦИЯ
# ═══════════════════════════════════════════════════════════════

def validate_schedule_input(recurrence, duration_hours, slots):
    """
    Проверка типа повторения, длительности и слотов.

    Args:
        recurrence: one_time / weekly / twice_weekly
        duration_hours: длительность одного занятия в часах
        slots: список dict {'day_of_week', 'start_time'}

    Returns:
        tuple(Decimal, list[dict]): нормализованные длительность и слоты
            (start_time → datetime.time, sort_order = позиция в списке)

    Raises:
        ValidationError: с сообщением для пользователя
    """
    if recurrence not in GroupSchedule.SLOT_COUNTS:
        raise ValidationError('Recurrence must be one_time, weekly, or twice_weekly')

    try:
        duration = parse_duration_hours(duration_hours)
    except ValueError:
        raise ValidationError('Duration per session (hours) is required and must be positive')
    if duration <= 0:
        raise ValidationError('Duration per session (hours) is required and must be positive')
    if duration > MAX_DURATION_HOURS:
        raise ValidationError(f'Duration per session (hours) must not exceed {MAX_DURATION_HOURS}')
    # Хранится с точностью 0.01: значение, округляющееся до нуля, тоже отклоняем
    duration = duration.quantize(Decimal('0.01'))
    if duration <= 0:
        raise ValidationError('Duration per session (hours) is required and must be positive')

    slot_list = slots if isinstance(slots, (list, tuple)) else []
    if len(slot_list) != GroupSchedule.SLOT_COUNTS[recurrence]:
        if recurrence == GroupSchedule.RECURRENCE_TWICE_WEEKLY:
            raise ValidationError('Twice-weekly schedule must have exactly two slots')
        raise ValidationError('Weekly and one-time schedules must have exactly one slot')

    normalized = []
    for index, slot in enumerate(slot_list):
        number = index + 1
        if not isinstance(slot, dict):
            raise ValidationError(f'Slot {number}: dayOfWeek must be 1–7 (Monday–Sunday)')

        day = slot.get('day_of_week')
        if isinstance(day, bool) or not isinstance(day, int) or not 1 <= day <= 7:
            raise ValidationError(f'Slot {number}: dayOfWeek must be 1–7 (Monday–Sunday)')

        try:
            start = parse_hhmm(slot.get('start_time'))
        except ValueError:
            raise ValidationError(f'Slot {number}: startTime must be HH:mm')

        normalized.append({'day_of_week': day, 'start_time': start, 'sort_order': index})

    return duration, normalized


def parse_generation_window(from_value, to_value):
    """
    Разбор окна генерации {from, to}.

    Raises:
        ValidationError: нет дат, некорректные даты, from > to или окно
            длиннее SCHEDULE_GENERATION_MAX_DAYS
    """
    try:
        from_date = parse_iso_date(from_value)
        to_date = parse_iso_date(to_value)
    except ValueError:
        raise ValidationError('from and to (YYYY-MM-DD) are required')
    check_generation_window(from_date, to_date)
    return from_date, to_date


def check_generation_window(from_date, to_date):
    if from_date > to_date:
        raise ValidationError('from must not be after to')
    max_days = _generation_max_days()
    if (to_date - from_date).days + 1 > max_days:
        raise ValidationError(f'Generation window must not exceed {max_days} days')


# ═══════════════════════════════════════════════════════════════
# ВЕРСИИ РАСПИСАНИЯ
# ═══════════════════════════════════════════════════════════════

class ScheduleService:
    """Хранилище версий расписания и редактор расписания группы"""

    @staticmethod
    def get_active_versions(group_id, tenant, as_of=None):
        """
        Версии, действующие на дату as_of (по умолчанию сегодня).

        В нормальном состоянии - не больше одной.

        Returns:
            list[GroupSchedule]: со слотами в порядке sort_order
        """
        as_of = as_of or timezone.localdate()
        return list(
            _versions_for_group(group_id, tenant)
            .filter(effective_from__lte=as_of)
            .filter(Q(effective_to__isnull=True) | Q(effective_to__gte=as_of))
        )

    @staticmethod
    def get_versions_overlapping_window(group_id, tenant, from_date, to_date):
        """Все версии, пересекающие окно [from_date, to_date]"""
        return list(
            _versions_for_group(group_id, tenant)
            .filter(effective_from__lte=to_date)
            .filter(Q(effective_to__isnull=True) | Q(effective_to__gte=from_date))
        )

    @staticmethod
    def upsert_schedule(group, tenant, recurrence, duration_hours, effective_from, slots,
                        effective_to=None, apply_to_future_only=False):
        """
        Создать новую версию расписания группы.

        Все проверки выполняются до первой записи в БД.

        apply_to_future_only=True: версии, доходящие до effective_from или дальше,
        закрываются датой effective_from - 1 день. Это единственное изменение,
        которое когда-либо вносится в существующую версию.

        apply_to_future_only=False: новая версия не должна пересекаться
        с существующими.

        Returns:
            GroupSchedule: новая версия со слотами

        Raises:
            ValidationError: некорректные данные или конфликт версий
        """
        duration, normalized_slots = validate_schedule_input(recurrence, duration_hours, slots)
        if effective_from is None:
            raise ValidationError('effectiveFrom (YYYY-MM-DD) is required')
        if effective_to is not None and effective_to < effective_from:
            raise ValidationError('effectiveTo must not be before effectiveFrom')

        with transaction.atomic():
            # Блокировка строки группы сериализует правки расписания одной группы
            Group.objects.select_for_update().get(pk=group.pk, tenant=tenant)

            reaching = list(
                GroupSchedule.objects.select_for_update()
                .filter(group=group, tenant=tenant)
                .filter(Q(effective_to__isnull=True) | Q(effective_to__gte=effective_from))
                .order_by('effective_from', 'id')
            )

            if apply_to_future_only:
                close_on = previous_day(effective_from)
                for version in reaching:
                    if version.effective_from > close_on:
                        logger.warning(
                            f"Schedule edit refused for group {group.pk}: version {version.pk} "
                            f"starts {version.effective_from}, not before {effective_from}"
                        )
                        raise ValidationError(
                            f'A schedule version already starts on {version.effective_from}; '
                            f'effectiveFrom must be after it'
                        )
                for version in reaching:
                    version.effective_to = close_on
                    version.save(update_fields=['effective_to'])
                    logger.info(
                        f"Schedule version {version.pk} of group {group.pk} closed on {close_on}"
                    )
            else:
                overlapping = [
                    version for version in reaching
                    if effective_to is None or version.effective_from <= effective_to
                ]
                if overlapping:
                    logger.warning(
                        f"Schedule edit refused for group {group.pk}: overlaps version {overlapping[0].pk}"
                    )
                    raise ValidationError(
                        'Schedule overlaps an existing schedule version; '
                        'set applyToFutureOnly to replace it from effectiveFrom'
                    )

            schedule = GroupSchedule.objects.create(
                tenant=tenant,
                group=group,
                recurrence=recurrence,
                duration_hours=duration,
                effective_from=effective_from,
                effective_to=effective_to,
            )
            GroupScheduleSlot.objects.bulk_create([
                GroupScheduleSlot(schedule=schedule, **slot) for slot in normalized_slots
            ])

        if recurrence == GroupSchedule.RECURRENCE_ONE_TIME and effective_to != effective_from:
            # Разовая версия на несколько недель даст занятие в каждую неделю
            logger.warning(
                f"One-time schedule {schedule.pk} of group {group.pk} spans "
                f"{effective_from} – {effective_to or 'open end'}"
            )

        logger.info(
            f"Schedule version {schedule.pk} created for group {group.pk}: "
            f"{recurrence}, {duration}h from {effective_from}"
        )
        return _versions_for_group(group.pk, tenant).get(pk=schedule.pk)


# ═══════════════════════════════════════════════════════════════
# ГЕНЕРАЦИЯ ЗАНЯТИЙ
# ═══════════════════════════════════════════════════════════════

def plan_sessions(group, versions, existing_keys, from_date, to_date):
    """
    Занятия, которые нужно создать в окне [from_date, to_date].

    Args:
        group: Group (teacher / venue наследуются занятиями)
        versions: версии расписания со слотами
        existing_keys: множество (date, start_time) уже существующих занятий
        from_date, to_date: окно, включительно

    Returns:
        list[ClassSession]: несохранённые объекты
    """
    keys = set(existing_keys)
    planned = []
    for current_date in iter_dates(from_date, to_date):
        weekday = iso_weekday(current_date)
        for version in versions:
            if not version.covers(current_date):
                continue
            for slot in version.slots.all():
                if slot.day_of_week != weekday:
                    continue
                key = (current_date, slot.start_time)
                if key in keys:
                    continue
                keys.add(key)
                planned.append(ClassSession(
                    tenant_id=group.tenant_id,
                    group=group,
                    teacher_id=group.teacher_id,
                    venue_id=group.venue_id,
                    date=current_date,
                    start_time=slot.start_time,
                    end_time=add_hours_to_time(slot.start_time, version.duration_hours),
                    status=ClassSession.STATUS_SCHEDULED,
                ))
    return planned


class SessionGenerator:
    """Создание занятий группы из её версий расписания"""

    @staticmethod
    def generate_sessions(group_id, tenant, from_date, to_date, dry_run=False):
        """
        Создать недостающие занятия группы в окне [from_date, to_date].

        Повторный вызов с тем же окном ничего не создаёт: занятие с той же
        парой (дата, время начала) уже есть.

        Returns:
            int: количество созданных (при dry_run - запланированных) занятий.
                 Неизвестная группа → 0.

        Raises:
            ValidationError: from_date > to_date или слишком длинное окно
        """
        check_generation_window(from_date, to_date)

        with transaction.atomic():
            group = (
                Group.objects.select_for_update()
                .filter(pk=group_id, tenant=tenant)
                .first()
            )
            if group is None:
                logger.warning(f"Session generation skipped: group {group_id} not found")
                return 0

            versions = ScheduleService.get_versions_overlapping_window(
                group.pk, tenant, from_date, to_date
            )
            existing_keys = set(
                ClassSession.objects.filter(
                    tenant=tenant,
                    group=group,
                    date__gte=from_date,
                    date__lte=to_date,
                ).values_list('date', 'start_time')
            )

            planned = plan_sessions(group, versions, existing_keys, from_date, to_date)
            if planned and not dry_run:
                ClassSession.objects.bulk_create(planned)

        logger.info(
            f"{'Planned' if dry_run else 'Generated'} {len(planned)} sessions for group "
            f"{group.pk} ({from_date} – {to_date})"
        )
        return len(planned)

    @staticmethod
    def default_window(start_date):
        """Окно генерации по умолчанию: SCHEDULE_DEFAULT_GENERATION_DAYS дней от start_date"""
        days = getattr(settings, 'SCHEDULE_DEFAULT_GENERATION_DAYS', 30)
        return start_date, start_date + timedelta(days=days - 1)
