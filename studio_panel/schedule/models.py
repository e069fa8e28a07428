from django.db import models
from django.db.models import Q, F
from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from tenants.mixins import TenantModelMixin
from .recurrence import format_hhmm


class Venue(TenantModelMixin, models.Model):
    """Зал / площадка"""

    name = models.CharField(_('название'), max_length=200)
    address = models.CharField(_('адрес'), max_length=300, blank=True)
    created_at = models.DateTimeField(_('дата создания'), auto_now_add=True)

    class Meta:
        verbose_name = _('зал')
        verbose_name_plural = _('залы')
        ordering = ['name']

    def __str__(self):
        return self.name


class Teacher(TenantModelMixin, models.Model):
    """Преподаватель организации (может быть привязан к пользователю)"""

    full_name = models.CharField(_('ФИО'), max_length=200)
    email = models.EmailField(_('email'), blank=True)
    phone = models.CharField(_('телефон'), max_length=30, blank=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='teacher_profiles',
        verbose_name=_('пользователь')
    )
    created_at = models.DateTimeField(_('дата создания'), auto_now_add=True)

    class Meta:
        verbose_name = _('преподаватель')
        verbose_name_plural = _('преподаватели')
        ordering = ['full_name']

    def __str__(self):
        return self.full_name


class Student(TenantModelMixin, models.Model):
    """Ученик"""

    full_name = models.CharField(_('ФИО'), max_length=200)
    email = models.EmailField(_('email'), blank=True)
    phone = models.CharField(_('телефон'), max_length=30, blank=True)
    created_at = models.DateTimeField(_('дата создания'), auto_now_add=True)

    class Meta:
        verbose_name = _('ученик')
        verbose_name_plural = _('ученики')
        ordering = ['full_name']

    def __str__(self):
        return self.full_name


class Group(TenantModelMixin, models.Model):
    """Учебная группа (класс)"""

    STATUS_ACTIVE = 'active'
    STATUS_PAUSED = 'paused'
    STATUS_CLOSED = 'closed'

    STATUS_CHOICES = (
        (STATUS_ACTIVE, 'Активна'),
        (STATUS_PAUSED, 'На паузе'),
        (STATUS_CLOSED, 'Закрыта'),
    )

    name = models.CharField(_('название группы'), max_length=200)
    status = models.CharField(
        _('статус'),
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_ACTIVE
    )
    teacher = models.ForeignKey(
        Teacher,
        on_delete=models.PROTECT,
        related_name='groups',
        verbose_name=_('преподаватель')
    )
    venue = models.ForeignKey(
        Venue,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='groups',
        verbose_name=_('зал')
    )
    started_at = models.DateTimeField(_('дата старта'), null=True, blank=True)
    created_at = models.DateTimeField(_('дата создания'), auto_now_add=True)
    updated_at = models.DateTimeField(_('дата обновления'), auto_now=True)

    class Meta:
        verbose_name = _('группа')
        verbose_name_plural = _('группы')
        ordering = ['name']

    def __str__(self):
        return self.name


class Enrollment(models.Model):
    """Участие ученика в группе в интервале дат [start_date, end_date].

    Строки не удаляются: уход из группы = проставленный end_date.
    """

    student = models.ForeignKey(
        Student,
        on_delete=models.PROTECT,
        related_name='enrollments',
        verbose_name=_('ученик')
    )
    group = models.ForeignKey(
        Group,
        on_delete=models.CASCADE,
        related_name='enrollments',
        verbose_name=_('группа')
    )
    start_date = models.DateField(_('дата начала'))
    end_date = models.DateField(_('дата окончания'), null=True, blank=True)
    created_at = models.DateTimeField(_('дата создания'), auto_now_add=True)

    class Meta:
        verbose_name = _('зачисление')
        verbose_name_plural = _('зачисления')
        ordering = ['start_date', 'id']
        indexes = [
            models.Index(fields=['group', 'start_date'], name='enrollment_group_start_idx'),
            models.Index(fields=['student', 'group'], name='enrollment_student_group_idx'),
        ]

    def __str__(self):
        return f"{self.student} → {self.group} ({self.start_date} – {self.end_date or '…'})"

    def covers(self, on_date):
        """Активно ли зачисление на дату"""
        if self.start_date > on_date:
            return False
        return self.end_date is None or self.end_date >= on_date

    def clean(self):
        if self.end_date and self.end_date < self.start_date:
            raise ValidationError({'end_date': 'endDate must not be before startDate'})


class GroupSchedule(TenantModelMixin, models.Model):
    """Версия расписания группы, действующая в интервале [effective_from, effective_to].

    Версии не редактируются: изменение «только для будущих занятий» закрывает
    текущую версию (effective_to) и создаёт новую.
    """

    RECURRENCE_ONE_TIME = 'one_time'
    RECURRENCE_WEEKLY = 'weekly'
    RECURRENCE_TWICE_WEEKLY = 'twice_weekly'

    RECURRENCE_CHOICES = (
        (RECURRENCE_ONE_TIME, 'Разово'),
        (RECURRENCE_WEEKLY, 'Раз в неделю'),
        (RECURRENCE_TWICE_WEEKLY, 'Два раза в неделю'),
    )

    # Сколько слотов требует каждый тип повторения
    SLOT_COUNTS = {
        RECURRENCE_ONE_TIME: 1,
        RECURRENCE_WEEKLY: 1,
        RECURRENCE_TWICE_WEEKLY: 2,
    }

    group = models.ForeignKey(
        Group,
        on_delete=models.CASCADE,
        related_name='schedules',
        verbose_name=_('группа')
    )
    recurrence = models.CharField(
        _('повторение'),
        max_length=20,
        choices=RECURRENCE_CHOICES
    )
    duration_hours = models.DecimalField(
        _('длительность занятия (ч)'),
        max_digits=4,
        decimal_places=2
    )
    effective_from = models.DateField(_('действует с'), db_index=True)
    effective_to = models.DateField(_('действует по'), null=True, blank=True)
    created_at = models.DateTimeField(_('дата создания'), auto_now_add=True)

    class Meta:
        verbose_name = _('расписание группы')
        verbose_name_plural = _('расписания групп')
        ordering = ['effective_from', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['group'],
                condition=Q(effective_to__isnull=True),
                name='group_schedule_single_open_version',
            ),
            models.CheckConstraint(
                condition=Q(effective_to__isnull=True) | Q(effective_to__gte=F('effective_from')),
                name='group_schedule_effective_range_valid',
            ),
        ]

    def __str__(self):
        return f"{self.group} · {self.get_recurrence_display()} ({self.effective_from} – {self.effective_to or '…'})"

    @property
    def is_open(self):
        return self.effective_to is None

    def covers(self, on_date):
        """Действует ли версия на дату"""
        if self.effective_from > on_date:
            return False
        return self.effective_to is None or self.effective_to >= on_date


class GroupScheduleSlot(models.Model):
    """Недельный слот версии расписания: день недели + время начала"""

    DAY_OF_WEEK_CHOICES = (
        (1, 'Понедельник'),
        (2, 'Вторник'),
        (3, 'Среда'),
        (4, 'Четверг'),
        (5, 'Пятница'),
        (6, 'Суббота'),
        (7, 'Воскресенье'),
    )

    schedule = models.ForeignKey(
        GroupSchedule,
        on_delete=models.CASCADE,
        related_name='slots',
        verbose_name=_('версия расписания')
    )
    day_of_week = models.PositiveSmallIntegerField(
        _('день недели'),
        choices=DAY_OF_WEEK_CHOICES,
        help_text=_('ISO: 1 = Понедельник, 7 = Воскресенье')
    )
    start_time = models.TimeField(_('время начала'))
    sort_order = models.PositiveSmallIntegerField(_('порядок'), default=0)

    class Meta:
        verbose_name = _('слот расписания')
        verbose_name_plural = _('слоты расписания')
        ordering = ['sort_order', 'id']

    def __str__(self):
        return f"{self.get_day_of_week_display()} {format_hhmm(self.start_time)}"


class ClassSession(TenantModelMixin, models.Model):
    """Конкретное занятие на дату (групповое или разовое без группы)"""

    STATUS_SCHEDULED = 'scheduled'
    STATUS_HELD = 'held'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = (
        (STATUS_SCHEDULED, 'Запланировано'),
        (STATUS_HELD, 'Проведено'),
        (STATUS_CANCELLED, 'Отменено'),
    )

    group = models.ForeignKey(
        Group,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='sessions',
        verbose_name=_('группа')
    )
    venue = models.ForeignKey(
        Venue,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='sessions',
        verbose_name=_('зал')
    )
    teacher = models.ForeignKey(
        Teacher,
        on_delete=models.PROTECT,
        related_name='sessions',
        verbose_name=_('преподаватель')
    )
    date = models.DateField(_('дата'))
    start_time = models.TimeField(_('время начала'), null=True, blank=True)
    end_time = models.TimeField(_('время окончания'), null=True, blank=True)
    status = models.CharField(
        _('статус'),
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_SCHEDULED
    )
    created_at = models.DateTimeField(_('дата создания'), auto_now_add=True)
    updated_at = models.DateTimeField(_('дата обновления'), auto_now=True)

    class Meta:
        verbose_name = _('занятие')
        verbose_name_plural = _('занятия')
        ordering = ['date', 'start_time', 'id']
        indexes = [
            models.Index(fields=['tenant', 'group', 'date'], name='session_tenant_group_date_idx'),
            models.Index(fields=['tenant', 'date'], name='session_tenant_date_idx'),
        ]

    def __str__(self):
        start = f" {format_hhmm(self.start_time)}" if self.start_time else ''
        return f"{self.group or 'Без группы'} · {self.date}{start}"


class AttendanceRecord(models.Model):
    """Отметка посещения: одна запись на (занятие, ученик)"""

    STATUS_PRESENT = 'present'
    STATUS_ABSENT = 'absent'
    STATUS_EXCUSED = 'excused'
    STATUS_LATE = 'late'

    STATUS_CHOICES = (
        (STATUS_PRESENT, 'Присутствовал'),
        (STATUS_ABSENT, 'Отсутствовал'),
        (STATUS_EXCUSED, 'Уважительная причина'),
        (STATUS_LATE, 'Опоздал'),
    )

    session = models.ForeignKey(
        ClassSession,
        on_delete=models.CASCADE,
        related_name='attendance_records',
        verbose_name=_('занятие')
    )
    student = models.ForeignKey(
        Student,
        on_delete=models.PROTECT,
        related_name='attendance_records',
        verbose_name=_('ученик')
    )
    status = models.CharField(_('статус'), max_length=10, choices=STATUS_CHOICES)
    marked_at = models.DateTimeField(_('отмечено'), auto_now=True)

    class Meta:
        verbose_name = _('посещение')
        verbose_name_plural = _('посещения')
        unique_together = ['session', 'student']

    def __str__(self):
        return f"{self.student} - {self.session} ({self.get_status_display()})"
