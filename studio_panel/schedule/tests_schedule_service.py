from datetime import time
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings

from tenants.models import Tenant
from .models import ClassSession, Group, GroupSchedule
from .schedule_service import ScheduleService, SessionGenerator, plan_sessions
from .testing import ScheduleFixturesMixin, d


WEDNESDAY_10 = [{'day_of_week': 3, 'start_time': '10:00'}]


class ScheduleEditorTests(ScheduleFixturesMixin, TestCase):

    def upsert(self, **overrides):
        params = {
            'recurrence': GroupSchedule.RECURRENCE_WEEKLY,
            'duration_hours': 1.5,
            'effective_from': d('2025-01-01'),
            'slots': WEDNESDAY_10,
        }
        params.update(overrides)
        return ScheduleService.upsert_schedule(self.group, self.tenant, **params)

    def test_creates_version_with_ordered_slots(self):
        schedule = self.upsert(
            recurrence=GroupSchedule.RECURRENCE_TWICE_WEEKLY,
            slots=[
                {'day_of_week': 4, 'start_time': '19:00'},
                {'day_of_week': 1, 'start_time': '18:30'},
            ],
        )
        slots = list(schedule.slots.all())
        self.assertEqual([s.sort_order for s in slots], [0, 1])
        self.assertEqual([s.day_of_week for s in slots], [4, 1])
        self.assertEqual(slots[1].start_time, time(18, 30))
        self.assertEqual(schedule.duration_hours, Decimal('1.50'))
        self.assertTrue(schedule.is_open)

    def test_twice_weekly_requires_exactly_two_slots(self):
        with self.assertRaisesMessage(ValidationError, 'Twice-weekly schedule must have exactly two slots'):
            self.upsert(recurrence=GroupSchedule.RECURRENCE_TWICE_WEEKLY, slots=WEDNESDAY_10)
        self.assertFalse(GroupSchedule.objects.exists())

    def test_weekly_requires_exactly_one_slot(self):
        with self.assertRaisesMessage(ValidationError, 'Weekly and one-time schedules must have exactly one slot'):
            self.upsert(slots=WEDNESDAY_10 * 2)

    def test_rejects_unknown_recurrence(self):
        with self.assertRaisesMessage(ValidationError, 'Recurrence must be one_time, weekly, or twice_weekly'):
            self.upsert(recurrence='monthly')

    def test_rejects_non_positive_duration(self):
        for value in [0, -1, None, 'abc', 0.001, '0.004']:
            with self.subTest(value=value):
                with self.assertRaisesMessage(
                    ValidationError, 'Duration per session (hours) is required and must be positive'
                ):
                    self.upsert(duration_hours=value)
        self.assertFalse(GroupSchedule.objects.exists())

    def test_rejects_bad_slot_values(self):
        with self.assertRaisesMessage(ValidationError, 'Slot 1: dayOfWeek must be 1–7 (Monday–Sunday)'):
            self.upsert(slots=[{'day_of_week': 8, 'start_time': '10:00'}])
        with self.assertRaisesMessage(ValidationError, 'Slot 2: startTime must be HH:mm'):
            self.upsert(
                recurrence=GroupSchedule.RECURRENCE_TWICE_WEEKLY,
                slots=[{'day_of_week': 1, 'start_time': '10:00'}, {'day_of_week': 2, 'start_time': '25:00'}],
            )

    def test_requires_effective_from(self):
        with self.assertRaisesMessage(ValidationError, 'effectiveFrom (YYYY-MM-DD) is required'):
            self.upsert(effective_from=None)

    def test_rejects_effective_to_before_effective_from(self):
        with self.assertRaises(ValidationError):
            self.upsert(effective_from=d('2025-06-01'), effective_to=d('2025-05-01'))

    def test_future_only_edit_closes_previous_version(self):
        v1 = self.upsert()
        ScheduleService.upsert_schedule(
            self.group, self.tenant,
            recurrence=GroupSchedule.RECURRENCE_WEEKLY,
            duration_hours=2,
            effective_from=d('2025-06-01'),
            slots=[{'day_of_week': 4, 'start_time': '19:00'}],
            apply_to_future_only=True,
        )
        v1.refresh_from_db()
        self.assertEqual(v1.effective_to, d('2025-05-31'))
        self.assertEqual(v1.effective_from, d('2025-01-01'))
        self.assertEqual(GroupSchedule.objects.filter(group=self.group, effective_to__isnull=True).count(), 1)

    def test_future_only_edit_never_touches_past_sessions(self):
        self.upsert(slots=[{'day_of_week': 1, 'start_time': '18:00'}])
        SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-01-01'), d('2025-05-31'))
        before = list(ClassSession.objects.order_by('id').values_list(
            'id', 'date', 'start_time', 'end_time', 'status', 'updated_at'
        ))
        self.assertEqual(len(before), 21)

        self.upsert(
            effective_from=d('2025-06-01'),
            duration_hours=1,
            slots=[{'day_of_week': 4, 'start_time': '19:00'}],
            apply_to_future_only=True,
        )
        created = SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-05-15'), d('2025-06-15'))

        after = list(ClassSession.objects.filter(date__lt=d('2025-06-01')).order_by('id').values_list(
            'id', 'date', 'start_time', 'end_time', 'status', 'updated_at'
        ))
        self.assertEqual(after, before)
        # 19 и 26 мая уже были; в июне - четверги 5 и 12
        self.assertEqual(created, 2)
        june = ClassSession.objects.filter(date__gte=d('2025-06-01'))
        self.assertEqual(sorted(june.values_list('date', flat=True)), [d('2025-06-05'), d('2025-06-12')])
        self.assertTrue(all(s.start_time == time(19, 0) and s.end_time == time(20, 0) for s in june))

    def test_future_only_refused_when_version_starts_on_or_after_new_start(self):
        v1 = self.upsert(effective_from=d('2025-06-01'))
        with self.assertRaises(ValidationError):
            self.upsert(effective_from=d('2025-06-01'), apply_to_future_only=True)
        v1.refresh_from_db()
        self.assertIsNone(v1.effective_to)
        self.assertEqual(GroupSchedule.objects.count(), 1)

    def test_overlapping_edit_without_future_only_is_refused(self):
        self.upsert()
        with self.assertRaisesMessage(ValidationError, 'Schedule overlaps an existing schedule version'):
            self.upsert(effective_from=d('2025-03-01'))
        self.assertEqual(GroupSchedule.objects.count(), 1)

    def test_non_overlapping_bounded_version_is_allowed(self):
        self.upsert(effective_from=d('2025-06-01'))
        self.upsert(effective_from=d('2025-01-01'), effective_to=d('2025-05-31'))
        self.assertEqual(GroupSchedule.objects.count(), 2)

    def test_database_allows_single_open_version_per_group(self):
        self.upsert()
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                GroupSchedule.objects.create(
                    tenant=self.tenant, group=self.group,
                    recurrence=GroupSchedule.RECURRENCE_WEEKLY,
                    duration_hours=Decimal('1.00'),
                    effective_from=d('2025-09-01'),
                )


class ScheduleVersionQueryTests(ScheduleFixturesMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.v1 = ScheduleService.upsert_schedule(
            self.group, self.tenant, recurrence='weekly', duration_hours=1,
            effective_from=d('2025-01-01'), slots=[{'day_of_week': 1, 'start_time': '18:00'}],
        )
        self.v2 = ScheduleService.upsert_schedule(
            self.group, self.tenant, recurrence='weekly', duration_hours=1,
            effective_from=d('2025-06-01'), slots=[{'day_of_week': 4, 'start_time': '19:00'}],
            apply_to_future_only=True,
        )

    def test_active_versions_as_of_date(self):
        self.assertEqual(
            [v.pk for v in ScheduleService.get_active_versions(self.group.pk, self.tenant, d('2025-05-31'))],
            [self.v1.pk],
        )
        self.assertEqual(
            [v.pk for v in ScheduleService.get_active_versions(self.group.pk, self.tenant, d('2025-06-01'))],
            [self.v2.pk],
        )
        self.assertEqual(ScheduleService.get_active_versions(self.group.pk, self.tenant, d('2024-12-31')), [])

    def test_versions_overlapping_window(self):
        versions = ScheduleService.get_versions_overlapping_window(
            self.group.pk, self.tenant, d('2025-05-20'), d('2025-06-10')
        )
        self.assertEqual([v.pk for v in versions], [self.v1.pk, self.v2.pk])
        self.assertEqual(len(versions[0].slots.all()), 1)

    def test_versions_are_tenant_scoped(self):
        other = Tenant.objects.create(slug='other', name='Other')
        self.assertEqual(ScheduleService.get_active_versions(self.group.pk, other, d('2025-03-01')), [])


class SessionGeneratorTests(ScheduleFixturesMixin, TestCase):

    def weekly(self, slots=WEDNESDAY_10, duration=1.5, **extra):
        params = {
            'recurrence': GroupSchedule.RECURRENCE_WEEKLY,
            'duration_hours': duration,
            'effective_from': d('2025-01-01'),
            'slots': slots,
        }
        params.update(extra)
        return ScheduleService.upsert_schedule(self.group, self.tenant, **params)

    def test_weekly_expansion_over_june(self):
        self.weekly()
        created = SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-06-01'), d('2025-06-30'))

        self.assertEqual(created, 4)
        sessions = list(ClassSession.objects.filter(group=self.group).order_by('date'))
        self.assertEqual(
            [s.date for s in sessions],
            [d('2025-06-04'), d('2025-06-11'), d('2025-06-18'), d('2025-06-25')],
        )
        for session in sessions:
            self.assertEqual(session.start_time, time(10, 0))
            self.assertEqual(session.end_time, time(11, 30))
            self.assertEqual(session.status, ClassSession.STATUS_SCHEDULED)
            self.assertEqual(session.teacher_id, self.teacher.pk)
            self.assertEqual(session.venue_id, self.venue.pk)
            self.assertEqual(session.tenant_id, self.tenant.pk)

    def test_generation_is_idempotent(self):
        self.weekly()
        SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-06-01'), d('2025-06-30'))
        again = SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-06-01'), d('2025-06-30'))
        self.assertEqual(again, 0)
        self.assertEqual(ClassSession.objects.filter(group=self.group).count(), 4)

    def test_existing_session_at_same_time_is_not_duplicated(self):
        self.weekly()
        self.make_session(d('2025-06-11'), start=time(10, 0), end=time(12, 0))
        created = SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-06-01'), d('2025-06-30'))
        self.assertEqual(created, 3)
        self.assertEqual(ClassSession.objects.get(date=d('2025-06-11')).end_time, time(12, 0))

    def test_end_time_wraps_past_midnight(self):
        self.weekly(slots=[{'day_of_week': 3, 'start_time': '23:00'}])
        SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-06-04'), d('2025-06-04'))
        session = ClassSession.objects.get()
        self.assertEqual(session.date, d('2025-06-04'))
        self.assertEqual(session.end_time, time(0, 30))

    def test_twice_weekly_generates_both_slots(self):
        self.weekly(
            recurrence=GroupSchedule.RECURRENCE_TWICE_WEEKLY,
            slots=[{'day_of_week': 2, 'start_time': '18:00'}, {'day_of_week': 5, 'start_time': '18:00'}],
        )
        created = SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-06-02'), d('2025-06-08'))
        self.assertEqual(created, 2)
        self.assertEqual(
            sorted(ClassSession.objects.values_list('date', flat=True)),
            [d('2025-06-03'), d('2025-06-06')],
        )

    def test_one_time_version_with_single_day_range(self):
        self.weekly(
            recurrence=GroupSchedule.RECURRENCE_ONE_TIME,
            effective_from=d('2025-06-04'),
            effective_to=d('2025-06-04'),
        )
        created = SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-06-01'), d('2025-06-30'))
        self.assertEqual(created, 1)

    def test_version_range_limits_generation(self):
        self.weekly(effective_from=d('2025-06-10'), effective_to=d('2025-06-20'))
        created = SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-06-01'), d('2025-06-30'))
        self.assertEqual(created, 2)   # 11 и 18 июня

    def test_unknown_group_generates_nothing(self):
        self.assertEqual(SessionGenerator.generate_sessions(999999, self.tenant, d('2025-06-01'), d('2025-06-30')), 0)

    def test_group_of_other_tenant_generates_nothing(self):
        self.weekly()
        other = Tenant.objects.create(slug='other', name='Other')
        self.assertEqual(SessionGenerator.generate_sessions(self.group.pk, other, d('2025-06-01'), d('2025-06-30')), 0)
        self.assertFalse(ClassSession.objects.exists())

    def test_group_without_schedule_generates_nothing(self):
        self.assertEqual(SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-06-01'), d('2025-06-30')), 0)

    def test_dry_run_creates_nothing(self):
        self.weekly()
        planned = SessionGenerator.generate_sessions(
            self.group.pk, self.tenant, d('2025-06-01'), d('2025-06-30'), dry_run=True
        )
        self.assertEqual(planned, 4)
        self.assertFalse(ClassSession.objects.exists())

    def test_reversed_window_is_rejected(self):
        with self.assertRaisesMessage(ValidationError, 'from must not be after to'):
            SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-06-30'), d('2025-06-01'))

    @override_settings(SCHEDULE_GENERATION_MAX_DAYS=10)
    def test_window_longer_than_limit_is_rejected(self):
        self.weekly()
        with self.assertRaisesMessage(ValidationError, 'Generation window must not exceed 10 days'):
            SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-06-01'), d('2025-06-30'))
        self.assertFalse(ClassSession.objects.exists())

    def test_str_shows_start_time_as_hhmm(self):
        schedule = self.weekly(slots=[{'day_of_week': 3, 'start_time': '9:05'}])
        self.assertEqual(str(schedule.slots.get()), 'Среда 09:05')
        SessionGenerator.generate_sessions(self.group.pk, self.tenant, d('2025-06-04'), d('2025-06-04'))
        self.assertEqual(str(ClassSession.objects.get()), 'Salsa Beginners · 2025-06-04 09:05')

    def test_plan_sessions_skips_existing_keys(self):
        schedule = self.weekly()
        group = Group.objects.get(pk=self.group.pk)
        planned = plan_sessions(
            group, [schedule], {(d('2025-06-04'), time(10, 0))}, d('2025-06-01'), d('2025-06-14')
        )
        self.assertEqual([s.date for s in planned], [d('2025-06-11')])
        self.assertIsNone(planned[0].pk)
