from datetime import date, time
from decimal import Decimal

from django.test import SimpleTestCase

from .recurrence import (
    add_hours_to_time,
    duration_minutes,
    format_hhmm,
    iso_weekday,
    iter_dates,
    parse_duration_hours,
    parse_hhmm,
    parse_iso_date,
    previous_day,
)


class TimeParsingTests(SimpleTestCase):
    def test_parse_hhmm_accepts_short_and_padded_hours(self):
        self.assertEqual(parse_hhmm('9:30'), time(9, 30))
        self.assertEqual(parse_hhmm('09:30'), time(9, 30))
        self.assertEqual(parse_hhmm(' 23:59 '), time(23, 59))

    def test_parse_hhmm_rejects_garbage(self):
        for value in ['24:00', '12:60', '12', '', None, 1230, '12:3']:
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    parse_hhmm(value)

    def test_format_hhmm(self):
        self.assertEqual(format_hhmm(time(7, 5)), '07:05')
        self.assertIsNone(format_hhmm(None))

    def test_parse_iso_date(self):
        self.assertEqual(parse_iso_date('2025-06-01'), date(2025, 6, 1))
        for value in ['', '2025-13-01', 'tomorrow', None]:
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    parse_iso_date(value)


class DurationTests(SimpleTestCase):
    def test_parse_duration_hours(self):
        self.assertEqual(parse_duration_hours(1.5), Decimal('1.5'))
        self.assertEqual(parse_duration_hours('2'), Decimal('2'))
        for value in [None, 'abc', True, float('nan'), float('inf')]:
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    parse_duration_hours(value)

    def test_duration_minutes_rounds(self):
        self.assertEqual(duration_minutes(Decimal('1.5')), 90)
        self.assertEqual(duration_minutes(Decimal('0.33')), 20)

    def test_add_hours_within_day(self):
        self.assertEqual(add_hours_to_time(time(10, 0), Decimal('1.5')), time(11, 30))

    def test_add_hours_wraps_past_midnight(self):
        self.assertEqual(add_hours_to_time(time(23, 0), Decimal('1.5')), time(0, 30))
        self.assertEqual(add_hours_to_time(time(22, 45), Decimal('24')), time(22, 45))


class DateHelpersTests(SimpleTestCase):
    def test_iso_weekday(self):
        self.assertEqual(iso_weekday(date(2025, 6, 2)), 1)   # понедельник
        self.assertEqual(iso_weekday(date(2025, 6, 4)), 3)   # среда
        self.assertEqual(iso_weekday(date(2025, 6, 1)), 7)   # воскресенье

    def test_previous_day_crosses_month(self):
        self.assertEqual(previous_day(date(2025, 6, 1)), date(2025, 5, 31))
        self.assertEqual(previous_day(date(2024, 3, 1)), date(2024, 2, 29))

    def test_iter_dates_is_inclusive(self):
        days = list(iter_dates(date(2025, 6, 29), date(2025, 7, 1)))
        self.assertEqual(days, [date(2025, 6, 29), date(2025, 6, 30), date(2025, 7, 1)])
        self.assertEqual(list(iter_dates(date(2025, 6, 2), date(2025, 6, 1))), [])
