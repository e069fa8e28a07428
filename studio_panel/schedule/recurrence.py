"""
Вспомогательные функции для работы с расписанием: даты, время "HH:MM",
длительность занятия.

Без обращений к БД - используются и сервисами, и сериализаторами.
"""
import re
from datetime import date, time, timedelta
from decimal import Decimal, InvalidOperation

from django.utils.dateparse import parse_date

TIME_RE = re.compile(r'^([01]?[0-9]|2[0-3]):([0-5][0-9])$')

MINUTES_PER_DAY = 24 * 60


def parse_hhmm(value):
    """
    Разбор времени "HH:MM" (24 часа, ведущий ноль у часов необязателен).

    Args:
        value: строка вида "9:30" / "09:30" либо datetime.time

    Returns:
        datetime.time

    Raises:
        ValueError: строка не похожа на время
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str):
        raise ValueError(f'Invalid time: {value!r}')
    match = TIME_RE.match(value.strip())
    if not match:
        raise ValueError(f'Invalid time: {value!r}')
    return time(int(match.group(1)), int(match.group(2)))


def format_hhmm(value):
    """datetime.time → "HH:MM" (None остаётся None)"""
    if value is None:
        return None
    return f'{value.hour:02d}:{value.minute:02d}'


def parse_iso_date(value):
    """
    Разбор даты "YYYY-MM-DD".

    Raises:
        ValueError: пустое значение или некорректная дата
    """
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f'Invalid date: {value!r}')
    parsed = parse_date(value.strip())
    if parsed is None:
        raise ValueError(f'Invalid date: {value!r}')
    return parsed


def parse_duration_hours(value):
    """Длительность в часах → Decimal. ValueError для нечисловых/бесконечных значений."""
    if isinstance(value, bool):
        raise ValueError(f'Invalid duration: {value!r}')
    try:
        duration = Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise ValueError(f'Invalid duration: {value!r}')
    if not duration.is_finite():
        raise ValueError(f'Invalid duration: {value!r}')
    return duration


def duration_minutes(duration_hours):
    """Часы (Decimal/float) → целые минуты, с округлением"""
    minutes = Decimal(str(duration_hours)) * 60
    return int(minutes.quantize(Decimal('1')))


def add_hours_to_time(start_time, duration_hours):
    """
    Время окончания занятия: start_time + duration_hours.

    Арифметика по минутам суток (mod 1440): 23:00 + 1.5ч = 00:30,
    перенос на следующую дату не отражается.
    """
    total = start_time.hour * 60 + start_time.minute + duration_minutes(duration_hours)
    total %= MINUTES_PER_DAY
    return time(total // 60, total % 60)


def iso_weekday(value):
    """ISO день недели: 1 = Понедельник … 7 = Воскресенье"""
    return value.isoweekday()


def previous_day(value):
    return value - timedelta(days=1)


def iter_dates(start_date, end_date):
    """Все даты от start_date до end_date включительно"""
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)
