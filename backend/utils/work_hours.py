# backend/utils/work_hours.py
"""
Расписание работы: открыто/закрыто сейчас, статус для карточек,
текст расписания и разбор часов из выгрузки Google Places.

Время всегда считается в часовом поясе региона (UTC+8, без летнего времени),
а не в часовом поясе сервера.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from shared.config import config
from ..errors import WorkHoursFormatError

logger = logging.getLogger(__name__)

# Порядок ISO: индекс совпадает с datetime.weekday(), понедельник = 0
WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

DAY_LABELS = {
    'monday': 'Пн',
    'tuesday': 'Вт',
    'wednesday': 'Ср',
    'thursday': 'Чт',
    'friday': 'Пт',
    'saturday': 'Сб',
    'sunday': 'Вс',
}

# Названия дней, которые встречаются в выгрузках
DAY_ALIASES = {
    'monday': 'monday', 'mon': 'monday', 'mo': 'monday',
    'понедельник': 'monday', 'пн': 'monday',
    'tuesday': 'tuesday', 'tue': 'tuesday', 'tu': 'tuesday',
    'вторник': 'tuesday', 'вт': 'tuesday',
    'wednesday': 'wednesday', 'wed': 'wednesday', 'we': 'wednesday',
    'среда': 'wednesday', 'ср': 'wednesday',
    'thursday': 'thursday', 'thu': 'thursday', 'th': 'thursday',
    'четверг': 'thursday', 'чт': 'thursday',
    'friday': 'friday', 'fri': 'friday', 'fr': 'friday',
    'пятница': 'friday', 'пт': 'friday',
    'saturday': 'saturday', 'sat': 'saturday', 'sa': 'saturday',
    'суббота': 'saturday', 'сб': 'saturday',
    'sunday': 'sunday', 'sun': 'sunday', 'su': 'sunday',
    'воскресенье': 'sunday', 'вс': 'sunday',
}

_HHMM_RE = re.compile(r'^\s*(\d{1,2}):(\d{2})\s*$')


@dataclass(frozen=True)
class OpenStatus:
    is_open: bool
    text: str


def local_time(now_utc: Optional[datetime] = None, offset_hours: Optional[int] = None) -> datetime:
    """Текущее время региона. Наивное время считается UTC."""
    if now_utc is None:
        now_utc = datetime.now(timezone.utc)
    elif now_utc.tzinfo is None:
        now_utc = now_utc.replace(tzinfo=timezone.utc)
    if offset_hours is None:
        offset_hours = config.TIMEZONE_OFFSET_HOURS
    return now_utc.astimezone(timezone(timedelta(hours=offset_hours)))


def parse_hhmm(value: Any) -> int:
    """"HH:MM" -> минуты от полуночи. 24:00 допустимо как конец дня."""
    if not isinstance(value, str):
        raise WorkHoursFormatError(value)
    match = _HHMM_RE.match(value)
    if not match:
        raise WorkHoursFormatError(value)
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes != 0):
        raise WorkHoursFormatError(value)
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _field(hours: Any, name: str, default=None):
    # День расписания может быть dict или pydantic-моделью DayHours
    if isinstance(hours, Mapping):
        return hours.get(name, default)
    return getattr(hours, name, default)


def _is_working_day(hours: Any) -> bool:
    return hours is not None and not _field(hours, 'closed', False)


def is_open_now(schedule: Optional[Mapping[str, Any]], now_utc: Optional[datetime] = None) -> Optional[bool]:
    """
    Открыто ли сейчас.

    None - расписания нет, статус не определить (ничего не показываем).
    Выходной или отсутствующий день - False.
    Интервал полуоткрытый: в минуту закрытия уже закрыто.
    Некорректное время бросает WorkHoursFormatError.
    """
    if schedule is None:
        return None

    now = local_time(now_utc)
    today = schedule.get(WEEKDAYS[now.weekday()])
    if not _is_working_day(today):
        return False

    current = now.hour * 60 + now.minute
    open_time = parse_hhmm(_field(today, 'open'))
    close_time = parse_hhmm(_field(today, 'close'))
    return open_time <= current < close_time


def open_status(schedule: Optional[Mapping[str, Any]], now_utc: Optional[datetime] = None) -> Optional[OpenStatus]:
    """
    Статус для карточки: "Открыто до 20:00" / "Закрыто до 09:00" / "Закрыто".

    Если сегодня уже закрылись или выходной, ищем ближайший рабочий день
    в следующие 7 дней и показываем время его открытия.
    """
    if schedule is None:
        return None

    now = local_time(now_utc)
    day_index = now.weekday()
    today = schedule.get(WEEKDAYS[day_index])
    current = now.hour * 60 + now.minute

    if _is_working_day(today):
        open_time = parse_hhmm(_field(today, 'open'))
        close_time = parse_hhmm(_field(today, 'close'))
        if open_time <= current < close_time:
            return OpenStatus(True, f"Открыто до {format_minutes(close_time)}")
        if current < open_time:
            return OpenStatus(False, f"Закрыто до {format_minutes(open_time)}")

    for shift in range(1, 8):
        next_day = schedule.get(WEEKDAYS[(day_index + shift) % 7])
        if _is_working_day(next_day):
            next_open = parse_hhmm(_field(next_day, 'open'))
            return OpenStatus(False, f"Закрыто до {format_minutes(next_open)}")

    return OpenStatus(False, "Закрыто")


def format_work_hours(schedule: Optional[Mapping[str, Any]]) -> str:
    """Расписание по строкам с понедельника, отсутствующие дни пропускаются"""
    if not schedule:
        return ""

    lines = []
    for day in WEEKDAYS:
        hours = schedule.get(day)
        if hours is None:
            continue
        if _field(hours, 'closed', False):
            lines.append(f"{DAY_LABELS[day]}: Выходной")
        else:
            lines.append(f"{DAY_LABELS[day]}: {_field(hours, 'open', '')}-{_field(hours, 'close', '')}")
    return "\n".join(lines)


# ========== РАЗБОР ЧАСОВ ИЗ ВЫГРУЗКИ ==========

_CLOSED_WORDS = ('closed', 'закрыто', 'выходной')
_ALL_DAY_WORDS = ('open 24 hours', '24 hours', 'круглосуточно', '24/7')
_RANGE_SPLIT_RE = re.compile(r'\s*(?:\bto\b|–|—|-|\bдо\b)\s*')
_TIME_RE = re.compile(r'^(?:с\s*)?(\d{1,2})(?:[:.](\d{2}))?\s*([ap]\.?m\.?)?$', re.IGNORECASE)


def _parse_clock(token: str, fallback_meridiem: Optional[str] = None):
    """'9 AM', '9:30 PM', '21:00' -> (минуты, meridiem)"""
    # Google вставляет узкий неразрывный пробел перед AM/PM
    token = token.replace('\u202f', ' ').replace('\xa0', ' ').strip()
    match = _TIME_RE.match(token)
    if not match:
        raise WorkHoursFormatError(token)

    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    meridiem = (match.group(3) or '').lower().replace('.', '') or None
    effective = meridiem or fallback_meridiem
    if effective:
        if hours > 12:
            raise WorkHoursFormatError(token)
        hours = hours % 12 + (12 if effective == 'pm' else 0)
    if hours > 24 or minutes > 59:
        raise WorkHoursFormatError(token)
    return hours * 60 + minutes, meridiem


def parse_google_hours(text: str) -> dict:
    """Строка часов из выгрузки -> {"open", "close", "closed"}"""
    normalized = (text or '').strip().lower()
    if not normalized:
        raise WorkHoursFormatError(text)
    if any(word in normalized for word in _CLOSED_WORDS):
        return {"open": "", "close": "", "closed": True}
    if any(word in normalized for word in _ALL_DAY_WORDS):
        return {"open": "00:00", "close": "24:00", "closed": False}

    # Несколько интервалов ("9 AM to 12 PM, 4 to 10 PM"): берём начало первого и конец последнего
    ranges = [part for part in normalized.split(',') if part.strip()]
    first = _RANGE_SPLIT_RE.split(ranges[0].strip())
    last = _RANGE_SPLIT_RE.split(ranges[-1].strip())
    if len(first) != 2 or len(last) != 2:
        raise WorkHoursFormatError(text)

    first_end, first_end_meridiem = _parse_clock(first[1])
    open_time, _ = _parse_clock(first[0], first_end_meridiem)
    if open_time > first_end:
        # "11 to 3 PM" означает 11 утра
        open_time, _ = _parse_clock(first[0], 'am')
    close_time, _ = _parse_clock(last[1])
    if close_time == 0:
        close_time = 24 * 60

    return {"open": format_minutes(open_time), "close": format_minutes(close_time), "closed": False}


def schedule_from_google(items: Any) -> dict:
    """[{day, hours}, ...] -> {"monday": {...}, ...}. Нераспознанные дни пропускаются."""
    schedule = {}
    if not isinstance(items, list):
        return schedule

    for item in items:
        if not isinstance(item, Mapping):
            continue
        day = DAY_ALIASES.get(str(item.get('day', '')).strip().lower())
        if not day:
            logger.warning(f"Неизвестный день в расписании: {item.get('day')!r}")
            continue
        try:
            schedule[day] = parse_google_hours(str(item.get('hours', '')))
        except WorkHoursFormatError as e:
            logger.warning(f"Не удалось разобрать часы для {day}: {e}")
    return schedule
