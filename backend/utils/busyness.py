# backend/utils/busyness.py
"""
Загруженность заведения по гистограмме popularTimesHistogram.

В данных встречаются две формы:
  {"Понедельник": {"data": [...]}, ...} или {"Mo": [{"hour": 6, "occupancyPercent": 10}, ...]}
  [{"data": [{"occupancy": 10}, ...]}, ...]  - массив с понедельника
Обе сводятся к одному: день по ISO (понедельник = 0) -> значения по часам.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from .work_hours import DAY_ALIASES, WEEKDAYS, local_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Busyness:
    percentage: int
    label: str


def busyness_label(percentage: int) -> str:
    if percentage < 30:
        return "Обычно свободно"
    if percentage < 60:
        return "Средняя загруженность"
    if percentage < 85:
        return "Обычно многолюдно"
    return "Очень многолюдно"


def _day_series(histogram: Any, day_index: int):
    if isinstance(histogram, list):
        day = histogram[day_index] if day_index < len(histogram) else None
    elif isinstance(histogram, Mapping):
        day = None
        for key, value in histogram.items():
            if DAY_ALIASES.get(str(key).strip().lower()) == WEEKDAYS[day_index]:
                day = value
                break
    else:
        return None

    if isinstance(day, Mapping):
        day = day.get('data')
    return day if isinstance(day, list) else None


def _hour_value(series: list, hour: int) -> Optional[float]:
    entry = None
    if any(isinstance(item, Mapping) and 'hour' in item for item in series):
        for item in series:
            if isinstance(item, Mapping) and item.get('hour') == hour:
                entry = item
                break
    elif hour < len(series):
        entry = series[hour]

    if isinstance(entry, Mapping):
        entry = entry.get('occupancy', entry.get('occupancyPercent'))
    if entry is None or isinstance(entry, bool):
        return None
    return float(entry)


def resolve_busyness(histogram: Any, live_text: Optional[str] = None,
                     now_utc: Optional[datetime] = None) -> Optional[Busyness]:
    """
    Загруженность на текущий час (время региона) или None.

    Никогда не бросает исключений: на битой структуре возвращает None.
    """
    if not histogram:
        return None

    try:
        now = local_time(now_utc)
        series = _day_series(histogram, now.weekday())
        if series is None:
            return None
        value = _hour_value(series, now.hour)
        if value is None:
            return None
        percentage = max(0, min(100, int(round(value))))
        label = live_text.strip() if isinstance(live_text, str) and live_text.strip() else busyness_label(percentage)
        return Busyness(percentage=percentage, label=label)
    except Exception as e:
        logger.debug(f"Не удалось разобрать гистограмму загруженности: {e}")
        return None
