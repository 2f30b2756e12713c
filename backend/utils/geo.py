# backend/utils/geo.py
"""
Расстояния для раздела "Рядом со мной"
"""

import math
from typing import Any, Optional

EARTH_RADIUS_KM = 6371


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Расстояние по дуге большого круга в км, округлённое до 0.1"""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    # Для почти противоположных точек ошибка округления даёт a чуть больше 1
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 1)


def parse_coordinate(value: Any, limit: float) -> Optional[float]:
    """Число, строка "-8.65" или None. NaN, бесконечность и выход за пределы -> None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number) or abs(number) > limit:
        return None
    return number


def parse_point(lat: Any, lng: Any):
    """Пара координат или (None, None). (0, 0) - заглушка, а не точка."""
    lat_value = parse_coordinate(lat, 90)
    lng_value = parse_coordinate(lng, 180)
    if lat_value is None or lng_value is None:
        return None, None
    if lat_value == 0 and lng_value == 0:
        return None, None
    return lat_value, lng_value
