# backend/services/presenter.py
"""
Карточка для отображения: Entity + вычисляемые поля.

Вычисляемые поля считаются заново при каждом вызове и никуда не сохраняются.
Ошибки разбора (битое время в расписании, странная гистограмма) гасят только
своё поле, карточка отдаётся всё равно.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from shared.config import config
from ..errors import WorkHoursFormatError
from ..schemas.draft import phone_for_tel
from ..schemas.entity import BusynessOut, Entity, EntityCard, FeatureOut, OpenStatusOut
from ..utils.busyness import resolve_busyness
from ..utils.features import extract_features, feature_icon, preview_features
from ..utils.geo import haversine_km
from ..utils.work_hours import format_work_hours, open_status

logger = logging.getLogger(__name__)


def preview_images(entity: Entity) -> list:
    """Две миниатюры для карточки: первые фото галереи, не совпадающие с главным"""
    return [url for url in entity.gallery if url != entity.image_url][:2]


def price_indicator(price_level: int) -> str:
    # 0 - цена неизвестна, индикатор не показываем
    return "$" * price_level if price_level else ""


def build_card(
    entity: Entity,
    now: Optional[datetime] = None,
    origin: Optional[Tuple[float, float]] = None,
    distance_km: Optional[float] = None,
) -> EntityCard:
    status = None
    try:
        resolved = open_status(entity.work_hours, now)
        if resolved is not None:
            status = OpenStatusOut(is_open=resolved.is_open, text=resolved.text)
    except WorkHoursFormatError as e:
        logger.warning(f"Расписание карточки {entity.id} не разобрано: {e}")

    busyness = resolve_busyness(entity.popular_times_histogram, entity.popular_times_live_text, now)

    if distance_km is None and origin is not None and entity.has_coordinates:
        distance_km = haversine_km(origin[0], origin[1], entity.geo_lat, entity.geo_lng)

    features = extract_features(entity.additional_info)
    shown, hidden = preview_features(features, config.FEATURES_PREVIEW_LIMIT)

    return EntityCard(
        **entity.model_dump(),
        open_status=status,
        schedule_text=format_work_hours(entity.work_hours),
        busyness=BusynessOut(percentage=busyness.percentage, label=busyness.label) if busyness else None,
        distance_km=distance_km,
        features=features,
        features_preview=[FeatureOut(name=name, icon=feature_icon(name)) for name in shown],
        hidden_features_count=hidden,
        preview_images=preview_images(entity),
        price_indicator=price_indicator(entity.price_level),
        tel_link=phone_for_tel(entity.contacts.phone),
    )
