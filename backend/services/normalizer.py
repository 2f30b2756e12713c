# backend/services/normalizer.py
"""
Нормализация сырых записей в каноническую карточку Entity.

Записи приходят из двух источников с разной формой:
  remote - строки основного хранилища (snake_case колонки, фото отдельной таблицей);
  local  - локальный кэш (форма выгрузки парсера: camelCase, вложенный location,
           openingHours списком) вперемешку со старыми snake_case полями.

Для каждого источника есть свой адаптер; оба сходятся на одном словаре полей,
который валидирует pydantic. Функции чистые: ни часов, ни сети.
"""

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from shared.models.enums import EntityStatus, EntityType, SourceKind
from ..errors import EntityValidationError
from ..schemas.draft import phone_for_tel
from ..schemas.entity import Entity
from ..utils.dates import parse_datetime
from ..utils.geo import parse_point
from ..utils.work_hours import DAY_ALIASES, schedule_from_google

logger = logging.getLogger(__name__)

_CONTACT_FIELDS = ('phone', 'whatsapp', 'telegram', 'instagram', 'website')
_DEFAULT_STATUS = {
    SourceKind.REMOTE: EntityStatus.ACTIVE,
    SourceKind.LOCAL: EntityStatus.UNVERIFIED,
}

# Все ключи, которые читает адаптер локального кэша (включая старые имена полей)
LOCAL_ENTITY_KEYS = frozenset({
    "id", "placeId", "place_id", "type", "status", "title",
    "short_description", "shortDescription", "area", "address", "address_text",
    "categoryName", "category_name", "location", "geo_lat", "geo_lng", "location_lat", "location_lng",
    "contacts", *_CONTACT_FIELDS, "price_level", "priceLevel", "average_check", "price",
    "totalScore", "total_score", "rating", "reviewsCount", "reviews_count", "rating_count",
    "last_confirmed_at", "placesTags", "tags", "imageUrl", "image_url", "imageUrls", "gallery",
    "work_hours", "openingHours", "opening_hours", "additionalInfo", "additional_info",
    "popularTimesHistogram", "popular_times_histogram",
    "popularTimesLiveText", "popular_times_live_text", "created_at", "updated_at",
})


@dataclass
class NormalizationResult:
    entities: List[Entity] = field(default_factory=list)
    rejected: List[EntityValidationError] = field(default_factory=list)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)


# ========== ПРИВЕДЕНИЕ ЗНАЧЕНИЙ ==========

def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def _first(raw: Mapping, *keys: str) -> Any:
    """Первое заполненное поле из списка (порядок = приоритет)"""
    for key in keys:
        value = raw.get(key)
        if _present(value):
            return value
    return None


def _json(value: Any) -> Any:
    # JSONB-колонки иногда приходят строкой
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.debug(f"Поле не является JSON: {value[:50]!r}")
            return None
    return value


def _text(value: Any) -> str:
    if not _present(value):
        return ""
    return str(value).strip()


def _optional_text(value: Any) -> Optional[str]:
    return _text(value) or None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not _present(value):
        return None
    if isinstance(value, Decimal):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float('inf'), float('-inf')):
        return None
    return number


def _rating(value: Any) -> float:
    number = _number(value)
    if number is None:
        return 0.0
    return max(0.0, min(5.0, number))


def _count(value: Any) -> int:
    number = _number(value)
    if number is None or number < 0:
        return 0
    return int(number)


def _price_level(value: Any) -> int:
    number = _number(value)
    if number is None or int(number) != number or not 1 <= number <= 4:
        return 0
    return int(number)


def _string_list(value: Any) -> List[str]:
    value = _json(value)
    if not isinstance(value, list):
        return []
    result = []
    for item in value:
        if isinstance(item, str) and item.strip() and item.strip() not in result:
            result.append(item.strip())
    return result


def _enum(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except (TypeError, ValueError):
        return default


def _work_hours(value: Any) -> Optional[Dict[str, dict]]:
    """Расписание по дням или None. Список из выгрузки разбирается отдельно."""
    value = _json(value)
    if isinstance(value, list):
        schedule = schedule_from_google(value)
    elif isinstance(value, Mapping):
        schedule = {}
        for key, hours in value.items():
            day = DAY_ALIASES.get(str(key).strip().lower())
            if not day or not isinstance(hours, Mapping):
                continue
            schedule[day] = {
                "open": hours.get('open') if isinstance(hours.get('open'), str) else "",
                "close": hours.get('close') if isinstance(hours.get('close'), str) else "",
                "closed": hours.get('closed') is True,
            }
    else:
        return None
    return schedule or None


def _contacts(raw: Mapping) -> Dict[str, Optional[str]]:
    nested = raw.get('contacts')
    source = nested if isinstance(nested, Mapping) else raw
    return {name: _optional_text(source.get(name)) for name in _CONTACT_FIELDS}


def _geo(raw: Mapping, *flat_pairs) -> tuple:
    """Плоская пара полей или вложенный {lat, lng}"""
    location = raw.get('location')
    candidates = list(flat_pairs)
    if isinstance(location, Mapping):
        candidates.insert(0, None)

    for pair in candidates:
        if pair is None:
            lat, lng = parse_point(location.get('lat'), location.get('lng'))
        else:
            lat, lng = parse_point(raw.get(pair[0]), raw.get(pair[1]))
        if lat is not None:
            return lat, lng
    return None, None


def _short_description(value: Any, address: str) -> str:
    # Не повторяем адрес второй раз под названием
    description = _text(value)
    if description and description == address:
        return ""
    return description


def _require_identity(raw: Any) -> tuple:
    if not isinstance(raw, Mapping):
        raise EntityValidationError("запись не является объектом")
    raw_id = raw.get('id')
    entity_id = _text(raw_id) if not isinstance(raw_id, bool) else ""
    if not entity_id:
        raise EntityValidationError("нет id")
    title = _text(raw.get('title'))
    if not title:
        raise EntityValidationError("нет названия", entity_id)
    return entity_id, title


# ========== АДАПТЕРЫ ИСТОЧНИКОВ ==========

def _adapt_remote(raw: Mapping) -> Dict[str, Any]:
    """Строка основного хранилища -> поля Entity"""
    entity_id, title = _require_identity(raw)
    address = _text(_first(raw, 'address', 'address_text'))
    gallery = _string_list(raw.get('gallery'))
    geo_lat, geo_lng = _geo(raw, ('location_lat', 'location_lng'), ('geo_lat', 'geo_lng'))
    additional_info = _json(raw.get('additional_info'))

    return {
        "id": entity_id,
        "place_id": _optional_text(raw.get('place_id')),
        "type": _enum(EntityType, raw.get('type'), EntityType.PLACE),
        "status": _enum(EntityStatus, raw.get('status'), _DEFAULT_STATUS[SourceKind.REMOTE]),
        "title": title,
        "short_description": _short_description(raw.get('short_description'), address),
        "area": _text(raw.get('area')),
        "address_text": address,
        "category_name": _text(raw.get('category_name')),
        "geo_lat": geo_lat,
        "geo_lng": geo_lng,
        "contacts": _contacts(raw),
        "price_level": _price_level(raw.get('price_level')),
        "average_check": _optional_text(raw.get('average_check')),
        "rating": _rating(_first(raw, 'total_score', 'rating')),
        "rating_count": _count(_first(raw, 'reviews_count', 'rating_count')),
        "last_confirmed_at": parse_datetime(raw.get('last_confirmed_at')),
        "tags": _string_list(raw.get('tags')),
        # Без главного фото карточка показывает первое из галереи
        "image_url": _text(raw.get('image_url')) or (gallery[0] if gallery else ""),
        "gallery": gallery,
        "work_hours": _work_hours(_first(raw, 'work_hours', 'opening_hours')),
        "additional_info": additional_info if isinstance(additional_info, Mapping) else {},
        "popular_times_histogram": _json(raw.get('popular_times_histogram')),
        "popular_times_live_text": _optional_text(raw.get('popular_times_live_text')),
        "created_at": parse_datetime(raw.get('created_at')),
        "updated_at": parse_datetime(raw.get('updated_at')),
    }


def _adapt_local(raw: Mapping) -> Dict[str, Any]:
    """Запись локального кэша (форма выгрузки парсера) -> поля Entity"""
    entity_id, title = _require_identity(raw)
    address = _text(_first(raw, 'address', 'address_text'))
    geo_lat, geo_lng = _geo(raw, ('geo_lat', 'geo_lng'), ('location_lat', 'location_lng'))
    additional_info = _json(_first(raw, 'additionalInfo', 'additional_info'))

    return {
        "id": entity_id,
        "place_id": _optional_text(_first(raw, 'placeId', 'place_id')),
        "type": _enum(EntityType, raw.get('type'), EntityType.PLACE),
        "status": _enum(EntityStatus, raw.get('status'), _DEFAULT_STATUS[SourceKind.LOCAL]),
        "title": title,
        "short_description": _short_description(
            _first(raw, 'short_description', 'shortDescription'), address
        ),
        "area": _text(raw.get('area')),
        "address_text": address,
        "category_name": _text(_first(raw, 'categoryName', 'category_name')),
        "geo_lat": geo_lat,
        "geo_lng": geo_lng,
        "contacts": _contacts(raw),
        "price_level": _price_level(_first(raw, 'price_level', 'priceLevel')),
        "average_check": _optional_text(_first(raw, 'average_check', 'price')),
        "rating": _rating(_first(raw, 'totalScore', 'total_score', 'rating')),
        "rating_count": _count(_first(raw, 'reviewsCount', 'reviews_count', 'rating_count')),
        "last_confirmed_at": parse_datetime(raw.get('last_confirmed_at')),
        "tags": _string_list(_first(raw, 'placesTags', 'tags')),
        "image_url": _text(_first(raw, 'imageUrl', 'image_url')),
        "gallery": _string_list(_first(raw, 'imageUrls', 'gallery')),
        "work_hours": _work_hours(_first(raw, 'work_hours', 'openingHours', 'opening_hours')),
        "additional_info": additional_info if isinstance(additional_info, Mapping) else {},
        "popular_times_histogram": _json(
            _first(raw, 'popularTimesHistogram', 'popular_times_histogram')
        ),
        "popular_times_live_text": _optional_text(
            _first(raw, 'popularTimesLiveText', 'popular_times_live_text')
        ),
        "created_at": parse_datetime(raw.get('created_at')),
        "updated_at": parse_datetime(raw.get('updated_at')),
    }


_ADAPTERS = {
    SourceKind.REMOTE: _adapt_remote,
    SourceKind.LOCAL: _adapt_local,
}


# ========== ПУБЛИЧНЫЙ ИНТЕРФЕЙС ==========

def normalize(raw: Any, source_kind: SourceKind) -> Entity:
    """
    Сырая запись -> Entity.

    Запись без id или названия не превращается в карточку:
    бросается EntityValidationError, вызывающий сам решает, что с ней делать.
    """
    fields = _ADAPTERS[SourceKind(source_kind)](raw)
    try:
        return Entity.model_validate(fields)
    except ValidationError as e:
        raise EntityValidationError(f"некорректные поля: {e.error_count()} ошибок", fields.get('id'))


def normalize_many(raws: Iterable[Any], source_kind: SourceKind) -> NormalizationResult:
    """Нормализация пачки: отклонённые записи собираются отдельно, пачка не падает"""
    result = NormalizationResult()
    for raw in raws:
        try:
            result.entities.append(normalize(raw, source_kind))
        except EntityValidationError as e:
            logger.debug(f"Запись отклонена ({source_kind}): {e}")
            result.rejected.append(e)

    if result.rejected:
        logger.warning(
            f"Отклонено {result.rejected_count} записей из источника {SourceKind(source_kind).value}"
        )
    return result


def to_remote_row(entity: Entity) -> Dict[str, Any]:
    """Entity -> сырая запись в форме основного хранилища"""
    contacts = entity.contacts.model_dump()
    return {
        "id": entity.id,
        "place_id": entity.place_id,
        "type": entity.type.value,
        "status": entity.status.value,
        "title": entity.title,
        "short_description": entity.short_description,
        "area": entity.area,
        "address": entity.address_text,
        "category_name": entity.category_name,
        "total_score": entity.rating,
        "reviews_count": entity.rating_count,
        **contacts,
        "phone_unformatted": phone_for_tel(entity.contacts.phone),
        "location_lat": entity.geo_lat,
        "location_lng": entity.geo_lng,
        "price_level": entity.price_level or None,
        "average_check": entity.average_check,
        "tags": list(entity.tags),
        "image_url": entity.image_url or None,
        "gallery": list(entity.gallery),
        "images_count": len(entity.gallery),
        "opening_hours": _dump_hours(entity),
        "additional_info": dict(entity.additional_info),
        "popular_times_histogram": entity.popular_times_histogram,
        "popular_times_live_text": entity.popular_times_live_text,
        "last_confirmed_at": entity.last_confirmed_at,
        "created_at": entity.created_at,
        "updated_at": entity.updated_at,
    }


def to_local_record(entity: Entity) -> Dict[str, Any]:
    """Entity -> запись локального кэша (JSON-совместимая, camelCase как у парсера)"""
    data = entity.model_dump(mode='json')
    record = {
        "id": data['id'],
        "placeId": data['place_id'],
        "type": data['type'],
        "status": data['status'],
        "title": data['title'],
        "short_description": data['short_description'],
        "area": data['area'],
        "address": data['address_text'],
        "categoryName": data['category_name'],
        "totalScore": data['rating'],
        "reviewsCount": data['rating_count'],
        "contacts": data['contacts'],
        "price_level": data['price_level'],
        "average_check": data['average_check'],
        "placesTags": data['tags'],
        "imageUrl": data['image_url'],
        "imageUrls": data['gallery'],
        "work_hours": data['work_hours'],
        "additionalInfo": data['additional_info'],
        "popularTimesHistogram": data['popular_times_histogram'],
        "popularTimesLiveText": data['popular_times_live_text'],
        "last_confirmed_at": data['last_confirmed_at'],
        "created_at": data['created_at'],
        "updated_at": data['updated_at'],
    }
    record["location"] = {"lat": entity.geo_lat, "lng": entity.geo_lng} if entity.has_coordinates else None
    return record


def _dump_hours(entity: Entity) -> Optional[Dict[str, dict]]:
    if not entity.work_hours:
        return None
    return {day: hours.model_dump() for day, hours in entity.work_hours.items()}
