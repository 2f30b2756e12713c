# backend/services/bulk_import.py
"""
Массовая загрузка карточек из выгрузки Google Places.

Каждая запись обрабатывается отдельно: запись без названия отклоняется,
ошибка базы откатывает только свою запись, пачка доходит до конца.
"""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Mapping

from shared.config import config
from shared.models.enums import EntityStatus
from ..errors import EntityValidationError
from ..schemas.draft import phone_for_tel
from ..schemas.upload import BulkUploadResult
from ..utils.geo import parse_point
from ..utils.work_hours import schedule_from_google
from ..utils.dates import parse_datetime
from .comments import coerce_stars

logger = logging.getLogger(__name__)


def _gallery(place: Mapping) -> List[str]:
    urls = place.get('imageUrls') or place.get('gallery') or []
    if not isinstance(urls, list):
        return []
    return [url for url in urls if isinstance(url, str) and url.strip()][:config.BULK_IMAGES_LIMIT]


def _review(review: Mapping) -> Dict[str, Any]:
    rating = coerce_stars(review.get('stars') if review.get('stars') is not None else review.get('rating'))
    return {
        "author_name": review.get('name') or None,
        "author_photo": review.get('reviewerPhotoUrl') or review.get('profilePhotoUrl') or None,
        # Вне 1..5 база не примет, оставляем оценку пустой
        "rating": rating if 1 <= rating <= 5 else None,
        "text": review.get('text') or review.get('textTranslated') or None,
        "published_at": parse_datetime(review.get('publishedAtDate')),
    }


def transform_place(place: Any) -> Dict[str, Any]:
    """Запись выгрузки -> сырая запись основного хранилища (+ gallery и reviews)"""
    if not isinstance(place, Mapping):
        raise EntityValidationError("запись не является объектом")
    title = place.get('title')
    if not isinstance(title, str) or not title.strip():
        raise EntityValidationError("нет названия", place.get('placeId'))

    place_id = place.get('placeId') or None
    entity_id = f"place-{str(place_id)[-8:]}" if place_id else f"entity-{uuid.uuid4().hex[:12]}"

    location = place.get('location') if isinstance(place.get('location'), Mapping) else {}
    lat, lng = parse_point(location.get('lat'), location.get('lng'))

    gallery = _gallery(place)
    image_url = place.get('imageUrl') or (gallery[0] if gallery else None)

    reviews = place.get('reviews') if isinstance(place.get('reviews'), list) else []
    tags = place.get('placesTags') or place.get('categories') or []

    return {
        "id": entity_id,
        "place_id": place_id,
        "status": EntityStatus.UNVERIFIED.value,
        "title": title.strip(),
        "category_name": place.get('categoryName') or None,
        "total_score": place.get('totalScore'),
        "reviews_count": place.get('reviewsCount') or 0,
        "address": place.get('address') or None,
        "area": place.get('neighborhood') or place.get('city') or None,
        "phone": place.get('phone') or None,
        "phone_unformatted": phone_for_tel(place.get('phone')),
        "website": place.get('website') or None,
        "location_lat": lat,
        "location_lng": lng,
        "average_check": place.get('price') or None,
        "tags": [tag for tag in tags if isinstance(tag, str)],
        "opening_hours": schedule_from_google(place.get('openingHours')) or None,
        "additional_info": place.get('additionalInfo') if isinstance(place.get('additionalInfo'), Mapping) else {},
        "popular_times_histogram": place.get('popularTimesHistogram'),
        "popular_times_live_text": place.get('popularTimesLiveText') or None,
        "image_url": image_url,
        "gallery": gallery,
        "images_count": len(gallery),
        "reviews": [_review(r) for r in reviews[:config.BULK_REVIEWS_LIMIT] if isinstance(r, Mapping)],
    }


class BulkImporter:
    def __init__(self, repository):
        # repository: RemoteRepository (нужен upsert_imported)
        self.repository = repository

    async def import_places(self, places: Iterable[Any]) -> BulkUploadResult:
        places = list(places)
        result = BulkUploadResult(success=True, processed=len(places))

        for place in places:
            title = place.get('title') if isinstance(place, Mapping) else None
            try:
                data = transform_place(place)
                await self.repository.upsert_imported(data)
                result.succeeded += 1
            except Exception as e:
                result.failed += 1
                result.errors.append(f"{title or 'Unknown'}: {e}")
                logger.error(f"Ошибка загрузки {title or 'Unknown'}: {e}")

        logger.info(f"Загрузка завершена: {result.succeeded} из {result.processed}, ошибок {result.failed}")
        return result
