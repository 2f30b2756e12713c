# backend/schemas/draft.py
"""
Черновик карточки из формы админки.

Форма присылает десятки необязательных полей; всё, что раньше делалось
вручную перед сохранением (сборка галереи из слотов, очистка телефона),
выполняется одним шагом finalize().
"""

import re
import uuid
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from .base import BaseSchema
from .entity import DayHours
from shared.models.enums import EntityType, EntityStatus

_PHONE_JUNK_RE = re.compile(r'[^\d+]')


def phone_for_tel(phone: Optional[str]) -> Optional[str]:
    """Телефон для ссылки tel: - только цифры и плюс"""
    if not phone:
        return None
    cleaned = _PHONE_JUNK_RE.sub('', phone)
    return cleaned or None


class EntityDraft(BaseSchema):
    # Обязательное
    title: str = Field(..., min_length=1, max_length=300)
    type: EntityType = EntityType.PLACE
    status: EntityStatus = EntityStatus.UNVERIFIED

    # Описание
    short_description: Optional[str] = None
    area: Optional[str] = None
    address_text: Optional[str] = None
    category_name: Optional[str] = None

    # Контакты
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    telegram: Optional[str] = None
    instagram: Optional[str] = None
    website: Optional[str] = None

    # Гео
    geo_lat: Optional[float] = Field(None, ge=-90, le=90)
    geo_lng: Optional[float] = Field(None, ge=-180, le=180)

    # Цены и рейтинг
    price_level: Optional[int] = Field(None, ge=1, le=4)
    average_check: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    rating_count: int = Field(default=0, ge=0)
    tags: List[str] = Field(default_factory=list)

    # Медиа: главное фото, пять слотов формы и дополнительные ссылки
    image_url: Optional[str] = None
    gallery_1: Optional[str] = None
    gallery_2: Optional[str] = None
    gallery_3: Optional[str] = None
    gallery_4: Optional[str] = None
    gallery_5: Optional[str] = None
    gallery_extra: List[str] = Field(default_factory=list)

    work_hours: Optional[Dict[str, DayHours]] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Название не может быть пустым')
        return v.strip()

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v):
        return [tag.strip() for tag in v if tag and tag.strip()]

    def gallery(self) -> List[str]:
        """Слоты по порядку, пустые выбрасываются"""
        slots = [self.gallery_1, self.gallery_2, self.gallery_3, self.gallery_4, self.gallery_5]
        urls = []
        for url in slots + list(self.gallery_extra):
            if url and url.strip():
                urls.append(url.strip())
        return urls

    def phone_unformatted(self) -> Optional[str]:
        return phone_for_tel(self.phone)

    def finalize(self, entity_id: Optional[str] = None) -> Dict[str, Any]:
        """Сырая запись в форме основного хранилища"""
        gallery = self.gallery()
        image_url = (self.image_url or '').strip() or (gallery[0] if gallery else None)

        work_hours = None
        if self.work_hours:
            work_hours = {day: hours.model_dump() for day, hours in self.work_hours.items()}

        return {
            "id": entity_id or f"entity-{uuid.uuid4().hex[:12]}",
            "type": self.type.value,
            "status": self.status.value,
            "title": self.title,
            "short_description": self.short_description,
            "area": self.area,
            "address": self.address_text,
            "category_name": self.category_name,
            "phone": self.phone,
            "phone_unformatted": self.phone_unformatted(),
            "whatsapp": self.whatsapp,
            "telegram": self.telegram,
            "instagram": self.instagram,
            "website": self.website,
            "location_lat": self.geo_lat,
            "location_lng": self.geo_lng,
            "price_level": self.price_level,
            "average_check": self.average_check,
            "total_score": self.rating,
            "reviews_count": self.rating_count,
            "tags": list(self.tags),
            "image_url": image_url,
            "gallery": gallery,
            "images_count": len(gallery),
            "opening_hours": work_hours,
        }
