# backend/schemas/entity.py
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import Field, field_validator
from .base import BaseSchema, TimestampSchema
from shared.models.enums import EntityType, EntityStatus

class DayHours(BaseSchema):
    """Часы работы на один день"""
    open: str = ""
    close: str = ""
    closed: bool = False

class Contacts(BaseSchema):
    """Контакты: свободный набор, форматы не нормализуются"""
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    telegram: Optional[str] = None
    instagram: Optional[str] = None
    website: Optional[str] = None

class Entity(TimestampSchema):
    """Каноническая карточка каталога (общая для обоих источников)"""
    id: str = Field(..., min_length=1)
    place_id: Optional[str] = None
    type: EntityType = EntityType.PLACE
    status: EntityStatus = EntityStatus.ACTIVE
    title: str = Field(..., min_length=1)
    short_description: str = ""
    area: str = ""
    address_text: str = ""
    category_name: str = ""
    geo_lat: Optional[float] = Field(None, ge=-90, le=90)
    geo_lng: Optional[float] = Field(None, ge=-180, le=180)
    contacts: Contacts = Field(default_factory=Contacts)
    price_level: int = Field(default=0, ge=0, le=4)  # 0 = неизвестно
    average_check: Optional[str] = None
    rating: float = Field(default=0.0, ge=0, le=5)
    rating_count: int = Field(default=0, ge=0)
    last_confirmed_at: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    image_url: str = ""
    gallery: List[str] = Field(default_factory=list)
    work_hours: Optional[Dict[str, DayHours]] = None
    additional_info: Dict[str, Any] = Field(default_factory=dict)
    popular_times_histogram: Optional[Any] = None
    popular_times_live_text: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.geo_lat is not None and self.geo_lng is not None

class OpenStatusOut(BaseSchema):
    is_open: bool
    text: str

class BusynessOut(BaseSchema):
    percentage: int
    label: str

class FeatureOut(BaseSchema):
    name: str
    icon: str

class EntityCard(Entity):
    """Карточка с вычисляемыми полями. Вычисляемые поля нигде не сохраняются."""
    open_status: Optional[OpenStatusOut] = None
    schedule_text: str = ""
    busyness: Optional[BusynessOut] = None
    distance_km: Optional[float] = None
    features: List[str] = Field(default_factory=list)
    features_preview: List[FeatureOut] = Field(default_factory=list)
    hidden_features_count: int = 0
    preview_images: List[str] = Field(default_factory=list)
    price_indicator: str = ""
    tel_link: Optional[str] = None

class EntityUpdate(BaseSchema):
    """Частичное обновление карточки (админка, модерация)"""
    title: Optional[str] = Field(None, min_length=1)
    type: Optional[EntityType] = None
    status: Optional[EntityStatus] = None
    short_description: Optional[str] = None
    area: Optional[str] = None
    address_text: Optional[str] = None
    category_name: Optional[str] = None
    geo_lat: Optional[float] = Field(None, ge=-90, le=90)
    geo_lng: Optional[float] = Field(None, ge=-180, le=180)
    contacts: Optional[Contacts] = None
    price_level: Optional[int] = Field(None, ge=0, le=4)
    average_check: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    rating_count: Optional[int] = Field(None, ge=0)
    tags: Optional[List[str]] = None
    image_url: Optional[str] = None
    gallery: Optional[List[str]] = None
    work_hours: Optional[Dict[str, DayHours]] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Название не может быть пустым")
        return v.strip() if v else v

class EntityListResponse(BaseSchema):
    """Ответ со списком карточек"""
    entities: List[EntityCard]
    total: int
    rejected: int = 0
    remote_available: bool = True
    local_available: bool = True
