# shared/models/entity.py
from sqlalchemy import Column, String, Text, Integer, Numeric, DateTime, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin
from .enums import EntityType, EntityStatus

class EntityRecord(Base, TimestampMixin):
    """Карточка каталога в основном хранилище (колонки в snake_case)"""
    __tablename__ = "entities"

    id = Column(Text, primary_key=True)
    place_id = Column(Text, unique=True)  # ID из выгрузки Google Places
    type = Column(String(20), default=EntityType.PLACE.value, nullable=False, index=True)
    status = Column(String(20), default=EntityStatus.UNVERIFIED.value, nullable=False, index=True)
    title = Column(Text, nullable=False)
    short_description = Column(Text)
    area = Column(Text, index=True)
    category_name = Column(Text, index=True)
    total_score = Column(Numeric(3, 1))
    reviews_count = Column(Integer, default=0)
    address = Column(Text)

    # Контакты
    phone = Column(Text)
    whatsapp = Column(Text)
    telegram = Column(Text)
    instagram = Column(Text)
    website = Column(Text)
    phone_unformatted = Column(Text)  # только цифры и +, для ссылки tel:

    location_lat = Column(Numeric(10, 7))
    location_lng = Column(Numeric(10, 7))
    price_level = Column(Integer)  # 1-4, NULL = неизвестно
    average_check = Column(Text)
    tags = Column(JSONB, default=list)
    image_url = Column(Text)
    images_count = Column(Integer, default=0)
    opening_hours = Column(JSONB)
    additional_info = Column(JSONB)
    popular_times_histogram = Column(JSONB)
    popular_times_live_text = Column(Text)
    last_confirmed_at = Column(DateTime(timezone=True))

    # Связи: удаление карточки удаляет её фото и отзывы
    images = relationship(
        "ImageRecord",
        back_populates="entity",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ImageRecord.position",
    )
    reviews = relationship(
        "ReviewRecord",
        back_populates="entity",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index('idx_entities_score', 'total_score'),
    )

    def __repr__(self):
        return f"<EntityRecord(id={self.id}, title={self.title[:30]}, status={self.status})>"
