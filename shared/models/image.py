# shared/models/image.py
from sqlalchemy import Column, Integer, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin

class ImageRecord(Base, TimestampMixin):
    """Фото карточки, упорядоченные по position"""
    __tablename__ = "images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_id = Column(Text, ForeignKey("entities.id", ondelete="CASCADE"), nullable=False)
    url = Column(Text, nullable=False)
    position = Column(Integer, default=0, nullable=False)

    entity = relationship("EntityRecord", back_populates="images")

    __table_args__ = (
        Index('idx_images_entity', 'entity_id', 'position'),
    )
