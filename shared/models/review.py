# shared/models/review.py
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin

class ReviewRecord(Base, TimestampMixin):
    """Отзыв, импортированный из внешней выгрузки (только чтение)"""
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_id = Column(Text, ForeignKey("entities.id", ondelete="CASCADE"), nullable=False)
    author_name = Column(Text)
    author_photo = Column(Text)
    rating = Column(Integer)
    text = Column(Text)
    published_at = Column(DateTime(timezone=True))

    entity = relationship("EntityRecord", back_populates="reviews")

    __table_args__ = (
        CheckConstraint('rating >= 1 AND rating <= 5', name='ck_reviews_rating'),
        Index('idx_reviews_entity', 'entity_id'),
    )

    def __repr__(self):
        return f"<ReviewRecord(id={self.id}, entity_id={self.entity_id}, rating={self.rating})>"
