# shared/models/guide.py
from sqlalchemy import Column, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from .base import Base, TimestampMixin

class GuideRecord(Base, TimestampMixin):
    """Статья-гайд со ссылками на карточки"""
    __tablename__ = "guides"

    id = Column(Text, primary_key=True)
    title = Column(Text, nullable=False)
    category = Column(String(50), index=True)
    content = Column(Text, default="")
    related_entities = Column(JSONB, default=list)
