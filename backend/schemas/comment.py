# backend/schemas/comment.py
from datetime import datetime
from typing import List, Optional
from pydantic import Field, field_validator
from .base import BaseSchema
from shared.models.enums import CommentSource

class Comment(BaseSchema):
    """Комментарий в ленте карточки (любого происхождения)"""
    id: str
    entity_id: str
    rating: int = 0
    text: str = ""
    author: str = "Аноним"
    created_at: Optional[datetime] = None
    source: CommentSource

    @property
    def deletable(self) -> bool:
        return self.source == CommentSource.USER

class CommentCreate(BaseSchema):
    """Новый комментарий пользователя"""
    rating: int = Field(..., ge=1, le=5)
    text: str = Field(..., min_length=1, max_length=2000)
    author: Optional[str] = Field(None, max_length=100)

    @field_validator('text')
    @classmethod
    def validate_text(cls, v):
        if not v.strip():
            raise ValueError('Текст комментария не может быть пустым')
        return v.strip()

class CommentFeed(BaseSchema):
    """Лента комментариев и распределение оценок [5★, 4★, 3★, 2★, 1★]"""
    entity_id: str
    comments: List[Comment]
    total: int
    distribution: List[int]
