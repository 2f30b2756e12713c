# backend/schemas/guide.py
from typing import List, Optional
from pydantic import Field, field_validator
from .base import TimestampSchema
from .entity import EntityCard

class GuideResponse(TimestampSchema):
    id: str
    title: str
    category: Optional[str] = None
    content: str = ""
    related_entities: List[str] = Field(default_factory=list)

    @field_validator('content', mode='before')
    @classmethod
    def validate_content(cls, v):
        return v or ""

    @field_validator('related_entities', mode='before')
    @classmethod
    def validate_related(cls, v):
        if not isinstance(v, list):
            return []
        return [str(item) for item in v if item]

class GuideDetailResponse(GuideResponse):
    """Гайд вместе с карточками, на которые он ссылается"""
    entities: List[EntityCard] = Field(default_factory=list)
