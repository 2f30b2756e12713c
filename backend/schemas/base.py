# backend/schemas/base.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime

class BaseSchema(BaseModel):
    """Базовая схема с настройками"""
    model_config = ConfigDict(from_attributes=True, arbitrary_types_allowed=True)

class TimestampSchema(BaseSchema):
    """Схема с временными метками"""
    created_at: datetime | None = None
    updated_at: datetime | None = None
