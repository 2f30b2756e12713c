# backend/schemas/upload.py
from typing import List
from pydantic import Field
from .base import BaseSchema

class BulkUploadResult(BaseSchema):
    """Итог массовой загрузки"""
    success: bool
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)
