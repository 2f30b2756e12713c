# backend/schemas/__init__.py
from .base import BaseSchema, TimestampSchema
from .entity import (
    DayHours, Contacts, Entity, EntityCard, EntityUpdate, EntityListResponse,
    OpenStatusOut, BusynessOut, FeatureOut
)
from .draft import EntityDraft, phone_for_tel
from .comment import Comment, CommentCreate, CommentFeed
from .guide import GuideResponse, GuideDetailResponse
from .upload import BulkUploadResult

__all__ = [
    'BaseSchema', 'TimestampSchema',
    'DayHours', 'Contacts', 'Entity', 'EntityCard', 'EntityUpdate', 'EntityListResponse',
    'OpenStatusOut', 'BusynessOut', 'FeatureOut',
    'EntityDraft', 'phone_for_tel',
    'Comment', 'CommentCreate', 'CommentFeed',
    'GuideResponse', 'GuideDetailResponse',
    'BulkUploadResult',
]
