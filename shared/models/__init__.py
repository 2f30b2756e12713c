# shared/models/__init__.py
from .base import Base
from .entity import EntityRecord
from .image import ImageRecord
from .review import ReviewRecord
from .guide import GuideRecord
from .enums import EntityType, EntityStatus, SourceKind, CommentSource, SortMode

__all__ = [
    'Base',
    'EntityRecord',
    'ImageRecord',
    'ReviewRecord',
    'GuideRecord',
    'EntityType',
    'EntityStatus',
    'SourceKind',
    'CommentSource',
    'SortMode'
]
