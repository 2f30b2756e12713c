# shared/models/enums.py
from enum import Enum

class EntityType(str, Enum):
    """Типы карточек каталога"""
    PLACE = "place"
    SERVICE = "service"
    SPECIALIST = "specialist"
    REALTOR = "realtor"

class EntityStatus(str, Enum):
    """Статусы модерации карточек"""
    ACTIVE = "active"
    UNVERIFIED = "unverified"
    FLAGGED = "flagged"
    ARCHIVED = "archived"

class SourceKind(str, Enum):
    """Откуда пришла сырая запись"""
    REMOTE = "remote"
    LOCAL = "local"

class CommentSource(str, Enum):
    """Происхождение комментария"""
    IMPORTED = "imported"
    USER = "user"
    SEED = "seed"

class SortMode(str, Enum):
    """Режимы сортировки списка"""
    DEFAULT = "default"
    POPULAR = "popular"
    NEARBY = "nearby"
    RECENT = "recent"
