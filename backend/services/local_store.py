# backend/services/local_store.py
"""
Локальный кэш: зеркало части карточек, избранное и комментарии пользователей.

Каждая коллекция хранится одним JSON-блобом под фиксированным ключом и
читается/пишется целиком. Конкурентной записи никто не координирует:
последняя запись выигрывает.
"""

import logging
from typing import Any, Dict, List, Optional

from ..errors import CatalogUnavailableError

logger = logging.getLogger(__name__)

ENTITIES_KEY = "bali_entities"
FAVORITES_KEY = "bali-explorer-favorites"
COMMENTS_KEY = "bali-explorer-comments"


class LocalStore:
    def __init__(self, cache):
        # cache: CacheService или любой объект с async fetch/set
        self.cache = cache

    async def _load(self, key: str, default):
        value = await self.cache.fetch(key)
        if value is None:
            return default
        if not isinstance(value, type(default)):
            logger.warning(f"Неожиданный формат ключа {key}: {type(value).__name__}, считаем пустым")
            return default
        return value

    async def _save(self, key: str, value: Any):
        if not await self.cache.set(key, value, ttl=None):
            raise CatalogUnavailableError(f"Не удалось сохранить {key} в локальный кэш")

    # ---------- Карточки ----------

    async def entities(self) -> List[dict]:
        return await self._load(ENTITIES_KEY, [])

    async def save_entities(self, records: List[dict]):
        await self._save(ENTITIES_KEY, records)

    # ---------- Избранное ----------

    async def favorites(self) -> List[str]:
        return [str(item) for item in await self._load(FAVORITES_KEY, [])]

    async def add_favorite(self, entity_id: str) -> List[str]:
        favorites = await self.favorites()
        if entity_id not in favorites:
            favorites.append(entity_id)
            await self._save(FAVORITES_KEY, favorites)
        return favorites

    async def remove_favorite(self, entity_id: str) -> List[str]:
        favorites = await self.favorites()
        if entity_id in favorites:
            favorites.remove(entity_id)
            await self._save(FAVORITES_KEY, favorites)
        return favorites

    # ---------- Комментарии пользователей ----------

    async def comments(self) -> Dict[str, List[dict]]:
        return await self._load(COMMENTS_KEY, {})

    async def user_comments(self, entity_id: str) -> List[dict]:
        items = (await self.comments()).get(entity_id, [])
        return [item for item in items if isinstance(item, dict)]

    async def add_comment(self, entity_id: str, comment: dict):
        comments = await self.comments()
        comments.setdefault(entity_id, []).append(comment)
        await self._save(COMMENTS_KEY, comments)

    async def remove_comment(self, entity_id: str, comment_id: str) -> bool:
        comments = await self.comments()
        items = comments.get(entity_id, [])
        kept = [item for item in items if not (isinstance(item, dict) and item.get('id') == comment_id)]
        if len(kept) == len(items):
            return False
        comments[entity_id] = kept
        await self._save(COMMENTS_KEY, comments)
        return True

    async def find_entity(self, entity_id: str) -> Optional[dict]:
        for record in await self.entities():
            if isinstance(record, dict) and str(record.get('id')) == entity_id:
                return record
        return None
