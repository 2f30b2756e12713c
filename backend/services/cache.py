# backend/services/cache.py
import json
from typing import Any, Optional
import redis.asyncio as redis
import logging

logger = logging.getLogger(__name__)

class CacheService:
    """Сервис кэширования Redis: значения хранятся JSON-строками"""
    
    def __init__(self, redis_url: str):
        self.redis = redis.from_url(redis_url, decode_responses=True)
    
    async def fetch(self, key: str) -> Optional[Any]:
        """Получить значение по ключу. Ошибки соединения пробрасываются."""
        data = await self.redis.get(key)
        return json.loads(data) if data else None
    
    async def set(self, key: str, value: Any, ttl: Optional[int] = 300) -> bool:
        """Установить значение с TTL. ttl=None - хранить бессрочно."""
        try:
            if ttl is None:
                await self.redis.set(key, json.dumps(value, ensure_ascii=False))
            else:
                await self.redis.setex(key, ttl, json.dumps(value, ensure_ascii=False))
            return True
        except Exception as e:
            logger.error(f"Cache set error for key {key}: {e}")
            return False
    
    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except Exception as e:
            logger.error(f"Cache ping error: {e}")
            return False
    
    async def close(self):
        await self.redis.aclose()
