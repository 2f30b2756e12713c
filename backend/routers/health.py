# backend/routers/health.py
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_cache
from ..services.cache import CacheService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db), cache: CacheService = Depends(get_cache)):
    """Проверка работоспособности сервиса"""
    # Проверка БД
    db_ok = False
    try:
        await db.execute(select(1))
        db_ok = True
    except Exception as e:
        logger.warning(f"База данных недоступна: {e}")

    cache_ok = await cache.ping()

    return {
        "status": "healthy" if db_ok and cache_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "connected" if db_ok else "disconnected",
        "cache": "connected" if cache_ok else "disconnected",
        "service": "bali-explorer-api",
        "version": "2.0.0"
    }
