# backend/dependencies.py
"""
Зависимости FastAPI: хранилища, кэш и проверка доступа админки
"""

import secrets
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Dict, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import config
from .database import AsyncSessionLocal, get_db
from .services.cache import CacheService
from .services.comments import CommentService
from .services.local_store import LocalStore
from .services.repository import LocalRepository, RemoteRepository
from .services.seed import load_seed_comments


@lru_cache()
def get_cache() -> CacheService:
    """Один клиент Redis на процесс"""
    return CacheService(config.REDIS_URL)


def get_local_store(cache: CacheService = Depends(get_cache)) -> LocalStore:
    return LocalStore(cache)


def get_remote_repository(db: AsyncSession = Depends(get_db)) -> RemoteRepository:
    return RemoteRepository(db)


def get_local_repository(store: LocalStore = Depends(get_local_store)) -> LocalRepository:
    return LocalRepository(store)


def get_remote_factory():
    """
    Фабрика репозиториев со своей сессией на каждый вызов.
    Нужна для параллельной загрузки: одну AsyncSession нельзя делить между задачами.
    """
    @asynccontextmanager
    async def factory():
        async with AsyncSessionLocal() as session:
            yield RemoteRepository(session)
    return factory


def get_seed_comments() -> Dict[str, dict]:
    return load_seed_comments(config.SEED_COMMENTS_PATH)


def get_comment_service(
    store: LocalStore = Depends(get_local_store),
    remote: RemoteRepository = Depends(get_remote_repository),
    local: LocalRepository = Depends(get_local_repository),
    seeds: Dict[str, dict] = Depends(get_seed_comments),
) -> CommentService:
    return CommentService(store, [remote, local], seeds)


def _password_ok(password: Optional[str]) -> bool:
    return bool(password) and secrets.compare_digest(password.encode(), config.ADMIN_PASSWORD.encode())


def is_admin(x_admin_password: Optional[str] = Header(None)) -> bool:
    """Админ ли запрос (без отказа, для публичных ручек с расширенным режимом)"""
    return _password_ok(x_admin_password)


def require_admin(x_admin_password: Optional[str] = Header(None)) -> bool:
    """Доступ только для админки: заголовок X-Admin-Password"""
    if not _password_ok(x_admin_password):
        raise HTTPException(status_code=403, detail="Доступ запрещен: нужен пароль администратора")
    return True
