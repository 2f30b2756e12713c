# backend/database.py
"""
Подключение к базе данных и сессии
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from shared.config import config
from shared.models import Base

# Создаем асинхронный движок
engine = create_async_engine(config.DATABASE_URL, echo=config.DB_ECHO)

# Создаем фабрику сессий
AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Зависимость для получения сессии базы данных"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


__all__ = [
    'Base',
    'engine',
    'AsyncSessionLocal',
    'get_db',
]
