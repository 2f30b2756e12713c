# backend/main.py
"""
Главный файл FastAPI приложения
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config import config
from .database import Base, engine
from .dependencies import get_cache, get_seed_comments
from .routers import (
    entities_router,
    favorites_router,
    guides_router,
    areas_router,
    upload_router,
    health_router,
)

# Настройка логирования
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    # Startup
    logger.info("Запуск приложения...")

    try:
        # Создание таблиц
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✅ Таблицы базы данных созданы")
    except Exception as e:
        # Без основного хранилища каталог работает на локальном кэше
        logger.error(f"❌ База данных недоступна: {e}")

    if await get_cache().ping():
        logger.info("✅ Redis подключен")
    else:
        logger.warning("⚠️  Redis не доступен, локальный кэш работать не будет")

    get_seed_comments()

    yield  # Приложение работает

    # Shutdown
    logger.info("Остановка приложения...")
    await get_cache().close()
    await engine.dispose()


# Создание приложения FastAPI
app = FastAPI(
    title="Bali Explorer API",
    description="Каталог мест, сервисов и специалистов на Бали",
    version="2.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Настройка CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Подключение роутеров
app.include_router(entities_router, prefix="/api/entities", tags=["Карточки"])
app.include_router(favorites_router, prefix="/api/favorites", tags=["Избранное"])
app.include_router(guides_router, prefix="/api/guides", tags=["Гайды"])
app.include_router(areas_router, prefix="/api/areas", tags=["Районы"])
app.include_router(upload_router, prefix="/api", tags=["Загрузка"])
app.include_router(health_router)


@app.get("/")
async def root():
    return {
        "message": "Bali Explorer API is running!",
        "docs": "/docs",
        "version": "2.0.0",
    }
