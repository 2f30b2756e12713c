# backend/routers/favorites.py
"""
Роутер избранного (список id в локальном кэше)
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_local_repository, get_local_store, get_remote_factory
from ..errors import CatalogUnavailableError
from ..services.catalog import resolve_entity
from ..services.fanout import gather_entities
from ..services.local_store import LocalStore
from ..services.presenter import build_card
from ..services.repository import LocalRepository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def get_favorites(
    store: LocalStore = Depends(get_local_store),
    local: LocalRepository = Depends(get_local_repository),
    remote_factory=Depends(get_remote_factory),
):
    """Избранные карточки. Те, что не загрузились, пропускаются."""
    try:
        ids = await store.favorites()
    except Exception as e:
        logger.error(f"Не удалось прочитать избранное: {e}")
        raise HTTPException(status_code=503, detail="Избранное временно недоступно")

    async def fetch_one(entity_id: str):
        async with remote_factory() as remote:
            return await resolve_entity(entity_id, [remote, local])

    entities = await gather_entities(ids, fetch_one)
    now = datetime.now(timezone.utc)
    return {
        "ids": ids,
        "entities": [build_card(entity, now) for entity in entities],
        "total": len(entities),
    }


@router.put("/{entity_id}")
async def add_favorite(entity_id: str, store: LocalStore = Depends(get_local_store)):
    """Добавить в избранное"""
    try:
        ids = await store.add_favorite(entity_id)
    except CatalogUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"ids": ids, "is_favorite": True}


@router.delete("/{entity_id}")
async def remove_favorite(entity_id: str, store: LocalStore = Depends(get_local_store)):
    """Убрать из избранного"""
    try:
        ids = await store.remove_favorite(entity_id)
    except CatalogUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"ids": ids, "is_favorite": False}
