# backend/routers/guides.py
"""
Роутер гайдов
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_local_repository, get_remote_factory, get_remote_repository
from ..schemas.guide import GuideDetailResponse, GuideResponse
from ..services.catalog import resolve_entity
from ..services.fanout import gather_entities
from ..services.presenter import build_card
from ..services.repository import LocalRepository, RemoteRepository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[GuideResponse])
async def get_guides(
    category: Optional[str] = None,
    remote: RemoteRepository = Depends(get_remote_repository),
):
    """Список гайдов"""
    try:
        guides = await remote.list_guides(category)
        return [GuideResponse.model_validate(guide) for guide in guides]
    except Exception as e:
        logger.error(f"Ошибка загрузки гайдов: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{guide_id}", response_model=GuideDetailResponse)
async def get_guide(
    guide_id: str,
    remote: RemoteRepository = Depends(get_remote_repository),
    local: LocalRepository = Depends(get_local_repository),
    remote_factory=Depends(get_remote_factory),
):
    """Гайд и карточки, на которые он ссылается"""
    guide = await remote.get_guide(guide_id)
    if not guide:
        raise HTTPException(status_code=404, detail="Гайд не найден")

    async def fetch_one(entity_id: str):
        async with remote_factory() as repository:
            return await resolve_entity(entity_id, [repository, local])

    related = guide.related_entities if isinstance(guide.related_entities, list) else []
    entities = await gather_entities([str(entity_id) for entity_id in related], fetch_one)

    response = GuideDetailResponse.model_validate(guide)
    response.entities = [build_card(entity) for entity in entities]
    return response
