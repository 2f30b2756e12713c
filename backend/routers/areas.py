# backend/routers/areas.py
from fastapi import APIRouter, Depends, HTTPException

from shared.config import config
from ..dependencies import get_local_repository, get_remote_repository
from ..errors import CatalogUnavailableError
from ..services.catalog import EntityFilters, collect_areas, list_entities
from ..services.repository import LocalRepository, RemoteRepository

router = APIRouter()


@router.get("/")
async def get_areas(
    remote: RemoteRepository = Depends(get_remote_repository),
    local: LocalRepository = Depends(get_local_repository),
):
    """Районы, в которых есть активные карточки"""
    try:
        result = await list_entities(
            EntityFilters(limit=config.REMOTE_FETCH_CAP),
            remote.list_raw,
            local,
            timeout=config.REMOTE_FETCH_TIMEOUT,
        )
    except CatalogUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"areas": collect_areas(result.entities)}
