# backend/routers/upload.py
"""
Массовая загрузка выгрузки Google Places
"""

import logging
from typing import Any, Dict, List, Union

from fastapi import APIRouter, Body, Depends

from ..dependencies import get_remote_repository, require_admin
from ..schemas.upload import BulkUploadResult
from ..services.bulk_import import BulkImporter
from ..services.repository import RemoteRepository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload-bulk", response_model=BulkUploadResult)
async def upload_bulk(
    payload: Union[List[Dict[str, Any]], Dict[str, Any]] = Body(...),
    remote: RemoteRepository = Depends(get_remote_repository),
    _: bool = Depends(require_admin),
):
    """Принимает массив мест или одно место"""
    places = payload if isinstance(payload, list) else [payload]
    logger.info(f"Массовая загрузка: {len(places)} записей")
    return await BulkImporter(remote).import_places(places)
