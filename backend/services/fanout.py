# backend/services/fanout.py
import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List, Optional

from ..schemas.entity import Entity

logger = logging.getLogger(__name__)


async def gather_entities(
    entity_ids: Iterable[str],
    fetch_one: Callable[[str], Awaitable[Optional[Entity]]],
) -> List[Entity]:
    """
    Параллельная загрузка нескольких карточек.

    Медленная или упавшая загрузка не блокирует остальные; карточки,
    которые не удалось получить, просто пропускаются. Порядок id сохраняется.
    """
    ids = list(dict.fromkeys(entity_ids))
    results = await asyncio.gather(*(fetch_one(entity_id) for entity_id in ids), return_exceptions=True)

    entities = []
    for entity_id, result in zip(ids, results):
        if isinstance(result, Exception):
            logger.warning(f"Карточка {entity_id} пропущена: {result!r}")
            continue
        if isinstance(result, BaseException):
            raise result
        if result is not None:
            entities.append(result)
    return entities
