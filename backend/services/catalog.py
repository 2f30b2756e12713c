# backend/services/catalog.py
"""
Сборка списка карточек из двух источников.

Основное хранилище и локальный кэш опрашиваются параллельно, обе пачки
нормализуются, склеиваются (сначала основное хранилище), после чего к общему
списку применяется полный набор фильтров, сортировка и только в самом конце
обрезка по limit.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from shared.models.enums import EntityStatus, EntityType, SortMode, SourceKind
from ..errors import CatalogUnavailableError, EntityNotFoundError, EntityValidationError
from ..schemas.entity import Entity
from ..utils.geo import haversine_km
from .normalizer import normalize, normalize_many

logger = logging.getLogger(__name__)


@dataclass
class EntityFilters:
    type: Optional[EntityType] = None
    area: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    q: Optional[str] = None
    # None - любые статусы (только для админки)
    status: Optional[EntityStatus] = EntityStatus.ACTIVE
    sort: SortMode = SortMode.DEFAULT
    origin: Optional[Tuple[float, float]] = None
    limit: int = 100


@dataclass
class CatalogResult:
    entities: List[Entity]
    distances: Dict[str, float] = field(default_factory=dict)
    rejected: int = 0
    remote_available: bool = True
    local_available: bool = True


RemoteFetch = Callable[[EntityFilters], Awaitable[list]]


def matches(entity: Entity, filters: EntityFilters) -> bool:
    """Проверка карточки по всем фильтрам списка"""
    if filters.status is not None and entity.status != filters.status:
        return False
    if filters.type is not None and entity.type != filters.type:
        return False
    if filters.area and entity.area != filters.area:
        return False
    if filters.tags:
        entity_tags = {tag.lower() for tag in entity.tags}
        if not all(tag.lower() in entity_tags for tag in filters.tags):
            return False
    if filters.q:
        needle = filters.q.strip().lower()
        haystack = [
            entity.title, entity.short_description, entity.address_text,
            entity.category_name, entity.area, *entity.tags
        ]
        if needle and not any(needle in text.lower() for text in haystack if text):
            return False
    return True


def _distances(entities: List[Entity], origin: Optional[Tuple[float, float]]) -> Dict[str, float]:
    if origin is None:
        return {}
    lat, lng = origin
    return {
        entity.id: haversine_km(lat, lng, entity.geo_lat, entity.geo_lng)
        for entity in entities
        if entity.has_coordinates
    }


def _sort(entities: List[Entity], filters: EntityFilters, distances: Dict[str, float]) -> List[Entity]:
    if filters.sort == SortMode.POPULAR:
        return sorted(entities, key=lambda e: e.rating, reverse=True)
    if filters.sort == SortMode.NEARBY:
        # Без координат карточка в "Рядом" не попадает
        located = [e for e in entities if e.id in distances]
        return sorted(located, key=lambda e: distances[e.id])
    if filters.sort == SortMode.RECENT:
        return sorted(entities, key=lambda e: e.created_at.timestamp() if e.created_at else float("-inf"),
                      reverse=True)
    return entities


async def list_entities(
    filters: EntityFilters,
    remote_fetch: RemoteFetch,
    local_cache,
    timeout: Optional[float] = None,
) -> CatalogResult:
    """
    Список карточек из обоих источников.

    Если основное хранилище упало или не ответило за timeout секунд,
    возвращается то, что есть в локальном кэше. Если недоступны оба
    источника, бросается CatalogUnavailableError.

    Одно и то же место с разными id в двух источниках попадёт в список дважды:
    надёжного ключа для склейки нет. Одинаковые id схлопываются, выигрывает
    основное хранилище.
    """
    if filters.sort == SortMode.NEARBY and filters.origin is None:
        raise ValueError("Для сортировки по расстоянию нужны координаты")

    remote_raw, local_raw = await asyncio.gather(
        asyncio.wait_for(remote_fetch(filters), timeout),
        local_cache.list_raw(filters),
        return_exceptions=True,
    )

    remote_available = not isinstance(remote_raw, BaseException)
    local_available = not isinstance(local_raw, BaseException)
    if not remote_available:
        if isinstance(remote_raw, asyncio.TimeoutError):
            logger.warning(f"Основное хранилище не ответило за {timeout} с, показываем локальный кэш")
        else:
            logger.warning(f"Основное хранилище недоступно: {remote_raw!r}")
        remote_raw = []
    if not local_available:
        logger.warning(f"Локальный кэш недоступен: {local_raw!r}")
        local_raw = []
    if not remote_available and not local_available:
        raise CatalogUnavailableError("Не удалось загрузить каталог: недоступны оба источника")

    remote = normalize_many(remote_raw, SourceKind.REMOTE)
    local = normalize_many(local_raw, SourceKind.LOCAL)

    combined: List[Entity] = []
    seen = set()
    for entity in remote.entities + local.entities:
        if entity.id in seen:
            continue
        seen.add(entity.id)
        if matches(entity, filters):
            combined.append(entity)

    distances = _distances(combined, filters.origin)
    ordered = _sort(combined, filters, distances)

    return CatalogResult(
        entities=ordered[:filters.limit],
        distances=distances,
        rejected=remote.rejected_count + local.rejected_count,
        remote_available=remote_available,
        local_available=local_available,
    )


async def resolve_entity(entity_id: str, repositories, include_hidden: bool = False) -> Entity:
    """
    Одна карточка по id: репозитории опрашиваются по очереди.

    Скрытые (не active) карточки видны только админке, для остальных
    это то же самое, что отсутствующая карточка.
    """
    failures = 0
    for repository in repositories:
        try:
            raw = await repository.get_raw(entity_id)
        except Exception as e:
            logger.warning(f"Ошибка чтения {entity_id} из {repository.source_kind.value}: {e!r}")
            failures += 1
            continue
        if raw is None:
            continue
        try:
            entity = normalize(raw, repository.source_kind)
        except EntityValidationError as e:
            logger.warning(f"Карточка {entity_id} повреждена в {repository.source_kind.value}: {e}")
            continue
        if not include_hidden and entity.status != EntityStatus.ACTIVE:
            raise EntityNotFoundError(entity_id)
        return entity

    if failures == len(repositories):
        raise CatalogUnavailableError(f"Не удалось загрузить карточку {entity_id}")
    raise EntityNotFoundError(entity_id)


def collect_areas(entities: List[Entity]) -> List[str]:
    return sorted({entity.area for entity in entities if entity.area})
