# backend/routers/entities.py
"""
Роутер для работы с карточками каталога
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError

from shared.config import config
from shared.models.enums import EntityStatus, EntityType, SortMode, SourceKind
from ..dependencies import (
    get_comment_service, get_local_repository, get_remote_repository, is_admin, require_admin
)
from ..errors import (
    CatalogUnavailableError, CommentNotFoundError, CommentPermissionError, EntityNotFoundError,
    EntityValidationError
)
from ..schemas.comment import Comment, CommentCreate, CommentFeed
from ..schemas.draft import EntityDraft
from ..schemas.entity import Entity, EntityCard, EntityListResponse, EntityUpdate
from ..services.catalog import EntityFilters, list_entities, resolve_entity
from ..services.comments import CommentService, rating_distribution
from ..services.normalizer import normalize, to_local_record, to_remote_row
from ..services.presenter import build_card
from ..services.repository import LocalRepository, RemoteRepository
from ..utils.geo import parse_point

logger = logging.getLogger(__name__)

router = APIRouter()


def _status_filter(status: Optional[str], admin: bool) -> Optional[EntityStatus]:
    """По умолчанию только active; status=all и скрытые статусы - только админке"""
    if status is None:
        return EntityStatus.ACTIVE
    if status == "all":
        if not admin:
            raise HTTPException(status_code=403, detail="Все статусы доступны только администратору")
        return None
    try:
        value = EntityStatus(status)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Неизвестный статус: {status}")
    if value != EntityStatus.ACTIVE and not admin:
        raise HTTPException(status_code=403, detail="Скрытые карточки доступны только администратору")
    return value


@router.get("/", response_model=EntityListResponse)
async def get_entities(
    type: Optional[EntityType] = None,
    area: Optional[str] = None,
    tags: Optional[str] = Query(None, description="Теги через запятую"),
    q: Optional[str] = None,
    status: Optional[str] = None,
    popular: bool = False,
    sort: SortMode = SortMode.DEFAULT,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    remote: RemoteRepository = Depends(get_remote_repository),
    local: LocalRepository = Depends(get_local_repository),
    admin: bool = Depends(is_admin),
):
    """Получение списка карточек из обоих источников"""
    origin_lat, origin_lng = parse_point(lat, lng)
    origin = (origin_lat, origin_lng) if origin_lat is not None else None
    if popular:
        sort = SortMode.POPULAR
    if sort == SortMode.NEARBY and origin is None:
        raise HTTPException(status_code=400, detail="Для поиска рядом нужны координаты lat и lng")

    filters = EntityFilters(
        type=type,
        area=area or None,
        tags=[tag.strip() for tag in (tags or "").split(",") if tag.strip()],
        q=q or None,
        status=_status_filter(status, admin),
        sort=sort,
        origin=origin,
        limit=limit or config.DEFAULT_LIST_LIMIT,
    )

    try:
        result = await list_entities(filters, remote.list_raw, local, timeout=config.REMOTE_FETCH_TIMEOUT)
    except CatalogUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    now = datetime.now(timezone.utc)
    cards = [build_card(entity, now, distance_km=result.distances.get(entity.id)) for entity in result.entities]
    return EntityListResponse(
        entities=cards,
        total=len(cards),
        rejected=result.rejected,
        remote_available=result.remote_available,
        local_available=result.local_available,
    )


@router.post("/", response_model=EntityCard, status_code=201)
async def create_entity(
    draft: EntityDraft,
    target: SourceKind = Query(SourceKind.REMOTE, description="Куда сохранить карточку"),
    remote: RemoteRepository = Depends(get_remote_repository),
    local: LocalRepository = Depends(get_local_repository),
    _: bool = Depends(require_admin),
):
    """Создание карточки из формы админки"""
    try:
        raw = draft.finalize()
        if target == SourceKind.REMOTE:
            saved = await remote.create(raw)
        else:
            saved = await local.create(to_local_record(normalize(raw, SourceKind.REMOTE)))
        return build_card(normalize(saved, target))

    except EntityValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CatalogUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Ошибка создания карточки: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{entity_id}", response_model=EntityCard)
async def get_entity(
    entity_id: str,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    remote: RemoteRepository = Depends(get_remote_repository),
    local: LocalRepository = Depends(get_local_repository),
    admin: bool = Depends(is_admin),
):
    """Получение конкретной карточки"""
    origin_lat, origin_lng = parse_point(lat, lng)
    origin = (origin_lat, origin_lng) if origin_lat is not None else None
    try:
        entity = await resolve_entity(entity_id, [remote, local], include_hidden=admin)
    except EntityNotFoundError:
        raise HTTPException(status_code=404, detail="Карточка не найдена")
    except CatalogUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return build_card(entity, origin=origin)


@router.put("/{entity_id}", response_model=EntityCard)
async def update_entity(
    entity_id: str,
    changes: EntityUpdate,
    remote: RemoteRepository = Depends(get_remote_repository),
    local: LocalRepository = Depends(get_local_repository),
    _: bool = Depends(require_admin),
):
    """Редактирование и модерация (смена status) карточки"""
    try:
        for repository in (remote, local):
            raw = await repository.get_raw(entity_id)
            if raw is None:
                continue

            entity = normalize(raw, repository.source_kind)
            merged = Entity.model_validate({
                **entity.model_dump(),
                **changes.model_dump(exclude_unset=True),
            })
            if repository.source_kind == SourceKind.REMOTE:
                saved = await repository.update(entity_id, to_remote_row(merged))
            else:
                saved = await repository.replace(entity_id, to_local_record(merged))
            if saved is None:
                break
            logger.info(f"Карточка {entity_id} обновлена, статус {merged.status.value}")
            return build_card(normalize(saved, repository.source_kind))

        raise HTTPException(status_code=404, detail="Карточка не найдена")

    except (EntityValidationError, ValidationError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CatalogUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Ошибка обновления карточки {entity_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{entity_id}")
async def delete_entity(
    entity_id: str,
    remote: RemoteRepository = Depends(get_remote_repository),
    local: LocalRepository = Depends(get_local_repository),
    _: bool = Depends(require_admin),
):
    """Удаление карточки (фото и отзывы удаляются вместе с ней)"""
    try:
        deleted_remote = await remote.delete(entity_id)
        deleted_local = await local.delete(entity_id)
    except CatalogUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if not (deleted_remote or deleted_local):
        raise HTTPException(status_code=404, detail="Карточка не найдена")
    return {"success": True, "id": entity_id}


# ========== КОММЕНТАРИИ ==========

@router.get("/{entity_id}/comments", response_model=CommentFeed)
async def get_comments(
    entity_id: str,
    remote: RemoteRepository = Depends(get_remote_repository),
    local: LocalRepository = Depends(get_local_repository),
    service: CommentService = Depends(get_comment_service),
    admin: bool = Depends(is_admin),
):
    """Лента комментариев и распределение оценок"""
    try:
        await resolve_entity(entity_id, [remote, local], include_hidden=admin)
        comments = await service.feed(entity_id)
    except EntityNotFoundError:
        raise HTTPException(status_code=404, detail="Карточка не найдена")
    except CatalogUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return CommentFeed(
        entity_id=entity_id,
        comments=comments,
        total=len(comments),
        distribution=rating_distribution(comments),
    )


@router.post("/{entity_id}/comments", response_model=Comment, status_code=201)
async def add_comment(
    entity_id: str,
    data: CommentCreate,
    remote: RemoteRepository = Depends(get_remote_repository),
    local: LocalRepository = Depends(get_local_repository),
    service: CommentService = Depends(get_comment_service),
):
    """Новый комментарий пользователя"""
    try:
        await resolve_entity(entity_id, [remote, local])
        return await service.add(entity_id, data)
    except EntityNotFoundError:
        raise HTTPException(status_code=404, detail="Карточка не найдена")
    except CatalogUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.delete("/{entity_id}/comments/{comment_id}", response_model=CommentFeed)
async def delete_comment(
    entity_id: str,
    comment_id: str,
    service: CommentService = Depends(get_comment_service),
    _: bool = Depends(require_admin),
):
    """Удаление комментария пользователя (отзывы из выгрузки удалять нельзя)"""
    try:
        comments = await service.delete(entity_id, comment_id)
    except CommentNotFoundError:
        raise HTTPException(status_code=404, detail="Комментарий не найден")
    except CommentPermissionError:
        raise HTTPException(
            status_code=403,
            detail="Этот отзыв нельзя удалить: удалять можно только комментарии пользователей"
        )
    except CatalogUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return CommentFeed(
        entity_id=entity_id,
        comments=comments,
        total=len(comments),
        distribution=rating_distribution(comments),
    )
