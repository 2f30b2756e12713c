# backend/services/repository.py
"""
Репозитории карточек: основное хранилище (PostgreSQL) и локальный кэш.

У обоих один контракт, оба возвращают *сырые* записи в своей форме;
в Entity их превращает только нормализатор.
"""

import logging
import math
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import Text, cast, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shared.config import config
from shared.models import EntityRecord, GuideRecord, ImageRecord, ReviewRecord
from shared.models.enums import EntityStatus, SortMode, SourceKind
from .catalog import EntityFilters
from .local_store import LocalStore
from .normalizer import LOCAL_ENTITY_KEYS

logger = logging.getLogger(__name__)

# Колонки, которые можно писать напрямую из сырой записи
_WRITABLE_COLUMNS = {
    column.key for column in EntityRecord.__table__.columns
    if column.key not in ('created_at', 'updated_at')
}


class EntityRepository:
    """Общий контракт хранилища карточек"""

    source_kind: SourceKind

    async def list_raw(self, filters: EntityFilters) -> List[dict]:
        raise NotImplementedError

    async def get_raw(self, entity_id: str) -> Optional[dict]:
        raise NotImplementedError

    async def create(self, raw: Dict[str, Any]) -> dict:
        raise NotImplementedError

    async def update(self, entity_id: str, partial: Dict[str, Any]) -> Optional[dict]:
        raise NotImplementedError

    async def delete(self, entity_id: str) -> bool:
        raise NotImplementedError

    async def imported_reviews(self, entity_id: str) -> List[dict]:
        raise NotImplementedError


# ========== ОСНОВНОЕ ХРАНИЛИЩЕ ==========

def record_to_raw(record: EntityRecord) -> dict:
    """Строка entities + фото -> сырая запись"""
    raw = {column.key: getattr(record, column.key) for column in EntityRecord.__table__.columns}
    raw["gallery"] = [image.url for image in record.images]
    return raw


class RemoteRepository(EntityRepository):
    source_kind = SourceKind.REMOTE

    def __init__(self, session: AsyncSession):
        self.session = session

    def _query(self):
        return (
            select(EntityRecord)
            .options(selectinload(EntityRecord.images))
            .execution_options(populate_existing=True)
        )

    async def list_raw(self, filters: EntityFilters) -> List[dict]:
        """Фильтры, которые умеет база, выполняются на её стороне"""
        query = self._query()

        if filters.status is not None:
            query = query.where(EntityRecord.status == filters.status.value)
        if filters.type is not None:
            query = query.where(EntityRecord.type == filters.type.value)
        if filters.area:
            query = query.where(EntityRecord.area == filters.area)
        if filters.q:
            pattern = f"%{filters.q.strip()}%"
            query = query.where(or_(
                EntityRecord.title.ilike(pattern),
                EntityRecord.short_description.ilike(pattern),
                EntityRecord.address.ilike(pattern),
                EntityRecord.category_name.ilike(pattern),
                EntityRecord.area.ilike(pattern),
                cast(EntityRecord.tags, Text).ilike(pattern),
            ))

        if filters.sort == SortMode.POPULAR:
            query = query.order_by(EntityRecord.total_score.desc().nullslast())
        elif filters.sort == SortMode.NEARBY and filters.origin is not None:
            # До обрезки по REMOTE_FETCH_CAP нужны ближайшие строки: порядок по
            # квадрату расстояния на плоскости, долгота сжата на cos(широты)
            lat, lng = filters.origin
            lng_scale = math.cos(math.radians(lat))
            d_lat = EntityRecord.location_lat - lat
            d_lng = (EntityRecord.location_lng - lng) * lng_scale
            query = (
                query
                .where(EntityRecord.location_lat.isnot(None), EntityRecord.location_lng.isnot(None))
                .order_by(d_lat * d_lat + d_lng * d_lng, EntityRecord.id)
            )
        elif filters.sort == SortMode.RECENT:
            query = query.order_by(EntityRecord.created_at.desc())
        else:
            query = query.order_by(EntityRecord.created_at.desc(), EntityRecord.id)

        result = await self.session.execute(query.limit(config.REMOTE_FETCH_CAP))
        return [record_to_raw(record) for record in result.scalars().all()]

    async def _get_record(self, entity_id: str) -> Optional[EntityRecord]:
        result = await self.session.execute(self._query().where(EntityRecord.id == entity_id))
        return result.scalar_one_or_none()

    async def get_raw(self, entity_id: str) -> Optional[dict]:
        record = await self._get_record(entity_id)
        return record_to_raw(record) if record else None

    async def _replace_images(self, entity_id: str, urls: List[str]):
        await self.session.execute(delete(ImageRecord).where(ImageRecord.entity_id == entity_id))
        for position, url in enumerate(urls):
            self.session.add(ImageRecord(entity_id=entity_id, url=url, position=position))

    async def create(self, raw: Dict[str, Any]) -> dict:
        values = {key: value for key, value in raw.items() if key in _WRITABLE_COLUMNS}
        values.setdefault("id", f"entity-{uuid.uuid4().hex[:12]}")

        record = EntityRecord(**values)
        self.session.add(record)
        await self.session.flush()

        await self._replace_images(record.id, raw.get("gallery") or [])
        await self.session.flush()
        logger.info(f"Создана карточка {record.id}: {record.title}")
        # Перечитываем вместе с фото, чтобы вернуть ровно то, что сохранилось
        return await self.get_raw(record.id)

    async def update(self, entity_id: str, partial: Dict[str, Any]) -> Optional[dict]:
        record = await self._get_record(entity_id)
        if not record:
            return None

        for key, value in partial.items():
            if key in _WRITABLE_COLUMNS and key != "id":
                setattr(record, key, value)
        if "gallery" in partial:
            await self._replace_images(entity_id, partial["gallery"] or [])

        await self.session.flush()
        logger.info(f"Обновлена карточка {entity_id}: {sorted(partial)}")
        return await self.get_raw(entity_id)

    async def delete(self, entity_id: str) -> bool:
        record = await self._get_record(entity_id)
        if not record:
            return False
        # Фото и отзывы удаляются каскадом
        await self.session.delete(record)
        await self.session.flush()
        logger.info(f"Удалена карточка {entity_id}")
        return True

    async def imported_reviews(self, entity_id: str) -> List[dict]:
        result = await self.session.execute(
            select(ReviewRecord)
            .where(ReviewRecord.entity_id == entity_id)
            .order_by(ReviewRecord.id)
        )
        return [
            {
                "name": review.author_name,
                "rating": review.rating,
                "text": review.text,
                "publishedAtDate": review.published_at,
            }
            for review in result.scalars().all()
        ]

    # ---------- Массовая загрузка ----------

    async def upsert_imported(self, data: Dict[str, Any]) -> str:
        """
        Запись из выгрузки: обновить по place_id или создать.
        Фото и отзывы заменяются целиком. Каждая запись в своей точке сохранения,
        так что ошибка в одной не откатывает остальные.
        """
        async with self.session.begin_nested():
            record = None
            place_id = data.get("place_id")
            if place_id:
                result = await self.session.execute(
                    select(EntityRecord).where(EntityRecord.place_id == place_id)
                )
                record = result.scalar_one_or_none()

            values = {key: value for key, value in data.items() if key in _WRITABLE_COLUMNS and key != "id"}
            if record:
                # Статус модерации повторная загрузка не сбрасывает
                values.pop("status", None)
                for key, value in values.items():
                    setattr(record, key, value)
                entity_id = record.id
            else:
                entity_id = data.get("id") or f"entity-{uuid.uuid4().hex[:12]}"
                self.session.add(EntityRecord(id=entity_id, **values))
            await self.session.flush()

            await self._replace_images(entity_id, data.get("gallery") or [])
            await self.session.execute(delete(ReviewRecord).where(ReviewRecord.entity_id == entity_id))
            for review in data.get("reviews") or []:
                self.session.add(ReviewRecord(entity_id=entity_id, **review))
            await self.session.flush()
        return entity_id

    # ---------- Гайды ----------

    async def list_guides(self, category: Optional[str] = None) -> List[GuideRecord]:
        query = select(GuideRecord).order_by(GuideRecord.updated_at.desc().nullslast(), GuideRecord.id)
        if category:
            query = query.where(GuideRecord.category == category)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_guide(self, guide_id: str) -> Optional[GuideRecord]:
        result = await self.session.execute(select(GuideRecord).where(GuideRecord.id == guide_id))
        return result.scalar_one_or_none()


# ========== ЛОКАЛЬНЫЙ КЭШ ==========

class LocalRepository(EntityRepository):
    """
    Карточки из локального кэша. Фильтров на стороне хранилища нет:
    list_raw отдаёт всю коллекцию, фильтрует слой сборки списка.
    """

    source_kind = SourceKind.LOCAL

    def __init__(self, store: LocalStore):
        self.store = store

    async def list_raw(self, filters: EntityFilters) -> List[dict]:
        return [record for record in await self.store.entities() if isinstance(record, dict)]

    async def get_raw(self, entity_id: str) -> Optional[dict]:
        return await self.store.find_entity(entity_id)

    async def create(self, raw: Dict[str, Any]) -> dict:
        record = dict(raw)
        record.setdefault("id", f"entity-{uuid.uuid4().hex[:12]}")
        record.setdefault("status", EntityStatus.UNVERIFIED.value)

        records = [r for r in await self.store.entities() if not (isinstance(r, dict) and r.get("id") == record["id"])]
        records.append(record)
        await self.store.save_entities(records)
        logger.info(f"Карточка {record['id']} сохранена в локальный кэш")
        return record

    async def update(self, entity_id: str, partial: Dict[str, Any]) -> Optional[dict]:
        records = await self.store.entities()
        for index, record in enumerate(records):
            if isinstance(record, dict) and str(record.get("id")) == entity_id:
                updated = {**record, **partial, "id": record["id"]}
                records[index] = updated
                await self.store.save_entities(records)
                logger.info(f"Обновлена карточка {entity_id} в локальном кэше: {sorted(partial)}")
                return updated
        return None

    async def replace(self, entity_id: str, record: Dict[str, Any]) -> Optional[dict]:
        """
        Полная замена полей карточки. Старые имена полей (category_name рядом
        с categoryName и т.п.) удаляются, иначе нормализатор вернул бы из них
        очищенное значение. Остальные ключи записи (reviews) сохраняются.
        """
        records = await self.store.entities()
        for index, current in enumerate(records):
            if isinstance(current, dict) and str(current.get("id")) == entity_id:
                extra = {key: value for key, value in current.items() if key not in LOCAL_ENTITY_KEYS}
                replaced = {**extra, **record, "id": current["id"]}
                records[index] = replaced
                await self.store.save_entities(records)
                logger.info(f"Карточка {entity_id} в локальном кэше перезаписана")
                return replaced
        return None

    async def delete(self, entity_id: str) -> bool:
        records = await self.store.entities()
        kept = [r for r in records if not (isinstance(r, dict) and str(r.get("id")) == entity_id)]
        if len(kept) == len(records):
            return False
        await self.store.save_entities(kept)
        logger.info(f"Удалена карточка {entity_id} из локального кэша")
        return True

    async def imported_reviews(self, entity_id: str) -> List[dict]:
        record = await self.store.find_entity(entity_id)
        reviews = record.get("reviews") if record else None
        return [review for review in reviews if isinstance(review, dict)] if isinstance(reviews, list) else []
