# tests/factories.py
"""
Сырые записи и тестовые двойники хранилищ
"""

import asyncio
import copy
import json
from datetime import datetime, timezone
from types import SimpleNamespace

from shared.models.enums import SourceKind

# Понедельник 6 января 2025, 10:00 по Бали
MONDAY_10_BALI = datetime(2025, 1, 6, 2, 0, tzinfo=timezone.utc)

SCHEDULE = {
    "monday": {"open": "09:00", "close": "20:00", "closed": False},
    "tuesday": {"open": "", "close": "", "closed": True},
    "wednesday": {"open": "10:00", "close": "18:00", "closed": False},
}


def remote_row(entity_id="p1", title="Cafe X", **fields):
    row = {"id": entity_id, "title": title, "status": "active"}
    row.update(fields)
    return row


def local_record(entity_id="l1", title="Warung Local", **fields):
    record = {"id": entity_id, "title": title, "status": "active"}
    record.update(fields)
    return record


def guide(guide_id="guide-1", title="Первые шаги на Бали", category="Для новичков", related=None):
    return SimpleNamespace(
        id=guide_id,
        title=title,
        category=category,
        content="# Первые шаги",
        related_entities=related or [],
        created_at=None,
        updated_at=None,
    )


class FakeCache:
    """Redis в памяти: значения копируются, как при сериализации в JSON"""

    def __init__(self, data=None):
        self.data = copy.deepcopy(data or {})
        self.fail = False

    async def fetch(self, key):
        if self.fail:
            raise ConnectionError("redis is down")
        value = copy.deepcopy(self.data.get(key))
        # Чтение и запись разнесены во времени, как у настоящего клиента
        await asyncio.sleep(0)
        return value

    async def set(self, key, value, ttl=300):
        if self.fail:
            return False
        self.data[key] = copy.deepcopy(value)
        return True

    async def ping(self):
        return not self.fail


class FakeRemoteRepository:
    """Основное хранилище в памяти с тем же контрактом, что у RemoteRepository"""

    source_kind = SourceKind.REMOTE

    def __init__(self, rows=None, reviews=None, guides=None):
        self.rows = {row["id"]: dict(row) for row in rows or []}
        self.reviews = dict(reviews or {})
        self.guides = {g.id: g for g in guides or []}
        self.imported = []
        self.fail = False
        self.delay = 0.0

    async def _check(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionError("database is down")

    async def list_raw(self, filters):
        await self._check()
        rows = list(self.rows.values())
        if filters.status is not None:
            rows = [row for row in rows if row.get("status", "active") == filters.status.value]
        if filters.q:
            # Те же колонки, что в ILIKE основного хранилища; tags как текст JSON
            needle = filters.q.strip().lower()
            rows = [
                row for row in rows
                if any(needle in str(row.get(column) or "").lower()
                       for column in ("title", "short_description", "address", "category_name", "area"))
                or needle in json.dumps(row.get("tags") or [], ensure_ascii=False).lower()
            ]
        return [dict(row) for row in rows]

    async def get_raw(self, entity_id):
        await self._check()
        row = self.rows.get(entity_id)
        return dict(row) if row else None

    async def create(self, raw):
        await self._check()
        self.rows[raw["id"]] = dict(raw)
        return dict(raw)

    async def update(self, entity_id, partial):
        await self._check()
        if entity_id not in self.rows:
            return None
        self.rows[entity_id].update(partial)
        return dict(self.rows[entity_id])

    async def delete(self, entity_id):
        await self._check()
        return self.rows.pop(entity_id, None) is not None

    async def imported_reviews(self, entity_id):
        await self._check()
        return list(self.reviews.get(entity_id, []))

    async def upsert_imported(self, data):
        if data["title"] == "boom":
            raise RuntimeError("constraint violation")
        self.imported.append(data)
        return data["id"]

    async def list_guides(self, category=None):
        return [g for g in self.guides.values() if not category or g.category == category]

    async def get_guide(self, guide_id):
        return self.guides.get(guide_id)
