# tests/test_catalog.py
import asyncio
from datetime import datetime, timezone

import pytest

from shared.models.enums import EntityStatus, EntityType, SortMode, SourceKind
from backend.errors import CatalogUnavailableError, EntityNotFoundError
from backend.services.catalog import EntityFilters, collect_areas, list_entities, resolve_entity
from backend.services.fanout import gather_entities
from backend.services.normalizer import normalize
from tests.factories import FakeRemoteRepository, local_record, remote_row

ORIGIN = (-8.6478, 115.1395)


def _ids(result):
    return [entity.id for entity in result.entities]


@pytest.mark.asyncio
async def test_popular_sort_across_sources(local, store):
    remote = FakeRemoteRepository([
        remote_row("a", "A", total_score=4.2),
        remote_row("b", "B", total_score=3.9),
        {"id": "d", "total_score": 5},
    ])
    await store.save_entities([local_record("c", "C", totalScore=4.8)])

    result = await list_entities(EntityFilters(sort=SortMode.POPULAR), remote.list_raw, local)

    assert _ids(result) == ["c", "a", "b"]
    assert result.rejected == 1
    assert result.remote_available and result.local_available


@pytest.mark.asyncio
async def test_limit_applies_after_combining(local, store):
    remote = FakeRemoteRepository([remote_row("a", "A", total_score=3.0), remote_row("b", "B", total_score=3.5)])
    await store.save_entities([local_record("c", "C", totalScore=4.9)])

    result = await list_entities(EntityFilters(sort=SortMode.POPULAR, limit=2), remote.list_raw, local)

    assert _ids(result) == ["c", "b"]


@pytest.mark.asyncio
async def test_default_order_is_remote_first(local, store):
    remote = FakeRemoteRepository([remote_row("a", "A"), remote_row("b", "B")])
    await store.save_entities([local_record("c", "C")])

    result = await list_entities(EntityFilters(), remote.list_raw, local)

    assert _ids(result) == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_recent_sort_puts_undated_last(local):
    remote = FakeRemoteRepository([
        remote_row("old", "Old", created_at=datetime(2024, 5, 1, tzinfo=timezone.utc)),
        remote_row("undated", "Undated"),
        remote_row("new", "New", created_at="2025-02-01T00:00:00Z"),
    ])
    result = await list_entities(EntityFilters(sort=SortMode.RECENT), remote.list_raw, local)

    assert _ids(result) == ["new", "old", "undated"]


@pytest.mark.asyncio
async def test_nearby_sorted_by_distance(local, store):
    lat, lng = ORIGIN
    remote = FakeRemoteRepository([
        remote_row("far", "Far", location_lat=lat + 0.1412, location_lng=lng),
        remote_row("here", "Here", location_lat=lat, location_lng=lng),
        remote_row("nowhere", "No coordinates"),
    ])
    await store.save_entities([local_record("mid", "Mid", location={"lat": lat + 0.0207, "lng": lng})])

    result = await list_entities(EntityFilters(sort=SortMode.NEARBY, origin=ORIGIN), remote.list_raw, local)

    assert _ids(result) == ["here", "mid", "far"]
    assert [result.distances[i] for i in _ids(result)] == [0.0, 2.3, 15.7]
    assert "nowhere" not in result.distances


@pytest.mark.asyncio
async def test_nearby_requires_origin(local, remote):
    with pytest.raises(ValueError):
        await list_entities(EntityFilters(sort=SortMode.NEARBY), remote.list_raw, local)


@pytest.mark.asyncio
async def test_slow_remote_falls_back_to_local(local, store):
    remote = FakeRemoteRepository([remote_row("a", "A")])
    remote.delay = 1
    await store.save_entities([local_record("c", "C")])

    result = await list_entities(EntityFilters(), remote.list_raw, local, timeout=0.05)

    assert _ids(result) == ["c"]
    assert result.remote_available is False
    assert result.local_available is True


@pytest.mark.asyncio
async def test_failed_remote_falls_back_to_local(local, store):
    remote = FakeRemoteRepository([remote_row("a", "A")])
    remote.fail = True
    await store.save_entities([local_record("c", "C")])

    result = await list_entities(EntityFilters(), remote.list_raw, local)

    assert _ids(result) == ["c"]
    assert result.remote_available is False


@pytest.mark.asyncio
async def test_failed_local_keeps_remote(local, cache):
    remote = FakeRemoteRepository([remote_row("a", "A")])
    cache.fail = True

    result = await list_entities(EntityFilters(), remote.list_raw, local)

    assert _ids(result) == ["a"]
    assert result.local_available is False


@pytest.mark.asyncio
async def test_both_sources_down(local, cache):
    remote = FakeRemoteRepository([remote_row("a", "A")])
    remote.fail = True
    cache.fail = True

    with pytest.raises(CatalogUnavailableError):
        await list_entities(EntityFilters(), remote.list_raw, local)


@pytest.mark.asyncio
async def test_filters_apply_to_both_sources(local, store):
    remote = FakeRemoteRepository([
        remote_row("a", "Surf School", area="Canggu", type="service", tags=["Surf", "kids"]),
        remote_row("b", "Yoga Barn", area="Ubud", type="place", tags=["yoga"]),
    ])
    await store.save_entities([
        local_record("c", "Canggu Surf Rental", area="Canggu", type="service", placesTags=["surf"]),
        local_record("d", "Hidden", area="Canggu", type="service", placesTags=["surf"], status="archived"),
    ])

    by_area = await list_entities(EntityFilters(area="Canggu"), remote.list_raw, local)
    assert _ids(by_area) == ["a", "c"]

    by_tags = await list_entities(EntityFilters(tags=["surf", "KIDS"]), remote.list_raw, local)
    assert _ids(by_tags) == ["a"]

    by_type = await list_entities(EntityFilters(type=EntityType.PLACE), remote.list_raw, local)
    assert _ids(by_type) == ["b"]

    by_query = await list_entities(EntityFilters(q="surf"), remote.list_raw, local)
    assert _ids(by_query) == ["a", "c"]

    everything = await list_entities(EntityFilters(status=None), remote.list_raw, local)
    assert _ids(everything) == ["a", "b", "c", "d"]

    hidden = await list_entities(EntityFilters(status=EntityStatus.ARCHIVED), remote.list_raw, local)
    assert _ids(hidden) == ["d"]


@pytest.mark.asyncio
async def test_identical_ids_collapse_remote_wins(local, store):
    remote = FakeRemoteRepository([remote_row("same", "Remote version")])
    await store.save_entities([
        local_record("same", "Local version"),
        local_record("other-id", "Remote version"),
    ])

    result = await list_entities(EntityFilters(), remote.list_raw, local)

    assert _ids(result) == ["same", "other-id"]
    assert result.entities[0].title == "Remote version"


@pytest.mark.asyncio
async def test_resolve_entity_prefers_first_repository(local, store):
    remote = FakeRemoteRepository([remote_row("x", "From remote")])
    await store.save_entities([local_record("x", "From local"), local_record("y", "Only local")])

    assert (await resolve_entity("x", [remote, local])).title == "From remote"
    assert (await resolve_entity("y", [remote, local])).title == "Only local"

    with pytest.raises(EntityNotFoundError):
        await resolve_entity("missing", [remote, local])


@pytest.mark.asyncio
async def test_resolve_entity_hides_non_active(local):
    remote = FakeRemoteRepository([remote_row("h", "Hidden", status="archived")])

    with pytest.raises(EntityNotFoundError):
        await resolve_entity("h", [remote, local])
    assert (await resolve_entity("h", [remote, local], include_hidden=True)).status == EntityStatus.ARCHIVED


@pytest.mark.asyncio
async def test_resolve_entity_survives_one_failed_source(local, store, cache):
    remote = FakeRemoteRepository()
    remote.fail = True
    await store.save_entities([local_record("y", "Only local")])
    assert (await resolve_entity("y", [remote, local])).id == "y"

    cache.fail = True
    with pytest.raises(CatalogUnavailableError):
        await resolve_entity("y", [remote, local])


def test_collect_areas():
    entities = [
        normalize(remote_row("a", "A", area="Ubud"), SourceKind.REMOTE),
        normalize(remote_row("b", "B", area="Canggu"), SourceKind.REMOTE),
        normalize(remote_row("c", "C", area="Ubud"), SourceKind.REMOTE),
        normalize(remote_row("d", "D"), SourceKind.REMOTE),
    ]
    assert collect_areas(entities) == ["Canggu", "Ubud"]


@pytest.mark.asyncio
async def test_gather_entities_skips_failures_and_keeps_order():
    async def fetch_one(entity_id):
        if entity_id == "broken":
            raise ConnectionError("timeout")
        if entity_id == "slow":
            await asyncio.sleep(0.02)
        if entity_id == "gone":
            return None
        return normalize(remote_row(entity_id, entity_id.upper()), SourceKind.REMOTE)

    entities = await gather_entities(["slow", "broken", "fast", "gone", "slow"], fetch_one)

    assert [e.id for e in entities] == ["slow", "fast"]


@pytest.mark.asyncio
async def test_concurrent_favorite_writes_last_one_wins(store):
    # Коллекция читается и пишется целиком: одна из двух параллельных записей теряется
    await asyncio.gather(store.add_favorite("a"), store.add_favorite("b"))

    favorites = await store.favorites()
    assert len(favorites) == 1
    assert favorites[0] in ("a", "b")


@pytest.mark.asyncio
async def test_popular_never_includes_unverified_local_entities(local, store):
    remote = FakeRemoteRepository([remote_row("A", "A", total_score=4.0), remote_row("B", "B", total_score=3.0)])
    await store.save_entities([
        local_record("C", "C", totalScore=5.0),
        local_record("D", "D", totalScore=5.0, status="unverified"),
    ])

    result = await list_entities(EntityFilters(sort=SortMode.POPULAR), remote.list_raw, local)

    assert _ids(result) == ["C", "A", "B"]


@pytest.mark.asyncio
async def test_text_search_matches_tags_and_area_in_both_sources(local, store):
    remote = FakeRemoteRepository([
        remote_row("r-tag", "Green Bowl", tags=["vegan"]),
        remote_row("r-area", "Warung", area="Vegan Village"),
        remote_row("r-none", "Steak House", tags=["meat"]),
    ])
    await store.save_entities([local_record("l-tag", "Salad Bar", placesTags=["Vegan"])])

    result = await list_entities(EntityFilters(q="vegan"), remote.list_raw, local)

    assert _ids(result) == ["r-tag", "r-area", "l-tag"]
