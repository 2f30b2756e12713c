# tests/test_comments.py
import json

import pytest

from shared.models.enums import CommentSource
from backend.errors import CommentNotFoundError, CommentPermissionError
from backend.schemas.comment import Comment, CommentCreate
from backend.services.comments import (
    ANONYMOUS, CommentService, aggregate_comments, imported_to_comment, rating_distribution
)
from backend.services.seed import load_seed_comments
from tests.factories import FakeRemoteRepository, local_record

IMPORTED = [
    {"name": "Ketut", "stars": 5, "text": "Лучший кофе", "publishedAtDate": "2025-01-03T10:00:00Z"},
    {"name": "", "stars": 3, "textTranslated": "Nice", "publishedAtDate": "2024-12-01T10:00:00.000Z"},
    {"stars": 4, "text": "Без даты"},
]
USER = [{"id": "comment-1", "rating": 4, "text": "Был вчера", "author": "Ира",
         "created_at": "2025-01-05T08:00:00+00:00"}]
SEED = {"id": "c1", "entity_id": "p1", "rating": 5, "text": "Проверено", "author": "Редакция",
        "created_at": "2024-06-01T00:00:00Z"}


def test_imported_review_conversion():
    comment = imported_to_comment("p1", 1, IMPORTED[1])

    assert comment.id == "review-p1-1"
    assert comment.author == ANONYMOUS
    assert comment.text == "Nice"
    assert comment.rating == 3
    assert comment.source == CommentSource.IMPORTED
    assert not comment.deletable


def test_aggregate_orders_newest_first_undated_last():
    feed = aggregate_comments("p1", IMPORTED, USER, SEED)

    assert [c.id for c in feed] == ["comment-1", "review-p1-0", "review-p1-1", "c1", "review-p1-2"]
    assert [c.source for c in feed[:1]] == [CommentSource.USER]
    assert feed[3].source == CommentSource.SEED


def test_aggregate_ids_are_stable():
    first = aggregate_comments("p1", IMPORTED, USER, SEED)
    second = aggregate_comments("p1", IMPORTED, USER, SEED)
    assert [c.id for c in first] == [c.id for c in second]


def test_rating_distribution():
    comments = [
        Comment(id=str(i), entity_id="p1", rating=rating, source=CommentSource.USER)
        for i, rating in enumerate([5, 5, 4, 1, 0, 7])
    ]
    assert rating_distribution(comments) == [2, 1, 0, 0, 1]
    assert rating_distribution([]) == [0, 0, 0, 0, 0]


@pytest.mark.asyncio
async def test_feed_merges_all_sources(store, local):
    remote = FakeRemoteRepository(reviews={"p1": IMPORTED})
    await store.add_comment("p1", USER[0])
    service = CommentService(store, [remote, local], {"p1": SEED})

    feed = await service.feed("p1")

    assert len(feed) == 5
    assert {c.source for c in feed} == {CommentSource.IMPORTED, CommentSource.USER, CommentSource.SEED}


@pytest.mark.asyncio
async def test_feed_takes_reviews_from_local_record_when_remote_has_none(store, local):
    remote = FakeRemoteRepository()
    await store.save_entities([local_record("l1", reviews=[{"name": "Wayan", "stars": 4, "text": "Ок"}])])
    service = CommentService(store, [remote, local])

    feed = await service.feed("l1")

    assert [c.id for c in feed] == ["review-l1-0"]
    assert feed[0].author == "Wayan"


@pytest.mark.asyncio
async def test_feed_survives_failed_repository(store, local):
    remote = FakeRemoteRepository(reviews={"p1": IMPORTED})
    remote.fail = True
    await store.add_comment("p1", USER[0])
    service = CommentService(store, [remote, local])

    assert [c.id for c in await service.feed("p1")] == ["comment-1"]


@pytest.mark.asyncio
async def test_add_comment(store, local):
    service = CommentService(store, [local])

    comment = await service.add("p1", CommentCreate(rating=5, text="  Отлично  ", author="  "))

    assert comment.id.startswith("comment-")
    assert comment.author == ANONYMOUS
    assert comment.text == "Отлично"
    assert comment.created_at is not None
    assert comment.deletable
    assert [c.id for c in await service.feed("p1")] == [comment.id]


@pytest.mark.asyncio
async def test_delete_user_comment(store, local):
    remote = FakeRemoteRepository(reviews={"p1": IMPORTED})
    await store.add_comment("p1", USER[0])
    service = CommentService(store, [remote, local], {"p1": SEED})

    feed = await service.delete("p1", "comment-1")

    assert "comment-1" not in [c.id for c in feed]
    assert len(feed) == 4
    assert await store.user_comments("p1") == []


@pytest.mark.asyncio
@pytest.mark.parametrize("comment_id", ["review-p1-0", "c1"])
async def test_imported_and_seed_comments_cannot_be_deleted(store, local, comment_id):
    remote = FakeRemoteRepository(reviews={"p1": IMPORTED})
    service = CommentService(store, [remote, local], {"p1": SEED})
    before = [c.id for c in await service.feed("p1")]

    with pytest.raises(CommentPermissionError):
        await service.delete("p1", comment_id)

    assert [c.id for c in await service.feed("p1")] == before


@pytest.mark.asyncio
async def test_delete_unknown_comment(store, local):
    service = CommentService(store, [local])

    with pytest.raises(CommentNotFoundError):
        await service.delete("p1", "comment-404")


def test_load_seed_comments(tmp_path):
    path = tmp_path / "seeds.json"
    path.write_text(json.dumps([
        {"id": "c1", "entity_id": "p1", "rating": 5, "text": "Первый"},
        {"id": "c2", "entity_id": "p1", "rating": 4, "text": "Второй для той же карточки"},
        {"id": "c3", "entity_id": "p2", "rating": 3, "text": "Другой"},
        {"entity_id": "p3", "text": "Без id"},
    ]), encoding="utf-8")

    seeds = load_seed_comments(str(path))

    assert set(seeds) == {"p1", "p2"}
    assert seeds["p1"]["id"] == "c1"


def test_load_seed_comments_missing_or_broken(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")

    assert load_seed_comments(str(tmp_path / "missing.json")) == {}
    assert load_seed_comments(str(broken)) == {}
    assert load_seed_comments(None) == {}
