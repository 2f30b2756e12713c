# backend/services/comments.py
"""
Лента комментариев карточки.

Три источника: отзывы из выгрузки (только чтение), комментарии пользователей
(локальный кэш, удаляются модератором) и не больше одного кураторского
комментария. Лента всегда отсортирована по дате, новые сверху.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional

from shared.models.enums import CommentSource
from ..errors import CommentNotFoundError, CommentPermissionError
from ..schemas.comment import Comment, CommentCreate
from ..utils.dates import parse_datetime

logger = logging.getLogger(__name__)

ANONYMOUS = "Аноним"
_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def coerce_stars(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def imported_to_comment(entity_id: str, index: int, review: Mapping) -> Comment:
    """Отзыв из выгрузки -> Comment. id зависит только от позиции, повторная сборка даёт те же id."""
    stars = review.get('stars')
    if stars is None:
        stars = review.get('rating')
    text = review.get('text') or review.get('textTranslated') or ""
    created = review.get('publishedAtDate') or review.get('created_at') or review.get('published_at')

    return Comment(
        id=f"review-{entity_id}-{index}",
        entity_id=entity_id,
        rating=coerce_stars(stars),
        text=str(text),
        author=review.get('name') or review.get('author_name') or ANONYMOUS,
        created_at=parse_datetime(created),
        source=CommentSource.IMPORTED,
    )


def _stored_to_comment(entity_id: str, item: Mapping, source: CommentSource) -> Comment:
    return Comment(
        id=str(item.get('id')),
        entity_id=entity_id,
        rating=coerce_stars(item.get('rating')),
        text=str(item.get('text') or ""),
        author=item.get('author') or ANONYMOUS,
        created_at=parse_datetime(item.get('created_at')),
        source=source,
    )


def aggregate_comments(
    entity_id: str,
    imported_reviews: Iterable[Mapping],
    user_comments: Iterable[Mapping],
    seed_comment: Optional[Mapping] = None,
) -> List[Comment]:
    """Все комментарии карточки, новые сверху. Без даты - в самом конце."""
    feed = [
        imported_to_comment(entity_id, index, review)
        for index, review in enumerate(imported_reviews)
        if isinstance(review, Mapping)
    ]
    feed.extend(
        _stored_to_comment(entity_id, item, CommentSource.USER)
        for item in user_comments
        if isinstance(item, Mapping) and item.get('id')
    )
    if seed_comment:
        feed.append(_stored_to_comment(entity_id, seed_comment, CommentSource.SEED))

    return sorted(feed, key=lambda comment: comment.created_at or _OLDEST, reverse=True)


def rating_distribution(comments: Iterable[Comment]) -> List[int]:
    """Сколько оценок каждого балла: [5★, 4★, 3★, 2★, 1★]. Вне 1..5 не считаются."""
    distribution = [0, 0, 0, 0, 0]
    for comment in comments:
        if 1 <= comment.rating <= 5:
            distribution[5 - comment.rating] += 1
    return distribution


class CommentService:
    """Чтение и изменение ленты комментариев"""

    def __init__(self, store, repositories, seed_comments: Optional[Mapping[str, dict]] = None):
        self.store = store
        self.repositories = repositories
        self.seed_comments = seed_comments or {}

    async def _imported(self, entity_id: str) -> List[dict]:
        # Отзывы берём из первого источника, где они есть
        for repository in self.repositories:
            try:
                reviews = await repository.imported_reviews(entity_id)
            except Exception as e:
                logger.warning(f"Не удалось загрузить отзывы {entity_id} из {repository.source_kind.value}: {e!r}")
                continue
            if reviews:
                return reviews
        return []

    async def feed(self, entity_id: str) -> List[Comment]:
        return aggregate_comments(
            entity_id,
            await self._imported(entity_id),
            await self.store.user_comments(entity_id),
            self.seed_comments.get(entity_id),
        )

    async def add(self, entity_id: str, data: CommentCreate) -> Comment:
        item = {
            "id": f"comment-{uuid.uuid4().hex}",
            "entity_id": entity_id,
            "rating": data.rating,
            "text": data.text,
            "author": (data.author or "").strip() or ANONYMOUS,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        await self.store.add_comment(entity_id, item)
        logger.info(f"Добавлен комментарий {item['id']} к {entity_id}")
        return _stored_to_comment(entity_id, item, CommentSource.USER)

    async def delete(self, entity_id: str, comment_id: str) -> List[Comment]:
        """
        Удаление комментария пользователя. Отзывы из выгрузки и кураторские
        комментарии не удаляются: CommentPermissionError, лента не меняется.
        """
        feed = await self.feed(entity_id)
        target = next((comment for comment in feed if comment.id == comment_id), None)
        if target is None:
            raise CommentNotFoundError(comment_id)
        if not target.deletable:
            raise CommentPermissionError(comment_id, target.source.value)

        if not await self.store.remove_comment(entity_id, comment_id):
            raise CommentNotFoundError(comment_id)
        logger.info(f"Удалён комментарий {comment_id} у {entity_id}")
        return [comment for comment in feed if comment.id != comment_id]
