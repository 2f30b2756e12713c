# backend/errors.py
"""
Доменные ошибки каталога. Роутеры переводят их в HTTPException.
"""

from typing import Optional


class CatalogError(Exception):
    """Базовая ошибка каталога"""


class EntityValidationError(CatalogError):
    """Сырая запись или черновик без обязательных полей"""

    def __init__(self, reason: str, record_id: Optional[str] = None):
        self.reason = reason
        self.record_id = record_id
        super().__init__(f"{record_id or '<без id>'}: {reason}")


class WorkHoursFormatError(CatalogError, ValueError):
    """Время в расписании не в формате HH:MM"""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Некорректное время в расписании: {value!r}")


class EntityNotFoundError(CatalogError):
    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"Карточка {entity_id} не найдена")


class CommentNotFoundError(CatalogError):
    def __init__(self, comment_id: str):
        self.comment_id = comment_id
        super().__init__(f"Комментарий {comment_id} не найден")


class CommentPermissionError(CatalogError):
    """Попытка удалить импортированный или кураторский комментарий"""

    def __init__(self, comment_id: str, source: str):
        self.comment_id = comment_id
        self.source = source
        super().__init__(
            f"Комментарий {comment_id} ({source}) нельзя удалить: "
            f"удалять можно только комментарии пользователей"
        )


class CatalogUnavailableError(CatalogError):
    """Не ответило ни основное хранилище, ни локальный кэш"""
