# backend/services/seed.py
"""
Кураторские комментарии: по одному на карточку, из JSON-файла.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def load_seed_comments(path: Optional[str]) -> Dict[str, dict]:
    """
    Файл со списком [{id, entity_id, rating, text, author, created_at}, ...]
    -> {entity_id: комментарий}. Битый или отсутствующий файл - пустой словарь.
    """
    if not path:
        return {}

    try:
        items = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning(f"Файл кураторских комментариев не найден: {path}")
        return {}
    except json.JSONDecodeError as e:
        logger.error(f"Некорректный JSON в {path}: {e}")
        return {}

    if not isinstance(items, list):
        logger.error(f"Ожидался список комментариев в {path}")
        return {}

    seeds = {}
    for item in items:
        if not isinstance(item, dict) or not item.get("entity_id") or not item.get("id"):
            continue
        entity_id = str(item["entity_id"])
        if entity_id in seeds:
            logger.warning(f"Второй кураторский комментарий для {entity_id} пропущен: {item['id']}")
            continue
        seeds[entity_id] = item

    logger.info(f"Загружено кураторских комментариев: {len(seeds)}")
    return seeds
