# backend/utils/dates.py
import logging
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)


def parse_datetime(value: Any) -> Optional[datetime]:
    """ISO-строка или datetime -> datetime с часовым поясом (наивное считается UTC)"""
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str) and value.strip():
        try:
            moment = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            logger.debug(f"Некорректная дата: {value!r}")
            return None
    else:
        return None
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)
