"""
Datetime utility functions for snapshot and API timestamps
"""
from datetime import datetime, timezone
from typing import Optional
import logging

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialise a datetime for JSON snapshots and API responses"""
    return value.isoformat() if value else None


def parse_datetime(value) -> Optional[datetime]:
    """
    Convert a snapshot value to a Python datetime

    Handles multiple cases:
    - None -> None
    - Already Python datetime -> return as-is
    - String ISO format (with or without trailing Z) -> parse to datetime
    - Other -> None with warning

    Args:
        value: Python datetime, string, or None

    Returns:
        Python datetime or None
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value

    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError as e:
            logger.warning(f"Failed to parse datetime string '{value}': {e}")
            return None

    logger.warning(f"Cannot convert {type(value)} to Python datetime: {value}")
    return None
