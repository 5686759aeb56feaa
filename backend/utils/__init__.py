"""
Utility functions
"""
from .datetime_utils import utc_now, to_iso, parse_datetime
from .id_generator import generate_id, validate_id, get_id_type, stable_discovery_id
from .tagged_text import extract_tagged, extract_market_proposals, parse_probability

__all__ = [
    'utc_now', 'to_iso', 'parse_datetime',
    'generate_id', 'validate_id', 'get_id_type', 'stable_discovery_id',
    'extract_tagged', 'extract_market_proposals', 'parse_probability',
]
