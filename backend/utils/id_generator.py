"""
Short prefixed ID generator for Republic records.

Format: {prefix}_{base36_random}
- pp_xxxxxxxx  - paper (ingested without an upstream id)
- au_xxxxxxxx  - author
- mk_xxxxxxxx  - market

Discovered papers without an upstream id get a stable id derived from
their title instead (disc_<sha256 prefix>), so re-discovering the same
record maps to the same node.

8 chars base36 = 36^8 = 2.8 trillion unique IDs per type
"""
import hashlib
import secrets
import re
from typing import Optional

# Base36 alphabet (lowercase letters + digits)
ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
BASE = len(ALPHABET)  # 36

# Valid prefixes
PREFIXES = {
    'paper': 'pp',
    'author': 'au',
    'market': 'mk',
}

# Reverse mapping for validation
PREFIX_TO_TYPE = {v: k for k, v in PREFIXES.items()}

# Regex for validation
ID_PATTERN = re.compile(r'^(pp|au|mk)_[0-9a-z]{8}$')


def _random_base36(length: int = 8) -> str:
    """Generate random base36 string"""
    result = []
    for _ in range(length):
        result.append(ALPHABET[secrets.randbelow(BASE)])
    return ''.join(result)


def generate_id(record_type: str) -> str:
    """
    Generate a new short ID for the given record type.

    Args:
        record_type: One of 'paper', 'author', 'market'

    Returns:
        Short ID like 'mk_x5b8r2yj'

    Raises:
        ValueError: If record_type is invalid
    """
    if record_type not in PREFIXES:
        raise ValueError(f"Invalid record type: {record_type}. "
                        f"Must be one of: {list(PREFIXES.keys())}")

    prefix = PREFIXES[record_type]
    random_part = _random_base36(8)
    return f"{prefix}_{random_part}"


def validate_id(id_str: str) -> bool:
    """Check if a string is a valid short ID."""
    if not id_str or not isinstance(id_str, str):
        return False
    return bool(ID_PATTERN.match(id_str))


def get_id_type(id_str: str) -> Optional[str]:
    """
    Extract the record type from an ID.

    Returns:
        Record type ('paper', 'market', ...) or None if invalid
    """
    if not validate_id(id_str):
        return None
    prefix = id_str[:2]
    return PREFIX_TO_TYPE.get(prefix)


def stable_discovery_id(title: str) -> str:
    """Generate a stable paper ID from a discovered record's title.

    Whitespace and case are normalised so trivial formatting differences
    between search providers map to the same node.
    """
    normalised = ' '.join((title or '').lower().split())
    hash_hex = hashlib.sha256(normalised.encode()).hexdigest()[:12]
    return f"disc_{hash_hex}"


# Convenience functions for each type
def generate_paper_id() -> str:
    """Generate a new paper ID"""
    return generate_id('paper')


def generate_author_id() -> str:
    """Generate a new author ID"""
    return generate_id('author')


def generate_market_id() -> str:
    """Generate a new market ID"""
    return generate_id('market')
