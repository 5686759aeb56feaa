"""
Domain Models - Storage-agnostic data structures

See models.domain for the record definitions.
"""

from .domain import (
    Paper,
    Author,
    Relation,
    Caste,
    ExaminedKey,
    Hypothesis,
    Judgement,
    Alert,
    Market,
    LogEntry,
)

__all__ = [
    'Paper',
    'Author',
    'Relation',
    'Caste',
    'ExaminedKey',
    'Hypothesis',
    'Judgement',
    'Alert',
    'Market',
    'LogEntry',
]
