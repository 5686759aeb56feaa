"""
Domain Models - Storage-agnostic data structures

These models represent the core domain records independent of storage layer.
Workers and services operate on these models, not raw snapshot rows.

Architecture:
- Domain models are pure Python objects (dataclasses)
- Persistence (JSON snapshots) is handled by the graph store
- Business logic operates on these models, not dicts

Knowledge Graph Models:
- Paper, Author: graph nodes
- Relation: typed directed edge

Republic Models:
- Caste, ExaminedKey: worker roles and examined markers
- Hypothesis, Judgement, Alert, Market: artifacts extracted from agent output
"""

from .paper import (
    Paper,
    Author,
    Relation,
    PROVENANCE_SEED,
    PROVENANCE_INGESTED,
    PROVENANCE_DISCOVERED,
)
from .caste import Caste, ExaminedKey
from .artifacts import (
    ArtifactRecord,
    Hypothesis,
    Judgement,
    Alert,
    Market,
    LogEntry,
)

__all__ = [
    # Graph
    'Paper',
    'Author',
    'Relation',
    'PROVENANCE_SEED',
    'PROVENANCE_INGESTED',
    'PROVENANCE_DISCOVERED',

    # Castes
    'Caste',
    'ExaminedKey',

    # Artifacts
    'ArtifactRecord',
    'Hypothesis',
    'Judgement',
    'Alert',
    'Market',
    'LogEntry',
]
