"""
DriftDetector - Token-set similarity against a source's recent outputs

Low similarity means the source is erratic; very high similarity means it
is parroting itself. Both are penalised, moderate consistency is rewarded.
"""
import re
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque, Dict, FrozenSet, List, Optional

_SPLIT = re.compile(r'\W+')

ERRATIC_BELOW = 0.1
REPETITIVE_ABOVE = 0.9
ERRATIC_SCORE = 0.3
REPETITIVE_SCORE = 0.4


@dataclass
class DriftResult:
    score: float
    token_count: int
    similarity: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "token_count": self.token_count,
            "similarity": self.similarity,
        }


def tokenise(text: str) -> List[str]:
    """Lowercase word-like tokens longer than two characters."""
    return [t for t in _SPLIT.split((text or '').lower()) if len(t) > 2]


def jaccard(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


class DriftDetector:
    """Per-source sliding window of token sets."""

    def __init__(self, history_size: int = 10, compare_window: int = 3):
        self.compare_window = compare_window
        self.history: Dict[str, Deque[FrozenSet[str]]] = defaultdict(
            lambda: deque(maxlen=history_size)
        )

    def check(self, source_id: str, content: str) -> DriftResult:
        tokens = tokenise(content)
        current = frozenset(tokens)
        history = self.history[source_id]

        score = 1.0  # First observation: nothing to drift from
        similarity = None
        if history:
            recent = list(history)[-self.compare_window:]
            similarity = sum(jaccard(current, prev) for prev in recent) / len(recent)
            if similarity < ERRATIC_BELOW:
                score = ERRATIC_SCORE
            elif similarity > REPETITIVE_ABOVE:
                score = REPETITIVE_SCORE
            else:
                score = 0.5 + 0.5 * similarity

        history.append(current)
        return DriftResult(score=score, token_count=len(tokens), similarity=similarity)

    def get_history(self) -> Dict[str, int]:
        """Number of remembered outputs per source."""
        return {source_id: len(sets) for source_id, sets in self.history.items()}
