"""
TRiSM - Trust, Risk and Security Management for agent output

Every generated response is scored on two axes:
- hallucination: do the entities it names exist in the knowledge graph?
- drift: is it consistent with what this source produced recently?

The combined score drives the circuit breaker for the source. The
resulting breaker level is returned as the recommended action; callers
decide whether to suppress or curtail further calls.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from services.knowledge_graph import KnowledgeGraph
from services.trism.circuit_breaker import CircuitBreaker, BreakerLevel
from services.trism.drift_detector import DriftDetector
from services.trism.hallucination_checker import HallucinationChecker

logger = logging.getLogger(__name__)


@dataclass
class TrismEvaluation:
    source_id: str
    hallucination_score: float
    drift_score: float
    combined_score: float
    action: BreakerLevel
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "hallucination_score": self.hallucination_score,
            "drift_score": self.drift_score,
            "combined_score": self.combined_score,
            "action": self.action.value,
            "details": self.details,
        }


class TrustLayer:
    """
    Evaluates content sources and owns their breaker and drift state.

    Usage:
        trism = TrustLayer(kg)
        evaluation = trism.evaluate("iris", response_text)
        if evaluation.action is BreakerLevel.KILL:
            ...
    """

    def __init__(
        self,
        kg: Optional[KnowledgeGraph] = None,
        throttle_after: float = 3,
        quarantine_after: float = 5,
        kill_after: float = 8,
        failure_score: float = 0.3,
        drift_history_size: int = 10,
        drift_compare_window: int = 3,
        max_entities: int = 20,
    ):
        self.failure_score = failure_score
        self.hallucination = HallucinationChecker(kg, max_entities=max_entities)
        self.drift = DriftDetector(history_size=drift_history_size, compare_window=drift_compare_window)
        self.circuit_breaker = CircuitBreaker(
            throttle_after=throttle_after,
            quarantine_after=quarantine_after,
            kill_after=kill_after,
        )

    @classmethod
    def from_settings(cls, kg: Optional[KnowledgeGraph], settings) -> 'TrustLayer':
        return cls(
            kg,
            throttle_after=settings.breaker_throttle_after,
            quarantine_after=settings.breaker_quarantine_after,
            kill_after=settings.breaker_kill_after,
            failure_score=settings.breaker_failure_score,
            drift_history_size=settings.drift_history_size,
            drift_compare_window=settings.drift_compare_window,
            max_entities=settings.hallucination_max_entities,
        )

    def evaluate(self, source_id: str, content: str) -> TrismEvaluation:
        hallucination = self.hallucination.check(content)
        drift = self.drift.check(source_id, content)
        combined = (hallucination.score + drift.score) / 2

        previous = self.circuit_breaker.get_action(source_id)
        if combined < self.failure_score:
            action = self.circuit_breaker.record_failure(source_id)
        else:
            action = self.circuit_breaker.record_success(source_id)

        if action is not previous:
            logger.warning(f"🚦 [TRiSM] {source_id}: {previous.value} → {action.value} (score={combined:.2f})")

        return TrismEvaluation(
            source_id=source_id,
            hallucination_score=hallucination.score,
            drift_score=drift.score,
            combined_score=combined,
            action=action,
            details={
                "hallucination": hallucination.to_dict(),
                "drift": drift.to_dict(),
                "circuit_breaker": self.circuit_breaker.get_status(source_id).to_dict(),
            },
        )

    def get_action(self, source_id: str) -> BreakerLevel:
        return self.circuit_breaker.get_action(source_id)

    def get_status(self) -> Dict[str, Any]:
        return {
            "agents": self.circuit_breaker.get_all_statuses(),
            "drift_history": self.drift.get_history(),
        }

    def reset(self, source_id: Optional[str] = None) -> None:
        self.circuit_breaker.reset(source_id)
        logger.info(f"🔄 [TRiSM] Breaker reset: {source_id or 'all sources'}")

    def health_check(self) -> Dict[str, str]:
        return {"status": "ok"}
