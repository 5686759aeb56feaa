"""
TRiSM - trust layer for agent output

PUBLIC API:
- TrustLayer.evaluate(source_id, content) → TrismEvaluation
- BreakerLevel: normal / throttle / quarantine / kill
"""
from .circuit_breaker import CircuitBreaker, BreakerLevel, BreakerState
from .drift_detector import DriftDetector, DriftResult, tokenise, jaccard
from .hallucination_checker import HallucinationChecker, HallucinationResult
from .layer import TrustLayer, TrismEvaluation

__all__ = [
    'TrustLayer',
    'TrismEvaluation',
    'CircuitBreaker',
    'BreakerLevel',
    'BreakerState',
    'DriftDetector',
    'DriftResult',
    'HallucinationChecker',
    'HallucinationResult',
    'tokenise',
    'jaccard',
]
