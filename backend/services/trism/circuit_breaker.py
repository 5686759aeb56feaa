"""
CircuitBreaker - 3-level escalation: throttle → quarantine → kill

Each content source carries a decaying failure count. Failures add 1,
successes subtract 0.5 (floored at 0), and the level is recomputed from the
count after every update, so throttle and quarantine recover on their own.
Kill is terminal until an explicit reset.
"""
import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, Optional

SUCCESS_DECAY = 0.5


class BreakerLevel(str, Enum):
    NORMAL = "normal"
    THROTTLE = "throttle"
    QUARANTINE = "quarantine"
    KILL = "kill"


@dataclass
class BreakerState:
    failures: float = 0.0
    successes: int = 0
    level: BreakerLevel = BreakerLevel.NORMAL
    last_update: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["level"] = self.level.value
        return data


class CircuitBreaker:
    """Per-source escalation state machine."""

    def __init__(self, throttle_after: float = 3, quarantine_after: float = 5, kill_after: float = 8):
        self.thresholds = {
            BreakerLevel.THROTTLE: throttle_after,
            BreakerLevel.QUARANTINE: quarantine_after,
            BreakerLevel.KILL: kill_after,
        }
        self.states: Dict[str, BreakerState] = {}

    def _ensure(self, source_id: str) -> BreakerState:
        if source_id not in self.states:
            self.states[source_id] = BreakerState()
        return self.states[source_id]

    def record_failure(self, source_id: str) -> BreakerLevel:
        state = self._ensure(source_id)
        state.failures += 1
        state.last_update = time.time()
        return self._update_level(state)

    def record_success(self, source_id: str) -> BreakerLevel:
        state = self._ensure(source_id)
        state.successes += 1
        state.failures = max(0.0, state.failures - SUCCESS_DECAY)
        state.last_update = time.time()
        return self._update_level(state)

    def _update_level(self, state: BreakerState) -> BreakerLevel:
        if state.level is BreakerLevel.KILL:
            return state.level
        if state.failures >= self.thresholds[BreakerLevel.KILL]:
            state.level = BreakerLevel.KILL
        elif state.failures >= self.thresholds[BreakerLevel.QUARANTINE]:
            state.level = BreakerLevel.QUARANTINE
        elif state.failures >= self.thresholds[BreakerLevel.THROTTLE]:
            state.level = BreakerLevel.THROTTLE
        else:
            state.level = BreakerLevel.NORMAL
        return state.level

    def get_action(self, source_id: str) -> BreakerLevel:
        """Current level; unknown sources are normal and are not registered."""
        state = self.states.get(source_id)
        return state.level if state else BreakerLevel.NORMAL

    def get_status(self, source_id: str) -> BreakerState:
        return BreakerState(**asdict(self._ensure(source_id)))

    def get_all_statuses(self) -> Dict[str, dict]:
        return {source_id: state.to_dict() for source_id, state in self.states.items()}

    def reset(self, source_id: Optional[str] = None) -> None:
        """Administrative reset of one or all sources."""
        if source_id:
            self.states.pop(source_id, None)
        else:
            self.states.clear()
