"""
Budget - Per-caste token accounting

A simple counter per persona caste. The gateway asks can_spend() before a
call and records the provider's token usage afterwards.
"""
from dataclasses import dataclass
from typing import Dict, Optional

DEFAULT_LIMITS = {
    'philosopher': 150000,
    'guardian': 100000,
    'producer': 80000,
}


@dataclass
class SpendCheck:
    allowed: bool
    used: int = 0
    limit: Optional[int] = None
    ratio: float = 0.0
    warning: bool = False


class Budget:
    """Token counters keyed by caste. Castes without a limit are unmetered."""

    def __init__(self, limits: Optional[Dict[str, int]] = None, warning_ratio: float = 0.8):
        self.limits = dict(DEFAULT_LIMITS if limits is None else limits)
        self.warning_ratio = warning_ratio
        self.usage: Dict[str, int] = {}

    def can_spend(self, caste: str) -> SpendCheck:
        limit = self.limits.get(caste)
        used = self.usage.get(caste, 0)
        if not limit:
            return SpendCheck(allowed=True, used=used)

        ratio = used / limit
        return SpendCheck(
            allowed=ratio < 1.0,
            used=used,
            limit=limit,
            ratio=ratio,
            warning=self.warning_ratio <= ratio < 1.0,
        )

    def record_spend(self, caste: str, tokens: int) -> None:
        self.usage[caste] = self.usage.get(caste, 0) + max(0, tokens or 0)

    def get_status(self) -> Dict[str, Dict[str, float]]:
        status = {}
        for caste, limit in self.limits.items():
            used = self.usage.get(caste, 0)
            status[caste] = {
                "used": used,
                "limit": limit,
                "ratio": used / limit if limit else 0.0,
                "remaining": limit - used,
            }
        return status

    def reset(self, caste: Optional[str] = None) -> None:
        if caste:
            self.usage[caste] = 0
        else:
            self.usage.clear()
