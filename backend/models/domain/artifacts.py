"""
Artifact domain models - records extracted from agent responses

Hypotheses, judgements and alerts are append-only log records. A Market is a
two-sided prediction market priced by the Pricer caste; trading and
resolution happen elsewhere, so trades starts (and stays) empty here.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any

from utils.datetime_utils import utc_now, to_iso


@dataclass
class ArtifactRecord:
    """Common shape of hypothesis / judgement / alert records."""
    text: str
    agent_id: str
    paper_id: str
    paper_title: str
    epoch: int
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "agent_id": self.agent_id,
            "paper_id": self.paper_id,
            "paper_title": self.paper_title,
            "epoch": self.epoch,
            "timestamp": to_iso(self.timestamp),
        }


@dataclass
class Hypothesis(ArtifactRecord):
    """Testable claim proposed by a reasoner."""


@dataclass
class Judgement(ArtifactRecord):
    """Credibility verdict issued by a critical reviewer."""


@dataclass
class Alert(ArtifactRecord):
    """Integrity finding raised by an investigator."""
    forensics_score: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["forensics_score"] = self.forensics_score
        return data


@dataclass
class Market:
    """
    Binary prediction market over a paper's claim.

    yes_price + no_price == 1.0 at creation.
    """
    id: str
    paper_id: str
    paper_title: str
    question: str
    yes_price: float
    no_price: float
    created_by: str
    epoch: int
    created_at: datetime = field(default_factory=utc_now)
    trades: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_probability(
        cls,
        market_id: str,
        paper_id: str,
        paper_title: str,
        question: str,
        probability: int,
        created_by: str,
        epoch: int,
    ) -> 'Market':
        """Price a market from a 0-100 probability estimate."""
        yes_price = round(probability / 100, 4)
        return cls(
            id=market_id,
            paper_id=paper_id,
            paper_title=paper_title,
            question=question,
            yes_price=yes_price,
            no_price=round(1 - yes_price, 4),
            created_by=created_by,
            epoch=epoch,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "paper_id": self.paper_id,
            "paper_title": self.paper_title,
            "question": self.question,
            "yes_price": self.yes_price,
            "no_price": self.no_price,
            "created_by": self.created_by,
            "created_at": to_iso(self.created_at),
            "epoch": self.epoch,
            "trades": list(self.trades),
        }


@dataclass
class LogEntry:
    """Line in the engine's in-memory activity log."""
    message: str
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": to_iso(self.timestamp), "message": self.message}
