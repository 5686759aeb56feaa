"""
Forensics - Synthetic ethos scoring for papers

Blends three signals into a 0-100 credibility score:
- deontic ratio: hedging vs. prescriptive language (hedging reads as honest
  scientific writing)
- completeness: referenced neighbours present in the graph, plus
  methods/data/code signals in the text
- causal density: how connected the paper is in the graph

Verdicts: >= 70 credible, >= 40 uncertain, otherwise suspicious.
Pure scoring: no state is kept between calls.
"""
import re
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional

from services.knowledge_graph import KnowledgeGraph

DEONTIC_MARKERS = [
    'should', 'must', 'ought to', 'we recommend', 'it is necessary',
    'requires', 'shall', 'need to', 'have to', 'is essential',
]

HEDGE_MARKERS = [
    'may', 'might', 'could', 'appears to', 'suggests', 'seems',
    'possibly', 'arguably', 'likely', 'probably', 'approximately',
    'to some extent', 'in part', 'it is possible', 'one might argue',
]

METHOD_PATTERN = re.compile(r'\b(method|methodology|approach|algorithm)\b')
DATA_PATTERN = re.compile(r'\b(dataset|data\s+collection|benchmark|evaluation)\b')
CODE_PATTERN = re.compile(r'\b(github|gitlab|bitbucket|code\s+available|repository)\b')

VERDICT_CREDIBLE = "credible"
VERDICT_UNCERTAIN = "uncertain"
VERDICT_SUSPICIOUS = "suspicious"


def _count_markers(text: str, markers: List[str]) -> Dict[str, int]:
    found = {}
    for marker in markers:
        count = len(re.findall(rf'\b{re.escape(marker)}\b', text))
        if count:
            found[marker] = count
    return found


@dataclass
class DeonticScore:
    deontic_count: int = 0
    hedge_count: int = 0
    ratio: float = 0.5
    markers: Dict[str, Dict[str, int]] = field(default_factory=dict)


@dataclass
class TraceabilityScore:
    completeness: float = 0.5
    causal_density: float = 0.5
    has_method_section: bool = False
    has_data_section: bool = False
    has_code_link: bool = False


@dataclass
class ForensicsResult:
    paper_id: str
    synthetic_ethos_score: int
    verdict: str
    deontic: DeonticScore
    traceability: TraceabilityScore

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paper_id": self.paper_id,
            "synthetic_ethos_score": self.synthetic_ethos_score,
            "verdict": self.verdict,
            "deontic": asdict(self.deontic),
            "traceability": asdict(self.traceability),
        }


def score_deontic(text: str) -> DeonticScore:
    """Hedge share of all deontic + hedge markers; 0.5 when none are present."""
    if not text:
        return DeonticScore()

    lower = text.lower()
    deontic = _count_markers(lower, DEONTIC_MARKERS)
    hedge = _count_markers(lower, HEDGE_MARKERS)
    deontic_count = sum(deontic.values())
    hedge_count = sum(hedge.values())
    total = deontic_count + hedge_count

    return DeonticScore(
        deontic_count=deontic_count,
        hedge_count=hedge_count,
        ratio=0.5 if total == 0 else hedge_count / total,
        markers={"deontic": deontic, "hedge": hedge},
    )


def score_traceability(kg: Optional[KnowledgeGraph], paper_id: str, text: str) -> TraceabilityScore:
    completeness = 0.5
    causal_density = 0.5

    if kg is not None:
        # 10+ connections = full score
        causal_density = min(1.0, kg.causal_density(paper_id).density / 10)

        neighbourhood = kg.neighbourhood(paper_id, 1)
        referenced = len(neighbourhood.edges)
        existing = max(0, len(neighbourhood.nodes) - 1)  # exclude self
        completeness = existing / referenced if referenced > 0 else 0.5

    lower = (text or '').lower()
    has_method = bool(METHOD_PATTERN.search(lower))
    has_data = bool(DATA_PATTERN.search(lower))
    has_code = bool(CODE_PATTERN.search(lower))

    text_score = sum([has_method, has_data, has_code]) / 3
    completeness = completeness * 0.6 + text_score * 0.4

    return TraceabilityScore(
        completeness=min(1.0, completeness),
        causal_density=min(1.0, causal_density),
        has_method_section=has_method,
        has_data_section=has_data,
        has_code_link=has_code,
    )


def verdict_for(score: int) -> str:
    if score >= 70:
        return VERDICT_CREDIBLE
    if score >= 40:
        return VERDICT_UNCERTAIN
    return VERDICT_SUSPICIOUS


class Forensics:
    """Stateless paper scorer bound to a graph for structural signals."""

    def __init__(self, kg: Optional[KnowledgeGraph] = None):
        self.kg = kg

    def score_paper(self, paper_id: str, full_text: str = '') -> ForensicsResult:
        deontic = score_deontic(full_text)
        traceability = score_traceability(self.kg, paper_id, full_text)

        score = round(
            (deontic.ratio * 0.3 + traceability.completeness * 0.4 + traceability.causal_density * 0.3) * 100
        )

        return ForensicsResult(
            paper_id=paper_id,
            synthetic_ethos_score=score,
            verdict=verdict_for(score),
            deontic=deontic,
            traceability=traceability,
        )
