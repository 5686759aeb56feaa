"""
HallucinationChecker - Cross-reference named entities in agent output

Pulls two kinds of candidate entities out of generated text:
1. Citation mentions shaped like "Name (Year)" / "Name et al. 2017"
2. CamelCase or hyphenated proper-noun phrases ("BERT", "ResNet-Large Model")

Each candidate is looked up in the knowledge graph. Candidates the graph
has never heard of count as unverified; the score is the verified share.
"""
import re
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

from services.knowledge_graph import KnowledgeGraph

# Score when there is nothing to verify: mildly trusting, not perfect
NO_ENTITY_SCORE = 0.8

CITATION_PATTERN = re.compile(r'\b([A-Z][a-z]+(?:\s+et\s+al\.)?)\s*\(?(\d{4})\)?')
NAME_PATTERN = re.compile(r'\b([A-Z][a-zA-Z]+-?[A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)*)\b')
PRECISE_NUMBER_PATTERN = re.compile(r'\d+\.\d{3,}')
SELF_REFERENCE_PATTERN = re.compile(r'as I mentioned|I previously stated|in my earlier', re.IGNORECASE)

SUSPICIOUS_PRECISION_LIMIT = 5


@dataclass
class HallucinationResult:
    score: float
    entities: List[str] = field(default_factory=list)
    verified: int = 0
    unverified: int = 0
    flags: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "entities": list(self.entities),
            "verified": self.verified,
            "unverified": self.unverified,
            "flags": list(self.flags),
        }


class HallucinationChecker:
    """Scores how much of a response's named content exists in the graph."""

    def __init__(self, kg: Optional[KnowledgeGraph] = None, max_entities: int = 20):
        self.kg = kg
        self.max_entities = max_entities

    def check(self, content: str) -> HallucinationResult:
        if not content:
            return HallucinationResult(score=NO_ENTITY_SCORE)

        flags: List[Dict[str, str]] = []
        entities = self.extract_entities(content)

        verified = 0
        unverified = 0
        if self.kg is not None:
            for entity in entities:
                if self.kg.search_by_text(entity):
                    verified += 1
                else:
                    unverified += 1
                    flags.append({
                        "entity": entity,
                        "type": "unverified",
                        "message": f'Entity "{entity}" not found in knowledge graph',
                    })

        if len(PRECISE_NUMBER_PATTERN.findall(content)) > SUSPICIOUS_PRECISION_LIMIT:
            flags.append({
                "type": "suspicious_precision",
                "message": "Unusually many high-precision numbers",
            })

        if SELF_REFERENCE_PATTERN.search(content):
            flags.append({
                "type": "self_reference",
                "message": "Agent references non-existent prior statements",
            })

        total = verified + unverified
        score = NO_ENTITY_SCORE if total == 0 else verified / total

        return HallucinationResult(
            score=score,
            entities=entities,
            verified=verified,
            unverified=unverified,
            flags=flags,
        )

    def extract_entities(self, text: str) -> List[str]:
        """Candidate entities, de-duplicated in first-seen order and capped."""
        entities = [m.group(1).strip() for m in CITATION_PATTERN.finditer(text)]
        entities.extend(m.group(1) for m in NAME_PATTERN.finditer(text))
        return list(dict.fromkeys(entities))[:self.max_entities]
