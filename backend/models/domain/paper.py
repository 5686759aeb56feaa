"""
Paper, Author and Relation domain models - knowledge graph vocabulary

A Paper is a node in the knowledge graph. Papers arrive three ways:
- seed: loaded from the demo seed snapshot
- ingested: added explicitly through the API
- discovered: found by a caste via the literature search oracle

Relations are typed directed edges between node ids. The store does not
check that endpoints exist, so relations may point at nodes that are only
ingested later.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any

from utils.datetime_utils import parse_datetime, to_iso


PROVENANCE_SEED = "seed"
PROVENANCE_INGESTED = "ingested"
PROVENANCE_DISCOVERED = "discovered"


def _author_names(raw) -> List[str]:
    """Search providers return authors as dicts ({'name': ...}) or strings"""
    names = []
    for a in raw or []:
        if isinstance(a, dict):
            name = a.get('name') or a.get('authorId')
        else:
            name = a
        if name:
            names.append(str(name))
    return names


@dataclass
class Paper:
    """
    Knowledge graph node for a paper.

    The id is stable once assigned; every other field may be replaced by an
    upsert with the same id.
    """
    id: Optional[str]
    title: str
    abstract: Optional[str] = None
    year: Optional[int] = None
    citation_count: Optional[int] = None
    fields_of_study: List[str] = field(default_factory=list)
    authors: List[str] = field(default_factory=list)
    source: str = PROVENANCE_INGESTED
    discovered_at: Optional[datetime] = None

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring match on title, abstract and fields.

        ``needle`` must already be lower-cased.
        """
        if needle in (self.title or '').lower():
            return True
        if self.abstract and needle in self.abstract.lower():
            return True
        return any(needle in f.lower() for f in self.fields_of_study)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for snapshots and API responses."""
        return {
            "id": self.id,
            "title": self.title,
            "abstract": self.abstract,
            "year": self.year,
            "citation_count": self.citation_count,
            "fields_of_study": list(self.fields_of_study),
            "authors": list(self.authors),
            "source": self.source,
            "discovered_at": to_iso(self.discovered_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Paper':
        """
        Build from a snapshot row or a search provider record.

        Accepts both the snapshot keys (citation_count, fields_of_study) and
        the Semantic Scholar keys (paperId, citationCount, fieldsOfStudy).
        """
        return cls(
            id=data.get('id') or data.get('paperId'),
            title=data.get('title') or '',
            abstract=data.get('abstract') or data.get('tldr'),
            year=data.get('year'),
            citation_count=data.get('citation_count', data.get('citationCount')),
            fields_of_study=list(data.get('fields_of_study') or data.get('fieldsOfStudy') or []),
            authors=_author_names(data.get('authors')),
            source=data.get('source') or PROVENANCE_INGESTED,
            discovered_at=parse_datetime(data.get('discovered_at') or data.get('discoveredAt')),
        )


@dataclass
class Author:
    """Knowledge graph node for an author."""
    id: Optional[str]
    name: str
    affiliations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "affiliations": list(self.affiliations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Author':
        return cls(
            id=data.get('id') or data.get('authorId'),
            name=data.get('name') or '',
            affiliations=list(data.get('affiliations') or []),
        )


@dataclass(frozen=True)
class Relation:
    """Typed directed edge: source -[type]-> target."""
    source: str
    target: str
    type: str = "cites"

    def to_dict(self) -> Dict[str, str]:
        return {"source": self.source, "target": self.target, "type": self.type}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Relation':
        return cls(
            source=data['source'],
            target=data['target'],
            type=data.get('type') or 'cites',
        )
