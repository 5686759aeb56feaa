"""
KnowledgeGraph - In-memory paper graph with traversal and anomaly primitives

Clean API for graph operations:
- KnowledgeGraph.add_node(paper) → upsert by id
- KnowledgeGraph.add_edge(source, target, type) → append typed relation
- KnowledgeGraph.neighbourhood(id, depth) → BFS context for prompts
- KnowledgeGraph.search_by_text(query) → substring lookup (hallucination checks)
- KnowledgeGraph.causal_density(id) → incoming/outgoing edge counts
- KnowledgeGraph.detect_rings(min_length) → citation ring candidates

The store is the only writer of nodes and edges. Every mutation is followed
by a snapshot write when a SnapshotStore is attached, unless the caller
defers it and flushes a batch later. A re-entrant lock
serialises access so API handlers running in a threadpool see consistent
state while the castes mutate the graph.
"""
import logging
import threading
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Set

from models.domain.paper import Paper, Author, Relation
from services.snapshot_store import SnapshotStore
from utils.id_generator import generate_paper_id, generate_author_id

logger = logging.getLogger(__name__)


@dataclass
class Neighbourhood:
    """Result of a bounded BFS around a node."""
    nodes: List[Paper] = field(default_factory=list)
    edges: List[Relation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


@dataclass
class CausalDensity:
    """Edge counts touching a node."""
    node_id: str
    incoming: int
    outgoing: int

    @property
    def density(self) -> int:
        return self.incoming + self.outgoing

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "incoming": self.incoming,
            "outgoing": self.outgoing,
            "density": self.density,
        }


class KnowledgeGraph:
    """
    Main interface for knowledge graph operations.

    Usage:
        kg = KnowledgeGraph(SnapshotStore('data/kg.json', 'data/demo_seed.json'))

        paper = kg.add_node(Paper(id=None, title="Attention Is All You Need"))
        kg.add_edge(paper.id, "p_bert", "builds_on")

        context = kg.neighbourhood(paper.id, depth=2)
        rings = kg.detect_rings(min_length=3)
    """

    def __init__(self, snapshot_store: Optional[SnapshotStore] = None, autosave: bool = True):
        self.snapshot_store = snapshot_store
        self.autosave = autosave
        self._lock = threading.RLock()
        self._save_lock = threading.Lock()
        self._dirty = False

        self.papers: Dict[str, Paper] = {}
        self.authors: Dict[str, Author] = {}
        self.relations: List[Relation] = []

        if snapshot_store is not None:
            document = snapshot_store.load()
            if document:
                self._hydrate(document)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _hydrate(self, document: Dict[str, Any]) -> None:
        for row in document.get('papers', []):
            paper = Paper.from_dict(row)
            if paper.id:
                self.papers[paper.id] = paper
        for row in document.get('authors', []):
            author = Author.from_dict(row)
            if author.id:
                self.authors[author.id] = author
        for row in document.get('relations', []):
            try:
                self.relations.append(Relation.from_dict(row))
            except KeyError:
                logger.warning(f"⚠️ Skipping malformed relation in snapshot: {row}")
        logger.info(
            f"🕸️ Graph hydrated: {len(self.papers)} papers, "
            f"{len(self.authors)} authors, {len(self.relations)} relations"
        )

    def to_document(self) -> Dict[str, Any]:
        """Full serialisable snapshot of nodes and edges."""
        with self._lock:
            return {
                "papers": [p.to_dict() for p in self.papers.values()],
                "authors": [a.to_dict() for a in self.authors.values()],
                "relations": [r.to_dict() for r in self.relations],
            }

    def _persist(self) -> None:
        self._dirty = True
        self.flush()

    def flush(self) -> bool:
        """Write the snapshot if there are unsaved mutations; True if written."""
        if self.snapshot_store is None or not self.autosave:
            return False
        with self._save_lock:
            if not self._dirty:
                return False
            self._dirty = False
            document = self.to_document()
            try:
                self.snapshot_store.save(document)
            except OSError as e:
                # Snapshotting is best-effort; in-memory state stays authoritative
                self._dirty = True
                logger.error(f"❌ Graph snapshot failed: {e}")
                return False
        return True

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_node(self, paper: Paper, persist: bool = True) -> Paper:
        """Upsert a paper by id, assigning one if absent.

        With ``persist=False`` the change is only marked unsaved; the caller
        is expected to flush() later.
        """
        with self._lock:
            if not paper.id:
                paper.id = generate_paper_id()
            self.papers[paper.id] = paper
            self._dirty = True
        if persist:
            self._persist()
        return paper

    def add_author(self, author: Author) -> Author:
        """Upsert an author by id, assigning one if absent."""
        with self._lock:
            if not author.id:
                author.id = generate_author_id()
            self.authors[author.id] = author
        self._persist()
        return author

    def add_edge(self, source: str, target: str, type: str = "cites") -> Relation:
        """Append a relation. Endpoints are not required to exist yet."""
        relation = Relation(source=source, target=target, type=type)
        with self._lock:
            self.relations.append(relation)
        self._persist()
        return relation

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_node(self, node_id: str) -> Optional[Paper]:
        with self._lock:
            return self.papers.get(node_id)

    def get_author(self, author_id: str) -> Optional[Author]:
        with self._lock:
            return self.authors.get(author_id)

    def get_all_nodes(self) -> List[Paper]:
        with self._lock:
            return list(self.papers.values())

    def search_by_text(self, query: str) -> List[Paper]:
        """Case-insensitive substring match on title, abstract and field tags."""
        needle = (query or '').lower()
        if not needle:
            return []
        with self._lock:
            return [p for p in self.papers.values() if p.matches(needle)]

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def neighbourhood(self, node_id: str, depth: int = 2) -> Neighbourhood:
        """
        Bounded breadth-first traversal over undirected adjacency.

        An edge in either direction connects its endpoints. Nodes are visited
        at most once; an edge is recorded when it leads to a node that is
        enqueued within the depth bound. depth=0 yields only the start node.
        """
        result = Neighbourhood()
        with self._lock:
            adjacency: Dict[str, List[int]] = defaultdict(list)
            for idx, rel in enumerate(self.relations):
                adjacency[rel.source].append(idx)
                if rel.target != rel.source:
                    adjacency[rel.target].append(idx)

            visited: Set[str] = {node_id}
            edge_ids: Set[int] = set()
            queue = deque([(node_id, 0)])

            while queue:
                current, d = queue.popleft()
                paper = self.papers.get(current)
                if paper is not None:
                    result.nodes.append(paper)
                if d >= depth:
                    continue

                for idx in adjacency.get(current, []):
                    rel = self.relations[idx]
                    other = rel.target if rel.source == current else rel.source
                    if other in visited:
                        continue
                    visited.add(other)
                    if idx not in edge_ids:
                        edge_ids.add(idx)
                        result.edges.append(rel)
                    queue.append((other, d + 1))

        return result

    def causal_density(self, node_id: str) -> CausalDensity:
        with self._lock:
            incoming = sum(1 for r in self.relations if r.target == node_id)
            outgoing = sum(1 for r in self.relations if r.source == node_id)
        return CausalDensity(node_id=node_id, incoming=incoming, outgoing=outgoing)

    def detect_rings(self, min_length: int = 3, dedupe: bool = False) -> List[List[str]]:
        """
        Find directed cycles of at least ``min_length`` nodes.

        Every node is tried as a ring start; paths follow outgoing edges for
        at most min_length + 1 hops and may not revisit a node already on the
        current path. The same ring is reported once per rotation unless
        ``dedupe`` is set.

        Exhaustive search: only suitable for graphs of up to a few hundred
        nodes.
        """
        with self._lock:
            outgoing: Dict[str, List[str]] = defaultdict(list)
            for rel in self.relations:
                outgoing[rel.source].append(rel.target)
            start_ids = list(self.papers.keys())

        max_depth = min_length + 1
        rings: List[List[str]] = []

        for start in start_ids:
            path = [start]
            on_path = {start}

            def dfs(current: str, depth: int) -> None:
                if depth > max_depth:
                    return
                for target in outgoing.get(current, []):
                    if target == start:
                        if depth >= min_length:
                            rings.append(list(path))
                    elif target not in on_path:
                        path.append(target)
                        on_path.add(target)
                        dfs(target, depth + 1)
                        path.pop()
                        on_path.discard(target)

            dfs(start, 1)

        if dedupe:
            return _unique_rings(rings)
        return rings

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            fields = sorted({f for p in self.papers.values() for f in p.fields_of_study})
            return {
                "paper_count": len(self.papers),
                "author_count": len(self.authors),
                "relation_count": len(self.relations),
                "fields": fields,
            }

    def health_check(self) -> Dict[str, Any]:
        with self._lock:
            return {"status": "ok", "papers": len(self.papers), "relations": len(self.relations)}


def _unique_rings(rings: List[List[str]]) -> List[List[str]]:
    """Collapse rotations of the same directed ring, keeping first-seen order."""
    seen = set()
    unique = []
    for ring in rings:
        pivot = ring.index(min(ring))
        key = tuple(ring[pivot:] + ring[:pivot])
        if key not in seen:
            seen.add(key)
            unique.append(ring)
    return unique
