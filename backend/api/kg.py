"""
Knowledge Graph API Endpoints
=============================

- GET /api/kg/stats - Node/edge counts and field tags
- GET /api/kg/papers - All papers
- POST /api/kg/papers - Upsert a paper
- GET /api/kg/papers/{id} - Paper detail
- GET /api/kg/papers/{id}/neighbourhood - BFS context
- GET /api/kg/papers/{id}/density - Incoming/outgoing edge counts
- GET /api/kg/papers/{id}/forensics - Synthetic ethos score
- POST /api/kg/relations - Add a typed edge
- GET /api/kg/search - Substring search
- GET /api/kg/rings - Citation ring candidates
"""

from fastapi import APIRouter, HTTPException, Depends, Query
from pydantic import BaseModel, Field
from typing import List, Optional

from models.domain.paper import Paper, PROVENANCE_INGESTED
from services.container import Services, get_services

router = APIRouter()


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class PaperInput(BaseModel):
    """Input for upserting a paper."""
    id: Optional[str] = None
    title: str = Field(..., min_length=1)
    abstract: Optional[str] = None
    year: Optional[int] = None
    citation_count: Optional[int] = Field(None, ge=0)
    fields_of_study: List[str] = []
    authors: List[str] = []


class RelationInput(BaseModel):
    """Input for adding a relation."""
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    type: str = "cites"


# =============================================================================
# ENDPOINTS
# =============================================================================

def _require_paper(services: Services, paper_id: str) -> Paper:
    paper = services.kg.get_node(paper_id)
    if not paper:
        raise HTTPException(status_code=404, detail="Paper not found")
    return paper


@router.get("/stats")
async def stats(services: Services = Depends(get_services)):
    return services.kg.get_stats()


@router.get("/papers")
async def list_papers(services: Services = Depends(get_services)):
    return [p.to_dict() for p in services.kg.get_all_nodes()]


@router.post("/papers")
async def upsert_paper(input: PaperInput, services: Services = Depends(get_services)):
    """Add or replace a paper; an id is assigned when none is given."""
    paper = services.kg.add_node(Paper(
        id=input.id,
        title=input.title,
        abstract=input.abstract,
        year=input.year,
        citation_count=input.citation_count,
        fields_of_study=input.fields_of_study,
        authors=input.authors,
        source=PROVENANCE_INGESTED,
    ))
    return paper.to_dict()


@router.get("/papers/{paper_id}")
async def get_paper(paper_id: str, services: Services = Depends(get_services)):
    return _require_paper(services, paper_id).to_dict()


@router.get("/papers/{paper_id}/neighbourhood")
async def neighbourhood(
    paper_id: str,
    depth: int = Query(2, ge=0, le=5),
    services: Services = Depends(get_services)
):
    _require_paper(services, paper_id)
    return services.kg.neighbourhood(paper_id, depth).to_dict()


@router.get("/papers/{paper_id}/density")
async def density(paper_id: str, services: Services = Depends(get_services)):
    _require_paper(services, paper_id)
    return services.kg.causal_density(paper_id).to_dict()


@router.get("/papers/{paper_id}/forensics")
async def forensics(paper_id: str, services: Services = Depends(get_services)):
    paper = _require_paper(services, paper_id)
    return services.forensics.score_paper(paper_id, paper.abstract or '').to_dict()


@router.post("/relations")
async def add_relation(input: RelationInput, services: Services = Depends(get_services)):
    return services.kg.add_edge(input.source, input.target, input.type).to_dict()


@router.get("/search")
async def search(q: str = "", services: Services = Depends(get_services)):
    return [p.to_dict() for p in services.kg.search_by_text(q)]


@router.get("/rings")
async def rings(
    min_length: int = Query(3, ge=2, le=6),
    dedupe: bool = False,
    services: Services = Depends(get_services)
):
    found = services.kg.detect_rings(min_length, dedupe=dedupe)
    return {"count": len(found), "rings": found}
