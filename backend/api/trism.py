"""
TRiSM API Endpoints
===================

- POST /api/trism/check - Evaluate a piece of content for a source
- GET /api/trism/status - Breaker levels and drift history sizes
- POST /api/trism/reset - Reset one source's breaker, or all of them
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import Optional

from services.container import Services, get_services

router = APIRouter()


class CheckInput(BaseModel):
    """Content to evaluate."""
    source_id: str = Field(..., min_length=1)
    content: str


class ResetInput(BaseModel):
    source_id: Optional[str] = None


@router.post("/check")
async def check(input: CheckInput, services: Services = Depends(get_services)):
    """Score content and update the source's circuit breaker."""
    return services.trism.evaluate(input.source_id, input.content).to_dict()


@router.get("/status")
async def status(services: Services = Depends(get_services)):
    return services.trism.get_status()


@router.post("/reset")
async def reset(input: ResetInput, services: Services = Depends(get_services)):
    services.trism.reset(input.source_id)
    return {"reset": input.source_id or "all"}
