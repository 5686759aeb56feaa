"""
Republic API Endpoints
======================

Control and polling surface for the caste scheduler.

Endpoints:
- POST /api/republic/awaken - Seed queues and start the castes
- POST /api/republic/sleep - Stop the castes at their next check
- GET /api/republic/status - Vitals, queues, recent log
- GET /api/republic/hypotheses - Hypothesis log
- GET /api/republic/judgements - Judgement log
- GET /api/republic/alerts - Alert log
- GET /api/republic/markets - Prediction markets
- GET /api/republic/agents - Persona registry
- GET /api/republic/budget - Per-caste token spend
"""

from fastapi import APIRouter, Depends
from typing import List, Dict, Any

from services.container import Services, get_services

router = APIRouter()


def _tail(items: list, limit: int) -> List[Dict[str, Any]]:
    return [item.to_dict() for item in items[-limit:]] if limit > 0 else []


@router.post("/awaken")
async def awaken(services: Services = Depends(get_services)):
    """Awaken the Republic."""
    started = await services.engine.awaken()
    return {
        "alive": services.engine.alive,
        "started": started,
        "papers": services.kg.get_stats()["paper_count"],
    }


@router.post("/sleep")
async def sleep(services: Services = Depends(get_services)):
    """Put the Republic to sleep."""
    stopped = services.engine.sleep()
    return {"alive": services.engine.alive, "stopped": stopped}


@router.get("/status")
async def status(services: Services = Depends(get_services)):
    return services.engine.get_status()


@router.get("/hypotheses")
async def hypotheses(limit: int = 50, services: Services = Depends(get_services)):
    return _tail(services.engine.get_hypotheses(), limit)


@router.get("/judgements")
async def judgements(limit: int = 50, services: Services = Depends(get_services)):
    return _tail(services.engine.get_judgements(), limit)


@router.get("/alerts")
async def alerts(limit: int = 50, services: Services = Depends(get_services)):
    return _tail(services.engine.get_alerts(), limit)


@router.get("/markets")
async def markets(services: Services = Depends(get_services)):
    return [m.to_dict() for m in services.engine.get_markets()]


@router.get("/agents")
async def agents(services: Services = Depends(get_services)):
    return services.gateway.get_agents()


@router.get("/budget")
async def budget(services: Services = Depends(get_services)):
    return services.gateway.get_budget()
