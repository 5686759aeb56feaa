"""
The Republic - FastAPI Backend
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import kg, republic, trism
from config import get_settings
from services.container import build_services, set_services

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s [%(name)s] %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    services = build_services(settings)
    set_services(services)
    logger.info("✅ Republic services loaded")
    try:
        yield
    finally:
        await services.close()
        set_services(None)
        logger.info("👋 Republic services closed")


app = FastAPI(
    title="The Republic",
    description="Autonomous caste workers over a scientific knowledge graph",
    version="1.0.0",
    lifespan=lifespan,
)

# Enable CORS for webapp
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(republic.router, prefix="/api/republic", tags=["Republic"])
app.include_router(trism.router, prefix="/api/trism", tags=["TRiSM"])
app.include_router(kg.router, prefix="/api/kg", tags=["Knowledge Graph"])


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/health")
async def api_health():
    return {"status": "ok", "service": "republic"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
