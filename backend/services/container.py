"""
Service container - wires the Republic's collaborators from Settings

    services = build_services(get_settings())
    await services.engine.awaken()

API routers resolve the shared container through get_services().
"""
import logging
from dataclasses import dataclass
from typing import Optional

from config.settings import Settings, get_settings
from services.agent_gateway import AgentGateway
from services.data_oracle import DataOracle
from services.forensics import Forensics
from services.knowledge_graph import KnowledgeGraph
from services.snapshot_store import SnapshotStore
from services.trism import TrustLayer
from workers.republic_engine import RepublicEngine

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    kg: KnowledgeGraph
    trism: TrustLayer
    gateway: AgentGateway
    oracle: DataOracle
    forensics: Forensics
    engine: RepublicEngine

    async def close(self):
        await self.engine.shutdown()
        await self.oracle.close()


def build_services(settings: Settings) -> Services:
    store = SnapshotStore(settings.kg_data_path, settings.kg_seed_path)
    kg = KnowledgeGraph(store, autosave=settings.kg_autosave)
    trism = TrustLayer.from_settings(kg, settings)
    gateway = AgentGateway.from_settings(settings, trism)
    oracle = DataOracle.from_settings(settings)
    forensics = Forensics(kg)
    engine = RepublicEngine(kg, gateway, oracle, forensics, settings)

    logger.info(f"🧩 Services ready ({settings.environment}): {kg.get_stats()['paper_count']} papers")
    return Services(
        settings=settings,
        kg=kg,
        trism=trism,
        gateway=gateway,
        oracle=oracle,
        forensics=forensics,
        engine=engine,
    )


# Global container instance (set by the app lifespan)
_services: Optional[Services] = None


def set_services(services: Optional[Services]):
    global _services
    _services = services


def get_services() -> Services:
    """Get or create the shared service container."""
    global _services
    if _services is None:
        _services = build_services(get_settings())
    return _services
