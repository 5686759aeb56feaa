"""
Pytest configuration for Republic tests.
"""

import pytest
from unittest.mock import AsyncMock

from config.settings import Settings
from models.domain.paper import Paper
from services.agent_gateway import GenerationError, GenerationResult
from services.knowledge_graph import KnowledgeGraph


def pytest_configure(config):
    """Configure pytest with asyncio marker."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test."
    )


class ScriptedGateway:
    """Stands in for AgentGateway: canned text per persona, records every prompt."""

    def __init__(self, responses=None, failing=()):
        self.responses = dict(responses or {})
        self.failing = set(failing)
        self.calls = []

    async def generate(self, persona_id: str, prompt: str) -> GenerationResult:
        self.calls.append((persona_id, prompt))
        if persona_id in self.failing:
            raise GenerationError(f"{persona_id} unavailable")
        return GenerationResult(
            persona_id=persona_id,
            text=self.responses.get(persona_id, ''),
            tokens_used=10,
        )

    def prompts_for(self, persona_id: str):
        return [prompt for pid, prompt in self.calls if pid == persona_id]

    def get_budget(self):
        return {}

    def get_agents(self):
        return []


@pytest.fixture
def settings(tmp_path):
    """Fast, offline settings: no start delays, tiny idle intervals, no snapshots."""
    return Settings(
        _env_file=None,
        openai_api_key="",
        kg_data_path=str(tmp_path / "kg.json"),
        kg_seed_path=None,
        kg_autosave=False,
        reasoner_start_delay=0,
        reasoner_pacing=0,
        reasoner_idle=0.01,
        investigator_start_delay=0,
        investigator_pacing=0,
        investigator_idle=0.01,
        pricer_start_delay=0,
        pricer_pacing=0,
        pricer_idle=0.01,
        throttle_delay_seconds=0,
    )


@pytest.fixture
def kg():
    return KnowledgeGraph()


@pytest.fixture
def attention_paper():
    return Paper(
        id="p1",
        title="Attention Is All You Need",
        citation_count=50000,
        year=2017,
    )


@pytest.fixture
def gateway():
    return ScriptedGateway()


@pytest.fixture
def oracle():
    mock = AsyncMock()
    mock.search.return_value = []
    return mock
