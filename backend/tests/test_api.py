"""
HTTP surface tests (FastAPI TestClient, services injected).
"""

import pytest
from fastapi.testclient import TestClient

from main import app
from models.domain.paper import Paper
from services.agent_gateway import AgentGateway, MockProvider
from services.container import Services, get_services
from services.data_oracle import DataOracle
from services.forensics import Forensics
from services.trism import TrustLayer
from workers.republic_engine import RepublicEngine


@pytest.fixture
def services(kg, settings, attention_paper):
    kg.add_node(attention_paper)
    trism = TrustLayer(kg)
    gateway = AgentGateway(MockProvider(), trism=trism)
    oracle = DataOracle({})
    forensics = Forensics(kg)
    return Services(
        settings=settings,
        kg=kg,
        trism=trism,
        gateway=gateway,
        oracle=oracle,
        forensics=forensics,
        engine=RepublicEngine(kg, gateway, oracle, forensics, settings),
    )


@pytest.fixture
def client(services):
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok", "service": "republic"}


class TestKnowledgeGraphAPI:

    def test_stats(self, client):
        assert client.get("/api/kg/stats").json()["paper_count"] == 1

    def test_upsert_and_fetch_paper(self, client):
        created = client.post("/api/kg/papers", json={"title": "Reformer", "year": 2020}).json()
        assert created["id"]
        assert created["source"] == "ingested"

        fetched = client.get(f"/api/kg/papers/{created['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["title"] == "Reformer"

    def test_missing_paper_is_404(self, client):
        assert client.get("/api/kg/papers/nope").status_code == 404
        assert client.get("/api/kg/papers/nope/neighbourhood").status_code == 404

    def test_invalid_paper_is_422(self, client):
        assert client.post("/api/kg/papers", json={"year": 2020}).status_code == 422

    def test_relations_and_neighbourhood(self, client, kg):
        kg.add_node(Paper(id="p2", title="BERT"))
        relation = client.post("/api/kg/relations", json={"source": "p2", "target": "p1", "type": "builds_on"})
        assert relation.json() == {"source": "p2", "target": "p1", "type": "builds_on"}

        hood = client.get("/api/kg/papers/p1/neighbourhood", params={"depth": 1}).json()
        assert {n["id"] for n in hood["nodes"]} == {"p1", "p2"}
        assert len(hood["edges"]) == 1

        density = client.get("/api/kg/papers/p1/density").json()
        assert density["incoming"] == 1

    def test_search_and_rings(self, client):
        assert [p["id"] for p in client.get("/api/kg/search", params={"q": "attention"}).json()] == ["p1"]
        assert client.get("/api/kg/rings").json() == {"count": 0, "rings": []}

    def test_forensics(self, client):
        result = client.get("/api/kg/papers/p1/forensics").json()
        assert result["verdict"] in {"credible", "uncertain", "suspicious"}


class TestTrismAPI:

    def test_check_status_reset(self, client):
        evaluation = client.post("/api/trism/check", json={"source_id": "iris", "content": "Plain findings."}).json()
        assert evaluation["drift_score"] == 1.0
        assert evaluation["action"] == "normal"

        assert "iris" in client.get("/api/trism/status").json()["agents"]

        assert client.post("/api/trism/reset", json={}).json() == {"reset": "all"}
        assert client.get("/api/trism/status").json()["agents"] == {}


class TestRepublicAPI:

    def test_status_when_asleep(self, client):
        status = client.get("/api/republic/status").json()
        assert status["alive"] is False
        assert status["kg"]["paper_count"] == 1

    def test_sleep_when_asleep(self, client):
        assert client.post("/api/republic/sleep").json() == {"alive": False, "stopped": False}

    def test_agents_and_budget(self, client):
        agents = client.get("/api/republic/agents").json()
        assert {a["id"] for a in agents} == {"iris", "sage", "atlas", "tensor", "hermes"}
        assert set(client.get("/api/republic/budget").json()) == {"philosopher", "guardian", "producer"}

    def test_artifact_logs_start_empty(self, client):
        for path in ("hypotheses", "judgements", "alerts", "markets"):
            assert client.get(f"/api/republic/{path}").json() == []
