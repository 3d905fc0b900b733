from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fakes import FakeChain, FakePositions, build_registry, liquidity_row, stake_row
from standings.engine import StandingsEngine
from standings.main import app, get_engine


def _build_engine() -> StandingsEngine:
    registry = build_registry()
    chain = FakeChain(registry)
    chain.set_resource("alpha", "C", 80.0)
    chain.set_resource("alpha", "Nd", 20.0)
    chain.set_resource("beta", "He3", 50.0)
    chain.set_resource("beta", "GPH", 1.0)
    chain.set_resource("beta", "Y", 1.0)
    chain.set_lp("beta", "GPH/Y", 2.0)
    chain.set_reward("beta", "GPH/Y", "He3", 0.5)
    chain.fail_holder("gamma")
    positions = FakePositions(
        liquidity={"0xa2": [liquidity_row("GPH", "Y", 2.0)]},
        stakes={"0xa2": [stake_row("0x305", 2.0, rewards=0.5)]},
    )
    return StandingsEngine(registry, chain, positions)


@pytest.fixture
def client():
    engine = _build_engine()
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["agents"] == 3
    assert response.json()["weights"]["comparison_blend"] == [0.6, 0.25, 0.15]


def test_progression_leaderboard(client: TestClient) -> None:
    response = client.get("/api/leaderboard")

    assert response.status_code == 200
    entries = response.json()
    assert [entry["agent_id"] for entry in entries] == ["beta", "alpha", "gamma"]
    assert [entry["rank"] for entry in entries] == [1, 2, 3]
    assert entries[2]["total_score"] == 0.0


def test_victory_leaderboard_omits_failed_agent(client: TestClient) -> None:
    response = client.get("/api/leaderboard/victory")

    assert response.status_code == 200
    assert [entry["agent_id"] for entry in response.json()] == ["beta", "alpha"]


def test_overall_leaderboard(client: TestClient) -> None:
    response = client.get("/api/leaderboard/overall")

    assert response.status_code == 200
    entries = response.json()
    assert entries[0]["agent_id"] == "beta"
    assert entries[0]["total_positions"] == 2


def test_agent_progression_and_unknown_agent(client: TestClient) -> None:
    ok = client.get("/api/agents/beta/progression")
    missing = client.get("/api/agents/nobody/progression")

    record = ok.json()
    assert ok.status_code == 200
    assert record["total_score"] == pytest.approx(
        record["resource_score"] + record["lp_score"] + record["farming_score"]
    )
    assert missing.status_code == 404


def test_compare_endpoints(client: TestClient) -> None:
    simple = client.get("/api/compare", params={"agent_a": "alpha", "agent_b": "beta"})
    detailed = client.get("/api/compare/detailed", params={"agent_a": "alpha", "agent_b": "beta"})

    assert simple.status_code == 200
    assert simple.json()["overall_winner"] == "beta"
    assert detailed.status_code == 200
    assert detailed.json()["per_category_winner"]["victory_token"] == "beta"
    assert detailed.json()["strategic_analysis"]["endgame_readiness"] == "beta"


def test_profile_and_counter_strategy(client: TestClient) -> None:
    profile = client.get("/api/agents/alpha/profile")
    advisory = client.get("/api/agents/alpha/counter-strategy")
    bad = client.get("/api/agents/alpha/counter-strategy", params={"min_applicability": "Huge"})

    assert profile.status_code == 200
    assert profile.json()["path_preference"]["preferred_path"] == "carbon"
    body = advisory.json()
    assert advisory.status_code == 200
    assert body["path"]["target_alternative_chain"] is True
    assert body["inspiration"]
    assert bad.status_code == 422
