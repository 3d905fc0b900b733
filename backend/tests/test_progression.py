from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fakes import FakeChain, build_registry
from standings.contracts import AddressNotFound
from standings.models import AgentProgressionRecord
from standings.progression import ProgressionAggregator
from standings.snapshot import SnapshotCollector
from standings.weights import WeightConfig


def _build_aggregator(chain: FakeChain, config: WeightConfig = None) -> ProgressionAggregator:
    return ProgressionAggregator(SnapshotCollector(chain.registry, chain), config)


def _seed_mixed(chain: FakeChain, agent_id: str) -> None:
    chain.set_resource(agent_id, "wD", 100.0)
    chain.set_resource(agent_id, "GRP", 3.3)
    chain.set_resource(agent_id, "He3", 0.7)
    chain.set_lp(agent_id, "GPH/Y", 0.1)
    chain.set_reward(agent_id, "wD/C", "GRP", 1.9)
    chain.set_reward(agent_id, "He3", "He3", 0.01)


def test_total_equals_sum_of_categories() -> None:
    chain = FakeChain(build_registry())
    _seed_mixed(chain, "alpha")

    record = asyncio.run(_build_aggregator(chain).compute("alpha"))

    assert record.total_score == record.resource_score + record.lp_score + record.farming_score
    assert record.resource_score == pytest.approx(100 + 3.3 * 5 + 0.7 * 100)
    assert record.lp_score == pytest.approx(0.1 * 30)
    assert record.farming_score == pytest.approx(1.9 * 5 * 1.5 + 0.01 * 100 * 11)
    assert record.computed_at.tzinfo is not None


def test_lp_positions_raise_lp_and_total_only() -> None:
    chain = FakeChain(build_registry())
    for agent_id in ("alpha", "beta"):
        chain.set_resource(agent_id, "C", 10.0)
        chain.set_resource(agent_id, "Nd", 4.0)
    chain.set_lp("beta", "wD/C", 2.0)
    aggregator = _build_aggregator(chain)

    record_a = asyncio.run(aggregator.compute("alpha"))
    record_b = asyncio.run(aggregator.compute("beta"))

    assert record_a.resource_score == record_b.resource_score
    assert record_b.lp_score > record_a.lp_score
    assert record_b.total_score > record_a.total_score


def test_failed_fetches_score_as_zero() -> None:
    registry = build_registry()
    chain = FakeChain(registry)
    chain.set_resource("alpha", "C", 1.0)
    chain.set_resource("alpha", "He3", 9.0)
    chain.fail("balance_of", registry.resource_address("He3"))

    record = asyncio.run(_build_aggregator(chain).compute("alpha"))

    assert record.resource_score == pytest.approx(2.0)
    assert record.resource_balances["He3"] == 0.0


def test_injected_config_changes_scores() -> None:
    chain = FakeChain(build_registry())
    chain.set_resource("alpha", "C", 1.0)
    config = WeightConfig.from_dict({"token_weights": {"C": 50}})

    record = asyncio.run(_build_aggregator(chain, config).compute("alpha"))

    assert record.resource_score == pytest.approx(50.0)


def test_unknown_agent_propagates() -> None:
    chain = FakeChain(build_registry())

    with pytest.raises(AddressNotFound):
        asyncio.run(_build_aggregator(chain).compute("nobody"))


def test_record_rejects_inconsistent_total() -> None:
    with pytest.raises(ValidationError):
        AgentProgressionRecord(
            agent_id="alpha",
            resource_score=1.0,
            lp_score=1.0,
            farming_score=1.0,
            total_score=4.0,
            computed_at=datetime.now(timezone.utc),
        )
