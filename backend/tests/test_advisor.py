from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from standings.advisor import build_counter_strategy, estimate_mining_efficiency
from standings.inspiration import HIGH, LOW, select_inspiration
from standings.models import LiquidityPositionRecord, StakePositionRecord
from standings.profiler import analysis_error, is_analysis_error
from standings.snapshot import AgentIntel


def _build_intel(balances, liquidity=None, stakes=None, victory=0.0) -> AgentIntel:
    return AgentIntel(
        agent_id="rival",
        address="0xa9",
        resource_balances=balances,
        liquidity_positions=liquidity or [],
        stake_positions=stakes or [],
        victory_balance=victory,
    )


def test_chain_specialist_triggers_alternative_chain() -> None:
    analysis = build_counter_strategy(_build_intel({"C": 60.0, "GRP": 20.0, "Nd": 20.0}))

    path = analysis["path"]
    assert path["target_alternative_chain"] is True
    assert path["alternative_chain"] == "neodymium"
    assert any("neodymium" in opportunity for opportunity in path["opportunities"])
    assert any("neodymium" in line for line in analysis["recommendations"])


def test_balanced_opponent_keeps_flag_off() -> None:
    analysis = build_counter_strategy(_build_intel({"C": 50.0, "Nd": 50.0}))

    assert analysis["path"]["target_alternative_chain"] is False
    assert analysis["path"]["vulnerabilities"] == []


def test_missing_positions_recommend_establishing_them() -> None:
    analysis = build_counter_strategy(_build_intel({"C": 10.0, "Nd": 10.0}))

    assert analysis["liquidity"]["should_provide_liquidity"] is True
    assert analysis["staking"]["should_stake"] is True
    assert analysis["liquidity"]["vulnerabilities"] == ["rival provides no liquidity"]
    assert "wD/He3" in analysis["liquidity"]["target_pairs"]


def test_full_coverage_needs_no_liquidity_push() -> None:
    liquidity = [
        LiquidityPositionRecord(pair=pair, token0=pair.split("/")[0], token1=pair.split("/")[1], liquidity=5.0)
        for pair in ("wD/C", "wD/GRP", "GPH/Y", "wD/He3")
    ]
    stakes = [StakePositionRecord(farm_id=farm_id, staked_amount=1.0) for farm_id in ("wD/C", "wD/Dy", "GPH/Y", "He3")]

    analysis = build_counter_strategy(_build_intel({"C": 1.0, "Nd": 1.0, "He3": 10.0}, liquidity, stakes, 10.0))

    assert analysis["liquidity"]["should_provide_liquidity"] is False
    assert analysis["staking"]["target_farms"] == []
    assert analysis["production"]["should_accelerate_victory_production"] is False


def test_low_victory_focus_is_a_production_vulnerability() -> None:
    analysis = build_counter_strategy(_build_intel({"C": 90.0, "He3": 10.0}, victory=10.0))

    production = analysis["production"]
    assert production["victory_token_focus"] == pytest.approx(10.0)
    assert production["should_accelerate_victory_production"] is True
    assert production["vulnerabilities"]


def test_mining_efficiency_rewards_specialists() -> None:
    no_stakes = analysis_error("No staking positions to analyze")
    staking = {"indicators": {"production_chain_stage": 40.0}}

    specialist = estimate_mining_efficiency({"path_dominance": -60}, no_stakes)
    generalist = estimate_mining_efficiency({"path_dominance": 10}, staking)

    assert specialist == pytest.approx(0.5 * 60 + 15)
    assert generalist == pytest.approx(0.5 * 10 + 0.5 * 40)
    assert estimate_mining_efficiency({"path_dominance": 100}, {"indicators": {"production_chain_stage": 100.0}}) == 100.0


def test_no_data_returns_error_sentinel() -> None:
    analysis = build_counter_strategy(_build_intel({"wD": 0.0}))

    assert is_analysis_error(analysis)
    assert select_inspiration(analysis) == []


def test_inspiration_applicability() -> None:
    analysis = build_counter_strategy(_build_intel({"C": 80.0, "Nd": 20.0}))

    selected = select_inspiration(analysis)
    everything = select_inspiration(analysis, minimum=LOW)

    names = [item["name"] for item in selected]
    assert "Dual-Chain Integrator" not in names
    assert names[0] == "Resource Specialist"
    assert all(item["applicability"] == HIGH for item in selected)
    assert all(len(item["prompts"]) == 3 for item in everything)
    assert len(everything) == 6
    assert everything[-1]["applicability"] == LOW
