from __future__ import annotations

import itertools
import sys
from pathlib import Path
from typing import List

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from standings import profiler
from standings.models import LiquidityPositionRecord, StakePositionRecord
from standings.profiler import (
    analyze_liquidity_strategy,
    analyze_overall_strategy,
    analyze_path_preference,
    analyze_resource_focus,
    analyze_staking_strategy,
    build_strategy_profile,
    is_analysis_error,
)
from standings.snapshot import AgentIntel


def _lp(pair: str, liquidity: float) -> LiquidityPositionRecord:
    token0, token1 = pair.split("/")
    return LiquidityPositionRecord(pair=pair, token0=token0, token1=token1, liquidity=liquidity)


def _stake(farm_id: str, staked: float) -> StakePositionRecord:
    return StakePositionRecord(farm_id=farm_id, staked_amount=staked)


def _build_positions() -> List[LiquidityPositionRecord]:
    return [_lp("wD/C", 10.0), _lp("GPH/Y", 30.0), _lp("wD/He3", 60.0)]


def _build_stakes() -> List[StakePositionRecord]:
    return [_stake("wD/C", 10.0), _stake("GPH/Y", 30.0), _stake("He3", 60.0)]


def test_resource_focus_percentages_sum_to_100() -> None:
    focus = analyze_resource_focus({"wD": 50.0, "C": 30.0, "GRP": 15.0, "GPH": 5.0, "He3": 0.0})

    assert sum(focus["percentages"].values()) == pytest.approx(100.0)
    assert [item["resource"] for item in focus["top_resources"]] == ["wD", "C", "GRP"]
    assert focus["dominant_resource"] == "wD"
    assert focus["stage_ratios"] == {"GRP/C": pytest.approx(0.5), "GPH/GRP": pytest.approx(1 / 3)}


def test_resource_focus_reports_error_for_empty_holdings() -> None:
    assert is_analysis_error(analyze_resource_focus({"C": 0.0, "He3": "error"}))
    assert analyze_resource_focus({"C": 1.0, "He3": "error"})["failed_resources"] == ["He3"]


def test_path_preference_blends_three_dimensions() -> None:
    preference = analyze_path_preference({"C": 80.0, "Nd": 20.0})

    assert preference["holdings_percentages"] == {"carbon": 80.0, "neodymium": 20.0}
    assert preference["liquidity_percentages"] == {"carbon": 50.0, "neodymium": 50.0}
    assert preference["path_dominance"] == 18
    assert preference["diversification"] == 82
    assert preference["preferred_path"] == "carbon"


def test_path_preference_shares_advanced_pair_between_chains() -> None:
    lps = [_lp("GPH/Y", 1.0), _lp("wD/Nd", 1.0), _lp("wD/Dy", 1.0)]

    preference = analyze_path_preference({}, lps, [])

    assert preference["liquidity_percentages"]["carbon"] == pytest.approx(100 / 6)
    assert preference["liquidity_percentages"]["neodymium"] == pytest.approx(500 / 6)
    assert preference["path_dominance"] == -23


def test_path_dominance_rounds_halves_up(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(profiler, "PATH_DIMENSION_WEIGHTS", (0.5, 0.25, 0.25))

    preference = analyze_path_preference({"C": 5.0, "Nd": 3.0})

    assert preference["path_scores"] == {"carbon": 56.25, "neodymium": 43.75}
    assert preference["path_dominance"] == 13
    assert preference["diversification"] == 87

def test_path_dominance_bounds_hold_for_many_profiles() -> None:
    amounts = (0.0, 1.0, 250.0)
    stake_sets = ([], [_stake("wD/C", 1.0)], [_stake("wD/Dy", 2.0), _stake("GPH/Y", 1.0)])
    lp_sets = ([], [_lp("wD/GRP", 1.0)], [_lp("wD/Nd", 1.0), _lp("wD/Dy", 3.0)])
    for c, nd, y, stakes, lps in itertools.product(amounts, amounts, amounts, stake_sets, lp_sets):
        preference = analyze_path_preference({"C": c, "Nd": nd, "Y": y}, lps, stakes)
        if is_analysis_error(preference):
            assert c == nd == y == 0 and not stakes and not lps
            continue
        assert -100 <= preference["path_dominance"] <= 100
        assert preference["diversification"] == 100 - abs(preference["path_dominance"])


def test_path_preference_error_without_activity() -> None:
    result = analyze_path_preference({"wD": 10.0, "He3": 1.0})

    assert result == {"error": True, "message": "No production-chain activity to compare"}


def test_liquidity_strategy_by_stage_and_resource() -> None:
    strategy = analyze_liquidity_strategy(_build_positions())

    assert strategy["stage_percentages"] == {
        "base": pytest.approx(10.0),
        "intermediate": 0.0,
        "advanced": pytest.approx(30.0),
        "victory": pytest.approx(60.0),
    }
    assert strategy["resource_percentages"]["wD"] == pytest.approx(35.0)
    assert strategy["resource_percentages"]["He3"] == pytest.approx(30.0)
    assert sum(strategy["resource_percentages"].values()) == pytest.approx(100.0)
    indicators = strategy["indicators"]
    assert indicators["path_focus"] == pytest.approx(25.0)
    assert indicators["resource_diversification"] == pytest.approx(37.5 + 31.25)
    assert indicators["advanced_resource_focus"] == pytest.approx(30.0)
    assert indicators["victory_token_emphasis"] == pytest.approx(60.0)


def test_liquidity_strategy_errors_on_missing_or_empty_positions() -> None:
    assert is_analysis_error(analyze_liquidity_strategy([]))
    assert is_analysis_error(analyze_liquidity_strategy([_lp("wD/C", 0.0)]))


def test_staking_strategy_indicators() -> None:
    strategy = analyze_staking_strategy(_build_stakes())

    indicators = strategy["indicators"]
    assert strategy["category_percentages"]["victory_staking"] == pytest.approx(60.0)
    assert indicators["direct_staking_focus"] == pytest.approx(60.0)
    assert indicators["production_chain_stage"] == pytest.approx((10 * 20 + 30 * 90 + 60 * 100) / 100)
    assert indicators["yield_farming_intensity"] == pytest.approx(75.0)
    assert indicators["victory_generation_potential"] == pytest.approx(90.0)
    assert indicators["path_focus"] == pytest.approx(25.0)
    assert is_analysis_error(analyze_staking_strategy([]))


def test_overall_strategy_bounds() -> None:
    balances = {"C": 10.0, "GRP": 5.0, "GPH": 2.0, "Y": 1.0, "He3": 2.0}
    focus = analyze_resource_focus(balances)
    preference = analyze_path_preference(balances, _build_positions(), _build_stakes())
    overall = analyze_overall_strategy(
        balances,
        focus,
        preference,
        analyze_liquidity_strategy(_build_positions()),
        analyze_staking_strategy(_build_stakes()),
        victory_balance=2.0,
    )

    for name, value in overall.items():
        low = -100.0 if name == "path_specialization" else 0.0
        assert low <= value <= 100.0, name
    assert overall["vertical_integration"] == 100.0
    assert overall["game_stage"] == pytest.approx(60.0 + 0.4 * (2.0 / 7_000_000 * 100))
    assert overall["path_specialization"] == preference["path_dominance"]
    assert overall["victory_token_focus"] == pytest.approx(2.0 / 20.0 * 100)


def test_overall_strategy_error_without_any_activity() -> None:
    empty = {"error": True, "message": "none"}

    result = analyze_overall_strategy({}, empty, empty, empty, empty, victory_balance=0.0)

    assert is_analysis_error(result)


def test_profile_contains_every_analysis() -> None:
    intel = AgentIntel(
        agent_id="alpha",
        address="0xa1",
        resource_balances={"C": 4.0, "Nd": 1.0, "He3": "error"},
        liquidity_positions=_build_positions(),
        stake_positions=[],
        victory_balance="error",
    )

    profile = build_strategy_profile(intel)

    assert profile["agent_id"] == "alpha"
    assert not is_analysis_error(profile["resource_focus"])
    assert not is_analysis_error(profile["liquidity_strategy"])
    assert is_analysis_error(profile["staking_strategy"])
    assert not is_analysis_error(profile["overall_strategy"])
    assert profile["overall_strategy"]["yield_generation"] == 0.0
