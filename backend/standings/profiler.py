"""
Rule-based strategy profile of a single agent.

The profiler works on raw balances and positions, never on the progression
scores. Each analysis returns a metrics dict, or an ``{"error": True,
"message": ...}`` dict when its inputs are empty or all zero; it never raises.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from standings.models import LiquidityPositionRecord, StakePositionRecord
from standings.snapshot import AgentIntel
from standings.topology import (
    FARM_BASE,
    FARM_CATEGORIES,
    FARM_INTERMEDIATE,
    FARM_VICTORY_PRODUCTION,
    FARM_VICTORY_STAKING,
    LIQUIDITY_STAGES,
    STAGE_ADVANCED,
    STAGE_BASE,
    STAGE_INTERMEDIATE,
    STAGE_VICTORY,
    GameTopology,
    default_topology,
)
from standings.units import amount_or_none
from standings.weights import ConfigError, WeightConfig

logger = logging.getLogger(__name__)

UNCLASSIFIED = "unclassified"

# Path preference blend: holdings, liquidity participation, staking participation.
PATH_DIMENSION_WEIGHTS = (0.30, 0.35, 0.35)

LIQUIDITY_STAGE_SCORES = {STAGE_BASE: 25, STAGE_INTERMEDIATE: 50, STAGE_ADVANCED: 85, STAGE_VICTORY: 100}
FARM_STAGE_SCORES = {
    FARM_BASE: 20,
    FARM_INTERMEDIATE: 50,
    FARM_VICTORY_PRODUCTION: 90,
    FARM_VICTORY_STAKING: 100,
}


def analysis_error(message: str) -> Dict[str, Any]:
    return {"error": True, "message": message}


def is_analysis_error(value: Any) -> bool:
    return isinstance(value, dict) and value.get("error") is True


def _to_native(obj: Any) -> Any:
    """Recursively convert numpy scalars so profiles serialize as plain JSON."""
    if isinstance(obj, dict):
        return {key: _to_native(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_to_native(value) for value in obj]
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    return obj


def _clip(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return float(np.clip(value, low, high))


def _signed_focus(amount_a: float, amount_b: float) -> float:
    total = amount_a + amount_b
    if total <= 0:
        return 0.0
    return _clip((amount_a - amount_b) / total * 100, -100.0, 100.0)


def _clean_balances(balances: Mapping[str, Any]) -> Tuple[Dict[str, float], List[str]]:
    clean: Dict[str, float] = {}
    failed: List[str] = []
    for symbol, value in balances.items():
        amount = amount_or_none(value)
        if amount is None:
            failed.append(symbol)
        else:
            clean[symbol] = amount
    return clean, failed


def _safe_pair_spec(topology: GameTopology, pair: str):
    try:
        return topology.pair_spec(pair)
    except ConfigError:
        return None


# ---------- 1. Resource focus ----------


def analyze_resource_focus(
    balances: Mapping[str, Any], topology: Optional[GameTopology] = None
) -> Dict[str, Any]:
    topology = topology or default_topology()
    clean, failed = _clean_balances(balances)
    total = sum(clean.values())
    if total <= 0:
        return analysis_error("No resource balances to analyze")

    percentages = {symbol: amount / total * 100 for symbol, amount in clean.items()}
    ranked = sorted(
        ((symbol, amount) for symbol, amount in clean.items() if amount > 0),
        key=lambda item: item[1],
        reverse=True,
    )
    top_resources = [
        {"resource": symbol, "amount": amount, "percentage": percentages[symbol]}
        for symbol, amount in ranked[:3]
    ]

    stage_ratios: Dict[str, float] = {}
    for chain in topology.chains:
        for lower, upper in zip(chain.stages, chain.stages[1:]):
            low_amount, high_amount = clean.get(lower, 0.0), clean.get(upper, 0.0)
            if low_amount > 0 and high_amount > 0:
                stage_ratios[f"{upper}/{lower}"] = high_amount / low_amount

    return {
        "total_value": total,
        "percentages": percentages,
        "top_resources": top_resources,
        "dominant_resource": ranked[0][0],
        "stage_ratios": stage_ratios,
        "failed_resources": failed,
    }


# ---------- 2. Path preference ----------


def _chain_shares(counts: Mapping[str, float], chains: Sequence[str]) -> Tuple[Dict[str, float], float]:
    total = sum(counts.get(name, 0.0) for name in chains)
    if total <= 0:
        neutral = 100.0 / len(chains)
        return {name: neutral for name in chains}, 0.0
    return {name: counts.get(name, 0.0) / total * 100 for name in chains}, total


def _participation(chain_lists: Sequence[Tuple[str, ...]], chains: Sequence[str]) -> Dict[str, float]:
    counts = {name: 0.0 for name in chains}
    for position_chains in chain_lists:
        relevant = [name for name in position_chains if name in counts]
        for name in relevant:
            counts[name] += 1.0 / len(relevant)
    return counts


def analyze_path_preference(
    balances: Mapping[str, Any],
    liquidity_positions: Sequence[LiquidityPositionRecord] = (),
    stake_positions: Sequence[StakePositionRecord] = (),
    topology: Optional[GameTopology] = None,
) -> Dict[str, Any]:
    topology = topology or default_topology()
    if len(topology.chains) != 2:
        return analysis_error("Path preference needs exactly two production chains")
    chains = topology.chain_names
    clean, _ = _clean_balances(balances)

    holdings = {
        chain.name: sum(clean.get(symbol, 0.0) for symbol in chain.stages) for chain in topology.chains
    }
    lp_chains = []
    for position in liquidity_positions:
        spec = _safe_pair_spec(topology, position.pair)
        lp_chains.append(spec.chains if spec else ())
    stake_chains = []
    for position in stake_positions:
        spec = topology.farm_spec(position.farm_id)
        stake_chains.append(spec.chains if spec else ())

    holding_pct, holding_total = _chain_shares(holdings, chains)
    lp_pct, lp_total = _chain_shares(_participation(lp_chains, chains), chains)
    stake_pct, stake_total = _chain_shares(_participation(stake_chains, chains), chains)
    if holding_total <= 0 and lp_total <= 0 and stake_total <= 0:
        return analysis_error("No production-chain activity to compare")

    w_hold, w_lp, w_stake = PATH_DIMENSION_WEIGHTS
    scores = {
        name: holding_pct[name] * w_hold + lp_pct[name] * w_lp + stake_pct[name] * w_stake
        for name in chains
    }
    first, second = chains
    # Halves round up.
    dominance = int(np.clip(math.floor(scores[first] - scores[second] + 0.5), -100, 100))
    if dominance > 0:
        preferred = first
    elif dominance < 0:
        preferred = second
    else:
        preferred = "balanced"

    return {
        "path_totals": holdings,
        "holdings_percentages": holding_pct,
        "liquidity_percentages": lp_pct,
        "staking_percentages": stake_pct,
        "path_scores": scores,
        "path_dominance": dominance,
        "diversification": 100 - abs(dominance),
        "preferred_path": preferred,
    }


# ---------- 3. Liquidity strategy ----------


def analyze_liquidity_strategy(
    liquidity_positions: Sequence[LiquidityPositionRecord], topology: Optional[GameTopology] = None
) -> Dict[str, Any]:
    topology = topology or default_topology()
    if not liquidity_positions:
        return analysis_error("No liquidity positions to analyze")

    rows = []
    for position in liquidity_positions:
        spec = _safe_pair_spec(topology, position.pair)
        rows.append(
            {
                "pair": position.pair,
                "token0": position.token0,
                "token1": position.token1,
                "stage": spec.stage if spec else UNCLASSIFIED,
                "chains": spec.chains if spec else (),
                "liquidity": position.liquidity,
            }
        )
    df = pd.DataFrame(rows)
    total = float(df["liquidity"].sum())
    if total <= 0:
        return analysis_error("Liquidity positions hold no liquidity")

    by_stage = df.groupby("stage")["liquidity"].sum() / total * 100
    stage_pct = {stage: float(by_stage.get(stage, 0.0)) for stage in LIQUIDITY_STAGES}
    if UNCLASSIFIED in by_stage.index:
        stage_pct[UNCLASSIFIED] = float(by_stage[UNCLASSIFIED])

    halves = pd.concat(
        [
            df[["token0", "liquidity"]].rename(columns={"token0": "resource"}),
            df[["token1", "liquidity"]].rename(columns={"token1": "resource"}),
        ]
    )
    halves["liquidity"] = halves["liquidity"] / 2
    by_resource = halves.groupby("resource")["liquidity"].sum() / total * 100
    resource_pct = {str(resource): float(value) for resource, value in by_resource.items()}

    chain_amounts = {name: 0.0 for name in topology.chain_names}
    for chains, liquidity in zip(df["chains"], df["liquidity"]):
        relevant = [name for name in chains if name in chain_amounts]
        for name in relevant:
            chain_amounts[name] += liquidity / len(relevant)
    chain_values = list(chain_amounts.values()) + [0.0, 0.0]

    stages_touched = sum(1 for stage in LIQUIDITY_STAGES if stage_pct[stage] > 0)
    resources_touched = sum(1 for value in resource_pct.values() if value > 0)
    indicators = {
        "resource_diversification": _clip(
            stages_touched / len(LIQUIDITY_STAGES) * 50
            + min(1.0, resources_touched / max(1, len(topology.resources))) * 50
        ),
        "advanced_resource_focus": _clip(stage_pct[STAGE_ADVANCED]),
        "path_focus": _signed_focus(chain_values[0], chain_values[1]),
        "victory_token_emphasis": _clip(stage_pct[STAGE_VICTORY]),
    }
    return _to_native(
        {
            "total_liquidity": total,
            "position_count": len(df),
            "stage_percentages": stage_pct,
            "resource_percentages": resource_pct,
            "indicators": indicators,
        }
    )


# ---------- 4. Staking strategy ----------


def analyze_staking_strategy(
    stake_positions: Sequence[StakePositionRecord], topology: Optional[GameTopology] = None
) -> Dict[str, Any]:
    topology = topology or default_topology()
    if not stake_positions:
        return analysis_error("No staking positions to analyze")

    rows = []
    for position in stake_positions:
        spec = topology.farm_spec(position.farm_id)
        rows.append(
            {
                "farm_id": position.farm_id,
                "category": spec.category if spec else UNCLASSIFIED,
                "chains": spec.chains if spec else (),
                "reward_token": spec.reward_token if spec else None,
                "staked": position.staked_amount,
                "rewards": position.accrued_rewards,
            }
        )
    df = pd.DataFrame(rows)
    total = float(df["staked"].sum())
    if total <= 0:
        return analysis_error("Staking positions hold no stake")

    by_category = df.groupby("category")["staked"].sum() / total * 100
    category_pct = {category: float(by_category.get(category, 0.0)) for category in FARM_CATEGORIES}
    if UNCLASSIFIED in by_category.index:
        category_pct[UNCLASSIFIED] = float(by_category[UNCLASSIFIED])

    stage_weights = df["category"].map(FARM_STAGE_SCORES).fillna(0)
    production_stage = float((stage_weights * df["staked"]).sum() / total)

    chain_amounts = {name: 0.0 for name in topology.chain_names}
    for chains, staked in zip(df["chains"], df["staked"]):
        relevant = [name for name in chains if name in chain_amounts]
        for name in relevant:
            chain_amounts[name] += staked / len(relevant)
    chain_values = list(chain_amounts.values()) + [0.0, 0.0]

    victory_mask = df["reward_token"] == topology.victory_token
    categories_touched = sum(1 for category in FARM_CATEGORIES if category_pct[category] > 0)
    indicators = {
        "direct_staking_focus": _clip(category_pct[FARM_VICTORY_STAKING]),
        "production_chain_stage": _clip(production_stage),
        "path_focus": _signed_focus(chain_values[0], chain_values[1]),
        "yield_farming_intensity": _clip(len(df) * 10 + categories_touched * 15),
        "victory_generation_potential": _clip(df.loc[victory_mask, "staked"].sum() / total * 100),
    }
    return _to_native(
        {
            "total_staked": total,
            "total_pending_rewards": float(df["rewards"].sum()),
            "position_count": len(df),
            "category_percentages": category_pct,
            "indicators": indicators,
        }
    )


# ---------- 5. Overall strategy ----------


def _development_milestones(balances: Mapping[str, float], topology: GameTopology) -> float:
    chains = topology.chains
    reached = [
        any(balances.get(chain.stages[1], 0.0) > 0 for chain in chains),
        any(balances.get(chain.stages[-1], 0.0) > 0 for chain in chains),
        all(balances.get(chain.stages[-1], 0.0) > 0 for chain in chains),
        balances.get(topology.victory_token, 0.0) > 0,
    ]
    return 25.0 * sum(reached)


def analyze_overall_strategy(
    balances: Mapping[str, Any],
    resource_focus: Mapping[str, Any],
    path_preference: Mapping[str, Any],
    liquidity_strategy: Mapping[str, Any],
    staking_strategy: Mapping[str, Any],
    victory_balance: Any = None,
    config: Optional[WeightConfig] = None,
    topology: Optional[GameTopology] = None,
) -> Dict[str, Any]:
    """Composite 0-100 indicators; ``path_specialization`` is signed (-100..100)."""
    config = config or WeightConfig()
    topology = topology or default_topology()
    clean, _ = _clean_balances(balances)
    victory = amount_or_none(victory_balance) if victory_balance is not None else None
    if victory is None:
        victory = clean.get(topology.victory_token, 0.0)

    parts_missing = [
        is_analysis_error(resource_focus),
        is_analysis_error(liquidity_strategy),
        is_analysis_error(staking_strategy),
    ]
    if all(parts_missing) and victory <= 0:
        return analysis_error("Not enough activity to assess overall strategy")

    progress = min(100.0, victory / config.victory_threshold * 100) if config.victory_threshold > 0 else 0.0
    game_stage = 0.4 * progress + 0.6 * _development_milestones(clean, topology)

    if is_analysis_error(resource_focus):
        resource_optimization = 0.0
        victory_focus = 0.0
        resource_breadth = 0.0
    else:
        percentages = resource_focus["percentages"]
        resource_optimization = sum(
            pct for symbol, pct in percentages.items() if (topology.stage_index(symbol) or 0) >= 1
        ) + percentages.get(topology.victory_token, 0.0)
        victory_focus = percentages.get(topology.victory_token, 0.0)
        held = sum(1 for pct in percentages.values() if pct > 0)
        resource_breadth = min(1.0, held / max(1, len(topology.resources)))

    vertical = max(
        sum(1 for symbol in chain.stages if clean.get(symbol, 0.0) > 0) / len(chain.stages) * 100
        for chain in topology.chains
    )

    if is_analysis_error(liquidity_strategy):
        liquidity_efficiency = 0.0
        liquidity_breadth = 0.0
    else:
        stage_pct = liquidity_strategy["stage_percentages"]
        liquidity_efficiency = sum(
            stage_pct.get(stage, 0.0) * score / 100 for stage, score in LIQUIDITY_STAGE_SCORES.items()
        )
        liquidity_breadth = sum(1 for stage in LIQUIDITY_STAGES if stage_pct.get(stage, 0.0) > 0) / len(
            LIQUIDITY_STAGES
        )

    if is_analysis_error(staking_strategy):
        yield_generation = 0.0
        staking_breadth = 0.0
    else:
        staking = staking_strategy["indicators"]
        yield_generation = 0.6 * staking["production_chain_stage"] + 0.4 * staking["yield_farming_intensity"]
        category_pct = staking_strategy["category_percentages"]
        staking_breadth = sum(1 for category in FARM_CATEGORIES if category_pct.get(category, 0.0) > 0) / len(
            FARM_CATEGORIES
        )

    path_specialization = 0 if is_analysis_error(path_preference) else path_preference["path_dominance"]

    return _to_native(
        {
            "game_stage": _clip(game_stage),
            "resource_optimization": _clip(resource_optimization),
            "vertical_integration": _clip(vertical),
            "liquidity_efficiency": _clip(liquidity_efficiency),
            "yield_generation": _clip(yield_generation),
            "path_specialization": _clip(path_specialization, -100.0, 100.0),
            "victory_token_focus": _clip(victory_focus),
            "strategic_diversity": _clip(
                (0.4 * resource_breadth + 0.3 * liquidity_breadth + 0.3 * staking_breadth) * 100
            ),
        }
    )


def build_strategy_profile(
    intel: AgentIntel,
    config: Optional[WeightConfig] = None,
    topology: Optional[GameTopology] = None,
) -> Dict[str, Any]:
    topology = topology or default_topology()
    resource_focus = analyze_resource_focus(intel.resource_balances, topology)
    path_preference = analyze_path_preference(
        intel.resource_balances, intel.liquidity_positions, intel.stake_positions, topology
    )
    liquidity_strategy = analyze_liquidity_strategy(intel.liquidity_positions, topology)
    staking_strategy = analyze_staking_strategy(intel.stake_positions, topology)
    overall = analyze_overall_strategy(
        intel.resource_balances,
        resource_focus,
        path_preference,
        liquidity_strategy,
        staking_strategy,
        intel.victory_balance,
        config,
        topology,
    )
    failed = [
        name
        for name, part in (
            ("resource_focus", resource_focus),
            ("path_preference", path_preference),
            ("liquidity_strategy", liquidity_strategy),
            ("staking_strategy", staking_strategy),
            ("overall_strategy", overall),
        )
        if is_analysis_error(part)
    ]
    if failed:
        logger.info(f"Profile for {intel.agent_id}: no data for {', '.join(failed)}")
    return {
        "agent_id": intel.agent_id,
        "address": intel.address,
        "resource_focus": resource_focus,
        "path_preference": path_preference,
        "liquidity_strategy": liquidity_strategy,
        "staking_strategy": staking_strategy,
        "overall_strategy": overall,
    }
