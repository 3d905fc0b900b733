"""
Head-to-head comparison of two agents.

Two flavours exist: ``compare_progression`` works on progression records
(resource / lp / farming / total), ``compare_agents`` works on the richer
``AgentData`` bundle and blends victory balance, path score and activity.
Ties always go to the first agent.
"""
from __future__ import annotations

import math
from typing import Dict, List, Mapping, Optional, Tuple

from standings.models import AgentComparison, AgentData, AgentProgressionRecord, PathProgression
from standings.topology import GameTopology, default_topology
from standings.units import parse_amount
from standings.weights import WeightConfig

GAME_STAGES = ("early", "mid", "advanced", "endgame")
STAGE_MULTIPLIERS = {"early": 1.0, "mid": 1.2, "advanced": 1.5, "endgame": 2.0}

ENDGAME_VICTORY_BALANCE = 100_000.0
VICTORY_FOCUS_BALANCE = 5_000.0
VICTORY_FARMING_BALANCE = 10.0
PATH_FOCUS_SHARE = 70.0

PROGRESSION_CATEGORIES = ("resource", "lp", "farming", "total")


def _winner(agent_a: str, value_a: float, agent_b: str, value_b: float) -> str:
    return agent_a if value_a >= value_b else agent_b


def _fmt(value: float) -> str:
    return f"{value:,.4f}".rstrip("0").rstrip(".")


def compare_progression(a: AgentProgressionRecord, b: AgentProgressionRecord) -> AgentComparison:
    per_category: Dict[str, str] = {}
    differences: List[str] = []
    breakdown: Dict[str, str] = {}
    scores: Dict[str, Dict[str, float]] = {a.agent_id: {}, b.agent_id: {}}

    for category in PROGRESSION_CATEGORIES:
        value_a = getattr(a, f"{category}_score")
        value_b = getattr(b, f"{category}_score")
        scores[a.agent_id][category] = value_a
        scores[b.agent_id][category] = value_b
        winner = _winner(a.agent_id, value_a, b.agent_id, value_b)
        per_category[category] = winner
        breakdown[category] = f"{a.agent_id}: {_fmt(value_a)} vs {b.agent_id}: {_fmt(value_b)}"
        delta = abs(value_a - value_b)
        if delta != 0:
            differences.append(f"{winner} leads {category} score by {_fmt(delta)}")

    return AgentComparison(
        agent_a=a.agent_id,
        agent_b=b.agent_id,
        per_category_winner=per_category,
        overall_winner=per_category["total"],
        differences=differences,
        breakdown=breakdown,
        scores=scores,
    )


# ---------- Agent data derivations ----------


def _chain_total(balances: Mapping[str, float], stages: Tuple[str, ...]) -> float:
    return sum(balances.get(symbol, 0.0) for symbol in stages)


def determine_game_stage(balances: Mapping[str, float], topology: Optional[GameTopology] = None) -> str:
    topology = topology or default_topology()
    if balances.get(topology.victory_token, 0.0) > ENDGAME_VICTORY_BALANCE:
        return "endgame"
    if all(balances.get(chain.stages[-1], 0.0) > 0 for chain in topology.chains):
        return "advanced"
    if any(balances.get(chain.stages[1], 0.0) > 0 for chain in topology.chains):
        return "mid"
    return "early"


def analyze_strategy_focus(balances: Mapping[str, float], topology: Optional[GameTopology] = None) -> str:
    topology = topology or default_topology()
    if balances.get(topology.victory_token, 0.0) > VICTORY_FOCUS_BALANCE:
        return f"{topology.victory_token.lower()}_farming"
    totals = [(chain.name, _chain_total(balances, chain.stages)) for chain in topology.chains]
    overall = sum(total for _, total in totals)
    if overall <= 0:
        return "balanced"
    for name, total in totals:
        if math.floor(total * 100 / overall) > PATH_FOCUS_SHARE:
            return f"{name}_path"
    return "balanced"


def analyze_path_progression(
    balances: Mapping[str, float], topology: Optional[GameTopology] = None
) -> PathProgression:
    """Depth reached on each chain (0-4) and on victory-token farming (0-2)."""
    topology = topology or default_topology()
    victory = balances.get(topology.victory_token, 0.0)
    depths: List[int] = []
    for chain in topology.chains:
        depth = 0
        for index, symbol in enumerate(chain.stages, start=1):
            if balances.get(symbol, 0.0) > 0:
                depth = index
        if victory > 0:
            depth = len(chain.stages) + 1
        depths.append(depth)
    farming = 0
    if victory > 0:
        farming = 1
    if victory > VICTORY_FARMING_BALANCE:
        farming = 2
    carbon, neodymium = (depths + [0, 0])[:2]
    return PathProgression(carbon_path=carbon, neodymium_path=neodymium, victory_farming=farming)


def calculate_path_score(progression: PathProgression, game_stage: str) -> float:
    carbon, neodymium = progression.carbon_path, progression.neodymium_path
    score = max(carbon, neodymium) * 25.0
    if carbon > 2 and neodymium > 2:
        score += 25
    score += progression.victory_farming * 30
    return score * STAGE_MULTIPLIERS.get(game_stage, 1.0)


def build_agent_data(
    agent_id: str,
    address: str,
    balances: Mapping[str, object],
    liquidity_positions: int = 0,
    farm_positions: int = 0,
    topology: Optional[GameTopology] = None,
) -> AgentData:
    topology = topology or default_topology()
    clean = {symbol: parse_amount(value) for symbol, value in balances.items()}
    dominant: Optional[str] = None
    best = 0.0
    for symbol, amount in clean.items():
        if amount > best:
            best, dominant = amount, symbol
    return AgentData(
        agent_id=agent_id,
        address=address,
        resource_balances=clean,
        liquidity_positions=liquidity_positions,
        farm_positions=farm_positions,
        total_resource_value=sum(clean.values()),
        victory_balance=clean.get(topology.victory_token, 0.0),
        dominant_resource=dominant,
        game_stage=determine_game_stage(clean, topology),
        strategy_focus=analyze_strategy_focus(clean, topology),
        path_progression=analyze_path_progression(clean, topology),
    )


def blended_score(data: AgentData, blend: Tuple[float, float, float]) -> float:
    victory_weight, path_weight, activity_weight = blend
    path_score = calculate_path_score(data.path_progression, data.game_stage)
    return (
        data.victory_balance * victory_weight
        + path_score * path_weight
        + data.activity * activity_weight
    )


def compare_agents(a: AgentData, b: AgentData, config: Optional[WeightConfig] = None) -> AgentComparison:
    config = config or WeightConfig()
    victory_token = config.victory_token
    path_a = calculate_path_score(a.path_progression, a.game_stage)
    path_b = calculate_path_score(b.path_progression, b.game_stage)
    overall_a = blended_score(a, config.comparison_blend)
    overall_b = blended_score(b, config.comparison_blend)

    differences: List[str] = []
    if a.victory_balance != b.victory_balance:
        leader = _winner(a.agent_id, a.victory_balance, b.agent_id, b.victory_balance)
        delta = abs(a.victory_balance - b.victory_balance)
        differences.append(f"{leader} has {_fmt(delta)} more {victory_token}")
    if a.total_resource_value != b.total_resource_value:
        leader = _winner(a.agent_id, a.total_resource_value, b.agent_id, b.total_resource_value)
        delta = abs(a.total_resource_value - b.total_resource_value)
        differences.append(f"{leader} has {_fmt(delta)} more total resources")
    if a.activity != b.activity:
        leader = _winner(a.agent_id, a.activity, b.agent_id, b.activity)
        differences.append(f"{leader} has {abs(a.activity - b.activity)} more positions")
    stage_a, stage_b = GAME_STAGES.index(a.game_stage), GAME_STAGES.index(b.game_stage)
    if stage_a != stage_b:
        leader = a.agent_id if stage_a > stage_b else b.agent_id
        differences.append(f"{leader} is in a more advanced game stage")

    if a.strategy_focus == "balanced" and b.strategy_focus != "balanced":
        diversification = a.agent_id
    elif b.strategy_focus == "balanced" and a.strategy_focus != "balanced":
        diversification = b.agent_id
    else:
        diversification = "tied"
    if a.game_stage == "endgame":
        endgame = a.agent_id
    elif b.game_stage == "endgame":
        endgame = b.agent_id
    else:
        endgame = _winner(a.agent_id, a.victory_balance, b.agent_id, b.victory_balance)

    per_category = {
        "victory_token": _winner(a.agent_id, a.victory_balance, b.agent_id, b.victory_balance),
        "resources": _winner(a.agent_id, a.total_resource_value, b.agent_id, b.total_resource_value),
        "activity": _winner(a.agent_id, a.activity, b.agent_id, b.activity),
        "strategy": _winner(a.agent_id, path_a, b.agent_id, path_b),
        "overall": _winner(a.agent_id, overall_a, b.agent_id, overall_b),
    }
    return AgentComparison(
        agent_a=a.agent_id,
        agent_b=b.agent_id,
        per_category_winner=per_category,
        overall_winner=per_category["overall"],
        differences=differences,
        breakdown={
            "victory_token": f"{a.agent_id}: {_fmt(a.victory_balance)} vs {b.agent_id}: {_fmt(b.victory_balance)}",
            "strategy": f"{a.agent_id}: {_fmt(path_a)} vs {b.agent_id}: {_fmt(path_b)}",
            "overall": f"{a.agent_id}: {_fmt(overall_a)} vs {b.agent_id}: {_fmt(overall_b)}",
        },
        strategic_analysis={
            "path_completion": _winner(a.agent_id, path_a, b.agent_id, path_b),
            "diversification": diversification,
            "endgame_readiness": endgame,
        },
        scores={
            a.agent_id: {"path_score": path_a, "overall": overall_a, "activity": float(a.activity)},
            b.agent_id: {"path_score": path_b, "overall": overall_b, "activity": float(b.activity)},
        },
    )
