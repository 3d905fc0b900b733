"""
Counter-strategy advisory against one opponent.

Runs the profiler on the opponent's intel and applies fixed threshold rules to
produce vulnerabilities, opportunities, "should do" flags and a mining
efficiency estimate.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from standings.profiler import analysis_error, build_strategy_profile, is_analysis_error
from standings.snapshot import AgentIntel
from standings.topology import LIQUIDITY_STAGES, GameTopology, default_topology
from standings.weights import WeightConfig

logger = logging.getLogger(__name__)

RESOURCE_DOMINANCE_PCT = 50.0
CHAIN_SHARE_PCT = 70.0
PATH_DOMINANCE_THRESHOLD = 40
VICTORY_FOCUS_PCT = 35.0
STAGE_SPECIALIST_SCORE = 70.0
SPECIALIST_BOOST = 15.0
SCARCE_RESOURCE_PCT = 5.0


def _section() -> Dict[str, Any]:
    return {"vulnerabilities": [], "opportunities": []}


def _resource_section(agent_id: str, resource_focus: Dict[str, Any], topology: GameTopology) -> Dict[str, Any]:
    section = _section()
    section["target_resources"] = []
    if is_analysis_error(resource_focus):
        section["vulnerabilities"].append(f"{agent_id} holds no tracked resources")
        section["target_resources"] = topology.non_base_resources()
        return section

    top = resource_focus["top_resources"][0]
    if top["percentage"] > RESOURCE_DOMINANCE_PCT:
        section["vulnerabilities"].append(
            f"Over-concentrated in {top['resource']} ({top['percentage']:.1f}% of holdings)"
        )
        section["opportunities"].append(
            f"Accumulate resources other than {top['resource']} while {agent_id} is locked into it"
        )
    percentages = resource_focus["percentages"]
    section["target_resources"] = [
        symbol
        for symbol in topology.non_base_resources()
        if percentages.get(symbol, 0.0) < SCARCE_RESOURCE_PCT
    ]
    return section


def _path_section(agent_id: str, path_preference: Dict[str, Any], topology: GameTopology) -> Dict[str, Any]:
    section = _section()
    section["target_alternative_chain"] = False
    section["alternative_chain"] = None
    if is_analysis_error(path_preference):
        return section

    dominance = path_preference["path_dominance"]
    holdings = path_preference["holdings_percentages"]
    first, second = topology.chain_names
    heavy: Optional[str] = None
    for name in (first, second):
        if holdings.get(name, 0.0) > CHAIN_SHARE_PCT:
            heavy = name
    if heavy is None and abs(dominance) >= PATH_DOMINANCE_THRESHOLD:
        heavy = first if dominance > 0 else second
    if heavy is None:
        return section

    alternative = second if heavy == first else first
    section["vulnerabilities"].append(
        f"{agent_id} relies on the {heavy} chain ({holdings.get(heavy, 0.0):.1f}% of chain holdings, dominance {dominance})"
    )
    section["opportunities"].append(
        f"Target the {alternative} chain, which {agent_id} is neglecting"
    )
    section["target_alternative_chain"] = True
    section["alternative_chain"] = alternative
    return section


def _liquidity_section(agent_id: str, liquidity: Dict[str, Any], topology: GameTopology) -> Dict[str, Any]:
    section = _section()
    if is_analysis_error(liquidity):
        section["vulnerabilities"].append(f"{agent_id} provides no liquidity")
        section["opportunities"].append("Establish liquidity positions before the opponent does")
        section["should_provide_liquidity"] = True
        section["target_pairs"] = [spec.pair for spec in topology.pairs]
        return section

    stage_pct = liquidity["stage_percentages"]
    empty_stages = [stage for stage in LIQUIDITY_STAGES if stage_pct.get(stage, 0.0) <= 0]
    section["target_pairs"] = [spec.pair for spec in topology.pairs if spec.stage in empty_stages]
    if empty_stages:
        section["opportunities"].append(
            f"{agent_id} has no liquidity at the {', '.join(empty_stages)} stage(s)"
        )
    section["should_provide_liquidity"] = bool(section["target_pairs"])
    return section


def _staking_section(agent_id: str, staking: Dict[str, Any], topology: GameTopology) -> Dict[str, Any]:
    section = _section()
    if is_analysis_error(staking):
        section["vulnerabilities"].append(f"{agent_id} has no staking positions")
        section["opportunities"].append("Establish farm positions to out-yield the opponent")
        section["should_stake"] = True
        section["target_farms"] = [spec.farm_id for spec in topology.farms]
        return section

    category_pct = staking["category_percentages"]
    section["target_farms"] = [
        spec.farm_id for spec in topology.farms if category_pct.get(spec.category, 0.0) <= 0
    ]
    if section["target_farms"]:
        section["opportunities"].append(
            f"{agent_id} is not farming {', '.join(section['target_farms'])}"
        )
    section["should_stake"] = bool(section["target_farms"])
    return section


def _production_section(agent_id: str, overall: Dict[str, Any], victory_token: str) -> Dict[str, Any]:
    section = _section()
    focus = 0.0 if is_analysis_error(overall) else overall["victory_token_focus"]
    section["victory_token_focus"] = focus
    section["should_accelerate_victory_production"] = focus < VICTORY_FOCUS_PCT
    if focus < VICTORY_FOCUS_PCT:
        section["vulnerabilities"].append(
            f"{agent_id} has a weak {victory_token} production focus ({focus:.1f}%)"
        )
        section["opportunities"].append(f"Race ahead on {victory_token} production")
    return section


def estimate_mining_efficiency(path_preference: Dict[str, Any], staking: Dict[str, Any]) -> float:
    """Blend of path focus and production-stage focus, boosted against specialists."""
    path_focus = 0.0 if is_analysis_error(path_preference) else abs(path_preference["path_dominance"])
    stage_focus = 0.0 if is_analysis_error(staking) else staking["indicators"]["production_chain_stage"]
    efficiency = 0.5 * path_focus + 0.5 * stage_focus
    if path_focus >= PATH_DOMINANCE_THRESHOLD or stage_focus >= STAGE_SPECIALIST_SCORE:
        efficiency += SPECIALIST_BOOST
    return float(np.clip(efficiency, 0, 100))


def _recommendations(sections: Dict[str, Dict[str, Any]], victory_token: str) -> List[str]:
    recommendations: List[str] = []
    path = sections["path"]
    if path["target_alternative_chain"]:
        recommendations.append(f"Build up the {path['alternative_chain']} chain to avoid direct competition")
    targets = sections["resources"]["target_resources"]
    if targets:
        recommendations.append(f"Target under-held resources: {', '.join(targets)}")
    if sections["liquidity"]["should_provide_liquidity"]:
        recommendations.append(f"Provide liquidity in {', '.join(sections['liquidity']['target_pairs'])}")
    if sections["staking"]["should_stake"]:
        recommendations.append(f"Stake in {', '.join(sections['staking']['target_farms'])}")
    if sections["production"]["should_accelerate_victory_production"]:
        recommendations.append(f"Prioritise {victory_token} production while the opponent lags")
    return recommendations


def build_counter_strategy(
    intel: AgentIntel,
    config: Optional[WeightConfig] = None,
    topology: Optional[GameTopology] = None,
) -> Dict[str, Any]:
    topology = topology or default_topology()
    profile = build_strategy_profile(intel, config, topology)
    if is_analysis_error(profile["resource_focus"]) and is_analysis_error(profile["path_preference"]):
        return analysis_error(f"No strategic data available for {intel.agent_id}")

    sections = {
        "resources": _resource_section(intel.agent_id, profile["resource_focus"], topology),
        "path": _path_section(intel.agent_id, profile["path_preference"], topology),
        "liquidity": _liquidity_section(intel.agent_id, profile["liquidity_strategy"], topology),
        "staking": _staking_section(intel.agent_id, profile["staking_strategy"], topology),
        "production": _production_section(intel.agent_id, profile["overall_strategy"], topology.victory_token),
    }
    return {
        "agent_id": intel.agent_id,
        "profile": profile,
        **sections,
        "recommendations": _recommendations(sections, topology.victory_token),
        "mining_efficiency": estimate_mining_efficiency(
            profile["path_preference"], profile["staking_strategy"]
        ),
    }
