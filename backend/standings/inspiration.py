"""Named strategy archetypes matched against a counter-strategy analysis."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Tuple

from standings.profiler import is_analysis_error

HIGH = "High"
MEDIUM = "Medium"
LOW = "Low"
APPLICABILITY_ORDER = {HIGH: 0, MEDIUM: 1, LOW: 2}


@dataclass(frozen=True)
class Archetype:
    name: str
    description: str
    prompts: Tuple[str, ...]
    rule: Callable[[Mapping[str, Any]], str]


def _vulnerability_count(analysis: Mapping[str, Any]) -> int:
    return sum(
        len(analysis.get(section, {}).get("vulnerabilities", []))
        for section in ("resources", "path", "liquidity", "staking", "production")
    )


def _resource_specialist(analysis: Mapping[str, Any]) -> str:
    if analysis["path"]["target_alternative_chain"]:
        return HIGH
    if analysis["resources"]["vulnerabilities"]:
        return MEDIUM
    return LOW


def _liquidity_monopolist(analysis: Mapping[str, Any]) -> str:
    liquidity = analysis["liquidity"]
    if is_analysis_error(analysis["profile"]["liquidity_strategy"]):
        return HIGH
    return MEDIUM if liquidity["should_provide_liquidity"] else LOW


def _yield_maximizer(analysis: Mapping[str, Any]) -> str:
    staking = analysis["staking"]
    if is_analysis_error(analysis["profile"]["staking_strategy"]):
        return HIGH
    return MEDIUM if staking["should_stake"] else LOW


def _dual_chain_integrator(analysis: Mapping[str, Any]) -> str:
    efficiency = analysis["mining_efficiency"]
    if efficiency >= 70:
        return HIGH
    return MEDIUM if efficiency >= 40 else LOW


def _victory_sprinter(analysis: Mapping[str, Any]) -> str:
    production = analysis["production"]
    if production["should_accelerate_victory_production"]:
        return HIGH
    return MEDIUM if production["victory_token_focus"] < 60 else LOW


def _counter_positioner(analysis: Mapping[str, Any]) -> str:
    count = _vulnerability_count(analysis)
    if count >= 3:
        return HIGH
    return MEDIUM if count >= 1 else LOW


ARCHETYPES: Tuple[Archetype, ...] = (
    Archetype(
        "Resource Specialist",
        "Concentrate on the production chain the opponent neglects and own its supply.",
        (
            "Which resource could you corner before the opponent notices it matters?",
            "How would you convert a chain monopoly into faster victory-token output?",
            "What would make the opponent's chosen chain more expensive for them?",
        ),
        _resource_specialist,
    ),
    Archetype(
        "Liquidity Monopolist",
        "Dominate the pools the opponent ignores and earn on every swap they need.",
        (
            "Which pool would hurt the opponent most if you held most of its liquidity?",
            "How could deep liquidity in one pair shape the prices the opponent pays?",
            "When is the right moment to pull liquidity for maximum effect?",
        ),
        _liquidity_monopolist,
    ),
    Archetype(
        "Yield Maximizer",
        "Stack farm positions across stages to compound rewards faster than the opponent.",
        (
            "Which farm rewards feed directly into your next production stage?",
            "How would you rotate stakes as the opponent changes farms?",
            "What is the cheapest path to a victory-token producing farm?",
        ),
        _yield_maximizer,
    ),
    Archetype(
        "Dual-Chain Integrator",
        "Develop both production chains to reach advanced pairs before a specialist can.",
        (
            "Where does a balanced build beat a specialist's head start?",
            "Which missing stage would unlock the advanced pair soonest?",
            "How could you exploit a specialist's dependence on the other chain?",
        ),
        _dual_chain_integrator,
    ),
    Archetype(
        "Victory Sprinter",
        "Rush victory-token production while the opponent is still building up.",
        (
            "What is the shortest route from your holdings to victory-token yield?",
            "Which of your positions could be liquidated to fund the sprint?",
            "How much lead do you need before the opponent can no longer catch up?",
        ),
        _victory_sprinter,
    ),
    Archetype(
        "Counter-Positioner",
        "Mirror the opponent's weaknesses: be strong exactly where they are exposed.",
        (
            "Which of the opponent's vulnerabilities is cheapest for you to exploit?",
            "How would the opponent react if you took their weakest category?",
            "What experiment would reveal whether the opponent adapts to pressure?",
        ),
        _counter_positioner,
    ),
)


def select_inspiration(
    analysis: Mapping[str, Any], minimum: str = MEDIUM
) -> List[Dict[str, Any]]:
    """Archetypes at or above ``minimum`` applicability, most applicable first."""
    if is_analysis_error(analysis):
        return []
    cutoff = APPLICABILITY_ORDER[minimum]
    selected = []
    for archetype in ARCHETYPES:
        applicability = archetype.rule(analysis)
        if APPLICABILITY_ORDER[applicability] <= cutoff:
            selected.append(
                {
                    "name": archetype.name,
                    "description": archetype.description,
                    "applicability": applicability,
                    "prompts": list(archetype.prompts),
                }
            )
    # Stable: catalogue order within each applicability level.
    selected.sort(key=lambda item: APPLICABILITY_ORDER[item["applicability"]])
    return selected
