"""
Progression sub-scores.

    resource score = sum(balance * token weight)
    lp score       = sum(pool share balance * pool weight)
    farming score  = sum(reward * w * (1 + w / divisor)), w = reward token weight

Each calculator also returns a breakdown of item id -> normalized amount.
"""
from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

from standings.units import parse_amount
from standings.weights import WeightConfig

ScoreResult = Tuple[float, Dict[str, float]]


def _breakdown(amounts: Mapping[str, object]) -> Dict[str, float]:
    return {item: parse_amount(amount) for item, amount in amounts.items()}


def calculate_resource_score(balances: Mapping[str, object], config: WeightConfig) -> ScoreResult:
    breakdown = _breakdown(balances)
    score = 0.0
    for symbol, amount in breakdown.items():
        if amount > 0:
            score += amount * config.token_weight(symbol)
    return score, breakdown


def calculate_lp_score(balances: Mapping[str, object], config: WeightConfig) -> ScoreResult:
    breakdown = _breakdown(balances)
    score = 0.0
    for pair, amount in breakdown.items():
        if amount > 0:
            score += amount * config.pool_weight(pair)
    return score, breakdown


def calculate_farming_score(
    rewards: Mapping[str, object],
    config: WeightConfig,
    reward_tokens: Optional[Mapping[str, str]] = None,
) -> ScoreResult:
    """Pending rewards weighted by their reward token, boosted by the farm multiplier.

    ``reward_tokens`` maps a reward key to the reward token symbol; unresolved
    keys fall back to the base currency.
    """
    reward_tokens = reward_tokens or {}
    breakdown = _breakdown(rewards)
    score = 0.0
    for key, amount in breakdown.items():
        if amount <= 0:
            continue
        symbol = reward_tokens.get(key) or config.base_currency
        weight = config.token_weight(symbol)
        score += amount * weight * config.farm_multiplier(symbol)
    return score, breakdown
