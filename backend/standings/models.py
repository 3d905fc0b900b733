from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from standings.units import DEFAULT_DECIMALS, normalize_amount, parse_amount, parse_int


def _normalized(value: Any, decimals: int = DEFAULT_DECIMALS) -> float:
    return normalize_amount(parse_int(value), decimals)


# ---------- Indexer boundary records ----------


class LiquidityPositionRecord(BaseModel):
    """One liquidity position, amounts already normalized."""

    pair: str
    token0: str
    token1: str
    liquidity: float = 0.0
    pair_address: Optional[str] = None
    reserve0: float = 0.0
    reserve1: float = 0.0
    total_supply: float = 0.0
    deposits_token0: float = 0.0
    deposits_token1: float = 0.0
    withdrawals_token0: float = 0.0
    withdrawals_token1: float = 0.0

    @field_validator(
        "liquidity",
        "reserve0",
        "reserve1",
        "total_supply",
        "deposits_token0",
        "deposits_token1",
        "withdrawals_token0",
        "withdrawals_token1",
        mode="before",
    )
    @classmethod
    def _amount(cls, value: Any) -> float:
        return parse_amount(value)

    @classmethod
    def from_indexer(
        cls, row: Mapping[str, Any], decimals: int = DEFAULT_DECIMALS
    ) -> Optional["LiquidityPositionRecord"]:
        pair_info = row.get("pair") or {}
        token0 = str(pair_info.get("token0Symbol") or "").strip()
        token1 = str(pair_info.get("token1Symbol") or "").strip()
        if not token0 or not token1:
            return None
        return cls(
            pair=f"{token0}/{token1}",
            token0=token0,
            token1=token1,
            liquidity=_normalized(row.get("liquidity"), decimals),
            pair_address=row.get("pairAddress"),
            reserve0=_normalized(pair_info.get("reserve0"), decimals),
            reserve1=_normalized(pair_info.get("reserve1"), decimals),
            total_supply=_normalized(pair_info.get("totalSupply"), decimals),
            deposits_token0=_normalized(row.get("depositsToken0"), decimals),
            deposits_token1=_normalized(row.get("depositsToken1"), decimals),
            withdrawals_token0=_normalized(row.get("withdrawalsToken0"), decimals),
            withdrawals_token1=_normalized(row.get("withdrawalsToken1"), decimals),
        )


class StakePositionRecord(BaseModel):
    """One farm stake, amounts already normalized."""

    farm_id: str
    staked_amount: float = 0.0
    accrued_rewards: float = 0.0
    farm_address: Optional[str] = None
    reward_tokens: List[str] = Field(default_factory=list)
    penalty_end_time: Optional[int] = None
    withdraw_penalty: Optional[float] = None

    @field_validator("staked_amount", "accrued_rewards", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> float:
        return parse_amount(value)


# ---------- Scores and rankings ----------


class AgentProgressionRecord(BaseModel):
    agent_id: str
    resource_score: float = Field(ge=0)
    lp_score: float = Field(ge=0)
    farming_score: float = Field(ge=0)
    total_score: float = Field(ge=0)
    resource_balances: Dict[str, float] = Field(default_factory=dict)
    lp_balances: Dict[str, float] = Field(default_factory=dict)
    pending_rewards: Dict[str, float] = Field(default_factory=dict)
    computed_at: datetime

    @model_validator(mode="after")
    def _total_is_sum(self) -> "AgentProgressionRecord":
        expected = self.resource_score + self.lp_score + self.farming_score
        if self.total_score != expected:
            raise ValueError("total_score must equal the sum of the category scores")
        return self


class AgentRankingEntry(BaseModel):
    agent_id: str
    total_score: float
    rank: int = Field(ge=1)
    resource_score: float = 0.0
    lp_score: float = 0.0
    farming_score: float = 0.0


class VictoryRankingEntry(BaseModel):
    agent_id: str
    balance: float
    rank: int = Field(ge=1)
    progress_to_goal: float = Field(ge=0, le=100)


class PathProgression(BaseModel):
    carbon_path: int = Field(0, ge=0, le=4)
    neodymium_path: int = Field(0, ge=0, le=4)
    victory_farming: int = Field(0, ge=0, le=2)


class AgentData(BaseModel):
    """Balances plus derived progression indicators for head-to-head work."""

    agent_id: str
    address: str
    resource_balances: Dict[str, float]
    liquidity_positions: int = 0
    farm_positions: int = 0
    total_resource_value: float = 0.0
    victory_balance: float = 0.0
    dominant_resource: Optional[str] = None
    game_stage: str = "early"
    strategy_focus: str = "balanced"
    path_progression: PathProgression = Field(default_factory=PathProgression)

    @property
    def activity(self) -> int:
        return self.liquidity_positions + self.farm_positions


class OverallRankingEntry(BaseModel):
    agent_id: str
    victory_balance: float
    total_resources: float
    total_positions: int
    game_stage: str
    strategy_focus: str
    score: float
    rank: int = Field(ge=1)
    progress_to_victory: float = Field(ge=0, le=100)


class AgentComparison(BaseModel):
    agent_a: str
    agent_b: str
    per_category_winner: Dict[str, str]
    overall_winner: str
    differences: List[str] = Field(default_factory=list)
    breakdown: Dict[str, str] = Field(default_factory=dict)
    strategic_analysis: Optional[Dict[str, str]] = None
    scores: Dict[str, Dict[str, float]] = Field(default_factory=dict)
