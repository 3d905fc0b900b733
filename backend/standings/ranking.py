from __future__ import annotations

import asyncio
import logging
import time
from typing import Iterable, List, Optional, Sequence

from standings.chain_client import FetchFailure
from standings.comparator import blended_score
from standings.contracts import AddressNotFound
from standings.models import (
    AgentData,
    AgentProgressionRecord,
    AgentRankingEntry,
    OverallRankingEntry,
    VictoryRankingEntry,
)
from standings.progression import ProgressionAggregator
from standings.snapshot import SnapshotCollector
from standings.weights import WeightConfig

logger = logging.getLogger(__name__)


def progress_to_goal(balance: float, threshold: float) -> float:
    if threshold <= 0:
        return 100.0
    return max(0.0, min(100.0, balance / threshold * 100))


def rank_progression_records(records: Iterable[AgentProgressionRecord]) -> List[AgentRankingEntry]:
    # sorted() is stable: equal totals keep roster order.
    ordered = sorted(records, key=lambda record: record.total_score, reverse=True)
    return [
        AgentRankingEntry(
            agent_id=record.agent_id,
            total_score=record.total_score,
            rank=index + 1,
            resource_score=record.resource_score,
            lp_score=record.lp_score,
            farming_score=record.farming_score,
        )
        for index, record in enumerate(ordered)
    ]


async def rank_agents_by_progression(
    aggregator: ProgressionAggregator, agent_ids: Sequence[str]
) -> List[AgentRankingEntry]:
    t0 = time.perf_counter()
    results = await asyncio.gather(
        *(aggregator.compute(agent_id) for agent_id in agent_ids), return_exceptions=True
    )
    records: List[AgentProgressionRecord] = []
    for agent_id, result in zip(agent_ids, results):
        if isinstance(result, AddressNotFound):
            logger.warning(f"Leaving {agent_id} out of the leaderboard: {result}")
            continue
        if isinstance(result, BaseException):
            raise result
        records.append(result)
    logger.info(f"[TIMING] rank_agents_by_progression: {time.perf_counter() - t0:.2f}s ({len(records)} agents)")
    return rank_progression_records(records)


async def rank_agents_by_victory_token(
    collector: SnapshotCollector,
    agent_ids: Sequence[str],
    threshold: Optional[float] = None,
    config: Optional[WeightConfig] = None,
) -> List[VictoryRankingEntry]:
    """Rank by victory-token balance alone; agents whose read failed are omitted."""
    config = config or WeightConfig()
    goal = config.victory_threshold if threshold is None else threshold

    async def _balance(agent_id: str) -> Optional[float]:
        try:
            return await collector.collect_victory_balance(agent_id)
        except (AddressNotFound, FetchFailure) as exc:
            logger.warning(f"Omitting {agent_id} from victory ranking: {exc}")
            return None

    balances = await asyncio.gather(*(_balance(agent_id) for agent_id in agent_ids))
    present = [(agent_id, balance) for agent_id, balance in zip(agent_ids, balances) if balance is not None]
    present.sort(key=lambda item: item[1], reverse=True)
    return [
        VictoryRankingEntry(
            agent_id=agent_id,
            balance=balance,
            rank=index + 1,
            progress_to_goal=progress_to_goal(balance, goal),
        )
        for index, (agent_id, balance) in enumerate(present)
    ]


def rank_agents_by_overall_score(
    agents: Iterable[AgentData], config: Optional[WeightConfig] = None
) -> List[OverallRankingEntry]:
    """Blend victory balance, path score and activity with the ranking weights."""
    config = config or WeightConfig()
    scored = [(data, blended_score(data, config.ranking_blend)) for data in agents]
    scored.sort(key=lambda item: item[1], reverse=True)
    return [
        OverallRankingEntry(
            agent_id=data.agent_id,
            victory_balance=data.victory_balance,
            total_resources=data.total_resource_value,
            total_positions=data.activity,
            game_stage=data.game_stage,
            strategy_focus=data.strategy_focus,
            score=score,
            rank=index + 1,
            progress_to_victory=progress_to_goal(data.victory_balance, config.victory_threshold),
        )
        for index, (data, score) in enumerate(scored)
    ]
