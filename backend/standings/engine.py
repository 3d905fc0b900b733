from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from standings.advisor import build_counter_strategy
from standings.chain_client import ChainReader, FetchFailure, StarknetRpcClient
from standings.comparator import build_agent_data, compare_agents, compare_progression
from standings.contracts import AddressNotFound, ContractRegistry
from standings.indexer_client import IndexerClient, PositionSource
from standings.inspiration import MEDIUM, select_inspiration
from standings.models import (
    AgentComparison,
    AgentData,
    AgentProgressionRecord,
    AgentRankingEntry,
    OverallRankingEntry,
    VictoryRankingEntry,
)
from standings.profiler import build_strategy_profile
from standings.progression import ProgressionAggregator
from standings.ranking import (
    rank_agents_by_overall_score,
    rank_agents_by_progression,
    rank_agents_by_victory_token,
)
from standings.settings import Settings
from standings.snapshot import SnapshotCollector
from standings.topology import GameTopology, default_topology
from standings.weights import WeightConfig

logger = logging.getLogger(__name__)


class StandingsEngine:
    """One entry point per operation, wired to a single collector and weight config."""

    def __init__(
        self,
        registry: ContractRegistry,
        chain: ChainReader,
        positions: Optional[PositionSource] = None,
        config: Optional[WeightConfig] = None,
        topology: Optional[GameTopology] = None,
        concurrency: int = 8,
    ) -> None:
        self.registry = registry
        self.config = config or WeightConfig()
        self.topology = topology or default_topology()
        self.collector = SnapshotCollector(registry, chain, positions, self.topology, concurrency)
        self.aggregator = ProgressionAggregator(self.collector, self.config)

    @classmethod
    def from_settings(cls, settings: Settings) -> "StandingsEngine":
        registry = ContractRegistry.from_file(settings.contracts_path)
        config = WeightConfig.from_file(settings.weights_path)
        chain = StarknetRpcClient(
            settings.starknet_rpc_url,
            timeout_seconds=settings.rpc_timeout_seconds,
            block_id=settings.starknet_block_id,
        )
        positions: Optional[IndexerClient] = None
        if settings.indexer_url:
            positions = IndexerClient(
                settings.indexer_url,
                game_session_address=settings.game_session_address or registry.core.get("game_session"),
                timeout_seconds=settings.rpc_timeout_seconds,
            )
        else:
            logger.warning("INDEXER_URL not set; position counts and profiles will be empty")
        logger.info(
            f"Standings engine ready: {len(registry.agents)} agents, weights v{config.version}, "
            f"concurrency {settings.fetch_concurrency}"
        )
        return cls(registry, chain, positions, config, concurrency=settings.fetch_concurrency)

    @property
    def agent_ids(self) -> List[str]:
        return self.registry.available_agents()

    async def progression(self, agent_id: str) -> AgentProgressionRecord:
        return await self.aggregator.compute(agent_id)

    async def leaderboard(self) -> List[AgentRankingEntry]:
        return await rank_agents_by_progression(self.aggregator, self.agent_ids)

    async def victory_leaderboard(self) -> List[VictoryRankingEntry]:
        return await rank_agents_by_victory_token(self.collector, self.agent_ids, config=self.config)

    async def agent_data(self, agent_id: str) -> AgentData:
        intel = await self.collector.collect_intel(agent_id)
        return build_agent_data(
            intel.agent_id,
            intel.address,
            intel.resource_balances,
            len(intel.liquidity_positions),
            len(intel.stake_positions),
            self.topology,
        )

    async def overall_leaderboard(self) -> List[OverallRankingEntry]:
        results = await asyncio.gather(
            *(self.agent_data(agent_id) for agent_id in self.agent_ids), return_exceptions=True
        )
        agents: List[AgentData] = []
        for agent_id, result in zip(self.agent_ids, results):
            if isinstance(result, (AddressNotFound, FetchFailure)):
                logger.error(f"Failed to analyze {agent_id}: {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            agents.append(result)
        return rank_agents_by_overall_score(agents, self.config)

    async def compare(self, agent_a: str, agent_b: str) -> AgentComparison:
        record_a, record_b = await asyncio.gather(self.progression(agent_a), self.progression(agent_b))
        return compare_progression(record_a, record_b)

    async def compare_detailed(self, agent_a: str, agent_b: str) -> AgentComparison:
        data_a, data_b = await asyncio.gather(self.agent_data(agent_a), self.agent_data(agent_b))
        return compare_agents(data_a, data_b, self.config)

    async def profile(self, agent_id: str) -> Dict[str, Any]:
        intel = await self.collector.collect_intel(agent_id)
        return build_strategy_profile(intel, self.config, self.topology)

    async def counter_strategy(self, agent_id: str, minimum: str = MEDIUM) -> Dict[str, Any]:
        intel = await self.collector.collect_intel(agent_id)
        analysis = build_counter_strategy(intel, self.config, self.topology)
        if "error" not in analysis:
            analysis["inspiration"] = select_inspiration(analysis, minimum)
        return analysis

    async def close(self) -> None:
        for client in (self.collector.chain, self.collector.positions):
            close = getattr(client, "close", None)
            if close is not None:
                await close()
