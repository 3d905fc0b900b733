from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from standings.models import AgentProgressionRecord
from standings.scoring import calculate_farming_score, calculate_lp_score, calculate_resource_score
from standings.snapshot import AgentSnapshots, SnapshotCollector
from standings.weights import WeightConfig

logger = logging.getLogger(__name__)


def build_progression_record(
    snapshots: AgentSnapshots,
    config: WeightConfig,
    computed_at: Optional[datetime] = None,
) -> AgentProgressionRecord:
    """Score the three snapshot categories and sum them into one record."""
    resource_score, resource_balances = calculate_resource_score(snapshots.resources.amounts, config)
    lp_score, lp_balances = calculate_lp_score(snapshots.liquidity.amounts, config)
    farming_score, pending_rewards = calculate_farming_score(
        snapshots.rewards.amounts, config, snapshots.rewards.reward_tokens
    )
    return AgentProgressionRecord(
        agent_id=snapshots.agent_id,
        resource_score=resource_score,
        lp_score=lp_score,
        farming_score=farming_score,
        total_score=resource_score + lp_score + farming_score,
        resource_balances=resource_balances,
        lp_balances=lp_balances,
        pending_rewards=pending_rewards,
        computed_at=computed_at or datetime.now(timezone.utc),
    )


class ProgressionAggregator:
    def __init__(self, collector: SnapshotCollector, config: Optional[WeightConfig] = None) -> None:
        self.collector = collector
        self.config = config or WeightConfig()

    async def compute(self, agent_id: str) -> AgentProgressionRecord:
        """Progression record for one agent; ``AddressNotFound`` propagates."""
        t0 = time.perf_counter()
        snapshots = await self.collector.collect_snapshots(agent_id)
        record = build_progression_record(snapshots, self.config)
        failed = (
            len(snapshots.resources.errors)
            + len(snapshots.liquidity.errors)
            + len(snapshots.rewards.errors)
        )
        if failed:
            logger.warning(f"{agent_id}: {failed} item(s) scored as zero after fetch failures")
        logger.info(
            f"[TIMING] progression[{agent_id}]: {time.perf_counter() - t0:.2f}s "
            f"(total={record.total_score:.4f})"
        )
        return record
