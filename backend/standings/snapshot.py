from __future__ import annotations

import asyncio
import logging
import re
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar, Union

from pydantic import ValidationError

from standings.chain_client import ChainReader, FetchFailure
from standings.contracts import AddressNotFound, ContractRegistry, normalize_address
from standings.indexer_client import PositionSource
from standings.models import LiquidityPositionRecord, StakePositionRecord
from standings.topology import GameTopology, default_topology
from standings.units import DEFAULT_DECIMALS, FETCH_ERROR, normalize_amount, parse_int
from standings.weights import split_pair

logger = logging.getLogger(__name__)

T = TypeVar("T")

_LP_NAME_SPLIT = re.compile(r"\s*[/\-]\s*")


@dataclass
class Snapshot:
    """Normalized amounts for one category; failed items are zero and listed in ``errors``."""

    amounts: Dict[str, float] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    reward_tokens: Dict[str, str] = field(default_factory=dict)

    def with_sentinels(self) -> Dict[str, Union[float, str]]:
        values: Dict[str, Union[float, str]] = dict(self.amounts)
        for item in self.errors:
            values[item] = FETCH_ERROR
        return values


ResourceSnapshot = Snapshot
LPSnapshot = Snapshot
RewardSnapshot = Snapshot


@dataclass
class AgentSnapshots:
    agent_id: str
    address: str
    resources: ResourceSnapshot
    liquidity: LPSnapshot
    rewards: RewardSnapshot


@dataclass
class AgentIntel:
    """Raw per-agent inputs for the profiler; failed balances carry the error sentinel."""

    agent_id: str
    address: str
    resource_balances: Dict[str, Union[float, str]]
    liquidity_positions: List[LiquidityPositionRecord] = field(default_factory=list)
    stake_positions: List[StakePositionRecord] = field(default_factory=list)
    victory_balance: Union[float, str] = 0.0


class SnapshotCollector:
    """Fetches balances, pool shares, pending rewards and positions for one agent.

    Every chain read goes through one semaphore, so at most ``concurrency`` RPC
    calls are in flight per collector regardless of category.
    """

    def __init__(
        self,
        registry: ContractRegistry,
        chain: ChainReader,
        positions: Optional[PositionSource] = None,
        topology: Optional[GameTopology] = None,
        concurrency: int = 8,
    ) -> None:
        self.registry = registry
        self.chain = chain
        self.positions = positions
        self.topology = topology or default_topology()
        self.concurrency = max(1, concurrency)
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._semaphore_loop: Optional[asyncio.AbstractEventLoop] = None

    def resolve(self, agent_id: str) -> str:
        return self.registry.resolve(agent_id)

    async def _limited(self, fn: Callable[..., Awaitable[T]], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self.concurrency)
            self._semaphore_loop = loop
        async with self._semaphore:
            return await fn(*args)

    async def _token_amount(self, token: str, holder: str) -> float:
        raw = await self._limited(self.chain.balance_of, token, holder)
        decimals = await self._decimals(token)
        return normalize_amount(raw, decimals)

    async def _decimals(self, token: str) -> int:
        try:
            return parse_int(await self._limited(self.chain.decimals, token), DEFAULT_DECIMALS)
        except FetchFailure as exc:
            logger.debug(f"decimals() failed for {token}, assuming {DEFAULT_DECIMALS}: {exc}")
            return DEFAULT_DECIMALS

    async def _collect_balances(self, holder: str, contracts: Mapping[str, str], label: str) -> Snapshot:
        items = list(contracts.items())

        async def _one(item: str, token: str) -> Tuple[str, Optional[float], Optional[str]]:
            try:
                return item, await self._token_amount(token, holder), None
            except FetchFailure as exc:
                return item, None, str(exc)

        results = await asyncio.gather(*(_one(item, token) for item, token in items))
        snapshot = Snapshot()
        for item, amount, error in results:
            if error is not None:
                logger.warning(f"[FETCH] {label} {item} failed for {holder}: {error}")
                snapshot.amounts[item] = 0.0
                snapshot.errors[item] = error
            else:
                snapshot.amounts[item] = amount or 0.0
        return snapshot

    async def collect_resources(self, holder: str) -> ResourceSnapshot:
        return await self._collect_balances(holder, self.registry.resources, "resource")

    async def collect_liquidity(self, holder: str) -> LPSnapshot:
        return await self._collect_balances(holder, self.registry.pairs, "pool share")

    async def collect_rewards(self, holder: str) -> RewardSnapshot:
        snapshot = Snapshot()

        async def _farm(farm_id: str, farm: str) -> None:
            try:
                reward_tokens = await self._limited(self.chain.get_reward_tokens, farm)
            except FetchFailure as exc:
                logger.warning(f"[FETCH] reward tokens for farm {farm_id} failed: {exc}")
                snapshot.amounts[farm_id] = 0.0
                snapshot.errors[farm_id] = str(exc)
                return

            symbols = {
                token: self.registry.symbol_for_address(token) or self.topology.base_currency
                for token in reward_tokens
            }
            symbol_counts = Counter(symbols.values())

            async def _earned(token: str) -> None:
                symbol = symbols[token]
                if len(reward_tokens) == 1:
                    key = farm_id
                elif symbol_counts[symbol] == 1:
                    key = f"{farm_id}:{symbol}"
                else:
                    # Unresolved tokens share the base-currency symbol.
                    key = f"{farm_id}:{normalize_address(token)}"
                snapshot.reward_tokens[key] = symbol
                try:
                    raw = await self._limited(self.chain.earned, farm, holder, token)
                    snapshot.amounts[key] = normalize_amount(raw, await self._decimals(token))
                except FetchFailure as exc:
                    logger.warning(f"[FETCH] earned() for farm {farm_id} token {symbol} failed: {exc}")
                    snapshot.amounts[key] = 0.0
                    snapshot.errors[key] = str(exc)

            await asyncio.gather(*(_earned(token) for token in reward_tokens))

        await asyncio.gather(*(_farm(farm_id, farm) for farm_id, farm in self.registry.farms.items()))
        return snapshot

    async def collect_snapshots(self, agent_id: str) -> AgentSnapshots:
        address = self.resolve(agent_id)
        t0 = time.perf_counter()
        resources, liquidity, rewards = await asyncio.gather(
            self.collect_resources(address),
            self.collect_liquidity(address),
            self.collect_rewards(address),
        )
        logger.info(f"[TIMING] collect_snapshots[{agent_id}]: {time.perf_counter() - t0:.2f}s")
        return AgentSnapshots(agent_id, address, resources, liquidity, rewards)

    async def collect_victory_balance(self, agent_id: str) -> float:
        """Victory-token balance; raises on address or fetch failure."""
        address = self.resolve(agent_id)
        token = self.registry.resource_address(self.topology.victory_token)
        return await self._token_amount(token, address)

    async def collect_liquidity_positions(self, holder: str) -> List[LiquidityPositionRecord]:
        if self.positions is None:
            return []
        try:
            rows = await self.positions.fetch_liquidity_positions(holder)
        except FetchFailure as exc:
            logger.warning(f"[FETCH] liquidity positions failed for {holder}: {exc}")
            return []
        records: List[LiquidityPositionRecord] = []
        for row in rows:
            try:
                record = LiquidityPositionRecord.from_indexer(self._with_pair_symbols(row))
            except ValidationError as exc:
                logger.warning(f"Skipping malformed liquidity position: {exc}")
                continue
            if record is not None:
                records.append(record)
        return records

    def _with_pair_symbols(self, row: Mapping[str, Any]) -> Mapping[str, Any]:
        pair_info = row.get("pair") or {}
        if pair_info.get("token0Symbol") and pair_info.get("token1Symbol"):
            return row
        address = row.get("pairAddress")
        pair = self.registry.pair_for_address(str(address)) if address else None
        if pair is None:
            return row
        token0, token1 = split_pair(pair)
        return {**row, "pair": {**pair_info, "token0Symbol": token0, "token1Symbol": token1}}

    async def collect_stake_positions(self, holder: str) -> List[StakePositionRecord]:
        if self.positions is None:
            return []
        try:
            rows = await self.positions.fetch_stake_positions(holder)
        except FetchFailure as exc:
            logger.warning(f"[FETCH] stake positions failed for {holder}: {exc}")
            return []
        records: List[StakePositionRecord] = []
        for row in rows:
            farm_id = self._farm_id_from_row(row)
            if farm_id is None:
                logger.warning(f"Skipping stake on unknown farm {row.get('farmAddress')}")
                continue
            try:
                records.append(
                    StakePositionRecord(
                        farm_id=farm_id,
                        farm_address=row.get("farmAddress"),
                        staked_amount=normalize_amount(parse_int(row.get("stakedAmount"))),
                        accrued_rewards=normalize_amount(parse_int(row.get("rewards"))),
                        reward_tokens=_reward_symbols(row),
                        penalty_end_time=parse_int(row.get("penaltyEndTime")) or None,
                        withdraw_penalty=(row.get("farm") or {}).get("withdrawPenalty"),
                    )
                )
            except ValidationError as exc:
                logger.warning(f"Skipping malformed stake position: {exc}")
        return records

    def _farm_id_from_row(self, row: Mapping[str, Any]) -> Optional[str]:
        address = row.get("farmAddress")
        if address:
            farm_id = self.registry.farm_for_address(str(address))
            if farm_id:
                return farm_id
        lp_name = str((row.get("farm") or {}).get("lpTokenName") or "").strip()
        if not lp_name:
            return None
        lp_name = re.sub(r"\s*LP$", "", lp_name, flags=re.IGNORECASE)
        tokens = [token for token in _LP_NAME_SPLIT.split(lp_name) if token]
        candidate = "/".join(tokens[:2]) if len(tokens) >= 2 else (tokens[0] if tokens else "")
        spec = self.topology.farm_spec(candidate) if candidate else None
        return spec.farm_id if spec else None

    async def collect_intel(self, agent_id: str) -> AgentIntel:
        address = self.resolve(agent_id)
        t0 = time.perf_counter()
        resources, liquidity_positions, stake_positions = await asyncio.gather(
            self.collect_resources(address),
            self.collect_liquidity_positions(address),
            self.collect_stake_positions(address),
        )
        logger.info(f"[TIMING] collect_intel[{agent_id}]: {time.perf_counter() - t0:.2f}s")
        balances = resources.with_sentinels()
        return AgentIntel(
            agent_id=agent_id,
            address=address,
            resource_balances=balances,
            liquidity_positions=liquidity_positions,
            stake_positions=stake_positions,
            victory_balance=balances.get(self.topology.victory_token, 0.0),
        )


def _reward_symbols(row: Mapping[str, Any]) -> List[str]:
    symbols: List[str] = []
    for state in row.get("rewardStates") or []:
        reward = (state or {}).get("reward") or {}
        symbol = reward.get("rewardTokenSymbol")
        if symbol and symbol not in symbols:
            symbols.append(str(symbol))
    return symbols


__all__ = [
    "AddressNotFound",
    "AgentIntel",
    "AgentSnapshots",
    "LPSnapshot",
    "ResourceSnapshot",
    "RewardSnapshot",
    "Snapshot",
    "SnapshotCollector",
]
