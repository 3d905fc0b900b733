from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Protocol

import aiohttp

from standings.chain_client import FetchFailure
from standings.contracts import normalize_address

logger = logging.getLogger(__name__)


class IndexerError(FetchFailure):
    pass


GET_GAME_SESSION_INDEX_BY_ADDRESS = """
query GetGameSessionIndexByAddress($address: String!) {
  gameSession(where: { address: { _eq: $address } }) {
    gameSessionIndex
  }
}
"""

GET_AGENT_LIQUIDITY_POSITIONS = """
query GetAgentLiquidityPositions($agentAddress: String!, $gameSessionId: Int!) {
  liquidityPosition(
    where: {
      agentAddress: { _eq: $agentAddress },
      pair: { gameSessionId: { _eq: $gameSessionId } }
    }
  ) {
    pairAddress
    liquidity
    depositsToken0
    depositsToken1
    withdrawalsToken0
    withdrawalsToken1
    pair {
      lpTokenName
      token0Symbol
      token1Symbol
      reserve0
      reserve1
      totalSupply
    }
  }
}
"""

GET_AGENT_STAKE_POSITIONS = """
query GetAgentStakePositions($agentAddress: String!, $gameSessionId: Int!) {
  agentStake(
    where: {
      agentAddress: { _eq: $agentAddress },
      farm: { gameSessionId: { _eq: $gameSessionId } }
    }
  ) {
    farmAddress
    stakedAmount
    rewards
    penaltyEndTime
    rewardPerTokenPaid
    farm {
      lpTokenName
      lpTokenAddress
      totalStaked
      penaltyDuration
      withdrawPenalty
    }
    rewardStates {
      reward {
        rewardTokenSymbol
      }
    }
  }
}
"""


class PositionSource(Protocol):
    async def fetch_liquidity_positions(self, agent_address: str) -> List[Dict[str, Any]]: ...

    async def fetch_stake_positions(self, agent_address: str) -> List[Dict[str, Any]]: ...


class IndexerClient:
    """GraphQL client for the game indexer (positions and session metadata)."""

    def __init__(
        self,
        url: str,
        game_session_address: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        if not url:
            raise ValueError("INDEXER_URL is required for indexer queries.")
        self.url = url
        self.game_session_address = game_session_address
        self.session = session
        self._own_session = session is None
        self.timeout_seconds = timeout_seconds
        self._game_session_id: Optional[int] = None
        self._session_lock = asyncio.Lock()

    async def execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if self.session is None:
            self.session = aiohttp.ClientSession()
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        payload = {"query": query, "variables": variables or {}}
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        try:
            async with self.session.post(
                self.url, json=payload, headers=headers, timeout=timeout
            ) as response:
                if response.status >= 400:
                    detail = (await response.text()).strip() or "No response body"
                    raise IndexerError(f"Indexer error: {response.status} - {detail}")
                try:
                    body = await response.json(content_type=None)
                except ValueError as exc:
                    raise IndexerError(f"Non-JSON response from indexer: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise IndexerError(f"Indexer error: timeout after {self.timeout_seconds:.0f}s") from exc
        except aiohttp.ClientError as exc:
            raise IndexerError(f"Indexer error: {exc}") from exc

        if not isinstance(body, dict):
            raise IndexerError(f"Unexpected indexer payload: {body!r}")
        if body.get("errors"):
            raise IndexerError(f"Indexer query failed: {json.dumps(body['errors'])}")
        return body.get("data") or {}

    async def game_session_id(self) -> int:
        async with self._session_lock:
            if self._game_session_id is None:
                if not self.game_session_address:
                    raise IndexerError("Game session contract address is not configured.")
                data = await self.execute(
                    GET_GAME_SESSION_INDEX_BY_ADDRESS,
                    {"address": normalize_address(self.game_session_address)},
                )
                rows = data.get("gameSession") or []
                index = rows[0].get("gameSessionIndex") if rows else None
                if index is None:
                    raise IndexerError(
                        f"No game session index found for address {self.game_session_address}"
                    )
                self._game_session_id = int(index)
        return self._game_session_id

    async def fetch_liquidity_positions(self, agent_address: str) -> List[Dict[str, Any]]:
        data = await self.execute(
            GET_AGENT_LIQUIDITY_POSITIONS,
            {
                "agentAddress": normalize_address(agent_address),
                "gameSessionId": await self.game_session_id(),
            },
        )
        rows = data.get("liquidityPosition")
        return rows if isinstance(rows, list) else []

    async def fetch_stake_positions(self, agent_address: str) -> List[Dict[str, Any]]:
        data = await self.execute(
            GET_AGENT_STAKE_POSITIONS,
            {
                "agentAddress": normalize_address(agent_address),
                "gameSessionId": await self.game_session_id(),
            },
        )
        rows = data.get("agentStake")
        return rows if isinstance(rows, list) else []

    async def close(self) -> None:
        if self._own_session and self.session:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> "IndexerClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
