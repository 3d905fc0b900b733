from __future__ import annotations

import asyncio
import itertools
import json
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional, Protocol, Sequence

import aiohttp
from web3 import Web3

from standings.contracts import normalize_address
from standings.units import parse_int

logger = logging.getLogger(__name__)

_SELECTOR_MASK = (1 << 250) - 1
_U128 = 1 << 128


class FetchFailure(RuntimeError):
    """A single balance, position or reward query failed."""


class ChainReadError(FetchFailure):
    pass


class ChainReader(Protocol):
    async def balance_of(self, token: str, address: str) -> int: ...

    async def decimals(self, token: str) -> int: ...

    async def get_reward_tokens(self, farm: str) -> List[str]: ...

    async def earned(self, farm: str, address: str, reward_token: str) -> int: ...


@lru_cache(maxsize=64)
def entry_point_selector(name: str) -> str:
    """Starknet selector: keccak256 of the entry point name, truncated to 250 bits."""
    digest = int.from_bytes(bytes(Web3.keccak(text=name)), "big")
    return hex(digest & _SELECTOR_MASK)


def decode_u256(felts: Sequence[Any]) -> int:
    if not felts:
        raise ChainReadError("Empty u256 result")
    low = parse_int(felts[0], default=-1)
    high = parse_int(felts[1], default=-1) if len(felts) > 1 else 0
    if low < 0 or high < 0:
        raise ChainReadError(f"Malformed u256 result: {list(felts)}")
    return low + high * _U128


def decode_address_array(felts: Sequence[Any]) -> List[str]:
    if not felts:
        return []
    length = parse_int(felts[0], default=-1)
    if length < 0 or len(felts) < length + 1:
        raise ChainReadError(f"Malformed array result: {list(felts)}")
    return [normalize_address(str(value)) for value in felts[1 : length + 1]]


class StarknetRpcClient:
    """Read-only Starknet JSON-RPC client over aiohttp."""

    def __init__(
        self,
        rpc_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_seconds: float = 30.0,
        block_id: str = "latest",
    ) -> None:
        if not rpc_url:
            raise ValueError("STARKNET_RPC_URL is required for chain reads.")
        self.rpc_url = rpc_url
        self.session = session
        self._own_session = session is None
        self.timeout_seconds = timeout_seconds
        self.block_id = block_id
        self._ids = itertools.count(1)
        self._decimals_cache: Dict[str, int] = {}

    async def call(
        self, contract_address: str, entrypoint: str, calldata: Optional[List[str]] = None
    ) -> List[str]:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": "starknet_call",
            "params": {
                "request": {
                    "contract_address": normalize_address(contract_address),
                    "entry_point_selector": entry_point_selector(entrypoint),
                    "calldata": [hex(parse_int(item)) for item in (calldata or [])],
                },
                "block_id": self.block_id,
            },
        }
        body = await self._post(payload)
        if "error" in body:
            raise ChainReadError(
                f"RPC error calling {entrypoint} on {contract_address}: {json.dumps(body['error'])}"
            )
        result = body.get("result")
        if not isinstance(result, list):
            raise ChainReadError(f"Unexpected RPC result for {entrypoint}: {result!r}")
        return result

    async def balance_of(self, token: str, address: str) -> int:
        return decode_u256(await self.call(token, "balance_of", [address]))

    async def decimals(self, token: str) -> int:
        key = normalize_address(token)
        if key not in self._decimals_cache:
            result = await self.call(token, "decimals")
            if not result:
                raise ChainReadError(f"Empty decimals result for {token}")
            self._decimals_cache[key] = parse_int(result[0], default=18)
        return self._decimals_cache[key]

    async def get_reward_tokens(self, farm: str) -> List[str]:
        return decode_address_array(await self.call(farm, "get_reward_tokens"))

    async def earned(self, farm: str, address: str, reward_token: str) -> int:
        return decode_u256(await self.call(farm, "earned", [address, reward_token]))

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if self.session is None:
            self.session = aiohttp.ClientSession()
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with self.session.post(self.rpc_url, json=payload, timeout=timeout) as response:
                if response.status >= 400:
                    detail = (await response.text()).strip() or "No response body"
                    raise ChainReadError(f"RPC error: {response.status} - {detail}")
                try:
                    return await response.json(content_type=None)
                except ValueError as exc:
                    raise ChainReadError(f"Non-JSON response from RPC: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise ChainReadError(f"RPC error: timeout after {self.timeout_seconds:.0f}s") from exc
        except aiohttp.ClientError as exc:
            raise ChainReadError(f"RPC error: {exc}") from exc

    async def close(self) -> None:
        if self._own_session and self.session:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> "StarknetRpcClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
