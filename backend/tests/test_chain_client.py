from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from standings.chain_client import (
    ChainReadError,
    FetchFailure,
    StarknetRpcClient,
    decode_address_array,
    decode_u256,
    entry_point_selector,
)


def test_entry_point_selector_matches_starknet_keccak() -> None:
    assert entry_point_selector("transfer") == (
        "0x83afd3f4caedc6eebf44246fe54e38c95e3179a5ec9ea81740eca5b482d12e"
    )


def test_decode_u256_combines_limbs() -> None:
    assert decode_u256(["0x5", "0x0"]) == 5
    assert decode_u256(["0x0", "0x1"]) == 1 << 128
    with pytest.raises(ChainReadError):
        decode_u256([])


def test_decode_address_array() -> None:
    assert decode_address_array(["0x2", "0x00AB", "0xcd"]) == ["0xab", "0xcd"]
    assert decode_address_array([]) == []
    with pytest.raises(ChainReadError):
        decode_address_array(["0x3", "0x1"])


def _client_returning(bodies: List[Dict[str, Any]]) -> StarknetRpcClient:
    client = StarknetRpcClient("http://rpc.invalid")
    sent: List[Dict[str, Any]] = []

    async def _post(payload: Dict[str, Any]) -> Dict[str, Any]:
        sent.append(payload)
        return bodies.pop(0)

    client._post = _post  # type: ignore[method-assign]
    client.sent = sent  # type: ignore[attr-defined]
    return client


def test_balance_of_builds_starknet_call() -> None:
    client = _client_returning([{"jsonrpc": "2.0", "id": 1, "result": ["0x64", "0x0"]}])

    balance = asyncio.run(client.balance_of("0x0108", "0xa1"))

    assert balance == 100
    request = client.sent[0]["params"]["request"]  # type: ignore[attr-defined]
    assert client.sent[0]["method"] == "starknet_call"  # type: ignore[attr-defined]
    assert request["contract_address"] == "0x108"
    assert request["entry_point_selector"] == entry_point_selector("balance_of")
    assert request["calldata"] == ["0xa1"]


def test_decimals_are_cached() -> None:
    client = _client_returning([{"result": ["0x12"]}])

    first = asyncio.run(client.decimals("0x1"))
    second = asyncio.run(client.decimals("0x01"))

    assert first == second == 18
    assert len(client.sent) == 1  # type: ignore[attr-defined]


def test_rpc_error_is_a_fetch_failure() -> None:
    client = _client_returning([{"error": {"code": 40, "message": "Contract error"}}])

    with pytest.raises(FetchFailure):
        asyncio.run(client.earned("0x301", "0xa1", "0x104"))


def test_missing_rpc_url_is_rejected() -> None:
    with pytest.raises(ValueError):
        StarknetRpcClient("")
