from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

sys.path.append(str(Path(__file__).resolve().parents[1]))

from standings.chain_client import entry_point_selector  # noqa: E402
from standings.contracts import ContractRegistry, normalize_address  # noqa: E402
from standings.env import load_env  # noqa: E402
from standings.indexer_client import (  # noqa: E402
    GET_AGENT_LIQUIDITY_POSITIONS,
    GET_AGENT_STAKE_POSITIONS,
    GET_GAME_SESSION_INDEX_BY_ADDRESS,
)
from standings.settings import Settings  # noqa: E402


@dataclass(frozen=True)
class GraphQLTest:
    name: str
    query: str
    variables: Optional[Dict[str, Any]] = None
    root: str = ""


def _post_json(url: str, payload: Dict[str, Any]) -> requests.Response:
    return requests.post(
        url,
        json=payload,
        headers={"Content-Type": "application/json", "Accept": "application/json"},
        timeout=30,
    )


def _evaluate_graphql(response: requests.Response, root: str) -> str:
    if response.status_code != 200:
        return f"FAIL {response.status_code} {response.text[:200].strip()}"
    try:
        payload = response.json()
    except ValueError:
        return f"FAIL non-JSON {response.text[:200].strip()}"
    if payload.get("errors"):
        return f"FAIL errors={json.dumps(payload['errors'])[:200]}"
    rows = (payload.get("data") or {}).get(root)
    count = len(rows) if isinstance(rows, list) else 0
    return f"PASS 200 rows={count}"


def _session_index(url: str, session_address: str) -> Optional[int]:
    response = _post_json(
        url,
        {
            "query": GET_GAME_SESSION_INDEX_BY_ADDRESS,
            "variables": {"address": normalize_address(session_address)},
        },
    )
    if response.status_code != 200:
        return None
    rows = ((response.json() or {}).get("data") or {}).get("gameSession") or []
    if not rows or rows[0].get("gameSessionIndex") is None:
        return None
    return int(rows[0]["gameSessionIndex"])


def _probe_indexer(url: str, session_address: str, agent_address: str) -> List[str]:
    results = []
    session_id = _session_index(url, session_address)
    if session_id is None:
        return [f"game session {session_address}: FAIL (no index returned)"]
    results.append(f"game session {session_address}: PASS index={session_id}")

    variables = {"agentAddress": normalize_address(agent_address), "gameSessionId": session_id}
    tests = [
        GraphQLTest("liquidity positions", GET_AGENT_LIQUIDITY_POSITIONS, variables, "liquidityPosition"),
        GraphQLTest("stake positions", GET_AGENT_STAKE_POSITIONS, variables, "agentStake"),
    ]
    for test in tests:
        response = _post_json(url, {"query": test.query, "variables": test.variables})
        results.append(f"{test.name}: {_evaluate_graphql(response, test.root)}")
    return results


def _probe_rpc(url: str, token: str, agent_address: str) -> List[str]:
    results = []
    response = _post_json(url, {"jsonrpc": "2.0", "id": 1, "method": "starknet_blockNumber", "params": []})
    if response.status_code != 200:
        return [f"block number: FAIL {response.status_code} {response.text[:200].strip()}"]
    results.append(f"block number: PASS {response.json().get('result')}")

    payload = {
        "jsonrpc": "2.0",
        "id": 2,
        "method": "starknet_call",
        "params": {
            "request": {
                "contract_address": token,
                "entry_point_selector": entry_point_selector("balance_of"),
                "calldata": [agent_address],
            },
            "block_id": os.getenv("STARKNET_BLOCK_ID", "latest"),
        },
    }
    response = _post_json(url, payload)
    body = response.json() if response.status_code == 200 else {}
    if "result" in body:
        results.append(f"balance_of: PASS result={body['result']}")
    else:
        results.append(f"balance_of: FAIL {json.dumps(body.get('error') or response.text[:200])}")
    return results


def main() -> int:
    load_env()
    parser = argparse.ArgumentParser(description="Probe the game indexer and Starknet RPC.")
    parser.add_argument("--agent", default=None, help="Agent id to probe (default: first agent).")
    parser.add_argument("--indexer-only", action="store_true")
    parser.add_argument("--rpc-only", action="store_true")
    args = parser.parse_args()

    settings = Settings.from_env()
    registry = ContractRegistry.from_file(settings.contracts_path)
    agents = registry.available_agents()
    if not agents:
        print(f"No agents listed in {settings.contracts_path}.")
        return 1
    agent_id = args.agent or agents[0]
    agent_address = registry.resolve(agent_id)

    if not args.rpc_only:
        session_address = settings.game_session_address or registry.core.get("game_session", "")
        if not settings.indexer_url or not session_address:
            print("Indexer probes: SKIP (set INDEXER_URL and GAME_SESSION_ADDRESS)")
        else:
            print(f"Indexer probes ({settings.indexer_url}, agent {agent_id}):")
            for line in _probe_indexer(settings.indexer_url, session_address, agent_address):
                print(f"- {line}")

    if not args.indexer_only:
        if not settings.starknet_rpc_url:
            print("RPC probes: SKIP (set STARKNET_RPC_URL)")
        else:
            print(f"RPC probes ({settings.starknet_rpc_url}):")
            token = registry.resource_address("He3")
            for line in _probe_rpc(settings.starknet_rpc_url, token, agent_address):
                print(f"- {line}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
