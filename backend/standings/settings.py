from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

DEFAULT_CONTRACTS_PATH = Path(__file__).resolve().parents[1] / "data" / "contracts.example.json"


def _bool_env(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _list_env(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [value.strip() for value in raw.split(",") if value.strip()]


def _path_env(name: str) -> Optional[Path]:
    value = os.getenv(name)
    if not value:
        return None
    return Path(value)


@dataclass(frozen=True)
class Settings:
    starknet_rpc_url: str
    starknet_block_id: str
    indexer_url: str
    game_session_address: str
    contracts_path: Path
    weights_path: Optional[Path]
    fetch_concurrency: int
    rpc_timeout_seconds: float
    debug_mode: bool
    cors_origins: List[str]

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            starknet_rpc_url=os.getenv("STARKNET_RPC_URL", ""),
            starknet_block_id=os.getenv("STARKNET_BLOCK_ID", "latest").strip(),
            indexer_url=os.getenv("INDEXER_URL", ""),
            game_session_address=os.getenv("GAME_SESSION_ADDRESS", ""),
            contracts_path=_path_env("CONTRACTS_PATH") or DEFAULT_CONTRACTS_PATH,
            weights_path=_path_env("WEIGHTS_PATH"),
            fetch_concurrency=max(1, int(os.getenv("FETCH_CONCURRENCY", "8"))),
            rpc_timeout_seconds=float(os.getenv("RPC_TIMEOUT_SECONDS", "30")),
            debug_mode=_bool_env("DEBUG_MODE"),
            cors_origins=_list_env("CORS_ORIGINS") or ["*"],
        )
