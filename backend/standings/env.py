from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List

from dotenv import load_dotenv

BACKEND_DIR = Path(__file__).resolve().parents[1]

ENV_DEFAULTS: Dict[str, str] = {
    "STARKNET_BLOCK_ID": "latest",
    "FETCH_CONCURRENCY": "8",
    "RPC_TIMEOUT_SECONDS": "30",
}


def load_env() -> List[Path]:
    """Load backend/.env then the repo-root .env; returns the files that were read."""
    loaded = [path for path in (BACKEND_DIR / ".env", BACKEND_DIR.parent / ".env") if path.exists()]
    for path in loaded:
        load_dotenv(path)
    if not loaded:
        load_dotenv()

    for name, value in ENV_DEFAULTS.items():
        os.environ.setdefault(name, value)
    return loaded
