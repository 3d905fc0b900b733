#!/usr/bin/env python3
"""
Compute every leaderboard once and write them as JSON.

This script:
1. Builds the standings engine from the environment
2. Computes the progression, victory-token and overall leaderboards
3. Optionally profiles every agent
4. Writes one JSON file per output into the output directory

Usage:
    python scripts/precompute_leaderboard.py
    python scripts/precompute_leaderboard.py --output data/precomputed
    python scripts/precompute_leaderboard.py --profiles
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from standings.chain_client import FetchFailure  # noqa: E402
from standings.contracts import AddressNotFound  # noqa: E402
from standings.engine import StandingsEngine  # noqa: E402
from standings.env import load_env  # noqa: E402
from standings.settings import Settings  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Pre-compute standings leaderboards.")
    parser.add_argument(
        "--output",
        type=Path,
        default=Path(__file__).resolve().parents[1] / "data" / "precomputed",
        help="Directory for the JSON files (default: backend/data/precomputed).",
    )
    parser.add_argument(
        "--profiles",
        action="store_true",
        help="Also write a strategy profile per agent.",
    )
    return parser.parse_args()


def _write(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, default=str)
    print(f"  wrote {path}")


async def precompute(engine: StandingsEngine, output: Path, profiles: bool) -> int:
    generated_at = datetime.now(timezone.utc).isoformat()
    leaderboards = {
        "leaderboard": engine.leaderboard,
        "victory": engine.victory_leaderboard,
        "overall": engine.overall_leaderboard,
    }
    failures = 0
    for name, compute in leaderboards.items():
        start_time = time.time()
        try:
            entries = await compute()
        except (AddressNotFound, FetchFailure) as exc:
            print(f"  {name}: FAILED {exc}")
            failures += 1
            continue
        _write(
            output / f"{name}.json",
            {"generated_at": generated_at, "entries": [entry.model_dump(mode="json") for entry in entries]},
        )
        print(f"  {name}: {len(entries)} agents in {time.time() - start_time:.1f}s")

    if profiles:
        for agent_id in engine.agent_ids:
            try:
                profile: Dict[str, Any] = await engine.profile(agent_id)
            except (AddressNotFound, FetchFailure) as exc:
                print(f"  profile {agent_id}: FAILED {exc}")
                failures += 1
                continue
            _write(output / "profiles" / f"{agent_id}.json", profile)
    return failures


async def main() -> int:
    load_env()
    args = _parse_args()
    settings = Settings.from_env()
    engine = StandingsEngine.from_settings(settings)
    print(f"Precomputing standings for {len(engine.agent_ids)} agents -> {args.output}")
    try:
        failures = await precompute(engine, args.output, args.profiles)
    finally:
        await engine.close()
    print(f"Done with {failures} failure(s).")
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
