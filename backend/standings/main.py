from __future__ import annotations

from functools import lru_cache
import logging
import time
from typing import Any, Awaitable, Dict, List, TypeVar

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from standings.chain_client import FetchFailure
from standings.contracts import AddressNotFound
from standings.engine import StandingsEngine
from standings.env import load_env
from standings.inspiration import APPLICABILITY_ORDER, MEDIUM
from standings.models import (
    AgentComparison,
    AgentProgressionRecord,
    AgentRankingEntry,
    OverallRankingEntry,
    VictoryRankingEntry,
)
from standings.settings import Settings

load_env()

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

settings = Settings.from_env()

app = FastAPI(title="Agent Standings API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

T = TypeVar("T")


@lru_cache
def get_engine() -> StandingsEngine:
    return StandingsEngine.from_settings(settings)


async def _run(label: str, call: Awaitable[T]) -> T:
    t0 = time.perf_counter()
    try:
        result = await call
    except AddressNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except FetchFailure as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    logger.info(f"[TIMING] {label}: {time.perf_counter() - t0:.2f}s")
    return result


@app.on_event("shutdown")
async def _close_engine() -> None:
    if get_engine.cache_info().currsize:
        await get_engine().close()


@app.get("/api/health")
async def health_check(engine: StandingsEngine = Depends(get_engine)) -> dict:
    return {
        "status": "healthy",
        "debug_mode": settings.debug_mode,
        "agents": len(engine.agent_ids),
        "weights_version": engine.config.version,
        "weights": engine.config.to_dict(),
        "fetch_concurrency": settings.fetch_concurrency,
    }


@app.get("/api/agents")
async def list_agents(engine: StandingsEngine = Depends(get_engine)) -> dict:
    return {"agents": engine.agent_ids}


@app.get("/api/leaderboard", response_model=List[AgentRankingEntry])
async def progression_leaderboard(engine: StandingsEngine = Depends(get_engine)) -> List[AgentRankingEntry]:
    return await _run("leaderboard", engine.leaderboard())


@app.get("/api/leaderboard/victory", response_model=List[VictoryRankingEntry])
async def victory_leaderboard(engine: StandingsEngine = Depends(get_engine)) -> List[VictoryRankingEntry]:
    return await _run("victory leaderboard", engine.victory_leaderboard())


@app.get("/api/leaderboard/overall", response_model=List[OverallRankingEntry])
async def overall_leaderboard(engine: StandingsEngine = Depends(get_engine)) -> List[OverallRankingEntry]:
    return await _run("overall leaderboard", engine.overall_leaderboard())


@app.get("/api/agents/{agent_id}/progression", response_model=AgentProgressionRecord)
async def agent_progression(
    agent_id: str, engine: StandingsEngine = Depends(get_engine)
) -> AgentProgressionRecord:
    return await _run(f"progression {agent_id}", engine.progression(agent_id))


@app.get("/api/compare", response_model=AgentComparison)
async def compare(
    agent_a: str = Query(...),
    agent_b: str = Query(...),
    engine: StandingsEngine = Depends(get_engine),
) -> AgentComparison:
    return await _run(f"compare {agent_a} vs {agent_b}", engine.compare(agent_a, agent_b))


@app.get("/api/compare/detailed", response_model=AgentComparison)
async def compare_detailed(
    agent_a: str = Query(...),
    agent_b: str = Query(...),
    engine: StandingsEngine = Depends(get_engine),
) -> AgentComparison:
    return await _run(
        f"detailed compare {agent_a} vs {agent_b}", engine.compare_detailed(agent_a, agent_b)
    )


@app.get("/api/agents/{agent_id}/profile")
async def agent_profile(agent_id: str, engine: StandingsEngine = Depends(get_engine)) -> Dict[str, Any]:
    return await _run(f"profile {agent_id}", engine.profile(agent_id))


@app.get("/api/agents/{agent_id}/counter-strategy")
async def counter_strategy(
    agent_id: str,
    min_applicability: str = Query(MEDIUM),
    engine: StandingsEngine = Depends(get_engine),
) -> Dict[str, Any]:
    if min_applicability not in APPLICABILITY_ORDER:
        raise HTTPException(
            status_code=422,
            detail=f"min_applicability must be one of {', '.join(APPLICABILITY_ORDER)}",
        )
    return await _run(
        f"counter-strategy {agent_id}", engine.counter_strategy(agent_id, min_applicability)
    )
