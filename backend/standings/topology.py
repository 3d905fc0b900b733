"""
Game topology: which resources form each production chain, which stage each
liquidity pair belongs to, and what each yield farm stakes and pays out.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from standings.weights import split_pair

# Liquidity stages, ordered from faucet resources to the victory token.
STAGE_BASE = "base"
STAGE_INTERMEDIATE = "intermediate"
STAGE_ADVANCED = "advanced"
STAGE_VICTORY = "victory"
LIQUIDITY_STAGES = (STAGE_BASE, STAGE_INTERMEDIATE, STAGE_ADVANCED, STAGE_VICTORY)

# Farm categories.
FARM_BASE = "base"
FARM_INTERMEDIATE = "intermediate"
FARM_VICTORY_PRODUCTION = "victory_production"
FARM_VICTORY_STAKING = "victory_staking"
FARM_CATEGORIES = (
    FARM_BASE,
    FARM_INTERMEDIATE,
    FARM_VICTORY_PRODUCTION,
    FARM_VICTORY_STAKING,
)


@dataclass(frozen=True)
class ProductionChain:
    name: str
    stages: Tuple[str, ...]  # base -> intermediate -> advanced


@dataclass(frozen=True)
class PairSpec:
    pair: str
    stage: str
    chains: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FarmSpec:
    farm_id: str  # staked pair ("wD/C") or single token ("He3")
    reward_token: str
    category: str
    chains: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GameTopology:
    base_currency: str
    victory_token: str
    chains: Tuple[ProductionChain, ...]
    pairs: Tuple[PairSpec, ...]
    farms: Tuple[FarmSpec, ...]
    resources: Tuple[str, ...] = field(default=())

    @property
    def chain_names(self) -> Tuple[str, ...]:
        return tuple(chain.name for chain in self.chains)

    def stage_index(self, symbol: str) -> Optional[int]:
        for chain in self.chains:
            if symbol in chain.stages:
                return chain.stages.index(symbol)
        return None

    def pair_spec(self, pair: str) -> Optional[PairSpec]:
        token_a, token_b = split_pair(pair)
        for spec in self.pairs:
            spec_a, spec_b = split_pair(spec.pair)
            if {spec_a, spec_b} == {token_a, token_b}:
                return spec
        return None

    def farm_spec(self, farm_id: str) -> Optional[FarmSpec]:
        if "/" not in farm_id:
            for spec in self.farms:
                if spec.farm_id == farm_id:
                    return spec
            return None
        tokens = set(split_pair(farm_id))
        for spec in self.farms:
            if "/" in spec.farm_id and set(split_pair(spec.farm_id)) == tokens:
                return spec
        return None

    def non_base_resources(self) -> List[str]:
        return [symbol for symbol in self.resources if symbol != self.base_currency]


def default_topology() -> GameTopology:
    carbon = ProductionChain("carbon", ("C", "GRP", "GPH"))
    neodymium = ProductionChain("neodymium", ("Nd", "Dy", "Y"))
    both = (carbon.name, neodymium.name)
    pairs = (
        PairSpec("wD/C", STAGE_BASE, (carbon.name,)),
        PairSpec("wD/Nd", STAGE_BASE, (neodymium.name,)),
        PairSpec("wD/GRP", STAGE_INTERMEDIATE, (carbon.name,)),
        PairSpec("wD/Dy", STAGE_INTERMEDIATE, (neodymium.name,)),
        PairSpec("GPH/Y", STAGE_ADVANCED, both),
        PairSpec("wD/He3", STAGE_VICTORY, ()),
    )
    farms = (
        FarmSpec("wD/C", "GRP", FARM_BASE, (carbon.name,)),
        FarmSpec("wD/Nd", "Dy", FARM_BASE, (neodymium.name,)),
        FarmSpec("wD/GRP", "GPH", FARM_INTERMEDIATE, (carbon.name,)),
        FarmSpec("wD/Dy", "Y", FARM_INTERMEDIATE, (neodymium.name,)),
        FarmSpec("GPH/Y", "He3", FARM_VICTORY_PRODUCTION, both),
        # The He3 pool farm pays wD but is only reachable once He3 flows.
        FarmSpec("wD/He3", "wD", FARM_VICTORY_PRODUCTION, ()),
        FarmSpec("He3", "He3", FARM_VICTORY_STAKING, ()),
    )
    return GameTopology(
        base_currency="wD",
        victory_token="He3",
        chains=(carbon, neodymium),
        pairs=pairs,
        farms=farms,
        resources=("wD", "Nd", "Dy", "Y", "C", "GRP", "GPH", "He3"),
    )
