from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from standings.weights import ConfigError, split_pair

_HEX_ADDRESS = re.compile(r"^0x[0-9a-f]+$")


class AddressNotFound(LookupError):
    pass


def normalize_address(address: str) -> str:
    """Lower-case, 0x-prefixed, without leading zeros ("0x0" for zero)."""
    value = str(address).strip().lower()
    if not value.startswith("0x"):
        value = f"0x{value}"
    normalized = "0x" + value[2:].lstrip("0")
    return "0x0" if normalized == "0x" else normalized


def _lookup_pair(table: Mapping[str, str], pair: str) -> Optional[str]:
    if pair in table:
        return table[pair]
    try:
        token_a, token_b = split_pair(pair)
    except ConfigError:
        return None
    return table.get(f"{token_b}/{token_a}")


@dataclass(frozen=True)
class ContractRegistry:
    """Address book for resources, pairs, farms, agents and core contracts."""

    resources: Mapping[str, str] = field(default_factory=dict)
    pairs: Mapping[str, str] = field(default_factory=dict)
    farms: Mapping[str, str] = field(default_factory=dict)
    agents: Mapping[str, str] = field(default_factory=dict)
    core: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "ContractRegistry":
        sections: Dict[str, Dict[str, str]] = {}
        for name in ("resources", "pairs", "farms", "agents", "core"):
            raw = payload.get(name) or {}
            if not isinstance(raw, dict):
                raise ConfigError(f"Contract section '{name}' must be an object.")
            section: Dict[str, str] = {}
            for key, address in raw.items():
                normalized = normalize_address(str(address))
                if not _HEX_ADDRESS.match(normalized):
                    raise ConfigError(f"Invalid address for {name}.{key}: {address}")
                section[str(key)] = normalized
            sections[name] = section
        return cls(**sections)

    @classmethod
    def from_file(cls, path: Path) -> "ContractRegistry":
        try:
            payload = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Unable to read contract addresses {path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigError("Contract address file must be a JSON object.")
        return cls.from_dict(payload)

    def resolve(self, agent_id: str) -> str:
        address = self.agents.get(agent_id)
        if not address:
            raise AddressNotFound(f"Agent {agent_id} not found")
        return address

    def available_agents(self) -> List[str]:
        return list(self.agents.keys())

    def resource_address(self, symbol: str) -> str:
        address = self.resources.get(symbol)
        if not address:
            raise AddressNotFound(f"Resource token {symbol} not found")
        return address

    def pair_address(self, pair: str) -> str:
        address = _lookup_pair(self.pairs, pair)
        if not address:
            raise AddressNotFound(f"Pair {pair} not found")
        return address

    def farm_address(self, farm_id: str) -> str:
        address = _lookup_pair(self.farms, farm_id) if "/" in farm_id else self.farms.get(farm_id)
        if not address:
            raise AddressNotFound(f"Farm {farm_id} not found")
        return address

    def symbol_for_address(self, address: str) -> Optional[str]:
        target = normalize_address(address)
        for symbol, resource in self.resources.items():
            if resource == target:
                return symbol
        return None

    def pair_for_address(self, address: str) -> Optional[str]:
        target = normalize_address(address)
        for pair, pair_address in self.pairs.items():
            if pair_address == target:
                return pair
        return None

    def farm_for_address(self, address: str) -> Optional[str]:
        target = normalize_address(address)
        for farm_id, farm_address in self.farms.items():
            if farm_address == target:
                return farm_id
        return None
