from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fakes import build_registry
from standings.contracts import AddressNotFound, ContractRegistry, normalize_address
from standings.settings import DEFAULT_CONTRACTS_PATH
from standings.weights import ConfigError


def test_normalize_address() -> None:
    assert normalize_address("0x000ABC") == "0xabc"
    assert normalize_address("abc") == "0xabc"
    assert normalize_address("0x0") == "0x0"


def test_resolve_unknown_agent_raises() -> None:
    registry = build_registry()

    assert registry.resolve("alpha") == "0xa1"
    with pytest.raises(AddressNotFound):
        registry.resolve("nobody")


def test_lookups_in_both_directions() -> None:
    registry = build_registry()

    assert registry.pair_address("GRP/wD") == registry.pair_address("wD/GRP")
    assert registry.farm_address("He3") == "0x307"
    assert registry.symbol_for_address("0x0108") == "He3"
    assert registry.farm_for_address("0x305") == "GPH/Y"
    assert registry.pair_for_address("0x1") is None


def test_invalid_address_is_rejected() -> None:
    with pytest.raises(ConfigError):
        ContractRegistry.from_dict({"resources": {"C": "not-hex"}})


def test_example_address_book_loads() -> None:
    registry = ContractRegistry.from_file(DEFAULT_CONTRACTS_PATH)

    assert registry.available_agents()
    assert set(registry.resources) >= {"wD", "He3"}
    assert registry.core["game_session"].startswith("0x")
