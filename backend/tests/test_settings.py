from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from standings.settings import DEFAULT_CONTRACTS_PATH, Settings


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "STARKNET_RPC_URL",
        "STARKNET_BLOCK_ID",
        "INDEXER_URL",
        "CONTRACTS_PATH",
        "WEIGHTS_PATH",
        "FETCH_CONCURRENCY",
        "DEBUG_MODE",
        "CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.contracts_path == DEFAULT_CONTRACTS_PATH
    assert settings.weights_path is None
    assert settings.starknet_block_id == "latest"
    assert settings.fetch_concurrency == 8
    assert settings.debug_mode is False
    assert settings.cors_origins == ["*"]


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FETCH_CONCURRENCY", "0")
    monkeypatch.setenv("DEBUG_MODE", "True")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, ,http://b.test")
    monkeypatch.setenv("WEIGHTS_PATH", "/tmp/weights.json")

    settings = Settings.from_env()

    assert settings.fetch_concurrency == 1
    assert settings.debug_mode is True
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.weights_path == Path("/tmp/weights.json")
