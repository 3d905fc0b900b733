from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple


class ConfigError(ValueError):
    pass


WEIGHTS_VERSION = "2025.1"

# Resource weights grow with production depth; He3 is the victory token.
DEFAULT_TOKEN_WEIGHTS: Dict[str, float] = {
    "wD": 1.0,
    "C": 2.0,
    "Nd": 2.0,
    "GRP": 5.0,
    "Dy": 5.0,
    "GPH": 12.0,
    "Y": 12.0,
    "He3": 100.0,
}

DEFAULT_POOL_WEIGHTS: Dict[str, float] = {
    "wD/C": 3.0,
    "wD/Nd": 3.0,
    "wD/GRP": 8.0,
    "wD/Dy": 8.0,
    "GPH/Y": 30.0,
    "wD/He3": 120.0,
}

# Overall-score blends: (victory token, path score, activity).
COMPARISON_BLEND: Tuple[float, float, float] = (0.6, 0.25, 0.15)
RANKING_BLEND: Tuple[float, float, float] = (0.5, 0.3, 0.2)

VICTORY_TOKEN = "He3"
VICTORY_THRESHOLD = 7_000_000.0


def pair_key(token_a: str, token_b: str) -> str:
    return f"{token_a}/{token_b}"


def split_pair(pair: str) -> Tuple[str, str]:
    parts = [part.strip() for part in pair.split("/")]
    if len(parts) != 2 or not all(parts):
        raise ConfigError(f"Invalid pair identifier: {pair!r}")
    return parts[0], parts[1]


_NUMERIC_SETTINGS = (
    "default_token_weight",
    "default_pool_weight",
    "farm_multiplier_divisor",
    "victory_threshold",
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _require_positive(name: str, value: Any) -> None:
    if not _is_number(value) or value <= 0:
        raise ConfigError(f"{name} must be a positive number, got {value!r}.")


def _coerce_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}.") from exc


@dataclass(frozen=True)
class WeightConfig:
    """Canonical scoring configuration injected into the engine.

    Pool weights are keyed by "A/B"; lookups accept either ordering.
    Untracked tokens fall back to ``default_token_weight`` and untracked pools
    to ``default_pool_weight``.
    """

    version: str = WEIGHTS_VERSION
    token_weights: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_TOKEN_WEIGHTS)
    )
    pool_weights: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_POOL_WEIGHTS)
    )
    default_token_weight: float = 1.0
    default_pool_weight: float = 1.0
    farm_multiplier_divisor: float = 10.0
    base_currency: str = "wD"
    victory_token: str = VICTORY_TOKEN
    victory_threshold: float = VICTORY_THRESHOLD
    comparison_blend: Tuple[float, float, float] = COMPARISON_BLEND
    ranking_blend: Tuple[float, float, float] = RANKING_BLEND

    def __post_init__(self) -> None:
        for symbol, weight in self.token_weights.items():
            _require_positive(f"Token weight for {symbol}", weight)
        for pair, weight in self.pool_weights.items():
            split_pair(pair)
            _require_positive(f"Pool weight for {pair}", weight)
        for name in _NUMERIC_SETTINGS:
            _require_positive(name, getattr(self, name))
        for name in ("comparison_blend", "ranking_blend"):
            blend = getattr(self, name)
            if len(blend) != 3:
                raise ConfigError(f"{name} must have exactly three weights.")
            for weight in blend:
                if not _is_number(weight) or weight < 0:
                    raise ConfigError(f"{name} weights must be non-negative numbers, got {weight!r}.")

    def token_weight(self, symbol: str) -> float:
        return float(self.token_weights.get(symbol, self.default_token_weight))

    def pool_weight(self, pair: str) -> float:
        if pair in self.pool_weights:
            return float(self.pool_weights[pair])
        try:
            token_a, token_b = split_pair(pair)
        except ConfigError:
            return float(self.default_pool_weight)
        reverse = pair_key(token_b, token_a)
        return float(self.pool_weights.get(reverse, self.default_pool_weight))

    def farm_multiplier(self, reward_symbol: str) -> float:
        return 1 + self.token_weight(reward_symbol) / self.farm_multiplier_divisor

    def with_overrides(self, overrides: Mapping[str, Any]) -> "WeightConfig":
        changes: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in self.__dataclass_fields__:
                raise ConfigError(f"Unknown weight setting: {key}")
            if key in ("token_weights", "pool_weights"):
                if not isinstance(value, Mapping):
                    raise ConfigError(f"{key} must be an object of name -> weight.")
                merged = dict(getattr(self, key))
                merged.update({str(k): _coerce_float(f"{key}[{k}]", v) for k, v in value.items()})
                value = merged
            elif key in ("comparison_blend", "ranking_blend"):
                if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
                    raise ConfigError(f"{key} must be a list of three weights.")
                value = tuple(_coerce_float(key, item) for item in value)
            elif key in _NUMERIC_SETTINGS:
                value = _coerce_float(key, value)
            changes[key] = value
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "WeightConfig":
        return cls().with_overrides(payload)

    @classmethod
    def from_file(cls, path: Optional[Path]) -> "WeightConfig":
        if path is None:
            return cls()
        try:
            payload = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Unable to read weight config {path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigError("Weight config must be a JSON object.")
        return cls.from_dict(payload)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "token_weights": dict(self.token_weights),
            "pool_weights": dict(self.pool_weights),
            "default_token_weight": self.default_token_weight,
            "default_pool_weight": self.default_pool_weight,
            "farm_multiplier_divisor": self.farm_multiplier_divisor,
            "base_currency": self.base_currency,
            "victory_token": self.victory_token,
            "victory_threshold": self.victory_threshold,
            "comparison_blend": list(self.comparison_blend),
            "ranking_blend": list(self.ranking_blend),
        }
