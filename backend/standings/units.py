"""
Numeric policy for on-chain amounts.

Raw balances are non-negative base-unit integers. They are normalized once, at
the collector boundary, by exact decimal division and then held as IEEE
doubles; every score, percentage and ranking downstream works on those floats.
"""
from __future__ import annotations

import logging
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 18
FETCH_ERROR = "error"


def normalize_amount(raw: int, decimals: int = DEFAULT_DECIMALS) -> float:
    if raw <= 0:
        return 0.0
    return float(Decimal(int(raw)).scaleb(-int(decimals)))


def to_base_units(amount: float, decimals: int = DEFAULT_DECIMALS) -> int:
    if amount <= 0:
        return 0
    return int(Decimal(repr(float(amount))).scaleb(int(decimals)).to_integral_value())


def parse_int(value: Any, default: int = 0) -> int:
    """Parse an integer from an external payload (decimal or 0x-hex string)."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(Decimal(text))
    except (ValueError, InvalidOperation):
        logger.debug(f"Malformed integer {value!r}; using {default}")
        return default


def parse_amount(value: Any, default: float = 0.0) -> float:
    """Parse a normalized amount; malformed or negative values become ``default``."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(Decimal(str(value).strip()))
        except (ValueError, InvalidOperation):
            logger.debug(f"Malformed amount {value!r}; using {default}")
            return default
    if not math.isfinite(number) or number < 0:
        return default
    return number


def amount_or_none(value: Any) -> Optional[float]:
    """Numeric amount, or None for the fetch-error sentinel."""
    if value == FETCH_ERROR:
        return None
    return parse_amount(value)
