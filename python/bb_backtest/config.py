"""Configuration objects.

Style rules:
- keep signatures stable (no alias chaos)
- prefer explicit field names
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from loguru import logger

from .errors import InvalidParameters

# Appended to the symbol before hashing. Changing it refreshes every synthetic series.
SEED_SALT = "2024"

# Calendar days generated before the requested start so the bands are warm on day one.
PRE_ROLL_DAYS = 50

LOT_SIZE = 100


@dataclass(frozen=True)
class SymbolProfile:
    """Random-walk parameters for the synthetic generator."""

    name: str
    start_price: float
    volatility: float
    trend: float
    # Exchange-qualified code, e.g. "600519.SH"
    remote_code: str = ""

    def validate(self) -> None:
        if not (math.isfinite(self.start_price) and self.start_price > 0):
            raise InvalidParameters("start_price must be positive", "start_price", self.start_price)
        if not (math.isfinite(self.volatility) and self.volatility >= 0):
            raise InvalidParameters("volatility must be non-negative", "volatility", self.volatility)
        if not math.isfinite(self.trend):
            raise InvalidParameters("trend must be finite", "trend", self.trend)


STOCK_PROFILES: dict[str, SymbolProfile] = {
    "600519": SymbolProfile("Kweichow Moutai", 1800.0, 0.015, 0.0002, "600519.SH"),
    "300750": SymbolProfile("CATL", 200.0, 0.035, 0.0005, "300750.SZ"),
    "000001": SymbolProfile("Ping An Bank", 15.0, 0.02, 0.0001, "000001.SZ"),
    "601127": SymbolProfile("Seres", 80.0, 0.05, 0.001, "601127.SH"),
}

# Unknown symbols fall back to this profile (the seed still comes from the symbol).
DEFAULT_SYMBOL = "600519"


def get_profile(symbol: str) -> SymbolProfile:
    return STOCK_PROFILES.get(str(symbol), STOCK_PROFILES[DEFAULT_SYMBOL])


def _is_count(x) -> bool:
    return math.isfinite(x) and float(x).is_integer() and x >= 1


@dataclass(frozen=True)
class BacktestConfig:
    """Backtest run configuration.

    Notes:
    - Recommended ranges are period 5-60 and multiplier 1-4; values outside
      them are accepted with a warning.
    """

    initial_capital: float = 500_000.0
    bollinger_period: int = 20
    bollinger_multiplier: float = 2.0
    lot_size: int = LOT_SIZE

    def validate(self) -> None:
        if not (math.isfinite(self.initial_capital) and self.initial_capital > 0):
            raise InvalidParameters("initial_capital must be positive", "initial_capital", self.initial_capital)
        if not _is_count(self.bollinger_period):
            raise InvalidParameters("bollinger_period must be an integer >= 1", "bollinger_period", self.bollinger_period)
        if not (math.isfinite(self.bollinger_multiplier) and self.bollinger_multiplier > 0):
            raise InvalidParameters(
                "bollinger_multiplier must be positive", "bollinger_multiplier", self.bollinger_multiplier
            )
        if not _is_count(self.lot_size):
            raise InvalidParameters("lot_size must be an integer >= 1", "lot_size", self.lot_size)

        if not 5 <= self.bollinger_period <= 60:
            logger.warning("[config] bollinger_period={} outside recommended range 5-60", self.bollinger_period)
        if not 1.0 <= self.bollinger_multiplier <= 4.0:
            logger.warning(
                "[config] bollinger_multiplier={} outside recommended range 1-4", self.bollinger_multiplier
            )

    @classmethod
    def from_params_dict(cls, d: dict) -> "BacktestConfig":
        """Create BacktestConfig from a dashboard-style params dict.

        Keys are typically camelCase (e.g., bollingerPeriod); snake_case field
        names are accepted too. Unknown keys are ignored.
        """
        mapping = {
            "initialCapital": "initial_capital",
            "bollingerPeriod": "bollinger_period",
            "bollingerMultiplier": "bollinger_multiplier",
            "lotSize": "lot_size",
        }
        fields = set(mapping.values())
        kwargs = {}
        for k, v in (d or {}).items():
            if k in mapping:
                kwargs[mapping[k]] = v
            elif k in fields:
                kwargs[k] = v

        for key, v in kwargs.items():
            try:
                num = float(v)
            except (TypeError, ValueError) as exc:
                raise InvalidParameters(f"{key} must be numeric", key, v) from exc
            # non-integral counts are left for validate() to reject
            if key in ("bollinger_period", "lot_size") and num.is_integer():
                num = int(num)
            kwargs[key] = num

        return cls(**kwargs)
