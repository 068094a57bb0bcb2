"""Shared types.

The guiding principle is to keep the runtime objects small and explicit:
every record is a frozen dataclass created once and never mutated.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Optional

import pandas as pd

BUY = "BUY"
SELL = "SELL"


@dataclass(frozen=True)
class Bar:
    """Daily OHLCV bar."""

    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int


@dataclass(frozen=True)
class BandedBar:
    """A bar plus Bollinger bands. Bands are None until the window is full."""

    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int

    mid_band: Optional[float] = None
    upper_band: Optional[float] = None
    lower_band: Optional[float] = None

    @classmethod
    def from_bar(
        cls,
        bar: Bar,
        mid: Optional[float] = None,
        upper: Optional[float] = None,
        lower: Optional[float] = None,
    ) -> "BandedBar":
        return cls(
            date=bar.date,
            open=bar.open,
            high=bar.high,
            low=bar.low,
            close=bar.close,
            volume=bar.volume,
            mid_band=mid,
            upper_band=upper,
            lower_band=lower,
        )

    @property
    def has_bands(self) -> bool:
        return self.upper_band is not None and self.lower_band is not None


@dataclass(frozen=True)
class Trade:
    """A single executed trade."""

    date: date
    side: str  # 'BUY'/'SELL'
    price: float
    shares: int  # positive multiple of the lot size
    reason: str


@dataclass(frozen=True)
class EquityPoint:
    """End-of-day portfolio valuation at the close."""

    date: date
    close: float
    equity: float
    action: Optional[str] = None  # None/'BUY'/'SELL'
    buy_marker: Optional[float] = None
    sell_marker: Optional[float] = None


@dataclass(frozen=True)
class Metrics:
    total_return_pct: float
    final_equity: float
    max_drawdown_pct: float
    win_rate_pct: float
    total_trades: int

    def to_dict(self, ndigits: int = 2) -> dict:
        """Rounded copy for display."""
        return {
            "total_return_pct": round(self.total_return_pct, ndigits),
            "final_equity": round(self.final_equity, ndigits),
            "max_drawdown_pct": round(self.max_drawdown_pct, ndigits),
            "win_rate_pct": round(self.win_rate_pct, ndigits),
            "total_trades": int(self.total_trades),
        }


@dataclass(frozen=True)
class BacktestResult:
    equity_curve: tuple[EquityPoint, ...]
    trades: tuple[Trade, ...]
    metrics: Metrics

    def equity_frame(self) -> pd.DataFrame:
        """Equity curve as a DataFrame indexed by Date."""
        df = pd.DataFrame([asdict(p) for p in self.equity_curve])
        if df.empty:
            return pd.DataFrame(columns=["Close", "Equity", "Action", "BuyMarker", "SellMarker"])
        df["date"] = pd.to_datetime(df["date"])
        df = df.rename(
            columns={
                "date": "Date",
                "close": "Close",
                "equity": "Equity",
                "action": "Action",
                "buy_marker": "BuyMarker",
                "sell_marker": "SellMarker",
            }
        )
        return df.set_index("Date")

    def trades_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [asdict(t) for t in self.trades],
            columns=["date", "side", "price", "shares", "reason"],
        )
