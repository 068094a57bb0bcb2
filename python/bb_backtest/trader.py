"""Single-symbol Bollinger mean-reversion trader.

Long-only, whole lots, one decision per bar at the close:
- buy as many lots as cash allows when the close touches the lower band
- sell the whole position when the close touches the upper band
- buy is evaluated before sell; at most one action per bar
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

from loguru import logger

from .config import LOT_SIZE
from .errors import EmptyDataset, InvalidParameters, MalformedBar
from .metrics import compute_metrics
from .types import BUY, SELL, BacktestResult, BandedBar, EquityPoint, Trade


def _check_account(initial_capital: float, lot_size: int) -> None:
    if not (math.isfinite(initial_capital) and initial_capital > 0):
        raise InvalidParameters("initial_capital must be positive", "initial_capital", initial_capital)
    if int(lot_size) != lot_size or lot_size < 1:
        raise InvalidParameters("lot_size must be an integer >= 1", "lot_size", lot_size)


@dataclass
class _PositionState:
    cash: float = 0.0
    shares: int = 0

    last_buy_price: float = float("nan")
    sell_count: int = 0
    win_count: int = 0


class BollingerTrader:
    """Stateful trader that walks a banded bar sequence once.

    Use :func:`simulate` for the one-shot functional interface.
    """

    def __init__(
        self,
        bars: Sequence[BandedBar],
        initial_capital: float,
        lot_size: int = LOT_SIZE,
    ):
        _check_account(initial_capital, lot_size)
        self.bars = list(bars)
        self.initial_capital = float(initial_capital)
        self.lot_size = int(lot_size)

        self.state = _PositionState(cash=self.initial_capital)
        self.trade_log: List[Trade] = []
        self.equity_curve: List[EquityPoint] = []

    # ---------- public API ----------

    def run_full_backtest(self) -> BacktestResult:
        """Process every bar in order and return the frozen result."""
        for bar in self.bars:
            self.step(bar)
        return self.result()

    def step(self, bar: BandedBar) -> None:
        """Process one bar: at most one trade, then one equity point."""
        if self.equity_curve and bar.date <= self.equity_curve[-1].date:
            raise MalformedBar("bars must be processed in ascending date order", "date", bar.date)

        price = float(bar.close)
        if not bar.has_bands:
            self._append_equity(bar.date, price)
            return

        action: Optional[str] = None
        if price <= bar.lower_band and self.state.cash >= price * self.lot_size:
            if self._buy(bar.date, price):
                action = BUY
        elif price >= bar.upper_band and self.state.shares > 0:
            self._sell(bar.date, price)
            action = SELL

        self._append_equity(
            bar.date,
            price,
            action=action,
            buy_marker=price if action == BUY else None,
            sell_marker=price if action == SELL else None,
        )

    def result(self) -> BacktestResult:
        metrics = compute_metrics(
            self.equity_curve,
            self.initial_capital,
            total_trades=self.state.sell_count,
            win_count=self.state.win_count,
        )
        return BacktestResult(
            equity_curve=tuple(self.equity_curve),
            trades=tuple(self.trade_log),
            metrics=metrics,
        )

    # ---------- internal helpers ----------

    def _buy(self, ts: date, price: float) -> bool:
        lot_cost = price * self.lot_size
        lots = math.floor(self.state.cash / lot_cost)
        # float division can round up by one lot
        if lots * lot_cost > self.state.cash:
            lots -= 1
        qty = lots * self.lot_size
        if qty <= 0:
            return False

        self.state.shares += qty
        self.state.cash -= qty * price
        self.state.last_buy_price = price
        self.trade_log.append(
            Trade(date=ts, side=BUY, price=price, shares=qty, reason=f"price ({price:g}) touched lower band")
        )
        logger.debug("[trader] {} BUY {} @ {} cash_after={}", ts, qty, price, self.state.cash)
        return True

    def _sell(self, ts: date, price: float) -> None:
        qty = self.state.shares
        # NaN compares False: no prior buy means no win
        if price > self.state.last_buy_price:
            self.state.win_count += 1
        self.state.sell_count += 1

        self.state.cash += qty * price
        self.state.shares = 0
        self.trade_log.append(
            Trade(date=ts, side=SELL, price=price, shares=qty, reason=f"price ({price:g}) touched upper band")
        )
        logger.debug("[trader] {} SELL {} @ {} cash_after={}", ts, qty, price, self.state.cash)

    def _append_equity(
        self,
        ts: date,
        price: float,
        action: Optional[str] = None,
        buy_marker: Optional[float] = None,
        sell_marker: Optional[float] = None,
    ) -> None:
        equity = self.state.cash + self.state.shares * price
        self.equity_curve.append(
            EquityPoint(
                date=ts,
                close=price,
                equity=float(equity),
                action=action,
                buy_marker=buy_marker,
                sell_marker=sell_marker,
            )
        )


def simulate(
    bars: Sequence[BandedBar],
    initial_capital: float,
    start: Optional[date] = None,
    lot_size: int = LOT_SIZE,
) -> BacktestResult:
    """Run the trader over ``bars``, dropping bars dated before ``start``."""
    _check_account(initial_capital, lot_size)
    window = [b for b in bars if start is None or b.date >= start]
    if not window:
        raise EmptyDataset("no bars to simulate", "start", start)

    trader = BollingerTrader(window, initial_capital, lot_size=lot_size)
    result = trader.run_full_backtest()
    logger.debug(
        "[trader] simulated {} bars, {} trades, final_equity={}",
        len(result.equity_curve),
        len(result.trades),
        result.metrics.final_equity,
    )
    return result
