"""Performance metrics."""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

from .types import EquityPoint, Metrics


def compute_metrics(
    equity_curve: Sequence[EquityPoint],
    initial_capital: float,
    total_trades: int,
    win_count: int,
) -> Metrics:
    """Summary statistics of one simulation pass.

    ``max_drawdown_pct`` compares the global maximum and minimum equity of the
    whole curve, regardless of their order in time. See :func:`max_drawdown`
    for the running-peak definition.
    """
    final_equity = float(equity_curve[-1].equity) if equity_curve else float(initial_capital)
    total_return_pct = (final_equity - initial_capital) / initial_capital * 100.0

    max_dd_pct = 0.0
    if equity_curve:
        values = np.array([p.equity for p in equity_curve], dtype=float)
        max_eq = float(values.max())
        min_eq = float(values.min())
        if max_eq > 0:
            max_dd_pct = abs((max_eq - min_eq) / max_eq * 100.0)

    win_rate_pct = win_count / total_trades * 100.0 if total_trades > 0 else 0.0

    return Metrics(
        total_return_pct=float(total_return_pct),
        final_equity=final_equity,
        max_drawdown_pct=float(max_dd_pct),
        win_rate_pct=float(win_rate_pct),
        total_trades=int(total_trades),
    )


def max_drawdown(equity: pd.Series) -> float:
    """Maximum running-peak drawdown (as positive fraction)."""
    x = equity.astype(float).to_numpy()
    if len(x) == 0:
        return float("nan")
    peak = np.maximum.accumulate(x)
    dd = 1.0 - (x / np.maximum(peak, np.finfo(float).tiny))
    return float(np.nanmax(dd))


def cagr(equity: pd.Series) -> float:
    """CAGR from first to last point using calendar days."""
    if len(equity) < 2:
        return float("nan")
    start = pd.Timestamp(equity.index[0])
    end = pd.Timestamp(equity.index[-1])
    days = (end.date() - start.date()).days
    if days <= 0:
        return float("nan")
    total = float(equity.iloc[-1] / equity.iloc[0])
    return total ** (365.0 / days) - 1.0
