"""Backtest runner utilities.

``run_backtest`` is the pure core: bars in, :class:`BacktestResult` out.
The ``run_*`` helpers pick a data source first; ``write_outputs`` is the
only place that touches the filesystem.
"""

from __future__ import annotations

import json
from datetime import date, timedelta
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger

from .config import BacktestConfig, PRE_ROLL_DAYS, SymbolProfile
from .data_provider import CsvProvider, JsonBarsProvider, YfinanceProvider, frame_to_bars
from .errors import EmptyDataset, InvalidRange
from .indicators import bollinger_bands
from .synthetic import generate_mock_bars
from .trader import simulate
from .types import BacktestResult, Bar


def _check_range(start: Optional[date], end: Optional[date]) -> None:
    if start is not None and end is not None and end < start:
        raise InvalidRange("end date is before start date", "end", end)


def run_backtest(
    bars: Sequence[Bar],
    cfg: BacktestConfig = BacktestConfig(),
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> BacktestResult:
    """Compute bands on the full series, then simulate ``[start, end]``.

    Bars before ``start`` only warm up the bands; they are never traded or reported.
    """
    cfg.validate()
    _check_range(start, end)
    if not bars:
        raise EmptyDataset("no bars supplied", "bars", 0)

    banded = bollinger_bands(bars, cfg.bollinger_period, cfg.bollinger_multiplier)
    if end is not None:
        banded = [b for b in banded if b.date <= end]
    result = simulate(banded, cfg.initial_capital, start=start, lot_size=cfg.lot_size)

    m = result.metrics
    logger.info(
        "[backtest] bars={} trades={} return={:.2f}% max_dd={:.2f}% win_rate={:.2f}%",
        len(result.equity_curve),
        m.total_trades,
        m.total_return_pct,
        m.max_drawdown_pct,
        m.win_rate_pct,
    )
    return result


def run_mock(
    symbol: str,
    start: date,
    end: date,
    cfg: BacktestConfig = BacktestConfig(),
    profile: Optional[SymbolProfile] = None,
) -> BacktestResult:
    """Backtest on the deterministic synthetic series for ``symbol``."""
    bars = generate_mock_bars(symbol, start, end, profile=profile)
    return run_backtest(bars, cfg, start=start, end=end)


def run_from_csv(
    csv_path: str | Path,
    symbol: str,
    cfg: BacktestConfig = BacktestConfig(),
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> BacktestResult:
    frame = CsvProvider().fetch(csv_path=csv_path, symbol=symbol)
    return run_backtest(frame_to_bars(frame), cfg, start=start, end=end)


def run_from_json(
    source: str | Path | list,
    symbol: str,
    cfg: BacktestConfig = BacktestConfig(),
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> BacktestResult:
    frame = JsonBarsProvider().fetch(source, symbol=symbol)
    return run_backtest(frame_to_bars(frame), cfg, start=start, end=end)


def run_from_yfinance(
    symbol: str,
    start: date,
    end: date,
    cfg: BacktestConfig = BacktestConfig(),
    include_warmup: bool = True,
) -> BacktestResult:
    """Convenience runner using yfinance."""
    _check_range(start, end)
    # Same warmup as the synthetic series: extra calendar days before `start`
    # so the bands are defined from the first requested day.
    fetch_start = start - timedelta(days=PRE_ROLL_DAYS) if include_warmup else start
    # yfinance treats `end` as exclusive
    fetch_end = end + timedelta(days=1)

    frame = YfinanceProvider().fetch(
        symbol=symbol,
        start=fetch_start.isoformat(),
        end=fetch_end.isoformat(),
    )
    return run_backtest(frame_to_bars(frame), cfg, start=start, end=end)


def write_outputs(result: BacktestResult, output_dir: str | Path, symbol: str) -> dict[str, Path]:
    """Write equity/trades CSVs and a metrics JSON; return their paths."""
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    tag = str(symbol).replace(".", "_")
    eq_path = out_dir / f"equity_{tag}.csv"
    tr_path = out_dir / f"trades_{tag}.csv"
    m_path = out_dir / f"metrics_{tag}.json"

    result.equity_frame().to_csv(eq_path, encoding="utf-8")
    result.trades_frame().to_csv(tr_path, index=False, encoding="utf-8")
    m_path.write_text(json.dumps(result.metrics.to_dict(), indent=2), encoding="utf-8")

    return {"equity": eq_path, "trades": tr_path, "metrics": m_path}
