"""Run the Bollinger mean-reversion backtest for one symbol.

Examples:
    python -m scripts.run_bollinger_backtest --symbol 600519 --start 2023-01-01 --end 2023-12-31
    python -m scripts.run_bollinger_backtest --symbol 600519 --json bars.json --start 2023-01-01
    python -m scripts.run_bollinger_backtest --symbol 300750 --yfinance --period 30 --multiplier 2.5
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from pathlib import Path

from loguru import logger

from bb_backtest.backtest import run_from_csv, run_from_json, run_from_yfinance, run_mock, write_outputs
from bb_backtest.config import BacktestConfig
from bb_backtest.errors import BacktestError, InvalidParameters
from bb_backtest.logging_utils import setup_logging
from bb_backtest.metrics import cagr, max_drawdown


def _parse_date(s: str) -> date:
    try:
        return date.fromisoformat(s)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date {s!r} (expected YYYY-MM-DD)") from exc


def build_config(args: argparse.Namespace) -> BacktestConfig:
    params = {}
    if args.params:
        try:
            params = json.loads(Path(args.params).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise InvalidParameters(f"cannot read params file: {exc}", "params", args.params) from exc
        if not isinstance(params, dict):
            raise InvalidParameters("params file must hold a JSON object", "params", args.params)
    # explicit flags override the params file
    for key, value in (
        ("initial_capital", args.capital),
        ("bollinger_period", args.period),
        ("bollinger_multiplier", args.multiplier),
    ):
        if value is not None:
            params[key] = value
    return BacktestConfig.from_params_dict(params)


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser()
    p.add_argument("--symbol", type=str, default="600519")
    p.add_argument("--start", type=_parse_date, default="2023-01-01")
    p.add_argument("--end", type=_parse_date, default="2023-12-31")
    p.add_argument("--capital", type=float, default=None, help="Initial capital. Default 500000.")
    p.add_argument("--period", type=int, default=None, help="Bollinger window (recommended 5-60). Default 20.")
    p.add_argument("--multiplier", type=float, default=None, help="Band width in std devs (recommended 1-4). Default 2.")
    p.add_argument("--params", type=str, default=None, help="JSON file with initialCapital/bollingerPeriod/bollingerMultiplier.")
    src = p.add_mutually_exclusive_group()
    src.add_argument("--csv", type=str, default=None, help="OHLCV CSV path (Date,Open,High,Low,Close,Volume).")
    src.add_argument("--json", type=str, default=None, help="JSON array of {date,open,close,high,low,volume}.")
    src.add_argument("--yfinance", action="store_true", help="Download daily bars with yfinance.")
    p.add_argument("--output_dir", type=str, default="outputs")
    p.add_argument("--log_level", type=str, default="INFO")
    args = p.parse_args(argv)

    setup_logging(force=True, level=args.log_level)

    try:
        start, end = args.start, args.end
        cfg = build_config(args)
        if args.csv:
            result = run_from_csv(args.csv, args.symbol, cfg, start=start, end=end)
        elif args.json:
            result = run_from_json(Path(args.json), args.symbol, cfg, start=start, end=end)
        elif args.yfinance:
            result = run_from_yfinance(args.symbol, start, end, cfg)
        else:
            result = run_mock(args.symbol, start, end, cfg)
    except BacktestError as exc:
        logger.error("[cli] {}: {}", type(exc).__name__, exc)
        print(f"error: {type(exc).__name__}: {exc}", file=sys.stderr)
        return 2

    paths = write_outputs(result, args.output_dir, args.symbol)

    eq = result.equity_frame()["Equity"]
    for k, v in result.metrics.to_dict().items():
        print(f"{k}: {v}")
    print("peak_to_trough_drawdown_pct:", round(max_drawdown(eq) * 100.0, 2))
    print("cagr_pct:", round(cagr(eq) * 100.0, 2))
    for path in paths.values():
        print(path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
