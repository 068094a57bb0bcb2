"""Data providers (CSV / JSON import / yfinance) and a standardized OHLCV schema.

Providers only normalize. Everything they return goes through
:func:`frame_to_bars` before it reaches the engine.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Sequence

import pandas as pd
from loguru import logger

from .config import STOCK_PROFILES
from .errors import EmptyDataset, MalformedBar
from .types import Bar

_REQUIRED = ["Open", "High", "Low", "Close", "Volume"]
_COMPACT_DATE = re.compile(r"^\d{8}$")


@dataclass(frozen=True)
class OhlcvFrame:
    """Standard OHLCV dataframe wrapper."""

    df: pd.DataFrame  # columns: Open, High, Low, Close, Volume; index: datetime
    symbol: str


def _standardize_ohlcv_columns(df: pd.DataFrame) -> pd.DataFrame:
    # yfinance can return MultiIndex columns depending on options/version.
    # We standardize to a simple 1-level column index.
    if isinstance(df.columns, pd.MultiIndex):
        df = df.copy()
        # Common yfinance layout: (field, ticker)
        tickers = list(dict.fromkeys(df.columns.get_level_values(-1)))
        if len(tickers) == 1:
            df.columns = df.columns.get_level_values(0)
        else:
            df = df.xs(tickers[0], axis=1, level=-1, drop_level=True)

    rename_map = {}
    for col in df.columns:
        c = str(col).strip().lower()
        if c == "open":
            rename_map[col] = "Open"
        elif c == "high":
            rename_map[col] = "High"
        elif c == "low":
            rename_map[col] = "Low"
        elif c == "close":
            rename_map[col] = "Close"
        elif c in {"adj close", "adjclose"}:
            # Keep adjusted close separate to avoid duplicate "Close" columns.
            rename_map[col] = "AdjClose"
        elif c in {"volume", "vol"}:
            rename_map[col] = "Volume"
    df = df.rename(columns=rename_map).copy()

    # If provider only has AdjClose, use it as Close.
    if "Close" not in df.columns and "AdjClose" in df.columns:
        df = df.rename(columns={"AdjClose": "Close"})
    if "Close" in df.columns and "AdjClose" in df.columns:
        df = df.drop(columns=["AdjClose"])

    missing = [c for c in _REQUIRED if c not in df.columns]
    if missing:
        raise MalformedBar("missing required OHLCV columns", "columns", missing)

    df = df[_REQUIRED].apply(pd.to_numeric, errors="coerce").astype(float)
    dup = df.index.duplicated(keep=False)
    if dup.any():
        raise MalformedBar("duplicate bar dates", "date", sorted({str(ts) for ts in df.index[dup]}))
    return df.sort_index()


def normalize_date(value: Any) -> date:
    """Calendar date from ISO text, compact ``YYYYMMDD`` digits or a timestamp."""
    text = str(value).strip()
    try:
        if _COMPACT_DATE.match(text):
            return pd.to_datetime(text, format="%Y%m%d").date()
        ts = pd.Timestamp(value)
    except (ValueError, TypeError) as exc:
        raise MalformedBar("unparseable date", "date", value) from exc
    if pd.isna(ts):
        raise MalformedBar("missing date", "date", value)
    return ts.date()


def frame_to_bars(frame: OhlcvFrame) -> list[Bar]:
    """Convert a standardized frame into validated, strictly ascending bars."""
    bars: list[Bar] = []
    for ts, row in frame.df.iterrows():
        d = normalize_date(ts)
        for field in ("Open", "High", "Low", "Close"):
            v = float(row[field])
            if not math.isfinite(v) or v <= 0:
                raise MalformedBar(f"bad {field.lower()} price on {d}", field.lower(), v)
        vol = float(row["Volume"])
        if not math.isfinite(vol) or vol < 0:
            raise MalformedBar(f"bad volume on {d}", "volume", vol)
        if bars and d <= bars[-1].date:
            raise MalformedBar("dates must be strictly increasing", "date", d)

        bars.append(
            Bar(
                date=d,
                open=float(row["Open"]),
                high=float(row["High"]),
                low=float(row["Low"]),
                close=float(row["Close"]),
                volume=int(vol),
            )
        )
    return bars


def bars_to_frame(bars: Sequence[Bar], symbol: str) -> OhlcvFrame:
    df = pd.DataFrame(
        {
            "Open": [b.open for b in bars],
            "High": [b.high for b in bars],
            "Low": [b.low for b in bars],
            "Close": [b.close for b in bars],
            "Volume": [b.volume for b in bars],
        },
        index=pd.DatetimeIndex([pd.Timestamp(b.date) for b in bars], name="Date"),
    )
    return OhlcvFrame(df=df, symbol=symbol)


def remote_symbol(symbol: str) -> str:
    """Yahoo ticker for a registry symbol (Shanghai ``.SH`` becomes ``.SS``)."""
    profile = STOCK_PROFILES.get(str(symbol))
    if profile is None or not profile.remote_code:
        return str(symbol)
    code, _, exchange = profile.remote_code.partition(".")
    return f"{code}.SS" if exchange == "SH" else profile.remote_code


class YfinanceProvider:
    """Fetch daily data from yfinance."""

    def fetch(
        self,
        symbol: str,
        start: str,
        end: str,
        interval: str = "1d",
        auto_adjust: bool = False,
    ) -> OhlcvFrame:
        import yfinance as yf  # local import to keep dependency optional in some environments

        ticker = remote_symbol(symbol)
        logger.info("[data] yfinance download ticker={} start={} end={}", ticker, start, end)
        df = yf.download(
            tickers=ticker,
            start=start,
            end=end,
            interval=interval,
            auto_adjust=auto_adjust,
            progress=False,
        )
        if df is None or len(df) == 0:
            raise EmptyDataset("yfinance returned empty data", "symbol", ticker)

        df = _standardize_ohlcv_columns(df)
        return OhlcvFrame(df=df, symbol=symbol)


class CsvProvider:
    """Load OHLCV data from a CSV file."""

    def fetch(self, csv_path: str | Path, symbol: str, datetime_col: str = "Date") -> OhlcvFrame:
        path = Path(csv_path)
        if not path.exists():
            raise FileNotFoundError(str(path))

        df = pd.read_csv(path)
        if datetime_col not in df.columns:
            # try common alternatives
            for cand in ["date", "trade_date", "Datetime", "datetime", "timestamp"]:
                if cand in df.columns:
                    datetime_col = cand
                    break

        if datetime_col not in df.columns:
            raise MalformedBar("CSV must contain a date column", "columns", list(df.columns))

        df.index = pd.DatetimeIndex([pd.Timestamp(normalize_date(v)) for v in df[datetime_col]])
        df = df.drop(columns=[datetime_col])
        df = _standardize_ohlcv_columns(df)
        logger.debug("[data] csv {} rows={}", path, len(df))
        return OhlcvFrame(df=df, symbol=symbol)


class JsonBarsProvider:
    """Load the manual-import format: a JSON array of
    ``{date, open, close, high, low, volume}`` objects.

    ``source`` may be JSON text, a path to a JSON file, or an already parsed list.
    """

    def fetch(self, source: str | Path | list, symbol: str) -> OhlcvFrame:
        records = source
        if isinstance(source, Path):
            records = source.read_text(encoding="utf-8")
        elif isinstance(source, str) and not source.lstrip().startswith(("[", "{")):
            # anything that is not an existing file is parsed as JSON text
            path = Path(source)
            if len(source) < 4096 and path.is_file():
                records = path.read_text(encoding="utf-8")
        if isinstance(records, str):
            try:
                records = json.loads(records)
            except json.JSONDecodeError as exc:
                raise MalformedBar("invalid JSON", "json", str(exc)) from exc

        if not isinstance(records, list):
            raise MalformedBar("expected a JSON array of bars", "json", type(records).__name__)
        if not records:
            raise EmptyDataset("JSON import contains no bars", "symbol", symbol)
        for i, rec in enumerate(records):
            if not isinstance(rec, dict) or "date" not in rec:
                raise MalformedBar("bar record must be an object with a date", f"records[{i}]", rec)

        df = pd.DataFrame.from_records(records)
        df.index = pd.DatetimeIndex([pd.Timestamp(normalize_date(v)) for v in df["date"]])
        df = df.drop(columns=["date"])
        df = _standardize_ohlcv_columns(df)
        return OhlcvFrame(df=df, symbol=symbol)
