"""Indicator computation utilities.

Bollinger bands on the CLOSE series: rolling mean plus/minus a multiple of the
rolling population standard deviation (divisor ``window``, not ``window - 1``).
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
import pandas as pd

from .errors import InvalidParameters
from .types import Bar, BandedBar


def _check_params(window: int, multiplier: float) -> None:
    if int(window) != window or window < 1:
        raise InvalidParameters("window must be an integer >= 1", "window", window)
    if not (math.isfinite(multiplier) and multiplier > 0):
        raise InvalidParameters("multiplier must be positive", "multiplier", multiplier)


def rolling_bands(close: np.ndarray, window: int, multiplier: float) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """(mid, upper, lower) arrays aligned with ``close``; NaN for the first window-1 slots."""
    _check_params(window, multiplier)
    window = int(window)
    x = np.asarray(close, dtype=float)
    n = len(x)
    mid = np.full(n, np.nan)
    upper = np.full(n, np.nan)
    lower = np.full(n, np.nan)
    if n < window:
        return mid, upper, lower

    win = np.lib.stride_tricks.sliding_window_view(x, window)
    m = win.mean(axis=1)
    std = np.sqrt(((win - m[:, None]) ** 2).mean(axis=1))
    mid[window - 1:] = m
    upper[window - 1:] = m + multiplier * std
    lower[window - 1:] = m - multiplier * std
    return mid, upper, lower


def bollinger_bands(bars: Sequence[Bar], window: int = 20, multiplier: float = 2.0) -> list[BandedBar]:
    """Attach mid/upper/lower bands to each bar (None until the window is full)."""
    mid, upper, lower = rolling_bands(np.array([b.close for b in bars], dtype=float), window, multiplier)
    out: list[BandedBar] = []
    for i, bar in enumerate(bars):
        if i < window - 1:
            out.append(BandedBar.from_bar(bar))
        else:
            out.append(BandedBar.from_bar(bar, float(mid[i]), float(upper[i]), float(lower[i])))
    return out


def bollinger_frame(df: pd.DataFrame, window: int = 20, multiplier: float = 2.0) -> pd.DataFrame:
    """Copy of an OHLCV frame with midBand/upperBand/lowerBand columns."""
    out = df.copy()
    mid, upper, lower = rolling_bands(out["Close"].astype(float).to_numpy(), window, multiplier)
    out["midBand"] = mid
    out["upperBand"] = upper
    out["lowerBand"] = lower
    return out
