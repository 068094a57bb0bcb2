"""Deterministic synthetic daily OHLCV generator.

The series is a multiplicative random walk driven by :class:`SeededRandom`
seeded from the symbol, so a given (symbol, start, end) always yields the same
bars. A pre-roll segment of ``PRE_ROLL_DAYS`` calendar days before ``start`` is
included so that rolling indicators are already warm on the first requested day.
"""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Optional

from loguru import logger

from .config import PRE_ROLL_DAYS, SEED_SALT, SymbolProfile, get_profile
from .errors import InvalidRange
from .random_source import SeededRandom, symbol_seed
from .types import Bar

_MIN_PRICE = 0.01
_DRIFT_CENTER = 0.48
_RANGE_PCT = 0.015
_VOLUME_SCALE = 1_000_000


def generate_mock_bars(
    symbol: str,
    start: date,
    end: date,
    profile: Optional[SymbolProfile] = None,
    salt: str = SEED_SALT,
) -> list[Bar]:
    """Daily bars for ``[start - PRE_ROLL_DAYS, end]``, one per calendar day."""
    if end < start:
        raise InvalidRange("end date is before start date", "end", end)

    profile = profile if profile is not None else get_profile(symbol)
    profile.validate()

    seed = symbol_seed(symbol, salt)
    rng = SeededRandom(seed)
    n_days = (end - start).days + PRE_ROLL_DAYS
    first_day = start - timedelta(days=PRE_ROLL_DAYS)
    logger.debug(
        "[synthetic] symbol={} seed={} bars={} from {} to {}", symbol, seed, n_days + 1, first_day, end
    )

    price = float(profile.start_price)
    bars: list[Bar] = []
    for i in range(n_days + 1):
        r1 = rng.next()
        r2 = rng.next()
        r3 = rng.next()
        change = (r1 - _DRIFT_CENTER) * profile.volatility + profile.trend
        price = price * (1.0 + change)
        if price < _MIN_PRICE:
            price = _MIN_PRICE

        close = round(price, 2)
        bars.append(
            Bar(
                date=first_day + timedelta(days=i),
                open=close,
                high=round(price * (1.0 + r2 * _RANGE_PCT), 2),
                low=round(price * (1.0 - r3 * _RANGE_PCT), 2),
                close=close,
                volume=int(math.floor(rng.next() * _VOLUME_SCALE)),
            )
        )
    return bars
