from __future__ import annotations

from datetime import date, timedelta

import pytest
from loguru import logger

from bb_backtest.types import Bar

SCENARIO_CLOSES = [100, 101, 99, 98, 97, 103, 108, 95, 90]


def make_bars(closes, first_day: date = date(2024, 1, 1)) -> list[Bar]:
    return [
        Bar(
            date=first_day + timedelta(days=i),
            open=float(c),
            high=float(c),
            low=float(c),
            close=float(c),
            volume=1000,
        )
        for i, c in enumerate(closes)
    ]


@pytest.fixture(autouse=True)
def _drop_log_sinks():
    # sinks added by the CLI point at per-test captured streams
    yield
    logger.remove()


@pytest.fixture
def scenario_bars() -> list[Bar]:
    return make_bars(SCENARIO_CLOSES)
