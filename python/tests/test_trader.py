from __future__ import annotations

from datetime import date

import pytest

from bb_backtest.errors import EmptyDataset, InvalidParameters, MalformedBar
from bb_backtest.indicators import bollinger_bands
from bb_backtest.synthetic import generate_mock_bars
from bb_backtest.trader import BollingerTrader, simulate
from bb_backtest.types import BUY, SELL
from conftest import make_bars


def _run_scenario(scenario_bars):
    banded = bollinger_bands(scenario_bars, window=3, multiplier=1.0)
    return simulate(banded, initial_capital=10_000.0, lot_size=100)


def test_worked_scenario_trades(scenario_bars):
    result = _run_scenario(scenario_bars)

    assert [(t.date, t.side, t.price, t.shares) for t in result.trades] == [
        (date(2024, 1, 3), BUY, 99.0, 100),
        (date(2024, 1, 6), SELL, 103.0, 100),
        (date(2024, 1, 8), BUY, 95.0, 100),
    ]
    assert "lower band" in result.trades[0].reason
    assert "upper band" in result.trades[1].reason


def test_worked_scenario_equity_and_markers(scenario_bars):
    result = _run_scenario(scenario_bars)

    assert [p.equity for p in result.equity_curve] == [
        10000.0, 10000.0, 10000.0, 9900.0, 9800.0, 10400.0, 10400.0, 10400.0, 9900.0,
    ]
    assert [p.action for p in result.equity_curve] == [None, None, BUY, None, None, SELL, None, BUY, None]
    assert result.equity_curve[2].buy_marker == 99.0
    assert result.equity_curve[2].sell_marker is None
    assert result.equity_curve[5].sell_marker == 103.0
    assert result.equity_curve[5].buy_marker is None
    assert all(p.buy_marker is None and p.sell_marker is None for p in result.equity_curve[:2])


def test_worked_scenario_metrics(scenario_bars):
    m = _run_scenario(scenario_bars).metrics

    assert m.final_equity == pytest.approx(9900.0)
    assert m.total_return_pct == pytest.approx(-1.0)
    assert m.total_trades == 1
    assert m.win_rate_pct == pytest.approx(100.0)
    assert m.max_drawdown_pct == pytest.approx((10400.0 - 9800.0) / 10400.0 * 100.0)
    assert m.to_dict()["max_drawdown_pct"] == 5.77


def test_buy_is_checked_before_sell():
    # flat prices: bands collapse onto the close so both conditions hold
    banded = bollinger_bands(make_bars([10, 10, 10, 10]), window=3, multiplier=1.0)
    result = simulate(banded, initial_capital=1000.0)

    assert [(t.side, t.shares) for t in result.trades] == [(BUY, 100), (SELL, 100)]
    # equal price is not a win
    assert result.metrics.total_trades == 1
    assert result.metrics.win_rate_pct == 0.0


def test_losing_round_trip_not_counted_as_win():
    closes = [100, 100, 90, 90, 110, 80]
    banded = bollinger_bands(make_bars(closes), window=2, multiplier=0.5)
    result = simulate(banded, initial_capital=100_000.0)

    # day 1 buys 10 lots at 100 (all cash), day 3 sells at 90, day 5 rebuys 11 lots at 80
    assert [(t.side, t.price, t.shares) for t in result.trades] == [
        (BUY, 100.0, 1000),
        (SELL, 90.0, 1000),
        (BUY, 80.0, 1100),
    ]
    assert result.metrics.total_trades == 1
    assert result.metrics.win_rate_pct == 0.0


def test_no_buy_when_cash_below_one_lot(scenario_bars):
    banded = bollinger_bands(scenario_bars, window=3, multiplier=1.0)
    result = simulate(banded, initial_capital=8000.0)
    assert result.trades == ()
    assert all(p.equity == 8000.0 for p in result.equity_curve)


def test_start_date_drops_warmup_bars(scenario_bars):
    banded = bollinger_bands(scenario_bars, window=3, multiplier=1.0)
    result = simulate(banded, initial_capital=10_000.0, start=date(2024, 1, 4))

    assert result.equity_curve[0].date == date(2024, 1, 4)
    assert len(result.equity_curve) == 6
    # bands from the dropped bars are still used: buy on the first simulated day
    assert result.trades[0].date == date(2024, 1, 4)


def test_lot_and_cash_invariants_on_synthetic_data():
    bars = generate_mock_bars("601127", date(2022, 1, 1), date(2023, 12, 31))
    banded = bollinger_bands(bars, window=20, multiplier=2.0)
    result = simulate(banded, initial_capital=500_000.0, start=date(2022, 1, 1))

    assert result.trades
    cash, shares = 500_000.0, 0
    for t in result.trades:
        assert t.shares > 0 and t.shares % 100 == 0
        if t.side == BUY:
            cash -= t.shares * t.price
            shares += t.shares
        else:
            assert t.shares == shares
            cash += t.shares * t.price
            shares = 0
        assert cash >= 0.0


def test_rerun_is_identical():
    bars = generate_mock_bars("300750", date(2023, 1, 1), date(2023, 12, 31))
    banded = bollinger_bands(bars, window=20, multiplier=2.0)
    a = simulate(banded, initial_capital=500_000.0, start=date(2023, 1, 1))
    b = simulate(banded, initial_capital=500_000.0, start=date(2023, 1, 1))
    assert a == b


def test_empty_input_is_empty_dataset(scenario_bars):
    with pytest.raises(EmptyDataset):
        simulate([], initial_capital=10_000.0)

    banded = bollinger_bands(scenario_bars, window=3, multiplier=1.0)
    with pytest.raises(EmptyDataset):
        simulate(banded, initial_capital=10_000.0, start=date(2025, 1, 1))


@pytest.mark.parametrize("capital", [0.0, -1.0, float("nan")])
def test_non_positive_capital(scenario_bars, capital):
    banded = bollinger_bands(scenario_bars, window=3, multiplier=1.0)
    with pytest.raises(InvalidParameters):
        simulate(banded, initial_capital=capital)


def test_step_rejects_out_of_order_bars(scenario_bars):
    banded = bollinger_bands(scenario_bars, window=3, multiplier=1.0)
    trader = BollingerTrader(banded, initial_capital=10_000.0)
    trader.step(banded[1])
    with pytest.raises(MalformedBar):
        trader.step(banded[0])


def test_step_by_step_matches_full_run(scenario_bars):
    banded = bollinger_bands(scenario_bars, window=3, multiplier=1.0)
    trader = BollingerTrader(banded, initial_capital=10_000.0)
    for bar in banded:
        trader.step(bar)
        assert trader.state.cash >= 0.0
    assert trader.result() == simulate(banded, initial_capital=10_000.0)


def test_custom_lot_size(scenario_bars):
    banded = bollinger_bands(scenario_bars, window=3, multiplier=1.0)
    result = simulate(banded, initial_capital=10_000.0, lot_size=10)
    assert result.trades[0].shares == 100  # floor(10000 / 990) * 10
    assert all(t.shares % 10 == 0 for t in result.trades)
