import logging
from datetime import datetime, timezone

import pytest

from autotrader.backtest.engine import BacktestEngine
from autotrader.backtest.metrics import calculate_metrics
from autotrader.brokers.mock_broker import MockBroker
from autotrader.core.trading_strategy import SignalType, TradingStrategy
from autotrader.data.portfolio import TradeAction, TradeQuantity, TradeRecord
from autotrader.risk.risk_manager import RiskManager
from autotrader.utils.config import RiskConfig


class AlwaysStrategy(TradingStrategy):
    def __init__(self, signal):
        super().__init__(name=f"always-{signal.value.lower()}")
        self.signal = signal
        self.window_sizes = []

    @property
    def required_bars(self):
        return 1

    def analyze(self, symbol, market_data, position=None):
        self.window_sizes.append(len(market_data))
        return self.decision(symbol, market_data, self.signal, "always")


def make_engine(**kwargs):
    return BacktestEngine(
        risk_manager=RiskManager(RiskConfig(risk_per_trade=0.02, stop_loss_pct=0.03, take_profit_pct=0.06)),
        initial_equity=10_000,
        window=50,
        min_bars=50,
        **kwargs,
    )


def test_window_is_window_plus_one_bars(make_bars):
    strategy = AlwaysStrategy(SignalType.HOLD)
    engine = make_engine()
    engine.run_backtest(strategy, {"BTC/USD": make_bars([100.0] * 60)})
    assert strategy.window_sizes == [51] * 10


def test_stop_loss_checked_before_strategy_then_end_of_data_close(make_bars):
    engine = make_engine()
    bars = make_bars([100.0] * 51 + [90.0])

    metrics = engine.run_backtest(AlwaysStrategy(SignalType.BUY), {"BTC/USD": bars})

    trades = engine.portfolio.trade_history
    assert [t.action for t in trades] == [TradeAction.BUY, TradeAction.CLOSE, TradeAction.BUY, TradeAction.CLOSE]
    assert trades[1].reason == "STOP_LOSS"
    assert trades[1].realized_pnl == pytest.approx(-20.0)
    assert trades[3].reason == "END_OF_DATA"
    assert trades[3].realized_pnl == pytest.approx(0.0)

    assert metrics.total_trades == 2
    assert metrics.final_equity == pytest.approx(9_980.0)
    assert metrics.total_return == pytest.approx(-0.2)


def test_sell_signal_closes_position(make_bars):
    class BuyThenSell(AlwaysStrategy):
        def analyze(self, symbol, market_data, position=None):
            signal = SignalType.SELL if position is not None else SignalType.BUY
            return self.decision(symbol, market_data, signal, "flip")

    engine = make_engine()
    engine.run_backtest(BuyThenSell(SignalType.HOLD), {"BTC/USD": make_bars([100.0] * 50 + [100.0, 102.0])})

    actions = [(t.action, t.reason) for t in engine.portfolio.trade_history]
    assert actions == [(TradeAction.BUY, "flip"), (TradeAction.SELL, "flip")]
    assert engine.portfolio.realized_pnl == pytest.approx(2.0 * 2)


def test_warns_when_window_shorter_than_strategy_needs(make_bars, caplog):
    from autotrader.strategies import create_strategy

    strategy = create_strategy("trend-pullback")
    with caplog.at_level(logging.WARNING, logger="autotrader.backtest"):
        metrics = make_engine().run_backtest(strategy, {"BTC/USD": make_bars([100.0] * 60)})

    assert metrics.total_trades == 0
    assert f"{strategy.required_bars}개 봉이 필요" in caplog.text


def test_no_window_warning_when_strategy_fits(make_bars, caplog):
    with caplog.at_level(logging.WARNING, logger="autotrader.backtest"):
        make_engine().run_backtest(AlwaysStrategy(SignalType.HOLD), {"BTC/USD": make_bars([100.0] * 60)})
    assert "필요" not in caplog.text


def test_short_history_symbol_is_skipped(make_bars):
    engine = make_engine()
    metrics = engine.run_backtest(AlwaysStrategy(SignalType.BUY), {"BTC/USD": make_bars([100.0] * 49)})
    assert engine.portfolio.trade_history == []
    assert metrics.total_trades == 0
    assert metrics.final_equity == 10_000


def test_run_from_broker_caches_bars(make_bars):
    class RecordingStore:
        def __init__(self):
            self.calls = []

        def upsert_bars(self, symbol, timeframe, bars):
            self.calls.append((symbol, timeframe, len(bars)))
            return len(bars)

    broker = MockBroker()
    broker.load_bars("BTC/USD", make_bars([100.0] * 60))
    store = RecordingStore()
    strategy = AlwaysStrategy(SignalType.HOLD)

    make_engine().run_from_broker(strategy, broker, ["BTC/USD"], limit=55, timeframe="5Min", bar_store=store)

    assert store.calls == [("BTC/USD", "5Min", 55)]
    assert len(strategy.window_sizes) == 5


def test_generate_report_before_run():
    assert "error" in make_engine().generate_report()


def _close(pnl):
    return TradeRecord(
        symbol="BTC/USD",
        action=TradeAction.SELL,
        price=100.0,
        quantity=TradeQuantity.exact(1.0),
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        realized_pnl=pnl,
    )


def test_metrics_from_closing_trades():
    trades = [_close(10.0), _close(-5.0), _close(20.0), _close(-1.0), _close(-2.0)]
    curve = [100.0, 110.0, 105.0, 125.0, 124.0, 122.0]

    metrics = calculate_metrics(trades, curve, 100.0)

    assert metrics.total_trades == 5
    assert metrics.winning_trades == 2
    assert metrics.win_rate == pytest.approx(40.0)
    assert metrics.avg_profit == pytest.approx(15.0)
    assert metrics.avg_loss == pytest.approx(-8.0 / 3)
    assert metrics.profit_factor == pytest.approx(30.0 / 8.0)
    assert metrics.max_consecutive_wins == 1
    assert metrics.max_consecutive_losses == 2
    assert metrics.max_drawdown == pytest.approx(5.0 / 110.0 * 100)
    assert metrics.total_return == pytest.approx(22.0)
    assert "백테스트 성과 리포트" in metrics.summary()


def test_metrics_ignore_buy_records():
    buy = TradeRecord(
        symbol="BTC/USD",
        action=TradeAction.BUY,
        price=100.0,
        quantity=TradeQuantity.exact(1.0),
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    metrics = calculate_metrics([buy], [100.0], 100.0)
    assert metrics.total_trades == 0
    assert metrics.win_rate == 0.0
