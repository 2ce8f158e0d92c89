import math

import pytest

from autotrader.core.broker_api import Position, PositionSide
from autotrader.core.predictor import Predictor
from autotrader.core.trading_strategy import SignalType
from autotrader.strategies import (
    STRATEGY_REGISTRY,
    create_strategy,
    list_strategies,
    strategy_from_config,
)
from autotrader.strategies import rsi_strategy
from autotrader.strategies._crossover import crossed_above, crossed_below
from autotrader.strategies.hybrid_predictive_strategy import HybridPredictiveStrategy
from autotrader.strategies.trend_pullback_strategy import TrendPullbackStrategy
from autotrader.utils.config import StrategyConfig


def long_position(symbol="BTC/USD", entry=100.0, qty=1.0):
    return Position(symbol, PositionSide.LONG, qty, entry, entry)


class FixedPredictor(Predictor):
    def __init__(self, value):
        self.value = value

    def predict(self, features):
        return self.value


# ─── 레지스트리 ────────────────────────────────────────────────────────────

def test_registry_has_all_strategies():
    assert list_strategies() == sorted(
        ["rsi", "ema-crossover", "macd", "trend-pullback", "hybrid-predictive"]
    )


def test_create_strategy_unknown_name_raises():
    with pytest.raises(ValueError):
        create_strategy("does-not-exist")


def test_create_strategy_merges_default_params():
    strategy = create_strategy("rsi", params={"period": 21})
    assert strategy.params["period"] == 21
    assert strategy.params["oversold"] == 30.0
    assert strategy.required_bars == 23


def test_strategy_from_config_attaches_model_predictor(tmp_path):
    config = StrategyConfig(name="hybrid-predictive", model_path=str(tmp_path / "missing.json"))
    strategy = strategy_from_config(config)
    assert isinstance(strategy, STRATEGY_REGISTRY["hybrid-predictive"])
    assert strategy.predictor.loaded is False


# ─── 교차 판정 ────────────────────────────────────────────────────────────

@pytest.mark.parametrize("prev_a,prev_b,now_a,now_b", [
    (1.0, 2.0, 3.0, 2.5),
    (2.0, 2.0, 3.0, 2.0),
    (3.0, 2.0, 1.0, 2.0),
    (1.0, 1.0, 1.0, 1.0),
])
def test_crossed_above_is_mirror_of_crossed_below(prev_a, prev_b, now_a, now_b):
    assert crossed_above(prev_a, prev_b, now_a, now_b) == crossed_below(prev_b, prev_a, now_b, now_a)


def test_crossings_are_mutually_exclusive():
    assert crossed_above(1, 2, 3, 2)
    assert not crossed_below(1, 2, 3, 2)
    assert not crossed_above(1, 1, 1, 1)
    assert not crossed_below(1, 1, 1, 1)


# ─── 공통 ─────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("name", ["rsi", "ema-crossover", "macd", "trend-pullback", "hybrid-predictive"])
def test_short_history_holds(name, make_bars):
    strategy = create_strategy(name)
    bars = make_bars([100.0] * (strategy.required_bars - 1))
    decision = strategy.analyze("BTC/USD", bars)
    assert decision.signal == SignalType.HOLD
    assert decision.reason == "Not enough data"


def test_decision_carries_last_bar_price_and_time(make_bars):
    bars = make_bars([100.0] * 30 + [105.0])
    decision = create_strategy("ema-crossover").analyze("BTC/USD", bars)
    assert decision.price == 105.0
    assert decision.timestamp == bars.iloc[-1]["time"].to_pydatetime()
    assert decision.symbol == "BTC/USD"


# ─── EMA 교차 ─────────────────────────────────────────────────────────────

def test_ema_crossover_fires_once_on_flat_then_rising(make_bars):
    closes = [100.0] * 30 + [100.0 + i for i in range(1, 31)]
    bars = make_bars(closes)
    strategy = create_strategy("ema-crossover")

    buys = []
    for n in range(strategy.required_bars, len(bars) + 1):
        decision = strategy.analyze("BTC/USD", bars.iloc[:n])
        assert decision.signal != SignalType.SELL
        if decision.signal == SignalType.BUY:
            buys.append(n - 1)
    assert buys == [30]


def test_ema_crossover_sell_on_flat_then_falling(make_bars):
    bars = make_bars([100.0] * 30 + [99.0])
    decision = create_strategy("ema-crossover").analyze("BTC/USD", bars)
    assert decision.signal == SignalType.SELL
    assert decision.metrics["ema_fast"] < decision.metrics["ema_slow"]


def test_ema_crossover_flat_series_holds(make_bars):
    decision = create_strategy("ema-crossover").analyze("BTC/USD", make_bars([100.0] * 40))
    assert decision.signal == SignalType.HOLD
    assert decision.reason == "No crossover"


# ─── RSI ──────────────────────────────────────────────────────────────────

def fake_rsi_by_length(values_by_length):
    def _rsi(closes, period=14):
        return values_by_length.get(len(closes))
    return _rsi


def test_rsi_buy_only_on_entering_oversold(monkeypatch, make_bars):
    bars = make_bars([100.0] * 22)
    strategy = create_strategy("rsi")
    monkeypatch.setattr(rsi_strategy, "rsi", fake_rsi_by_length({19: 40.0, 20: 25.0, 21: 35.0, 22: 32.0}))

    assert strategy.analyze("BTC/USD", bars.iloc[:20]).signal == SignalType.BUY
    assert strategy.analyze("BTC/USD", bars.iloc[:21]).signal == SignalType.HOLD
    assert strategy.analyze("BTC/USD", bars.iloc[:22]).signal == SignalType.HOLD


def test_rsi_sell_on_entering_overbought(monkeypatch, make_bars):
    bars = make_bars([100.0] * 20)
    monkeypatch.setattr(rsi_strategy, "rsi", fake_rsi_by_length({19: 65.0, 20: 75.0}))
    decision = create_strategy("rsi").analyze("BTC/USD", bars)
    assert decision.signal == SignalType.SELL
    assert decision.metrics["rsi"] == 75.0


def test_rsi_extreme_value_keeps_firing_while_outside_band(monkeypatch, make_bars):
    bars = make_bars([100.0] * 20)
    monkeypatch.setattr(rsi_strategy, "rsi", fake_rsi_by_length({19: 20.0, 20: 18.0}))
    decision = create_strategy("rsi").analyze("BTC/USD", bars)
    assert decision.signal == SignalType.BUY
    assert "oversold" in decision.reason


def test_rsi_real_series_saturated_uptrend_sells(make_bars):
    decision = create_strategy("rsi").analyze("BTC/USD", make_bars(range(1, 40)))
    assert decision.signal == SignalType.SELL
    assert decision.metrics["rsi"] == 100.0


# ─── MACD ─────────────────────────────────────────────────────────────────

def test_macd_bullish_crossover(make_bars):
    bars = make_bars([100.0] * 40 + [101.0])
    decision = create_strategy("macd").analyze("BTC/USD", bars)
    assert decision.signal == SignalType.BUY
    assert decision.metrics["histogram"] > 0


def test_macd_bearish_crossover(make_bars):
    bars = make_bars([100.0] * 40 + [99.0])
    assert create_strategy("macd").analyze("BTC/USD", bars).signal == SignalType.SELL


def test_macd_required_bars():
    assert create_strategy("macd").required_bars == 26 + 9 + 1


# ─── Trend-Pullback ───────────────────────────────────────────────────────

PULLBACK_PARAMS = {"fast_ma": 5, "slow_ma": 10, "pullback_ma": 3, "atr_period": 3, "stop_loss_atr": 1.5}


def pullback_bars(make_bars):
    closes = [100.0 + i for i in range(30)] + [126.0]
    opens = list(closes[:-1]) + [125.0]
    return make_bars(closes, opens=opens)


def test_trend_pullback_buy_on_bullish_pullback(make_bars):
    strategy = TrendPullbackStrategy(PULLBACK_PARAMS)
    assert strategy.required_bars == 11
    decision = strategy.analyze("BTC/USD", pullback_bars(make_bars))
    assert decision.signal == SignalType.BUY
    assert decision.metrics["fast_ma"] > decision.metrics["slow_ma"]


def test_trend_pullback_requires_bullish_candle(make_bars):
    bars = pullback_bars(make_bars)
    bars.loc[bars.index[-1], "open"] = 127.0
    decision = TrendPullbackStrategy(PULLBACK_PARAMS).analyze("BTC/USD", bars)
    assert decision.signal == SignalType.HOLD


def test_trend_pullback_hard_stop_with_position(make_bars):
    decision = TrendPullbackStrategy(PULLBACK_PARAMS).analyze(
        "BTC/USD", pullback_bars(make_bars), long_position(entry=140.0)
    )
    assert decision.signal == SignalType.SELL
    assert decision.reason.startswith("Stop Loss Hit")


def test_trend_pullback_never_buys_while_holding(make_bars):
    decision = TrendPullbackStrategy(PULLBACK_PARAMS).analyze(
        "BTC/USD", pullback_bars(make_bars), long_position(entry=100.0)
    )
    assert decision.signal == SignalType.HOLD


# ─── Hybrid-Predictive ────────────────────────────────────────────────────

def oscillating_bars(make_bars, n=88):
    closes = [100 + 3 * math.sin(i / 3) for i in range(n)]
    return make_bars(closes, volumes=[10 + (i % 7) for i in range(n)])


def test_hybrid_buy_on_high_confidence(make_bars):
    strategy = HybridPredictiveStrategy(predictor=FixedPredictor(0.9))
    decision = strategy.analyze("BTC/USD", oscillating_bars(make_bars))
    assert decision.signal == SignalType.BUY
    assert decision.metrics["confidence"] == 0.9


def test_hybrid_sell_on_low_confidence_only_with_position(make_bars):
    strategy = HybridPredictiveStrategy(predictor=FixedPredictor(0.1))
    bars = oscillating_bars(make_bars)
    assert strategy.analyze("BTC/USD", bars).signal == SignalType.HOLD
    assert strategy.analyze("BTC/USD", bars, long_position()).signal == SignalType.SELL


def test_hybrid_overbought_override(make_bars):
    strategy = HybridPredictiveStrategy(predictor=FixedPredictor(0.5))
    bars = make_bars([100.0 + i for i in range(80)])
    decision = strategy.analyze("BTC/USD", bars, long_position())
    assert decision.signal == SignalType.SELL
    assert "Overbought Override" in decision.reason


def test_hybrid_confidence_is_clamped(make_bars):
    strategy = HybridPredictiveStrategy(predictor=FixedPredictor(1.7))
    decision = strategy.analyze("BTC/USD", oscillating_bars(make_bars))
    assert decision.metrics["confidence"] == 1.0


def test_hybrid_neutral_predictor_holds(make_bars):
    decision = create_strategy("hybrid-predictive").analyze("BTC/USD", oscillating_bars(make_bars))
    assert decision.signal == SignalType.HOLD


# ─── 가격 반전 대칭 ───────────────────────────────────────────────────────

@pytest.mark.parametrize("name", ["ema-crossover", "macd"])
def test_inverted_prices_flip_crossover_signal(name, make_bars):
    closes = [100.0] * 40 + [100.0 + i for i in range(1, 6)]
    last = closes[-1]
    inverted = [2 * last - c for c in closes]
    strategy = create_strategy(name)

    for n in range(strategy.required_bars, len(closes) + 1):
        up = strategy.analyze("BTC/USD", make_bars(closes[:n])).signal
        down = strategy.analyze("BTC/USD", make_bars(inverted[:n])).signal
        expected = {SignalType.BUY: SignalType.SELL, SignalType.SELL: SignalType.BUY, SignalType.HOLD: SignalType.HOLD}
        assert down == expected[up]
