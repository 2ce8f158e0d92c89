"""
RSI + 예측 모델 혼합(Hybrid-Predictive) 전략 구현.

[ 역할 ]
    core/trading_strategy.py::TradingStrategy의 구현체.
    RSI와 외부 예측 모델의 상승 확신도(0~1)를 조합.

[ 결정 규칙 ]
    확신도 > buy_confidence(0.60) 이고 RSI < buy_rsi_max(70)     → BUY
    확신도 < sell_confidence(0.40) 이고 포지션 보유               → SELL
    RSI > overbought_override(80) 이고 포지션 보유 (확신도 무관)  → SELL
    그 외                                                         → HOLD

[ 협력 객체 ]
    predictor: core/predictor.py::Predictor (기본 NeutralPredictor → 항상 0.5)
"""

from typing import Any, Optional

import pandas as pd

from autotrader.core.broker_api import Position
from autotrader.core.predictor import NeutralPredictor, Predictor
from autotrader.core.trading_strategy import SignalDecision, SignalType, TradingStrategy
from autotrader.ml.features import MIN_FEATURE_BARS, prepare_features
from autotrader.strategies import register
from autotrader.utils.indicators import rsi


@register("hybrid-predictive")
class HybridPredictiveStrategy(TradingStrategy):
    """RSI + 예측 확신도 혼합 전략 구현체."""

    DEFAULT_PARAMS = {
        "rsi_period": 14,
        "buy_confidence": 0.60,
        "sell_confidence": 0.40,
        "buy_rsi_max": 70.0,
        "overbought_override": 80.0,
        "min_features": 5,
    }

    def __init__(self, params: dict[str, Any] | None = None, predictor: Predictor | None = None):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="hybrid-predictive", params=merged)
        self.predictor = predictor or NeutralPredictor()

    @property
    def rsi_period(self) -> int:
        return int(self.params["rsi_period"])

    @property
    def required_bars(self) -> int:
        return max(MIN_FEATURE_BARS, self.rsi_period + 1)

    def analyze(
        self,
        symbol: str,
        market_data: pd.DataFrame,
        position: Optional[Position] = None,
    ) -> SignalDecision:
        if len(market_data) < self.required_bars:
            return self.hold(symbol, market_data, "Not enough data")

        closes = market_data["close"].astype(float).tolist()
        current_rsi = rsi(closes, self.rsi_period)
        if current_rsi is None:
            return self.hold(symbol, market_data, "RSI not ready")

        features = prepare_features(market_data)
        if len(features) < int(self.params["min_features"]):
            return self.hold(symbol, market_data, "Not enough features to predict", rsi=current_rsi)

        confidence = min(1.0, max(0.0, float(self.predictor.predict(features))))
        metrics = {"rsi": current_rsi, "confidence": confidence}
        reason = f"RSI={current_rsi:.1f} confidence={confidence:.2f}"

        if confidence > float(self.params["buy_confidence"]) and current_rsi < float(self.params["buy_rsi_max"]):
            return self.decision(symbol, market_data, SignalType.BUY, reason, **metrics)
        if confidence < float(self.params["sell_confidence"]) and position is not None:
            return self.decision(symbol, market_data, SignalType.SELL, reason, **metrics)
        if position is not None and current_rsi > float(self.params["overbought_override"]):
            return self.decision(symbol, market_data, SignalType.SELL, f"{reason} (Overbought Override)", **metrics)
        return self.hold(symbol, market_data, reason, **metrics)
