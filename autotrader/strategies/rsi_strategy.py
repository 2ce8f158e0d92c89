"""
RSI 임계값 전략 구현.

[ 역할 ]
    core/trading_strategy.py::TradingStrategy의 구현체.
    "RSI가 과매도 구간에 진입하면 매수, 과매수 구간에 진입하면 매도"

[ 전략 흐름 ]
    매 틱 analyze() 호출됨 (← live/engine.py, backtest/engine.py에서)
        ├── 현재 RSI / 직전 봉까지의 RSI 계산
        ├── 직전 >= oversold, 현재 < oversold → BUY (하향 돌파)
        ├── 직전 <= overbought, 현재 > overbought → SELL (상향 돌파)
        ├── 돌파가 관측되지 않았어도 현재 < oversold → BUY,
        │   현재 > overbought → SELL (첫 평가 등에서 극단 상태를 놓치지 않기 위함)
        └── 그 외 HOLD

[ 파라미터 (config.yaml의 strategy 섹션에서 로드) ]
    period:     RSI 기간
    oversold:   과매도 기준
    overbought: 과매수 기준
"""

from typing import Any, Optional

import pandas as pd

from autotrader.core.broker_api import Position
from autotrader.core.trading_strategy import SignalDecision, SignalType, TradingStrategy
from autotrader.strategies import register
from autotrader.utils.indicators import rsi


@register("rsi")
class RSIStrategy(TradingStrategy):
    """RSI 임계값 전략 구현체."""

    DEFAULT_PARAMS = {
        "period": 14,
        "oversold": 30.0,
        "overbought": 70.0,
    }

    def __init__(self, params: dict[str, Any] | None = None):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="rsi", params=merged)

    @property
    def period(self) -> int:
        return int(self.params["period"])

    @property
    def oversold(self) -> float:
        return float(self.params["oversold"])

    @property
    def overbought(self) -> float:
        return float(self.params["overbought"])

    @property
    def required_bars(self) -> int:
        return self.period + 2

    def analyze(
        self,
        symbol: str,
        market_data: pd.DataFrame,
        position: Optional[Position] = None,
    ) -> SignalDecision:
        """RSI 구간 진입 여부로 결정."""
        if len(market_data) < self.required_bars:
            return self.hold(symbol, market_data, "Not enough data")

        closes = market_data["close"].astype(float).tolist()
        rsi_now = rsi(closes, self.period)
        rsi_prev = rsi(closes[:-1], self.period)

        if rsi_now is None:
            return self.hold(symbol, market_data, "RSI not ready")

        if rsi_prev is not None and rsi_prev >= self.oversold and rsi_now < self.oversold:
            return self.decision(
                symbol, market_data, SignalType.BUY,
                f"RSI entered oversold ({rsi_now:.2f} < {self.oversold:g})",
                rsi=rsi_now,
            )
        if rsi_prev is not None and rsi_prev <= self.overbought and rsi_now > self.overbought:
            return self.decision(
                symbol, market_data, SignalType.SELL,
                f"RSI entered overbought ({rsi_now:.2f} > {self.overbought:g})",
                rsi=rsi_now,
            )

        # 돌파 미관측 시 극단값 그대로 신호 (구간에 머무는 동안 반복 발생)
        if rsi_now < self.oversold:
            return self.decision(symbol, market_data, SignalType.BUY, f"RSI oversold ({rsi_now:.2f})", rsi=rsi_now)
        if rsi_now > self.overbought:
            return self.decision(symbol, market_data, SignalType.SELL, f"RSI overbought ({rsi_now:.2f})", rsi=rsi_now)

        return self.hold(symbol, market_data, f"RSI neutral ({rsi_now:.2f})", rsi=rsi_now)
