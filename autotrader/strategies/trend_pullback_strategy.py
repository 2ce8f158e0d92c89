"""
추세 눌림목(Trend-Pullback) 전략 구현.

[ 역할 ]
    core/trading_strategy.py::TradingStrategy의 구현체.
    "장기 상승 추세 중 가격이 중기 EMA 아래로 눌렸다가 양봉이 나오면 매수"

[ 전략 흐름 ]
    매 틱 analyze() 호출됨
        ├── 포지션 보유 중이면 청산만 판단 (진입 판단 안 함)
        │     ├── 현재가 <= 진입가 - stop_loss_atr × ATR → SELL (하드 손절)
        │     ├── pullback EMA가 fast EMA를 하향 돌파 → SELL (모멘텀 상실, 트레일링 청산)
        │     └── 그 외 HOLD
        └── 미보유 시 세 조건이 모두 충족되면 BUY
              ├── fast EMA > slow EMA          (추세 필터)
              ├── 종가 < pullback EMA          (눌림)
              └── 종가 > 시가                  (양봉 확인)

[ 파라미터 ]
    fast_ma:       추세 판단 단기 EMA (기본 50)
    slow_ma:       추세 판단 장기 EMA (기본 200)
    pullback_ma:   눌림 판단 EMA (기본 21)
    atr_period:    ATR 기간
    stop_loss_atr: 하드 손절 ATR 배수
"""

from typing import Any, Optional

import pandas as pd

from autotrader.core.broker_api import Position
from autotrader.core.trading_strategy import SignalDecision, SignalType, TradingStrategy
from autotrader.strategies import register
from autotrader.strategies._crossover import crossed_below
from autotrader.utils.indicators import atr, ema


@register("trend-pullback")
class TrendPullbackStrategy(TradingStrategy):
    """추세 눌림목 전략 구현체."""

    DEFAULT_PARAMS = {
        "fast_ma": 50,
        "slow_ma": 200,
        "pullback_ma": 21,
        "atr_period": 14,
        "stop_loss_atr": 1.5,
    }

    def __init__(self, params: dict[str, Any] | None = None):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="trend-pullback", params=merged)

    @property
    def fast_ma(self) -> int:
        return int(self.params["fast_ma"])

    @property
    def slow_ma(self) -> int:
        return int(self.params["slow_ma"])

    @property
    def pullback_ma(self) -> int:
        return int(self.params["pullback_ma"])

    @property
    def atr_period(self) -> int:
        return int(self.params["atr_period"])

    @property
    def stop_loss_atr(self) -> float:
        return float(self.params["stop_loss_atr"])

    @property
    def required_bars(self) -> int:
        return max(self.slow_ma, self.atr_period) + 1

    def analyze(
        self,
        symbol: str,
        market_data: pd.DataFrame,
        position: Optional[Position] = None,
    ) -> SignalDecision:
        if len(market_data) < self.required_bars:
            return self.hold(symbol, market_data, "Not enough data")

        closes = market_data["close"].astype(float).tolist()
        fast_now = ema(closes, self.fast_ma)
        slow_now = ema(closes, self.slow_ma)
        pullback_now = ema(closes, self.pullback_ma)
        fast_prev = ema(closes[:-1], self.fast_ma)
        pullback_prev = ema(closes[:-1], self.pullback_ma)
        current_atr = atr(market_data, self.atr_period)

        if None in (fast_now, slow_now, pullback_now, fast_prev, pullback_prev, current_atr):
            return self.hold(symbol, market_data, "Indicators not ready")

        last = market_data.iloc[-1]
        price = float(last["close"])
        open_price = float(last["open"])

        metrics = {
            "fast_ma": fast_now,
            "slow_ma": slow_now,
            "pullback_ma": pullback_now,
            "atr": current_atr,
        }

        # 보유 중에는 청산만 관리
        if position is not None:
            stop_price = position.entry_price - current_atr * self.stop_loss_atr
            if price <= stop_price:
                return self.decision(
                    symbol, market_data, SignalType.SELL,
                    f"Stop Loss Hit ({stop_price:.4f})", stop_price=stop_price, **metrics,
                )
            if crossed_below(pullback_prev, fast_prev, pullback_now, fast_now):
                return self.decision(
                    symbol, market_data, SignalType.SELL,
                    f"Trailing Exit: MA{self.pullback_ma} crossed below MA{self.fast_ma}", **metrics,
                )
            return self.hold(symbol, market_data, "Position open, managing trailing risk", **metrics)

        is_uptrend = fast_now > slow_now
        is_pullback = price < pullback_now
        is_bullish_candle = price > open_price

        if is_uptrend and is_pullback and is_bullish_candle:
            return self.decision(
                symbol, market_data, SignalType.BUY,
                f"Uptrend + Pullback to MA{self.pullback_ma} + Confirmation", **metrics,
            )
        return self.hold(symbol, market_data, "Waiting for Pullback to Value", **metrics)
