"""
EMA 교차 전략 구현.

[ 역할 ]
    core/trading_strategy.py::TradingStrategy의 구현체.
    "단기 EMA가 장기 EMA를 상향 돌파하면 매수, 하향 돌파하면 매도"

[ 전략 흐름 ]
    매 틱 analyze() 호출됨
        ├── 현재 봉 / 직전 봉 기준 fast·slow EMA 계산
        ├── 직전 fast <= slow, 현재 fast > slow → BUY
        ├── 직전 fast >= slow, 현재 fast < slow → SELL
        └── 그 외 HOLD

[ 파라미터 ]
    fast: 단기 EMA 기간
    slow: 장기 EMA 기간
"""

from typing import Any, Optional

import pandas as pd

from autotrader.core.broker_api import Position
from autotrader.core.trading_strategy import SignalDecision, SignalType, TradingStrategy
from autotrader.strategies import register
from autotrader.strategies._crossover import crossed_above, crossed_below
from autotrader.utils.indicators import ema


@register("ema-crossover")
class EMACrossStrategy(TradingStrategy):
    """EMA 교차 전략 구현체."""

    DEFAULT_PARAMS = {
        "fast": 9,
        "slow": 21,
    }

    def __init__(self, params: dict[str, Any] | None = None):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="ema-crossover", params=merged)

    @property
    def fast(self) -> int:
        return int(self.params["fast"])

    @property
    def slow(self) -> int:
        return int(self.params["slow"])

    @property
    def required_bars(self) -> int:
        return self.slow + 1

    def analyze(
        self,
        symbol: str,
        market_data: pd.DataFrame,
        position: Optional[Position] = None,
    ) -> SignalDecision:
        if len(market_data) < self.required_bars:
            return self.hold(symbol, market_data, "Not enough data")

        closes = market_data["close"].astype(float).tolist()
        fast_now = ema(closes, self.fast)
        slow_now = ema(closes, self.slow)
        fast_prev = ema(closes[:-1], self.fast)
        slow_prev = ema(closes[:-1], self.slow)

        if None in (fast_now, slow_now, fast_prev, slow_prev):
            return self.hold(symbol, market_data, "Indicator not ready")

        metrics = {"ema_fast": fast_now, "ema_slow": slow_now}

        if crossed_above(fast_prev, slow_prev, fast_now, slow_now):
            return self.decision(
                symbol, market_data, SignalType.BUY,
                f"EMA{self.fast} crossed above EMA{self.slow}", **metrics,
            )
        if crossed_below(fast_prev, slow_prev, fast_now, slow_now):
            return self.decision(
                symbol, market_data, SignalType.SELL,
                f"EMA{self.fast} crossed below EMA{self.slow}", **metrics,
            )
        return self.hold(symbol, market_data, "No crossover", **metrics)
