"""
MACD 교차 전략 구현.

[ 역할 ]
    core/trading_strategy.py::TradingStrategy의 구현체.
    "MACD선이 시그널선을 상향 돌파하면 매수, 하향 돌파하면 매도"

[ 파라미터 ]
    fast / slow: MACD선을 구성하는 EMA 기간
    signal:      시그널선 EMA 기간
"""

from typing import Any, Optional

import pandas as pd

from autotrader.core.broker_api import Position
from autotrader.core.trading_strategy import SignalDecision, SignalType, TradingStrategy
from autotrader.strategies import register
from autotrader.strategies._crossover import crossed_above, crossed_below
from autotrader.utils.indicators import macd


@register("macd")
class MACDStrategy(TradingStrategy):
    """MACD 교차 전략 구현체."""

    DEFAULT_PARAMS = {
        "fast": 12,
        "slow": 26,
        "signal": 9,
    }

    def __init__(self, params: dict[str, Any] | None = None):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="macd", params=merged)

    @property
    def fast(self) -> int:
        return int(self.params["fast"])

    @property
    def slow(self) -> int:
        return int(self.params["slow"])

    @property
    def signal(self) -> int:
        return int(self.params["signal"])

    @property
    def required_bars(self) -> int:
        # 직전 봉 기준 MACD까지 계산 가능해야 함
        return self.slow + self.signal + 1

    def analyze(
        self,
        symbol: str,
        market_data: pd.DataFrame,
        position: Optional[Position] = None,
    ) -> SignalDecision:
        if len(market_data) < self.required_bars:
            return self.hold(symbol, market_data, "Not enough data")

        closes = market_data["close"].astype(float).tolist()
        current = macd(closes, self.fast, self.slow, self.signal)
        previous = macd(closes[:-1], self.fast, self.slow, self.signal)

        if current is None or previous is None:
            return self.hold(symbol, market_data, "MACD not ready")

        metrics = {
            "macd_line": current.macd_line,
            "signal_line": current.signal_line,
            "histogram": current.histogram,
        }

        if crossed_above(previous.macd_line, previous.signal_line, current.macd_line, current.signal_line):
            return self.decision(symbol, market_data, SignalType.BUY, "MACD bullish crossover", **metrics)
        if crossed_below(previous.macd_line, previous.signal_line, current.macd_line, current.signal_line):
            return self.decision(symbol, market_data, SignalType.SELL, "MACD bearish crossover", **metrics)
        return self.hold(symbol, market_data, "No MACD crossover", **metrics)
