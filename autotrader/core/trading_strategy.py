"""
매매 전략 추상 클래스 정의.

[ 역할 ]
    매매 로직의 인터페이스를 정의.
    봉 윈도우와 (있다면) 현재 포지션을 받아 매수/매도/홀드 결정을 생성.

[ 구현체 ]
    - strategies/rsi_strategy.py::RSIStrategy                       ("rsi")
    - strategies/ema_cross_strategy.py::EMACrossStrategy            ("ema-crossover")
    - strategies/macd_strategy.py::MACDStrategy                     ("macd")
    - strategies/trend_pullback_strategy.py::TrendPullbackStrategy  ("trend-pullback")
    - strategies/hybrid_predictive_strategy.py::HybridPredictiveStrategy ("hybrid-predictive")

[ 호출하는 곳 ]
    - live/engine.py::TradingEngine._evaluate_symbol()에서 매 틱 종목별 analyze() 호출
    - backtest/engine.py::BacktestEngine._run_symbol()에서 봉마다 analyze() 호출

[ 데이터 흐름 ]
    market_data(봉 DataFrame) + position → analyze() → SignalDecision 반환
    SignalDecision.signal이 BUY/SELL이면 엔진이 리스크 게이트를 거쳐 주문 실행

[ 계약 ]
    - 입력에 대한 순수 함수 (숨은 상태 없음, 같은 입력 → 같은 결과)
    - 지표 워밍업 전에는 예외 대신 HOLD
    - metrics에 판단 근거가 된 지표값 포함
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

import pandas as pd

from autotrader.core.broker_api import Position


class SignalType(Enum):
    """전략이 반환하는 시그널 종류."""
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


@dataclass(frozen=True)
class SignalDecision:
    """analyze()의 반환값. 이벤트 로그에 그대로 append된다."""
    symbol: str
    signal: SignalType
    reason: str = ""
    price: float = 0.0                 # 평가 시점 가격 (마지막 봉 종가)
    metrics: Mapping[str, float] = field(default_factory=dict)
    timestamp: Optional[datetime] = None  # 마지막 봉 시각

    def __post_init__(self):
        # 스냅샷과 엔진 로그가 같은 객체를 공유하므로 읽기 전용으로 고정
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "signal": self.signal.value,
            "reason": self.reason,
            "price": self.price,
            "metrics": dict(self.metrics),
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


class TradingStrategy(ABC):
    """매매 전략 추상 클래스.

    새 전략을 만들려면 이 클래스를 상속받아 analyze()와 required_bars를 구현하고
    strategies/ 아래에 @register("이름")으로 등록하면 된다.
    """

    def __init__(self, name: str, params: dict[str, Any] | None = None):
        self.name = name
        self.params = params or {}  # config.yaml에서 로드된 전략 파라미터

    @property
    @abstractmethod
    def required_bars(self) -> int:
        """결정을 내리기 위한 최소 봉 개수 (워밍업)."""
        ...

    @abstractmethod
    def analyze(
        self,
        symbol: str,
        market_data: pd.DataFrame,
        position: Optional[Position] = None,
    ) -> SignalDecision:
        """매매 결정 생성.

        Args:
            symbol: 종목 심볼
            market_data: 봉 DataFrame (시간 오름차순, 마지막 행이 현재 봉)
            position: 현재 오픈 포지션 (없으면 None)

        Returns:
            SignalDecision: BUY/SELL/HOLD 결정
        """
        ...

    def decision(
        self,
        symbol: str,
        market_data: pd.DataFrame,
        signal: SignalType,
        reason: str,
        **metrics: float,
    ) -> SignalDecision:
        """마지막 봉 기준으로 SignalDecision 생성. 지표값은 소수 4자리로 기록."""
        price = 0.0
        timestamp = None
        if not market_data.empty:
            last = market_data.iloc[-1]
            price = float(last["close"])
            timestamp = pd.Timestamp(last["time"]).to_pydatetime()
        return SignalDecision(
            symbol=symbol,
            signal=signal,
            reason=reason,
            price=price,
            metrics={k: round(float(v), 4) for k, v in metrics.items()},
            timestamp=timestamp,
        )

    def hold(self, symbol: str, market_data: pd.DataFrame, reason: str, **metrics: float) -> SignalDecision:
        return self.decision(symbol, market_data, SignalType.HOLD, reason, **metrics)
