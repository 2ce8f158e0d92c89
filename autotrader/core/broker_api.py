"""
브로커(거래소) API 추상 클래스 정의.

[ 역할 ]
    계좌/포지션/봉 조회와 주문 실행을 추상화하는 인터페이스 정의.
    실제 브로커(Alpaca, Binance 등) 교체 시 이 클래스만 구현하면 됨.
    호출 타임아웃은 구현체가 책임진다 (오케스트레이터는 관여하지 않음).

[ 구현체 ]
    - brokers/mock_broker.py::MockBroker  (페이퍼/테스트용)

[ 호출하는 곳 ]
    - live/engine.py::TradingEngine.tick()에서 매 사이클 호출
    - backtest/engine.py에서 과거 봉 조회
    - ingestion/bar_cache.py에서 봉 조회 후 캐싱
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

import pandas as pd


# ─── 계좌/포지션/주문 Enum / Dataclass ────────────────────────────────────────

class OrderSide(Enum):
    BUY = "buy"
    SELL = "sell"


class OrderStatus(Enum):
    """주문 상태 추적용."""
    PENDING = "pending"
    FILLED = "filled"
    CANCELLED = "cancelled"


class PositionSide(Enum):
    LONG = "long"
    SHORT = "short"


@dataclass(frozen=True)
class OrderResult:
    """place_order()의 반환값. 거부된 주문은 OrderResult 대신 None."""
    order_id: str
    symbol: str
    quantity: float
    side: OrderSide
    status: OrderStatus
    filled_price: float = 0.0


@dataclass(frozen=True)
class AccountSnapshot:
    """get_account()의 반환값. 매 틱마다 통째로 교체된다."""
    equity: float = 0.0
    cash: float = 0.0
    buying_power: float = 0.0
    pnl: float = 0.0

    def to_dict(self) -> dict:
        return {
            "equity": self.equity,
            "cash": self.cash,
            "buying_power": self.buying_power,
            "pnl": self.pnl,
        }


@dataclass(frozen=True)
class Position:
    """종목별 오픈 포지션. 종목당 최대 1개."""
    symbol: str
    side: PositionSide
    quantity: float
    entry_price: float
    current_price: float = 0.0
    unrealized_pnl: float = 0.0
    unrealized_pnl_pct: float = 0.0   # %

    def mark(self, price: float) -> "Position":
        """현재가 기준으로 평가손익을 갱신한 새 Position 반환."""
        direction = 1.0 if self.side == PositionSide.LONG else -1.0
        pnl = (price - self.entry_price) * self.quantity * direction
        cost = self.entry_price * self.quantity
        pnl_pct = pnl / cost * 100 if cost > 0 else 0.0
        return replace(self, current_price=price, unrealized_pnl=pnl, unrealized_pnl_pct=pnl_pct)

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "side": self.side.value,
            "quantity": self.quantity,
            "entry_price": self.entry_price,
            "current_price": self.current_price,
            "unrealized_pnl": self.unrealized_pnl,
            "unrealized_pnl_pct": self.unrealized_pnl_pct,
        }


def normalize_symbol(symbol: str) -> str:
    """'BTC/USD'와 'BTCUSD'를 같은 종목으로 취급하기 위한 키."""
    return symbol.replace("/", "").upper()


# ─── 추상 클래스 ────────────────────────────────────────────────────────────

class BrokerAPI(ABC):
    """브로커 API 추상 클래스.

    모든 브로커 구현체는 이 클래스를 상속받아 아래 메서드를 구현해야 한다.
    """

    @abstractmethod
    def get_account(self) -> AccountSnapshot:
        """계좌 스냅샷 조회."""
        ...

    @abstractmethod
    def get_positions(self) -> list[Position]:
        """오픈 포지션 목록 조회."""
        ...

    @abstractmethod
    def get_bars(self, symbol: str, limit: int) -> pd.DataFrame:
        """최근 봉 조회.

        Returns:
            DataFrame with columns: [time, open, high, low, close, volume]
            시간 오름차순, 최대 limit행
        """
        ...

    @abstractmethod
    def get_latest_price(self, symbol: str) -> Optional[float]:
        """최근 체결가. 조회 불가 시 None."""
        ...

    @abstractmethod
    def place_order(self, symbol: str, quantity: float, side: OrderSide) -> Optional[OrderResult]:
        """시장가 주문. 거부/스킵된 주문은 예외 대신 None 반환."""
        ...

    @abstractmethod
    def close_position(self, symbol: str) -> None:
        """포지션 전량 청산. 실패는 로깅만 하고 전파하지 않는다."""
        ...
