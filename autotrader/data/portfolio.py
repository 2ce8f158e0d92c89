"""
거래 기록 / 로컬 포트폴리오 관리 모듈.

[ 역할 ]
    TradeRecord   - 개별 거래 내역 (불변, append-only)
    TradeQuantity - 거래 수량. 정확한 수량 또는 "포지션 전량" 표식
    Portfolio     - 브로커가 없는 백테스트에서 자산/포지션을 로컬로 누적

[ 호출하는 곳 ]
    - live/engine.py에서 체결/청산 시 TradeRecord 생성
    - backtest/engine.py::BacktestEngine이 Portfolio를 소유하고 open()/close() 호출
    - backtest/metrics.py에서 portfolio.trade_history로 성과 계산
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from autotrader.core.broker_api import Position, PositionSide


class TradeAction(Enum):
    BUY = "BUY"
    SELL = "SELL"     # 전략 SELL 시그널에 의한 청산
    CLOSE = "CLOSE"   # 손절/익절/데이터 종료에 의한 청산

    @property
    def is_closing(self) -> bool:
        return self != TradeAction.BUY


@dataclass(frozen=True)
class TradeQuantity:
    """거래 수량. amount가 None이면 "보유 포지션 전량"."""
    amount: Optional[float] = None

    @classmethod
    def exact(cls, amount: float) -> "TradeQuantity":
        return cls(amount=float(amount))

    @classmethod
    def entire_position(cls) -> "TradeQuantity":
        return cls(amount=None)

    @property
    def is_entire_position(self) -> bool:
        return self.amount is None

    def to_dict(self) -> dict[str, Any]:
        if self.is_entire_position:
            return {"kind": "entire_position"}
        return {"kind": "exact", "amount": self.amount}


@dataclass(frozen=True)
class TradeRecord:
    """개별 거래 기록. metrics.py에서 승률/수익 계산에 사용됨."""
    symbol: str
    action: TradeAction
    price: float
    quantity: TradeQuantity
    timestamp: datetime
    realized_pnl: Optional[float] = None   # 청산 거래에만
    reason: str = ""                        # 시그널/청산 사유

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "action": self.action.value,
            "price": self.price,
            "quantity": self.quantity.to_dict(),
            "timestamp": self.timestamp.isoformat(),
            "realized_pnl": self.realized_pnl,
            "reason": self.reason,
        }


class Portfolio:
    """백테스트용 로컬 포트폴리오.

    BacktestEngine이 소유하며, 자산(equity)은 실현손익만 누적한다.
    종목당 포지션은 최대 1개.
    """

    def __init__(self, initial_equity: float):
        self.initial_equity = initial_equity
        self.equity = initial_equity
        self.positions: dict[str, Position] = {}     # symbol → Position
        self.trade_history: list[TradeRecord] = []   # 전체 거래 내역
        self.equity_curve: list[float] = [initial_equity]  # 청산 시점마다 기록

    @property
    def realized_pnl(self) -> float:
        return self.equity - self.initial_equity

    @property
    def total_return(self) -> float:
        """총 수익률 (%)."""
        if self.initial_equity == 0:
            return 0.0
        return self.realized_pnl / self.initial_equity * 100

    def get_position(self, symbol: str) -> Optional[Position]:
        return self.positions.get(symbol)

    def mark(self, symbol: str, price: float) -> Optional[Position]:
        """보유 포지션을 현재가로 평가."""
        position = self.positions.get(symbol)
        if position is None:
            return None
        position = position.mark(price)
        self.positions[symbol] = position
        return position

    def open(
        self,
        symbol: str,
        quantity: float,
        price: float,
        timestamp: datetime,
        reason: str = "",
    ) -> Optional[TradeRecord]:
        """롱 포지션 진입. 이미 보유 중이거나 수량이 0이면 None."""
        if symbol in self.positions or quantity <= 0:
            return None
        self.positions[symbol] = Position(
            symbol=symbol,
            side=PositionSide.LONG,
            quantity=quantity,
            entry_price=price,
            current_price=price,
        )
        record = TradeRecord(
            symbol=symbol,
            action=TradeAction.BUY,
            price=price,
            quantity=TradeQuantity.exact(quantity),
            timestamp=timestamp,
            reason=reason,
        )
        self.trade_history.append(record)
        return record

    def close(
        self,
        symbol: str,
        price: float,
        timestamp: datetime,
        action: TradeAction = TradeAction.SELL,
        reason: str = "",
    ) -> Optional[TradeRecord]:
        """포지션 전량 청산. 실현손익을 equity에 반영."""
        position = self.positions.pop(symbol, None)
        if position is None:
            return None
        pnl = (price - position.entry_price) * position.quantity
        self.equity += pnl
        self.equity_curve.append(self.equity)

        record = TradeRecord(
            symbol=symbol,
            action=action,
            price=price,
            quantity=TradeQuantity.exact(position.quantity),
            timestamp=timestamp,
            realized_pnl=pnl,
            reason=reason,
        )
        self.trade_history.append(record)
        return record

    def get_summary(self) -> dict[str, Any]:
        """포트폴리오 요약."""
        return {
            "initial_equity": self.initial_equity,
            "final_equity": self.equity,
            "realized_pnl": self.realized_pnl,
            "total_return": self.total_return,
            "open_positions": len(self.positions),
            "num_trades": len(self.trade_history),
        }
