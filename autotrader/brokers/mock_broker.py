"""
페이퍼/테스트용 Mock 브로커 구현.

[ 역할 ]
    실제 브로커 API 없이 매매를 시뮬레이션.
    수수료, 슬리피지를 적용하여 현실적인 체결을 모사.
    종목별로 미리 로드한 봉 데이터에 커서를 두고 advance()로 한 봉씩 공개하여
    실시간 피드를 흉내 낸다.

[ 호출하는 곳 ]
    - run_bot.py (broker.name == "mock")
    - run_backtest.py (--source sample)
    - 단위 테스트에서 MockBroker 활용

[ 실전 교체 ]
    실제 브로커 연동 시 core/broker_api.py::BrokerAPI를 구현한 클래스로 교체
"""

import logging
import uuid
from typing import Optional

import pandas as pd

from autotrader.core.broker_api import (
    AccountSnapshot,
    BrokerAPI,
    OrderResult,
    OrderSide,
    OrderStatus,
    Position,
    PositionSide,
)
from autotrader.core.data_provider import empty_bars, normalize_bars

logger = logging.getLogger("autotrader.broker")


class MockBroker(BrokerAPI):
    """Mock 브로커. 실제 주문 없이 가상 잔고로 매매 시뮬레이션.

    매수 시: 가격 * (1 + slippage) 로 불리하게 체결
    매도 시: 가격 * (1 - slippage) 로 불리하게 체결
    수수료: 체결금액 * commission_rate (매수/매도 모두)

    사용법:
        broker = MockBroker(initial_cash=10_000)
        broker.load_bars("BTC/USD", df, start=100)  # 처음 100봉만 공개
        broker.advance()                            # 다음 봉 공개
    """

    def __init__(
        self,
        initial_cash: float = 10_000,
        commission_rate: float = 0.001,   # 0.1%
        slippage_rate: float = 0.0005,    # 0.05%
    ):
        self.initial_cash = initial_cash
        self.cash = initial_cash
        self.commission_rate = commission_rate
        self.slippage_rate = slippage_rate

        self._bars: dict[str, pd.DataFrame] = {}      # symbol → 전체 봉
        self._cursor: dict[str, int] = {}             # symbol → 공개된 봉 수
        self._prices: dict[str, float] = {}           # symbol → 현재가 (set_price로 덮어쓰기)
        self._positions: dict[str, Position] = {}     # symbol → Position
        self.orders: list[OrderResult] = []           # 체결된 주문 내역

    # ─── 시뮬레이션 제어 ───────────────────────────────────────────────

    def load_bars(self, symbol: str, df: pd.DataFrame, start: Optional[int] = None) -> None:
        """봉 데이터 로드.

        Args:
            symbol: 종목 심볼
            df: 봉 DataFrame (columns: time, open, high, low, close, volume)
            start: 처음 공개할 봉 수 (None이면 전체 공개)
        """
        bars = normalize_bars(df)
        self._bars[symbol] = bars
        self._cursor[symbol] = len(bars) if start is None else max(0, min(start, len(bars)))

    def advance(self, steps: int = 1) -> None:
        """모든 종목에서 다음 봉(들)을 공개."""
        for symbol, bars in self._bars.items():
            self._cursor[symbol] = min(len(bars), self._cursor[symbol] + steps)

    def set_price(self, symbol: str, price: float) -> None:
        """종목 현재가 설정 (시뮬레이션용)."""
        self._prices[symbol] = price

    def _visible(self, symbol: str) -> pd.DataFrame:
        if symbol not in self._bars:
            return empty_bars()
        return self._bars[symbol].iloc[: self._cursor[symbol]]

    # ─── BrokerAPI 구현 ────────────────────────────────────────────────

    def get_account(self) -> AccountSnapshot:
        holdings_value = 0.0
        for symbol, position in self._positions.items():
            price = self.get_latest_price(symbol) or position.entry_price
            holdings_value += position.quantity * price
        equity = self.cash + holdings_value
        return AccountSnapshot(
            equity=equity,
            cash=self.cash,
            buying_power=self.cash,
            pnl=equity - self.initial_cash,
        )

    def get_positions(self) -> list[Position]:
        positions = []
        for symbol, position in self._positions.items():
            price = self.get_latest_price(symbol)
            positions.append(position.mark(price) if price is not None else position)
        return positions

    def get_bars(self, symbol: str, limit: int) -> pd.DataFrame:
        return self._visible(symbol).tail(limit).reset_index(drop=True)

    def get_latest_price(self, symbol: str) -> Optional[float]:
        if symbol in self._prices:
            return self._prices[symbol]
        visible = self._visible(symbol)
        if visible.empty:
            return None
        return float(visible.iloc[-1]["close"])

    def place_order(self, symbol: str, quantity: float, side: OrderSide) -> Optional[OrderResult]:
        price = self.get_latest_price(symbol)
        if price is None or quantity <= 0:
            logger.warning(f"[Mock] {symbol} 주문 거부: 가격 없음 또는 수량 0")
            return None

        if side == OrderSide.BUY:
            return self._buy(symbol, quantity, price)
        return self._sell(symbol, quantity, price)

    def close_position(self, symbol: str) -> None:
        position = self._positions.get(symbol)
        if position is None:
            logger.warning(f"[Mock] {symbol} 청산 실패: 보유 포지션 없음")
            return
        price = self.get_latest_price(symbol)
        if price is None:
            logger.warning(f"[Mock] {symbol} 청산 실패: 가격 없음")
            return
        self._sell(symbol, position.quantity, price)

    # ─── 체결 ───────────────────────────────────────────────────────────

    def _buy(self, symbol: str, quantity: float, price: float) -> Optional[OrderResult]:
        # 슬리피지 적용 (매수 시 가격 상승)
        exec_price = price * (1 + self.slippage_rate)
        commission = exec_price * quantity * self.commission_rate
        total_cost = exec_price * quantity + commission

        if total_cost > self.cash:
            logger.warning(f"[Mock] {symbol} 매수 거부: 현금 부족 ({total_cost:,.2f} > {self.cash:,.2f})")
            return None

        self.cash -= total_cost

        held = self._positions.get(symbol)
        if held is not None:
            total_qty = held.quantity + quantity
            avg_price = (held.entry_price * held.quantity + exec_price * quantity) / total_qty
            self._positions[symbol] = Position(symbol, PositionSide.LONG, total_qty, avg_price, exec_price)
        else:
            self._positions[symbol] = Position(symbol, PositionSide.LONG, quantity, exec_price, exec_price)

        return self._record(symbol, quantity, OrderSide.BUY, exec_price)

    def _sell(self, symbol: str, quantity: float, price: float) -> Optional[OrderResult]:
        held = self._positions.get(symbol)
        if held is None or held.quantity < quantity:
            logger.warning(f"[Mock] {symbol} 매도 거부: 보유 수량 부족")
            return None

        # 슬리피지 적용 (매도 시 가격 하락)
        exec_price = price * (1 - self.slippage_rate)
        commission = exec_price * quantity * self.commission_rate
        self.cash += exec_price * quantity - commission

        remaining = held.quantity - quantity
        if remaining <= 0:
            del self._positions[symbol]
        else:
            self._positions[symbol] = Position(symbol, PositionSide.LONG, remaining, held.entry_price, exec_price)

        return self._record(symbol, quantity, OrderSide.SELL, exec_price)

    def _record(self, symbol: str, quantity: float, side: OrderSide, exec_price: float) -> OrderResult:
        result = OrderResult(
            order_id=str(uuid.uuid4())[:8],
            symbol=symbol,
            quantity=quantity,
            side=side,
            status=OrderStatus.FILLED,
            filled_price=exec_price,
        )
        self.orders.append(result)
        return result
