"""
실시간 매매 엔진 (틱 오케스트레이터).

[ 역할 ]
    스케줄러가 호출할 때마다 한 사이클(틱)을 실행하는 상태 머신.
    시스템의 핵심 실행 루프를 담당. 종료 상태는 없고 틱이 반복될 뿐이다.

[ 틱 실행 순서 ]
    tick() 호출 시:
        1. Sync       - 브로커에서 계좌 스냅샷 + 오픈 포지션 조회
        2. Exit sweep - 포지션별 최신가 조회 → risk.check_exit() → 도달 시 청산
                        (가격 조회 실패 포지션은 이번 틱에서 건너뜀)
        3. Re-sync    - 청산 반영된 포지션 재조회 (같은 틱 중복 진입 방지)
        4. 종목별 평가 - 봉 조회 → strategy.analyze() → 시그널 기록
                        → BUY: 최대 포지션 게이트 → 사이징 → 주문
                        → SELL: 보유 중이면 청산
                        종목 하나의 실패는 ErrorRecord로 남기고 다음 종목 진행
        5. Publish    - 불변 스냅샷을 구독자에게 전달

[ 동시성 ]
    틱은 겹치지 않는다. 실행 중에 들어온 tick() 호출은 건너뛴다.
    종목 평가는 설정 순서대로 순차 실행 (앞 종목의 체결이 뒤 종목의 게이트에 반영).

[ 의존성 ]
    - core/broker_api.py::BrokerAPI
    - core/trading_strategy.py::TradingStrategy
    - risk/risk_manager.py::RiskManager
    - data/bot_state.py::BotState (엔진 단독 소유)

[ 호출하는 곳 ]
    - live/scheduler.py::TickScheduler
    - run_bot.py (--once)
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from autotrader.core.broker_api import BrokerAPI, OrderSide, Position, PositionSide, normalize_symbol
from autotrader.core.trading_strategy import SignalType, TradingStrategy
from autotrader.data.bot_state import BotState, StateSnapshot
from autotrader.data.event_log import ErrorRecord
from autotrader.data.portfolio import TradeAction, TradeQuantity, TradeRecord
from autotrader.risk.risk_manager import RiskManager
from autotrader.utils.config import TradingConfig

logger = logging.getLogger("autotrader.live")

StateListener = Callable[[StateSnapshot], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TradingEngine:
    """틱 오케스트레이터. tick()으로 한 사이클 실행."""

    def __init__(
        self,
        broker: BrokerAPI,
        strategy: TradingStrategy,
        symbols: list[str],
        risk_manager: RiskManager | None = None,
        trading_config: TradingConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.broker = broker
        self.strategy = strategy
        self.symbols = list(symbols)
        self.risk = risk_manager or RiskManager()
        self.config = trading_config or TradingConfig()
        self.clock = clock

        self.state = BotState(
            signal_log_size=self.config.signal_log_size,
            trade_log_size=self.config.trade_log_size,
            error_log_size=self.config.error_log_size,
        )
        self._listeners: list[StateListener] = []
        self._lock = threading.Lock()   # 틱 중첩 방지

    # ─── 구독 ───────────────────────────────────────────────────────────

    def subscribe(self, listener: StateListener) -> None:
        """Publish 단계마다 StateSnapshot을 받을 콜백 등록."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ─── 틱 ─────────────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def tick(self) -> Optional[StateSnapshot]:
        """한 사이클 실행. 이전 틱이 실행 중이면 건너뛰고 None 반환."""
        if not self._lock.acquire(blocking=False):
            logger.warning("[Bot] 이전 틱이 아직 실행 중 → 이번 틱 건너뜀")
            return None
        try:
            self.state.last_tick = self.clock()
            try:
                self._run_cycle()
            except Exception as exc:
                # 틱 전체 실패: 기존 계좌/포지션 상태는 그대로 둔다
                logger.exception(f"[Bot] Tick error: {exc}")
                self._record_error(None, exc)
            return self.publish()
        finally:
            self._lock.release()

    def publish(self) -> StateSnapshot:
        """현재 상태의 불변 스냅샷을 구독자에게 전달 (fire-and-forget)."""
        snapshot = self.state.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("[Bot] 브로드캐스트 구독자 실패")
        return snapshot

    def _run_cycle(self) -> None:
        # 1. Sync
        account = self.broker.get_account()
        positions = self.broker.get_positions()
        self.state.account = account
        self.state.replace_positions(positions)
        logger.info(f"[Bot] Equity: {account.equity:,.2f} | P&L: {account.pnl:,.2f}")

        # 2. Exit sweep
        self._exit_sweep(positions)

        # 3. Re-sync
        positions = self.broker.get_positions()
        self.state.replace_positions(positions)
        open_symbols = {normalize_symbol(p.symbol) for p in positions}

        # 4. 종목별 평가
        for symbol in self.symbols:
            self._evaluate_symbol(symbol, open_symbols)

    def _exit_sweep(self, positions: list[Position]) -> None:
        """오픈 포지션별 손절/익절 점검. 신규 진입 판단보다 항상 먼저 실행."""
        for position in positions:
            try:
                price = self.broker.get_latest_price(position.symbol)
                if price is None:
                    logger.warning(f"[Bot] {position.symbol} 최신가 조회 불가 → 청산 점검 건너뜀")
                    continue

                reason = self.risk.check_exit(position, price)
                if reason is None:
                    continue

                logger.warning(f"[Bot] Closing {position.symbol} ({reason.value})")
                self.broker.close_position(position.symbol)
                pnl = (price - position.entry_price) * position.quantity
                self.state.trades.append(TradeRecord(
                    symbol=position.symbol,
                    action=TradeAction.CLOSE,
                    price=price,
                    quantity=TradeQuantity.exact(position.quantity),
                    timestamp=self.clock(),
                    realized_pnl=pnl,
                    reason=reason.value,
                ))
                self.state.positions.pop(position.symbol, None)
            except Exception as exc:
                logger.exception(f"[Bot] Exit check failed for {position.symbol}: {exc}")
                self._record_error(position.symbol, exc)

    def _evaluate_symbol(self, symbol: str, open_symbols: set[str]) -> None:
        """종목 하나 평가 → 주문. 실패는 이 종목 안에서 처리."""
        try:
            bars = self.broker.get_bars(symbol, self.config.bar_limit)
            count = 0 if bars is None else len(bars)
            if count < self.config.min_bars:
                logger.warning(f"[Bot] Not enough bars for {symbol} (got {count})")
                return

            key = normalize_symbol(symbol)
            already_open = key in open_symbols
            position = self._find_position(key)
            last_price = float(bars.iloc[-1]["close"])

            decision = self.strategy.analyze(symbol, bars, position)
            logger.info(
                f"[Signal] {symbol} → {decision.signal.value} | {decision.reason} | Price: {last_price:.4f}"
            )
            self.state.signals.append(decision)

            if decision.signal == SignalType.BUY and not already_open:
                self._enter(symbol, key, last_price, decision.reason, open_symbols)
            elif decision.signal == SignalType.SELL and already_open:
                self._exit_on_signal(symbol, key, last_price, position, decision.reason, open_symbols)
        except Exception as exc:
            logger.exception(f"[Bot] Error processing {symbol}: {exc}")
            self._record_error(symbol, exc)

    def _enter(self, symbol: str, key: str, price: float, reason: str, open_symbols: set[str]) -> None:
        if not self.risk.can_open_position(len(open_symbols)):
            logger.warning(f"[Risk] Max positions ({len(open_symbols)}) reached, skipping {symbol}")
            return

        quantity = self.risk.position_size(self.state.account.equity, price)
        if quantity <= 0:
            logger.info(f"[Risk] {symbol} 사이징 결과 0 → 주문 안 함")
            return

        order = self.broker.place_order(symbol, quantity, OrderSide.BUY)
        if order is None:
            logger.warning(f"[Bot] {symbol} 주문 거부됨 (qty={quantity:.6f})")
            return

        fill_price = order.filled_price or price
        self.state.trades.append(TradeRecord(
            symbol=symbol,
            action=TradeAction.BUY,
            price=fill_price,
            quantity=TradeQuantity.exact(order.quantity),
            timestamp=self.clock(),
            reason=reason,
        ))
        open_symbols.add(key)
        self.state.positions[symbol] = Position(
            symbol=symbol,
            side=PositionSide.LONG,
            quantity=order.quantity,
            entry_price=fill_price,
            current_price=fill_price,
        )

    def _exit_on_signal(
        self,
        symbol: str,
        key: str,
        price: float,
        position: Optional[Position],
        reason: str,
        open_symbols: set[str],
    ) -> None:
        self.broker.close_position(symbol)
        pnl = None
        if position is not None:
            pnl = (price - position.entry_price) * position.quantity
        self.state.trades.append(TradeRecord(
            symbol=symbol,
            action=TradeAction.SELL,
            price=price,
            quantity=TradeQuantity.entire_position(),
            timestamp=self.clock(),
            realized_pnl=pnl,
            reason=reason,
        ))
        open_symbols.discard(key)
        for held in [s for s in self.state.positions if normalize_symbol(s) == key]:
            del self.state.positions[held]

    def _find_position(self, key: str) -> Optional[Position]:
        for held_symbol, position in self.state.positions.items():
            if normalize_symbol(held_symbol) == key:
                return position
        return None

    def _record_error(self, symbol: Optional[str], exc: Exception) -> None:
        self.state.errors.append(ErrorRecord(
            symbol=symbol,
            message=str(exc) or exc.__class__.__name__,
            timestamp=self.clock(),
        ))
