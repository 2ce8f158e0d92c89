"""
리스크 관리 모듈.

[ 역할 ]
    서로 독립적인 세 가지 판단을 제공:
        position_size()     → 얼마나 살지   (고정 비율 사이징)
        can_open_position() → 살 수 있는지  (최대 동시 포지션 수 게이트)
        check_exit()        → 언제 청산할지 (손절 / 익절)

[ 호출하는 곳 ]
    - live/engine.py::TradingEngine에서 청산 점검(_exit_sweep) 후 진입 판단
    - backtest/engine.py::BacktestEngine에서 봉마다 청산 점검 → 진입 사이징

[ 미정 사항 ]
    숏 포지션 청산 판단은 정의되어 있지 않다. check_exit()은 숏에 대해 None.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from autotrader.core.broker_api import Position, PositionSide
from autotrader.utils.config import RiskConfig

logger = logging.getLogger("autotrader.risk")


class ExitReason(Enum):
    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"


@dataclass(frozen=True)
class ExitLevels:
    stop_loss: float
    take_profit: float


class RiskManager:
    """고정 비율 리스크 정책. RiskConfig는 실행 중 읽기 전용."""

    def __init__(self, config: RiskConfig | None = None):
        self.config = config or RiskConfig()

    def position_size(self, equity: float, price: float, risk_per_trade: float | None = None) -> float:
        """매수 수량 = (equity × risk_per_trade) / price. 가격 <= 0이면 0."""
        if price is None or price <= 0:
            return 0.0
        if risk_per_trade is None:
            risk_per_trade = self.config.risk_per_trade
        quantity = equity * risk_per_trade / price
        return max(0.0, quantity)

    def can_open_position(self, current_open_count: int, max_positions: int | None = None) -> bool:
        """현재 오픈 포지션 수 < 최대 포지션 수."""
        if max_positions is None:
            max_positions = self.config.max_positions
        return current_open_count < max_positions

    def exit_levels(self, entry_price: float, side: PositionSide = PositionSide.LONG) -> ExitLevels:
        """진입가 기준 손절/익절 가격. 숏은 부호 반전."""
        sl = self.config.stop_loss_pct
        tp = self.config.take_profit_pct
        if side == PositionSide.LONG:
            return ExitLevels(stop_loss=entry_price * (1 - sl), take_profit=entry_price * (1 + tp))
        return ExitLevels(stop_loss=entry_price * (1 + sl), take_profit=entry_price * (1 - tp))

    def check_exit(self, position: Position, current_price: float) -> Optional[ExitReason]:
        """오픈 포지션의 손절/익절 도달 여부. 롱만 판단한다."""
        if position.side != PositionSide.LONG:
            return None

        levels = self.exit_levels(position.entry_price, position.side)
        if current_price <= levels.stop_loss:
            logger.warning(
                f"[Risk] {position.symbol} hit STOP-LOSS @ {current_price:.4f} (limit: {levels.stop_loss:.4f})"
            )
            return ExitReason.STOP_LOSS
        if current_price >= levels.take_profit:
            logger.info(
                f"[Risk] {position.symbol} hit TAKE-PROFIT @ {current_price:.4f} (target: {levels.take_profit:.4f})"
            )
            return ExitReason.TAKE_PROFIT
        return None
