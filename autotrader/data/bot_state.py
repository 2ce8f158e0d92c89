"""
봇 상태 / 게시용 스냅샷.

[ 역할 ]
    BotState      - TradingEngine이 단독 소유하는 가변 상태
                    (계좌, 포지션, 시그널/거래/에러 로그, 마지막 틱 시각)
    StateSnapshot - 게시(publish) 시점에 복사된 불변 스냅샷.
                    브로드캐스트 구독자는 항상 완전히 갱신된 스냅샷만 받는다.

[ 직렬화 ]
    StateSnapshot.to_json()은 키 정렬된 JSON을 반환하므로
    같은 상태는 같은 바이트열이 된다.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from autotrader.core.broker_api import AccountSnapshot, Position
from autotrader.core.trading_strategy import SignalDecision
from autotrader.data.event_log import BoundedLog, ErrorRecord
from autotrader.data.portfolio import TradeRecord


@dataclass(frozen=True)
class StateSnapshot:
    account: AccountSnapshot
    positions: tuple[Position, ...]
    signals: tuple[SignalDecision, ...]
    trades: tuple[TradeRecord, ...]
    errors: tuple[ErrorRecord, ...]
    last_tick: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "account": self.account.to_dict(),
            "positions": [p.to_dict() for p in self.positions],
            "signals": [s.to_dict() for s in self.signals],
            "trades": [t.to_dict() for t in self.trades],
            "errors": [e.to_dict() for e in self.errors],
            "last_tick": self.last_tick.isoformat() if self.last_tick else None,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, ensure_ascii=False)


@dataclass
class BotState:
    """엔진 소유 상태. 초기값은 모두 비어 있고 계좌는 0."""
    signal_log_size: int = 50
    trade_log_size: int = 50
    error_log_size: int = 20
    account: AccountSnapshot = field(default_factory=AccountSnapshot)
    positions: dict[str, Position] = field(default_factory=dict)   # symbol → Position
    last_tick: Optional[datetime] = None

    def __post_init__(self):
        self.signals: BoundedLog[SignalDecision] = BoundedLog(self.signal_log_size)
        self.trades: BoundedLog[TradeRecord] = BoundedLog(self.trade_log_size)
        self.errors: BoundedLog[ErrorRecord] = BoundedLog(self.error_log_size)

    def replace_positions(self, positions: list[Position]) -> None:
        self.positions = {p.symbol: p for p in positions}

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            account=self.account,
            positions=tuple(self.positions.values()),
            signals=self.signals.items(),
            trades=self.trades.items(),
            errors=self.errors.items(),
            last_tick=self.last_tick,
        )
