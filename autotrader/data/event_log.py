"""
고정 용량 이벤트 로그.

[ 역할 ]
    최근 시그널 / 거래 / 에러를 고정 개수만 보관. 가득 차면 가장 오래된 항목부터
    제거(FIFO, 삽입 순서 기준). 대시보드 표시와 재현용.

[ 기본 용량 ]
    signals 50, trades 50, errors 20 (config.yaml의 trading 섹션)
"""

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, Iterator, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ErrorRecord:
    message: str
    timestamp: datetime
    symbol: Optional[str] = None   # 틱 전체 실패는 None

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


class BoundedLog(Generic[T]):
    """삽입 순서를 유지하는 고정 용량 로그."""

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity는 1 이상이어야 합니다: {capacity}")
        self.capacity = capacity
        self._items: deque[T] = deque(maxlen=capacity)

    def append(self, item: T) -> None:
        self._items.append(item)

    def items(self) -> tuple[T, ...]:
        """오래된 것 → 최신 순."""
        return tuple(self._items)

    def latest(self) -> Optional[T]:
        return self._items[-1] if self._items else None

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(tuple(self._items))
