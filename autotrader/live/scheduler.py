"""
틱 스케줄러.

[ 역할 ]
    시작 즉시 한 번, 이후 interval_seconds마다 engine.tick()을 호출.
    틱은 같은 스레드에서 순차 실행되므로 서로 겹치지 않는다.
    (다른 스레드에서 수동으로 tick()을 호출해도 엔진의 락이 중첩을 막는다.)

[ 호출하는 곳 ]
    - run_bot.py
"""

import logging
import threading
import time
from typing import Optional

from autotrader.live.engine import TradingEngine

logger = logging.getLogger("autotrader.live")


class TickScheduler:
    """고정 간격 틱 스케줄러. stop()으로 종료."""

    def __init__(self, engine: TradingEngine, interval_seconds: float):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds는 0보다 커야 합니다: {interval_seconds}")
        self.engine = engine
        self.interval_seconds = interval_seconds
        self.tick_count = 0
        self._stop = threading.Event()

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run_forever(self, max_ticks: Optional[int] = None) -> int:
        """틱 루프 실행. 실행한 틱 수 반환.

        Args:
            max_ticks: 지정 시 해당 횟수만큼 실행 후 종료 (None이면 stop()까지 무한)
        """
        logger.info(f"[Bot] 스케줄러 시작 (간격 {self.interval_seconds}초)")
        while not self._stop.is_set():
            started = time.monotonic()
            try:
                self.engine.tick()
            except Exception:
                # 다음 틱은 반드시 실행되어야 한다
                logger.exception("[Bot] Scheduled tick failed")
            self.tick_count += 1

            if max_ticks is not None and self.tick_count >= max_ticks:
                break

            elapsed = time.monotonic() - started
            self._stop.wait(max(0.0, self.interval_seconds - elapsed))

        logger.info(f"[Bot] 스케줄러 종료 (총 {self.tick_count}틱)")
        return self.tick_count
