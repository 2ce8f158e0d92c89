"""
상태 브로드캐스트 구독자.

[ 역할 ]
    TradingEngine.subscribe()로 등록되어 Publish 단계마다 StateSnapshot을 받는다.
    전달은 fire-and-forget (응답/재전송 없음).

[ 포함 클래스 ]
    LoggingBroadcaster  - 틱 요약을 로그로 출력
    JsonFileBroadcaster - 정렬된 JSON 페이로드를 파일로 기록 (대시보드가 읽음)
"""

import logging
from pathlib import Path

from autotrader.data.bot_state import StateSnapshot

logger = logging.getLogger("autotrader.live")


class LoggingBroadcaster:
    def __call__(self, snapshot: StateSnapshot) -> None:
        latest_signal = snapshot.signals[-1] if snapshot.signals else None
        logger.info(
            f"[State] equity={snapshot.account.equity:,.2f} "
            f"positions={len(snapshot.positions)} signals={len(snapshot.signals)} "
            f"trades={len(snapshot.trades)} errors={len(snapshot.errors)} "
            f"last_signal={latest_signal.signal.value if latest_signal else '-'}"
        )


class JsonFileBroadcaster:
    """스냅샷 JSON을 path에 덮어쓴다. 임시 파일 교체로 부분 기록 노출 방지."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def __call__(self, snapshot: StateSnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(snapshot.to_json(), encoding="utf-8")
        tmp_path.replace(self.path)
