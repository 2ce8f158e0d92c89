"""
봉(Bar) 데이터 타입과 영속화 계층 추상 클래스 정의.

[ 역할 ]
    OHLCV(시가/고가/저가/종가/거래량) 한 개 봉을 표현하는 Bar와,
    봉 데이터를 캐싱/조회하는 저장소(BarStore) 인터페이스를 정의.
    전략/백테스트는 봉 시퀀스를 DataFrame(columns: BAR_COLUMNS)으로 다룬다.

[ 구현체 ]
    - data/clickhouse_store.py::ClickHouseBarStore  (ClickHouse 캐시)

[ 호출하는 곳 ]
    - brokers/mock_broker.py에서 get_bars() 반환값 구성
    - ingestion/bar_cache.py에서 upsert_bars() 호출
    - run_backtest.py (--source clickhouse)에서 get_bars() 호출
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

import pandas as pd

# 모든 봉 DataFrame이 공유하는 컬럼 순서
BAR_COLUMNS = ["time", "open", "high", "low", "close", "volume"]


@dataclass(frozen=True)
class Bar:
    """단일 봉(캔들). 생성 후 변경 불가."""
    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float


def empty_bars() -> pd.DataFrame:
    """컬럼만 있는 빈 봉 DataFrame."""
    return pd.DataFrame(columns=BAR_COLUMNS)


def bars_to_frame(bars: list[Bar]) -> pd.DataFrame:
    """Bar 리스트 → 시간 오름차순 DataFrame."""
    if not bars:
        return empty_bars()
    df = pd.DataFrame(
        [(b.time, b.open, b.high, b.low, b.close, b.volume) for b in bars],
        columns=BAR_COLUMNS,
    )
    return normalize_bars(df)


def normalize_bars(df: pd.DataFrame) -> pd.DataFrame:
    """시간 오름차순 정렬 + 중복 타임스탬프 제거 (마지막 값 유지)."""
    if df.empty:
        return empty_bars()
    df = df[BAR_COLUMNS].copy()
    df["time"] = pd.to_datetime(df["time"])
    df = df.drop_duplicates(subset="time", keep="last")
    return df.sort_values("time").reset_index(drop=True)


def frame_to_bars(df: pd.DataFrame) -> list[Bar]:
    """봉 DataFrame → Bar 리스트."""
    return [
        Bar(
            time=row.time.to_pydatetime() if isinstance(row.time, pd.Timestamp) else row.time,
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
        for row in df.itertuples(index=False)
    ]


class BarStore(ABC):
    """봉 데이터 저장소 추상 클래스.

    (symbol, timeframe, time) 키로 upsert하고, 기간으로 조회한다.
    """

    @abstractmethod
    def upsert_bars(self, symbol: str, timeframe: str, bars: pd.DataFrame) -> int:
        """봉 일괄 upsert.

        Args:
            symbol: 종목 심볼
            timeframe: 봉 주기 (예: "5Min")
            bars: 봉 DataFrame (columns: BAR_COLUMNS)

        Returns:
            저장한 행 수
        """
        ...

    @abstractmethod
    def get_bars(
        self,
        symbol: str,
        timeframe: str,
        start: datetime,
        end: datetime,
    ) -> pd.DataFrame:
        """기간 내 봉 조회 (시간 오름차순)."""
        ...
