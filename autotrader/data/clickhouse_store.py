"""
ClickHouse 기반 BarStore 구현.

[ 역할 ]
    브로커에서 받은 봉을 (symbol, timeframe, time) 키로 캐싱하고,
    백테스트/학습용으로 기간 조회를 제공.
    BarStore 인터페이스를 구현하여 기존 시스템과 호환.

[ 의존성 ]
    - core/data_provider.py::BarStore (추상 클래스)
    - ingestion/clickhouse_schema.py (ClickHouse 연결 및 스키마)

[ 호출하는 곳 ]
    - ingestion/bar_cache.py::cache_bars()
    - run_backtest.py (--source clickhouse, --cache)
"""

from datetime import datetime

import pandas as pd
from clickhouse_connect.driver import Client

from autotrader.core.data_provider import BAR_COLUMNS, BarStore, empty_bars, normalize_bars
from autotrader.ingestion.clickhouse_schema import BARS_TABLE, get_client, initialize_schema


class ClickHouseBarStore(BarStore):
    """ClickHouse 기반 봉 저장소.

    사용 예:
        store = ClickHouseBarStore.connect('localhost', 8123, 'default')
        store.upsert_bars('BTC/USD', '5Min', df)
        df = store.get_bars('BTC/USD', '5Min', start, end)
    """

    def __init__(self, client: Client, create_schema: bool = True):
        self.client = client
        if create_schema:
            initialize_schema(self.client)

    @classmethod
    def connect(
        cls,
        host: str = "localhost",
        port: int = 8123,
        database: str = "default",
        user: str = "default",
        password: str = "",
    ) -> "ClickHouseBarStore":
        return cls(get_client(host, port, database, user, password))

    def upsert_bars(self, symbol: str, timeframe: str, bars: pd.DataFrame) -> int:
        """봉 일괄 적재. 같은 키의 기존 행은 병합 시 최신값으로 대체된다."""
        if bars.empty:
            return 0
        df = normalize_bars(bars)
        df.insert(0, "timeframe", timeframe)
        df.insert(0, "symbol", symbol)
        self.client.insert_df(BARS_TABLE, df, column_names=["symbol", "timeframe", *BAR_COLUMNS])
        return len(df)

    def get_bars(
        self,
        symbol: str,
        timeframe: str,
        start: datetime,
        end: datetime,
    ) -> pd.DataFrame:
        """기간 내 봉 조회 (FINAL로 중복 제거, 시간 오름차순).

        Returns:
            DataFrame with columns: [time, open, high, low, close, volume]
        """
        query = f"""
            SELECT time, open, high, low, close, volume
            FROM {BARS_TABLE} FINAL
            WHERE symbol = %(symbol)s
              AND timeframe = %(timeframe)s
              AND time >= %(start)s
              AND time <= %(end)s
            ORDER BY time ASC
        """
        result = self.client.query(
            query,
            parameters={
                "symbol": symbol,
                "timeframe": timeframe,
                "start": start,
                "end": end,
            },
        )
        if not result.result_rows:
            return empty_bars()
        df = pd.DataFrame(result.result_rows, columns=BAR_COLUMNS)
        return normalize_bars(df)

    def get_symbols(self) -> list[str]:
        """캐시된 종목 목록 (알파벳 순)."""
        result = self.client.query(f"SELECT DISTINCT symbol FROM {BARS_TABLE} ORDER BY symbol")
        return [row[0] for row in result.result_rows]

    def close(self):
        """ClickHouse 연결 종료."""
        if hasattr(self.client, "close"):
            self.client.close()
