"""
샘플 봉 데이터 생성.

[ 역할 ]
    브로커 연결 없이 봇/백테스트를 돌려 볼 수 있도록 랜덤 워크 봉을 생성.
    종목 이름으로 시드를 고정하므로 같은 종목은 항상 같은 데이터가 나온다.

[ 호출하는 곳 ]
    - run_bot.py (MockBroker에 로드)
    - run_backtest.py (--source sample)
"""

import zlib
from datetime import datetime, timezone

import numpy as np
import pandas as pd

from autotrader.core.data_provider import BAR_COLUMNS

# 종목별 시작 가격 (없으면 100)
INITIAL_PRICES = {
    "BTCUSD": 60_000.0,
    "ETHUSD": 3_000.0,
    "SOLUSD": 150.0,
}


def timeframe_to_timedelta(timeframe: str) -> pd.Timedelta:
    """'5Min', '1Hour', '1Day' 같은 봉 주기 문자열을 Timedelta로 변환."""
    return pd.to_timedelta(timeframe.lower())


def generate_sample_bars(
    symbol: str,
    n_bars: int,
    timeframe: str = "5Min",
    end: datetime | None = None,
    initial_price: float | None = None,
    volatility: float = 0.004,
) -> pd.DataFrame:
    """랜덤 워크 봉 생성. 마지막 봉 시각이 end(기본: 현재 UTC)."""
    rng = np.random.default_rng(zlib.crc32(symbol.encode("utf-8")))
    if initial_price is None:
        initial_price = INITIAL_PRICES.get(symbol.replace("/", "").upper(), 100.0)

    step = timeframe_to_timedelta(timeframe)
    end_ts = pd.Timestamp(end or datetime.now(timezone.utc)).floor(step)
    times = pd.date_range(end=end_ts, periods=n_bars, freq=step)

    returns = rng.normal(0.0001, volatility, n_bars)
    closes = initial_price * np.cumprod(1 + returns)
    opens = np.concatenate([[initial_price], closes[:-1]])
    highs = np.maximum(opens, closes) * (1 + np.abs(rng.normal(0, volatility / 2, n_bars)))
    lows = np.minimum(opens, closes) * (1 - np.abs(rng.normal(0, volatility / 2, n_bars)))
    volumes = rng.lognormal(3, 1, n_bars)

    return pd.DataFrame(
        {
            "time": times,
            "open": opens.round(4),
            "high": highs.round(4),
            "low": lows.round(4),
            "close": closes.round(4),
            "volume": volumes.round(4),
        },
        columns=BAR_COLUMNS,
    )
