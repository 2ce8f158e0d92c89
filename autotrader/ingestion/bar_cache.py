"""
봉 조회 + 캐싱.

[ 역할 ]
    브로커에서 봉을 가져오고 BarStore에 일괄 upsert.
    캐싱 실패는 경고만 남기고 조회 결과는 그대로 반환한다.

[ 호출하는 곳 ]
    - backtest/engine.py::BacktestEngine (bar_store가 주어진 경우)
"""

import logging
from typing import Optional

import pandas as pd

from autotrader.core.broker_api import BrokerAPI
from autotrader.core.data_provider import BarStore, empty_bars

logger = logging.getLogger("autotrader.storage")


def cache_bars(
    broker: BrokerAPI,
    store: Optional[BarStore],
    symbol: str,
    timeframe: str,
    limit: int,
) -> pd.DataFrame:
    """브로커에서 최대 limit개 봉 조회 후 store에 캐싱."""
    logger.info(f"[Cache] {symbol} 과거 봉 조회 중 (최대 {limit}개)...")
    bars = broker.get_bars(symbol, limit)
    if bars is None or bars.empty:
        return empty_bars()

    if store is not None:
        try:
            count = store.upsert_bars(symbol, timeframe, bars)
            logger.info(f"[Cache] {symbol} {count}개 봉 캐싱 완료")
        except Exception as exc:
            logger.warning(f"[Cache] {symbol} 캐싱 실패: {exc}")
    return bars
