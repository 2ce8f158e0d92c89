"""
기술적 지표 계산 모듈 (순수 함수).

[ 역할 ]
    종가(또는 봉 DataFrame) 시퀀스를 받아 지표값을 계산.
    상태/I/O 없음. 데이터가 부족하면 예외 대신 None(또는 빈 리스트)을 반환한다.
    → 워밍업 구간은 에러가 아니라 정상 상태.

[ 제공 지표 ]
    sma / ema / ema_series
    rsi / rsi_series      (Wilder 평활)
    macd / macd_series    (MACD선, 시그널선, 히스토그램)
    bollinger_bands       (모표준편차 기준)
    atr                   (True Range 단순평균)

[ 호출하는 곳 ]
    - strategies/*.py의 analyze()
    - ml/features.py::prepare_features()
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class MACDResult:
    macd_line: float
    signal_line: float
    histogram: float


@dataclass(frozen=True)
class MACDSeries:
    macd_line: list[float]
    signal_line: list[float]   # macd_line[signal_period - 1:]과 정렬
    histogram: list[float]


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float


def _as_floats(series: Sequence[float]) -> list[float]:
    return [float(v) for v in series]


def sma(series: Sequence[float], period: int) -> Optional[float]:
    """단순 이동평균 (마지막 period개)."""
    values = _as_floats(series)
    if period <= 0 or len(values) < period:
        return None
    return sum(values[-period:]) / period


def ema_series(series: Sequence[float], period: int) -> list[float]:
    """지수 이동평균 전체 시계열.

    첫 period개 단순평균으로 시드, 이후 k = 2/(period+1).
    반환 리스트의 i번째 값은 입력 인덱스 period-1+i에 대응.
    """
    values = _as_floats(series)
    if period <= 0 or len(values) < period:
        return []
    k = 2 / (period + 1)
    current = sum(values[:period]) / period
    out = [current]
    for value in values[period:]:
        # 상수 입력에서 값이 정확히 유지되도록 증분 형태로 계산
        current = current + k * (value - current)
        out.append(current)
    return out


def ema(series: Sequence[float], period: int) -> Optional[float]:
    """지수 이동평균 최신값."""
    out = ema_series(series, period)
    return out[-1] if out else None


def rsi_series(series: Sequence[float], period: int = 14) -> list[float]:
    """Wilder RSI 전체 시계열. 최소 period+1개 필요.

    평균 손실이 0이면 100으로 포화 (0 나눗셈 없음).
    """
    values = _as_floats(series)
    if period <= 0 or len(values) < period + 1:
        return []

    deltas = np.diff(np.asarray(values, dtype=float))
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(gains[:period].sum()) / period
    avg_loss = float(losses[:period].sum()) / period

    def _value(g: float, l: float) -> float:
        if l == 0:
            return 100.0
        rs = g / l
        return 100.0 - 100.0 / (1.0 + rs)

    out = [_value(avg_gain, avg_loss)]
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + float(gain)) / period
        avg_loss = (avg_loss * (period - 1) + float(loss)) / period
        out.append(_value(avg_gain, avg_loss))
    return out


def rsi(series: Sequence[float], period: int = 14) -> Optional[float]:
    """RSI 최신값 (0~100)."""
    out = rsi_series(series, period)
    return out[-1] if out else None


def macd_series(
    series: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> Optional[MACDSeries]:
    """MACD 전체 시계열. fast < slow, len(series) >= slow + signal 이어야 계산."""
    if fast >= slow:
        return None
    values = _as_floats(series)
    if len(values) < slow + signal:
        return None

    fast_ema = ema_series(values, fast)
    slow_ema = ema_series(values, slow)
    # 두 EMA를 slow 기준 인덱스에 정렬
    offset = slow - fast
    macd_line = [f - s for f, s in zip(fast_ema[offset:], slow_ema)]

    signal_line = ema_series(macd_line, signal)
    if not signal_line:
        return None
    aligned = macd_line[signal - 1:]
    histogram = [m - s for m, s in zip(aligned, signal_line)]
    return MACDSeries(macd_line=macd_line, signal_line=signal_line, histogram=histogram)


def macd(
    series: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> Optional[MACDResult]:
    """MACD 최신값."""
    out = macd_series(series, fast, slow, signal)
    if out is None:
        return None
    return MACDResult(
        macd_line=out.macd_line[-1],
        signal_line=out.signal_line[-1],
        histogram=out.histogram[-1],
    )


def bollinger_bands(
    series: Sequence[float],
    period: int = 20,
    std_dev_multiplier: float = 2.0,
) -> Optional[BollingerBands]:
    """볼린저 밴드. 중심 = SMA, 폭 = multiplier × 모표준편차."""
    values = _as_floats(series)
    if period <= 0 or len(values) < period:
        return None
    window = np.asarray(values[-period:], dtype=float)
    middle = float(window.mean())
    std = float(window.std(ddof=0))
    return BollingerBands(
        upper=middle + std_dev_multiplier * std,
        middle=middle,
        lower=middle - std_dev_multiplier * std,
    )


def atr(bars: pd.DataFrame, period: int = 14) -> Optional[float]:
    """Average True Range. 최근 period개 True Range의 단순평균 (period+1봉 필요).

    TR = max(high - low, |high - prev_close|, |low - prev_close|)
    """
    if period <= 0 or len(bars) < period + 1:
        return None
    high = bars["high"].astype(float).to_numpy()
    low = bars["low"].astype(float).to_numpy()
    close = bars["close"].astype(float).to_numpy()

    prev_close = close[:-1]
    true_range = np.maximum.reduce([
        high[1:] - low[1:],
        np.abs(high[1:] - prev_close),
        np.abs(low[1:] - prev_close),
    ])
    return float(true_range[-period:].mean())
